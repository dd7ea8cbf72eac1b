"""Human-readable rendering of purge statistics."""
from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from analysis.keys import format_key


def human_readable_bytes(num_bytes: int, si: bool = False) -> str:
    """
    Format a byte count, e.g. 1536 -> "1.5 KiB" (or "1.5 kB" with si=True).

    Counts below one unit are printed exactly ("512 B").
    """
    unit = 1000 if si else 1024
    if abs(num_bytes) < unit:
        return f"{num_bytes} B"

    prefixes = "kMGTPE" if si else "KMGTPE"
    value = num_bytes / unit
    index = 0
    # Step up while the printed value would reach the next unit
    while round(abs(value), 1) >= unit and index < len(prefixes) - 1:
        value /= unit
        index += 1

    prefix = prefixes[index] + ("" if si else "i")
    return f"{value:.1f} {prefix}B"


def build_summary_table(report) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("")
    table.add_column("Size", justify="right")
    table.add_row("Disk", human_readable_bytes(report.totals.size))
    table.add_row("Reclaim", human_readable_bytes(report.totals.reclaimable))
    return table


def build_partitions_table(report) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("Key", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Reclaim", justify="right")
    table.add_column("Generations")
    for stats in report.partitions:
        table.add_row(
            Text(format_key(stats.key, report.key_type)),
            human_readable_bytes(stats.size),
            human_readable_bytes(stats.reclaimable),
            Text(str(list(stats.generations))),
        )
    return table


def render_report(report, console: Optional[Console] = None) -> None:
    """Print the summary table followed by the largest reclaimable partitions."""
    console = console or Console()

    console.print("Summary:")
    console.print(build_summary_table(report))
    console.print("Largest reclaimable partitions:")
    console.print(build_partitions_table(report))
