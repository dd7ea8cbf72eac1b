"""Console progress feedback for long table scans."""
from tqdm import tqdm


class ProgressReporter:
    """
    Render a completion fraction as a tqdm bar on stderr.

    In batch mode (interactive=False) the bar is disabled and update() is a no-op.
    Fractions are clamped to [0, 1] and never move the bar backwards.
    """

    steps = 1000

    def __init__(self, description: str, interactive: bool = True):
        self.interactive = interactive
        self.position = 0
        self._bar = tqdm(
            total=self.steps,
            desc=description,
            disable=not interactive,
            bar_format="{desc} {percentage:3.0f}%|{bar}| [{elapsed}<{remaining}]",
            leave=True,
        )

    def update(self, fraction: float) -> None:
        fraction = min(max(fraction, 0.0), 1.0)
        position = int(fraction * self.steps)
        if position > self.position:
            self._bar.update(position - self.position)
            self.position = position

    def close(self) -> None:
        self._bar.close()

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
