"""Tests for the progress reporter."""
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.progress import ProgressReporter


def test_position_only_moves_forward():
    with ProgressReporter("Analyzing", interactive=False) as progress:
        progress.update(0.25)
        progress.update(0.1)
        progress.update(0.25)
        assert progress.position == 250

        progress.update(2.0)
        assert progress.position == progress.steps


def test_negative_fraction_is_clamped():
    with ProgressReporter("Analyzing", interactive=False) as progress:
        progress.update(-1.0)
        assert progress.position == 0


def test_interactive_bar_renders_to_stderr(capsys):
    with ProgressReporter("Analyzing data files...", interactive=True) as progress:
        progress.update(0.5)
        progress.update(1.0)

    captured = capsys.readouterr()
    assert "Analyzing data files..." in captured.err
    assert "100%" in captured.err
    assert captured.out == ""
