"""Tests for progress bar utilities."""

from io import StringIO

from rich.console import Console
from rich.progress import Progress

from src.helpers.progress import create_standard_progress, track_progress


class TestCreateStandardProgress:
    """Tests for create_standard_progress function."""

    def test_creates_progress_instance(self) -> None:
        """Test that function creates Progress instance."""
        progress = create_standard_progress()
        assert isinstance(progress, Progress)

    def test_uses_provided_console(self) -> None:
        """Test that function uses provided console."""
        console = Console()
        progress = create_standard_progress(console=console)
        assert progress.console == console

    def test_expand_parameter(self) -> None:
        """Test expand parameter is applied."""
        progress = create_standard_progress(expand=True)
        assert progress.expand is True

    def test_has_time_columns(self) -> None:
        """Test that progress shows elapsed and remaining time."""
        progress = create_standard_progress()
        column_types = [type(col).__name__ for col in progress.columns]
        assert "TimeElapsedColumn" in column_types
        assert "TimeRemainingColumn" in column_types
        assert "MofNCompleteColumn" in column_types


class TestTrackProgress:
    """Tests for track_progress context manager."""

    def test_yields_progress_and_task_id(self) -> None:
        """Test context manager yields progress and task ID."""
        console = Console(file=StringIO())
        with track_progress("Test task", total=100, console=console) as (progress, task_id):
            assert isinstance(progress, Progress)
            assert isinstance(task_id, int)

    def test_creates_task_with_description(self) -> None:
        """Test task is created with correct description."""
        console = Console(file=StringIO())
        with track_progress("Indexing blocks", total=50, console=console) as (
            progress,
            task_id,
        ):
            task = progress.tasks[task_id]
            assert task.description == "Indexing blocks"
            assert task.total == 50

    def test_total_can_be_set_later(self) -> None:
        """Test an unknown total can be filled in once the range is known."""
        console = Console(file=StringIO())
        with track_progress("Indexing blocks", total=None, console=console) as (
            progress,
            task_id,
        ):
            assert progress.tasks[task_id].total is None

            progress.update(task_id, total=3)
            progress.update(task_id, advance=3)

            task = progress.tasks[task_id]
            assert task.total == 3
            assert task.finished

    def test_allows_progress_updates(self) -> None:
        """Test progress can be updated within context."""
        console = Console(file=StringIO())
        with track_progress("Test", total=100, console=console) as (progress, task_id):
            progress.update(task_id, advance=10)
            assert progress.tasks[task_id].completed == 10

            progress.update(task_id, advance=20)
            assert progress.tasks[task_id].completed == 30

    def test_cleans_up_after_context(self) -> None:
        """Test progress is properly cleaned up after context."""
        console = Console(file=StringIO())
        with track_progress("Test", total=100, console=console) as (progress, task_id):
            progress.update(task_id, advance=50)

        # Progress should be finished after context exits
        assert not progress.live.is_started
