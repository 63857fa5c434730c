"""Shared progress bar utilities for Rich console displays."""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


def create_standard_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Create a standard progress bar with time remaining estimation.

    Args:
        console: Rich console instance (optional)
        expand: Whether to expand the progress bar to full width

    Returns:
        Configured Progress instance with spinner, description, bar,
        M of N counter, time elapsed and time remaining.

    Example:
        ```python
        from rich.console import Console
        from src.helpers.progress import create_standard_progress

        console = Console()
        progress = create_standard_progress(console)

        with progress:
            task_id = progress.add_task("Indexing blocks", total=1000)
            # ... index blocks ...
            progress.update(task_id, advance=1)
        ```
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("•"),
        TimeRemainingColumn(),
        console=console,
        expand=expand,
    )


@contextmanager
def track_progress(
    description: str,
    total: int | None,
    console: Console | None = None,
) -> Iterator[tuple[Progress, TaskID]]:
    """Context manager for tracking progress with automatic cleanup.

    Args:
        description: Task description to display
        total: Total number of items to process (None while unknown)
        console: Rich console instance (optional)

    Yields:
        Tuple of (Progress instance, TaskID) for updating progress

    Example:
        ```python
        from src.helpers.progress import track_progress

        with track_progress("Indexing blocks", total=None) as (progress, task):
            progress.update(task, total=head - start)
            for height in range(start, head):
                progress.update(task, advance=1)
        ```
    """
    progress = create_standard_progress(console)
    with progress:
        task_id = progress.add_task(description, total=total)
        yield progress, task_id


__all__ = ["create_standard_progress", "track_progress"]
