"""
Spinner decorator for long-running dupmark commands.
"""
from functools import wraps
import sys
import os
from typing import Any, Callable, Optional
from rich.progress import Progress, SpinnerColumn, TextColumn


def progress_enabled() -> bool:
    """Progress output only goes to an interactive terminal."""
    return sys.stdout.isatty() and not os.environ.get('DUPMARK_NO_PROGRESS')


def spinner(description: Optional[str] = None) -> Callable:
    """
    Show a spinner for operations without clear progress.

    Args:
        description: Optional description to show (defaults to function name)

    Returns:
        Decorated function that shows a spinner

    Example:
        @spinner("Scanning for duplicates")
        def scan(snapshots):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if not progress_enabled():
                return func(*args, **kwargs)

            desc = description or f"{func.__name__.replace('_', ' ').title()}"

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True
            ) as progress:
                progress.add_task(desc, total=None)
                return func(*args, **kwargs)

        # Bypass the spinner explicitly
        wrapper.without_progress = func
        return wrapper
    return decorator
