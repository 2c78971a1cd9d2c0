"""CLI error handling and decorators."""

from __future__ import annotations

import functools
from typing import Any, Callable

import typer


def handle_error(msg: str) -> None:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def exits_on(*errors: type[Exception]) -> Callable[[Callable], Callable]:
    """Decorator that reports the given exceptions from a command and exits 1.

    Lets a command body raise TemplateSyntaxError or ValueError directly
    instead of wrapping each call site in try/except.
    """

    def decorate(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return f(*args, **kwargs)
            except errors as err:
                handle_error(str(err))

        return wrapper

    return decorate
