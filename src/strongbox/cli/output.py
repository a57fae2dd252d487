"""
Output formatting utilities for the CLI.

Status messages go to stderr so that stdout carries nothing but command
output, which may be secret material.
"""

import logging
from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

# Global console instances
console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

_log_handler: logging.Handler | None = None


def print_success(message: str) -> None:
    """Print a success message."""
    err_console.print(f"[green]✓[/green] {escape(message)}", soft_wrap=True)


def print_error(message: str) -> None:
    """Print a single-line error diagnostic."""
    text = " ".join(message.split()).rstrip(".")
    err_console.print(f"[red]error:[/red] {escape(text)}.", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[yellow]![/yellow] {escape(message)}", soft_wrap=True)


def print_info(message: str) -> None:
    """Print an info message."""
    err_console.print(f"[blue]i[/blue] {escape(message)}", soft_wrap=True)


def print_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str | None = None,
) -> None:
    """Print a table."""
    table = Table(title=title)

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[escape(str(cell)) for cell in row])

    console.print(table)


def print_name_tree(root_label: str, names: Iterable[str]) -> None:
    """Print slash-separated entry names as a tree of categories."""
    tree = Tree(escape(root_label))
    branches: dict[tuple[str, ...], Tree] = {(): tree}

    for name in names:
        parts = tuple(name.split("/"))
        for depth in range(1, len(parts) + 1):
            key = parts[:depth]
            if key not in branches:
                label = escape(parts[depth - 1])
                if depth < len(parts):
                    label = f"[bold blue]{label}[/bold blue]"
                branches[key] = branches[key[:-1]].add(label)

    console.print(tree)


def setup_logging(verbose: bool = False) -> None:
    """Send strongbox log records to stderr through rich."""
    global _log_handler

    package_logger = logging.getLogger("strongbox")
    if _log_handler is not None:
        package_logger.removeHandler(_log_handler)

    _log_handler = RichHandler(console=err_console, show_path=False, show_time=verbose)
    package_logger.addHandler(_log_handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
