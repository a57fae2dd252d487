"""
Main Typer application for the strongbox CLI.

This module defines the root CLI application and its commands.
"""

import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType
from typing import Annotated

import click
import typer
from typer.core import TyperGroup

from strongbox import __version__
from strongbox.cli.editor import launch_editor
from strongbox.cli.output import (
    console,
    print_error,
    print_info,
    print_name_tree,
    print_success,
    print_table,
    print_warning,
    setup_logging,
)
from strongbox.config import ConfigurationError, StoreConfig, load_config
from strongbox.crypto import get_backend
from strongbox.exceptions import AlreadyExistsError, StoreError, UserAbort
from strongbox.keys import KeyMaterialStore
from strongbox.store import EntryStore, generate_password, rotate_keys
from strongbox.terminal import confirm, prompt_hidden, prompt_line

logger = logging.getLogger(__name__)


class StrongboxGroup(TyperGroup):
    """Command group that answers an unknown command with the usage text."""

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            typer.echo(ctx.get_help())
            ctx.exit(0)


# Create the main Typer app
app = typer.Typer(
    name="strongbox",
    help="Personal secret store with per-entry encryption and key rotation.",
    cls=StrongboxGroup,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"strongbox version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log details to stderr.",
        ),
    ] = False,
) -> None:
    """
    [bold blue]strongbox[/bold blue] - personal secret store

    Secrets are stored as individually encrypted files under the store root.
    Set STRONGBOX_HOME, STRONGBOX_DIR or STRONGBOX_NOGIT to configure it.
    """
    setup_logging(verbose)
    with reported_errors():
        ctx.obj = load_config()


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn store and configuration errors into a diagnostic and exit 1."""
    try:
        yield
    except (StoreError, ConfigurationError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def open_store(config: StoreConfig) -> EntryStore:
    """Wire the store components for one invocation."""
    backend = get_backend(config.backend, config.identities_path)
    keys = KeyMaterialStore(config, backend)

    audit = None
    if config.audit.enable:
        from strongbox.audit import GitAuditTrail

        audit = GitAuditTrail.from_config(config)

    return EntryStore(config, keys, backend, audit)


def _write_stdout(data: bytes) -> None:
    stream = typer.get_binary_stream("stdout")
    stream.write(data)
    stream.flush()


def _read_secret(name: str, multiline: bool, echo: bool) -> bytes:
    if multiline:
        sys.stderr.write(f"Enter contents of {name} and press Ctrl+D when finished:\n\n")
        sys.stderr.flush()
        secret = sys.stdin.read()
    elif echo:
        secret = prompt_line(f"Enter secret for {name}")
        if secret:
            secret += "\n"
    else:
        first = prompt_hidden(f"Enter secret for {name}")
        second = prompt_hidden(f"Retype secret for {name}")
        if first != second:
            raise UserAbort("the entered secrets do not match")
        secret = first + "\n" if first else ""

    if not secret:
        raise UserAbort(f"no secret given for {name}")
    return secret.encode("utf-8")


@app.command()
def add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Entry name, e.g. web/example.com.")],
    multiline: Annotated[
        bool,
        typer.Option("--multiline", "-m", help="Read the secret from stdin until EOF."),
    ] = False,
    echo: Annotated[
        bool,
        typer.Option("--echo", "-e", help="Echo the secret while typing it."),
    ] = False,
) -> None:
    """Add a new secret."""
    with reported_errors():
        store = open_store(ctx.obj)
        if store.exists(name):
            raise AlreadyExistsError(f"{name} already exists", name)
        store.add(name, _read_secret(name, multiline, echo))


@app.command()
def show(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Entry name.")],
) -> None:
    """Decrypt a secret and print it."""
    with reported_errors():
        _write_stdout(open_store(ctx.obj).show(name))


@app.command()
def edit(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Entry name.")],
) -> None:
    """Edit a secret in $EDITOR."""
    config: StoreConfig = ctx.obj
    editor = config.resolve_editor()
    with reported_errors():
        open_store(config).edit(name, lambda path: launch_editor(editor, path), editor=editor)


@app.command()
def delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Entry name.")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Delete a secret."""
    with reported_errors():
        store = open_store(ctx.obj)
        store.path(name)
        if not force and not confirm(f"Are you sure you would like to delete {name}?"):
            raise UserAbort("deletion declined")
        store.delete(name)


@app.command("list")
def list_entries(
    ctx: typer.Context,
    prefix: Annotated[
        str | None,
        typer.Argument(help="Only list this entry or category."),
    ] = None,
    tree: Annotated[
        bool,
        typer.Option("--tree", "-t", help="Show entries as a tree of categories."),
    ] = False,
) -> None:
    """List secret names."""
    with reported_errors():
        names = open_store(ctx.obj).list(prefix)
        if tree:
            print_name_tree(prefix or "Store", names)
            return
        for name in names:
            typer.echo(name)


@app.command()
def generate(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Entry name.")],
    length: Annotated[
        int | None,
        typer.Argument(help="Password length. Defaults to STRONGBOX_GENERATED_LENGTH."),
    ] = None,
    no_symbols: Annotated[
        bool,
        typer.Option("--no-symbols", "-n", help="Use letters and digits only."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing entry without asking."),
    ] = False,
) -> None:
    """Generate a random password and store it."""
    config: StoreConfig = ctx.obj
    with reported_errors():
        store = open_store(config)
        character_set = config.no_symbols_set if no_symbols else config.character_set
        password = generate_password(length or config.generated_length, character_set)
        plaintext = (password + "\n").encode("utf-8")

        if store.exists(name):
            if not force and not confirm(f"An entry already exists for {name}. Overwrite it?"):
                raise UserAbort("overwrite declined")
            store.replace(name, plaintext)
        else:
            store.add(name, plaintext)

        typer.echo(password)


@app.command()
def rotate(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Add a new key pair and re-encrypt every secret to it."""
    with reported_errors():
        store = open_store(ctx.obj)
        count = sum(1 for _ in store.list())
        if not yes and not confirm(f"Add a new key and re-encrypt {count} entries?"):
            raise UserAbort("rotation declined")

        result = rotate_keys(store, on_entry=lambda name: logger.info(f"Re-encrypted {name}"))
        print_success(f"Re-encrypted {len(result.entries)} entries")
        print_info(f"New recipient: {result.recipient}")


@app.command()
def log(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of records to show."),
    ] = 20,
) -> None:
    """Show the store's change history."""
    config: StoreConfig = ctx.obj
    if not config.audit.enable:
        print_warning("Audit trail is disabled")
        return

    from strongbox.audit import GitAuditTrail

    records = GitAuditTrail.from_config(config).history(limit)
    if not records:
        console.print("No history recorded yet.")
        return
    print_table(
        ["Commit", "Date", "Message"],
        [[r.sha, r.timestamp.strftime("%Y-%m-%d %H:%M"), r.message] for r in records],
    )


@app.command(hidden=True)
def textconv(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Ciphertext file to decrypt.")],
) -> None:
    """Decrypt a ciphertext file for git diff."""
    config: StoreConfig = ctx.obj
    with reported_errors():
        backend = get_backend(config.backend, config.identities_path)
        keys = KeyMaterialStore(config, backend)
        try:
            ciphertext = file.read_bytes()
        except OSError as e:
            raise StoreError(f"cannot read {file}: {e}") from e
        _write_stdout(backend.decrypt(ciphertext, keys.current_identities()))


# Signals whose default action would kill the process without unwinding
TERMINATING_SIGNALS = (signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT)


def _terminate(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


def main() -> None:
    """Console script entry point."""
    # Unwind instead, so scratch files and terminal state are cleaned up
    for sig in TERMINATING_SIGNALS:
        signal.signal(sig, _terminate)
    app()


if __name__ == "__main__":
    main()
