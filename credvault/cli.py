"""
Command-Line Interface
======================

Thin click wrapper over the credential store. All rendering of errors
happens here; the core only raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from credvault import __version__
from credvault.core.config import VaultConfig
from credvault.core.crypto.keyfile import load_key, load_or_create_key
from credvault.core.exceptions import (
    AuthenticationError,
    CredentialNotFoundError,
    CredVaultError,
)
from credvault.core.file_ops.interchange import export_store, import_store
from credvault.core.logging import configure_logging
from credvault.db.credential_store import CredentialStore
from credvault.utils.passwords import (
    DEFAULT_GENERATED_LENGTH,
    MAX_GENERATED_LENGTH,
    MIN_GENERATED_LENGTH,
    generate_password,
)
from credvault.utils.paths import expand_path, same_file

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

_log = logging.getLogger("credvault.cli")


@dataclass
class CliState:
    """Per-invocation settings resolved from options and configuration."""

    store_path: Path
    key_file: Path
    unique_labels: bool

    def open_store(self) -> CredentialStore:
        return CredentialStore.open(self.store_path, unique_labels=self.unique_labels)


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Manage your passwords securely from the command line.",
)
@click.option("--store", "-s", "store_path", type=click.Path(dir_okay=False),
              help="Path to the credential store file")
@click.option("--key-file", "-k", type=click.Path(dir_okay=False),
              help="Path to the key file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__, prog_name="credvault")
@click.pass_context
def cli(ctx: click.Context, store_path: Optional[str], key_file: Optional[str], verbose: bool) -> None:
    """Local, offline credential manager."""
    try:
        config = VaultConfig.load()
        config.ensure_directories()
    except CredVaultError as exc:
        raise click.ClickException(f"invalid configuration: {exc}") from exc
    except OSError as exc:
        raise click.ClickException(f"cannot create data directory: {exc}") from exc

    configure_logging(
        log_dir=config.paths.log_dir,
        level="DEBUG" if verbose else config.logging.level,
        enable_console=config.logging.enable_console,
        enable_file=config.logging.enable_file,
        max_file_size=config.logging.max_file_size_bytes,
        backup_count=config.logging.backup_count,
    )

    ctx.obj = CliState(
        store_path=expand_path(store_path) if store_path else config.paths.resolved_store_path,
        key_file=expand_path(key_file) if key_file else config.paths.resolved_key_file,
        unique_labels=config.store.unique_labels,
    )
    _log.debug("Using store %s", ctx.obj.store_path)


@cli.command("add")
@click.argument("label")
@click.argument("user")
@click.option("--password", "-p", help="Password (prompted for if omitted)")
@click.option("--notes", "-n", help="Notes or URL")
@click.pass_obj
def add_cmd(state: CliState, label: str, user: str, password: Optional[str], notes: Optional[str]) -> None:
    """Add a new credential."""
    if password is None:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    try:
        key = load_or_create_key(state.key_file)
        with state.open_store() as store:
            store.add(label, user, password, notes, key=key)
    except CredVaultError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Stored credential '{label}'.")


@cli.command("get")
@click.argument("label")
@click.pass_obj
def get_cmd(state: CliState, label: str) -> None:
    """Retrieve and decrypt a credential by label."""
    try:
        key = load_key(state.key_file)
        with state.open_store() as store:
            record = store.require(label)
            password = store.reveal(label, key=key)
    except CredentialNotFoundError as exc:
        raise click.ClickException(f"no credential named '{label}'") from exc
    except AuthenticationError as exc:
        raise click.ClickException(f"credential '{label}' failed authentication (wrong key or corrupted data)") from exc
    except CredVaultError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Label:    {record.label}")
    click.echo(f"Username: {record.username}")
    click.echo(f"Password: {password}")
    if record.notes:
        click.echo(f"Notes:    {record.notes}")


@cli.command("list")
@click.pass_obj
def list_cmd(state: CliState) -> None:
    """List all stored labels."""
    try:
        with state.open_store() as store:
            labels = store.labels()
    except CredVaultError as exc:
        raise click.ClickException(str(exc)) from exc

    if not labels:
        click.echo("No credentials stored.")
        return
    for label in labels:
        click.echo(label)


@cli.command("delete")
@click.argument("label")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def delete_cmd(state: CliState, label: str, yes: bool) -> None:
    """Delete a credential by label."""
    if not yes:
        click.confirm(f"Delete credential '{label}'? This cannot be undone", abort=True)

    try:
        with state.open_store() as store:
            removed = store.delete(label)
    except CredVaultError as exc:
        raise click.ClickException(str(exc)) from exc

    if not removed:
        raise click.ClickException(f"no credential named '{label}'")
    click.echo(f"Deleted credential '{label}'.")


@cli.command("generate")
@click.option("--length", "-l", default=DEFAULT_GENERATED_LENGTH, show_default=True,
              type=click.IntRange(MIN_GENERATED_LENGTH, MAX_GENERATED_LENGTH),
              help="Desired length")
@click.option("--symbols", "-s", is_flag=True, help="Include symbols")
def generate_cmd(length: int, symbols: bool) -> None:
    """Generate a random password."""
    click.echo(generate_password(length, symbols=symbols))


@cli.command("export")
@click.argument("path", type=click.Path(dir_okay=False))
@click.pass_obj
def export_cmd(state: CliState, path: str) -> None:
    """Export the store to a file (records stay encrypted)."""
    target = expand_path(path)
    if same_file(target, state.store_path):
        raise click.ClickException("export path must not be the store file")

    try:
        with state.open_store() as store:
            count = export_store(store, target)
    except (CredVaultError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Exported {count} credential(s) to {target}.")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--skip-existing", is_flag=True, help="Skip labels that are already stored")
@click.pass_obj
def import_cmd(state: CliState, path: str, skip_existing: bool) -> None:
    """Import credentials from an export file."""
    try:
        with state.open_store() as store:
            summary = import_store(store, expand_path(path), skip_existing=skip_existing)
    except (CredVaultError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    message = f"Imported {summary.imported} credential(s)"
    if summary.skipped:
        message += f", skipped {summary.skipped} existing"
    click.echo(message + ".")


def main() -> None:
    cli(prog_name="credvault")


if __name__ == "__main__":
    main()
