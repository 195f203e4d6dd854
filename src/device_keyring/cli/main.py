"""CLI entry point for device-keyring.

Invoked as::

    device-keyring [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m device_keyring.cli.main

Commands
--------
keys show            Display the device's public keys
keys init            Load or generate both key pairs
keys reset           Delete both key pairs and the session secret
session establish    Derive and store the session key with a peer
session show         Report whether a session key is stored
session clear        Delete the stored session key
encrypt              Seal text with the session key
decrypt              Open a sealed message with the session key
sign                 Sign text with the signing key
verify               Verify a signature
serve                Run the local peer HTTP service
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING, NoReturn

import click
from rich.console import Console
from rich.table import Table

from device_keyring.errors import DeviceKeyringError

if TYPE_CHECKING:
    from device_keyring.manager import KeySessionManager

console = Console()

_DEFAULT_STORE_DIR = Path.home() / ".device-keyring"


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="device-keyring")
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False),
    envvar="DEVICE_KEYRING_HOME",
    default=str(_DEFAULT_STORE_DIR),
    show_default=True,
    help="Directory holding the persisted key records.",
)
@click.option("--app-id", default=None, help="Tag namespace for stored records.")
@click.option(
    "--curve",
    type=click.Choice(["P-256", "P-384", "P-521"]),
    default=None,
    help="Curve for newly generated keys.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default=None,
    help="Logging level. Defaults to WARNING, or INFO for serve.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    store_dir: str,
    app_id: str | None,
    curve: str | None,
    log_level: str | None,
) -> None:
    """Device key management, ECDH sessions, AES-GCM sealing and ECDSA signing"""
    level = getattr(logging, log_level or "WARNING")
    logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["store_dir"] = store_dir
    ctx.obj["app_id"] = app_id
    ctx.obj["curve"] = curve


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from device_keyring import __version__

    console.print(f"[bold]device-keyring[/bold] v{__version__}")


# ------------------------------------------------------------------
# keys command group
# ------------------------------------------------------------------


@cli.group(name="keys")
def keys_group() -> None:
    """Manage the device key pairs."""


@keys_group.command(name="show")
@click.pass_context
def keys_show_command(ctx: click.Context) -> None:
    """Display both public keys, generating the pairs on first use."""
    manager = _load_manager(ctx)
    try:
        agreement = manager.get_agreement_public_key_b64()
        signing = manager.export_signing_public_key()
    except DeviceKeyringError as exc:
        _fail(exc)

    table = Table(title="Device keys")
    table.add_column("Role", style="bold", no_wrap=True)
    table.add_column("Tag", no_wrap=True)
    table.add_column("Public key (base64)", overflow="fold")
    table.add_row("agreement", manager.config.agreement_tag, agreement)
    table.add_row("signing", manager.config.signing_tag, signing)
    console.print(table)
    console.print(f"Curve: {manager.config.curve}")


@keys_group.command(name="init")
@click.pass_context
def keys_init_command(ctx: click.Context) -> None:
    """Load or generate both key pairs."""
    manager = _load_manager(ctx)
    try:
        manager.initialize()
    except DeviceKeyringError as exc:
        _fail(exc)
    console.print("[green]Key pairs ready[/green]")
    console.print(f"  Agreement: {manager.get_agreement_public_key_b64()}")


@keys_group.command(name="reset")
@click.confirmation_option(prompt="Delete the device identity and session key?")
@click.pass_context
def keys_reset_command(ctx: click.Context) -> None:
    """Delete both key pairs and the session secret."""
    manager = _load_manager(ctx)
    try:
        manager.reset_identity()
    except DeviceKeyringError as exc:
        _fail(exc)
    console.print("[yellow]Device identity deleted.[/yellow] A new one is generated on next use.")


# ------------------------------------------------------------------
# session command group
# ------------------------------------------------------------------


@cli.group(name="session")
def session_group() -> None:
    """Manage the shared session secret."""


@session_group.command(name="establish")
@click.argument("peer_public_key")
@click.pass_context
def session_establish_command(ctx: click.Context, peer_public_key: str) -> None:
    """Derive and store the session key shared with PEER_PUBLIC_KEY (base64)."""
    manager = _load_manager(ctx)
    try:
        manager.establish_session(peer_public_key)
    except DeviceKeyringError as exc:
        _fail(exc)
    console.print("[green]Session established[/green]")
    console.print(f"  Send this public key to the peer: {manager.get_agreement_public_key_b64()}")


@session_group.command(name="show")
@click.pass_context
def session_show_command(ctx: click.Context) -> None:
    """Report whether a session key is stored."""
    manager = _load_manager(ctx)
    try:
        established = manager.load_shared_secret() is not None
    except DeviceKeyringError as exc:
        _fail(exc)
    if established:
        console.print(f"[green]Session key stored[/green] under {manager.config.shared_secret_tag}")
    else:
        console.print("[yellow]No session key stored.[/yellow]")


@session_group.command(name="clear")
@click.pass_context
def session_clear_command(ctx: click.Context) -> None:
    """Delete the stored session key."""
    manager = _load_manager(ctx)
    try:
        manager.clear_session()
    except DeviceKeyringError as exc:
        _fail(exc)
    console.print("Session key cleared.")


# ------------------------------------------------------------------
# encrypt / decrypt
# ------------------------------------------------------------------


@cli.command(name="encrypt")
@click.argument("text")
@click.option("--aad", default=None, help="Associated data bound to the ciphertext.")
@click.pass_context
def encrypt_command(ctx: click.Context, text: str, aad: str | None) -> None:
    """Seal TEXT with the session key and print the JSON wire form."""
    manager = _load_manager(ctx)
    try:
        sealed = manager.encrypt(text, associated_data=_aad_bytes(aad))
    except DeviceKeyringError as exc:
        _fail(exc)
    click.echo(json.dumps(sealed.to_wire(), indent=2))


@cli.command(name="decrypt")
@click.option("--ciphertext", default=None, help="Base64 ciphertext.")
@click.option("--nonce", default=None, help="Base64 12-byte nonce.")
@click.option("--tag", default=None, help="Base64 16-byte authentication tag.")
@click.option(
    "--json-file",
    type=click.File("r"),
    default=None,
    help="JSON file (or '-' for stdin) holding ciphertext, nonce and tag.",
)
@click.option("--aad", default=None, help="Associated data bound at encryption time.")
@click.pass_context
def decrypt_command(
    ctx: click.Context,
    ciphertext: str | None,
    nonce: str | None,
    tag: str | None,
    json_file: IO[str] | None,
    aad: str | None,
) -> None:
    """Open a sealed message with the session key and print the plaintext."""
    if json_file is not None:
        try:
            payload: dict[str, object] = json.load(json_file)
        except json.JSONDecodeError as exc:
            console.print(f"[red]Error:[/red] --json-file is not valid JSON: {exc}")
            sys.exit(1)
    else:
        payload = {
            k: v
            for k, v in {"ciphertext": ciphertext, "nonce": nonce, "tag": tag}.items()
            if v is not None
        }

    manager = _load_manager(ctx)
    try:
        plaintext = manager.decrypt_wire(payload, associated_data=_aad_bytes(aad))
    except DeviceKeyringError as exc:
        _fail(exc)
    click.echo(plaintext.decode("utf-8", errors="replace"))


# ------------------------------------------------------------------
# sign / verify
# ------------------------------------------------------------------


@cli.command(name="sign")
@click.argument("text")
@click.pass_context
def sign_command(ctx: click.Context, text: str) -> None:
    """Sign TEXT with the signing key."""
    manager = _load_manager(ctx)
    try:
        signature = manager.sign_b64(text)
        public_key = manager.export_signing_public_key()
    except DeviceKeyringError as exc:
        _fail(exc)
    click.echo(json.dumps({"data": text, "signature": signature, "publicKey": public_key}, indent=2))


@cli.command(name="verify")
@click.argument("text")
@click.argument("signature")
@click.option(
    "--public-key",
    default=None,
    help="Base64 signer public key (DER or X9.62). Defaults to this device's key.",
)
@click.pass_context
def verify_command(
    ctx: click.Context,
    text: str,
    signature: str,
    public_key: str | None,
) -> None:
    """Verify a base64 DER SIGNATURE over TEXT."""
    manager = _load_manager(ctx)
    try:
        valid = manager.verify(text, signature, public_key)
    except DeviceKeyringError as exc:
        _fail(exc)
    if valid:
        console.print("  [green]PASS[/green]  Signature is valid.")
    else:
        console.print("  [red]FAIL[/red]  Signature is invalid.")
        sys.exit(1)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", type=int, default=5000, show_default=True, help="TCP port.")
@click.pass_context
def serve_command(ctx: click.Context, host: str, port: int) -> None:
    """Run the local peer HTTP service backed by this device's keys."""
    from device_keyring.server.app import run_server

    if ctx.find_root().obj.get("log_level") is None:
        logging.getLogger().setLevel(logging.INFO)
    run_server(_load_manager(ctx), host=host, port=port)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_manager(ctx: click.Context) -> KeySessionManager:
    """Build a KeySessionManager over the configured filesystem store."""
    from device_keyring.config import ManagerConfig
    from device_keyring.manager import KeySessionManager
    from device_keyring.store.base import BlobStoreError
    from device_keyring.store.filesystem import FilesystemBlobStore

    obj = ctx.find_root().obj or {}
    try:
        store = FilesystemBlobStore(Path(obj.get("store_dir") or _DEFAULT_STORE_DIR))
        config = ManagerConfig.from_env(app_identifier=obj.get("app_id"), curve=obj.get("curve"))
    except (BlobStoreError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    return KeySessionManager(store, config)


def _aad_bytes(aad: str | None) -> bytes | None:
    return aad.encode("utf-8") if aad is not None else None


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
