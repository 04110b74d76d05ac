"""CLI for sepolia-wallet - inspect configuration and manage the wallet from the terminal."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sepolia_wallet.balance import check_balance
from sepolia_wallet.chains import SEPOLIA
from sepolia_wallet.config import (
    REQUIRED_KEYS,
    SECRET_KEYS,
    Environment,
    resolve_environment,
    try_resolve_environment,
)
from sepolia_wallet.credentials import credentials_path, file_mode, is_private
from sepolia_wallet.errors import WalletError
from sepolia_wallet.keystore import (
    DEFAULT_KEYSTORE_FILENAME,
    load_demo_keystore,
    write_demo_keystore,
)
from sepolia_wallet.lifecycle import (
    WalletMaterial,
    ensure_wallet,
    require_secrets,
    rotate_wallet,
    verify_wallet,
)

app = typer.Typer(
    name="sepolia-wallet",
    help="Manage the Sepolia wallet credentials kept in .env.local.",
    no_args_is_help=True,
)
console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"sepolia-wallet {version('sepolia-wallet')}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Manage the Sepolia wallet credentials kept in .env.local."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _fail(error: WalletError) -> NoReturn:
    """Print every issue carried by *error* and exit with status 1."""
    console.print(f"[red]{error.summary}[/red]")
    for issue in error.issues:
        console.print(f"  [red]-[/red] [bold]{issue.field}[/bold]: {issue.message}")
    raise typer.Exit(1)


def _resolve_cwd(cwd: Optional[Path]) -> Path:
    return (cwd or Path.cwd()).resolve()


def _load(cwd: Path, strict: bool = False) -> Environment:
    try:
        return resolve_environment(cwd, strict=strict, environ=dict(os.environ))
    except WalletError as e:
        _fail(e)


def _mask(value: str) -> str:
    if len(value) <= 12:
        return "***"
    return f"{value[:6]}...{value[-4:]}"


def _report(action: str, cwd: Path, result: WalletMaterial, rpc_url: str | None) -> None:
    """Print the outcome of a wallet operation and, when possible, its balance."""
    env_path = credentials_path(cwd)
    console.print(Panel(
        f"Address: [cyan]{result.address}[/cyan]\n"
        f"Private key stored in: [cyan]{env_path}[/cyan]\n"
        f"Generated this run: {result.created}\n"
        f"Rotated: {result.rotated}\n"
        f"Updated {env_path.name}: {result.wrote_env}",
        title=f"{action} wallet at {cwd}",
    ))

    if rpc_url:
        balance = check_balance(rpc_url, result.address)
        if balance is not None:
            console.print(f"  Sepolia balance: [green]{balance.ether}[/green] {balance.symbol}")
        else:
            console.print("  Sepolia balance: [yellow]unavailable (RPC error)[/yellow]")
    console.print(f"  [dim]Explorer: {SEPOLIA.address_url(result.address)}[/dim]")


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Inspect and manage the Sepolia wallet credentials.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")

_CWD_HELP = "Directory containing .env.local"


@wallet_app.command("init")
def wallet_init(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help=_CWD_HELP),
):
    """Generate a wallet if missing, or repair metadata without overwriting existing keys."""
    cwd = _resolve_cwd(cwd)
    environment = _load(cwd)
    try:
        result = ensure_wallet(cwd, force=False, environment=environment)
    except WalletError as e:
        _fail(e)
    _report("Initialized", cwd, result, environment.rpc_url)


@wallet_app.command("status")
def wallet_status(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help=_CWD_HELP),
):
    """Print wallet details and the Sepolia balance when an RPC URL is configured."""
    cwd = _resolve_cwd(cwd)
    environment = _load(cwd)

    if not environment.private_key:
        console.print(
            "[yellow]No PRIVATE_KEY configured.[/yellow] "
            "Run 'sepolia-wallet wallet init' to generate a managed wallet."
        )
        return

    if environment.wallet_address:
        result = require_secrets(environment).unwrap()
    else:
        try:
            result = ensure_wallet(cwd, force=False, environment=environment)
        except WalletError as e:
            _fail(e)

    _report("Status", cwd, result, environment.rpc_url)

    if verify_wallet(environment) is False:
        console.print(
            "[yellow]WALLET_ADDRESS does not match the address derived from PRIVATE_KEY.[/yellow] "
            "Fix .env.local by hand; the wallet helper will not guess which one is right."
        )

    env_path = credentials_path(cwd)
    mode = file_mode(env_path)
    if mode is not None and not is_private(env_path):
        console.print(
            f"[yellow]{env_path} has mode {oct(mode)}; other users can read it.[/yellow] "
            f"Run 'chmod 600 {env_path}'."
        )


@wallet_app.command("rotate")
def wallet_rotate(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help=_CWD_HELP),
    force: bool = typer.Option(
        False, "--force", help="Acknowledge rotation and overwrite existing key material"
    ),
):
    """Rotate the wallet key pair. Requires explicit --force acknowledgement."""
    cwd = _resolve_cwd(cwd)
    try:
        environment = resolve_environment(cwd, environ=dict(os.environ)) if force else None
        result = rotate_wallet(cwd, acknowledged=force, environment=environment)
    except WalletError as e:
        _fail(e)

    _report("Rotated", cwd, result, environment.rpc_url)


@wallet_app.command("export")
def wallet_export(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help=_CWD_HELP),
    keystore: bool = typer.Option(
        False, "--keystore", help="Write a non-production keystore.json alongside .env.local"
    ),
    out: str = typer.Option(DEFAULT_KEYSTORE_FILENAME, "--out", help="Override export path"),
):
    """Export managed secrets to local artifacts (demo only)."""
    cwd = _resolve_cwd(cwd)
    environment = _load(cwd)
    outcome = require_secrets(environment)
    if not outcome.ok:
        _fail(outcome.error)

    if not keystore:
        console.print(
            "[yellow]No export format selected.[/yellow] "
            "Pass --keystore to generate a demo keystore.json."
        )
        return

    output_path = cwd / out
    if output_path.exists():
        try:
            load_demo_keystore(output_path)
        except ValueError:
            console.print(
                f"[red]{output_path} exists and is not a demo keystore; refusing to overwrite it.[/red]"
            )
            raise typer.Exit(1)

    write_demo_keystore(output_path, outcome.value)
    console.print(
        f"[green]Demo keystore (NOT FOR PRODUCTION) written to {output_path}.[/green] "
        "Protect and delete after use."
    )


# ------------------------------------------------------------------
# env sub-commands
# ------------------------------------------------------------------

env_app = typer.Typer(
    name="env",
    help="Inspect the resolved environment.",
    no_args_is_help=True,
)
app.add_typer(env_app, name="env")


@env_app.command("check")
def env_check(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help=_CWD_HELP),
    strict: bool = typer.Option(False, "--strict", help="Require every canonical field"),
):
    """Validate the environment and show the canonical fields (secrets masked)."""
    cwd = _resolve_cwd(cwd)
    outcome = try_resolve_environment(cwd, strict=strict, environ=dict(os.environ))
    if not outcome.ok:
        _fail(outcome.error)

    environment = outcome.value
    table = Table(title=f"Environment for {cwd}")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in REQUIRED_KEYS:
        value = environment.get(key)
        if value is None:
            shown = "[dim]not set[/dim]"
        elif key in SECRET_KEYS:
            shown = _mask(value)
        else:
            shown = value
        table.add_row(key, shown)
    console.print(table)
    console.print(f"[green]OK[/green] ({'strict' if strict else 'permissive'} validation)")


if __name__ == "__main__":
    app()
