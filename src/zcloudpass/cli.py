"""zcloudpass — command-line front end for the zero-knowledge vault.

Commands
--------
  health           Check that the server is reachable
  register         Create an account with an empty encrypted vault
  login            Start a session
  logout           Forget the stored session token
  status           Show session and configuration details
  list             List vault entries in a rich table
  get              Show one entry (optionally revealing its password)
  add              Add an entry
  delete           Remove an entry
  generate         Generate strong random passwords
  change-password  Change the master password and re-encrypt the vault
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any, Coroutine, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from . import __version__
from .client import SessionClient
from .config import Settings
from .crypto import decrypt_vault, derive_password_proof, encrypt_vault
from .errors import SessionExpiredError, ZCloudPassError
from .generator import ALPHANUMERIC_CHARSET, DEFAULT_CHARSET, generate_password
from .models import Vault, VaultEntry

T = TypeVar("T")

# ---------------------------------------------------------------------------
# App & consoles
# ---------------------------------------------------------------------------

_THEME = Theme(
    {
        "success": "bold green",
        "warning": "bold yellow",
        "danger": "bold red",
        "muted": "dim",
        "label": "cyan",
        "highlight": "bold white",
    }
)

console = Console(theme=_THEME)
err = Console(stderr=True, theme=_THEME)

app = typer.Typer(
    name="zcloudpass",
    help="[bold cyan]zcloudpass[/bold cyan] — zero-knowledge cloud password vault.",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
)


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Log diagnostics to stderr.")] = False,
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err, show_path=False)],
        )


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _settings() -> Settings:
    try:
        return Settings.from_env()
    except ValidationError as exc:
        err.print(f"[danger]Invalid configuration:[/danger] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _client() -> SessionClient:
    return SessionClient.from_settings(_settings())


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* and turn library errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except SessionExpiredError as exc:
        err.print(f"[danger]{exc}.[/danger] Run [bold]zcloudpass login[/bold] again.")
        raise typer.Exit(1) from exc
    except ZCloudPassError as exc:
        err.print(f"[danger]{escape(str(exc))}[/danger]")
        raise typer.Exit(1) from exc


def _ask_email(email: Optional[str]) -> str:
    return email or Prompt.ask("Email", console=console)


def _ask_password(prompt: str = "Master password") -> str:
    pw = Prompt.ask(prompt, password=True, console=console)
    if not pw:
        err.print("[danger]Master password cannot be empty.[/danger]")
        raise typer.Exit(1)
    return pw


def _ask_new_password() -> str:
    pw = _ask_password("  New master password")
    confirm = _ask_password("  Confirm password")
    if pw != confirm:
        err.print("[danger]Passwords do not match.[/danger]")
        raise typer.Exit(1)
    return pw


async def _unlock(client: SessionClient, master: str) -> Vault:
    payload = await client.get_vault()
    if payload.encrypted_vault is None:
        return Vault()
    return await decrypt_vault(payload.encrypted_vault, master)


async def _save(client: SessionClient, vault: Vault, master: str) -> None:
    await client.update_vault(await encrypt_vault(vault, master))


def _find_one(vault: Vault, name: str) -> VaultEntry:
    """Return the unique entry matching *name* (exact then partial)."""
    name_l = name.lower()
    exact = [e for e in vault.entries if e.name.lower() == name_l]
    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        err.print(f"[warning]Multiple exact matches for '{escape(name)}' — please be more specific.[/warning]")
        for e in exact:
            err.print(f"  • {escape(e.name)} ({e.id[:8]})")
        raise typer.Exit(1)

    partial = [e for e in vault.entries if name_l in e.name.lower()]
    if len(partial) == 1:
        return partial[0]
    if len(partial) > 1:
        err.print(f"[warning]Multiple partial matches for '{escape(name)}':[/warning]")
        for e in partial:
            err.print(f"  • {escape(e.name)}")
        raise typer.Exit(1)

    err.print(f"[danger]No entry found matching '[bold]{escape(name)}[/bold]'.[/danger]")
    raise typer.Exit(1)


def _render_entry(entry: VaultEntry, *, show_password: bool = False) -> None:
    body = Text()

    def row(label: str, value: str, style: str = "highlight") -> None:
        body.append(f"  {label:<12}", style="label")
        body.append(value + "\n", style=style)

    if entry.username:
        row("Username", entry.username)
    if entry.password:
        row("Password", entry.password if show_password else "••••••••••••", style="bold green" if show_password else "muted")
    if entry.url:
        row("URL", entry.url, style="blue underline")
    if entry.notes:
        row("Notes", entry.notes, style="italic")
    row("ID", entry.id, style="muted")

    console.print(
        Panel(body, title=f"[bold cyan]{escape(entry.name)}[/bold cyan]", expand=False, border_style="cyan")
    )


def _render_table(entries: list[VaultEntry], title: str = "Entries") -> None:
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        highlight=True,
        title_style="bold",
    )
    table.add_column("#", style="muted", justify="right", no_wrap=True)
    table.add_column("Name", style="bold white", min_width=16)
    table.add_column("Username", style="dim", min_width=14)
    table.add_column("URL", style="blue", max_width=35)

    for i, e in enumerate(entries, 1):
        table.add_row(str(i), e.name, e.username or "", e.url or "")
    console.print(table)


# ---------------------------------------------------------------------------
# Account commands
# ---------------------------------------------------------------------------


@app.command()
def health() -> None:
    """Check that the server is reachable."""

    async def _go() -> str:
        async with _client() as client:
            return await client.check_health()

    reply = _run(_go())
    console.print(f"[success]Server OK:[/success] {escape(reply)}")


@app.command()
def register(
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Account email.")] = None,
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Display name.")] = None,
) -> None:
    """Create an account with an empty encrypted vault."""
    email = _ask_email(email)
    console.print(
        Panel(
            "[bold]Welcome to zcloudpass[/bold]\n"
            "[muted]Choose a strong master password — it cannot be recovered if lost.[/muted]",
            title="[bold cyan]Registration[/bold cyan]",
            border_style="cyan",
            expand=False,
        )
    )
    master = _ask_new_password()

    async def _go() -> None:
        blob = await encrypt_vault(Vault(), master)
        proof = await asyncio.to_thread(derive_password_proof, master, email)
        async with _client() as client:
            await client.register(email, proof, username=username, encrypted_vault=blob)

    _run(_go())
    console.print(f"\n[success]Account created for[/success] [bold]{escape(email)}[/bold]")
    console.print("[muted]Keep your master password safe — it cannot be recovered.[/muted]")


@app.command()
def login(
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Account email.")] = None,
) -> None:
    """Start a session; the token is stored for later commands."""
    email = _ask_email(email)
    master = _ask_password()

    async def _go():
        proof = await asyncio.to_thread(derive_password_proof, master, email)
        async with _client() as client:
            return await client.login(email, proof)

    session = _run(_go())
    expiry = session.expires_at.strftime("%Y-%m-%d %H:%M UTC") if session.expires_at else "unknown"
    console.print(f"[success]Logged in.[/success] [muted]Session expires {expiry}.[/muted]")


@app.command()
def logout() -> None:
    """Forget the stored session token."""
    client = _client()
    client.logout()
    asyncio.run(client.aclose())
    console.print("[muted]Logged out.[/muted]")


@app.command()
def status() -> None:
    """Show session and configuration details."""
    settings = _settings()
    client = SessionClient.from_settings(settings)
    authenticated = client.is_authenticated()
    asyncio.run(client.aclose())

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", __version__)
    table.add_row("Server", settings.api_url)
    table.add_row("Session file", str(settings.session_file))
    table.add_row("Logged in", "[green]yes[/green]" if authenticated else "[red]no[/red]")
    console.print(Panel(table, title="[bold cyan]zcloudpass status[/bold cyan]", border_style="cyan", expand=False))


@app.command("change-password")
def change_password(
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Account email.")] = None,
) -> None:
    """Change the master password and re-encrypt the vault under it."""
    email = _ask_email(email)
    current = _ask_password("  Current master password")
    new = _ask_new_password()

    async def _go() -> None:
        async with _client() as client:
            vault = await _unlock(client, current)
            current_proof = await asyncio.to_thread(derive_password_proof, current, email)
            new_proof = await asyncio.to_thread(derive_password_proof, new, email)
            await client.change_password(current_proof, new_proof)
            try:
                await _save(client, vault, new)
            except ZCloudPassError:
                err.print(
                    "[warning]Password changed, but the vault could not be re-encrypted.[/warning]\n"
                    "[muted]It is still readable with the OLD master password.[/muted]"
                )
                raise

    _run(_go())
    console.print("[success]Master password changed and vault re-encrypted.[/success]")


# ---------------------------------------------------------------------------
# Vault commands
# ---------------------------------------------------------------------------


@app.command("list")
def list_entries(
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Filter by name / username / URL / notes.")] = None,
) -> None:
    """List vault entries."""
    master = _ask_password()

    async def _go() -> Vault:
        async with _client() as client:
            return await _unlock(client, master)

    vault = _run(_go())
    entries = vault.find(search) if search else vault.entries

    if not entries:
        console.print("[muted]No entries match your query.[/muted]")
        return

    _render_table(entries, title=f"Entries ({len(entries)} total)")


@app.command()
def get(
    name: Annotated[str, typer.Argument(help="Entry name (exact or partial).")],
    show: Annotated[bool, typer.Option("--show", "-s", help="Display password in plain text.")] = False,
) -> None:
    """Show one vault entry."""
    master = _ask_password()

    async def _go() -> Vault:
        async with _client() as client:
            return await _unlock(client, master)

    _render_entry(_find_one(_run(_go()), name), show_password=show)


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Name / label for this entry.")],
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Username or email.")] = None,
    url: Annotated[Optional[str], typer.Option("--url", help="Associated URL.")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", "-n", help="Free-form notes.")] = None,
    generate: Annotated[bool, typer.Option("--generate", "-g", help="Auto-generate a password.")] = False,
    length: Annotated[int, typer.Option("--length", "-l", help="Generated password length.")] = 16,
    no_symbols: Annotated[bool, typer.Option("--no-symbols", help="Exclude symbols from generated password.")] = False,
) -> None:
    """Add an entry to the vault."""
    master = _ask_password()

    if generate:
        try:
            entry_pw: Optional[str] = generate_password(length, ALPHANUMERIC_CHARSET if no_symbols else DEFAULT_CHARSET)
        except ValueError as exc:
            err.print(f"[danger]{exc}[/danger]")
            raise typer.Exit(1) from exc
        console.print(f"  [muted]Generated:[/muted] [bold green]{escape(entry_pw)}[/bold green]")
    else:
        entry_pw = Prompt.ask("  Password [muted](blank to skip)[/muted]", password=True, default="", console=console) or None

    entry = VaultEntry(name=name, username=username, password=entry_pw, url=url, notes=notes)

    async def _go() -> None:
        async with _client() as client:
            vault = await _unlock(client, master)
            vault.add(entry)
            await _save(client, vault, master)

    _run(_go())
    console.print(f"\n[success]Entry '[bold]{escape(name)}[/bold]' saved.[/success]")


@app.command()
def delete(
    name: Annotated[str, typer.Argument(help="Entry name (exact or partial).")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Permanently delete a vault entry."""
    master = _ask_password()

    async def _go() -> None:
        async with _client() as client:
            vault = await _unlock(client, master)
            entry = _find_one(vault, name)
            if not yes and not Confirm.ask(
                f"  Delete '[bold]{escape(entry.name)}[/bold]'? [muted]This cannot be undone.[/muted]",
                default=False,
                console=console,
            ):
                raise typer.Exit(0)
            vault.remove(entry.id)
            await _save(client, vault, master)
            console.print(f"[danger]Entry '[bold]{escape(entry.name)}[/bold]' deleted.[/danger]")

    _run(_go())


@app.command("generate")
def generate_cmd(
    length: Annotated[int, typer.Option("--length", "-l", help="Password length.")] = 16,
    count: Annotated[int, typer.Option("--count", "-c", help="Number of passwords to generate.")] = 1,
    no_symbols: Annotated[bool, typer.Option("--no-symbols", help="Exclude symbols.")] = False,
) -> None:
    """Generate one or more strong random passwords."""
    charset = ALPHANUMERIC_CHARSET if no_symbols else DEFAULT_CHARSET
    try:
        passwords = [generate_password(length, charset) for _ in range(count)]
    except ValueError as exc:
        err.print(f"[danger]{exc}[/danger]")
        raise typer.Exit(1) from exc

    if count == 1:
        console.print(
            Panel(
                f"[bold green]{escape(passwords[0])}[/bold green]",
                title=f"[bold]Generated password ({length} chars)[/bold]",
                border_style="green",
                expand=False,
            )
        )
    else:
        console.print(f"\n[bold]Generated {count} passwords ({length} chars each)[/bold]\n")
        for i, pw in enumerate(passwords, 1):
            console.print(f"  [muted]{i:>3}.[/muted]  [bold green]{escape(pw)}[/bold green]")
        console.print()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    app()


if __name__ == "__main__":
    main()
