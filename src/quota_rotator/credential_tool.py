# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

# src/quota_rotator/credential_tool.py

import argparse
import asyncio
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import get_key, set_key
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from .client.rotating_client import QuotaRotatorClient
from .core.config import ConfigLoader
from .core.constants import FALLBACK_SECRET_ENV_VARS
from .core.errors import QuotaRotatorError, mask_credential
from .core.types import CredentialSummary, ProviderType

console = Console()


def _get_env_file() -> Path:
    """Get the .env file path in the working directory."""
    return Path.cwd() / ".env"


def clear_screen(subtitle: str = "Credential Manager"):
    """
    Clear the terminal and display the application header.

    Args:
        subtitle: The subtitle text to display in the header panel.
    """
    os.system("cls" if os.name == "nt" else "clear")
    console.print(
        Panel(
            f"[bold cyan]{subtitle}[/bold cyan]",
            title="--- Quota Rotator ---",
            style="blue",
        )
    )


# =============================================================================
# HELPERS
# =============================================================================


def parse_quota_limit(raw: str) -> int:
    """
    Parse a quota limit typed by the user.

    Empty input and "unlimited" mean 0.

    Raises:
        ValueError: Not a non-negative integer
    """
    raw = (raw or "").strip().lower()
    if raw in ("", "0", "unlimited", "none"):
        return 0
    value = int(raw.replace(",", "").replace("_", ""))
    if value < 0:
        raise ValueError("Quota limit cannot be negative")
    return value


def format_quota(summary: CredentialSummary) -> str:
    if summary.quota_limit == 0:
        return f"{summary.quota_used:,} / unlimited"
    return f"{summary.quota_used:,} / {summary.quota_limit:,} ({summary.usage_percent:.0f}%)"


def build_credentials_table(summaries: Sequence[CredentialSummary]) -> Table:
    """Render an owner's credentials as a rich table (secrets masked)."""
    table = Table(title="Stored Credentials", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Provider", style="cyan")
    table.add_column("Name")
    table.add_column("Key", style="dim")
    table.add_column("Quota", justify="right")
    table.add_column("Status")

    for summary in summaries:
        if not summary.is_active:
            status = "[dim]inactive[/dim]"
        elif summary.is_exhausted:
            status = "[red]exhausted[/red]"
        else:
            status = "[green]active[/green]"
        table.add_row(
            str(summary.id),
            summary.provider_type.value,
            summary.display_name,
            summary.secret_preview,
            format_quota(summary),
            status,
        )
    return table


def set_fallback_secret(
    provider_type: ProviderType, secret: str, env_file: Optional[Path] = None
) -> str:
    """
    Write an environment fallback secret to the .env file.

    Returns:
        The variable name that was written
    """
    provider_type = ProviderType(provider_type)
    if not secret:
        raise ValueError("Fallback secret must not be empty")
    env_file = env_file or _get_env_file()
    env_file.touch(exist_ok=True)
    var_name = FALLBACK_SECRET_ENV_VARS[provider_type]
    set_key(str(env_file), var_name, secret)
    return var_name


def get_fallback_status(env_file: Optional[Path] = None) -> Dict[ProviderType, Optional[str]]:
    """Masked fallback secret per provider, or None where it is not set."""
    env_file = env_file or _get_env_file()
    status: Dict[ProviderType, Optional[str]] = {}
    for provider_type, var_name in FALLBACK_SECRET_ENV_VARS.items():
        value = get_key(str(env_file), var_name) if env_file.exists() else None
        value = value or os.environ.get(var_name)
        status[provider_type] = mask_credential(value) if value else None
    return status


def _ask_provider_type() -> ProviderType:
    choice = Prompt.ask(
        "Provider",
        choices=[p.value for p in ProviderType],
        default=ProviderType.YOUTUBE.value,
    )
    return ProviderType(choice)


def _ask_quota_limit(default: str = "0") -> int:
    while True:
        raw = Prompt.ask("Quota limit (0 = unlimited)", default=default)
        try:
            return parse_quota_limit(raw)
        except ValueError:
            console.print("[bold red]Please enter a non-negative whole number.[/bold red]")


def _ask_credential_id(summaries: List[CredentialSummary]) -> Optional[int]:
    if not summaries:
        console.print("[bold yellow]No credentials configured.[/bold yellow]")
        return None
    choice = Prompt.ask(
        "Credential ID (or 'b' to go back)",
        choices=[str(s.id) for s in summaries] + ["b"],
        show_choices=False,
    )
    if choice == "b":
        return None
    return int(choice)


# =============================================================================
# MENU ACTIONS
# =============================================================================


async def add_credential(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Add Credential")
    provider_type = _ask_provider_type()
    display_name = Prompt.ask("Display name", default=f"{provider_type.value} key")
    secret = Prompt.ask("API key", password=True)
    if not secret.strip():
        console.print("[bold yellow]No key entered. Nothing saved.[/bold yellow]")
        return
    quota_limit = _ask_quota_limit()

    summary = await client.credentials.create_credential(
        owner_id, provider_type, display_name, secret.strip(), quota_limit=quota_limit
    )
    console.print(
        Panel(
            Text.from_markup(
                f"Saved [bold]{summary.display_name}[/bold] "
                f"([cyan]{summary.provider_type.value}[/cyan], {summary.secret_preview})"
            ),
            style="bold green",
            title="Success",
            expand=False,
        )
    )


async def edit_credential(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Edit Credential")
    summaries = await client.credentials.list_credentials(owner_id)
    console.print(build_credentials_table(summaries))
    credential_id = _ask_credential_id(summaries)
    if credential_id is None:
        return

    current = next(s for s in summaries if s.id == credential_id)
    display_name = Prompt.ask("Display name", default=current.display_name)
    quota_limit = _ask_quota_limit(default=str(current.quota_limit))
    await client.credentials.update_credential(
        owner_id, credential_id, display_name=display_name, quota_limit=quota_limit
    )
    console.print("[bold green]Credential updated.[/bold green]")


async def rotate_credential(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Rotate Key")
    summaries = await client.credentials.list_credentials(owner_id)
    console.print(build_credentials_table(summaries))
    credential_id = _ask_credential_id(summaries)
    if credential_id is None:
        return

    new_secret = Prompt.ask("New API key", password=True).strip()
    if not new_secret:
        console.print("[bold yellow]No key entered. Nothing changed.[/bold yellow]")
        return
    summary = await client.credentials.rotate_credential(
        owner_id, credential_id, new_secret
    )
    console.print(f"[bold green]Key rotated ({summary.secret_preview}).[/bold green]")


async def toggle_credential(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Enable / Disable Credential")
    summaries = await client.credentials.list_credentials(owner_id)
    console.print(build_credentials_table(summaries))
    credential_id = _ask_credential_id(summaries)
    if credential_id is None:
        return

    current = next(s for s in summaries if s.id == credential_id)
    summary = await client.credentials.set_active(
        owner_id, credential_id, not current.is_active
    )
    state = "enabled" if summary.is_active else "disabled"
    console.print(f"[bold green]Credential {summary.id} {state}.[/bold green]")


async def delete_credential(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Delete Credential")
    summaries = await client.credentials.list_credentials(owner_id)
    console.print(build_credentials_table(summaries))
    credential_id = _ask_credential_id(summaries)
    if credential_id is None:
        return

    if Confirm.ask(
        f"[bold red]Delete credential {credential_id}? This cannot be undone.[/bold red]"
    ):
        await client.credentials.delete_credential(owner_id, credential_id)
        console.print("[bold green]Credential deleted.[/bold green]")


async def show_quota_overview(client: QuotaRotatorClient, owner_id: str):
    clear_screen("Quota Overview")
    overview = await client.credentials.get_quota_overview(owner_id)

    table = Table(title="Availability by Provider", header_style="bold")
    table.add_column("Provider", style="cyan")
    table.add_column("Active", justify="right")
    table.add_column("Usable", justify="right")
    table.add_column("Exhausted", justify="right")
    table.add_column("Env Fallback")
    for provider, stats in overview["providers"].items():
        table.add_row(
            provider,
            str(stats["active"]),
            str(stats["usable"]),
            f"[red]{stats['exhausted']}[/red]" if stats["exhausted"] else "0",
            "[green]yes[/green]" if stats["fallback_configured"] else "[dim]no[/dim]",
        )
    console.print(table)

    summaries = await client.credentials.list_credentials(owner_id)
    if summaries:
        console.print(build_credentials_table(summaries))


async def configure_fallback(env_file: Path):
    clear_screen("Environment Fallback Keys")
    table = Table(header_style="bold")
    table.add_column("Provider", style="cyan")
    table.add_column("Variable")
    table.add_column("Value")
    for provider_type, masked in get_fallback_status(env_file).items():
        table.add_row(
            provider_type.value,
            FALLBACK_SECRET_ENV_VARS[provider_type],
            masked or "[dim]not set[/dim]",
        )
    console.print(table)

    if not Confirm.ask("Set a fallback key?", default=False):
        return
    provider_type = _ask_provider_type()
    secret = Prompt.ask("API key", password=True).strip()
    if not secret:
        console.print("[bold yellow]No key entered. Nothing saved.[/bold yellow]")
        return
    var_name = set_fallback_secret(provider_type, secret, env_file)
    console.print(
        f"[bold green]Saved {var_name} to {env_file}.[/bold green] "
        "[dim]Restart the server for it to take effect.[/dim]"
    )


# =============================================================================
# MAIN LOOP
# =============================================================================


async def main(owner_id: str, env_file: Optional[Path] = None):
    """
    Interactive credential manager for one owner.

    Args:
        owner_id: Owner whose credentials are managed
        env_file: .env file for fallback keys (defaults to ./.env)
    """
    env_file = env_file or _get_env_file()
    config = ConfigLoader(env_file=env_file).load()

    actions = {
        "1": add_credential,
        "2": edit_credential,
        "3": rotate_credential,
        "4": toggle_credential,
        "5": delete_credential,
        "6": show_quota_overview,
    }

    async with QuotaRotatorClient(config) as client:
        while True:
            clear_screen()
            summaries = await client.credentials.list_credentials(owner_id)
            if summaries:
                console.print(build_credentials_table(summaries))
            else:
                console.print("[dim]No credentials configured yet.[/dim]\n")

            console.print(
                Panel(
                    Text.from_markup(
                        "1. Add Credential\n"
                        "2. Edit Credential\n"
                        "3. Rotate Key\n"
                        "4. Enable / Disable Credential\n"
                        "5. Delete Credential\n"
                        "6. Quota Overview\n"
                        "7. Environment Fallback Keys"
                    ),
                    title=f"Owner: {owner_id}",
                    style="bold blue",
                )
            )
            choice = Prompt.ask(
                Text.from_markup(
                    "[bold]Please select an option or type [red]'q'[/red] to quit[/bold]"
                ),
                choices=["1", "2", "3", "4", "5", "6", "7", "q"],
                show_choices=False,
            )
            if choice.lower() == "q":
                break

            try:
                if choice == "7":
                    await configure_fallback(env_file)
                else:
                    await actions[choice](client, owner_id)
            except (QuotaRotatorError, ValueError) as e:
                console.print(f"[bold red]Error: {e}[/bold red]")

            console.print("\n[dim]Press Enter to return to main menu...[/dim]")
            input()


def run_credential_tool(argv: Optional[Sequence[str]] = None):
    """Entry point for the quota-rotator-credentials command."""
    parser = argparse.ArgumentParser(
        description="Manage quota-tracked API credentials."
    )
    parser.add_argument("--owner", required=True, help="Owner (user) id")
    parser.add_argument(
        "--env-file", type=Path, default=None, help="Path to the .env file"
    )
    args = parser.parse_args(argv)

    try:
        asyncio.run(main(args.owner, args.env_file))
        clear_screen("Goodbye")
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Exiting credential manager.[/bold yellow]")


if __name__ == "__main__":
    run_credential_tool()
