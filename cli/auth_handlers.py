"""Login and account handlers for CLI

Each handler drives one AccountAuthService operation and returns the
service's result dict, so the caller decides how to save or display it.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.prompt import Prompt

from accounts import AccountAuthService
from accounts.models import now_ms
from cli.status_display import show_account, show_batch_report, show_tokens

Result = Dict[str, Any]


def load_credentials(path: str) -> Any:
    """Read a camelCase credential JSON file (object or list of objects)"""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_credentials(path: str, credentials: Any):
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(credentials, indent=2, ensure_ascii=False), encoding="utf-8")


def print_error(result: Result, console):
    error = result.get("error") or {}
    console.print(f"[red]ERROR ({error.get('kind', 'error')}):[/red] {error.get('message', 'unknown error')}")


async def login_builder_id(service: AccountAuthService, console, region: Optional[str] = None) -> Result:
    """
    Run the Builder ID device-code login

    Args:
        service: AccountAuthService instance
        console: Rich console for output
        region: OIDC region (defaults to DEFAULT_REGION)
    """
    started = await service.start_builder_id_login(region)
    if not started["success"]:
        return started

    info = started["data"]
    console.print("\n[bold]Step 1:[/bold] Open this URL in your browser:")
    console.print(f"  [cyan]{info['verificationUri']}[/cyan]")
    console.print(f"\n[bold]Step 2:[/bold] Confirm the code [bold yellow]{info['userCode']}[/bold yellow]")
    console.print(f"[dim]The code expires in {info['expiresIn']} seconds[/dim]\n")

    with console.status("Waiting for authorization..."):
        waited = await service.wait_builder_id_login()
    if not waited["success"]:
        return waited

    tokens = dict(waited["data"], authMethod="OIDC", provider="BuilderId")
    return await service.verify_login_tokens(tokens)


async def login_social(
    service: AccountAuthService,
    console,
    provider: str,
    open_browser: bool = True,
) -> Result:
    """
    Run the Google / GitHub deep-link login

    The browser ends on a ``kiro://`` URL the desktop app would normally
    receive; the user pastes it back here.
    """
    started = await service.start_social_login(provider, open_browser=open_browser)
    if not started["success"]:
        return started

    console.print(f"\n[bold]Step 1:[/bold] Sign in with {provider} in your browser")
    if not open_browser:
        console.print(f"  [cyan]{started['data']['loginUrl']}[/cyan]")
    console.print("\n[bold]Step 2:[/bold] Copy the kiro:// URL the browser is redirected to")
    console.print("[dim]It looks like: kiro://kiro.kiroAgent/authenticate-success?code=...&state=...[/dim]\n")

    try:
        callback_url = await asyncio.to_thread(Prompt.ask, "Callback URL")
    except (KeyboardInterrupt, EOFError):
        await service.cancel_social_login()
        console.print("\n[yellow]Authentication cancelled by user[/yellow]")
        raise

    completed = await service.handle_social_callback_url(callback_url.strip())
    if not completed["success"]:
        return completed
    return await service.verify_login_tokens(completed["data"])


async def login_web(service: AccountAuthService, console, provider: str, timeout: Optional[float] = None) -> Result:
    """Run the embedded-window login and verify the new account"""
    started = await service.start_web_oauth_login(provider)
    if not started["success"]:
        return started

    console.print(f"[green][OK][/green] Login window opened, sign in with {provider} there")
    with console.status("Waiting for the login window..."):
        return await service.wait_web_oauth_login(timeout)


async def import_sso(service: AccountAuthService, console, bearer_token: str, region: Optional[str] = None) -> Result:
    with console.status("Importing account from SSO session..."):
        return await service.import_from_sso_token(bearer_token, region)


async def check_status(service: AccountAuthService, console, path: str) -> Result:
    """
    Check one account and write rotated tokens back to its file

    Args:
        service: AccountAuthService instance
        console: Rich console for output
        path: Credential JSON file
    """
    credentials = load_credentials(path)
    result = await service.check_account_status(credentials)
    if not result["success"]:
        return result

    account = result["data"]
    show_account(account, console)

    new_credentials = account.get("newCredentials")
    if new_credentials:
        credentials.update({key: value for key, value in new_credentials.items() if value is not None})
        save_credentials(path, credentials)
        console.print(f"[green]Token was refreshed and saved to {path}[/green]")
    return result


async def refresh(service: AccountAuthService, console, path: str) -> Result:
    credentials = load_credentials(path)
    result = await service.refresh_account_token(credentials)
    if not result["success"]:
        return result

    tokens = result["data"]
    show_tokens(tokens, console)
    credentials.update({key: value for key, value in tokens.items() if value is not None and key != "expiresIn"})
    credentials["expiresAt"] = now_ms() + int(tokens["expiresIn"]) * 1000
    save_credentials(path, credentials)
    console.print(f"[green]Saved refreshed tokens to {path}[/green]")
    return result


async def import_accounts(service: AccountAuthService, console, path: str, output: Optional[str] = None) -> Result:
    """
    Verify every credential in a JSON list file

    Args:
        service: AccountAuthService instance
        console: Rich console for output
        path: JSON file holding a list of credential objects
        output: Optional file to write the verified credentials to
    """
    items = load_credentials(path)
    if isinstance(items, dict):
        items = [items]

    with console.status(f"Verifying {len(items)} accounts..."):
        result = await service.import_accounts(items)
    if not result["success"]:
        return result

    report = result["data"]
    show_batch_report(report, console)

    if output:
        verified: List[Dict[str, Any]] = [
            item["data"]["credentials"] for item in report["results"] if item["success"]
        ]
        save_credentials(output, verified)
        console.print(f"[green]Saved {len(verified)} verified accounts to {output}[/green]")
    return result
