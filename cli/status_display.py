"""Status display functionality for CLI"""

from datetime import datetime
from typing import Any, Dict, Optional

from rich.table import Table


def format_timestamp(value: Optional[int]) -> str:
    """Format an epoch-millis timestamp for display"""
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


def format_credits(current: Any, limit: Any) -> str:
    if not limit:
        return f"{current or 0}"
    return f"{current or 0} / {limit}"


def show_account(account: Dict[str, Any], console, title: str = "Account Status"):
    """
    Display a verified account snapshot

    Args:
        account: Snapshot dict as produced by AccountSnapshot.to_dict()
        console: Rich console for output
        title: Table title
    """
    usage = account.get("usage") or {}
    subscription = account.get("subscription") or {}

    table = Table(title=title)
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    status = account.get("status", "unknown")
    table.add_row("Status", f"[{'green' if status == 'active' else 'red'}]{status}[/]")
    table.add_row("Email", account.get("email") or "-")
    table.add_row("User ID", account.get("userId") or "-")
    table.add_row("Identity Provider", f"{account.get('idp')} (header v{account.get('headerVersion')})")
    table.add_row("Subscription", f"{account.get('subscriptionType')} ({account.get('subscriptionTitle')})")

    if subscription.get("daysRemaining") is not None:
        table.add_row("Days Remaining", str(subscription["daysRemaining"]))

    table.add_row("Credits", format_credits(usage.get("current"), usage.get("limit")))
    table.add_row("Base", format_credits(usage.get("baseCurrent"), usage.get("baseLimit")))
    if usage.get("freeTrialLimit"):
        table.add_row(
            "Free Trial",
            f"{format_credits(usage.get('freeTrialCurrent'), usage.get('freeTrialLimit'))}"
            f" (expires {format_timestamp(usage.get('freeTrialExpiry'))})",
        )
    for bonus in usage.get("bonuses") or []:
        table.add_row(f"Bonus: {bonus.get('name')}", format_credits(bonus.get("current"), bonus.get("limit")))

    table.add_row("Next Reset", format_timestamp(account.get("nextResetDate")))

    console.print(table)


def show_tokens(tokens: Dict[str, Any], console, title: str = "Refreshed Tokens"):
    """Display refreshed tokens with secrets shortened"""
    table = Table(title=title)
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    for key in ("accessToken", "refreshToken", "csrfToken"):
        value = tokens.get(key)
        table.add_row(key, f"{value[:20]}..." if value else "-")
    table.add_row("expiresIn", f"{tokens.get('expiresIn')}s")
    if tokens.get("profileArn"):
        table.add_row("profileArn", tokens["profileArn"])

    console.print(table)


def show_batch_report(report: Dict[str, Any], console):
    """
    Display the outcome of a batch import

    Args:
        report: Report dict as produced by BatchReport.to_dict()
        console: Rich console for output
    """
    table = Table(title=f"Import Results ({report['succeeded']}/{report['total']} succeeded)")
    table.add_column("#", justify="right")
    table.add_column("Result")
    table.add_column("Email / Error")
    table.add_column("Subscription")

    for item in report.get("results", []):
        if item.get("success"):
            account = item["data"]["account"]
            table.add_row(
                str(item["index"] + 1),
                "[green]OK[/green]",
                account.get("email") or "-",
                account.get("subscriptionType") or "-",
            )
        else:
            error = item.get("error") or {}
            table.add_row(str(item["index"] + 1), "[red]FAILED[/red]", error.get("message", ""), "-")

    console.print(table)
