"""CLI entry point and argument parsing"""

import argparse
import asyncio
import json
import sys

from rich.console import Console

import settings
from cli import auth_handlers
from cli.debug_setup import setup_logging
from cli.status_display import show_account
from social_oauth import SOCIAL_PROVIDERS

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kiro account login, refresh and verification")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Add an account by logging in")
    login.add_argument("method", choices=["builder-id", "social", "web"], help="Login method")
    login.add_argument("--provider", "-p", choices=list(SOCIAL_PROVIDERS), default="Google",
                       help="Provider for social / web login (default: Google)")
    login.add_argument("--region", "-r", default=None, help=f"OIDC region (default: {settings.DEFAULT_REGION})")
    login.add_argument("--no-browser", action="store_true", help="Print the login URL instead of opening it")
    login.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the web login window")
    login.add_argument("--output", "-o", default=None, help="Save the new credentials to this JSON file")

    sso = subparsers.add_parser("import-sso", help="Add a Builder ID account from an SSO bearer token")
    sso.add_argument("token", help="x-amz-sso_authn bearer token")
    sso.add_argument("--region", "-r", default=None, help=f"OIDC region (default: {settings.DEFAULT_REGION})")
    sso.add_argument("--output", "-o", default=None, help="Save the new credentials to this JSON file")

    status = subparsers.add_parser("status", help="Verify an account, refreshing its token if expired")
    status.add_argument("file", help="Credential JSON file (updated in place after a refresh)")

    refresh = subparsers.add_parser("refresh", help="Refresh an account's access token")
    refresh.add_argument("file", help="Credential JSON file (updated in place)")

    batch = subparsers.add_parser("import", help="Verify a list of credentials")
    batch.add_argument("file", help="JSON file holding a list of credential objects")
    batch.add_argument("--output", "-o", default=None, help="Save verified credentials to this JSON file")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--bind", "-b", default=None, help=f"Bind address (default: {settings.BIND_ADDRESS})")
    serve.add_argument("--port", type=int, default=None, help=f"Port (default: {settings.PORT})")

    return parser


def finish_login(result, output=None) -> bool:
    """Display a login / import result and optionally save its credentials"""
    if not result["success"]:
        auth_handlers.print_error(result, console)
        return False

    data = result["data"]
    console.print("[green]Authentication successful![/green]")
    show_account(data["account"], console)
    if output:
        auth_handlers.save_credentials(output, data["credentials"])
        console.print(f"[green]Credentials saved to {output}[/green]")
    else:
        console.print_json(json.dumps(data["credentials"]))
    return True


def run_command(args) -> bool:
    """Dispatch one subcommand; returns True on success"""
    if args.command == "serve":
        from proxy import AuthServer
        AuthServer(bind_address=args.bind, port=args.port).run()
        return True

    from accounts import AccountAuthService
    service = AccountAuthService()

    if args.command == "login":
        if args.method == "builder-id":
            result = asyncio.run(auth_handlers.login_builder_id(service, console, args.region))
        elif args.method == "social":
            result = asyncio.run(auth_handlers.login_social(service, console, args.provider, not args.no_browser))
        else:
            result = asyncio.run(auth_handlers.login_web(service, console, args.provider, args.timeout))
        return finish_login(result, args.output)

    if args.command == "import-sso":
        result = asyncio.run(auth_handlers.import_sso(service, console, args.token, args.region))
        return finish_login(result, args.output)

    if args.command == "status":
        result = asyncio.run(auth_handlers.check_status(service, console, args.file))
    elif args.command == "refresh":
        result = asyncio.run(auth_handlers.refresh(service, console, args.file))
    else:
        result = asyncio.run(auth_handlers.import_accounts(service, console, args.file, args.output))

    if not result["success"]:
        auth_handlers.print_error(result, console)
        return False
    return True


def main(argv=None):
    """Entry point for the CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.debug)

    try:
        ok = run_command(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]ERROR:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
