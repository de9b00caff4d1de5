import argparse
import sys
from importlib.metadata import version
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .clients import connect
from .config import load_settings
from .errors import SkyformError
from .logger import logger, set_level
from .provider import RESOURCES, reconciler_for
from .schemas.service_account import ServiceAccountKey

# Attributes masked in terminal output unless --show-secrets is given
SENSITIVE_FIELDS = {"certificate", "ca_certificate", "private_key", "kubeconfig", "token"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="skyform: reconcile Symbiosis infrastructure",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check that the API key is valid
  SYMBIOSIS_API_KEY=... skyform verify

  # Show a cluster, including its state and endpoint
  skyform describe cluster my-cluster

  # Remove a node pool and wait until the API no longer reports it
  skyform delete node-pool 2b1f... --wait --timeout 600

  # Service accounts are scoped to a cluster
  skyform describe service-account 7c3e... --cluster my-cluster --json
""",
    )
    try:
        ver = version("skyform")
    except Exception:
        ver = "unknown"
    parser.add_argument("--version", action="version", version=f"skyform v{ver}")
    parser.add_argument("--endpoint", help="Override SYMBIOSIS_ENDPOINT")
    parser.add_argument("--api-key", help="Override SYMBIOSIS_API_KEY")
    parser.add_argument(
        "--log-level", help="Logging level (default: SYMBIOSIS_LOG_LEVEL or ERROR)"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("verify", help="Check connectivity and credentials")

    for name, help_text in (
        ("describe", "Show the observed state of a resource"),
        ("delete", "Delete a resource (succeeds if already gone)"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("kind", choices=sorted(RESOURCES))
        sub.add_argument("key", help="Name, id or email identifying the resource")
        sub.add_argument("--cluster", help="Owning cluster (service accounts only)")
        if name == "describe":
            sub.add_argument("--json", action="store_true", help="Output as JSON")
            sub.add_argument(
                "--show-secrets",
                action="store_true",
                help="Print certificates, keys and tokens",
            )
        else:
            sub.add_argument(
                "--wait",
                action="store_true",
                help="Poll until the API no longer returns the resource",
            )
            sub.add_argument(
                "--timeout", type=float, help="Seconds to wait (default: 1200)"
            )

    return parser


def _resource_key(args: argparse.Namespace) -> Any:
    if args.kind == "service-account":
        if not args.cluster:
            raise SkyformError("--cluster is required for service accounts")
        return ServiceAccountKey(args.cluster, args.key)
    return args.key


def _render(observed: BaseModel, title: str, show_secrets: bool) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Attribute", style="cyan")
    table.add_column("Value")

    for field, value in observed.model_dump().items():
        if value is None:
            shown = "[dim]-[/dim]"
        elif field in SENSITIVE_FIELDS and not show_secrets:
            shown = "[dim]<sensitive>[/dim]"
        else:
            shown = escape(str(value))
        table.add_row(field, shown)
    return table


def run(args: argparse.Namespace, log_console: Console, out_console: Console) -> int:
    settings = load_settings(
        api_key=args.api_key, endpoint=args.endpoint, log_level=args.log_level
    )
    set_level(settings.log_level)

    with connect(settings) as client:
        if args.command == "verify":
            log_console.print(
                f"[green]API key accepted by[/green] [bold]{settings.endpoint}[/bold]"
            )
            return 0

        reconciler = reconciler_for(args.kind, client)
        key = _resource_key(args)

        if args.command == "describe":
            observed = reconciler.read(key)
            if observed is None:
                log_console.print(f"[yellow]{args.kind} {args.key} not found[/yellow]")
                return 1
            if args.json:
                print(observed.model_dump_json(indent=2))
            else:
                out_console.print(
                    _render(observed, f"{args.kind} {args.key}", args.show_secrets)
                )
            return 0

        reconciler.delete(key, wait=args.wait, timeout=args.timeout)
        log_console.print(f"[green]Deleted {args.kind} {args.key}[/green]")
        return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Use stderr for logs/progress if stdout is piped for JSON
    as_json = getattr(args, "json", False)
    log_console = Console(stderr=True, quiet=as_json)
    out_console = Console(quiet=as_json)

    try:
        code = run(args, log_console, out_console)
    except KeyboardInterrupt:
        Console(stderr=True).print("\n[bold red]Operation cancelled by user.[/bold red]")
        sys.exit(130)
    except SkyformError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        Console(stderr=True).print(
            f"[bold red]{args.command} failed:[/bold red] {escape(str(e))}"
        )
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
