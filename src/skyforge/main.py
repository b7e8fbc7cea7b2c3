import argparse
import asyncio
import copy
import json
import logging
import sys
from importlib.metadata import version
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .errors import ProvisioningError
from .events import MilestoneEvent
from .logger import logger
from .translate import get_cluster_config
from .workflow import Provisioner

MASK = "********"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Skyforge: GKE cluster provisioning",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Provision the cluster described in cluster.json
  skyforge --spec cluster.json

  # Reuse an existing project and override the zones
  skyforge --spec cluster.json --project-id my-project --zones us-west1-a us-west1-b

  # Validate and show the GKE request without calling Google Cloud
  skyforge --spec cluster.json --dry-run
""",
    )
    try:
        ver = version("skyforge")
    except Exception:
        ver = "unknown"
    parser.add_argument("--version", action="version", version=f"Skyforge v{ver}")

    parser.add_argument(
        "--spec", required=True, help="Path to a JSON cluster specification"
    )
    parser.add_argument("--project-id", help="Use (or create) this GCP project ID")
    parser.add_argument("--name", help="Override the cluster name")
    parser.add_argument("--zones", nargs="+", help="Override the cluster zones")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the spec and print the cluster request, then exit",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def read_options(args: argparse.Namespace) -> dict[str, Any]:
    with Path(args.spec).open("r") as f:
        options: dict[str, Any] = json.load(f)

    if args.project_id:
        options["project_id"] = args.project_id
    if args.name:
        options["name"] = args.name
    if args.zones:
        options["zones"] = args.zones
    return options


def masked(request: dict[str, Any]) -> dict[str, Any]:
    """Copy of a cluster request with the basic-auth password hidden."""
    request = copy.deepcopy(request)
    auth = request["cluster"].get("master_auth", {})
    if auth.get("password"):
        auth["password"] = MASK
    return request


def print_summary(spec: Any, console: Console) -> None:
    table = Table(title=f"Cluster {spec.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Project", spec.project_id)
    table.add_row("Zones", ", ".join(spec.zones))
    table.add_row("Service Account", spec.service_account)
    table.add_row("Readable Buckets", ", ".join(spec.readable_buckets) or "-")
    table.add_row("Writable Buckets", ", ".join(spec.writable_buckets) or "-")
    table.add_row("Operation", spec.operation.name if spec.operation else "-")
    console.print(table)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logger.setLevel(logging.DEBUG)

    # Use stderr for logs/progress if stdout is piped for JSON
    log_console = Console(stderr=True, quiet=args.json)
    out_console = Console()

    try:
        options = read_options(args)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read spec {args.spec}: {e}")
        sys.exit(1)

    def report(event: MilestoneEvent) -> None:
        log_console.print(f"[bold green]✓[/bold green] {event.name}")

    provisioner = Provisioner.from_gcp(on_milestone=report)

    try:
        spec = provisioner.prepare(options)
        if args.dry_run:
            out_console.print_json(json.dumps(masked(get_cluster_config(spec))))
            return

        log_console.print(
            f"[bold green]Skyforge[/bold green] provisioning cluster {spec.name} "
            f"in project {spec.project_id}."
        )
        spec = asyncio.run(provisioner.create(spec))
    except ProvisioningError as e:
        logger.error(f"Provisioning Failed: {e}")
        sys.exit(1)

    if args.json:
        out_console.print_json(spec.model_dump_json(exclude={"credentials", "password"}))
    else:
        print_summary(spec, out_console)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[bold red]Operation cancelled by user.[/bold red]")
        sys.exit(130)
