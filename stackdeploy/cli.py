"""Command-line interface: plan and deploy resource declarations."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from stackdeploy import config
from stackdeploy.backends import BackendAdapter, create_backend
from stackdeploy.engine import DeploymentEngine
from stackdeploy.errors import ConfigError, DeclarationError, StackDeployError
from stackdeploy.events import EventBus
from stackdeploy.loader import load_resources
from stackdeploy.logging_setup import setup_logging
from stackdeploy.models import DeploymentReport
from stackdeploy.scheduler import ExecutionPlan, plan_resources
from stackdeploy.stacks.apim import DEMO_CONFIG, build_apim_stack

logger = logging.getLogger(__name__)

console = Console()

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_INVALID = 2

STATUS_STYLES = {
    "pending": "dim",
    "in_progress": "blue",
    "succeeded": "green",
    "failed": "red",
    "skipped": "yellow",
}


def print_plan(plan: ExecutionPlan):
    """Print the execution order and the dependency waves."""
    console.print("\n[bold cyan]Execution Plan:[/bold cyan]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Resource", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Depends on", style="blue")

    for i, spec in enumerate(plan, 1):
        deps = ", ".join(spec.depends_on) if spec.depends_on else "none"
        table.add_row(str(i), spec.id, spec.type, deps)

    console.print(table)

    console.print("\n[bold cyan]Waves:[/bold cyan]")
    for i, wave in enumerate(plan.waves(), 1):
        console.print(f"  {i}. {', '.join(wave)}")


def print_report(report: DeploymentReport):
    console.print(f"\n[bold cyan]Deployment {report.deployment_id}:[/bold cyan]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Resource", style="cyan")
    table.add_column("Status")
    table.add_column("Action", style="green")
    table.add_column("Time", style="yellow")
    table.add_column("Error", style="red")

    for rid, outcome in report.resources.items():
        style = STATUS_STYLES.get(outcome.status.value, "white")
        action = outcome.handle.action if outcome.handle else "-"
        time_str = f"{outcome.duration:.2f}s" if outcome.duration is not None else "-"
        error = outcome.error or "-"
        if len(error) > 60:
            error = error[:60] + "..."
        table.add_row(rid, f"[{style}]{outcome.status.value}[/{style}]", action, time_str, escape(error))

    console.print(table)

    summary = (
        f"{len(report.succeeded)} succeeded, {len(report.failed)} failed, {len(report.skipped)} skipped"
    )
    if report.cancelled:
        summary += " (cancelled)"
    colour = "green" if report.ok else "red"
    console.print(f"[{colour}]{summary}[/{colour}]")


def build_backend(name: str) -> BackendAdapter:
    if name == "http":
        if not config.BACKEND_URL:
            raise ConfigError("The http backend needs STACKDEPLOY_BACKEND_URL or [backend].url")
        return create_backend(
            "http",
            base_url=config.BACKEND_URL,
            token=config.BACKEND_TOKEN or None,
            timeout=config.HTTP_TIMEOUT,
            retries=config.HTTP_RETRIES,
        )
    return create_backend(name)


async def run_deployment(
    plan: ExecutionPlan,
    backend: BackendAdapter,
    workers: int,
    event_bus: EventBus | None = None,
) -> DeploymentReport:
    """Deploy ``plan``; Ctrl-C stops new resources from starting but lets in-flight ones finish."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl-C will not cancel gracefully")

    event_bus = event_bus or EventBus()
    progress_queue = event_bus.subscribe("resource.")
    progress = asyncio.create_task(show_progress(progress_queue))
    try:
        engine = DeploymentEngine(max_workers=workers, event_bus=event_bus)
        return await engine.deploy(plan, backend, cancel=cancel)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        await backend.close()
        event_bus.unsubscribe(progress_queue)
        await progress_queue.put(None)
        await progress


async def show_progress(queue: asyncio.Queue):
    """Print one line per resource event until a ``None`` arrives."""
    while True:
        event = await queue.get()
        if event is None:
            return
        status = event.type.removeprefix("resource.")
        if status == "started":
            status = "in_progress"
        style = STATUS_STYLES.get(status, "white")
        line = f"  [{style}]{status:<11}[/{style}] {escape(event.data['resource_id'])}"
        if event.data.get("error"):
            line += f" [dim]({escape(event.data['error'])})[/dim]"
        console.print(line)


def cmd_plan(args: argparse.Namespace) -> int:
    plan = plan_resources(load_resources(args.file))
    print_plan(plan)
    return EXIT_OK


def cmd_example(args: argparse.Namespace) -> int:
    try:
        stack_config = config.load_stack_config()
    except ConfigError:
        console.print("[dim]No \\[stack] configuration found, using demo naming.[/dim]")
        stack_config = DEMO_CONFIG
    plan = plan_resources(build_apim_stack(stack_config).resources())
    print_plan(plan)
    return EXIT_OK


def cmd_deploy(args: argparse.Namespace) -> int:
    plan = plan_resources(load_resources(args.file))
    print_plan(plan)

    if not args.yes and not Confirm.ask("\n[bold]Deploy these resources?[/bold]"):
        console.print("[yellow]Deployment cancelled.[/yellow]")
        return EXIT_OK

    backend = build_backend(args.backend)
    event_log = args.event_log or config.EVENT_LOG
    event_bus = EventBus(log_file=Path(event_log)) if event_log else None

    console.print(f"\n[bold yellow]Deploying via {backend.name}...[/bold yellow]")
    report = asyncio.run(run_deployment(plan, backend, args.workers, event_bus))
    print_report(report)

    if args.json:
        Path(args.json).write_text(report.to_json(), encoding="utf-8")
        console.print(f"[dim]Report written to {args.json}[/dim]")

    return EXIT_OK if report.ok else EXIT_PARTIAL


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stackdeploy", description="Deploy resources in dependency order.")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_plan = sub.add_parser("plan", help="Show the execution plan for a declaration file")
    p_plan.add_argument("file", type=Path)
    p_plan.set_defaults(func=cmd_plan)

    p_deploy = sub.add_parser("deploy", help="Deploy a declaration file")
    p_deploy.add_argument("file", type=Path)
    p_deploy.add_argument("--backend", choices=["memory", "http"], default=config.BACKEND)
    p_deploy.add_argument("--workers", type=positive_int, default=config.MAX_WORKERS, help="Parallel branches (default: %(default)s)")
    p_deploy.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    p_deploy.add_argument("--json", help="Write the deployment report to this file")
    p_deploy.add_argument("--event-log", help="Append deployment events to this JSONL file")
    p_deploy.set_defaults(func=cmd_deploy)

    p_example = sub.add_parser("example", help="Show the plan of the built-in API gateway stack")
    p_example.set_defaults(func=cmd_example)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        return args.func(args)
    except (DeclarationError, ConfigError) as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        return EXIT_INVALID
    except StackDeployError as e:
        console.print(f"[red]Invalid resource graph: {escape(str(e))}[/red]")
        return EXIT_INVALID
    except ValueError as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        return EXIT_INVALID
