"""Ampere CLI entry point."""

import asyncio
import contextlib
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ampere.domain.enums import BuilderName, TaskKind
from ampere.domain.models import BuilderOutput, ServeOptions
from ampere.domain.options import normalize_serve_options
from ampere.events import Event, EventBus
from ampere.exceptions import AmpereError
from ampere.logs import PrefixLogger
from ampere.orchestrator import BuildOrchestrator, ScheduledTask, ServeOrchestrator, resolve_build_options
from ampere.orchestrator.build import first_result
from ampere.runtime import RuntimeSupervisor
from ampere.scheduler import CommandTaskScheduler
from ampere.workspace import WorkspaceConfig, load_workspace_config

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def load_config(path: str | None) -> WorkspaceConfig:
    """Load the workspace config or exit with a readable error."""
    try:
        return load_workspace_config(Path(path) if path else None)
    except AmpereError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from None


def log_event(event: Event) -> None:
    """Write broadcast events to the debug log."""
    logger.debug(f"Event {event.type.value}: {event.data}")


def create_event_bus() -> EventBus:
    """Event bus whose events show up with --verbose."""
    event_bus = EventBus()
    event_bus.add_callback(log_event)
    return event_bus


async def build_once(config: WorkspaceConfig, target: str) -> BuilderOutput:
    """Run a build target's tasks once."""
    scheduler = CommandTaskScheduler(config)
    options = await resolve_build_options(scheduler, target)
    return await BuildOrchestrator(scheduler, options, config.root, event_bus=create_event_bus()).run()


async def serve(config: WorkspaceConfig, target: str) -> BuilderOutput:
    """Watch a serve target until interrupted; return the latest output."""
    scheduler = CommandTaskScheduler(config)
    raw = normalize_serve_options(await scheduler.get_target_options(target))
    options = await scheduler.validate_as(raw, BuilderName.SERVE, ServeOptions)

    orchestrator = ServeOrchestrator(
        scheduler, options, config.root, runtime_config=config.runtime, event_bus=create_event_bus()
    )
    latest = BuilderOutput(success=False, error="No build cycle completed")
    async with contextlib.aclosing(orchestrator.run()) as outputs:
        async for output in outputs:
            latest = output
            if output.success:
                console.print("[green]Build succeeded, watching for changes...[/green]")
            else:
                console.print("[red]Build failed, watching for changes...[/red]")
    return latest


async def run_command(config: WorkspaceConfig, target: str) -> BuilderOutput:
    """Run a single command target to completion."""
    scheduler = CommandTaskScheduler(config)
    handle = await scheduler.schedule(target, None, TaskKind.MAIN, PrefixLogger(target))
    task = ScheduledTask(kind=TaskKind.MAIN, target=target, name=target, handle=handle)
    try:
        result = await first_result(task)
    finally:
        await handle.stop()
    return BuilderOutput(success=result.success, error=result.error)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Ampere - build orchestration with live reload for desktop apps."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument("target")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), help="Path to ampere.toml")
def run(target: str, config_path: str | None) -> None:
    """Run a target with the builder it is configured with."""
    config = load_config(config_path)
    try:
        builder = config.get_target(target).builder
    except AmpereError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from None

    runners = {
        BuilderName.BUILD: build_once,
        BuilderName.SERVE: serve,
        BuilderName.COMMAND: run_command,
    }

    try:
        output = asyncio.run(runners[builder](config, target))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        return
    except AmpereError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from None

    if output.success:
        console.print(f"[bold green]Target {target} succeeded[/bold green]")
    else:
        console.print(f"[bold red]Target {target} failed[/bold red]")
        raise SystemExit(1)


@cli.command()
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), help="Path to ampere.toml")
def targets(config_path: str | None) -> None:
    """List configured targets."""
    config = load_config(config_path)

    if not config.targets:
        console.print("[dim]No targets configured[/dim]")
        return

    table = Table(title="Targets")
    table.add_column("Name", style="cyan")
    table.add_column("Builder", style="green")
    table.add_column("Details")

    for name, target in sorted(config.targets.items()):
        options = target.options
        if target.builder == BuilderName.COMMAND:
            details = options.get("command", "")
        elif target.builder == BuilderName.BUILD:
            renderers = options.get("renderer_targets") or []
            details = f"main: {options.get('main_target', '?')}, renderers: {len(renderers)}"
        else:
            details = f"build: {options.get('build_target', '?')}"
        table.add_row(name, target.builder.value, str(details))

    console.print(table)


@cli.command()
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), help="Path to ampere.toml")
def doctor(config_path: str | None) -> None:
    """Check that the runtime executable can be found."""
    config = load_config(config_path)
    supervisor = RuntimeSupervisor(config.root, command=config.runtime.command, workspace_root=config.root)

    try:
        executable = supervisor.locate_runtime()
    except AmpereError as e:
        console.print(f"[red]✗[/red] {e}")
        raise SystemExit(1) from None

    console.print(f"[green]✓[/green] Runtime: {executable}")
    console.print(f"[green]✓[/green] Targets: {len(config.targets)}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
