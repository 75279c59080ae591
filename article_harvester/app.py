"""Typer CLI entrypoint for article-harvester."""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .aggregator import Aggregator
from .config import ConfigRepository, HarvesterConfig
from .engine import Aborted, CancellationToken, Fetcher
from .engine.exporter import FileExporter, format_for_path
from .infra import UserAgentPool
from .logging_conf import configure_logging, log_directory, tail_log
from .models import EnrichedItem
from .providers import PROVIDER_TYPES, UnknownProviderError, build_registry, resolve_providers
from .query import EmptyQueryError, require_tokens
from .ui import ProgressActivity, join_urls, render_table, select_top, sort_items

EXIT_INTERRUPTED = 130

app = typer.Typer(
    help="Keyword article search across Qiita, Zenn and note.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Show or initialise the configuration file.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(config_app, name="config")

console = Console()
# Status lines go to stderr so `--urls-only` output can be piped
status_console = Console(stderr=True)


class SortKey(str, Enum):
    latest = "latest"
    likes = "likes"


class ExportFormat(str, Enum):
    jsonl = "jsonl"
    csv = "csv"
    txt = "txt"


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(repository=ConfigRepository(), verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _install_interrupt_handler(
    loop: asyncio.AbstractEventLoop, cancellation: CancellationToken
) -> bool:
    try:
        loop.add_signal_handler(signal.SIGINT, cancellation.cancel, "interrupted")
    except (NotImplementedError, RuntimeError, ValueError):
        # Not available on this platform/thread; KeyboardInterrupt is handled by the caller
        return False
    return True


async def execute_search(
    config: HarvesterConfig,
    tokens: Sequence[str],
    provider_ids: Sequence[str],
    max_total: int,
    cancellation: CancellationToken,
    timeout: float | None = None,
) -> list[EnrichedItem]:
    """Wire fetcher and providers for one run and aggregate under ``cancellation``."""

    loop = asyncio.get_running_loop()
    handler_installed = _install_interrupt_handler(loop, cancellation)
    timer = loop.call_later(timeout, cancellation.cancel, "timeout") if timeout is not None else None
    try:
        async with Fetcher(config.http, UserAgentPool.from_config(config.http)) as fetcher:
            registry = build_registry(fetcher, config)
            providers = resolve_providers(registry, provider_ids)
            return await Aggregator().run(tokens, providers, max_total, cancellation)
    finally:
        if timer is not None:
            timer.cancel()
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def _export(
    items: Sequence[EnrichedItem],
    target: Path,
    fmt: ExportFormat | None,
    tokens: Sequence[str],
) -> Path:
    if target.is_dir():
        exporter = FileExporter(target, "-".join(tokens), (fmt or ExportFormat.jsonl).value)
    else:
        chosen = fmt.value if fmt else format_for_path(target)
        exporter = FileExporter(target.parent, target.stem, chosen, path=target)
    with exporter:
        exporter.export_many(item.to_dict() for item in items)
    return exporter.path


def _mask_secrets(payload: dict) -> dict:
    for settings in (payload.get("providers") or {}).values():
        if isinstance(settings, dict) and settings.get("access_token"):
            settings["access_token"] = "***"
    return payload


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("search", help="Search every selected provider for articles matching QUERY.")
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Keywords separated by spaces or '&'."),
    provider: Annotated[
        Optional[list[str]],
        typer.Option("--provider", "-p", help="Provider id to query; repeatable. Defaults to enabled providers."),
    ] = None,
    max_total: Annotated[
        Optional[int],
        typer.Option("--max-total", min=1, help="Maximum number of items returned."),
    ] = None,
    sort: Annotated[SortKey, typer.Option("--sort", help="Sort key.")] = SortKey.latest,
    ascending: Annotated[bool, typer.Option("--asc", help="Sort ascending.", is_flag=True)] = False,
    top: Annotated[Optional[int], typer.Option("--top", min=0, help="Show only the first N items.")] = None,
    urls_only: Annotated[
        bool, typer.Option("--urls-only", help="Print only URLs, one per line.", is_flag=True)
    ] = False,
    export: Annotated[
        Optional[Path], typer.Option("--export", help="Write results to a file or directory.")
    ] = None,
    fmt: Annotated[
        Optional[ExportFormat], typer.Option("--format", help="Export format (defaults to the file suffix).")
    ] = None,
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", min=0.0, help="Cancel the run after N seconds.")
    ] = None,
    quiet: Annotated[bool, typer.Option("--quiet", help="Only print the summary line.", is_flag=True)] = False,
) -> None:
    state = _get_state(ctx)
    try:
        tokens = require_tokens(query)
    except EmptyQueryError as exc:
        raise BadParameter(str(exc), param_hint="QUERY") from exc

    config = state.repository.load()
    provider_ids = list(provider or config.enabled_provider_ids())
    if not provider_ids:
        raise BadParameter("No provider enabled; pass --provider or enable one in the config.")
    limit = max_total or config.default_max_total

    cancellation = CancellationToken()
    activity = ProgressActivity(enabled=not quiet, console=status_console)
    activity.start(f"Searching {', '.join(provider_ids)} for {' '.join(tokens)} ...")
    try:
        items = asyncio.run(
            execute_search(config, tokens, provider_ids, limit, cancellation, timeout=timeout)
        )
    except UnknownProviderError as exc:
        raise BadParameter(str(exc), param_hint="--provider") from exc
    except (Aborted, KeyboardInterrupt):
        message = "stopped by user"
        if cancellation.reason == "timeout":
            message += f" (timeout after {timeout:g}s)"
        status_console.print(message, style="yellow")
        raise typer.Exit(code=EXIT_INTERRUPTED)
    except Exception as exc:  # noqa: BLE001
        configure_logging().error("search_failed", error=str(exc))
        status_console.print(f"search failed: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        activity.close()

    ordered = select_top(sort_items(items, key=sort.value, descending=not ascending), top)
    if urls_only:
        if ordered:
            typer.echo(join_urls(ordered))
    elif not quiet and ordered:
        console.print(render_table(ordered, title=f"Results for {' '.join(tokens)}"))
    if export is not None:
        written = _export(ordered, export, fmt, tokens)
        status_console.print(f"exported to {written}", style="dim")
    status_console.print(f"completed: {len(ordered)} items", style="green")


@app.command("providers", help="List registered providers and whether they are enabled.")
def providers_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load()
    table = Table(title="Providers", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Enabled", justify="center")
    table.add_column("Site", style="dim")
    for provider_id, provider_cls in PROVIDER_TYPES.items():
        settings = config.settings_for(provider_id)
        site = settings.site or getattr(provider_cls, "default_site", "") or "api"
        table.add_row(
            provider_id,
            provider_cls.display_name,
            "yes" if settings.enabled else "no",
            site,
        )
    console.print(table)


@app.command("logs", help="Show the most recent lines of the harvester or a provider log.")
def logs_show(
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider id (default: main log)."),
    tail: int = typer.Option(50, "--tail", min=1, help="Number of lines to show."),
) -> None:
    if provider:
        path = log_directory() / "providers" / f"{provider}.log"
    else:
        path = log_directory() / "harvester.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print(f"No log entries in {path}", style="dim")
        return
    typer.echo("".join(lines).rstrip("\n"))


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load()
    payload = _mask_secrets(config.model_dump(mode="json", exclude_none=True))
    typer.echo(f"# {state.repository.locator.config_path()}")
    typer.echo(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False).rstrip())


@config_app.command("init", help="Write the default configuration file.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.config_path()
    if path.exists() and not force:
        console.print(f"Configuration already exists: {path} (use --force to overwrite)", style="yellow")
        raise typer.Exit(code=1)
    written = state.repository.save(HarvesterConfig())
    console.print(f"Configuration written to {written}", style="green")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
