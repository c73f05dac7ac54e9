"""Recipe engine CLI."""

from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta
from pathlib import Path

import typer
from filelock import Timeout
from rich.console import Console
from rich.table import Table

from recipe_engine.exceptions import ConfigurationError, RecipeEngineError
from recipe_engine.models.saga import SagaState
from recipe_engine.pipeline.orchestrator import ingest_all_providers, open_engine
from recipe_engine.providers.cache import ProviderConfigCache
from recipe_engine.services.fingerprint import generate_fingerprint
from recipe_engine.settings import Settings
from recipe_engine.storage.batches import JsonlBatchStore
from recipe_engine.storage.providers import JsonlProviderConfigStore
from recipe_engine.storage.saga_state import FileSagaStateStore
from recipe_engine.utils.log import configure_logging

app = typer.Typer(help="Resumable, rate-limited recipe acquisition")
console = Console()

DATA_DIR_OPTION = typer.Option(None, "--data-dir", help="Root of the file stores (default: settings)")


def _settings_from_args(data_dir: Path | None = None) -> Settings:
    settings = Settings()
    if data_dir is not None:
        settings.data_dir = data_dir
    configure_logging(settings.log_level)
    return settings


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _print_outcome(state: SagaState) -> None:
    console.print(
        f"saga {state.status}: correlation_id={state.correlation_id} "
        f"processed={state.metrics.get('processed', 0)} failed={state.metrics.get('failed', 0)} "
        f"duplicates={state.metrics.get('duplicates', 0)}"
    )


@app.command("run")
def run(
    provider_id: str = typer.Argument(..., help="Provider to ingest"),
    batch_size: int | None = typer.Option(None, "--batch-size", min=1),
    time_window_minutes: float | None = typer.Option(None, "--time-window-minutes", min=0.01),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Start a new saga for one provider."""

    settings = _settings_from_args(data_dir)
    correlation_id = uuid.uuid4().hex
    time_window = timedelta(minutes=time_window_minutes) if time_window_minutes is not None else None

    async def _run() -> SagaState:
        async with open_engine(settings) as engine:
            await engine.config_cache.load_configurations()
            return await engine.saga.start_processing(
                provider_id, batch_size, time_window, correlation_id=correlation_id
            )

    try:
        state = asyncio.run(_run())
    except ConfigurationError as exc:
        _fail(f"configuration error: {exc}")
    except Exception as exc:  # noqa: BLE001 - reported to the operator
        _fail(f"saga {correlation_id} failed: {exc}")
    else:
        _print_outcome(state)


@app.command("run-all")
def run_all(data_dir: Path | None = DATA_DIR_OPTION) -> None:
    """Run one saga per enabled provider."""

    settings = _settings_from_args(data_dir)
    try:
        results = asyncio.run(ingest_all_providers.fn(settings))
    except ConfigurationError as exc:
        _fail(f"configuration error: {exc}")
        return
    except Timeout:
        _fail(f"another ingest run holds the lock in {settings.data_dir}")
        return

    table = Table(title="Provider runs")
    for column in ("Provider", "Correlation id", "Status", "Processed", "Failed", "Duplicates", "Error"):
        table.add_column(column)
    for result in results:
        table.add_row(
            result.provider_id,
            result.correlation_id,
            result.status,
            str(result.processed),
            str(result.failed),
            str(result.duplicates),
            result.error or "",
        )
    console.print(table)
    if any(r.status == "failed" for r in results):
        raise typer.Exit(code=1)


@app.command("resume")
def resume(
    correlation_id: str = typer.Argument(...),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Resume a saga that stopped before reaching a terminal status."""

    settings = _settings_from_args(data_dir)

    async def _run() -> SagaState:
        async with open_engine(settings) as engine:
            return await engine.saga.resume_processing(correlation_id)

    try:
        state = asyncio.run(_run())
    except RecipeEngineError as exc:
        _fail(str(exc))
    except Exception as exc:  # noqa: BLE001 - reported to the operator
        _fail(f"saga {correlation_id} failed: {exc}")
    else:
        _print_outcome(state)


@app.command("status")
def status(
    correlation_id: str = typer.Argument(...),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Show the persisted state of a saga."""

    settings = _settings_from_args(data_dir)

    async def _load():  # noqa: ANN202
        state = await FileSagaStateStore(settings.sagas_dir).get(correlation_id)
        batch = await JsonlBatchStore(settings.batches_path).get_by_correlation_id(correlation_id)
        return state, batch

    try:
        state, batch = asyncio.run(_load())
    except RecipeEngineError as exc:
        _fail(str(exc))
        return
    if state is None:
        _fail(f"saga {correlation_id} not found")
        return

    table = Table(title=f"Saga {state.correlation_id}")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("provider", state.provider_id)
    table.add_row("phase", str(state.phase))
    table.add_row("status", str(state.status))
    for key, value in state.counters().items():
        table.add_row(key, str(value))
    if state.error_message:
        table.add_row("error", state.error_message)
    if batch is not None:
        table.add_row("batch", batch.id)
    console.print(table)

    if state.checkpoints:
        checkpoints = Table(title="Checkpoints")
        checkpoints.add_column("Name")
        checkpoints.add_column("Phase")
        checkpoints.add_column("At")
        for checkpoint in state.checkpoints:
            checkpoints.add_row(checkpoint.name, str(checkpoint.phase), checkpoint.created_at.isoformat())
        console.print(checkpoints)


@app.command("providers")
def providers(data_dir: Path | None = DATA_DIR_OPTION) -> None:
    """List enabled providers; fails when none are configured."""

    settings = _settings_from_args(data_dir)
    cache = ProviderConfigCache(
        JsonlProviderConfigStore(
            settings.providers_path,
            default_max_depth=settings.default_max_depth,
            default_max_urls=settings.default_max_urls,
        ),
        ttl_seconds=settings.config_cache_ttl_seconds,
    )
    try:
        configs = asyncio.run(cache.load_configurations())
    except ConfigurationError as exc:
        _fail(f"configuration error: {exc}")
        return

    table = Table(title="Enabled providers")
    for column in ("Provider", "Strategy", "Root URL", "Batch", "Window (min)", "RPM"):
        table.add_column(column)
    for config in configs:
        table.add_row(
            config.provider_id,
            str(config.discovery_strategy),
            config.recipe_root_url,
            str(config.batch_size),
            f"{config.time_window_minutes:g}",
            str(config.max_requests_per_minute),
        )
    console.print(table)


@app.command("fingerprint")
def fingerprint(url: str = typer.Argument(...)) -> None:
    """Print the duplicate-detection fingerprint of a URL."""

    console.print(generate_fingerprint(url))
