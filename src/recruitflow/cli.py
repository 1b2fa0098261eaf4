"""Typer CLI entrypoint for the recruitment workflow."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .adapters import MemoryStorage
from .config import ConfigManager
from .container import create_container
from .errors import RecruitmentError
from .fixtures import build_sample_recruitment
from .logging import configure_logging
from .repositories import STORE_INDEXES

app = typer.Typer(help="Recruitment workflow CLI.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if config is None:
        return {}
    try:
        return ConfigManager.load_file(config).to_settings()
    except PydanticValidationError as exc:
        raise typer.BadParameter(f"Invalid config: {exc}", param_name="config") from exc


def _load_snapshot(path: Path) -> MemoryStorage:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid snapshot JSON: {exc}", param_name="snapshot") from exc
    if not isinstance(data, dict) or not isinstance(data.get("stores"), dict):
        raise typer.BadParameter("Snapshot must be an object with a 'stores' mapping", param_name="snapshot")
    return MemoryStorage.from_snapshot(data["stores"], indexes=STORE_INDEXES)


@app.command()
def seed(
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Snapshot JSON path."),
    candidates: int = typer.Option(5, min=1, help="Number of sample candidates."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Seed a fully completed sample recruitment and write a storage snapshot."""
    settings = _load_settings(config)
    configure_logging(log_level)

    container = create_container(settings=settings)
    workflow = container.workflow()
    sample = asyncio.run(build_sample_recruitment(workflow, candidates=candidates))

    payload = {"app_version": __version__, "stores": workflow.snapshot()}
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    typer.echo(
        f"Seeded recruitment {sample.process.recruitment_code} "
        f"with {len(sample.application_ids)} applications. Snapshot saved to {output}."
    )


@app.command()
def status(
    snapshot: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Snapshot JSON path."),
    state: Optional[str] = typer.Option(None, "--status", help="Only show recruitments with this status."),
    query: Optional[str] = typer.Option(None, help="Only show recruitments whose code or title contains this."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Print every recruitment in a snapshot with its step and application counts."""
    configure_logging(log_level)
    workflow = create_container(storage=_load_snapshot(snapshot)).workflow()

    async def collect():
        if state is not None:
            processes = await workflow.processes.by_status(state)
        else:
            processes = await workflow.repositories.processes.all()
        if query:
            matching = {process.id for process in await workflow.processes.search(query)}
            processes = [process for process in processes if process.id in matching]
        reports = [await workflow.processes.status_report(process.id) for process in processes]
        return reports, await workflow.processes.stats()

    try:
        reports, stats = asyncio.run(collect())
    except RecruitmentError as exc:
        raise typer.BadParameter(str(exc), param_name="status") from exc
    if not reports:
        typer.echo("No recruitments found.")
    for report in reports:
        counts = ", ".join(f"{name}={count}" for name, count in sorted(report.application_counts.items()))
        typer.echo(
            f"{report.recruitment_code}  {report.position_title}  status={report.status}  "
            f"step={report.current_step} ({report.step_title})  applications: {counts or 'none'}"
        )
    typer.echo(
        f"Total {stats.total}: draft={stats.draft} in_progress={stats.in_progress} "
        f"completed={stats.completed} cancelled={stats.cancelled}"
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Name, code, e-mail or job title to look for."),
    snapshot: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Snapshot JSON path."),
    limit: int = typer.Option(10, min=1, help="Maximum number of matches."),
) -> None:
    """Fuzzy-search candidates stored in a snapshot."""
    configure_logging("WARNING")
    workflow = create_container(storage=_load_snapshot(snapshot)).workflow()
    matches = asyncio.run(workflow.candidates.search(query, limit=limit))
    if not matches:
        typer.echo("No matching candidates.")
        return
    for match in matches:
        candidate = match.candidate
        typer.echo(f"{match.score:5.1f}  {candidate.candidate_code}  {candidate.full_name}  {candidate.email or ''}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
