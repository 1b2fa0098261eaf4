from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from recruitflow import __version__
from recruitflow.cli import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def snapshot_path(tmp_path: Path, runner: CliRunner) -> Path:
    output = tmp_path / "snapshot.json"
    result = runner.invoke(app, ["seed", "--output", str(output)])
    assert result.exit_code == 0, result.output
    return output


def test_seed_writes_snapshot(snapshot_path: Path) -> None:
    payload = json.loads(snapshot_path.read_text(encoding="utf-8"))

    assert payload["app_version"] == __version__
    stores = payload["stores"]
    assert len(stores["recruitments"]) == 1
    assert stores["recruitments"][0]["status"] == "completed"
    assert len(stores["candidates"]) == 5
    assert len(stores["employment_contracts"]) == 1


def test_seed_reports_code_and_honours_config(tmp_path: Path, runner: CliRunner) -> None:
    config = tmp_path / "recruitflow.yaml"
    config.write_text("scoring:\n  tie_break: written_test\n", encoding="utf-8")
    output = tmp_path / "nested" / "snapshot.json"

    result = runner.invoke(
        app, ["seed", "--output", str(output), "--candidates", "3", "--config", str(config)]
    )

    assert result.exit_code == 0, result.output
    assert "Seeded recruitment RC-" in result.output
    assert "with 3 applications" in result.output
    assert output.exists()


def test_seed_rejects_invalid_config(tmp_path: Path, runner: CliRunner) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("storage:\n  retries: 5\n", encoding="utf-8")

    result = runner.invoke(app, ["seed", "--output", str(tmp_path / "out.json"), "--config", str(config)])

    assert result.exit_code != 0
    assert not (tmp_path / "out.json").exists()


def test_status_lists_recruitments(snapshot_path: Path, runner: CliRunner) -> None:
    result = runner.invoke(app, ["status", "--snapshot", str(snapshot_path)])

    assert result.exit_code == 0, result.output
    assert "Senior Program Manager" in result.output
    assert "status=completed" in result.output
    assert "step=15 (Employment Contract)" in result.output
    assert "hired=1" in result.output


def test_status_filters_and_totals(snapshot_path: Path, runner: CliRunner) -> None:
    result = runner.invoke(app, ["status", "--snapshot", str(snapshot_path), "--status", "completed"])
    assert result.exit_code == 0, result.output
    assert "Senior Program Manager" in result.output
    assert "Total 1: draft=0 in_progress=0 completed=1 cancelled=0" in result.output

    drafts = runner.invoke(app, ["status", "--snapshot", str(snapshot_path), "--status", "draft"])
    assert drafts.exit_code == 0, drafts.output
    assert "No recruitments found." in drafts.output

    by_title = runner.invoke(app, ["status", "--snapshot", str(snapshot_path), "--query", "program manager"])
    assert "Senior Program Manager" in by_title.output

    unknown = runner.invoke(app, ["status", "--snapshot", str(snapshot_path), "--status", "archived"])
    assert unknown.exit_code != 0


def test_status_with_empty_snapshot(tmp_path: Path, runner: CliRunner) -> None:
    empty = tmp_path / "empty.json"
    empty.write_text(json.dumps({"app_version": __version__, "stores": {}}), encoding="utf-8")

    result = runner.invoke(app, ["status", "--snapshot", str(empty)])

    assert result.exit_code == 0, result.output
    assert "No recruitments found." in result.output


def test_status_rejects_malformed_snapshot(tmp_path: Path, runner: CliRunner) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2, 3]", encoding="utf-8")

    result = runner.invoke(app, ["status", "--snapshot", str(broken)])

    assert result.exit_code != 0


def test_search_finds_candidates(snapshot_path: Path, runner: CliRunner) -> None:
    result = runner.invoke(app, ["search", "hasan karimi", "--snapshot", str(snapshot_path)])

    assert result.exit_code == 0, result.output
    first = result.output.strip().splitlines()[0]
    assert "Hassan Karimi" in first
    assert "CAN-" in first

    missing = runner.invoke(app, ["search", "zzzzqqqq", "--snapshot", str(snapshot_path)])
    assert missing.exit_code == 0
    assert "No matching candidates." in missing.output
