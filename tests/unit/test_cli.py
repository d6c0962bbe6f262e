"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from stepforge._version import __version__
from stepforge.cli import app

SAVE_PHRASE = "User clicks 'Save' button"


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project directory with default configuration."""
    return tmp_path


def invoke(cli_runner: CliRunner, project: Path, *args: str):
    return cli_runner.invoke(app, [*args, "--project", str(project)])


def test_version(cli_runner: CliRunner):
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"stepforge {__version__}" in result.output


def test_map_grammar_match(cli_runner: CliRunner, project: Path):
    result = invoke(cli_runner, project, "map", SAVE_PHRASE)
    assert result.exit_code == 0
    assert "Matched by grammar (click-button-quoted)" in result.output
    assert '"type": "click"' in result.output


def test_map_blocked(cli_runner: CliRunner, project: Path):
    result = invoke(cli_runner, project, "map", "Contemplate the universe")
    assert result.exit_code == 1
    assert 'Could not map step: "Contemplate the universe"' in result.output


def test_map_shows_hint_warnings(cli_runner: CliRunner, project: Path):
    result = invoke(cli_runner, project, "map", f"{SAVE_PHRASE} (colour=red)")
    assert result.exit_code == 0
    assert "Unknown hint type: colour" in result.output


def test_invalid_config(cli_runner: CliRunner, project: Path):
    (project / "stepforge.toml").write_text("[llkb\n")
    result = invoke(cli_runner, project, "map", SAVE_PHRASE)
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output


def test_glossary_from_config(cli_runner: CliRunner, project: Path):
    (project / "glossary.yaml").write_text(
        "moduleMethods:\n  - phrase: empty the cart\n    module: cart\n    method: clear\n"
    )
    (project / "stepforge.toml").write_text('[glossary]\npath = "glossary.yaml"\n')
    result = invoke(cli_runner, project, "map", "Empty the cart", "--no-llkb")
    assert result.exit_code == 0
    assert "Matched by glossary" in result.output
    assert '"module": "cart"' in result.output


def test_normalize_json(cli_runner: CliRunner, project: Path, journeys_dir: Path):
    result = invoke(cli_runner, project, "normalize", str(journeys_dir / "login.md"), "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["id"] == "JRN-0001"
    assert [s["id"] for s in data["steps"]] == ["AC-1", "AC-2"]


def test_normalize_summary(cli_runner: CliRunner, project: Path, journeys_dir: Path):
    result = invoke(cli_runner, project, "normalize", str(journeys_dir / "login.md"))
    assert result.exit_code == 0
    assert "2/2 steps, 5 actions, 2 assertions, 0 blocked" in result.output
    assert "Ready for code generation" in result.output


def test_normalize_blocked(cli_runner: CliRunner, project: Path, journeys_dir: Path):
    result = invoke(cli_runner, project, "normalize", str(journeys_dir / "blocked.md"))
    assert result.exit_code == 0
    assert "blocked AC-1: Contemplate the universe" in result.output
    assert "not ready: Journey has no completion signals" in result.output


def test_normalize_strict_fails(cli_runner: CliRunner, project: Path, journeys_dir: Path):
    result = invoke(
        cli_runner, project, "normalize", str(journeys_dir / "blocked.md"), "--strict", "--json"
    )
    assert result.exit_code == 1
    assert [s["id"] for s in json.loads(result.stdout)["steps"]] == ["AC-2"]


def test_normalize_no_blocked(cli_runner: CliRunner, project: Path, journeys_dir: Path):
    result = invoke(
        cli_runner, project, "normalize", str(journeys_dir / "blocked.md"), "--no-blocked", "--json"
    )
    assert result.exit_code == 0
    assert [s["id"] for s in json.loads(result.stdout)["steps"]] == ["AC-2"]


def test_normalize_parse_error(cli_runner: CliRunner, project: Path):
    bad = project / "bad.md"
    bad.write_text("no header")
    result = invoke(cli_runner, project, "normalize", str(bad))
    assert result.exit_code == 1
    assert "No YAML header" in result.output


def test_blocks_command(cli_runner: CliRunner, tmp_path: Path):
    generated = tmp_path / "login.spec.ts"
    generated.write_text(
        "import x;\n"
        "// STEPFORGE:BEGIN GENERATED id=login\n"
        "a\nb\n"
        "// STEPFORGE:END GENERATED\n"
        "// STEPFORGE:BEGIN GENERATED id=open\n"
        "c\n"
    )
    result = cli_runner.invoke(app, ["blocks", str(generated)])
    assert result.exit_code == 0
    assert "login" in result.output
    assert "2-5" in result.output
    assert "1 preserved line(s)" in result.output
    assert "Unclosed managed block starting at line 6" in result.output


def test_blocks_none(cli_runner: CliRunner, tmp_path: Path):
    plain = tmp_path / "plain.ts"
    plain.write_text("const x = 1;\n")
    result = cli_runner.invoke(app, ["blocks", str(plain)])
    assert result.exit_code == 0
    assert "No managed blocks found." in result.output


def test_blocks_missing_file(cli_runner: CliRunner, tmp_path: Path):
    result = cli_runner.invoke(app, ["blocks", str(tmp_path / "missing.ts")])
    assert result.exit_code == 1


def learn(cli_runner: CliRunner, project: Path, times: int = 1, journey: str = "JRN-0001"):
    for _ in range(times):
        result = invoke(
            cli_runner, project, "llkb", "learn", "Persist the draft", "--as", SAVE_PHRASE, "--journey", journey
        )
        assert result.exit_code == 0
    return result


def test_llkb_learn_and_map(cli_runner: CliRunner, project: Path):
    first = learn(cli_runner, project)
    assert "Learned LP" in first.output
    assert "confidence 0.500" in first.output

    assert invoke(cli_runner, project, "map", "Persist the draft").exit_code == 1
    learn(cli_runner, project, times=11)
    result = invoke(cli_runner, project, "map", "Persist the draft")
    assert result.exit_code == 0
    assert "Matched by llkb" in result.output
    assert invoke(cli_runner, project, "map", "Persist the draft", "--no-llkb").exit_code == 1


def test_llkb_learn_requires_known_phrase(cli_runner: CliRunner, project: Path):
    result = invoke(
        cli_runner, project, "llkb", "learn", "Persist the draft", "--as", "gibberish", "--journey", "JRN-0001"
    )
    assert result.exit_code == 1
    assert "does not understand" in result.output


def test_llkb_fail(cli_runner: CliRunner, project: Path):
    unknown = invoke(cli_runner, project, "llkb", "fail", "Persist the draft", "--journey", "JRN-0001")
    assert unknown.exit_code == 1
    learn(cli_runner, project, times=3)
    result = invoke(cli_runner, project, "llkb", "fail", "Persist the draft", "--journey", "JRN-0001")
    assert result.exit_code == 0
    assert "confidence now" in result.output


def test_llkb_stats_and_prune(cli_runner: CliRunner, project: Path):
    learn(cli_runner, project, times=2)
    stats = invoke(cli_runner, project, "llkb", "stats")
    assert stats.exit_code == 0
    assert "Total" in stats.output
    prune = invoke(cli_runner, project, "llkb", "prune")
    assert "Removed 0 pattern(s), 1 remaining" in prune.output


def test_llkb_export(cli_runner: CliRunner, project: Path):
    learn(cli_runner, project, times=12)
    output = project / "exported.json"
    result = invoke(cli_runner, project, "llkb", "export", "--output", str(output))
    assert result.exit_code == 0
    assert "Exported 1 pattern(s)" in result.output
    assert json.loads(output.read_text())["patterns"][0]["primitive"]["type"] == "click"


def test_llkb_promotable(cli_runner: CliRunner, project: Path):
    assert "No promotable patterns." in invoke(cli_runner, project, "llkb", "promotable").output
    learn(cli_runner, project, times=2)
    result = invoke(
        cli_runner,
        project,
        "llkb",
        "promotable",
        "--min-confidence",
        "0",
        "--min-success",
        "1",
        "--min-journeys",
        "1",
        "--mark",
    )
    assert result.exit_code == 0
    assert "Marked 1 pattern(s) as promoted" in result.output


def test_llkb_clear(cli_runner: CliRunner, project: Path):
    learn(cli_runner, project)
    declined = cli_runner.invoke(app, ["llkb", "clear", "--project", str(project)], input="n\n")
    assert declined.exit_code == 1
    result = invoke(cli_runner, project, "llkb", "clear", "--yes")
    assert result.exit_code == 0
    assert "Learned patterns cleared" in result.output
    assert not (project / ".stepforge" / "llkb" / "learned-patterns.json").exists()
