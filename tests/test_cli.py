from __future__ import annotations

import json
from pathlib import Path

import pytest

from perfgate import cli
from perfgate.storage import Storage


def _write(path: Path, queries: dict[str, float], unit: str = "s") -> Path:
    path.write_text(json.dumps({"unit": unit, "queries": queries}), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _no_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_ENV", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


def test_pass_exit_code_and_env_file(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1.0, "q2": 2.0})
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    env_file = tmp_path / "env"
    code = cli.run(["--current", str(current), "--baseline", str(baseline), "--github-env", str(env_file)])
    assert code == cli.EXIT_PASS
    assert "PERF_REGRESSION=false\n" in env_file.read_text(encoding="utf-8")


def test_regression_exit_code_and_summary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1.2, "q2": 1.0})
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0, "q2": 1.0})
    summary_path = tmp_path / "summary.json"
    code = cli.run(
        [
            "--current",
            str(current),
            "--baseline",
            str(baseline),
            "--tolerance",
            "0.05",
            "--summary-json",
            str(summary_path),
        ]
    )
    assert code == cli.EXIT_REGRESSION
    assert json.loads(summary_path.read_text(encoding="utf-8"))["regressed_queries"] == ["q1"]
    assert "verdict: FAIL" in capsys.readouterr().out


def test_github_env_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "github_env"
    monkeypatch.setenv("GITHUB_ENV", str(env_file))
    current = _write(tmp_path / "current.json", {"q1": 2.0})
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    assert cli.run(["--current", str(current), "--baseline", str(baseline)]) == cli.EXIT_REGRESSION
    assert 'REGRESSED_QUERIES=["q1"]\n' in env_file.read_text(encoding="utf-8")


def test_load_error_exit_code(tmp_path: Path) -> None:
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    code = cli.run(["--current", str(tmp_path / "missing.json"), "--baseline", str(baseline)])
    assert code == cli.EXIT_LOAD_ERROR


def test_negative_tolerance_exit_code(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1.0})
    code = cli.run(["--current", str(current), "--baseline", str(current), "--tolerance", "-0.1"])
    assert code == cli.EXIT_CONFIG_ERROR


def test_unit_mismatch_exit_code(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1.0}, unit="ms")
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0}, unit="s")
    assert cli.run(["--current", str(current), "--baseline", str(baseline)]) == cli.EXIT_CONFIG_ERROR


def test_comment_requires_settings(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1.0})
    code = cli.run(["--current", str(current), "--baseline", str(current), "--comment", "--repository", "acme/engine"])
    assert code == cli.EXIT_CONFIG_ERROR


def test_baseline_from_store(tmp_path: Path) -> None:
    store = tmp_path / "perfgate.duckdb"
    main = _write(tmp_path / "main.json", {"q1": 1.0})
    branch = _write(tmp_path / "branch.json", {"q1": 1.5})
    assert (
        cli.run(["--current", str(main), "--baseline", str(main), "--store", str(store), "--save-as", "main"])
        == cli.EXIT_PASS
    )
    code = cli.run(["--current", str(branch), "--baseline-run", "main", "--store", str(store)])
    assert code == cli.EXIT_REGRESSION
    missing = cli.run(["--current", str(branch), "--baseline-run", "nope", "--store", str(store)])
    assert missing == cli.EXIT_LOAD_ERROR


def test_comment_posted_only_on_regression(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    posted: list[tuple[str, str]] = []

    async def fake_deliver(target, body: str) -> int:
        posted.append((target.comments_url(), body))
        return 1

    monkeypatch.setattr(cli, "_deliver_comment", fake_deliver)
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    fast = _write(tmp_path / "fast.json", {"q1": 1.0})
    slow = _write(tmp_path / "slow.json", {"q1": 3.0})
    args = ["--baseline", str(baseline), "--comment", "--repository", "acme/engine", "--issue", "7"]

    assert cli.run(["--current", str(fast), *args]) == cli.EXIT_PASS
    assert posted == []
    assert cli.run(["--current", str(slow), *args]) == cli.EXIT_REGRESSION
    url, body = posted[0]
    assert url == "https://api.github.com/repos/acme/engine/issues/7/comments"
    assert "`q1`" in body


def test_oversized_duration_is_a_load_error(tmp_path: Path) -> None:
    current = tmp_path / "current.json"
    current.write_text('{"queries": {"q1": 1' + "0" * 400 + "}}", encoding="utf-8")
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    assert cli.run(["--current", str(current), "--baseline", str(baseline)]) == cli.EXIT_LOAD_ERROR


def test_undecodable_document_is_a_load_error(tmp_path: Path) -> None:
    current = tmp_path / "current.json"
    current.write_bytes(b'{"queries": {"q1": 1.0}}\xff')
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0})
    assert cli.run(["--current", str(current), "--baseline", str(baseline)]) == cli.EXIT_LOAD_ERROR


def test_multiline_query_id_leaves_env_file_untouched(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"a\nb": 2.0})
    baseline = _write(tmp_path / "baseline.json", {"a\nb": 1.0})
    env_file = tmp_path / "env"
    code = cli.run(["--current", str(current), "--baseline", str(baseline), "--github-env", str(env_file)])
    assert code == cli.EXIT_LOAD_ERROR
    assert not env_file.exists()


def test_unit_flag_cannot_override_declared_units(tmp_path: Path) -> None:
    current = _write(tmp_path / "current.json", {"q1": 1000.0}, unit="ms")
    baseline = _write(tmp_path / "baseline.json", {"q1": 1.0}, unit="s")
    code = cli.run(["--current", str(current), "--baseline", str(baseline), "--unit", "s"])
    assert code == cli.EXIT_LOAD_ERROR


def test_unit_flag_fills_undeclared_units(tmp_path: Path) -> None:
    current = tmp_path / "current.json"
    current.write_text(json.dumps({"q1": 1000.0}), encoding="utf-8")
    baseline = _write(tmp_path / "baseline.json", {"q1": 1000.0}, unit="ms")
    assert cli.run(["--current", str(current), "--baseline", str(baseline), "--unit", "ms"]) == cli.EXIT_PASS


def test_failed_comparison_does_not_store_run(tmp_path: Path) -> None:
    store = tmp_path / "perfgate.duckdb"
    current = _write(tmp_path / "current.json", {"q1": 1.0}, unit="ms")
    mismatched = _write(tmp_path / "mismatched.json", {"q1": 1.0}, unit="s")
    matching = _write(tmp_path / "matching.json", {"q1": 1.0}, unit="ms")
    args = ["--current", str(current), "--store", str(store), "--save-as", "pr1"]

    assert cli.run([*args, "--baseline", str(mismatched)]) == cli.EXIT_CONFIG_ERROR
    assert not Storage(store).run_exists("pr1")
    assert cli.run([*args, "--baseline", str(matching)]) == cli.EXIT_PASS
    assert Storage(store).run_exists("pr1")
    assert cli.run([*args, "--baseline", str(matching)]) == cli.EXIT_CONFIG_ERROR
