from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import httpx

from perfgate.analysis import ComparisonReport, Summary, aggregate, compare
from perfgate.config import DEFAULT_TOLERANCE, ComparisonConfig, GitHubTarget
from perfgate.errors import ConfigurationError, DeliveryError, LoadError
from perfgate.report import (
    env_signal,
    post_comment,
    render_comment,
    render_text,
    write_env_file,
    write_summary_json,
)
from perfgate.results import ResultSet, load_result_set
from perfgate.storage import Storage

logger = logging.getLogger("perfgate")

EXIT_PASS = 0
EXIT_REGRESSION = 1
EXIT_LOAD_ERROR = 2
EXIT_CONFIG_ERROR = 3
EXIT_DELIVERY_ERROR = 4


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perfgate",
        description="Compare benchmark results against a baseline and flag per-query regressions",
    )
    parser.add_argument("--current", required=True, type=Path, help="Current results document")
    baseline = parser.add_mutually_exclusive_group(required=True)
    baseline.add_argument("--baseline", type=Path, help="Baseline results document")
    baseline.add_argument("--baseline-run", help="Baseline run id in the result store")
    parser.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE)
    parser.add_argument("--unit", choices=["ns", "us", "ms", "s"], help="Override the documents' duration unit")

    parser.add_argument("--store", type=Path, default=Path(".perfgate/perfgate.duckdb"))
    parser.add_argument("--save-as", help="Store the current results under this run id")

    parser.add_argument("--github-env", type=Path, default=None, help="Defaults to $GITHUB_ENV")
    parser.add_argument("--summary-json", type=Path, default=None)
    parser.add_argument("--comment", action="store_true", help="Post a PR comment when a regression is found")
    parser.add_argument("--repository", default=os.environ.get("GITHUB_REPOSITORY", ""))
    parser.add_argument("--issue", type=int, default=0, help="Pull request / issue number")

    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _load_inputs(args: argparse.Namespace, config: ComparisonConfig) -> tuple[ResultSet, ResultSet]:
    current = load_result_set(args.current, unit=config.unit)
    if args.baseline is not None:
        baseline = load_result_set(args.baseline, unit=config.unit)
    else:
        baseline = Storage(args.store).load_result_set(args.baseline_run)
    return baseline, current


def _check_save_target(args: argparse.Namespace) -> None:
    if args.save_as and Storage(args.store).run_exists(args.save_as):
        msg = f"Run {args.save_as} already exists in {args.store}"
        raise ConfigurationError(msg)


def _github_target(args: argparse.Namespace) -> GitHubTarget:
    return GitHubTarget(
        repository=args.repository,
        issue_number=args.issue,
        token=os.environ.get("GITHUB_TOKEN", ""),
    ).validate()


async def _deliver_comment(target: GitHubTarget, body: str) -> int:
    async with httpx.AsyncClient() as client:
        return await post_comment(client, target, body)


def _report(args: argparse.Namespace, report: ComparisonReport, summary: Summary) -> None:
    for delta in report.deltas:
        if delta.is_degenerate:
            logger.warning("Baseline duration of %s is zero; classified %s", delta.query_id, delta.classification.value)
    print(render_text(report, summary))

    env_path = args.github_env or os.environ.get("GITHUB_ENV")
    if env_path:
        write_env_file(env_path, env_signal(summary))
    if args.summary_json is not None:
        write_summary_json(args.summary_json, summary)


def run(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = ComparisonConfig(tolerance=args.tolerance, unit=args.unit).validate()
        target = _github_target(args) if args.comment else None
        _check_save_target(args)
        baseline, current = _load_inputs(args, config)
        report = compare(baseline, current, config.tolerance)
    except LoadError as exc:
        logger.error("%s", exc)
        return EXIT_LOAD_ERROR
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG_ERROR

    if args.save_as:
        Storage(args.store).save_result_set(args.save_as, current, notes=str(args.current))
        logger.info("Saved current results as run %s", args.save_as)

    summary = aggregate(report)
    _report(args, report, summary)

    if target is not None and not summary.passed:
        try:
            asyncio.run(_deliver_comment(target, render_comment(summary, report)))
        except DeliveryError as exc:
            logger.error("%s", exc)
            return EXIT_DELIVERY_ERROR
    return EXIT_PASS if summary.passed else EXIT_REGRESSION


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
