from __future__ import annotations

import json

from perfgate.analysis import Classification, ComparisonReport, Delta, Summary

COMMENT_MARKER = "<!-- perfgate -->"


def env_signal(summary: Summary) -> dict[str, str]:
    return {
        "PERF_REGRESSION": "false" if summary.passed else "true",
        "PERF_VERDICT": summary.verdict.value,
        "REGRESSED_QUERIES": json.dumps(list(summary.regressed_queries)),
    }


def render_comment(summary: Summary, report: ComparisonReport | None = None) -> str:
    """Markdown body for a pull-request comment."""
    if summary.passed:
        lines = [COMMENT_MARKER, "✅ No performance regression detected."]
        return "\n".join(lines) + "\n"
    lines = [
        COMMENT_MARKER,
        f"⚠️ Performance regression detected in {len(summary.regressed_queries)} "
        f"{'query' if len(summary.regressed_queries) == 1 else 'queries'}:",
        "",
    ]
    if report is None:
        lines.extend(f"- {_code(query_id)}" for query_id in summary.regressed_queries)
    else:
        by_id = {d.query_id: d for d in report.deltas}
        unit = report.unit.value
        lines.append(f"| Query | Baseline ({unit}) | Current ({unit}) | Change |")
        lines.append("|---|---:|---:|---:|")
        for query_id in summary.regressed_queries:
            delta = by_id[query_id]
            lines.append(
                f"| {_cell(query_id)} | {_fmt(delta.baseline_duration)} | "
                f"{_fmt(delta.current_duration)} | {_fmt_change(delta)} |"
            )
        lines.append("")
        lines.append(f"Tolerance: ±{report.tolerance * 100:g}%")
    return "\n".join(lines) + "\n"


def render_text(report: ComparisonReport, summary: Summary) -> str:
    width = max([len("query")] + [len(d.query_id) for d in report.deltas])
    header = f"{'query':<{width}}  {'baseline':>12}  {'current':>12}  {'change':>9}  classification"
    lines = [header, "-" * len(header)]
    for delta in report.deltas:
        lines.append(
            f"{delta.query_id:<{width}}  {_fmt(delta.baseline_duration):>12}  "
            f"{_fmt(delta.current_duration):>12}  {_fmt_change(delta):>9}  {delta.classification.value}"
        )
    counts = ", ".join(f"{n} {c.value}" for c, n in summary.counts.items() if n)
    lines.append("")
    lines.append(f"verdict: {summary.verdict.value} ({counts or 'no queries'}; unit={report.unit.value})")
    return "\n".join(lines)


def _code(text: str) -> str:
    fence = "`"
    while fence in text:
        fence += "`"
    if text.startswith("`") or text.endswith("`"):
        return f"{fence} {text} {fence}"
    return f"{fence}{text}{fence}"


def _cell(text: str) -> str:
    return _code(text).replace("|", "\\|")


def _fmt(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.6g}"


def _fmt_change(delta: Delta) -> str:
    if delta.classification in (Classification.ADDED, Classification.REMOVED):
        return delta.classification.value
    pct = delta.change_pct
    if pct is None:
        return "0.0%"
    if pct == float("inf"):
        return "+inf%"
    return f"{pct:+.1f}%"
