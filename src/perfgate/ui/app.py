from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from perfgate.analysis import ComparisonReport, aggregate, compare
from perfgate.config import DEFAULT_TOLERANCE
from perfgate.errors import ConfigurationError
from perfgate.storage import default_storage


st.set_page_config(page_title="perfgate", layout="wide")

storage = default_storage()

_COLORS = {
    "improved": "#2ca02c",
    "unchanged": "#7f7f7f",
    "regressed": "#d62728",
    "added": "#1f77b4",
    "removed": "#9467bd",
}


@st.cache_data
def _load_runs() -> pd.DataFrame:
    return storage.list_runs()


def _render_header() -> None:
    st.title("perfgate")
    st.caption("Per-query benchmark comparison against a stored baseline.")


def _plot_ratios(report: ComparisonReport) -> go.Figure:
    frame = report.to_frame()
    frame = frame[frame["ratio"].notna() & (frame["ratio"] != float("inf"))]
    if frame.empty:
        return go.Figure()
    fig = px.bar(
        frame,
        x="query_id",
        y="ratio",
        color="classification",
        color_discrete_map=_COLORS,
        title="current / baseline",
    )
    fig.add_hline(y=1.0 + report.tolerance, line_dash="dash", line_color=_COLORS["regressed"])
    fig.add_hline(y=max(0.0, 1.0 - report.tolerance), line_dash="dash", line_color=_COLORS["improved"])
    fig.update_layout(height=360, margin=dict(l=10, r=10, t=30, b=10))
    return fig


def _render_comparison(run_ids: list[str]) -> None:
    st.subheader("Run Comparison")
    base = st.selectbox("Baseline run", run_ids, index=min(1, len(run_ids) - 1))
    candidate = st.selectbox("Current run", run_ids, index=0)
    tolerance = st.slider("Tolerance", 0.0, 0.5, DEFAULT_TOLERANCE, step=0.01)
    if base == candidate:
        st.info("Select two different runs for comparison")
        return
    try:
        report = compare(storage.load_result_set(base), storage.load_result_set(candidate), tolerance)
    except ConfigurationError as exc:
        st.error(str(exc))
        return
    summary = aggregate(report)

    cols = st.columns(len(summary.counts))
    for col, (classification, count) in zip(cols, summary.counts.items()):
        col.metric(classification.value, count)
    st.plotly_chart(_plot_ratios(report), use_container_width=True)
    st.dataframe(report.to_frame(), use_container_width=True, hide_index=True)

    if summary.passed:
        st.success("No regressions detected")
    else:
        for query_id in summary.regressed_queries:
            st.error(f"{query_id} regressed beyond ±{tolerance * 100:g}%")


def main() -> None:
    _render_header()
    runs = _load_runs()
    if runs.empty:
        st.info("No stored runs yet. Save one with `perfgate --save-as RUN_ID`.")
        return
    st.dataframe(runs, use_container_width=True, hide_index=True)
    _render_comparison(runs["run_id"].tolist())


if __name__ == "__main__":
    main()
