from __future__ import annotations

from perfgate.report.github import post_comment, write_env_file, write_summary_json
from perfgate.report.render import env_signal, render_comment, render_text

__all__ = [
    "env_signal",
    "post_comment",
    "render_comment",
    "render_text",
    "write_env_file",
    "write_summary_json",
]
