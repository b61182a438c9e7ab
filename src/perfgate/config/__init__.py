from __future__ import annotations

from perfgate.config.models import DEFAULT_TOLERANCE, ComparisonConfig, GitHubTarget

__all__ = ["DEFAULT_TOLERANCE", "ComparisonConfig", "GitHubTarget"]
