from __future__ import annotations

import math
from dataclasses import dataclass

from perfgate.errors import ConfigurationError

DEFAULT_TOLERANCE = 0.05


def validate_tolerance(tolerance: float) -> float:
    try:
        value = float(tolerance)
    except (TypeError, ValueError) as exc:
        msg = f"Tolerance must be a number, got {tolerance!r}"
        raise ConfigurationError(msg) from exc
    if not math.isfinite(value) or value < 0:
        msg = f"Tolerance must be a finite, non-negative fraction, got {tolerance!r}"
        raise ConfigurationError(msg)
    return value


@dataclass(frozen=True, slots=True)
class ComparisonConfig:
    tolerance: float = DEFAULT_TOLERANCE
    unit: str | None = None  # overrides the unit declared by the documents

    def validate(self) -> ComparisonConfig:
        validate_tolerance(self.tolerance)
        return self


@dataclass(frozen=True, slots=True)
class GitHubTarget:
    repository: str  # owner/name
    issue_number: int
    token: str
    api_url: str = "https://api.github.com"
    timeout_sec: float = 10.0

    def validate(self) -> GitHubTarget:
        owner, _, name = self.repository.partition("/")
        if not owner or not name or "/" in name:
            msg = f"Repository must look like 'owner/name', got {self.repository!r}"
            raise ConfigurationError(msg)
        if self.issue_number <= 0:
            msg = f"Issue number must be positive, got {self.issue_number}"
            raise ConfigurationError(msg)
        if not self.token:
            msg = "A token is required to post comments"
            raise ConfigurationError(msg)
        return self

    def comments_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/repos/{self.repository}/issues/{self.issue_number}/comments"
