from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

import httpx

from perfgate.analysis import Summary
from perfgate.config import GitHubTarget
from perfgate.errors import DeliveryError

logger = logging.getLogger(__name__)


def write_env_file(path: Path | str, values: Mapping[str, str]) -> None:
    """Append ``KEY=value`` lines, the format read from ``$GITHUB_ENV``."""
    for key, value in values.items():
        if "\n" in value or "\r" in value:
            msg = f"Value for {key} must be a single line"
            raise ValueError(msg)
    path = Path(path)
    with path.open("a", encoding="utf-8") as fh:
        for key, value in values.items():
            fh.write(f"{key}={value}\n")
    logger.info("Wrote %d environment values to %s", len(values), path)


def write_summary_json(path: Path | str, summary: Summary) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_metadata(), indent=2) + "\n", encoding="utf-8")


async def post_comment(client: httpx.AsyncClient, target: GitHubTarget, body: str) -> int:
    url = target.comments_url()
    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {target.token}",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    try:
        response = await client.post(url, json={"body": body}, headers=headers, timeout=target.timeout_sec)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        msg = f"Comment on {target.repository}#{target.issue_number} rejected: HTTP {exc.response.status_code}"
        raise DeliveryError(msg) from exc
    except httpx.HTTPError as exc:
        msg = f"Comment on {target.repository}#{target.issue_number} failed: {exc}"
        raise DeliveryError(msg) from exc
    comment_id = int(response.json().get("id", 0))
    logger.info("Posted comment %s on %s#%s", comment_id, target.repository, target.issue_number)
    return comment_id
