"""GitHub content origin.

Two resources are mirrored from the resources repository:
- folder listings via the contents API
- the whole repository tree via the git trees API (recursive)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from revent.config import Settings
from revent.origin.fetcher import HttpFetcher

logger = logging.getLogger(__name__)


def github_headers(settings: Settings) -> dict[str, str]:
    """Build the request headers shared by every GitHub call."""
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": settings.github_user_agent,
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    else:
        logger.warning("GITHUB_TOKEN not set, using unauthenticated GitHub requests")
    return headers


class GitHubContentsFetcher(HttpFetcher):
    """Lists the contents of a repository folder."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        headers: dict[str, str] | None = None,
    ):
        super().__init__(client, headers)
        self.base_url = f"{api_url.rstrip('/')}/repos/{owner}/{repo}/contents"

    def url_for(self, resource: str) -> str:
        path = resource.strip("/")
        return f"{self.base_url}/{path}" if path else self.base_url


class GitHubTreeFetcher(HttpFetcher):
    """Fetches the full recursive tree of a branch.

    Tree items are flattened to ``{name, path, sha, size, type}`` where type
    is ``dir`` or ``file``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        owner: str,
        repo: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        headers: dict[str, str] | None = None,
    ):
        super().__init__(client, headers)
        self.url = f"{api_url.rstrip('/')}/repos/{owner}/{repo}/git/trees/{branch}?recursive=1"

    def url_for(self, resource: str) -> str:
        return self.url

    def parse(self, response: httpx.Response) -> tuple[Any, dict[str, Any]]:
        data = response.json()
        files = [_tree_item(item) for item in data.get("tree", [])]
        return files, {"truncated": bool(data.get("truncated", False))}


def _tree_item(item: dict[str, Any]) -> dict[str, Any]:
    path = item["path"]
    return {
        "name": path.split("/")[-1] or path,
        "path": path,
        "sha": item.get("sha"),
        "size": item.get("size") or 0,
        "type": "dir" if item.get("type") == "tree" else "file",
    }
