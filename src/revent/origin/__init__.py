"""Content origin fetchers."""

from revent.origin.fetcher import FetchResult, Fetcher, HttpFetcher
from revent.origin.github import GitHubContentsFetcher, GitHubTreeFetcher, github_headers

__all__ = [
    "FetchResult",
    "Fetcher",
    "HttpFetcher",
    "GitHubContentsFetcher",
    "GitHubTreeFetcher",
    "github_headers",
]
