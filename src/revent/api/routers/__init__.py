"""API routers for revent."""

from revent.api.routers import changes, github, health, metrics, notifications

__all__ = ["changes", "github", "health", "metrics", "notifications"]
