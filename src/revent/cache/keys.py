"""Cache key schema for revent.

Logical keys are derived from repository paths:
- "pyqs/cse/ds" -> "pyqs--cse--ds"
- "" or "/"     -> "root"

Folder listings and the repository tree live in separate namespaces of the
same store, so no folder path can address the tree entry:
- list:{logical_key}
- tree:full_tree

Redis keys wrap the namespaced key:
    {prefix}:cache:{namespaced_key}
"""

from __future__ import annotations

ROOT_KEY = "root"
PATH_DELIMITER = "--"
LIST_NAMESPACE = "list"
TREE_NAMESPACE = "tree"
TREE_KEY = f"{TREE_NAMESPACE}:full_tree"


def path_to_cache_key(path: str | None) -> str:
    """Convert a hierarchical path into a flat, collision-free cache key."""
    if not path or path == "/":
        return ROOT_KEY
    return path.replace("/", PATH_DELIMITER)


def list_cache_key(path: str | None) -> str:
    """Store key of the folder listing at ``path``."""
    return f"{LIST_NAMESPACE}:{path_to_cache_key(path)}"


class CacheKeys:
    """Redis key generator following a consistent naming convention."""

    def __init__(self, prefix: str = "revent"):
        self.prefix = prefix

    def entry(self, key: str) -> str:
        """Key for a cache entry hash."""
        return f"{self.prefix}:cache:{key}"

    def task(self, name: str) -> str:
        """Key for a scheduled task body."""
        return f"{self.prefix}:task:{name}"

    def task_schedule(self) -> str:
        """Sorted set of task names scored by delivery time."""
        return f"{self.prefix}:tasks:due"

    def document(self, collection: str, document_id: str) -> str:
        """Key for a mirrored entity document."""
        return f"{self.prefix}:doc:{collection}:{document_id}"
