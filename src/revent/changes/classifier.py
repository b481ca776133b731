"""Change classification for entity writes.

Given the before/after snapshots of a document write, determines what kind
of write happened and, for documents holding an ordered list, which element
changed. Pure function, no I/O.

List rules are positional and kept exactly as producers rely on them:
- a longer list means an item was inserted at index 0
- a shorter list reports the first previous item with no equal counterpart
- an equal-length list reports only the first differing index
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson

from revent.errors import ClassificationAmbiguous

Snapshot = dict[str, Any]


class OperationKind(str, Enum):
    """Kind of write observed on a document."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    LIST_APPENDED = "list_appended"
    LIST_REMOVED = "list_removed"


@dataclass(frozen=True, slots=True)
class ChangeResult:
    """Classification of one document write."""

    operation_kind: OperationKind
    changed_index: int | None = None
    changed_element: Any = None
    previous_element: Any = None

    @property
    def document_operation(self) -> OperationKind:
        """Operation on the containing document; list edits are document updates."""
        if self.operation_kind in (OperationKind.LIST_APPENDED, OperationKind.LIST_REMOVED):
            return OperationKind.UPDATED
        return self.operation_kind


def _canonical(value: Any) -> bytes:
    return orjson.dumps(value, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS)


def structurally_equal(a: Any, b: Any) -> bool:
    """Full value equality, independent of key order and object identity."""
    return _canonical(a) == _canonical(b)


def classify(
    before: Snapshot | None,
    after: Snapshot | None,
    list_field: str | None = None,
) -> ChangeResult:
    """Classify a write from its before/after snapshots.

    Args:
        before: Document state before the write (None if it did not exist)
        after: Document state after the write (None if it was deleted)
        list_field: Name of the ordered list field for list-valued documents

    Raises:
        ValueError: both snapshots are None
        ClassificationAmbiguous: a removal matches no single element
    """
    if before is None and after is None:
        raise ValueError("Cannot classify a write with neither before nor after state")
    if before is None:
        return ChangeResult(OperationKind.CREATED)
    if after is None:
        return ChangeResult(OperationKind.DELETED)
    if list_field is None:
        return ChangeResult(OperationKind.UPDATED)

    return classify_list(before.get(list_field) or [], after.get(list_field) or [], list_field)


def classify_list(before: list[Any], after: list[Any], list_field: str = "items") -> ChangeResult:
    """Classify the change between two versions of an ordered list."""
    if len(after) > len(before):
        # New items are always inserted at the head
        return ChangeResult(OperationKind.LIST_APPENDED, changed_index=0, changed_element=after[0])

    if len(after) < len(before):
        remaining = {_canonical(item) for item in after}
        for index, item in enumerate(before):
            if _canonical(item) not in remaining:
                return ChangeResult(
                    OperationKind.LIST_REMOVED,
                    changed_index=index,
                    changed_element=item,
                )
        raise ClassificationAmbiguous(list_field, len(before), len(after))

    for index, (old, new) in enumerate(zip(before, after)):
        if not structurally_equal(old, new):
            return ChangeResult(
                OperationKind.UPDATED,
                changed_index=index,
                changed_element=new,
                previous_element=old,
            )

    return ChangeResult(OperationKind.UPDATED)
