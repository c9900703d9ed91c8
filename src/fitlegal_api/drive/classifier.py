"""Map Drive push-notification headers to a coarse change type."""

from enum import Enum


class ChangeType(str, Enum):
    FILE_ADDED_OR_REMOVED = "file_added_or_removed"
    FILE_MODIFIED = "file_modified"
    PERMISSIONS_CHANGED = "permissions_changed"
    FILE_TRASHED = "file_trashed"
    SYNC_EVENT = "sync_event"
    UNKNOWN = "unknown"


# x-goog-changed values, only meaningful for resource_state == "update"
_UPDATE_CHANGES: dict[str, ChangeType] = {
    "children": ChangeType.FILE_ADDED_OR_REMOVED,
    "content": ChangeType.FILE_MODIFIED,
    "permissions": ChangeType.PERMISSIONS_CHANGED,
}

_STATE_CHANGES: dict[str, ChangeType] = {
    "trash": ChangeType.FILE_TRASHED,
    "sync": ChangeType.SYNC_EVENT,
}


def classify_change(
    resource_state: str | None,
    changed: str | None,
    *,
    properties_as_modified: bool = False,
) -> ChangeType:
    """Classify a notification from its resource state and changed field.

    Only exact values are matched. Anything outside the table is UNKNOWN.
    With ``properties_as_modified`` an ``update``/``properties`` pair is
    also treated as FILE_MODIFIED.
    """
    if resource_state == "update":
        if changed == "properties" and properties_as_modified:
            return ChangeType.FILE_MODIFIED
        return _UPDATE_CHANGES.get(changed or "", ChangeType.UNKNOWN)

    return _STATE_CHANGES.get(resource_state or "", ChangeType.UNKNOWN)
