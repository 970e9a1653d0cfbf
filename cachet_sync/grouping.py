"""Maps a watcher group name onto a Cachet component group id."""

from __future__ import annotations

from typing import Mapping, Optional


def resolve_group_id(
    group_name: Optional[str],
    groups: Mapping[str, int],
    default_group_id: int = 0,
) -> int:
    """
    Return the mapped group id for ``group_name``, else the default.

    An empty or missing group name always resolves to the default.
    """
    if group_name and group_name in groups:
        return groups[group_name]
    return default_group_id
