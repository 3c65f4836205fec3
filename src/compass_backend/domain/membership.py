from __future__ import annotations

from collections.abc import Sequence


def toggle_member(members: Sequence[int] | None, user_id: int) -> tuple[list[int], bool]:
    """Add or remove ``user_id``; returns the new list and whether it is now present.

    Always builds a new list: JSON columns do not track in-place mutation.
    """
    current = list(members or [])
    if user_id in current:
        return [m for m in current if m != user_id], False
    return [*current, user_id], True
