"""
Bounded set of notification IDs delivered in the current session.
"""

from typing import Iterator

from examnotify.config import DEFAULT_DEDUP_KEEP_ENTRIES, DEFAULT_DEDUP_MAX_ENTRIES


class DeliveredIds:
    """
    Insertion-ordered set of delivered notification IDs.

    Once the set grows past ``max_entries`` a trim keeps only the
    ``keep_entries`` most recently added IDs.

    Attributes:
        max_entries: Size above which the set is trimmed
        keep_entries: Number of most recent IDs retained by a trim
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_DEDUP_MAX_ENTRIES,
        keep_entries: int = DEFAULT_DEDUP_KEEP_ENTRIES,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if not 0 <= keep_entries <= max_entries:
            raise ValueError("keep_entries must be between 0 and max_entries")

        self.max_entries = max_entries
        self.keep_entries = keep_entries
        # dict preserves insertion order; values are unused
        self._ids: dict[str, None] = {}

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def add(self, notification_id: str) -> None:
        self._ids[notification_id] = None

    def discard(self, notification_id: str) -> None:
        self._ids.pop(notification_id, None)

    def clear(self) -> None:
        self._ids.clear()

    def trim(self) -> int:
        """
        Drop the oldest IDs when the set exceeds its bound.

        Returns:
            Number of IDs removed
        """
        if len(self._ids) <= self.max_entries:
            return 0

        recent = list(self._ids)[-self.keep_entries:] if self.keep_entries else []
        removed = len(self._ids) - len(recent)
        self._ids = dict.fromkeys(recent)
        return removed
