"""
Ordered set of requested outputs plus the preview pointer.

The set is either empty (``active_index is None``) or populated with a
valid ``active_index``; add and remove are the only operations that move
between the two.  Entries are identified by position, so every index
argument is bounds-checked and a bad one raises ``OutputIndexError``.

The manager itself does not refuse to become empty; the window hides the
Remove button on the last entry.
"""

import logging
from typing import Iterable, Iterator

from resizeit.errors import OutputIndexError
from resizeit.models import OutputSpec

logger = logging.getLogger(__name__)


class OutputSet:
    """Ordered OutputSpec list with an active (previewed) entry."""

    def __init__(self, entries: Iterable[OutputSpec] | None = None, active_index: int = 0):
        self._entries: list[OutputSpec] = list(entries) if entries is not None else [OutputSpec()]
        self._active: int | None = None
        if self._entries:
            self._check_index(active_index)
            self._active = active_index

    # --- Read access ---

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[OutputSpec]:
        return iter(tuple(self._entries))

    def __getitem__(self, index: int) -> OutputSpec:
        self._check_index(index)
        return self._entries[index]

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def active_index(self) -> int | None:
        return self._active

    @property
    def active(self) -> OutputSpec | None:
        """The entry shown in the preview, or None when the set is empty."""
        if self._active is None:
            return None
        return self._entries[self._active]

    # --- Mutation ---

    def add_output(self) -> int:
        """Append a default entry and make it active. Returns its index."""
        index = len(self._entries)
        self._entries.append(OutputSpec())
        self._active = index
        logger.debug("Added output #%d (%d total)", index, len(self._entries))
        return index

    def update_output(self, index: int, **changes) -> OutputSpec:
        """Replace only the supplied fields of the entry at *index*."""
        self._check_index(index)
        updated = self._entries[index].with_changes(**changes)
        self._entries[index] = updated
        return updated

    def remove_output(self, index: int) -> OutputSpec:
        """Remove the entry at *index* and repoint the active index."""
        self._check_index(index)
        removed = self._entries.pop(index)
        if not self._entries:
            self._active = None
        else:
            self._active = max(0, min(self._active, len(self._entries) - 1))
        logger.debug("Removed output #%d, active is now %s", index, self._active)
        return removed

    def set_active(self, index: int) -> None:
        self._check_index(index)
        self._active = index

    # --- Serialization ---

    def to_payload(self) -> list[dict]:
        """Entries as plain dicts, in order, values as stored."""
        return [spec.to_dict() for spec in self._entries]

    @classmethod
    def from_payload(cls, data: list[dict]) -> "OutputSet":
        """Build a set from ``to_payload`` output. Raises ValueError on bad entries."""
        entries = []
        for item in data:
            try:
                entries.append(OutputSpec(
                    width=item["width"], height=item["height"], format=item["format"],
                ))
            except (KeyError, TypeError) as exc:
                raise ValueError(f"invalid output entry {item!r}") from exc
        return cls(entries)

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or not 0 <= index < len(self._entries):
            raise OutputIndexError(index, len(self._entries))
