"""
Change Log.

Append-only record of the mutations applied by a `Refactor`. Every
successful mutation call appends exactly one `ChangeLogEntry`, including
calls that turned out to change nothing.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Tuple

from pysplice.enums import ChangeKind

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeLogEntry:
  ordinal: int
  description: str
  kind: ChangeKind = ChangeKind.CUSTOM
  metadata: Dict[str, Any] = field(default_factory=dict)
  timestamp: float = field(default_factory=time.time)

  def __str__(self) -> str:
    return self.description


class ChangeSummary(list):
  """
  Ordered change descriptions with a human readable rendering.

  The summary is a plain list of descriptions. ``str(summary)`` renders
  ``"No changes made"`` or ``"Made <N> changes:"`` followed by a numbered
  list, and ``in`` also matches substrings of that rendering so both
  ``"2 changes" in summary`` and ``desc in summary`` hold.
  """

  @property
  def count(self) -> int:
    return len(self)

  def render(self) -> str:
    """
    Renders the summary text.

    Returns:
        str: The count phrase followed by one numbered line per change.
    """
    if not self:
      return "No changes made"
    lines = [f"Made {len(self)} changes:"]
    lines.extend(f"{i}. {desc}" for i, desc in enumerate(self, start=1))
    return "\n".join(lines) + "\n"

  def __contains__(self, item: object) -> bool:
    if super().__contains__(item):
      return True
    return isinstance(item, str) and item in self.render()

  def __str__(self) -> str:
    return self.render()


class ChangeLog:
  """
  Append-only list of change entries owned by one refactor engine.
  """

  def __init__(self) -> None:
    self._entries: List[ChangeLogEntry] = []

  def record(self, description: str, kind: ChangeKind = ChangeKind.CUSTOM, **metadata: Any) -> ChangeLogEntry:
    """
    Appends an entry.

    Args:
        description: Human readable description of the change.
        kind: Category of the change.
        **metadata: Extra structured details (names, counts, snippets).

    Returns:
        ChangeLogEntry: The new entry.
    """
    entry = ChangeLogEntry(ordinal=len(self._entries) + 1, description=description, kind=kind, metadata=metadata)
    self._entries.append(entry)
    log.debug("Change #%d: %s", entry.ordinal, description)
    return entry

  @property
  def entries(self) -> Tuple[ChangeLogEntry, ...]:
    return tuple(self._entries)

  def summary(self) -> ChangeSummary:
    """Returns the descriptions of all entries as a `ChangeSummary`."""
    return ChangeSummary(entry.description for entry in self._entries)

  def export(self) -> List[Dict[str, Any]]:
    """Returns list of dicts for JSON serialization."""
    return [asdict(e) for e in self._entries]

  def __len__(self) -> int:
    return len(self._entries)

  def __iter__(self) -> Iterator[ChangeLogEntry]:
    return iter(self._entries)
