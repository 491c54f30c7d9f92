"""
Task data model

TaskRecord is the canonical unit decoded from a single markdown task line.
TabCounts is the derived per-tab aggregate.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Priority"]:
        """
        Parse a user supplied priority ('high', 'High', 'HIGH')

        Returns None for an empty value; raises ValueError for anything else
        that is not a known label.
        """
        if not value:
            return None
        for priority in cls:
            if priority.value.lower() == value.strip().lower():
                return priority
        raise ValueError(f"Unknown priority: {value}")


class Tab(str, Enum):
    ALL = "all"
    TODAY = "today"
    TODO = "todo"
    OVERDUE = "overdue"
    UNPLANNED = "unplanned"


def dedupe_tags(tags: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicate tags, keeping first occurrence order"""
    seen = []
    for tag in tags:
        if tag not in seen:
            seen.append(tag)
    return tuple(seen)


@dataclass(frozen=True)
class TaskRecord:
    """A task decoded from (or about to be encoded into) a markdown line"""
    text: str
    done: bool = False
    due_date: Optional[str] = None  # YYYY-MM-DD
    priority: Optional[Priority] = None
    tags: Tuple[str, ...] = ()
    source_line: str = field(default="", compare=False)
    document: Optional[str] = field(default=None, compare=False)  # owning document path
    line_number: Optional[int] = field(default=None, compare=False)
    occurrence: int = field(default=0, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'tags', dedupe_tags(self.tags))

    @property
    def id(self) -> str:
        """
        Stable identity of the task within its document

        Derived from the document path, the raw line and the index of that
        line among identical lines, so inserting other tasks above it does
        not change the id.
        """
        key = f"{self.document or ''}\n{self.source_line}\n{self.occurrence}"
        return hashlib.sha1(key.encode('utf-8')).hexdigest()[:8]


@dataclass
class TabCounts:
    """Per-tab task tallies (independent counts, not a partition)"""
    all: int = 0
    today: int = 0
    todo: int = 0
    overdue: int = 0
    unplanned: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {tab.value: getattr(self, tab.value) for tab in Tab}
