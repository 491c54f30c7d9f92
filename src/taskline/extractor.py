"""
Document Task Extractor

Pulls the raw task lines that follow the '## Tasks' heading of a
document. By default the section runs to the end of the document, so
checkbox lines under a later unrelated heading are still picked up. Pass
close_at_heading=True to stop at the next level 1 or 2 heading instead.
"""

import re
from collections import Counter
from typing import Iterator, List, Optional

from .codec import decode_task_line, is_task_line
from .models import TaskRecord

TASKS_HEADING = '## Tasks'

SECTION_HEADING_PATTERN = re.compile(r'^#{1,2}\s')


def find_tasks_heading(lines: List[str]) -> Optional[int]:
    """Index of the first line that is exactly '## Tasks' once stripped"""
    for i, line in enumerate(lines):
        if line.strip() == TASKS_HEADING:
            return i
    return None


def _section_lines(lines: List[str], close_at_heading: bool) -> Iterator[int]:
    heading_index = find_tasks_heading(lines)
    if heading_index is None:
        return

    for i in range(heading_index + 1, len(lines)):
        if close_at_heading and SECTION_HEADING_PATTERN.match(lines[i]):
            return
        if is_task_line(lines[i]):
            yield i


def extract_task_lines(content: str, close_at_heading: bool = False) -> Iterator[str]:
    """
    Yield the raw task lines of the Tasks section in document order

    Args:
        content: Full document text
        close_at_heading: Stop at the next '#'/'##' heading instead of EOF

    Yields:
        Raw checkbox lines; nothing if the document has no Tasks heading
    """
    lines = content.split('\n')
    for i in _section_lines(lines, close_at_heading):
        yield lines[i]


def extract_tasks(
    content: str,
    document: Optional[str] = None,
    close_at_heading: bool = False
) -> List[TaskRecord]:
    """
    Decode every task of the Tasks section

    Args:
        content: Full document text
        document: Path of the document, recorded on each TaskRecord
        close_at_heading: Section end policy, see module docstring

    Returns:
        TaskRecords with 1-based line numbers
    """
    lines = content.split('\n')
    seen = Counter()
    records = []

    for i in _section_lines(lines, close_at_heading):
        line = lines[i]
        record = decode_task_line(line, document=document, line_number=i + 1, occurrence=seen[line])
        seen[line] += 1
        records.append(record)

    return records
