"""
Task Mutation Engine (text transforms)

Each function takes the full document text and returns the new text. A
task is targeted by its exact source line; it must match exactly one line
of the document or AmbiguousOrMissingLine is raised and nothing changes.
"""

from typing import List

from .codec import TASK_LINE_PATTERN
from .errors import AmbiguousOrMissingLine
from .extractor import TASKS_HEADING, find_tasks_heading


def find_unique_line(lines: List[str], source_line: str) -> int:
    """
    Index of the single line equal to source_line

    Raises:
        AmbiguousOrMissingLine: zero or more than one line matches
    """
    matches = [i for i, line in enumerate(lines) if line == source_line]
    if len(matches) != 1:
        raise AmbiguousOrMissingLine(source_line, len(matches))
    return matches[0]


def insert_task(content: str, task_line: str) -> str:
    """
    Insert a task line as the first task of the Tasks section

    Creates the section at the end of the document if missing:
    a blank line, the heading, then the task.
    """
    lines = content.split('\n')
    heading_index = find_tasks_heading(lines)

    if heading_index is None:
        lines.extend(['', TASKS_HEADING, task_line])
    else:
        lines.insert(heading_index + 1, task_line)

    return '\n'.join(lines)


def toggle_task(content: str, source_line: str) -> str:
    """Flip the checkbox marker of the unique matching line"""
    lines = content.split('\n')
    index = find_unique_line(lines, source_line)

    line = lines[index]
    prefix = TASK_LINE_PATTERN.match(line)
    if not prefix:
        raise AmbiguousOrMissingLine(source_line, 0)

    marker = ' ' if prefix.group(1) == 'x' else 'x'
    lines[index] = f"- [{marker}]" + line[prefix.end():]
    return '\n'.join(lines)


def replace_task(content: str, source_line: str, new_line: str) -> str:
    """Replace the unique matching line in place"""
    lines = content.split('\n')
    index = find_unique_line(lines, source_line)
    lines[index] = new_line
    return '\n'.join(lines)


def remove_task(content: str, source_line: str) -> str:
    """Remove the unique matching line"""
    lines = content.split('\n')
    index = find_unique_line(lines, source_line)
    del lines[index]
    return '\n'.join(lines)


def append_line(content: str, line: str) -> str:
    """Append a line at the very end of the document"""
    return content + '\n' + line
