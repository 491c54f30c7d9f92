"""
Task Line Codec

Encodes and decodes a single task between a TaskRecord and its markdown
line:

    - [ ] Buy milk 📅 2024-01-01 (High) 🔖 errand 🔖 home

Metadata tokens are the due date (calendar glyph), the parenthesized
priority label and one bookmark-glyph token per tag. When a line carries
several due dates or priorities the first occurrence is authoritative and
later ones stay part of the text.
"""

import re
from typing import Optional

from .errors import EmptyInput, InvalidTask
from .models import Priority, TaskRecord, dedupe_tags

DUE_GLYPH = '📅'
TAG_GLYPH = '🔖'

TASK_LINE_PATTERN = re.compile(r'^- \[( |x)\]')
DUE_PATTERN = re.compile(DUE_GLYPH + r' (\d{4}-\d{2}-\d{2})')
PRIORITY_PATTERN = re.compile(r'\((High|Medium|Low)\)')
TAG_PATTERN = re.compile(TAG_GLYPH + r'\s*(\w+)')

DATE_FORMAT_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')
WORD_PATTERN = re.compile(r'\w+')


def is_task_line(line: str) -> bool:
    """True if line starts with a '- [ ]' or '- [x]' checkbox"""
    return TASK_LINE_PATTERN.match(line) is not None


def encode_task(record: TaskRecord) -> str:
    """
    Encode a record as a markdown task line

    Args:
        record: Task to encode

    Returns:
        '- [x] text 📅 date (Priority) 🔖 tag ...' without trailing whitespace

    Raises:
        EmptyInput: text is blank
        InvalidTask: text spans several lines, or due date or a tag is malformed
    """
    text = record.text.strip()
    if not text:
        raise EmptyInput()
    if '\n' in text or '\r' in text:
        raise InvalidTask("Task text must be a single line")

    metadata = []
    if record.due_date:
        if not DATE_FORMAT_PATTERN.fullmatch(record.due_date):
            raise InvalidTask(f"Due date must be YYYY-MM-DD: {record.due_date}")
        metadata.append(f"{DUE_GLYPH} {record.due_date}")
    if record.priority:
        metadata.append(f"({Priority(record.priority).value})")
    for tag in record.tags:
        if not WORD_PATTERN.fullmatch(tag):
            raise InvalidTask(f"Tag must be a single word: {tag}")
        metadata.append(f"{TAG_GLYPH} {tag}")

    marker = 'x' if record.done else ' '
    return ' '.join([f"- [{marker}]", text] + metadata)


def decode_task_line(
    line: str,
    document: Optional[str] = None,
    line_number: Optional[int] = None,
    occurrence: int = 0
) -> Optional[TaskRecord]:
    """
    Decode a markdown line into a TaskRecord

    Args:
        line: Raw markdown line
        document: Path of the owning document (kept as a reference only)
        line_number: 1-based line index in the owning document
        occurrence: Index of this line among identical lines of the document

    Returns:
        TaskRecord, or None if the line is not a checkbox task
    """
    prefix = TASK_LINE_PATTERN.match(line)
    if not prefix:
        return None

    body = line[prefix.end():]

    due_match = DUE_PATTERN.search(body)
    priority_match = PRIORITY_PATTERN.search(body)
    tags = dedupe_tags(TAG_PATTERN.findall(body))

    # Date first, then priority, then tags
    text = body
    if due_match:
        text = DUE_PATTERN.sub('', text, count=1)
    if priority_match:
        text = PRIORITY_PATTERN.sub('', text, count=1)
    text = TAG_PATTERN.sub('', text).strip()

    return TaskRecord(
        text=text,
        done=prefix.group(1) == 'x',
        due_date=due_match.group(1) if due_match else None,
        priority=Priority(priority_match.group(1)) if priority_match else None,
        tags=tags,
        source_line=line,
        document=document,
        line_number=line_number,
        occurrence=occurrence
    )


def normalize_tag(raw: str) -> str:
    """
    Normalize user input into a tag token

    '🔖 Needs Review' -> 'needs_review', '#front-end' -> 'front_end'
    """
    tag = raw.strip().lstrip(TAG_GLYPH).lstrip('#').strip().lower()
    tag = re.sub(r'[\s\-]+', '_', tag)
    return re.sub(r'[^\w]', '', tag)
