"""
Frontmatter block handling

Grammar understood here:

    ---
    key: value          (flat key/value lines, parsed with PyYAML)
    scratchpad: "..."   (double-quoted scalar, single line on disk)
    ---

Only the 'scratchpad' key is ever rewritten. The value is written as a YAML
double-quoted scalar with backslashes, quotes and line breaks escaped, so a
multi-line scratchpad still occupies one physical line. Every other line of
the block is left untouched.
"""

import re
from typing import Any, Dict, Optional, Tuple

import yaml

FRONTMATTER_PATTERN = re.compile(r'^---\n([\s\S]*?)\n---')
SCRATCHPAD_KEY = 'scratchpad'


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """
    Split a document into its frontmatter block and the remaining text

    Returns:
        (block text without the '---' delimiters or None, rest of document)
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end():]


def parse_frontmatter(content: str) -> Dict[str, Any]:
    """
    Parse the frontmatter block into a dict

    Returns {} when there is no block or it is not a mapping.

    Raises:
        yaml.YAMLError: block is not valid YAML
    """
    block, _ = split_frontmatter(content)
    if block is None:
        return {}
    data = yaml.safe_load(block)
    return data if isinstance(data, dict) else {}


def is_project(content: str, project_type: str = 'Project') -> bool:
    """True if the frontmatter 'type' field equals project_type"""
    return parse_frontmatter(content).get('type') == project_type


def quote_scalar(text: str) -> str:
    """Render text as a single-line YAML double-quoted scalar"""
    escaped = (
        text.replace('\\', '\\\\')
        .replace('"', '\\"')
        .replace('\r', '\\r')
        .replace('\n', '\\n')
        .replace('\t', '\\t')
    )
    return f'"{escaped}"'


def get_scratchpad(content: str) -> str:
    value = parse_frontmatter(content).get(SCRATCHPAD_KEY)
    return '' if value is None else str(value)


def set_scratchpad(content: str, text: str, project_type: str = 'Project') -> str:
    """
    Write the scratchpad value into the frontmatter

    Without a frontmatter block a new one is created, marking the document
    as a project. An existing 'scratchpad' entry (including indented
    continuation lines of a hand-written multi-line value) is replaced in
    place; otherwise the key is appended to the block.
    """
    entry = f"{SCRATCHPAD_KEY}: {quote_scalar(text)}"

    block, rest = split_frontmatter(content)
    if block is None:
        return f"---\ntype: {project_type}\n{entry}\n---\n\n{content}"

    lines = block.split('\n')
    start = next((i for i, line in enumerate(lines) if line.startswith(f"{SCRATCHPAD_KEY}:")), None)

    if start is None:
        lines.append(entry)
    else:
        end = start + 1
        while end < len(lines) and lines[end][:1] in (' ', '\t'):
            end += 1
        lines[start:end] = [entry]

    return '---\n' + '\n'.join(lines) + '\n---' + rest
