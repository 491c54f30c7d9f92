"""
Task line engine: codec, extractor, classifier and mutation transforms
for checkbox tasks kept under a '## Tasks' heading in markdown notes
"""

from .classifier import aggregate, classify, filter_tasks, matches_tab
from .codec import decode_task_line, encode_task, is_task_line, normalize_tag
from .errors import (
    AmbiguousOrMissingLine,
    EmptyInput,
    ErrorKind,
    InvalidTask,
    IOFailure,
    ProjectNotFound,
    TaskError,
)
from .extractor import TASKS_HEADING, extract_task_lines, extract_tasks
from .models import Priority, Tab, TabCounts, TaskRecord

__all__ = [
    'TaskRecord', 'TabCounts', 'Priority', 'Tab',
    'encode_task', 'decode_task_line', 'is_task_line', 'normalize_tag',
    'TASKS_HEADING', 'extract_task_lines', 'extract_tasks',
    'matches_tab', 'classify', 'filter_tasks', 'aggregate',
    'TaskError', 'ErrorKind', 'ProjectNotFound', 'AmbiguousOrMissingLine',
    'EmptyInput', 'InvalidTask', 'IOFailure',
]
