"""
Error kinds raised by the task engine

Pure functions raise these; the TaskView controller catches them at its
boundary and turns them into a TaskResult.
"""

from enum import Enum


class ErrorKind(str, Enum):
    PROJECT_NOT_FOUND = "ProjectNotFound"
    AMBIGUOUS_OR_MISSING_LINE = "AmbiguousOrMissingLine"
    EMPTY_INPUT = "EmptyInput"
    INVALID_TASK = "InvalidTask"
    IO_FAILURE = "IOFailure"


class TaskError(Exception):
    """Base class for all task engine errors"""
    kind: ErrorKind = ErrorKind.INVALID_TASK


class ProjectNotFound(TaskError):
    """Target document is not among the eligible project documents"""
    kind = ErrorKind.PROJECT_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Project not found: {name}")
        self.name = name


class AmbiguousOrMissingLine(TaskError):
    """Targeted task line matched zero or several lines"""
    kind = ErrorKind.AMBIGUOUS_OR_MISSING_LINE

    def __init__(self, line: str, matches: int):
        if matches == 0:
            message = f"Task line not found: {line}"
        else:
            message = f"Task line is ambiguous ({matches} matches): {line}"
        super().__init__(message)
        self.line = line
        self.matches = matches


class EmptyInput(TaskError):
    """Task text is blank"""
    kind = ErrorKind.EMPTY_INPUT

    def __init__(self, message: str = "Task text cannot be empty"):
        super().__init__(message)


class InvalidTask(TaskError):
    """Record cannot be encoded (bad due date or tag)"""
    kind = ErrorKind.INVALID_TASK


class IOFailure(TaskError):
    """Underlying document read or write failed"""
    kind = ErrorKind.IO_FAILURE
