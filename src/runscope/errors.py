"""
Runscope error taxonomy

ValidationError -> the submitted trace violates the schema (4xx)
NotFoundError   -> the requested run does not exist (4xx)
StorageError    -> the persistence layer failed (5xx, details stay internal)
"""

from dataclasses import dataclass
from typing import Any, Dict, List


class RunscopeError(Exception):
    """Base class for all runscope errors"""


@dataclass
class FieldError:
    """A single schema violation, located by its path in the payload"""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "message": self.message}


class ValidationError(RunscopeError):
    """Raised when a submitted trace is rejected. No part of it is persisted."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(str(e) for e in errors) or "invalid payload")


class NotFoundError(RunscopeError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} not found")


class StorageError(RunscopeError):
    """Raised when the storage backend fails"""
