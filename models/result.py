from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Failure categories reported by the post service"""
    INVALID_IDENTIFIER = "invalid_identifier"
    NOT_FOUND = "not_found"
    VALIDATION_FAILURE = "validation_failure"
    STORAGE_FAILURE = "storage_failure"


@dataclass
class ServiceResult:
    """Container for service outcomes: either data, or a failure kind with a message"""
    success: bool
    data: Any = None
    message: Optional[str] = None
    kind: Optional[ErrorKind] = None
    detail: Any = None

    @classmethod
    def ok(cls, data: Any) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, detail: Any = None) -> "ServiceResult":
        return cls(success=False, message=message, kind=kind, detail=detail)

    @property
    def is_error(self) -> bool:
        return not self.success
