"""Error codes and the error payload carried by failed results."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    INVALID_PARAMS = "INVALID_PARAMS"
    GIT_OPERATION_FAILED = "GIT_OPERATION_FAILED"
    GIT_UNAVAILABLE = "GIT_UNAVAILABLE"
    GIT_INIT_ERROR = "GIT_INIT_ERROR"
    GIT_PULL_ERROR = "GIT_PULL_ERROR"
    GIT_COMMIT_ERROR = "GIT_COMMIT_ERROR"
    GET_CHANGES_FAILED = "GET_CHANGES_FAILED"
    NO_CHANGES = "NO_CHANGES"
    NO_GROUPS_APPROVED = "NO_GROUPS_APPROVED"
    STAGE_FAILED = "STAGE_FAILED"
    COMMIT_FAILED = "COMMIT_FAILED"
    BATCH_COMMIT_ERROR = "BATCH_COMMIT_ERROR"
    SMART_COMMIT_ERROR = "SMART_COMMIT_ERROR"
    INBOUND_ANALYSIS_ERROR = "INBOUND_ANALYSIS_ERROR"
    INBOUND_DIFF_PARSE_ERROR = "INBOUND_DIFF_PARSE_ERROR"


@dataclass(frozen=True)
class AppError:
    """A failure reported by the engine or by the git provider.

    Attributes:
        code: Stable error code identifying the failing phase
        message: Human readable description
        details: The underlying cause (a provider ``AppError`` or an exception)
        context: Where the error was produced, e.g. ``BatchCommitter.execute_batch``
    """

    code: ErrorCode
    message: str
    details: Any = None
    context: Optional[str] = None

    def __str__(self) -> str:
        text = f"[{self.code.value}] {self.message}"
        if isinstance(self.details, AppError):
            text += f" ({self.details.message})"
        elif self.details is not None:
            text += f" ({self.details})"
        return text
