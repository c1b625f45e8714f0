"""Commit message lint rules chained with the Chain of Responsibility pattern.

Each handler inspects the message split into lines and either reports a
problem, which stops the chain, or passes the message on.
"""
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import CommitType

CONVENTIONAL_SUBJECT = re.compile(
    r"^(?:%s)(?:\([^()\s]+\))?: \S" % "|".join(t.value for t in CommitType)
)


class ValidationHandler(ABC):
    """One link in the lint chain."""

    def __init__(self, next_handler: Optional['ValidationHandler'] = None):
        self.next_handler = next_handler

    def handle(self, message: str) -> Tuple[bool, str]:
        """Return ``(True, "")`` or ``(False, problem)`` for the first failing rule."""
        problem = self.check(message.split('\n'))
        if problem:
            return False, problem
        if self.next_handler is None:
            return True, ""
        return self.next_handler.handle(message)

    @abstractmethod
    def check(self, lines: List[str]) -> Optional[str]:
        """Describe what is wrong with the message, or return None."""


class EmptyMessageHandler(ValidationHandler):
    def check(self, lines: List[str]) -> Optional[str]:
        if not lines[0].strip():
            return "Empty commit message"
        return None


class SubjectLengthHandler(ValidationHandler):
    def __init__(self, max_length: int = 72, next_handler: Optional[ValidationHandler] = None):
        super().__init__(next_handler)
        self.max_length = max_length

    def check(self, lines: List[str]) -> Optional[str]:
        length = len(lines[0])
        if length > self.max_length:
            return f"Subject line too long ({length} > {self.max_length})"
        return None


class SubjectPeriodHandler(ValidationHandler):
    def check(self, lines: List[str]) -> Optional[str]:
        if lines[0].endswith('.'):
            return "Subject line should not end with a period"
        return None


class ConventionalFormatHandler(ValidationHandler):
    """Requires ``type(scope): description`` with a known commit type."""

    def check(self, lines: List[str]) -> Optional[str]:
        if not CONVENTIONAL_SUBJECT.match(lines[0]):
            return "Subject line must follow format: type(scope): description"
        return None


class BlankLineHandler(ValidationHandler):
    def check(self, lines: List[str]) -> Optional[str]:
        if len(lines) > 1 and lines[1] != '':
            return "Leave one blank line after subject"
        return None


def create_validation_chain(max_subject_length: int = 72) -> ValidationHandler:
    """Build the lint chain, cheapest checks first."""
    return EmptyMessageHandler(
        SubjectLengthHandler(
            max_subject_length,
            SubjectPeriodHandler(
                ConventionalFormatHandler(
                    BlankLineHandler()
                )
            ),
        )
    )
