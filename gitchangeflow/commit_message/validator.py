"""Commit message validation."""
from typing import Tuple

from ..models import SuggestedMessage
from .validation import create_validation_chain


class CommitMessageValidator:
    """Validates commit messages against conventional commit standards."""

    def __init__(self, max_subject_length: int = 72):
        self.max_subject_length = max_subject_length
        self.validation_chain = create_validation_chain(max_subject_length)

    def validate(self, message: str) -> Tuple[bool, str]:
        """Validate a commit message against standards."""
        return self.validation_chain.handle(message)

    def validate_suggestion(self, suggestion: SuggestedMessage) -> Tuple[bool, str]:
        return self.validate(suggestion.full)
