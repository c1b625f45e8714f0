"""Commit message synthesis package."""

from .suggester import MessageSuggester, format_message
from .validator import CommitMessageValidator

__all__ = [
    'MessageSuggester',
    'CommitMessageValidator',
    'format_message',
]
