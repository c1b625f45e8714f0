"""Deterministic conventional-commit messages derived from a group's contents."""
from collections import Counter
from pathlib import PurePosixPath
from typing import List

from ..models import ChangeGroup, ChangeStatus, CommitType, SuggestedMessage

DOC_FILE_TYPES = {".md", ".txt", ".rst"}

ACTION_VERBS = {
    ChangeStatus.ADDED: "add",
    ChangeStatus.MODIFIED: "update",
    ChangeStatus.DELETED: "remove",
    ChangeStatus.RENAMED: "rename",
}


def format_message(commit_type: CommitType, scope: str, description: str) -> str:
    prefix = commit_type.value
    if scope:
        prefix += f"({scope})"
    return f"{prefix}: {description}"


class MessageSuggester:
    """Suggests a commit message for a group of changes.

    The type is picked by the first matching rule:

    1. only additions -> ``feat``
    2. only modifications -> ``fix``
    3. only documentation files -> ``docs``
    4. only modifications across several files -> ``refactor``
    5. anything else -> ``chore``

    Rules 1 and 2 shadow the later ones, so a lone added README is ``feat``
    and rule 4 never fires.
    """

    def suggest(self, group: ChangeGroup) -> SuggestedMessage:
        commit_type = self._commit_type(group)
        scope = self._most_common_domain(group)
        description = self._describe(group, scope)
        return SuggestedMessage(
            type=commit_type,
            scope=scope,
            description=description,
            full=format_message(commit_type, scope, description),
        )

    def attach(self, groups: List[ChangeGroup]) -> List[ChangeGroup]:
        """Set ``suggested_message`` on every group and return them."""
        for group in groups:
            group.suggested_message = self.suggest(group)
        return groups

    def _commit_type(self, group: ChangeGroup) -> CommitType:
        statuses = {change.status for change in group.files}
        has_adds = ChangeStatus.ADDED in statuses
        has_modifies = ChangeStatus.MODIFIED in statuses
        has_deletes = ChangeStatus.DELETED in statuses

        if has_adds and not has_modifies and not has_deletes:
            return CommitType.FEAT
        if has_modifies and not has_adds and not has_deletes:
            return CommitType.FIX
        if all(change.file_type in DOC_FILE_TYPES for change in group.files):
            return CommitType.DOCS
        if statuses == {ChangeStatus.MODIFIED} and len(group.files) > 1:
            return CommitType.REFACTOR
        return CommitType.CHORE

    @staticmethod
    def _most_common_domain(group: ChangeGroup) -> str:
        if not group.files:
            return ""
        counts = Counter(change.domain for change in group.files)
        # Counter preserves insertion order, so max() keeps the first seen on ties
        return max(counts, key=counts.get)

    @staticmethod
    def _action_verb(status: ChangeStatus) -> str:
        return ACTION_VERBS.get(status, "modify")

    def _describe(self, group: ChangeGroup, scope: str) -> str:
        count = len(group.files)
        first = group.files[0]
        if count == 1:
            return f"{self._action_verb(first.status)} {PurePosixPath(first.path).name}"
        if all(change.status == first.status for change in group.files):
            return f"{self._action_verb(first.status)} {count} {scope} files"
        return f"update {count} files"
