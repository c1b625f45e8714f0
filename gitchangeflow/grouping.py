"""Greedy similarity clustering of working-tree changes."""
import uuid
from pathlib import PurePosixPath
from typing import Iterable, List

from .models import ChangeGroup, FileChange, ProviderChange

SIMILARITY_THRESHOLD = 0.4


def extract_domain(path: str) -> str:
    """Derive the grouping key for a path.

    ``src/domains/<x>/...`` maps to ``x``, ``src/infrastructure/...`` maps to
    ``infrastructure``; anything else uses its first path segment.
    """
    parts = path.split("/")
    if parts[0] == "src" and len(parts) > 1 and parts[1]:
        if parts[1] == "domains" and len(parts) > 2 and parts[2]:
            return parts[2]
        if parts[1] == "infrastructure":
            return "infrastructure"
    return parts[0] or "root"


def file_type(path: str) -> str:
    return PurePosixPath(path).suffix.lower()


def build_file_changes(changes: Iterable[ProviderChange]) -> List[FileChange]:
    """Attach domain and file type metadata to provider changes."""
    return [
        FileChange(
            path=change.path,
            status=change.status,
            domain=extract_domain(change.path),
            file_type=file_type(change.path),
            additions=change.additions,
            deletions=change.deletions,
            original_path=change.original_path,
        )
        for change in changes
    ]


class ChangeGrouper:
    """Partitions file changes into groups of related edits.

    Each pass takes the first ungrouped change as a seed and pulls in every
    remaining change scoring above the threshold against that seed. The
    result depends only on input order.
    """

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD):
        self.threshold = threshold

    def group(self, changes: List[FileChange]) -> List[ChangeGroup]:
        groups: List[ChangeGroup] = []
        ungrouped = list(changes)

        while ungrouped:
            seed = ungrouped.pop(0)
            members = [seed]
            remaining = []
            for candidate in ungrouped:
                if self.score(seed, candidate) > self.threshold:
                    members.append(candidate)
                else:
                    remaining.append(candidate)
            ungrouped = remaining

            if len(members) > 1:
                total = sum(self.score(seed, member) for member in members[1:])
                similarity = min(1.0, total / (len(members) - 1))
            else:
                similarity = 1.0

            groups.append(ChangeGroup(
                id=uuid.uuid4().hex[:9],
                files=members,
                similarity=similarity,
            ))

        return groups

    @staticmethod
    def score(a: FileChange, b: FileChange) -> float:
        """Similarity of two changes in [0, 1]."""
        status_match = 1.0 if a.status == b.status else 0.5
        domain_match = 1.0 if a.domain == b.domain else 0.0
        type_match = 0.5 if a.file_type == b.file_type else 0.2
        return (status_match + domain_match + type_match) / 3
