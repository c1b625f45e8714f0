"""Shared models for gitchangeflow."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ChangeStatus(str, Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"


class CommitType(str, Enum):
    FEAT = "feat"
    FIX = "fix"
    DOCS = "docs"
    REFACTOR = "refactor"
    CHORE = "chore"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class FileChange:
    path: str
    status: ChangeStatus
    domain: str
    file_type: str
    additions: int = 0
    deletions: int = 0
    # Source path of a staged rename
    original_path: Optional[str] = None


@dataclass(frozen=True)
class ProviderChange:
    """A changed path as reported by ``GitProvider.get_all_changes``."""

    path: str
    status: ChangeStatus
    additions: int = 0
    deletions: int = 0
    original_path: Optional[str] = None


class SuggestedMessage(BaseModel):
    type: CommitType
    scope: str = ""
    description: str
    full: str


@dataclass
class ChangeGroup:
    id: str
    files: List[FileChange]
    similarity: float = 1.0
    suggested_message: Optional[SuggestedMessage] = None

    @property
    def paths(self) -> List[str]:
        return [change.path for change in self.files]

    @property
    def commit_paths(self) -> List[str]:
        """Paths to commit, including the sources of renamed files."""
        paths = self.paths
        for change in self.files:
            if change.original_path and change.original_path not in paths:
                paths.append(change.original_path)
        return paths


class CommitRecord(BaseModel):
    hash: str
    message: str
    files: List[str]
    timestamp: datetime


class ConflictEntry(BaseModel):
    path: str
    local_status: ChangeStatus
    remote_status: ChangeStatus
    severity: Severity
    local_changes: int = Field(ge=0)
    remote_changes: int = Field(ge=0)


class ConflictCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class ChangesSummary(BaseModel):
    description: str
    conflicts: ConflictCounts = Field(default_factory=ConflictCounts)
    file_types: Dict[str, int] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)


class InboundReport(BaseModel):
    remote: str
    branch: str
    total_inbound: int
    total_local: int
    conflicts: List[ConflictEntry] = Field(default_factory=list)
    summary: ChangesSummary
    diff_link: str


class GitStatus(BaseModel):
    branch: str
    is_dirty: bool
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0


class PullResult(BaseModel):
    branch: str
    message: str


class SmartCommitResult(BaseModel):
    commits: List[CommitRecord]
    total_files: int
    total_groups: int
    duration_ms: float = Field(description="Wall time of the whole smart commit run")


@dataclass
class SmartCommitPlan:
    """Groups proposed for one smart commit run, before execution."""

    changes: List[FileChange]
    groups: List[ChangeGroup] = field(default_factory=list)
    warnings: Dict[str, str] = field(default_factory=dict)
