"""Version-control provider used by the orchestration engine.

Every provider method returns a ``Result`` instead of raising, so callers
can forward provider failures to the user unchanged. ``GitPythonProvider``
is the concrete implementation backed by GitPython.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from git import Repo
from git.exc import GitError

from .errors import AppError, ErrorCode
from .models import ChangeStatus, GitStatus, ProviderChange, PullResult
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
RESET_MODES = ("soft", "mixed", "hard")


class GitProvider(ABC):
    """Abstract interface for the git operations the engine needs."""

    @abstractmethod
    async def status(self, branch: Optional[str] = None) -> Result[GitStatus]:
        pass

    @abstractmethod
    async def get_all_changes(self) -> Result[List[ProviderChange]]:
        pass

    @abstractmethod
    async def stage(self, paths: List[str]) -> Result[None]:
        pass

    @abstractmethod
    async def commit(
        self, message: str, branch: Optional[str] = None, paths: Optional[List[str]] = None
    ) -> Result[str]:
        """Commit and return the new commit hash.

        Without ``paths`` the whole index is committed; with ``paths`` only
        those paths are, and anything else staged stays staged.
        """
        pass

    @abstractmethod
    async def pull(
        self, remote: Optional[str] = None, branch: Optional[str] = None
    ) -> Result[PullResult]:
        pass

    @abstractmethod
    async def reset(self, mode: str, ref: str) -> Result[None]:
        pass

    @abstractmethod
    async def fetch(self, remote: Optional[str] = None) -> Result[None]:
        pass

    @abstractmethod
    async def get_current_branch(self) -> Result[str]:
        pass

    @abstractmethod
    async def get_remote_url(self, remote: Optional[str] = None) -> Result[str]:
        pass

    @abstractmethod
    async def diff(
        self, revision_range: str, options: Optional[List[str]] = None
    ) -> Result[str]:
        """Return the raw output of ``git diff [options] <revision_range>``."""
        pass


def _status_from_code(code: str) -> ChangeStatus:
    if code in ("A", "?"):
        return ChangeStatus.ADDED
    if code == "D":
        return ChangeStatus.DELETED
    if code in ("R", "C"):
        return ChangeStatus.RENAMED
    return ChangeStatus.MODIFIED


def _to_int(value: str) -> int:
    # numstat reports "-" for binary files
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


class GitPythonProvider(GitProvider):
    """GitProvider backed by a GitPython ``Repo``."""

    def __init__(self, repo_path: str):
        self.repo = Repo(repo_path)
        self.repo_path = repo_path

    def _git(self, command: str, *args: str) -> Result[str]:
        """Run ``git <command> <args>`` and wrap failures in an ``Err``."""
        logger.debug("Executing git %s %s", command, " ".join(args))
        try:
            output = getattr(self.repo.git, command)(*args)
        except GitError as e:
            logger.debug("git %s failed: %s", command, e)
            return Err(AppError(
                code=ErrorCode.GIT_OPERATION_FAILED,
                message=f"git {command.replace('_', '-')} failed: {e}",
                details=e,
                context="GitPythonProvider",
            ))
        return Ok(output)

    def _is_safe_path(self, path: str) -> bool:
        """Check that a path stays inside the repository."""
        try:
            resolved_root = Path(self.repo_path).resolve()
            file_path = (Path(self.repo_path) / path).resolve()
            return file_path == resolved_root or resolved_root in file_path.parents
        except (OSError, ValueError):
            return False

    def _porcelain_entries(self) -> Result[List[Tuple[str, str, str, Optional[str]]]]:
        """Return ``(index_code, worktree_code, path, source)`` for each status entry.

        ``source`` is the original path of a rename or copy, else None.
        """
        result = self._git("status", "--porcelain=v1", "-z", "--untracked-files=all")
        if isinstance(result, Err):
            return result

        entries = []
        tokens = [token for token in result.value.split("\0") if token]
        i = 0
        while i < len(tokens):
            token = tokens[i]
            i += 1
            if len(token) < 4:
                continue
            x, y, path = token[0], token[1], token[3:]
            source = None
            if x in ("R", "C") or y in ("R", "C"):
                # -z emits the rename source as a separate entry
                if i < len(tokens):
                    source = tokens[i]
                i += 1
            entries.append((x, y, path, source))
        return Ok(entries)

    def _numstat(self, *args: str) -> Result[Dict[str, Tuple[int, int]]]:
        result = self._git("diff", "--numstat", *args)
        if isinstance(result, Err):
            return result

        stats: Dict[str, Tuple[int, int]] = {}
        for line in result.value.splitlines():
            parts = line.split("\t")
            if len(parts) < 3 or not parts[2].strip():
                continue
            path = parts[2].strip()
            additions, deletions = stats.get(path, (0, 0))
            stats[path] = (additions + _to_int(parts[0]), deletions + _to_int(parts[1]))
        return Ok(stats)

    async def status(self, branch: Optional[str] = None) -> Result[GitStatus]:
        branch_result = await self.get_current_branch()
        if isinstance(branch_result, Err):
            return branch_result

        entries_result = self._porcelain_entries()
        if isinstance(entries_result, Err):
            return entries_result

        staged = unstaged = untracked = 0
        for x, y, _, _ in entries_result.value:
            if x == "?":
                untracked += 1
                continue
            if x != " ":
                staged += 1
            if y not in (" ", "?"):
                unstaged += 1

        return Ok(GitStatus(
            branch=branch_result.value,
            is_dirty=bool(entries_result.value),
            staged=staged,
            unstaged=unstaged,
            untracked=untracked,
        ))

    async def get_all_changes(self) -> Result[List[ProviderChange]]:
        entries_result = self._porcelain_entries()
        if isinstance(entries_result, Err):
            return entries_result

        stats: Dict[str, Tuple[int, int]] = {}
        # An unborn HEAD has nothing to diff the index against
        if self.repo.head.is_valid():
            for numstat_args in (("--cached",), ()):
                numstat_result = self._numstat(*numstat_args)
                if isinstance(numstat_result, Err):
                    return numstat_result
                for path, (additions, deletions) in numstat_result.value.items():
                    total_add, total_del = stats.get(path, (0, 0))
                    stats[path] = (total_add + additions, total_del + deletions)

        changes = []
        for x, y, path, source in entries_result.value:
            if not self._is_safe_path(path):
                logger.warning("Skipping path outside repository: %s", path)
                continue
            code = x if x != " " else y
            additions, deletions = stats.get(path, (0, 0))
            changes.append(ProviderChange(
                path=path,
                status=_status_from_code(code),
                additions=additions,
                deletions=deletions,
                original_path=source if code == "R" else None,
            ))
        return Ok(changes)

    async def stage(self, paths: List[str]) -> Result[None]:
        if not paths:
            return Ok(None)
        result = self._git("add", "--", *paths)
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def commit(
        self, message: str, branch: Optional[str] = None, paths: Optional[List[str]] = None
    ) -> Result[str]:
        args = ["-m", message]
        if paths:
            args += ["--", *paths]
        result = self._git("commit", *args)
        if isinstance(result, Err):
            return result
        return Ok(self.repo.head.commit.hexsha)

    async def reset(self, mode: str, ref: str) -> Result[None]:
        if mode not in RESET_MODES:
            return Err(AppError(
                code=ErrorCode.INVALID_PARAMS,
                message=f"Unsupported reset mode: {mode}",
                context="GitPythonProvider.reset",
            ))
        result = self._git("reset", f"--{mode}", ref)
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def pull(
        self, remote: Optional[str] = None, branch: Optional[str] = None
    ) -> Result[PullResult]:
        branch_result = await self.get_current_branch()
        if isinstance(branch_result, Err):
            return branch_result

        # Naming the branch avoids depending on upstream tracking config
        result = self._git("pull", remote or DEFAULT_REMOTE, branch or branch_result.value)
        if isinstance(result, Err):
            return result
        return Ok(PullResult(
            branch=branch_result.value,
            message=result.value.strip() or "Already up to date.",
        ))

    async def fetch(self, remote: Optional[str] = None) -> Result[None]:
        result = self._git("fetch", remote or DEFAULT_REMOTE)
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def get_current_branch(self) -> Result[str]:
        if self.repo.head.is_valid():
            result = self._git("rev_parse", "--abbrev-ref", "HEAD")
        else:
            # Unborn branch: rev-parse cannot resolve HEAD before the first commit
            result = self._git("symbolic_ref", "--short", "HEAD")
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    async def get_remote_url(self, remote: Optional[str] = None) -> Result[str]:
        result = self._git("remote", "get-url", remote or DEFAULT_REMOTE)
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    async def diff(
        self, revision_range: str, options: Optional[List[str]] = None
    ) -> Result[str]:
        return self._git("diff", *(options or []), revision_range)
