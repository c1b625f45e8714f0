"""Inbound change analysis: what would a pull bring in, and where does it collide?

The analyzer fetches the remote, diffs ``HEAD`` against the remote tracking
branch, and compares the touched paths with the local working-tree changes.
Nothing is merged or checked out; the fetch is the only side effect.
"""
import logging
import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from .errors import AppError, ErrorCode
from .models import (
    ChangesSummary,
    ChangeStatus,
    ConflictCounts,
    ConflictEntry,
    InboundReport,
    Severity,
)
from .observers import GitOperationObserver
from .provider import DEFAULT_REMOTE, GitProvider
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)

MAX_NAMED_CONFLICTS = 3
LOCAL_REF = "local"

# (local, remote) -> (severity, estimate local side, estimate remote side)
CONFLICT_RULES: Dict[Tuple[ChangeStatus, ChangeStatus], Tuple[Severity, bool, bool]] = {
    (ChangeStatus.MODIFIED, ChangeStatus.MODIFIED): (Severity.HIGH, True, True),
    (ChangeStatus.MODIFIED, ChangeStatus.DELETED): (Severity.HIGH, True, False),
    (ChangeStatus.DELETED, ChangeStatus.MODIFIED): (Severity.HIGH, False, True),
    (ChangeStatus.ADDED, ChangeStatus.ADDED): (Severity.MEDIUM, True, True),
}

NAME_STATUS_CODES = {
    "A": ChangeStatus.ADDED,
    "M": ChangeStatus.MODIFIED,
    "D": ChangeStatus.DELETED,
    "R": ChangeStatus.RENAMED,
    "C": ChangeStatus.ADDED,
    "T": ChangeStatus.MODIFIED,
}

COMPARE_URLS = (
    ("github.com", "https://github.com/{owner}/{repo}/compare/{branch}...{remote}/{branch}"),
    ("gitlab.com", "https://gitlab.com/{owner}/{repo}/-/compare/{branch}...{remote}/{branch}"),
    ("bitbucket.org", "https://bitbucket.org/{owner}/{repo}/compare/{branch}...{remote}/{branch}"),
)

NO_REMOTE_CHANGES = "No remote changes detected. Fully synced."
SAFE_TO_PULL = "No conflicts detected. Safe to pull."


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


def fallback_diff_hint(remote: str, branch: str) -> str:
    return f"View with: git diff HEAD..{remote}/{branch}"


def parse_name_status(
    diff_output: str, log: Optional[logging.Logger] = None
) -> Dict[str, ChangeStatus]:
    """Parse ``git diff --name-status`` output into a path -> status map.

    Blank lines, lines with fewer than two fields and unknown status letters
    are skipped. Rename and copy lines map their destination path. Never
    raises; an unexpected failure logs a warning and returns what was parsed.
    """
    log = log or logger
    changes: Dict[str, ChangeStatus] = {}
    if not diff_output or not isinstance(diff_output, str):
        return changes

    try:
        for line in diff_output.splitlines():
            if not line.strip():
                continue

            # name-status separates fields with tabs; fall back to any whitespace
            if "\t" in line:
                parts = [part.strip() for part in line.split("\t")]
            else:
                parts = line.split()
            parts = [part for part in parts if part]
            if len(parts) < 2:
                log.debug("Skipping malformed diff line: %s", line)
                continue

            code = parts[0][0].upper()
            status = NAME_STATUS_CODES.get(code)
            if status is None:
                log.debug("Skipping diff line with unknown status %r: %s", parts[0], line)
                continue

            if code in ("R", "C"):
                if len(parts) < 3:
                    log.debug("Skipping rename line without destination: %s", line)
                    continue
                path = parts[2]
            else:
                path = parts[1]
            changes[path] = status
    except Exception as e:
        log.warning(
            "Failed to parse git diff output; returning %d parsed entries: %s",
            len(changes), e,
            extra={"code": ErrorCode.INBOUND_DIFF_PARSE_ERROR.value},
        )
    return changes


def estimate_changes(path: str, ref: str) -> int:
    """Placeholder magnitude for one side of a conflict, in [1, 100].

    This is a Java-style 32-bit string hash over the UTF-16 code units of
    ``path|ref``, not a line count. It is stable across runs and never
    drives severity.
    """
    data = f"{path}|{ref}".encode("utf-16-le", "surrogatepass")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value) % 100 + 1


def classify_conflicts(
    inbound: Dict[str, ChangeStatus],
    local: Dict[str, ChangeStatus],
    remote_ref: str,
) -> List[ConflictEntry]:
    """Compare inbound and local status maps and record overlapping edits."""
    conflicts = []
    for path, remote_status in inbound.items():
        local_status = local.get(path)
        if local_status is None:
            continue
        rule = CONFLICT_RULES.get((local_status, remote_status))
        if rule is None:
            continue
        severity, estimate_local, estimate_remote = rule
        conflicts.append(ConflictEntry(
            path=path,
            local_status=local_status,
            remote_status=remote_status,
            severity=severity,
            local_changes=estimate_changes(path, LOCAL_REF) if estimate_local else 0,
            remote_changes=estimate_changes(path, remote_ref) if estimate_remote else 0,
        ))
    return conflicts


def recommendations(conflicts: List[ConflictEntry]) -> List[str]:
    recs = []

    high = [c for c in conflicts if c.severity == Severity.HIGH]
    if high:
        recs.append(f"Review {_plural(len(high), 'high-severity conflict')}")
        for conflict in high[:MAX_NAMED_CONFLICTS]:
            if conflict.local_status == ChangeStatus.DELETED:
                action = "deleted"
            elif conflict.local_status == ChangeStatus.ADDED:
                action = "added"
            else:
                action = "modified"
            recs.append(f"  - You {action} {conflict.path}, remote changed it")

    medium = [c for c in conflicts if c.severity == Severity.MEDIUM]
    if medium:
        recs.append(f"Both sides added {_plural(len(medium), 'file')}")

    if not conflicts:
        recs.append(SAFE_TO_PULL)

    return recs


def summarize(
    inbound: Dict[str, ChangeStatus], conflicts: List[ConflictEntry]
) -> ChangesSummary:
    counts = ConflictCounts(
        high=sum(1 for c in conflicts if c.severity == Severity.HIGH),
        medium=sum(1 for c in conflicts if c.severity == Severity.MEDIUM),
        low=sum(1 for c in conflicts if c.severity == Severity.LOW),
    )

    file_types: Dict[str, int] = {}
    for path in inbound:
        key = PurePosixPath(path).suffix.lower() or "(none)"
        file_types[key] = file_types.get(key, 0) + 1

    inbound_text = _plural(len(inbound), "inbound change")
    if conflicts:
        description = f"{_plural(len(conflicts), 'potential conflict')} in {inbound_text}"
    else:
        description = f"0 conflicts in {inbound_text}"

    return ChangesSummary(
        description=description,
        conflicts=counts,
        file_types=file_types,
        recommendations=recommendations(conflicts),
    )


def build_diff_link(remote_url: str, branch: str, remote: str = DEFAULT_REMOTE) -> str:
    """Build a compare URL for known hosts, or a ``git diff`` hint otherwise."""
    fallback = fallback_diff_hint(remote, branch or "HEAD")
    try:
        for host, template in COMPARE_URLS:
            if host not in remote_url:
                continue
            match = re.search(re.escape(host) + r"[:/](.+?)/(.+?)(?:\.git)?/?$", remote_url.strip())
            if match:
                return template.format(
                    owner=match.group(1).strip().lstrip("/"),
                    repo=match.group(2).strip(),
                    branch=branch,
                    remote=remote,
                )
    except Exception as e:
        logger.warning("Failed to generate diff link for %r; using fallback: %s", remote_url, e)
    return fallback


class InboundAnalyzer:
    """Detects conflicts between local edits and the remote tracking branch."""

    def __init__(
        self,
        provider: GitProvider,
        remote: str = DEFAULT_REMOTE,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.remote = remote
        self.logger = logger or logging.getLogger(__name__)
        self.observers: List[GitOperationObserver] = []

    def add_observer(self, observer: GitOperationObserver) -> None:
        self.observers.append(observer)

    async def analyze(self) -> Result[InboundReport]:
        """Analyze incoming changes from the remote without pulling.

        Provider failures are returned unchanged. An empty or detached branch
        and any unexpected exception, including one raised by an observer,
        produce ``INBOUND_ANALYSIS_ERROR``.
        """
        try:
            result = await self._analyze()
            if isinstance(result, Ok):
                for observer in self.observers:
                    await observer.on_inbound_analyzed(result.value)
            return result
        except Exception as e:
            self.logger.error("Unexpected error during inbound analysis: %s", e)
            return Err(AppError(
                code=ErrorCode.INBOUND_ANALYSIS_ERROR,
                message="Failed to analyze inbound changes; check git is installed with: git --version",
                details=e,
                context="InboundAnalyzer.analyze",
            ))

    async def _analyze(self) -> Result[InboundReport]:
        self.logger.info("Fetching from %s...", self.remote)
        fetch_result = await self.provider.fetch(self.remote)
        if isinstance(fetch_result, Err):
            return fetch_result

        branch_result = await self.provider.get_current_branch()
        if isinstance(branch_result, Err):
            return branch_result

        branch = branch_result.value
        if not branch or not isinstance(branch, str) or branch.strip() in ("", "HEAD"):
            return Err(AppError(
                code=ErrorCode.INBOUND_ANALYSIS_ERROR,
                message=f"Invalid branch name from git provider: {branch!r}",
                context="InboundAnalyzer.analyze",
            ))
        branch = branch.strip()
        upstream = f"{self.remote}/{branch}"

        diff_result = await self.provider.diff(f"HEAD..{upstream}", ["--name-status"])
        if isinstance(diff_result, Err):
            return diff_result

        inbound_diff = diff_result.value
        if inbound_diff is None:
            return Err(AppError(
                code=ErrorCode.INBOUND_DIFF_PARSE_ERROR,
                message="Git provider returned no diff output",
                context="InboundAnalyzer.analyze",
            ))

        if not inbound_diff.strip():
            self.logger.info("%s is up-to-date with HEAD", upstream)
            return Ok(InboundReport(
                remote=self.remote,
                branch=branch,
                total_inbound=0,
                total_local=0,
                conflicts=[],
                summary=ChangesSummary(
                    description="Remote branch is up-to-date",
                    recommendations=[NO_REMOTE_CHANGES],
                ),
                diff_link=fallback_diff_hint(self.remote, branch),
            ))

        local_result = await self.provider.get_all_changes()
        if isinstance(local_result, Err):
            return local_result
        local = {change.path: change.status for change in local_result.value}

        inbound = parse_name_status(inbound_diff, self.logger)
        if not inbound:
            self.logger.warning("No inbound changes parsed from diff of %s", upstream)

        conflicts = classify_conflicts(inbound, local, upstream)
        summary = summarize(inbound, conflicts)

        diff_link = fallback_diff_hint(self.remote, branch)
        url_result = await self.provider.get_remote_url(self.remote)
        if isinstance(url_result, Ok) and url_result.value:
            diff_link = build_diff_link(url_result.value, branch, self.remote)
        elif isinstance(url_result, Err):
            self.logger.debug("Could not read remote URL: %s", url_result.error)

        self.logger.info(
            "Inbound analysis complete: %d remote changes, %d conflicts",
            len(inbound), len(conflicts),
        )
        return Ok(InboundReport(
            remote=self.remote,
            branch=branch,
            total_inbound=len(inbound),
            total_local=len(local),
            conflicts=conflicts,
            summary=summary,
            diff_link=diff_link,
        ))
