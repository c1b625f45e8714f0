"""Core functionality for gitchangeflow."""
import logging
import time
from typing import Callable, List, Optional

from .commands import CommitGroupCommand
from .commit_message import CommitMessageValidator, MessageSuggester
from .config import Config
from .errors import AppError, ErrorCode
from .grouping import ChangeGrouper, build_file_changes
from .inbound import InboundAnalyzer
from .models import (
    ChangeGroup,
    CommitRecord,
    GitStatus,
    PullResult,
    SmartCommitPlan,
    SmartCommitResult,
)
from .observers import GitOperationObserver
from .provider import GitProvider
from .result import Err, Ok, Result

ApprovalCallback = Callable[[List[ChangeGroup]], List[ChangeGroup]]


class BatchCommitter:
    """Commits approved groups in order, undoing the whole batch on failure.

    Rollback is a single soft reset to the parent of the first commit made in
    the batch, so no working-tree or index content is lost. The list of
    committed hashes is reset at the start of every ``execute_batch`` call;
    an instance must not run two batches at once.
    """

    def __init__(self, provider: GitProvider, logger: Optional[logging.Logger] = None):
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)
        self.observers: List[GitOperationObserver] = []
        self.committed_hashes: List[str] = []

    def add_observer(self, observer: GitOperationObserver) -> None:
        """Add an observer to be notified of commits and rollbacks."""
        self.observers.append(observer)

    async def execute_batch(self, groups: List[ChangeGroup]) -> Result[List[CommitRecord]]:
        """Stage and commit each group, returning the commit records.

        Returns:
            Result: ``Ok`` with one record per group, or the first failure
            (``STAGE_FAILED``, ``COMMIT_FAILED``, ``BATCH_COMMIT_ERROR``) after
            the batch's commits were rolled back
        """
        self.committed_hashes = []

        if not groups:
            return Err(AppError(
                code=ErrorCode.NO_GROUPS_APPROVED,
                message="No groups approved for commit",
                context="BatchCommitter.execute_batch",
            ))

        unnamed = [
            group.id for group in groups
            if group.suggested_message is None or not group.suggested_message.full.strip()
        ]
        if unnamed:
            return Err(AppError(
                code=ErrorCode.INVALID_PARAMS,
                message=f"Groups without a commit message: {', '.join(unnamed)}",
                context="BatchCommitter.execute_batch",
            ))

        commits: List[CommitRecord] = []
        try:
            for group in groups:
                command = CommitGroupCommand(self.provider, group, self.logger)
                result = await command.execute()
                if isinstance(result, Err):
                    self.logger.warning("%s", result.error)
                    await self.rollback()
                    return result

                record = result.value
                self.committed_hashes.append(record.hash)
                commits.append(record)
                self.logger.info("Committed group %s: %s", group.id, record.message)

                for observer in self.observers:
                    await observer.on_commit_created(record)

            return Ok(commits)
        except Exception as e:
            self.logger.error("Unexpected error during batch commit: %s", e)
            await self.rollback()
            return Err(AppError(
                code=ErrorCode.BATCH_COMMIT_ERROR,
                message="Unexpected error during batch commit",
                details=e,
                context="BatchCommitter.execute_batch",
            ))

    async def rollback(self) -> bool:
        """Undo every commit of the current batch with a soft reset.

        Failures are logged and reported through the return value only.
        """
        if not self.committed_hashes:
            return True

        count = len(self.committed_hashes)
        first_hash = self.committed_hashes[0]
        self.logger.info("Rolling back %d commits", count)

        success = False
        try:
            result = await self.provider.reset(mode="soft", ref=f"{first_hash}^")
            if isinstance(result, Err):
                self.logger.error("Rollback failed: could not reset to %s^: %s", first_hash, result.error)
            else:
                self.logger.info("Rollback successful")
                self.committed_hashes = []
                success = True

            for observer in self.observers:
                await observer.on_batch_rolled_back(count, success)
        except Exception as e:
            self.logger.error("Rollback failed: %s", e)
        return success


class SmartCommitWorkflow:
    """Collects working-tree changes and turns them into grouped commits."""

    def __init__(
        self,
        provider: GitProvider,
        grouper: Optional[ChangeGrouper] = None,
        suggester: Optional[MessageSuggester] = None,
        committer: Optional[BatchCommitter] = None,
        validator: Optional[CommitMessageValidator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)
        self.grouper = grouper or ChangeGrouper()
        self.suggester = suggester or MessageSuggester()
        self.committer = committer or BatchCommitter(provider, self.logger)
        self.validator = validator or CommitMessageValidator()

    async def plan(self) -> Result[SmartCommitPlan]:
        """Group the current changes and suggest a message for each group."""
        changes_result = await self.provider.get_all_changes()
        if isinstance(changes_result, Err):
            return Err(AppError(
                code=ErrorCode.GET_CHANGES_FAILED,
                message="Failed to get git changes",
                details=changes_result.error,
                context="SmartCommitWorkflow.plan",
            ))

        if not changes_result.value:
            return Err(AppError(
                code=ErrorCode.NO_CHANGES,
                message="No changes to commit",
                context="SmartCommitWorkflow.plan",
            ))

        changes = build_file_changes(changes_result.value)
        groups = self.suggester.attach(self.grouper.group(changes))
        self.logger.info("Grouped %d files into %d groups", len(changes), len(groups))

        plan = SmartCommitPlan(changes=changes, groups=groups)
        for group in groups:
            is_valid, reason = self.validator.validate_suggestion(group.suggested_message)
            if not is_valid:
                self.logger.warning("Message for group %s: %s", group.id, reason)
                plan.warnings[group.id] = reason
        return Ok(plan)

    async def run(
        self, auto_approve: bool = True, approve: Optional[ApprovalCallback] = None
    ) -> Result[SmartCommitResult]:
        """Plan, approve and commit.

        Args:
            auto_approve: Commit every proposed group without asking
            approve: Called with the proposed groups when ``auto_approve`` is
                False; returns the groups to commit

        Returns:
            Result: ``Ok(SmartCommitResult)``, or the first failure. Errors from
            the batch are forwarded unchanged.
        """
        start = time.perf_counter()
        try:
            plan_res = await self.plan()
            if isinstance(plan_res, Err):
                return plan_res
            plan = plan_res.value

            if auto_approve or approve is None:
                approved = plan.groups
            else:
                self.logger.info("Presenting %d groups for approval", len(plan.groups))
                approved = approve(plan.groups)

            if not approved:
                return Err(AppError(
                    code=ErrorCode.NO_GROUPS_APPROVED,
                    message="No groups approved for commit",
                    context="SmartCommitWorkflow.run",
                ))

            batch_result = await self.committer.execute_batch(approved)
            if isinstance(batch_result, Err):
                return batch_result

            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.info(
                "Smart commit completed: %d commits, %d files in %.0fms",
                len(batch_result.value), len(plan.changes), duration_ms,
            )
            return Ok(SmartCommitResult(
                commits=batch_result.value,
                total_files=len(plan.changes),
                total_groups=len(plan.groups),
                duration_ms=duration_ms,
            ))
        except Exception as e:
            self.logger.error("Smart commit error: %s", e)
            return Err(AppError(
                code=ErrorCode.SMART_COMMIT_ERROR,
                message="Failed to execute smart commit",
                details=e,
                context="SmartCommitWorkflow.run",
            ))


class GitDomainService:
    """Wires the orchestration components around one provider."""

    def __init__(
        self,
        provider: GitProvider,
        config: Optional[Config] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.config = config or Config()
        self.logger = logger or logging.getLogger(__name__)

        self.change_grouper = ChangeGrouper(self.config.similarity_threshold)
        self.message_suggester = MessageSuggester()
        self.batch_committer = BatchCommitter(provider, self.logger)
        self.inbound_analyzer = InboundAnalyzer(provider, self.config.remote_name, self.logger)
        self.smart_commit = SmartCommitWorkflow(
            provider,
            grouper=self.change_grouper,
            suggester=self.message_suggester,
            committer=self.batch_committer,
            logger=self.logger,
        )

    def add_observer(self, observer: GitOperationObserver) -> None:
        self.batch_committer.add_observer(observer)
        self.inbound_analyzer.add_observer(observer)

    async def initialize(self) -> Result[GitStatus]:
        """Verify git is usable by reading the repository status."""
        try:
            status_result = await self.provider.status()
            if isinstance(status_result, Err):
                return Err(AppError(
                    code=ErrorCode.GIT_UNAVAILABLE,
                    message="Git is not available or not initialized",
                    details=status_result.error,
                    context="GitDomainService.initialize",
                ))
            self.logger.info("Git initialized (branch: %s)", status_result.value.branch)
            return status_result
        except Exception as e:
            return Err(AppError(
                code=ErrorCode.GIT_INIT_ERROR,
                message="Failed to initialize git domain",
                details=e,
                context="GitDomainService.initialize",
            ))

    async def pull(self, branch: Optional[str] = None) -> Result[PullResult]:
        """Pull the configured remote into the current branch.

        Provider failures are returned unchanged; an unexpected exception
        produces ``GIT_PULL_ERROR``.
        """
        self.logger.info(
            "Pulling from git branch %s of %s", branch or "(current)", self.config.remote_name
        )
        try:
            return await self.provider.pull(self.config.remote_name, branch)
        except Exception as e:
            self.logger.error("Git pull error: %s", e)
            return Err(AppError(
                code=ErrorCode.GIT_PULL_ERROR,
                message="Failed to pull from git",
                details=e,
                context="GitDomainService.pull",
            ))

    async def commit(self, message: str, branch: Optional[str] = None) -> Result[str]:
        """Commit whatever is staged with ``message`` and return the new hash.

        Nothing is staged here. An empty message is ``INVALID_PARAMS`` and
        an unexpected exception produces ``GIT_COMMIT_ERROR``.
        """
        if not message or not message.strip():
            return Err(AppError(
                code=ErrorCode.INVALID_PARAMS,
                message="Commit message is required and cannot be empty",
                context="GitDomainService.commit",
            ))

        self.logger.info("Committing staged changes")
        try:
            result = await self.provider.commit(message, branch)
            if isinstance(result, Ok):
                self.logger.info("Created commit %s", result.value)
            return result
        except Exception as e:
            self.logger.error("Git commit error: %s", e)
            return Err(AppError(
                code=ErrorCode.GIT_COMMIT_ERROR,
                message="Failed to create git commit",
                details=e,
                context="GitDomainService.commit",
            ))
