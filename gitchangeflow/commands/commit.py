"""Command for committing one change group."""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..errors import AppError, ErrorCode
from ..models import ChangeGroup, CommitRecord
from ..provider import GitProvider
from ..result import Err, Ok, Result
from .base import GitCommand


class CommitGroupCommand(GitCommand):
    """Stages a single change group and commits exactly its paths.

    The commit is restricted to the group's paths, so files another group
    (or the user) already staged stay staged and out of this commit. The
    sources of staged renames are part of the commit but are never passed
    to ``git add``, since they no longer exist on disk.

    Attributes:
        group (ChangeGroup): The group to commit; must carry a suggested message
        record (Optional[CommitRecord]): The commit created by execute()
    """

    def __init__(
        self,
        provider: GitProvider,
        group: ChangeGroup,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(provider, logger)
        self.group = group
        self.record: Optional[CommitRecord] = None

    async def execute(self) -> Result[CommitRecord]:
        """Stage and commit the group.

        Provider failures are wrapped with ``STAGE_FAILED`` or
        ``COMMIT_FAILED``; the provider's own error is kept as ``details``.
        Unexpected exceptions propagate to the caller.
        """
        paths = self.group.paths
        message = self.group.suggested_message.full

        stage_result = await self.provider.stage(paths)
        if isinstance(stage_result, Err):
            return Err(AppError(
                code=ErrorCode.STAGE_FAILED,
                message=f"Failed to stage files for group {self.group.id}",
                details=stage_result.error,
                context="CommitGroupCommand.execute",
            ))

        commit_result = await self.provider.commit(message, paths=self.group.commit_paths)
        if isinstance(commit_result, Err):
            return Err(AppError(
                code=ErrorCode.COMMIT_FAILED,
                message=f"Failed to commit group {self.group.id}",
                details=commit_result.error,
                context="CommitGroupCommand.execute",
            ))

        self.record = CommitRecord(
            hash=commit_result.value,
            message=message,
            files=paths,
            timestamp=datetime.now(timezone.utc),
        )
        return Ok(self.record)
