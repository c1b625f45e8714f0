"""Observer pattern for git operations."""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console

from .models import CommitRecord, InboundReport


class GitOperationObserver(ABC):
    """Abstract base class for git operation observers."""

    @abstractmethod
    async def on_commit_created(self, record: CommitRecord) -> None:
        """Called when a group has been committed."""
        pass

    @abstractmethod
    async def on_batch_rolled_back(self, commit_count: int, success: bool) -> None:
        """Called after a failed batch attempted to undo its commits."""
        pass

    @abstractmethod
    async def on_inbound_analyzed(self, report: InboundReport) -> None:
        """Called when an inbound analysis completes."""
        pass


class ConsoleLogObserver(GitOperationObserver):
    """Observer that logs git operations to the console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def on_commit_created(self, record: CommitRecord) -> None:
        self.console.print(
            f"[green]Created commit {record.hash[:8]}: {record.message}[/green]"
        )

    async def on_batch_rolled_back(self, commit_count: int, success: bool) -> None:
        if success:
            self.console.print(
                f"[yellow]Rolled back {commit_count} commit(s); your changes are still staged[/yellow]"
            )
        else:
            self.console.print(
                f"[red]Failed to roll back {commit_count} commit(s)[/red]"
            )

    async def on_inbound_analyzed(self, report: InboundReport) -> None:
        self.console.print(
            f"[blue]Analyzed {report.remote}/{report.branch}: {report.summary.description}[/blue]"
        )


class FileLogObserver(GitOperationObserver):
    """Observer that logs git operations to a file."""

    def __init__(self, log_file: str):
        self.log_file = Path(log_file)
        # Ensure the parent directory exists
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    async def _log(self, message: str) -> None:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self.log_file.open("a") as f:
            f.write(f"{timestamp} - {message}\n")

    async def on_commit_created(self, record: CommitRecord) -> None:
        await self._log(f"Created commit {record.hash}: {record.message}")

    async def on_batch_rolled_back(self, commit_count: int, success: bool) -> None:
        if success:
            await self._log(f"Rolled back {commit_count} commit(s)")
        else:
            await self._log(f"Failed to roll back {commit_count} commit(s)")

    async def on_inbound_analyzed(self, report: InboundReport) -> None:
        await self._log(
            f"Inbound analysis of {report.remote}/{report.branch}: "
            f"{report.summary.description}"
        )
