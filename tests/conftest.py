import tempfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from git import Repo

from gitchangeflow.models import (
    ChangeGroup,
    ChangeStatus,
    FileChange,
    GitStatus,
    ProviderChange,
    PullResult,
    SuggestedMessage,
)
from gitchangeflow.grouping import extract_domain, file_type
from gitchangeflow.provider import GitProvider
from gitchangeflow.result import Ok

pytest_plugins = ('pytest_asyncio',)


def configure_identity(repo: Repo) -> None:
    """Give a test repository a committer identity for ``git commit``."""
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


def make_change(
    path: str,
    status: ChangeStatus = ChangeStatus.MODIFIED,
    original_path: Optional[str] = None,
) -> FileChange:
    return FileChange(
        path=path,
        status=status,
        domain=extract_domain(path),
        file_type=file_type(path),
        original_path=original_path,
    )


def make_group(
    group_id: str,
    paths: List[str],
    message: Optional[str] = "chore(test): update files",
) -> ChangeGroup:
    group = ChangeGroup(id=group_id, files=[make_change(p) for p in paths])
    if message is not None:
        group.suggested_message = SuggestedMessage(
            type="chore", scope="test", description="update files", full=message
        )
    return group


@pytest.fixture
def mock_provider():
    """A GitProvider whose async methods all succeed by default."""
    provider = Mock(spec=GitProvider)
    provider.status = AsyncMock(return_value=Ok(GitStatus(branch="main", is_dirty=False)))
    provider.get_all_changes = AsyncMock(return_value=Ok([]))
    provider.stage = AsyncMock(return_value=Ok(None))
    provider.commit = AsyncMock(side_effect=[Ok(f"hash{i}") for i in range(1, 20)])
    provider.reset = AsyncMock(return_value=Ok(None))
    provider.pull = AsyncMock(
        return_value=Ok(PullResult(branch="main", message="Already up to date."))
    )
    provider.fetch = AsyncMock(return_value=Ok(None))
    provider.get_current_branch = AsyncMock(return_value=Ok("main"))
    provider.get_remote_url = AsyncMock(return_value=Ok("https://github.com/acme/widgets.git"))
    provider.diff = AsyncMock(return_value=Ok(""))
    return provider


@pytest.fixture
def provider_changes():
    return [
        ProviderChange(path="src/domains/git/a.ts", status=ChangeStatus.MODIFIED),
        ProviderChange(path="src/domains/git/b.ts", status=ChangeStatus.MODIFIED),
        ProviderChange(path="docs/guide.md", status=ChangeStatus.ADDED),
    ]


@pytest.fixture
def temp_git_repo():
    """Create a temporary git repository for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        # Initialize git repo
        repo = Repo.init(tmp_dir)
        configure_identity(repo)

        # Create a test file
        test_file = Path(tmp_dir) / "test.txt"
        test_file.write_text("Initial content")

        # Initial commit
        repo.index.add(["test.txt"])
        repo.index.commit("Initial commit")

        yield tmp_dir


@pytest.fixture
def empty_git_repo():
    """Create a repository without any commits."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        repo = Repo.init(tmp_dir)
        configure_identity(repo)
        yield tmp_dir


@pytest.fixture
def temp_git_repo_with_remote():
    """Create a repository cloned from a bare remote plus a second clone.

    Yields ``(local_path, other_path)``; commits pushed from the other clone
    become inbound changes for the local one.
    """
    with tempfile.TemporaryDirectory() as tmp_dir:
        origin_path = Path(tmp_dir) / "origin.git"
        local_path = Path(tmp_dir) / "local"
        other_path = Path(tmp_dir) / "other"

        Repo.init(origin_path, bare=True)

        local = Repo.init(local_path)
        configure_identity(local)
        (local_path / "test.txt").write_text("Initial content\n")
        (local_path / "shared.py").write_text("print('hello')\n")
        local.index.add(["test.txt", "shared.py"])
        local.index.commit("Initial commit")
        local.create_remote("origin", str(origin_path))
        local.git.push("-u", "origin", local.active_branch.name)

        other = Repo.clone_from(str(origin_path), str(other_path))
        configure_identity(other)

        yield str(local_path), str(other_path)
