"""Tests for inbound change analysis."""
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from git import Repo

from gitchangeflow.errors import AppError, ErrorCode
from gitchangeflow.inbound import (
    NO_REMOTE_CHANGES,
    SAFE_TO_PULL,
    InboundAnalyzer,
    build_diff_link,
    classify_conflicts,
    estimate_changes,
    parse_name_status,
    recommendations,
    summarize,
)
from gitchangeflow.models import ChangeStatus, ProviderChange, Severity
from gitchangeflow.observers import GitOperationObserver
from gitchangeflow.provider import GitPythonProvider
from gitchangeflow.result import Err, Ok

A = ChangeStatus.ADDED
M = ChangeStatus.MODIFIED
D = ChangeStatus.DELETED
R = ChangeStatus.RENAMED


class TestParseNameStatus:
    def test_basic_lines(self):
        output = "M\tsrc/a.py\nA\tsrc/new.py\nD\told.py\n"
        assert parse_name_status(output) == {"src/a.py": M, "src/new.py": A, "old.py": D}

    def test_rename_and_copy_use_destination(self):
        output = "R100\tsrc/old.py\tsrc/new.py\nC75\ttemplate.py\tcopy.py"
        assert parse_name_status(output) == {"src/new.py": R, "copy.py": A}

    def test_type_change_is_modification(self):
        assert parse_name_status("T\tlink") == {"link": M}

    def test_paths_with_spaces(self):
        assert parse_name_status("M\tdocs/my guide.md") == {"docs/my guide.md": M}

    def test_whitespace_separated_fallback(self):
        assert parse_name_status("M   src/a.py") == {"src/a.py": M}

    @pytest.mark.parametrize("output", ["", "   \n\n", "M", "X\tweird.py", "R100\tonly_source.py"])
    def test_malformed_lines_are_skipped(self, output):
        assert parse_name_status(output) == {}

    def test_none_returns_empty(self):
        assert parse_name_status(None) == {}

    def test_good_lines_survive_bad_ones(self):
        output = "garbage\nM\tkeep.py\n??\nZ\tskip.py"
        assert parse_name_status(output) == {"keep.py": M}


def test_estimate_changes_is_stable_and_bounded():
    for path in ["a.py", "src/domains/git/batch.ts", "x" * 500, ""]:
        for ref in ["local", "origin/main"]:
            value = estimate_changes(path, ref)
            assert 1 <= value <= 100
            assert value == estimate_changes(path, ref)


@pytest.mark.parametrize("path,ref,expected", [
    ("a", "b", 60),
    # Astral characters hash as two UTF-16 code units
    ("\U0001F680", "x", 12),
])
def test_estimate_changes_known_values(path, ref, expected):
    assert estimate_changes(path, ref) == expected


class TestClassifyConflicts:
    @pytest.mark.parametrize("local,remote,severity", [
        (M, M, Severity.HIGH),
        (M, D, Severity.HIGH),
        (D, M, Severity.HIGH),
        (A, A, Severity.MEDIUM),
    ])
    def test_conflicting_pairs(self, local, remote, severity):
        conflicts = classify_conflicts({"f.py": remote}, {"f.py": local}, "origin/main")
        assert len(conflicts) == 1
        assert conflicts[0].severity == severity
        assert conflicts[0].local_status == local
        assert conflicts[0].remote_status == remote

    @pytest.mark.parametrize("local,remote", [(D, D), (A, M), (M, A), (R, M), (M, R), (D, A)])
    def test_other_pairs_do_not_conflict(self, local, remote):
        assert classify_conflicts({"f.py": remote}, {"f.py": local}, "origin/main") == []

    def test_paths_on_one_side_only(self):
        assert classify_conflicts({"remote.py": M}, {"local.py": M}, "origin/main") == []

    def test_deleted_side_has_zero_magnitude(self):
        [local_deleted] = classify_conflicts({"f.py": M}, {"f.py": D}, "origin/main")
        assert local_deleted.local_changes == 0
        assert local_deleted.remote_changes == estimate_changes("f.py", "origin/main")

        [remote_deleted] = classify_conflicts({"f.py": D}, {"f.py": M}, "origin/main")
        assert remote_deleted.local_changes == estimate_changes("f.py", "local")
        assert remote_deleted.remote_changes == 0


def test_recommendations_name_at_most_three_high_conflicts():
    inbound = {f"f{i}.py": M for i in range(5)}
    conflicts = classify_conflicts(inbound, dict(inbound), "origin/main")

    recs = recommendations(conflicts)

    assert recs[0] == "Review 5 high-severity conflicts"
    assert recs[1:] == [
        "  - You modified f0.py, remote changed it",
        "  - You modified f1.py, remote changed it",
        "  - You modified f2.py, remote changed it",
    ]


def test_recommendations_without_conflicts():
    assert recommendations([]) == [SAFE_TO_PULL]


def test_summarize():
    inbound = {"a.py": M, "b.py": A, "Makefile": M, "docs/x.MD": D}
    local = {"a.py": M, "b.py": A}
    conflicts = classify_conflicts(inbound, local, "origin/main")

    summary = summarize(inbound, conflicts)

    assert summary.description == "2 potential conflicts in 4 inbound changes"
    assert (summary.conflicts.high, summary.conflicts.medium, summary.conflicts.low) == (1, 1, 0)
    assert summary.file_types == {".py": 2, "(none)": 1, ".md": 1}
    assert summary.recommendations == [
        "Review 1 high-severity conflict",
        "  - You modified a.py, remote changed it",
        "Both sides added 1 file",
    ]


def test_summarize_without_conflicts():
    summary = summarize({"a.py": M}, [])
    assert summary.description == "0 conflicts in 1 inbound change"
    assert summary.recommendations == [SAFE_TO_PULL]


class TestBuildDiffLink:
    @pytest.mark.parametrize("url,expected", [
        ("https://github.com/acme/widgets.git",
         "https://github.com/acme/widgets/compare/main...origin/main"),
        ("git@github.com:acme/widgets.git",
         "https://github.com/acme/widgets/compare/main...origin/main"),
        ("https://github.com/acme/widgets/",
         "https://github.com/acme/widgets/compare/main...origin/main"),
        ("https://gitlab.com/acme/widgets.git",
         "https://gitlab.com/acme/widgets/-/compare/main...origin/main"),
        ("git@bitbucket.org:acme/widgets.git",
         "https://bitbucket.org/acme/widgets/compare/main...origin/main"),
    ])
    def test_known_hosts(self, url, expected):
        assert build_diff_link(url, "main") == expected

    @pytest.mark.parametrize("url", [
        "",
        "/srv/git/widgets.git",
        "https://example.com/acme/widgets.git",
        "https://github.com/",
    ])
    def test_fallback(self, url):
        assert build_diff_link(url, "main") == "View with: git diff HEAD..origin/main"

    def test_custom_remote(self):
        assert build_diff_link("git@github.com:acme/widgets.git", "dev", "upstream") == (
            "https://github.com/acme/widgets/compare/dev...upstream/dev"
        )


@pytest.fixture
def observer():
    observer = Mock(spec=GitOperationObserver)
    observer.on_inbound_analyzed = AsyncMock()
    return observer


@pytest.mark.asyncio
async def test_up_to_date_short_circuit(mock_provider, observer):
    analyzer = InboundAnalyzer(mock_provider)
    analyzer.add_observer(observer)

    result = await analyzer.analyze()

    assert isinstance(result, Ok)
    report = result.value
    assert report.total_inbound == 0
    assert report.total_local == 0
    assert report.conflicts == []
    assert report.summary.description == "Remote branch is up-to-date"
    assert report.summary.recommendations == [NO_REMOTE_CHANGES]
    assert report.diff_link == "View with: git diff HEAD..origin/main"
    mock_provider.fetch.assert_awaited_once_with("origin")
    mock_provider.diff.assert_awaited_once_with("HEAD..origin/main", ["--name-status"])
    mock_provider.get_all_changes.assert_not_awaited()
    observer.on_inbound_analyzed.assert_awaited_once_with(report)


@pytest.mark.asyncio
async def test_analyze_reports_conflicts(mock_provider):
    mock_provider.diff.return_value = Ok(
        "M\tsrc/a.py\nD\tsrc/b.py\nA\tnew.py\nM\tdeleted_local.py\nM\tremote_only.py\n"
    )
    mock_provider.get_all_changes.return_value = Ok([
        ProviderChange(path="src/a.py", status=M),
        ProviderChange(path="src/b.py", status=M),
        ProviderChange(path="new.py", status=A),
        ProviderChange(path="deleted_local.py", status=D),
    ])

    report = (await InboundAnalyzer(mock_provider).analyze()).value

    assert report.total_inbound == 5
    assert report.total_local == 4
    assert {c.path: c.severity for c in report.conflicts} == {
        "src/a.py": Severity.HIGH,
        "src/b.py": Severity.HIGH,
        "new.py": Severity.MEDIUM,
        "deleted_local.py": Severity.HIGH,
    }
    assert report.summary.description == "4 potential conflicts in 5 inbound changes"
    assert report.summary.recommendations == [
        "Review 3 high-severity conflicts",
        "  - You modified src/a.py, remote changed it",
        "  - You modified src/b.py, remote changed it",
        "  - You deleted deleted_local.py, remote changed it",
        "Both sides added 1 file",
    ]
    assert report.diff_link == "https://github.com/acme/widgets/compare/main...origin/main"


@pytest.mark.asyncio
async def test_analyze_uses_configured_remote(mock_provider):
    await InboundAnalyzer(mock_provider, remote="upstream").analyze()

    mock_provider.fetch.assert_awaited_once_with("upstream")
    mock_provider.diff.assert_awaited_once_with("HEAD..upstream/main", ["--name-status"])


@pytest.mark.asyncio
async def test_fetch_failure_is_forwarded(mock_provider, observer):
    failure = Err(AppError(code=ErrorCode.GIT_OPERATION_FAILED, message="could not read from remote"))
    mock_provider.fetch.return_value = failure
    analyzer = InboundAnalyzer(mock_provider)
    analyzer.add_observer(observer)

    assert await analyzer.analyze() is failure
    observer.on_inbound_analyzed.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("branch", ["", "HEAD", "  "])
async def test_invalid_branch(mock_provider, branch):
    mock_provider.get_current_branch.return_value = Ok(branch)
    result = await InboundAnalyzer(mock_provider).analyze()

    assert result.error.code == ErrorCode.INBOUND_ANALYSIS_ERROR
    mock_provider.diff.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_diff_output(mock_provider):
    mock_provider.diff.return_value = Ok(None)
    result = await InboundAnalyzer(mock_provider).analyze()

    assert result.error.code == ErrorCode.INBOUND_DIFF_PARSE_ERROR


@pytest.mark.asyncio
async def test_remote_url_failure_uses_fallback_link(mock_provider):
    mock_provider.diff.return_value = Ok("M\ta.py")
    mock_provider.get_remote_url.return_value = Err(
        AppError(code=ErrorCode.GIT_OPERATION_FAILED, message="no such remote")
    )

    report = (await InboundAnalyzer(mock_provider).analyze()).value

    assert report.diff_link == "View with: git diff HEAD..origin/main"


@pytest.mark.asyncio
async def test_unexpected_exception(mock_provider):
    mock_provider.fetch.side_effect = RuntimeError("boom")
    result = await InboundAnalyzer(mock_provider).analyze()

    assert result.error.code == ErrorCode.INBOUND_ANALYSIS_ERROR
    assert isinstance(result.error.details, RuntimeError)


@pytest.mark.asyncio
async def test_observer_failure_is_reported(mock_provider):
    observer = Mock(spec=GitOperationObserver)
    observer.on_inbound_analyzed = AsyncMock(side_effect=OSError("disk full"))
    analyzer = InboundAnalyzer(mock_provider)
    analyzer.add_observer(observer)

    result = await analyzer.analyze()

    assert isinstance(result, Err)
    assert result.error.code == ErrorCode.INBOUND_ANALYSIS_ERROR
    assert isinstance(result.error.details, OSError)
    observer.on_inbound_analyzed.assert_awaited_once()


@pytest.mark.asyncio
async def test_analyze_real_remote(temp_git_repo_with_remote):
    local_path, other_path = temp_git_repo_with_remote

    other = Repo(other_path)
    (Path(other_path) / "test.txt").write_text("Remote edit\n")
    (Path(other_path) / "remote_only.md").write_text("# Remote\n")
    other.index.add(["test.txt", "remote_only.md"])
    other.index.commit("Remote changes")
    other.git.push("origin", other.active_branch.name)

    (Path(local_path) / "test.txt").write_text("Local edit\n")

    result = await InboundAnalyzer(GitPythonProvider(local_path)).analyze()

    assert isinstance(result, Ok)
    report = result.value
    branch = Repo(local_path).active_branch.name
    assert report.branch == branch
    assert report.total_inbound == 2
    assert report.total_local == 1
    assert [(c.path, c.severity) for c in report.conflicts] == [("test.txt", Severity.HIGH)]
    # A filesystem remote has no compare page
    assert report.diff_link == f"View with: git diff HEAD..origin/{branch}"


@pytest.mark.asyncio
async def test_analyze_real_remote_up_to_date(temp_git_repo_with_remote):
    local_path, _ = temp_git_repo_with_remote

    report = (await InboundAnalyzer(GitPythonProvider(local_path)).analyze()).value

    assert report.total_inbound == 0
    assert report.summary.recommendations == [NO_REMOTE_CHANGES]
