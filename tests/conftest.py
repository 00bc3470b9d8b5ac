"""Shared fixtures: throwaway git repositories and an in-memory repository."""

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, Optional

import pytest

from changescope.config import ScmSettings
from changescope.git.commands import GitCommandError
from changescope.models import BlameLine, ChangedFile, Commit, Ref


# http://www.gnu.org/software/diffutils/manual/html_node/Example-Unified.html
CONTENT_LAO = (
    "The Way that can be told of is not the eternal Way;\n"
    "The name that can be named is not the eternal name.\n"
    "The Nameless is the origin of Heaven and Earth;\n"
    "The Named is the mother of all things.\n"
    "Therefore let there always be non-being,\n"
    "  so we may see their subtlety,\n"
    "And let there always be being,\n"
    "  so we may see their outcome.\n"
    "The two are the same,\n"
    "But after they are produced,\n"
    "  they have different names.\n"
)

CONTENT_TZU = (
    "The Nameless is the origin of Heaven and Earth;\n"
    "The named is the mother of all things.\n"
    "\n"
    "Therefore let there always be non-being,\n"
    "  so we may see their subtlety,\n"
    "And let there always be being,\n"
    "  so we may see their outcome.\n"
    "The two are the same,\n"
    "But after they are produced,\n"
    "  they have different names.\n"
    "They both may be called deep and profound.\n"
    "Deeper and more profound,\n"
    "The door of all subtleties!"
)


class GitRepo:
    """Small driver for building test repositories with the git CLI."""

    def __init__(self, path: Path):
        self.path = path
        self._clock = 1_500_000_000

    def git(self, *args: str, env: Optional[dict] = None) -> str:
        result = subprocess.run(
            ['git', *args],
            cwd=self.path, capture_output=True, text=True,
            env={**os.environ, **(env or {})},
        )
        if result.returncode != 0:
            raise RuntimeError(f"git {' '.join(args)} failed: {result.stderr}")
        return result.stdout.strip()

    def init(self) -> 'GitRepo':
        self.path.mkdir(parents=True, exist_ok=True)
        self.git('init')
        self.git('symbolic-ref', 'HEAD', 'refs/heads/master')
        self.git('config', 'user.email', 'test@example.com')
        self.git('config', 'user.name', 'Test User')
        self.git('config', 'commit.gpgsign', 'false')
        self.git('config', 'core.autocrlf', 'false')
        return self

    def write(self, relative: str, content: str | bytes) -> Path:
        target = self.path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_bytes(content.encode('utf-8'))
        return target

    def commit(self, message: str = 'commit', timestamp: Optional[int] = None) -> str:
        """Stage everything and commit; returns the new commit id."""
        if timestamp is None:
            self._clock += 60
            timestamp = self._clock
        date = f'@{timestamp} +0000'
        self.git('add', '-A')
        self.git(
            'commit', '--allow-empty', '-m', message,
            env={'GIT_AUTHOR_DATE': date, 'GIT_COMMITTER_DATE': date},
        )
        return self.head()

    def commit_file(self, relative: str, content: str | bytes, message: Optional[str] = None) -> str:
        self.write(relative, content)
        return self.commit(message or f'update {relative}')

    def head(self) -> str:
        return self.git('rev-parse', 'HEAD')

    def branch(self, name: str) -> None:
        self.git('checkout', '-q', '-b', name)

    def checkout(self, name: str) -> None:
        self.git('checkout', '-q', name)

    def merge(self, name: str) -> str:
        self._clock += 60
        date = f'@{self._clock} +0000'
        self.git(
            'merge', '--no-ff', '-m', f'merge {name}', name,
            env={'GIT_AUTHOR_DATE': date, 'GIT_COMMITTER_DATE': date},
        )
        return self.head()


@pytest.fixture
def temp_dir():
    """A resolved temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def empty_git_repo(temp_dir):
    """Create a git repository with no commits."""
    return GitRepo(temp_dir / 'repo').init()


@pytest.fixture
def git_repo(empty_git_repo):
    """Create a git repository with one commit on master."""
    empty_git_repo.commit_file('README.md', '# Test Project\n', 'Initial commit')
    return empty_git_repo


@pytest.fixture
def make_git_repo(temp_dir):
    """Factory for extra repositories next to the main one."""
    def factory(name: str) -> GitRepo:
        return GitRepo(temp_dir / name)
    return factory


class FakeRepository:
    """
    In-memory stand-in for ``Repository``.

    Commits are added with ``add_commit``; refs, trees, blobs and working
    copy content are plain dicts set up by the test.
    """

    def __init__(self):
        self.settings = ScmSettings()
        self.commits: dict[str, Commit] = {}
        self.refs: dict[str, str] = {}
        self.head_id: Optional[str] = None
        self.trees: dict[tuple[str, str], list[ChangedFile]] = {}
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.worktree: dict[str, bytes] = {}
        self.blame: dict[str, list[BlameLine]] = {}
        self.ignored: set[str] = set()
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self.closed = False

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise GitCommandError(f"{name} failed")

    def add_commit(self, commit_id: str, timestamp: int, *parents: str) -> Commit:
        commit = Commit(id=commit_id, timestamp=timestamp, parents=tuple(parents))
        self.commits[commit_id] = commit
        return commit

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self.closed = True

    def head(self) -> Optional[str]:
        self._call('head')
        return self.head_id

    def resolve_ref(self, full_name: str) -> Optional[Ref]:
        self._call('resolve_ref')
        commit_id = self.refs.get(full_name)
        return Ref(name=full_name, commit_id=commit_id) if commit_id else None

    def commit(self, rev: str) -> Commit:
        self._call('commit')
        if rev not in self.commits:
            raise GitCommandError(f"Unknown commit: {rev}")
        return self.commits[rev]

    def walk_ancestry(self, *revs: str) -> Iterator[Commit]:
        self._call('walk_ancestry')
        seen: set[str] = set()
        stack = list(revs)
        while stack:
            commit_id = stack.pop()
            if commit_id in seen or commit_id not in self.commits:
                continue
            seen.add(commit_id)
            commit = self.commits[commit_id]
            yield commit
            stack.extend(commit.parents)

    def diff_trees(self, old_rev: str, new_rev: str) -> list[ChangedFile]:
        self._call('diff_trees')
        return list(self.trees.get((old_rev, new_rev), []))

    def read_blob(self, rev: str, path: str) -> Optional[bytes]:
        self._call('read_blob')
        return self.blobs.get((rev, path))

    def read_worktree(self, path: str) -> Optional[bytes]:
        self._call('read_worktree')
        return self.worktree.get(path)

    def blame_lines(self, path: str) -> Iterator[BlameLine]:
        self._call('blame_lines')
        yield from self.blame.get(path, [])

    def check_ignore(self, path: str) -> bool:
        self._call('check_ignore')
        return path in self.ignored

    def check_ignore_many(self, paths: Iterable[str]) -> set[str]:
        self._call('check_ignore_many')
        return {p for p in paths if p in self.ignored}


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def content_lao():
    return CONTENT_LAO


@pytest.fixture
def content_tzu():
    return CONTENT_TZU
