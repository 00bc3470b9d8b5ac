"""
Tests for the history models and settings.
"""
import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

from changescope.config import ScmSettings
from changescope.models import (
    BlameLine, ChangedFile, Commit, ForkPoint, Ref, timestamp_to_datetime
)


class TestTimestamps:
    """Tests for unix timestamp conversion."""

    def test_epoch(self):
        assert timestamp_to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_is_timezone_aware(self):
        assert timestamp_to_datetime(1_600_000_000).tzinfo is not None


class TestCommit:
    def test_root_commit(self):
        commit = Commit(id='a' * 40, timestamp=10)
        assert commit.parents == ()

    def test_merge_commit(self):
        commit = Commit(id='m', timestamp=10, parents=('a', 'b'))
        assert commit.parents == ('a', 'b')

    def test_date(self):
        assert Commit(id='a', timestamp=86400).date == datetime(1970, 1, 2, tzinfo=timezone.utc)

    def test_frozen(self):
        commit = Commit(id='a', timestamp=1)
        with pytest.raises(FrozenInstanceError):
            commit.id = 'b'


class TestRef:
    def test_short_name_local(self):
        assert Ref(name='refs/heads/feature/x', commit_id='a').short_name == 'feature/x'

    def test_short_name_remote(self):
        assert Ref(name='refs/remotes/origin/main', commit_id='a').short_name == 'origin/main'

    def test_short_name_other(self):
        assert Ref(name='refs/tags/v1', commit_id='a').short_name == 'refs/tags/v1'


class TestForkPoint:
    def test_delegates_to_commit(self):
        fork_point = ForkPoint(commit=Commit(id='abc', timestamp=0))
        assert fork_point.id == 'abc'
        assert fork_point.date.year == 1970


class TestChangedFile:
    def test_old_path_defaults_to_none(self):
        assert ChangedFile(path='a.py', status='added').old_path is None

    def test_hashable(self):
        changes = {ChangedFile(path='a.py', status='added'), ChangedFile(path='a.py', status='added')}
        assert len(changes) == 1


class TestBlameLine:
    def test_summary_ignored_in_equality(self):
        a = BlameLine(line=1, revision='r', author='x', author_email='x@y', timestamp=1, summary='one')
        b = BlameLine(line=1, revision='r', author='x', author_email='x@y', timestamp=1, summary='two')
        assert a == b


class TestScmSettings:
    def test_defaults(self):
        settings = ScmSettings()
        assert settings.git_executable == 'git'
        assert settings.timeout == 30
        assert settings.include_uncommitted is True
        assert settings.detect_renames is True

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match='timeout'):
            ScmSettings(timeout=0)

    def test_rejects_empty_executable(self):
        with pytest.raises(ValueError, match='git_executable'):
            ScmSettings(git_executable='')
