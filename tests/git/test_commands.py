"""Tests for git command functions."""

import pytest
from pathlib import Path

from changescope.git.commands import (
    GitCommandError,
    GitParseError,
    run_git_bytes,
    run_git_command,
    is_valid_ref_name,
    parse_name_status_z,
    parse_hunk_ranges,
    diff_text_ranges,
)
from changescope.models import ChangedFile


class TestIsValidRefName:
    def test_simple_branch(self):
        assert is_valid_ref_name('main') is True

    def test_nested_and_qualified_names(self):
        assert is_valid_ref_name('feature/login') is True
        assert is_valid_ref_name('upstream/release-1.2') is True
        assert is_valid_ref_name('fix_bug+2') is True

    def test_punctuation_git_accepts(self):
        for name in ('fix#12', 'a@b', 'x=y', 'a,b', 'wow!', 'abc|cat', 'a.b/c'):
            assert is_valid_ref_name(name) is True, name

    def test_non_ascii(self):
        assert is_valid_ref_name('feature/été') is True

    def test_invalid_empty(self):
        assert is_valid_ref_name('') is False

    def test_invalid_with_spaces(self):
        assert is_valid_ref_name('my branch') is False
        assert is_valid_ref_name('abc;rm -rf') is False

    def test_invalid_option_like(self):
        assert is_valid_ref_name('--all') is False

    def test_invalid_special_characters(self):
        for name in ('a~1', 'a^', 'a:b', 'a?', 'a*', 'a[b', 'a\\b'):
            assert is_valid_ref_name(name) is False, name

    def test_invalid_control_characters(self):
        assert is_valid_ref_name('a\tb') is False
        assert is_valid_ref_name('a\x7fb') is False

    def test_invalid_git_ref_syntax(self):
        for name in ('a..b', 'a@{1}', 'a//b', '/a', 'branch/', 'branch.',
                     'branch.lock', 'x/y.lock/z', '.hidden', 'a/.b', '@'):
            assert is_valid_ref_name(name) is False, name

    def test_no_length_limit(self):
        assert is_valid_ref_name('a' * 1000) is True

class TestRunGitCommand:
    def test_successful_command(self, git_repo):
        output = run_git_command(['status'], git_repo.path)
        assert 'On branch' in output

    def test_invalid_command_raises(self, git_repo):
        with pytest.raises(GitCommandError, match='Git command failed'):
            run_git_command(['invalid-command-xyz'], git_repo.path)

    def test_nonexistent_directory_raises(self):
        with pytest.raises(GitCommandError, match='Directory does not exist'):
            run_git_command(['status'], Path('/nonexistent/path'))

    def test_missing_executable_raises(self, git_repo):
        with pytest.raises(GitCommandError, match='not installed'):
            run_git_command(['status'], git_repo.path, git_executable='git-does-not-exist-xyz')

    def test_returncode_is_kept(self, git_repo):
        with pytest.raises(GitCommandError) as exc_info:
            run_git_command(['rev-parse', '--verify', 'no-such-ref'], git_repo.path)
        assert exc_info.value.returncode == 128


class TestRunGitBytes:
    def test_accepts_extra_returncodes(self, git_repo):
        output = run_git_bytes(
            ['rev-parse', '--verify', '--quiet', 'no-such-ref'],
            git_repo.path,
            ok_returncodes=(0, 1),
        )
        assert output == b''

    def test_passes_stdin(self, git_repo):
        output = run_git_bytes(['hash-object', '--stdin'], git_repo.path, input=b'hello\n')
        assert output.strip() == b'ce013625030ba8dba906f756967f9e9ca394464a'


class TestParseNameStatusZ:
    def test_modified_file(self):
        result = parse_name_status_z("M\x00src/main.py\x00")
        assert result == [ChangedFile(path='src/main.py', status='modified')]

    def test_added_and_deleted(self):
        result = parse_name_status_z("A\x00new.py\x00D\x00old.py\x00")
        assert result == [
            ChangedFile(path='new.py', status='added'),
            ChangedFile(path='old.py', status='deleted'),
        ]

    def test_rename_keeps_both_paths(self):
        result = parse_name_status_z("R095\x00old/name.py\x00new/name.py\x00")
        assert result == [ChangedFile(path='new/name.py', status='renamed', old_path='old/name.py')]

    def test_copy_and_type_change(self):
        result = parse_name_status_z("C100\x00a.py\x00b.py\x00T\x00link\x00")
        assert result[0].status == 'copied'
        assert result[0].path == 'b.py'
        assert result[1] == ChangedFile(path='link', status='type_changed')

    def test_paths_with_special_characters(self):
        result = parse_name_status_z("M\x00dir with space/tab\tname.py\x00")
        assert result[0].path == 'dir with space/tab\tname.py'

    def test_unknown_status(self):
        result = parse_name_status_z("X\x00weird\x00")
        assert result[0].status == 'unknown'

    def test_empty_output(self):
        assert parse_name_status_z("") == []

    def test_truncated_record_raises(self):
        with pytest.raises(GitParseError):
            parse_name_status_z("R100\x00only-old.py\x00")


class TestParseHunkRanges:
    def test_counts_default_to_one(self):
        output = b'@@ -4 +2 @@\n-old\n+new\n'
        assert parse_hunk_ranges(output) == [(2, 1)]

    def test_multiple_hunks(self):
        output = (
            b'diff --git a/old b/new\n'
            b'--- a/old\n'
            b'+++ b/new\n'
            b'@@ -1,2 +0,0 @@\n-a\n-b\n'
            b'@@ -4 +2,2 @@ def section():\n-c\n+d\n+e\n'
            b'@@ -11,0 +11,3 @@\n+f\n+g\n+h\n'
        )
        assert parse_hunk_ranges(output) == [(0, 0), (2, 2), (11, 3)]

    def test_content_lines_are_ignored(self):
        assert parse_hunk_ranges(b'+@@ not a header\n-@@ neither\n') == []

    def test_empty_output(self):
        assert parse_hunk_ranges(b'') == []

    def test_malformed_header_raises(self):
        with pytest.raises(GitParseError):
            parse_hunk_ranges(b'@@ garbage @@\n')


class TestDiffTextRanges:
    def test_identical(self):
        assert diff_text_ranges(b'a\nb\n', b'a\nb\n') == []

    def test_modified_and_added(self):
        ranges = diff_text_ranges(b'a\nb\nc\n', b'a\nB\nc\nd\n')
        assert ranges == [(2, 1), (4, 1)]

    def test_removed_only(self):
        assert diff_text_ranges(b'a\nb\nc\n', b'a\nc\n') == [(1, 0)]

    def test_binary_looking_content_is_diffed_as_text(self):
        assert diff_text_ranges(b'a\x00\nb\n', b'a\x00\nc\n') == [(2, 1)]

    def test_missing_executable_raises(self):
        with pytest.raises(GitCommandError):
            diff_text_ranges(b'a\n', b'b\n', git_executable='no-such-git-binary')
