"""Low-level Git command execution and parsing."""

from __future__ import annotations

import re
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from changescope.constants import (
    DEFAULT_GIT_EXECUTABLE,
    DEFAULT_GIT_TIMEOUT,
    LINE_DIFF_ALGORITHM,
    NULL,
)
from changescope.models import ChangedFile


class GitCommandError(Exception):
    """Raised when a git command fails."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class GitParseError(Exception):
    """Raised when git output cannot be parsed."""
    pass


# Module-level constants
_STATUS_MAP: dict[str, str] = {
    'A': 'added',
    'M': 'modified',
    'D': 'deleted',
    'R': 'renamed',
    'C': 'copied',
    'T': 'type_changed',
}

# "@@ -a[,b] +c[,d] @@"; only the new side is captured
_HUNK_HEADER = re.compile(rb'^@@ -\d+(?:,\d+)? \+(\d+)(?:,(\d+))? @@')


def run_git_bytes(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_GIT_TIMEOUT,
    input: Optional[bytes] = None,
    git_executable: str = DEFAULT_GIT_EXECUTABLE,
    ok_returncodes: tuple[int, ...] = (0,),
) -> bytes:
    """
    Run a git command and return raw stdout.

    Args:
        args: Command arguments, e.g., ['cat-file', 'blob', 'HEAD:README']
        cwd: Directory to run command in
        timeout: Maximum seconds to wait
        input: Bytes fed to stdin
        git_executable: Name or path of the git binary
        ok_returncodes: Exit codes treated as success

    Returns:
        Command stdout

    Raises:
        GitCommandError: If command fails
    """
    try:
        result = subprocess.run(
            [git_executable] + args,
            cwd=cwd,
            input=input,
            capture_output=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        raise GitCommandError(f"Git command timed out after {timeout}s")
    except FileNotFoundError:
        # Raised for a missing executable and for a missing cwd
        if not Path(cwd).is_dir():
            raise GitCommandError(f"Directory does not exist: {cwd}")
        raise GitCommandError("Git is not installed or not in PATH")
    except NotADirectoryError:
        raise GitCommandError(f"Not a directory: {cwd}")

    if result.returncode not in ok_returncodes:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise GitCommandError(f"Git command failed: {stderr}", result.returncode)

    return result.stdout


def run_git_command(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_GIT_TIMEOUT,
    git_executable: str = DEFAULT_GIT_EXECUTABLE,
) -> str:
    """
    Run a git command and return output decoded as UTF-8.

    Raises:
        GitCommandError: If command fails
    """
    output = run_git_bytes(args, cwd, timeout=timeout, git_executable=git_executable)
    return output.decode('utf-8', errors='replace')


# Characters git refuses anywhere in a ref name (see git-check-ref-format)
_FORBIDDEN_REF_CHARS = frozenset(' ~^:?*[\\\x7f')


def is_valid_ref_name(name: str) -> bool:
    """
    Check a branch or ref name against git's ref format rules.

    Only the syntax is checked; the ref may still not exist. Names that
    git would read as options are refused as well.
    """
    if not name or not isinstance(name, str):
        return False

    # Options would be parsed by git as flags
    if name.startswith('-'):
        return False

    if name == '@':
        return False

    if any(c < ' ' or c in _FORBIDDEN_REF_CHARS for c in name):
        return False

    if '..' in name or '@{' in name or '//' in name:
        return False

    if name.startswith('/') or name.endswith(('/', '.')):
        return False

    for component in name.split('/'):
        if component.startswith('.') or component.endswith('.lock'):
            return False
    return True


def parse_name_status_z(output: str) -> list[ChangedFile]:
    """
    Parse NUL-separated ``--name-status -z`` output.

    Handles:
        - Normal: "M\\0path/file.py\\0"
        - Rename: "R100\\0old.py\\0new.py\\0"

    Raises:
        GitParseError: If a record is truncated
    """
    fields = output.split(NULL)
    if fields and fields[-1] == '':
        fields.pop()

    changed_files = []
    i = 0
    while i < len(fields):
        status_field = fields[i]
        if not status_field:
            raise GitParseError(f"Empty status at field {i}")

        status_code = status_field[0]  # First char (R100 -> R)
        status = _STATUS_MAP.get(status_code, 'unknown')

        if status_code in ('R', 'C'):
            if i + 2 >= len(fields):
                raise GitParseError(f"Truncated {status} record: {status_field!r}")
            old_path, new_path = fields[i + 1], fields[i + 2]
            changed_files.append(ChangedFile(path=new_path, status=status, old_path=old_path))
            i += 3
        else:
            if i + 1 >= len(fields):
                raise GitParseError(f"Truncated record: {status_field!r}")
            changed_files.append(ChangedFile(path=fields[i + 1], status=status))
            i += 2

    return changed_files


def parse_hunk_ranges(output: bytes) -> list[tuple[int, int]]:
    """
    New-side ranges from the hunk headers of a unified diff.

    Returns:
        (first line, line count) per hunk, 1-based. Hunks that only remove
        lines have a count of 0.

    Raises:
        GitParseError: If a line starting with "@@" is not a hunk header
    """
    ranges = []
    for line in output.split(b'\n'):
        if not line.startswith(b'@@'):
            continue
        match = _HUNK_HEADER.match(line)
        if match is None:
            raise GitParseError(f"Unexpected hunk header: {line!r}")
        start = int(match.group(1))
        count = int(match.group(2)) if match.group(2) is not None else 1
        ranges.append((start, count))
    return ranges


def diff_text_ranges(
    old: bytes,
    new: bytes,
    timeout: int = DEFAULT_GIT_TIMEOUT,
    git_executable: str = DEFAULT_GIT_EXECUTABLE,
) -> list[tuple[int, int]]:
    """
    Line diff of two contents with ``git diff --no-index``.

    Both sides are written to a scratch directory outside any repository,
    so neither the repository's diff settings nor its attributes apply.

    Returns:
        New-side hunk ranges, see ``parse_hunk_ranges``

    Raises:
        GitCommandError: If git fails
    """
    with tempfile.TemporaryDirectory(prefix='changescope-') as tmpdir:
        scratch = Path(tmpdir)
        (scratch / 'old').write_bytes(old)
        (scratch / 'new').write_bytes(new)
        output = run_git_bytes(
            [
                'diff', '--no-index', '--no-color', '--no-ext-diff', '--no-textconv',
                '--text', '-U0', '--inter-hunk-context=0',
                f'--diff-algorithm={LINE_DIFF_ALGORITHM}',
                '--', 'old', 'new',
            ],
            scratch,
            timeout=timeout,
            git_executable=git_executable,
            # --no-index exits with 1 when the contents differ
            ok_returncodes=(0, 1),
        )
    return parse_hunk_ranges(output)
