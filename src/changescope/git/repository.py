"""
Repository handle.

A ``Repository`` is the capability every other component works through:
ref lookup, ancestry walks, tree diffs, blob reads, blame and ignore checks.
Components never run git themselves, so tests can hand them an in-memory
object with the same methods.

The handle owns a long-lived ``git cat-file --batch`` process for blob reads.
Always use it as a context manager (or call ``close()``) so the process is
released on every exit path.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional

from changescope.config import ScmSettings
from changescope.constants import HEAD_REF, NULL, ZERO_OBJECT_ID
from changescope.exceptions import NotInWorkTreeError
from changescope.git.commands import (
    GitCommandError,
    GitParseError,
    parse_name_status_z,
    run_git_bytes,
    run_git_command,
)
from changescope.models import BlameLine, ChangedFile, Commit, Ref
from changescope.readers import read_bytes_safe

logger = logging.getLogger(__name__)

__all__ = [
    'Repository',
    'find_work_tree',
    'open_repository',
]


def _existing_directory(path: Path) -> Optional[Path]:
    """
    The directory git should run in for ``path``.

    Paths that don't exist yet use their nearest existing ancestor, so
    ignore rules and relative paths still work for files about to be
    created. None if no ancestor exists.
    """
    for candidate in (path, *path.parents):
        if candidate.is_dir():
            return candidate
    return None


def find_work_tree(path: Path | str, settings: Optional[ScmSettings] = None) -> Optional[Path]:
    """
    Find the root of the work tree containing ``path``.

    Returns:
        Resolved work tree root, or None if neither ``path`` nor any of its
        ancestors is a directory inside a work tree
    """
    settings = settings or ScmSettings()
    directory = _existing_directory(Path(path))
    if directory is None:
        return None

    try:
        output = run_git_command(
            ['rev-parse', '--show-toplevel'],
            directory,
            timeout=settings.timeout,
            git_executable=settings.git_executable,
        )
    except GitCommandError as e:
        logger.debug("No work tree at %s: %s", directory, e)
        return None

    top = output.strip()
    return Path(top).resolve() if top else None


def open_repository(root_dir: Path | str, settings: Optional[ScmSettings] = None) -> Repository:
    """
    Open the repository whose work tree contains ``root_dir``.

    Raises:
        NotInWorkTreeError: If ``root_dir`` is not inside a work tree
    """
    work_tree = find_work_tree(root_dir, settings)
    if work_tree is None:
        raise NotInWorkTreeError(root_dir)
    return Repository(work_tree, settings)


class _ObjectReader:
    """Streams objects out of one ``git cat-file --batch`` process."""

    def __init__(self, work_tree: Path, settings: ScmSettings):
        self._timeout = settings.timeout
        try:
            self._process = subprocess.Popen(
                [settings.git_executable, 'cat-file', '--batch'],
                cwd=work_tree,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise GitCommandError(f"Could not start git cat-file: {e}") from e

    def read(self, spec: str) -> Optional[tuple[str, bytes]]:
        """
        Read one object.

        Returns:
            (object_type, content), or None if the object doesn't exist
        """
        if '\n' in spec:
            raise ValueError(f"Object name may not contain a newline: {spec!r}")

        stdin: IO[bytes] = self._process.stdin
        stdout: IO[bytes] = self._process.stdout
        try:
            stdin.write(spec.encode('utf-8') + b'\n')
            stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise GitCommandError(f"git cat-file is not running: {e}") from e

        header = stdout.readline()
        if not header:
            raise GitCommandError("git cat-file exited unexpectedly")

        header = header.rstrip(b'\n')
        if header.endswith((b' missing', b' ambiguous')):
            return None

        try:
            _, object_type, size = header.rsplit(b' ', 2)
            length = int(size)
        except ValueError:
            raise GitParseError(f"Unexpected cat-file header: {header!r}")

        content = stdout.read(length)
        stdout.read(1)  # trailing LF
        return object_type.decode('ascii'), content

    def close(self) -> None:
        process = self._process
        try:
            try:
                process.stdin.close()
            except OSError:
                pass  # broken pipe: the process is already gone
            if process.poll() is None:
                try:
                    process.wait(timeout=self._timeout)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
        finally:
            process.stdout.close()


def _parse_rev_list_line(line: str) -> Commit:
    """Parse "<timestamp> <id> [<parent>...]" from rev-list --timestamp --parents."""
    parts = line.split()
    if len(parts) < 2:
        raise GitParseError(f"Unexpected rev-list line: {line!r}")
    try:
        timestamp = int(parts[0])
    except ValueError:
        raise GitParseError(f"Invalid timestamp in rev-list line: {line!r}")
    return Commit(id=parts[1], timestamp=timestamp, parents=tuple(parts[2:]))


class Repository:
    """
    Read-only view of an on-disk repository.

    Reads are safe to share; the handle never writes to the repository.
    """

    def __init__(self, work_tree: Path, settings: Optional[ScmSettings] = None):
        self.work_tree = Path(work_tree)
        self.settings = settings or ScmSettings()
        self._reader: Optional[_ObjectReader] = None
        self._closed = False

    # --- Lifecycle ---

    def __enter__(self) -> Repository:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the object reader process. Safe to call more than once."""
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Repository({str(self.work_tree)!r}, {state})"

    # --- Plumbing ---

    def _git(self, args: list[str]) -> str:
        return run_git_command(
            args,
            self.work_tree,
            timeout=self.settings.timeout,
            git_executable=self.settings.git_executable,
        )

    def _git_bytes(
        self,
        args: list[str],
        input: Optional[bytes] = None,
        ok_returncodes: tuple[int, ...] = (0,),
    ) -> bytes:
        return run_git_bytes(
            args,
            self.work_tree,
            timeout=self.settings.timeout,
            input=input,
            git_executable=self.settings.git_executable,
            ok_returncodes=ok_returncodes,
        )

    def _object_reader(self) -> _ObjectReader:
        if self._closed:
            raise GitCommandError("Repository handle is closed")
        if self._reader is None:
            self._reader = _ObjectReader(self.work_tree, self.settings)
        return self._reader

    @property
    def git_dir(self) -> Path:
        return Path(self._git(['rev-parse', '--absolute-git-dir']).strip())

    def relative_path(self, path: Path | str) -> Path:
        """
        Path of ``path`` relative to the work tree root.

        Raises:
            ValueError: If ``path`` is outside the work tree
        """
        return Path(path).resolve().relative_to(self.work_tree)

    # --- Capabilities ---

    def _rev_parse_commit(self, rev: str) -> Optional[str]:
        output = self._git_bytes(
            ['rev-parse', '--verify', '--quiet', f'{rev}^{{commit}}'],
            ok_returncodes=(0, 1),
        )
        commit_id = output.decode('ascii', errors='replace').strip()
        return commit_id or None

    def head(self) -> Optional[str]:
        """Commit id of HEAD, or None in a repository without commits."""
        return self._rev_parse_commit(HEAD_REF)

    def resolve_ref(self, full_name: str) -> Optional[Ref]:
        """
        Look up an exact ref, e.g. ``refs/remotes/origin/main``.

        Returns:
            The ref peeled to its commit, or None if it doesn't exist
        """
        if not full_name.startswith('refs/'):
            raise ValueError(f"Expected a full ref name, got {full_name!r}")
        commit_id = self._rev_parse_commit(full_name)
        if commit_id is None:
            return None
        return Ref(name=full_name, commit_id=commit_id)

    def commit(self, rev: str) -> Commit:
        """
        Load a single commit.

        Raises:
            GitCommandError: If the commit doesn't exist
        """
        output = self._git(['rev-list', '-n1', '--timestamp', '--parents', rev, '--'])
        line = output.strip()
        if not line:
            raise GitCommandError(f"Unknown commit: {rev}")
        return _parse_rev_list_line(line)

    def walk_ancestry(self, *revs: str) -> Iterator[Commit]:
        """
        Yield every commit reachable from ``revs``, each once.

        Children come before their parents.
        """
        if not revs:
            return
        output = self._git(['rev-list', '--topo-order', '--timestamp', '--parents', *revs, '--'])
        for line in output.splitlines():
            if line.strip():
                yield _parse_rev_list_line(line)

    def diff_trees(self, old_rev: str, new_rev: str) -> list[ChangedFile]:
        """Name-and-status diff between the trees of two commits."""
        rename_flag = '-M' if self.settings.detect_renames else '--no-renames'
        output = self._git(
            ['diff-tree', '-r', '-z', '--name-status', rename_flag, old_rev, new_rev, '--']
        )
        return parse_name_status_z(output)

    def read_blob(self, rev: str, path: str) -> Optional[bytes]:
        """
        Content of ``path`` at ``rev``.

        Returns:
            Blob bytes, or None if the path doesn't exist (or isn't a file)
            at that revision
        """
        result = self._object_reader().read(f'{rev}:{path}')
        if result is None:
            return None
        object_type, content = result
        if object_type != 'blob':
            logger.debug("%s:%s is a %s, not a blob", rev, path, object_type)
            return None
        return content

    def read_worktree(self, path: str) -> Optional[bytes]:
        """Current working-copy content of ``path``, or None if absent."""
        return read_bytes_safe(self.work_tree / path)

    def blame_lines(self, path: str) -> Iterator[BlameLine]:
        """
        Stream line attributions for the working-copy content of ``path``.

        Lines that are not committed yet have no attribution and are skipped.
        Paths without history (untracked, outside the repository) yield
        nothing.
        """
        try:
            process = subprocess.Popen(
                [self.settings.git_executable, 'blame', '--line-porcelain', '--', path],
                cwd=self.work_tree,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise GitCommandError(f"Could not start git blame: {e}") from e

        try:
            yield from _parse_line_porcelain(process.stdout)
        finally:
            if process.poll() is None:
                process.kill()
            _, stderr = process.communicate()
            if process.returncode not in (0, -9):
                logger.debug(
                    "git blame gave no attribution for %s: %s",
                    path, stderr.decode('utf-8', errors='replace').strip()
                )

    def check_ignore(self, path: str) -> bool:
        """True if ignore rules exclude ``path``. Tracked files never are."""
        try:
            self._git_bytes(['check-ignore', '-q', '--', path])
        except GitCommandError as e:
            # Exit code 1 means "not ignored"
            if e.returncode == 1:
                return False
            raise
        return True

    def check_ignore_many(self, paths: Iterable[str]) -> set[str]:
        """Subset of ``paths`` excluded by ignore rules."""
        payload = NULL.join(paths)
        if not payload:
            return set()
        output = self._git_bytes(
            ['check-ignore', '-z', '--stdin'],
            input=(payload + NULL).encode('utf-8'),
            ok_returncodes=(0, 1),
        )
        return {p for p in output.decode('utf-8', errors='replace').split(NULL) if p}


def _parse_line_porcelain(stream: IO[bytes]) -> Iterator[BlameLine]:
    """
    Parse ``git blame --line-porcelain`` output incrementally.

    Every line is a header "<sha> <orig> <final> [<count>]", key/value
    lines, then the content prefixed by a TAB.
    """
    header: Optional[list[str]] = None
    fields: dict[str, str] = {}

    for raw in stream:
        if raw.startswith(b'\t'):
            if header is None:
                raise GitParseError("Blame content without a header")
            revision, final_line = header[0], int(header[2])
            if revision == ZERO_OBJECT_ID:
                logger.debug("Line %d is not committed yet", final_line)
            else:
                yield BlameLine(
                    line=final_line,
                    revision=revision,
                    author=fields.get('author', ''),
                    author_email=fields.get('author-mail', '').strip('<>'),
                    timestamp=int(fields.get('author-time', '0')),
                    summary=fields.get('summary', ''),
                )
            header = None
            fields = {}
            continue

        line = raw.decode('utf-8', errors='replace').rstrip('\n')
        if header is None:
            header = line.split(' ')
            if len(header) < 3:
                raise GitParseError(f"Unexpected blame header: {line!r}")
        else:
            key, _, value = line.partition(' ')
            fields[key] = value
