"""
Entry points used by the analysis engine.

``ScmProvider`` wires the git components together for each call: it opens a
repository handle, resolves the target branch, finds the fork point and
hands the result to the tree or line differ. Every handle is closed before
the call returns, whatever the outcome.

Only a missing work tree is raised (``NotInWorkTreeError``). Everything else
degrades to ``None`` so the analysis can continue without the
"new code" optimization.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from changescope.config import ScmSettings
from changescope.constants import REF_NOT_FOUND_ADVICE, REF_NOT_FOUND_MESSAGE
from changescope.diagnostics import NullWarnings, WarningSink
from changescope.exceptions import NotInWorkTreeError
from changescope.git.blame import BlameResolver, BlameResult
from changescope.git.commands import GitCommandError, GitParseError
from changescope.git.ignore import IgnoreChecker
from changescope.git.line_diff import LineDiffer
from changescope.git.merge_base import MergeBaseFinder
from changescope.git.refs import Environment, ReferenceResolver
from changescope.git.repository import Repository, find_work_tree, open_repository
from changescope.git.tree_diff import TreeDiffer
from changescope.models import BlameLine, ForkPoint

logger = logging.getLogger(__name__)

# Failures of the underlying git tooling that must not end an analysis
_GIT_ERRORS = (GitCommandError, GitParseError, OSError, ValueError)

RepositoryFactory = Callable[[Path, ScmSettings], Repository]


def _default_factory(root_dir: Path, settings: ScmSettings) -> Repository:
    return open_repository(root_dir, settings)


class ScmProvider:
    """
    Answers "what changed since the target branch" for a working copy.

    Args:
        warnings: Sink for user-facing warnings (unresolvable target branch)
        environment: Environment used for reference resolution; defaults to
            the current process environment
        settings: Git executable, timeouts and diff options
        repository_factory: Opens a repository for a directory; raises
            ``NotInWorkTreeError`` when there is none
    """

    def __init__(
        self,
        warnings: Optional[WarningSink] = None,
        environment: Optional[Environment] = None,
        settings: Optional[ScmSettings] = None,
        repository_factory: Optional[RepositoryFactory] = None,
    ):
        self.warnings = warnings if warnings is not None else NullWarnings()
        self.environment = environment if environment is not None else Environment.from_os()
        self.settings = settings or ScmSettings()
        self._repository_factory = repository_factory or _default_factory

    # --- Repository access ---

    def supports(self, base_dir: Path | str) -> bool:
        """True if ``base_dir`` is inside a work tree."""
        return find_work_tree(base_dir, self.settings) is not None

    def _open_required(self, root_dir: Path) -> Repository:
        """Open a repository or fail with a configuration error."""
        try:
            return self._repository_factory(root_dir, self.settings)
        except NotInWorkTreeError:
            raise
        except _GIT_ERRORS as e:
            logger.debug("Failed to open repository at %s: %s", root_dir, e)
            raise NotInWorkTreeError(root_dir) from e

    def _open_optional(self, root_dir: Path) -> Optional[Repository]:
        """Open a repository, or None if that isn't possible."""
        try:
            return self._repository_factory(root_dir, self.settings)
        except NotInWorkTreeError as e:
            logger.debug("%s", e)
        except _GIT_ERRORS as e:
            logger.debug("Failed to open repository at %s: %s", root_dir, e)
        return None

    def _find_fork_point(
        self, repo: Repository, target_branch: str, warn: bool
    ) -> tuple[Optional[ForkPoint], Optional[str]]:
        """Returns (fork point, head commit id); either may be None."""
        ref = ReferenceResolver(repo, self.environment).resolve(target_branch)
        if ref is None:
            if warn:
                self.warnings.add_unique(
                    REF_NOT_FOUND_MESSAGE.format(name=target_branch) + REF_NOT_FOUND_ADVICE
                )
            return None, None

        head = repo.head()
        if head is None:
            logger.warning("Could not find ref: HEAD")
            return None, None

        return MergeBaseFinder(repo).find_fork_point(ref.commit_id, head), head

    # --- Operations ---

    def branch_changed_files(self, target_branch: str, root_dir: Path | str) -> Optional[set[Path]]:
        """
        Files holding new code on the current branch, relative to ``target_branch``.

        Returns:
            Absolute paths of added, modified and renamed files under
            ``root_dir``, or None when no fork point can be established

        Raises:
            NotInWorkTreeError: If ``root_dir`` is not inside a work tree
        """
        root_dir = Path(root_dir)
        with self._open_required(root_dir) as repo:
            try:
                fork_point, head = self._find_fork_point(repo, target_branch, warn=True)
                if fork_point is None:
                    return None
                paths = TreeDiffer(repo).changed_files(fork_point, head)
            except _GIT_ERRORS as e:
                logger.warning("Failed to collect changed files: %s", e)
                return None

            if paths is None:
                return None
            project_root = root_dir.resolve()
            absolute = (repo.work_tree / path for path in paths)
            return {path for path in absolute if path.is_relative_to(project_root)}

    def branch_changed_lines(
        self,
        target_branch: str,
        root_dir: Path | str,
        changed_files: Iterable[Path | str],
    ) -> Optional[dict[Path, set[int]]]:
        """
        Changed line numbers of ``changed_files`` relative to ``target_branch``.

        Uncommitted edits in the working copy are included unless the
        settings disable it. Files that are unchanged, missing or fail to
        diff are absent from the result.

        Returns:
            Map of the given paths to their changed lines, or None when no
            fork point can be established

        Raises:
            NotInWorkTreeError: If ``root_dir`` is not inside a work tree
        """
        root_dir = Path(root_dir)
        with self._open_required(root_dir) as repo:
            try:
                fork_point, head = self._find_fork_point(repo, target_branch, warn=True)
                if fork_point is None:
                    return None

                candidates: dict[str, Path] = {}
                for changed_file in changed_files:
                    original = Path(changed_file)
                    absolute = original if original.is_absolute() else root_dir / original
                    try:
                        relative = repo.relative_path(absolute)
                    except ValueError:
                        logger.debug("Skipping %s: outside of the work tree", original)
                        continue
                    candidates[relative.as_posix()] = original

                lines = LineDiffer(repo).changed_lines(
                    fork_point,
                    head,
                    candidates,
                    include_uncommitted=self.settings.include_uncommitted,
                    rename_sources=self._rename_sources(repo, fork_point, head),
                )
            except _GIT_ERRORS as e:
                logger.warning("Failed to collect changed lines: %s", e)
                return None

        if lines is None:
            return None
        return {candidates[path]: numbers for path, numbers in lines.items()}

    def _rename_sources(self, repo: Repository, fork_point: ForkPoint, head: str) -> dict[str, str]:
        if not self.settings.detect_renames:
            return {}
        try:
            changes = repo.diff_trees(fork_point.id, head)
        except (GitCommandError, GitParseError) as e:
            logger.debug("Rename detection skipped: %s", e)
            return {}
        return {c.path: c.old_path for c in changes if c.status == 'renamed' and c.old_path}

    def fork_date(self, target_branch: str, root_dir: Path | str) -> Optional[datetime]:
        """
        Commit date of the fork point between HEAD and ``target_branch``.

        Returns:
            Timezone-aware UTC datetime, or None when unavailable
        """
        repo = self._open_optional(Path(root_dir))
        if repo is None:
            return None
        with repo:
            try:
                fork_point, _ = self._find_fork_point(repo, target_branch, warn=False)
            except _GIT_ERRORS as e:
                logger.warning("Failed to find fork point with git: %s", e)
                return None
        return fork_point.date if fork_point is not None else None

    def revision_id(self, root_dir: Path | str) -> Optional[str]:
        """Commit id of HEAD, or None outside a repository or before the first commit."""
        repo = self._open_optional(Path(root_dir))
        if repo is None:
            return None
        with repo:
            try:
                return repo.head()
            except _GIT_ERRORS as e:
                logger.warning("Failed to read HEAD: %s", e)
                return None

    def relative_path_from_scm_root(self, path: Path | str) -> Path:
        """
        Path of ``path`` relative to the root of its work tree.

        Raises:
            NotInWorkTreeError: If ``path`` is not inside a work tree
        """
        path = Path(path)
        work_tree = find_work_tree(path, self.settings)
        if work_tree is None:
            raise NotInWorkTreeError(path)
        return path.resolve().relative_to(work_tree)

    def is_ignored(self, path: Path | str) -> bool:
        """True if the repository's ignore rules exclude ``path``."""
        path = Path(path)
        repo = self._open_optional(path)
        if repo is None:
            return False
        with repo:
            try:
                relative = repo.relative_path(path)
            except ValueError:
                return False
            return IgnoreChecker(repo).is_ignored(relative.as_posix())

    def blame(self, path: Path | str) -> BlameResult:
        """
        Lazy line attribution for ``path``.

        A repository handle is opened for each iteration and closed when the
        iteration ends or is abandoned.
        """
        path = Path(path)

        def source() -> Iterator[BlameLine]:
            repo = self._open_optional(path)
            if repo is None:
                return
            with repo:
                try:
                    relative = repo.relative_path(path)
                except ValueError:
                    return
                yield from BlameResolver(repo).blame(relative.as_posix())

        return BlameResult(str(path), source)
