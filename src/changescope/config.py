"""Runtime settings shared by the repository handle and the provider."""

from __future__ import annotations

from dataclasses import dataclass

from changescope.constants import DEFAULT_GIT_EXECUTABLE, DEFAULT_GIT_TIMEOUT


@dataclass(frozen=True)
class ScmSettings:
    """
    Settings for reading a repository.

    Attributes:
        git_executable: Name or path of the git binary
        timeout: Maximum seconds for a single git invocation
        include_uncommitted: Compare changed lines against the working copy
            instead of the head commit
        detect_renames: Ask git to pair deletions with additions as renames
    """
    git_executable: str = DEFAULT_GIT_EXECUTABLE
    timeout: int = DEFAULT_GIT_TIMEOUT
    include_uncommitted: bool = True
    detect_renames: bool = True

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if not self.git_executable:
            raise ValueError("git_executable must not be empty")
