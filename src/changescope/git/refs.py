"""
Resolution of a human-supplied branch name to a commit.

Candidates are tried in a fixed order and the first existing ref wins:

1. ``refs/heads/<name>``
2. ``refs/remotes/upstream/<name>``
3. ``refs/remotes/origin/<name>``
4. ``refs/remotes/<name>`` (for remote-qualified names such as ``upstream/main``)

On CI systems that rewrite the local branch during checkout, the
remote-tracking refs move ahead of the local one.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from changescope.constants import (
    CI_ENV_ENABLED_VALUE,
    CI_ENV_VARIABLE,
    LOCAL_BRANCH_PREFIX,
    ORIGIN_PREFIX,
    REF_NOT_FOUND_MESSAGE,
    REMOTES_PREFIX,
    UPSTREAM_PREFIX,
)
from changescope.git.commands import GitCommandError, is_valid_ref_name
from changescope.models import Ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Environment:
    """
    The slice of the process environment that affects resolution.

    Passed explicitly so resolution stays deterministic in tests.
    """
    variables: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_os(cls) -> Environment:
        return cls(variables=dict(os.environ))

    @property
    def prefers_remote_refs(self) -> bool:
        """True when the local target branch can't be trusted."""
        return self.variables.get(CI_ENV_VARIABLE) == CI_ENV_ENABLED_VALUE


def candidate_ref_names(branch_name: str, environment: Environment) -> list[str]:
    """Full ref names to try for ``branch_name``, in priority order."""
    local = LOCAL_BRANCH_PREFIX + branch_name
    upstream = UPSTREAM_PREFIX + branch_name
    origin = ORIGIN_PREFIX + branch_name
    qualified = REMOTES_PREFIX + branch_name

    if environment.prefers_remote_refs:
        return [upstream, origin, local, qualified]
    return [local, upstream, origin, qualified]


class ReferenceResolver:
    """Maps branch names to refs for one repository."""

    def __init__(self, repo, environment: Optional[Environment] = None):
        self.repo = repo
        self.environment = environment if environment is not None else Environment()

    def resolve(self, branch_name: str) -> Optional[Ref]:
        """
        Find the ref for ``branch_name``.

        Returns:
            The first existing candidate ref, or None. A miss is logged as a
            warning; it is not an error.
        """
        if not is_valid_ref_name(branch_name):
            logger.warning(REF_NOT_FOUND_MESSAGE.format(name=branch_name))
            return None

        for candidate in candidate_ref_names(branch_name, self.environment):
            try:
                ref = self.repo.resolve_ref(candidate)
            except GitCommandError as e:
                logger.debug("Lookup of %s failed: %s", candidate, e)
                continue
            if ref is not None:
                logger.debug("Resolved '%s' to %s (%s)", branch_name, ref.short_name, ref.commit_id)
                return ref

        logger.warning(REF_NOT_FOUND_MESSAGE.format(name=branch_name))
        return None
