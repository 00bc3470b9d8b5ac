"""
Centralized constants for the changescope package.

This module contains:
- Ref namespaces searched when resolving a target branch
- Environment variables that change resolution order
- Git plumbing formats and delimiters
- Message templates surfaced to the analysis warning sink
"""

# =============================================================================
# Ref Namespaces
# =============================================================================

LOCAL_BRANCH_PREFIX = "refs/heads/"
REMOTES_PREFIX = "refs/remotes/"
UPSTREAM_PREFIX = "refs/remotes/upstream/"
ORIGIN_PREFIX = "refs/remotes/origin/"

HEAD_REF = "HEAD"

# Continuous-integration detection.
# CircleCI rewrites the local target branch during checkout, so the
# remote-tracking ref is the trustworthy one there.
CI_ENV_VARIABLE = "CIRCLECI"
CI_ENV_ENABLED_VALUE = "true"

# =============================================================================
# Git Plumbing
# =============================================================================

DEFAULT_GIT_EXECUTABLE = "git"

# Seconds before a single git invocation is abandoned
DEFAULT_GIT_TIMEOUT = 30

# Algorithm for per-line diffs, overriding any diff.algorithm setting
LINE_DIFF_ALGORITHM = "myers"

# Null byte delimiter - cannot appear in git paths or metadata
NULL = "\x00"

# Object id of a line that has not been committed yet (git blame)
ZERO_OBJECT_ID = "0" * 40

# Tree diff statuses that count as "new code" in the head tree.
# Deletions never do: a removed file has no new lines.
CHANGED_STATUSES: frozenset[str] = frozenset({
    "added",
    "modified",
    "renamed",  # reported under the new path
    "copied",  # reported under the new path
    "type_changed",
})

# =============================================================================
# Messages
# =============================================================================

NOT_IN_WORK_TREE_MESSAGE = "Not inside a Git work tree: {path}"

REF_NOT_FOUND_MESSAGE = (
    "Could not find ref '{name}' in refs/heads, refs/remotes, "
    "refs/remotes/upstream or refs/remotes/origin"
)

REF_NOT_FOUND_ADVICE = (
    ". You may see unexpected issues and changes. "
    "Please make sure to fetch this ref before pull request analysis."
)

# Bytes inspected when sniffing for binary content
BINARY_SNIFF_LENGTH = 8000
