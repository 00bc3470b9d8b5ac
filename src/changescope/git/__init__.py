"""Git integration: repository access and the change-detection components."""

from .commands import (
    GitCommandError,
    GitParseError,
    run_git_command,
    run_git_bytes,
    is_valid_ref_name,
    parse_name_status_z,
    parse_hunk_ranges,
    diff_text_ranges,
)
from .repository import (
    Repository,
    find_work_tree,
    open_repository,
)
from .refs import (
    Environment,
    ReferenceResolver,
    candidate_ref_names,
)
from .merge_base import (
    MergeBaseFinder,
    best_common_ancestors,
    build_commit_graph,
)
from .tree_diff import TreeDiffer, is_new_code
from .line_diff import LineDiffer, changed_line_numbers, normalize_line_endings
from .blame import BlameResolver, BlameResult
from .ignore import IgnoreChecker

__all__ = [
    # Exceptions
    'GitCommandError',
    'GitParseError',
    # Repository access
    'Repository',
    'find_work_tree',
    'open_repository',
    # Components
    'Environment',
    'ReferenceResolver',
    'MergeBaseFinder',
    'TreeDiffer',
    'LineDiffer',
    'BlameResolver',
    'BlameResult',
    'IgnoreChecker',
    # Functions
    'run_git_command',
    'run_git_bytes',
    'is_valid_ref_name',
    'parse_name_status_z',
    'parse_hunk_ranges',
    'diff_text_ranges',
    'candidate_ref_names',
    'best_common_ancestors',
    'build_commit_graph',
    'is_new_code',
    'changed_line_numbers',
    'normalize_line_endings',
]
