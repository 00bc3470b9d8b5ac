"""
changescope - Find what changed on a branch since it forked.

Resolves a target branch, finds the fork point with the current HEAD and
reports the files and lines that carry new code, so analysis can be limited
to them.
"""

__version__ = "0.1.0"

# Models
from changescope.models import (
    Commit,
    Ref,
    ForkPoint,
    ChangedFile,
    BlameLine,
)

# Configuration
from changescope.config import ScmSettings
from changescope.git.refs import Environment

# Errors and diagnostics
from changescope.exceptions import ChangeScopeError, NotInWorkTreeError
from changescope.diagnostics import WarningSink, AnalysisWarnings, NullWarnings

# Entry points
from changescope.provider import ScmProvider

__all__ = [
    # Version
    "__version__",
    # Models
    "Commit",
    "Ref",
    "ForkPoint",
    "ChangedFile",
    "BlameLine",
    # Configuration
    "ScmSettings",
    "Environment",
    # Errors
    "ChangeScopeError",
    "NotInWorkTreeError",
    # Diagnostics
    "WarningSink",
    "AnalysisWarnings",
    "NullWarnings",
    # Provider
    "ScmProvider",
]
