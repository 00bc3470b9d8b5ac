"""
Fork point (merge base) computation over the commit graph.

The ancestry of both commits is loaded into a networkx DiGraph with edges
pointing from child to parent. A commit is a common ancestor when it is
reachable from both tips; the best common ancestors are those that are not
an ancestor of another common ancestor. Within the common set these are
exactly the nodes with no incoming edge, since every commit between two
common ancestors is itself common.
"""

from __future__ import annotations

import logging
from typing import Optional

import networkx as nx

from changescope.git.commands import GitCommandError, GitParseError
from changescope.models import Commit, ForkPoint

logger = logging.getLogger(__name__)


def build_commit_graph(commits) -> nx.DiGraph:
    """
    Build a child -> parent graph.

    Each node carries its ``Commit`` under the ``commit`` attribute. Parents
    missing from ``commits`` (shallow history) are added without one.
    """
    graph = nx.DiGraph()
    for commit in commits:
        graph.add_node(commit.id, commit=commit)
        for parent in commit.parents:
            graph.add_edge(commit.id, parent)
    return graph


def _reachable(graph: nx.DiGraph, commit_id: str) -> set[str]:
    """``commit_id`` and all of its ancestors."""
    return nx.descendants(graph, commit_id) | {commit_id}


def best_common_ancestors(graph: nx.DiGraph, a: str, b: str) -> list[str]:
    """
    Best common ancestors of ``a`` and ``b``, most recent first.

    Returns:
        Commit ids; empty when the histories are disjoint
    """
    if a not in graph or b not in graph:
        return []

    common = _reachable(graph, a) & _reachable(graph, b)
    if not common:
        return []

    sub = graph.subgraph(common)
    bases = [node for node in sub.nodes if sub.in_degree(node) == 0]

    def sort_key(node: str) -> tuple[int, str]:
        commit = graph.nodes[node].get('commit')
        return (-(commit.timestamp if commit else 0), node)

    return sorted(bases, key=sort_key)


class MergeBaseFinder:
    """Finds the fork point between two commits of one repository."""

    def __init__(self, repo):
        self.repo = repo

    def find_fork_point(self, commit_a: Optional[str], commit_b: Optional[str]) -> Optional[ForkPoint]:
        """
        Nearest common ancestor of two commits.

        Returns:
            The fork point, or None when either commit is missing or the
            histories share no ancestor
        """
        if not commit_a or not commit_b:
            return None

        if commit_a == commit_b:
            return self._fork_point(commit_a)

        try:
            graph = build_commit_graph(self.repo.walk_ancestry(commit_a, commit_b))
        except (GitCommandError, GitParseError) as e:
            logger.warning("Failed to walk history of %s and %s: %s", commit_a, commit_b, e)
            return None

        bases = best_common_ancestors(graph, commit_a, commit_b)
        if not bases:
            logger.warning("No fork point found between %s and %s", commit_a, commit_b)
            return None

        if len(bases) > 1:
            logger.debug(
                "Multiple merge base candidates for %s and %s: %s; using %s",
                commit_a, commit_b, ", ".join(bases), bases[0]
            )

        commit: Optional[Commit] = graph.nodes[bases[0]].get('commit')
        if commit is None:
            return self._fork_point(bases[0])
        return ForkPoint(commit=commit)

    def _fork_point(self, commit_id: str) -> Optional[ForkPoint]:
        try:
            return ForkPoint(commit=self.repo.commit(commit_id))
        except (GitCommandError, GitParseError) as e:
            logger.warning("Failed to load commit %s: %s", commit_id, e)
            return None
