"""
CriticalityAnalyzer: how much of the plan does each subject unlock.

The score of a subject is the number of distinct subjects reachable from
it by following "dependents" edges, i.e. every subject that directly or
indirectly requires it. A dependent reachable through several paths
counts once for that root, but counts again for every other ancestor
that reaches it.

Reachable sets are computed with an explicit stack and memoised per
node, so each subject is expanded once regardless of how many ancestors
it has. Graphs from :func:`~curriculum_engine.graph_model.canonicalize`
are acyclic; if a hand-built graph does contain a cycle the traversal
still terminates, and members of the cycle see only the part of it
already expanded.

Scores are raw and unbounded. Turning them into "most/moderately/not
critical" buckets is left to the caller.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from curriculum_engine.graph_model import DependencyGraph
from curriculum_engine.models import CriticalityScore

logger = logging.getLogger(__name__)


def reachable_dependents(graph: DependencyGraph) -> Dict[int, FrozenSet[int]]:
    """``{subject_id: every subject that transitively depends on it}``."""
    memo: Dict[int, FrozenSet[int]] = {}

    for root in graph.subject_ids:
        if root in memo:
            continue

        on_path: Set[int] = set()
        stack: List[Tuple[int, bool]] = [(root, False)]
        while stack:
            sid, expanded = stack.pop()
            if sid in memo:
                continue

            if expanded:
                reach: Set[int] = set()
                for dep in graph.dependents_of(sid):
                    reach.add(dep)
                    reach |= memo.get(dep, frozenset())
                reach.discard(sid)
                memo[sid] = frozenset(reach)
                on_path.discard(sid)
                continue

            if sid in on_path:
                continue
            on_path.add(sid)
            stack.append((sid, True))
            for dep in graph.dependents_of(sid):
                if dep not in memo and dep not in on_path:
                    stack.append((dep, False))

    return memo


def score_all(graph: DependencyGraph) -> List[CriticalityScore]:
    """Criticality of every subject, highest first (ties by subject id)."""
    reach = reachable_dependents(graph)
    scores = [
        CriticalityScore(subject_id=sid, score=len(reach[sid]))
        for sid in graph.subject_ids
    ]
    scores.sort(key=lambda s: (-s.score, s.subject_id))

    if scores:
        logger.info(
            "Criticality: max=%d (subject %d), %d subject(s) unlock nothing.",
            scores[0].score, scores[0].subject_id,
            sum(1 for s in scores if s.score == 0),
        )
    return scores


def score_map(scores: Iterable[CriticalityScore]) -> Dict[int, int]:
    """``{subject_id: score}`` lookup for a score list."""
    return {s.subject_id: s.score for s in scores}
