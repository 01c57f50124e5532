"""
EnablementResolver: which subjects may a student take right now.

A subject is enabled when it is already committed (``approved`` or
``in_progress``), when it has no prerequisites, or when every one of its
prerequisites is ``approved``. ``in_progress`` prerequisites do not
count. Enablement cascades, so callers recompute the whole map after any
status change with :func:`enabled_map`.
"""

import logging
from typing import Dict, List

from curriculum_engine.graph_model import DependencyGraph
from curriculum_engine.session import SessionStates, state_of

logger = logging.getLogger(__name__)

_COMMITTED = frozenset({"approved", "in_progress"})


def is_enabled(subject_id: int, graph: DependencyGraph, states: SessionStates) -> bool:
    """Return ``True`` if *subject_id* can be taken given *states*."""
    prerequisites = graph.prerequisites_of(subject_id)

    if state_of(states, subject_id).status in _COMMITTED:
        return True
    if not prerequisites:
        return True
    return all(state_of(states, p).status == "approved" for p in prerequisites)


def enabled_map(graph: DependencyGraph, states: SessionStates) -> Dict[int, bool]:
    """Enablement of every subject in the graph."""
    result = {sid: is_enabled(sid, graph, states) for sid in graph.subject_ids}
    logger.debug(
        "Enablement: %d/%d subjects enabled.", sum(result.values()), len(result)
    )
    return result


def missing_prerequisites(
    subject_id: int, graph: DependencyGraph, states: SessionStates
) -> List[int]:
    """Prerequisites of *subject_id* that are not yet approved."""
    return [
        p for p in graph.prerequisites_of(subject_id)
        if state_of(states, p).status != "approved"
    ]


def is_correlative(subject_a: int, subject_b: int, graph: DependencyGraph) -> bool:
    """``True`` when either subject is a direct prerequisite of the other."""
    return (
        subject_a in graph.prerequisites_of(subject_b)
        or subject_b in graph.prerequisites_of(subject_a)
    )
