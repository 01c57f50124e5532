"""
ProgressCalculator: completion figures for the planner header.

``weighted_progress`` scales every subject by its criticality::

    weight(s) = 1 + (score(s) / max_score) * 2        # in [1, 3]

Subjects without a score entry weigh 1, and so does everything when
``max_score`` is 0. Weights are computed as numpy arrays.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

import numpy as np

from curriculum_engine.config import NO_GRADE_SENTINEL
from curriculum_engine.criticality import score_map
from curriculum_engine.graph_model import DependencyGraph
from curriculum_engine.models import CriticalityScore, ProgressStats
from curriculum_engine.session import SessionStates, state_of

logger = logging.getLogger(__name__)


def criticality_weights(
    subject_ids: List[int],
    scores: Iterable[CriticalityScore],
) -> np.ndarray:
    """Per-subject weight in ``[1, 3]``, aligned with *subject_ids*."""
    lookup = score_map(scores)
    has_score = np.array([sid in lookup for sid in subject_ids], dtype=bool)
    raw = np.array([lookup.get(sid, 0) for sid in subject_ids], dtype=np.float64)

    max_score = float(max(lookup.values(), default=0))
    if max_score <= 0:
        return np.ones(len(subject_ids), dtype=np.float64)

    weights = 1.0 + (raw / max_score) * 2.0
    return np.where(has_score, weights, 1.0)


def round_half_up(value: float, places: int = 0) -> float:
    """Round halves away from zero, e.g. 12.5 -> 13 and 37.615 -> 37.62."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_average(grades: List[float]) -> str:
    """Mean grade with two decimals, or the ``N/A`` sentinel."""
    if not grades:
        return NO_GRADE_SENTINEL
    return f"{sum(grades) / len(grades):.2f}"


def compute_stats(
    graph: DependencyGraph,
    states: SessionStates,
    criticality_scores: Iterable[CriticalityScore],
) -> ProgressStats:
    """Overall progress, weighted progress, in-progress count and grade average."""
    subject_ids = graph.subject_ids
    total = len(subject_ids)
    if total == 0:
        return ProgressStats()

    statuses = [state_of(states, sid).status for sid in subject_ids]
    approved_mask = np.array([s == "approved" for s in statuses], dtype=bool)
    approved = int(approved_mask.sum())
    in_progress = sum(1 for s in statuses if s == "in_progress")

    weights = criticality_weights(subject_ids, criticality_scores)
    total_weight = float(weights.sum())
    approved_weight = float(weights[approved_mask].sum())
    weighted = approved_weight / total_weight * 100 if total_weight else 0.0

    grades = [
        state_of(states, sid).grade
        for sid, ok in zip(subject_ids, approved_mask)
        if ok and state_of(states, sid).grade is not None
    ]

    stats = ProgressStats(
        progress=int(round_half_up(approved / total * 100)),
        weighted_progress=round_half_up(weighted, 2),
        in_progress=in_progress,
        average=format_average(grades),
        total_subjects=total,
        approved_subjects=approved,
    )
    logger.debug(
        "Progress: %d%% (weighted %.2f%%), %d in progress, average %s.",
        stats.progress, stats.weighted_progress, stats.in_progress, stats.average,
    )
    return stats
