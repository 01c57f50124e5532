"""
Session state: per-subject status, grade and position.

The store is a plain ``Dict[int, SubjectState]`` owned by the caller.
Every helper here returns a *new* dict and leaves its inputs untouched,
so a UI can keep the previous snapshot for optimistic-update rollbacks.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from curriculum_engine.config import STATUSES, Status
from curriculum_engine.errors import CurriculumDataError, UnknownSubjectError
from curriculum_engine.graph_model import DependencyGraph
from curriculum_engine.models import (
    LayoutGeometry,
    Position,
    ProgressEntry,
    SubjectNode,
    SubjectState,
)

logger = logging.getLogger(__name__)

SessionStates = Dict[int, SubjectState]


def initial_states(graph: DependencyGraph) -> SessionStates:
    """Every subject ``pending``, no grade, at the origin."""
    return {sid: SubjectState() for sid in graph.subject_ids}


def state_of(states: SessionStates, subject_id: int) -> SubjectState:
    """State of *subject_id*; subjects missing from the store are pending."""
    return states.get(subject_id) or SubjectState()


def _parse_entries(entries: Iterable[Any], kind: str) -> List[ProgressEntry]:
    parsed: List[ProgressEntry] = []
    for entry in entries or []:
        try:
            parsed.append(
                entry if isinstance(entry, ProgressEntry)
                else ProgressEntry.model_validate(entry)
            )
        except ValidationError as exc:
            raise CurriculumDataError(f"Invalid {kind} progress entry {entry!r}: {exc}") from exc
    return parsed


def apply_student_progress(
    graph: DependencyGraph,
    states: SessionStates,
    approved: Iterable[Any] = (),
    in_progress: Iterable[Any] = (),
) -> SessionStates:
    """Merge the progress service's lists into *states*.

    Approved entries set status and grade. In-progress entries never
    override an approved subject. Entries for subjects outside the graph
    are ignored with a warning.
    """
    updated = dict(states)
    for sid in graph.subject_ids:
        updated.setdefault(sid, SubjectState())

    for entry in _parse_entries(approved, "approved"):
        if entry.subject_id not in graph:
            logger.warning("Approved subject %d is not part of this curriculum; ignored.", entry.subject_id)
            continue
        current = updated[entry.subject_id]
        updated[entry.subject_id] = current.model_copy(
            update={"status": "approved", "grade": entry.grade}
        )

    for entry in _parse_entries(in_progress, "in-progress"):
        if entry.subject_id not in graph:
            logger.warning("In-progress subject %d is not part of this curriculum; ignored.", entry.subject_id)
            continue
        current = updated[entry.subject_id]
        if current.status == "approved":
            continue
        updated[entry.subject_id] = current.model_copy(
            update={"status": "in_progress", "grade": None}
        )

    return updated


def with_status(
    states: SessionStates,
    subject_id: int,
    status: Status,
    grade: Optional[float] = None,
) -> SessionStates:
    """Return a copy of *states* with *subject_id* moved to *status*.

    The grade survives only for ``approved``: a new *grade* wins, else the
    one already recorded is kept. Any other status clears it.
    """
    if status not in STATUSES:
        raise ValueError(f"Unknown status {status!r}; expected one of {STATUSES}")
    if subject_id not in states:
        raise UnknownSubjectError(subject_id)

    current = states[subject_id]
    new_grade = (grade if grade is not None else current.grade) if status == "approved" else None

    updated = dict(states)
    updated[subject_id] = current.model_copy(update={"status": status, "grade": new_grade})
    return updated


def with_grade(states: SessionStates, subject_id: int, grade: float) -> SessionStates:
    """Recording a grade approves the subject."""
    return with_status(states, subject_id, "approved", grade)


def with_position(states: SessionStates, subject_id: int, position: Position) -> SessionStates:
    if subject_id not in states:
        raise UnknownSubjectError(subject_id)
    updated = dict(states)
    updated[subject_id] = states[subject_id].model_copy(update={"position": position})
    return updated


def with_layout(states: SessionStates, geometry: LayoutGeometry) -> SessionStates:
    """Copy every computed position from *geometry* into the store."""
    updated = dict(states)
    for sid, position in geometry.positions.items():
        updated[sid] = state_of(states, sid).model_copy(update={"position": position})
    return updated


def build_nodes(graph: DependencyGraph, states: SessionStates) -> List[SubjectNode]:
    """Join subjects with their session state, in graph order."""
    nodes: List[SubjectNode] = []
    for subject in graph:
        state = state_of(states, subject.subject_id)
        nodes.append(
            SubjectNode(
                **subject.model_dump(),
                prerequisites=list(graph.prerequisites_of(subject.subject_id)),
                status=state.status,
                grade=state.grade,
                position=state.position,
            )
        )
    return nodes
