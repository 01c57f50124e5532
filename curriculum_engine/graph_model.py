"""
GraphModel: canonicalise raw subject records into a dependency graph.

Prerequisites arrive in three shapes (bare numeric id, bare code string,
or an object with ``id`` and/or ``code``). Each one is turned into a
tagged reference (:class:`ById` or :class:`ByCode`) once, here, and
resolved to a subject id. Nothing downstream branches on the raw shape.

Resolution order for a reference:

1. it carries a code → match by code;
2. it carries only a numeric id → match by id (legacy, logged);
3. anything else → coerce to ``str`` and match by code.

Unresolvable references are dropped with a warning. Prerequisite cycles
are broken (default) or rejected, see :mod:`curriculum_engine.dag_validator`.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import networkx as nx
from pydantic import ValidationError

from curriculum_engine.config import (
    DEFAULT_CYCLE_POLICY,
    DEFAULT_QUARTER,
    DEFAULT_YEAR,
    MAX_QUARTER,
    CyclePolicy,
)
from curriculum_engine.dag_validator import Edge, break_cycles, build_digraph, find_cycle
from curriculum_engine.errors import (
    CurriculumDataError,
    CyclicCurriculumError,
    UnknownSubjectError,
)
from curriculum_engine.models import RawPrerequisite, RawSubject, Subject

logger = logging.getLogger(__name__)


# =========================================================================
# Prerequisite references
# =========================================================================


@dataclass(frozen=True)
class ById:
    """Legacy reference by numeric subject id."""

    subject_id: int


@dataclass(frozen=True)
class ByCode:
    """Reference by subject code (preferred)."""

    code: str


PrerequisiteRef = Union[ById, ByCode]


def to_prerequisite_ref(raw: Any) -> Optional[PrerequisiteRef]:
    """Turn one raw prerequisite value into a tagged reference.

    Returns ``None`` for an object that carries neither id nor code.
    """
    if isinstance(raw, Mapping):
        raw = RawPrerequisite.model_validate(raw)

    if isinstance(raw, RawPrerequisite):
        if raw.code:
            return ByCode(raw.code)
        if raw.id is not None:
            return ById(raw.id)
        return None

    if isinstance(raw, int) and not isinstance(raw, bool):
        return ById(raw)
    return ByCode(str(raw))


# =========================================================================
# Dependency graph
# =========================================================================


class DependencyGraph:
    """Canonical subjects, prerequisite edges and the reverse index.

    ``prerequisites_of(s)`` lists the subjects *s* requires;
    ``dependents_of(s)`` lists the subjects that require *s*. The two
    views are always consistent. Instances are treated as immutable.
    """

    def __init__(
        self,
        subjects: List[Subject],
        prerequisites: Dict[int, List[int]],
        removed_edges: Optional[List[Edge]] = None,
    ):
        self._subjects: Dict[int, Subject] = {s.subject_id: s for s in subjects}
        self._by_code: Dict[str, int] = {s.code: s.subject_id for s in subjects}
        self._prerequisites: Dict[int, Tuple[int, ...]] = {
            sid: tuple(prerequisites.get(sid, ())) for sid in self._subjects
        }

        dependents: Dict[int, List[int]] = {sid: [] for sid in self._subjects}
        for sid, prereqs in self._prerequisites.items():
            for prereq_id in prereqs:
                dependents[prereq_id].append(sid)
        self._dependents: Dict[int, Tuple[int, ...]] = {
            sid: tuple(sorted(deps)) for sid, deps in dependents.items()
        }
        self.removed_edges: List[Edge] = list(removed_edges or [])

    # ---- lookups --------------------------------------------------------

    def __len__(self) -> int:
        return len(self._subjects)

    def __contains__(self, subject_id: object) -> bool:
        return subject_id in self._subjects

    def __iter__(self) -> Iterator[Subject]:
        return iter(self._subjects.values())

    @property
    def subjects(self) -> List[Subject]:
        """Subjects in input order."""
        return list(self._subjects.values())

    @property
    def subject_ids(self) -> List[int]:
        return list(self._subjects)

    def subject(self, subject_id: int) -> Subject:
        try:
            return self._subjects[subject_id]
        except KeyError:
            raise UnknownSubjectError(subject_id) from None

    def subject_by_code(self, code: str) -> Optional[Subject]:
        sid = self._by_code.get(code)
        return None if sid is None else self._subjects[sid]

    def prerequisites_of(self, subject_id: int) -> Tuple[int, ...]:
        try:
            return self._prerequisites[subject_id]
        except KeyError:
            raise UnknownSubjectError(subject_id) from None

    def dependents_of(self, subject_id: int) -> Tuple[int, ...]:
        try:
            return self._dependents[subject_id]
        except KeyError:
            raise UnknownSubjectError(subject_id) from None

    # ---- edge views -----------------------------------------------------

    def edges(self) -> List[Edge]:
        """``(prerequisite_id, dependent_id)`` pairs."""
        return [
            (prereq_id, sid)
            for sid, prereqs in self._prerequisites.items()
            for prereq_id in prereqs
        ]

    def to_networkx(self) -> nx.DiGraph:
        """Edges point from prerequisite to dependent; nodes carry subject data."""
        G = build_digraph(self._subjects, self.edges())
        for sid, subject in self._subjects.items():
            G.nodes[sid].update(subject.model_dump())
        return G

    def to_raw(self) -> List[Dict[str, Any]]:
        """Raw records with numeric-id prerequisites only."""
        return [
            {
                "subjectId": s.subject_id,
                "code": s.code,
                "name": s.name,
                "suggestedYear": s.suggested_year,
                "suggestedQuarter": s.suggested_quarter,
                "prerequisites": list(self._prerequisites[s.subject_id]),
            }
            for s in self._subjects.values()
        ]

    def __repr__(self) -> str:
        return (
            f"DependencyGraph(subjects={len(self._subjects)}, "
            f"edges={len(self.edges())})"
        )


# =========================================================================
# Canonicalisation
# =========================================================================


def _parse_records(raw_subjects: Any) -> List[RawSubject]:
    if isinstance(raw_subjects, (str, bytes, Mapping)) or not isinstance(
        raw_subjects, Sequence
    ):
        raise CurriculumDataError(
            f"Subjects must be a list of records, got {type(raw_subjects).__name__}"
        )

    records: List[RawSubject] = []
    for idx, raw in enumerate(raw_subjects):
        if isinstance(raw, RawSubject):
            records.append(raw)
            continue
        if not isinstance(raw, Mapping):
            raise CurriculumDataError(
                f"Subject record #{idx} is not a mapping: {raw!r}"
            )
        try:
            records.append(RawSubject.model_validate(raw))
        except ValidationError as exc:
            raise CurriculumDataError(
                f"Subject record #{idx} is invalid: {exc}"
            ) from exc
    return records


def _term_value(
    raw: RawSubject, field: str, value: Optional[int], upper: Optional[int], default: int
) -> int:
    if value is None:
        logger.debug("Subject %s has no %s; using %d.", raw.code, field, default)
        return default
    if value < 1 or (upper is not None and value > upper):
        logger.warning(
            "Subject %s: %s %d is out of range; using %d.", raw.code, field, value, default
        )
        return default
    return value


def _to_subject(raw: RawSubject) -> Subject:
    """Canonical subject; a missing or out-of-range term falls back to year 1 quarter 1."""
    return Subject(
        subject_id=raw.subject_id,
        code=raw.code,
        name=raw.name,
        suggested_year=_term_value(
            raw, "suggestedYear", raw.suggested_year, None, DEFAULT_YEAR
        ),
        suggested_quarter=_term_value(
            raw, "suggestedQuarter", raw.suggested_quarter, MAX_QUARTER, DEFAULT_QUARTER
        ),
    )


def _resolve(
    ref: PrerequisiteRef,
    ids: Dict[int, Subject],
    codes: Dict[str, int],
) -> Optional[int]:
    if isinstance(ref, ByCode):
        return codes.get(ref.code)
    return ref.subject_id if ref.subject_id in ids else None


def canonicalize(
    raw_subjects: Any,
    cycle_policy: CyclePolicy = DEFAULT_CYCLE_POLICY,
) -> DependencyGraph:
    """Build a :class:`DependencyGraph` from raw subject records.

    Args:
        raw_subjects: Sequence of dicts (or :class:`RawSubject`) with
            ``subjectId``, ``code``, ``name``, ``suggestedYear``,
            ``suggestedQuarter`` and ``prerequisites``.
        cycle_policy: ``"break"`` drops one edge per prerequisite cycle;
            ``"reject"`` raises :class:`CyclicCurriculumError`.

    Raises:
        CurriculumDataError: input is not a list of records, a record is
            malformed, or ids/codes are not unique.
        CyclicCurriculumError: a cycle exists and *cycle_policy* is
            ``"reject"``.
    """
    if cycle_policy not in ("break", "reject"):
        raise ValueError(f"Unknown cycle policy: {cycle_policy!r}")

    records = _parse_records(raw_subjects)

    subjects: List[Subject] = []
    ids: Dict[int, Subject] = {}
    codes: Dict[str, int] = {}
    for raw in records:
        subject = _to_subject(raw)
        if subject.subject_id in ids:
            raise CurriculumDataError(f"Duplicate subject id: {subject.subject_id}")
        if subject.code in codes:
            raise CurriculumDataError(f"Duplicate subject code: {subject.code}")
        ids[subject.subject_id] = subject
        codes[subject.code] = subject.subject_id
        subjects.append(subject)

    prerequisites: Dict[int, List[int]] = {}
    edges: List[Edge] = []
    unresolved = 0
    for raw in records:
        resolved: List[int] = []
        for value in raw.prerequisites:
            try:
                ref = to_prerequisite_ref(value)
            except ValidationError as exc:
                logger.warning(
                    "Subject %s: prerequisite %r is malformed (%d error(s)); dropped.",
                    raw.code, value, exc.error_count(),
                )
                unresolved += 1
                continue
            if ref is None:
                logger.warning(
                    "Subject %s: prerequisite %r has neither id nor code; dropped.",
                    raw.code, value,
                )
                unresolved += 1
                continue
            if isinstance(ref, ById):
                logger.warning(
                    "Subject %s: legacy numeric prerequisite reference %d; "
                    "reference prerequisites by code instead.",
                    raw.code, ref.subject_id,
                )

            target = _resolve(ref, ids, codes)
            if target is None:
                logger.warning(
                    "Subject %s: prerequisite %r does not match any subject; dropped.",
                    raw.code, ref,
                )
                unresolved += 1
                continue
            if target == raw.subject_id:
                logger.warning("Subject %s lists itself as prerequisite; dropped.", raw.code)
                continue
            if target not in resolved:
                resolved.append(target)

        prerequisites[raw.subject_id] = resolved
        edges.extend((target, raw.subject_id) for target in resolved)

    removed: List[Edge] = []
    if cycle_policy == "reject":
        cycle = find_cycle(edges)
        if cycle is not None:
            raise CyclicCurriculumError(cycle)
    else:
        terms = {s.subject_id: s.term for s in subjects}
        edges, removed = break_cycles(edges, terms)
        for prereq_id, dependent_id in removed:
            prerequisites[dependent_id].remove(prereq_id)

    graph = DependencyGraph(subjects, prerequisites, removed_edges=removed)
    logger.info(
        "Canonical graph: %d subjects, %d edges (%d unresolved, %d cycle edges removed).",
        len(graph), len(edges), unresolved, len(removed),
    )
    return graph
