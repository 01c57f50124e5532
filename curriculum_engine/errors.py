"""
Exception hierarchy for the curriculum engine.

Only structurally unusable input raises. Anomalies with a safe default
(unresolvable references, legacy id references, missing terms) are
logged by the component that meets them and computation continues.
"""

from typing import List, Tuple


class CurriculumError(Exception):
    """Base class for every error raised by the engine."""


class CurriculumDataError(CurriculumError):
    """Raw curriculum input cannot be turned into a graph."""


class CyclicCurriculumError(CurriculumError):
    """Prerequisite cycle found while ``cycle_policy="reject"``."""

    def __init__(self, cycle: List[Tuple[int, int]]):
        self.cycle = cycle
        path = " -> ".join(str(src) for src, _ in cycle)
        super().__init__(f"Prerequisite cycle detected: {path} -> {cycle[0][0]}")


class UnknownSubjectError(CurriculumError, KeyError):
    """A subject id that is not part of the graph was addressed."""

    def __init__(self, subject_id: int):
        self.subject_id = subject_id
        super().__init__(f"Unknown subject id: {subject_id}")

    def __str__(self) -> str:
        return self.args[0]
