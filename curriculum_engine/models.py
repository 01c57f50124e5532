"""
Pydantic models for the curriculum engine.

Raw input: subject records and student progress entries as delivered by
the career and progress services.
Canonical: subjects, session state, layout geometry, criticality scores,
progress statistics and the combined view handed to the UI.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from curriculum_engine.config import MAX_QUARTER, NO_GRADE_SENTINEL, Status


# =========================================================================
# Raw input
# =========================================================================


class RawPrerequisite(BaseModel):
    """Object-shaped prerequisite reference: ``{id?, code?, name?}``."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[int] = None
    code: Optional[str] = None
    name: Optional[str] = None


class RawSubject(BaseModel):
    """One subject record as served by the career service.

    Accepts the camelCase API keys, the snake_case keys and the legacy
    all-lowercase ``subjectid``.
    """

    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, coerce_numbers_to_str=True
    )

    subject_id: int = Field(
        validation_alias=AliasChoices("subject_id", "subjectId", "subjectid", "id")
    )
    code: str = Field(min_length=1)
    name: str = ""
    suggested_year: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("suggested_year", "suggestedYear"),
    )
    suggested_quarter: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("suggested_quarter", "suggestedQuarter"),
    )
    # Parsed entry by entry in canonicalize; a malformed one is dropped there.
    prerequisites: List[Any] = Field(default_factory=list)

    @field_validator("prerequisites", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


class ProgressEntry(BaseModel):
    """One approved (with optional grade) or in-progress subject."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    subject_id: int = Field(
        validation_alias=AliasChoices("subject_id", "subjectId", "subjectid")
    )
    grade: Optional[float] = None


# =========================================================================
# Canonical subject + session state
# =========================================================================


class Subject(BaseModel):
    """Static facts about a subject, immutable for the session."""

    model_config = ConfigDict(frozen=True)

    subject_id: int
    code: str
    name: str
    suggested_year: int = Field(ge=1)
    suggested_quarter: int = Field(ge=1, le=MAX_QUARTER)

    @property
    def term(self) -> Tuple[int, int]:
        return (self.suggested_year, self.suggested_quarter)


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class SubjectState(BaseModel):
    """Mutable-by-replacement session state of one subject."""

    model_config = ConfigDict(frozen=True)

    status: Status = "pending"
    grade: Optional[float] = None
    position: Position = Field(default_factory=Position)


class SubjectNode(BaseModel):
    """Read-only join of a :class:`Subject` and its :class:`SubjectState`."""

    subject_id: int
    code: str
    name: str
    suggested_year: int
    suggested_quarter: int
    prerequisites: List[int] = Field(default_factory=list)
    status: Status = "pending"
    grade: Optional[float] = None
    position: Position = Field(default_factory=Position)


# =========================================================================
# Derived outputs
# =========================================================================


class YearLabel(BaseModel):
    year: int
    x: float
    y: float


class QuarterLabel(BaseModel):
    year: int
    quarter: int
    x: float
    y: float


class LayoutGeometry(BaseModel):
    """Per-subject positions plus the axis labels of the grid."""

    positions: Dict[int, Position] = Field(default_factory=dict)
    year_labels: List[YearLabel] = Field(default_factory=list)
    quarter_labels: List[QuarterLabel] = Field(default_factory=list)


class CriticalityScore(BaseModel):
    """Number of subjects transitively unlocked by approving a subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: int
    score: int = Field(ge=0)


class ProgressStats(BaseModel):
    """Summary figures shown in the planner header."""

    progress: int = 0
    weighted_progress: float = 0.0
    in_progress: int = 0
    average: str = NO_GRADE_SENTINEL
    total_subjects: int = 0
    approved_subjects: int = 0


class CurriculumView(BaseModel):
    """Everything the UI layer needs to draw one student's curriculum."""

    subjects: List[SubjectNode] = Field(default_factory=list)
    enabled: Dict[int, bool] = Field(default_factory=dict)
    year_labels: List[YearLabel] = Field(default_factory=list)
    quarter_labels: List[QuarterLabel] = Field(default_factory=list)
    criticality: List[CriticalityScore] = Field(default_factory=list)
    stats: ProgressStats = Field(default_factory=ProgressStats)
    removed_edges: List[Tuple[int, int]] = Field(default_factory=list)
