"""
Curriculum file validation.

Checks a curriculum document before it is loaded and reports every
problem as a human-readable line, instead of stopping at the first one
the way :func:`~curriculum_engine.graph_model.canonicalize` does.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Set

from curriculum_engine.config import MAX_QUARTER, MAX_YEAR
from curriculum_engine.graph_model import ByCode, ById, to_prerequisite_ref

logger = logging.getLogger(__name__)

_ID_KEYS = ("subjectId", "subject_id", "subjectid", "id")
_YEAR_KEYS = ("suggestedYear", "suggested_year")
_QUARTER_KEYS = ("suggestedQuarter", "suggested_quarter")


def _first(record: Mapping, keys) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return None


def subjects_of(document: Any) -> Any:
    """The subject list of a document: a bare list or ``{"subjects": [...]}``."""
    if isinstance(document, Mapping):
        return document.get("subjects")
    return document


def validate_curriculum(document: Any) -> List[str]:
    """Return a list of problems found in *document* (empty when valid)."""
    subjects = subjects_of(document)
    if not isinstance(subjects, list):
        return ['Curriculum must be a list of subjects or {"subjects": [...]}']

    errors: List[str] = []
    ids: Set[int] = set()
    codes: Set[str] = set()

    for index, record in enumerate(subjects, start=1):
        if not isinstance(record, Mapping):
            errors.append(f"Subject {index}: record must be an object")
            continue

        sid = _first(record, _ID_KEYS)
        code = record.get("code")
        if not isinstance(sid, int) or isinstance(sid, bool):
            errors.append(f'Subject {index}: "subjectId" is required and must be an integer')
        elif sid in ids:
            errors.append(f"Duplicate subject id: {sid}")
        else:
            ids.add(sid)

        if not code or not isinstance(code, str):
            errors.append(f'Subject {index}: "code" is required and must be a string')
        elif code in codes:
            errors.append(f"Duplicate subject code: {code}")
        else:
            codes.add(code)

        if not record.get("name") or not isinstance(record.get("name"), str):
            errors.append(f'Subject {index}: "name" is required and must be a string')

        year = _first(record, _YEAR_KEYS)
        if year is not None and (not isinstance(year, int) or not 1 <= year <= MAX_YEAR):
            errors.append(f'Subject {index}: "suggestedYear" must be an integer between 1 and {MAX_YEAR}')

        quarter = _first(record, _QUARTER_KEYS)
        if quarter is not None and quarter not in range(1, MAX_QUARTER + 1):
            errors.append(f'Subject {index}: "suggestedQuarter" must be 1 or 2')

        if not isinstance(record.get("prerequisites", []), list):
            errors.append(f'Subject {index}: "prerequisites" must be a list')

    # References are checked once every id and code is known.
    for index, record in enumerate(subjects, start=1):
        if not isinstance(record, Mapping) or not isinstance(record.get("prerequisites"), list):
            continue
        for raw in record["prerequisites"]:
            try:
                ref = to_prerequisite_ref(raw)
            except ValueError:
                ref = None
            if ref is None:
                errors.append(f"Subject {index}: prerequisite {raw!r} has neither id nor code")
            elif isinstance(ref, ByCode) and ref.code not in codes:
                errors.append(f'Subject {index}: prerequisite "{ref.code}" does not exist')
            elif isinstance(ref, ById) and ref.subject_id not in ids:
                errors.append(f"Subject {index}: prerequisite id {ref.subject_id} does not exist")

    logger.info("Validated %d subject(s): %d problem(s).", len(subjects), len(errors))
    return errors
