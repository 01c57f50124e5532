"""
LayoutEngine: place subject cards on a year × quarter grid.

Two deterministic passes:

1. **Grid placement.** ``x`` depends only on the suggested term: year
   bands left-to-right, quarter columns left-to-right inside a band.
   ``y`` starts below the header and is raised to the lowest of the
   subject's direct prerequisites, so a card never sits above something
   it depends on.
2. **Collision resolution.** Cards are visited in ascending
   ``(year, quarter, id)`` order, prerequisites always first. Each card
   is lifted to the final ``y`` of its prerequisites, then pushed down by
   one row step while its box overlaps any card already placed. Earlier
   cards never move.

Layout never fails and performs no I/O. Sizes come from a
:class:`~curriculum_engine.config.LayoutConfig` chosen by the caller.
"""

import logging
from typing import Dict, List, Tuple

from curriculum_engine.config import REGULAR, LayoutConfig
from curriculum_engine.dag_validator import topological_order
from curriculum_engine.graph_model import DependencyGraph
from curriculum_engine.models import LayoutGeometry, Position, QuarterLabel, YearLabel

logger = logging.getLogger(__name__)


# =========================================================================
# Geometry helpers
# =========================================================================


def year_x(year: int, config: LayoutConfig) -> float:
    """Left edge of the band for *year*."""
    return (year - 1) * config.year_width + config.margin_x


def term_x(year: int, quarter: int, config: LayoutConfig) -> float:
    """Left edge of the column for (*year*, *quarter*)."""
    return year_x(year, config) + (quarter - 1) * config.quarter_width


def base_y(config: LayoutConfig) -> float:
    """Topmost card row, just below the quarter labels."""
    return config.header_height * 2


def boxes_overlap(a: Position, b: Position, config: LayoutConfig) -> bool:
    """Axis-aligned overlap test for two cards of the configured size."""
    return (
        abs(a.x - b.x) < config.card_width
        and abs(a.y - b.y) < config.card_height
    )


def placement_order(graph: DependencyGraph) -> List[int]:
    """Ascending ``(year, quarter, id)``, never a dependent before its prerequisite."""
    return topological_order(
        graph.subject_ids,
        graph.edges(),
        key=lambda sid: (*graph.subject(sid).term, sid),
    )


# =========================================================================
# Pass 1: labels + grid placement
# =========================================================================


def axis_labels(
    graph: DependencyGraph, config: LayoutConfig = REGULAR
) -> Tuple[List[YearLabel], List[QuarterLabel]]:
    """One label per year in use, and quarters ``1..max used`` for each year."""
    max_quarter_by_year: Dict[int, int] = {}
    for subject in graph:
        year, quarter = subject.term
        max_quarter_by_year[year] = max(max_quarter_by_year.get(year, 0), quarter)

    year_labels: List[YearLabel] = []
    quarter_labels: List[QuarterLabel] = []
    for year in sorted(max_quarter_by_year):
        x = year_x(year, config)
        year_labels.append(YearLabel(year=year, x=x, y=config.year_label_y))
        for quarter in range(1, max_quarter_by_year[year] + 1):
            quarter_labels.append(
                QuarterLabel(
                    year=year,
                    quarter=quarter,
                    x=term_x(year, quarter, config),
                    y=config.header_height,
                )
            )
    return year_labels, quarter_labels


def grid_positions(
    graph: DependencyGraph,
    config: LayoutConfig = REGULAR,
) -> Dict[int, Position]:
    """Initial card positions before collisions are resolved."""
    positions: Dict[int, Position] = {}
    top = base_y(config)
    for sid in placement_order(graph):
        subject = graph.subject(sid)
        prereq_ys = [positions[p].y for p in graph.prerequisites_of(sid)]
        positions[sid] = Position(
            x=term_x(subject.suggested_year, subject.suggested_quarter, config),
            y=max([top, *prereq_ys]),
        )
    return positions


# =========================================================================
# Pass 2: collision resolution
# =========================================================================


def resolve_collisions(
    graph: DependencyGraph,
    positions: Dict[int, Position],
    config: LayoutConfig = REGULAR,
) -> Dict[int, Position]:
    """Greedy top-down placement; returns new positions, *positions* untouched."""
    resolved: Dict[int, Position] = {}
    placed: List[Position] = []
    shifted = 0

    for sid in placement_order(graph):
        start = positions[sid]
        y = max([start.y, *(resolved[p].y for p in graph.prerequisites_of(sid))])
        candidate = Position(x=start.x, y=y)

        while any(boxes_overlap(candidate, other, config) for other in placed):
            candidate = Position(x=candidate.x, y=candidate.y + config.row_step)

        if candidate != start:
            shifted += 1
        resolved[sid] = candidate
        placed.append(candidate)

    logger.debug("Collision resolution moved %d of %d cards.", shifted, len(resolved))
    return resolved


# =========================================================================
# Entry point
# =========================================================================


def layout(graph: DependencyGraph, config: LayoutConfig = REGULAR) -> LayoutGeometry:
    """Compute card positions and axis labels for *graph*."""
    year_labels, quarter_labels = axis_labels(graph, config)
    resolved = resolve_collisions(graph, grid_positions(graph, config), config)

    geometry = LayoutGeometry(
        positions={sid: resolved[sid] for sid in graph.subject_ids},
        year_labels=year_labels,
        quarter_labels=quarter_labels,
    )
    logger.info(
        "Layout: %d cards, %d year labels, %d quarter labels.",
        len(geometry.positions), len(year_labels), len(quarter_labels),
    )
    return geometry
