"""
pytest suite for the LayoutEngine: grid coordinates, axis labels and
collision resolution.

All expected coordinates use the ``regular`` profile unless stated.
"""

import itertools
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from curriculum_engine.config import COMPACT, REGULAR
from curriculum_engine.graph_model import canonicalize
from curriculum_engine.layout import (
    axis_labels,
    boxes_overlap,
    grid_positions,
    layout,
    placement_order,
    resolve_collisions,
    term_x,
)
from curriculum_engine.models import Position


# =========================================================================
# Helpers
# =========================================================================


def _subject(sid, code, prereqs=(), year=1, quarter=1):
    return {
        "subjectId": sid,
        "code": code,
        "name": code,
        "suggestedYear": year,
        "suggestedQuarter": quarter,
        "prerequisites": list(prereqs),
    }


@pytest.fixture()
def sample_graph():
    path = os.path.join(os.path.dirname(__file__), "sample_curriculum.json")
    with open(path, encoding="utf-8") as fh:
        return canonicalize(json.load(fh)["subjects"])


def _assert_no_overlap(geometry, config):
    for (a, pa), (b, pb) in itertools.combinations(geometry.positions.items(), 2):
        assert (
            abs(pa.x - pb.x) >= config.card_width
            or abs(pa.y - pb.y) >= config.card_height
        ), f"cards {a} and {b} overlap: {pa} vs {pb}"


# =========================================================================
# Test: Grid placement
# =========================================================================


class TestGridPlacement:
    """x depends only on the term; y starts below the header."""

    def test_term_x_regular(self):
        assert term_x(1, 1, REGULAR) == 150
        assert term_x(1, 2, REGULAR) == 380
        assert term_x(2, 1, REGULAR) == 580
        assert term_x(3, 2, REGULAR) == 1240

    def test_term_x_compact(self):
        assert term_x(1, 1, COMPACT) == 80
        assert term_x(2, 2, COMPACT) == 80 + 270 + 170

    def test_first_row_below_header(self, sample_graph):
        positions = grid_positions(sample_graph, REGULAR)
        assert positions[1] == Position(x=150, y=60)

    def test_grid_never_above_prerequisite(self, sample_graph):
        positions = grid_positions(sample_graph, REGULAR)
        for prereq_id, dependent_id in sample_graph.edges():
            assert positions[dependent_id].y >= positions[prereq_id].y

    def test_placement_order_by_term(self, sample_graph):
        assert placement_order(sample_graph) == [1, 2, 3, 11, 4, 5, 6, 7, 8, 9, 10]

    def test_placement_order_prerequisite_first_in_same_term(self):
        graph = canonicalize([
            _subject(1, "A", prereqs=["B"]),
            _subject(2, "B"),
        ])
        assert placement_order(graph) == [2, 1]


# =========================================================================
# Test: Axis labels
# =========================================================================


class TestAxisLabels:
    """Labels only for years in use; quarters bounded per year."""

    def test_labels_per_year(self):
        graph = canonicalize([
            _subject(1, "A", year=1, quarter=1),
            _subject(2, "B", year=1, quarter=2),
            _subject(3, "C", year=3, quarter=1),
        ])
        years, quarters = axis_labels(graph, REGULAR)

        assert [(l.year, l.x, l.y) for l in years] == [(1, 150, 10), (3, 1010, 10)]
        assert [(l.year, l.quarter) for l in quarters] == [(1, 1), (1, 2), (3, 1)]
        assert quarters[1].x == 380
        assert all(l.y == REGULAR.header_height for l in quarters)

    def test_quarter_range_bounded_by_year_max(self):
        graph = canonicalize([_subject(1, "A", year=2, quarter=2)])
        _, quarters = axis_labels(graph, REGULAR)
        assert [(l.year, l.quarter) for l in quarters] == [(2, 1), (2, 2)]

    def test_empty_graph(self):
        geometry = layout(canonicalize([]))
        assert geometry.positions == {}
        assert geometry.year_labels == []
        assert geometry.quarter_labels == []


# =========================================================================
# Test: Collision resolution
# =========================================================================


class TestCollisionResolution:
    """Greedy top-down push until no boxes overlap."""

    def test_same_term_second_shifted_by_one_row(self):
        graph = canonicalize([_subject(1, "A"), _subject(2, "B")])
        geometry = layout(graph, REGULAR)
        first, second = geometry.positions[1], geometry.positions[2]
        assert first.y == 60
        assert second.y - first.y == REGULAR.card_height + REGULAR.margin_y
        assert second.x == first.x

    def test_same_term_compact_profile(self):
        graph = canonicalize([_subject(1, "A"), _subject(2, "B")])
        geometry = layout(graph, COMPACT)
        assert geometry.positions[2].y - geometry.positions[1].y == 110

    def test_different_quarters_do_not_collide(self):
        graph = canonicalize([_subject(1, "A", quarter=1), _subject(2, "B", quarter=2)])
        geometry = layout(graph)
        assert geometry.positions[1].y == geometry.positions[2].y == 60

    def test_earlier_cards_never_move(self):
        graph = canonicalize([_subject(i, f"S{i}") for i in range(1, 5)])
        geometry = layout(graph)
        assert [geometry.positions[i].y for i in range(1, 5)] == [60, 210, 360, 510]

    def test_dependent_lifted_to_pushed_prerequisite(self):
        graph = canonicalize([
            _subject(1, "A"),
            _subject(2, "B"),
            _subject(3, "C"),
            _subject(4, "D", prereqs=["C"], year=2),
        ])
        geometry = layout(graph)
        assert geometry.positions[3].y == 360
        assert geometry.positions[4].y == 360

    def test_no_overlap_on_sample(self, sample_graph):
        _assert_no_overlap(layout(sample_graph, REGULAR), REGULAR)
        _assert_no_overlap(layout(sample_graph, COMPACT), COMPACT)

    def test_never_above_prerequisite_on_sample(self, sample_graph):
        geometry = layout(sample_graph)
        for prereq_id, dependent_id in sample_graph.edges():
            assert geometry.positions[dependent_id].y >= geometry.positions[prereq_id].y

    def test_sample_positions(self, sample_graph):
        p = layout(sample_graph).positions
        assert p[11] == Position(x=150, y=510)   # defaulted to year 1 quarter 1
        assert p[5] == Position(x=380, y=360)    # lifted to PROG1
        assert p[10] == Position(x=1240, y=360)

    def test_dense_single_column(self):
        subjects = [_subject(1, "S1")]
        subjects += [_subject(i, f"S{i}", prereqs=[f"S{i - 1}"]) for i in range(2, 8)]
        graph = canonicalize(subjects)
        geometry = layout(graph)
        _assert_no_overlap(geometry, REGULAR)
        ys = [geometry.positions[i].y for i in range(1, 8)]
        assert ys == sorted(ys)

    def test_inputs_not_mutated(self, sample_graph):
        positions = grid_positions(sample_graph)
        before = dict(positions)
        resolve_collisions(sample_graph, positions)
        assert positions == before

    def test_deterministic(self, sample_graph):
        assert layout(sample_graph) == layout(sample_graph)

    def test_boxes_overlap(self):
        a = Position(x=0, y=0)
        assert boxes_overlap(a, Position(x=179, y=99), REGULAR)
        assert not boxes_overlap(a, Position(x=180, y=0), REGULAR)
        assert not boxes_overlap(a, Position(x=0, y=100), REGULAR)
