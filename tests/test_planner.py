"""
pytest suite for the planner pipeline, curriculum validation, layout
config files and the CLI.

Uses the shipped ``sample_curriculum.json`` / ``sample_progress.json``.
"""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from curriculum_engine.config import (
    COMPACT,
    REGULAR,
    get_layout_profile,
    load_layout_config,
    save_layout_config,
)
from curriculum_engine.errors import CyclicCurriculumError
from curriculum_engine.graph_model import canonicalize
from curriculum_engine.layout import layout
from curriculum_engine.planner import assemble_view, build_view, main, run_pipeline
from curriculum_engine.session import initial_states, with_status
from curriculum_engine.validation import validate_curriculum

_HERE = os.path.dirname(__file__)
CURRICULUM_PATH = os.path.join(_HERE, "sample_curriculum.json")
PROGRESS_PATH = os.path.join(_HERE, "sample_progress.json")


@pytest.fixture()
def curriculum():
    with open(CURRICULUM_PATH, encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture()
def progress():
    with open(PROGRESS_PATH, encoding="utf-8") as fh:
        return json.load(fh)


# =========================================================================
# Test: View model
# =========================================================================


class TestBuildView:
    """End-to-end pipeline on the sample curriculum."""

    def test_sample_view(self, curriculum, progress):
        view = build_view(
            curriculum["subjects"],
            approved=progress["approved"],
            in_progress=progress["inProgress"],
        )
        assert len(view.subjects) == 11
        assert view.stats.progress == 27
        assert view.stats.in_progress == 1
        assert view.stats.average == "8.00"
        assert view.criticality[0].subject_id == 3
        assert [sid for sid, ok in view.enabled.items() if ok] == [1, 2, 3, 4, 5, 11]
        assert view.removed_edges == []

    def test_positions_copied_into_nodes(self, curriculum):
        view = build_view(curriculum["subjects"])
        by_id = {n.subject_id: n for n in view.subjects}
        assert by_id[1].position.y == 60
        assert by_id[1].position.x == 150
        assert by_id[11].position.y == 510

    def test_compact_profile(self, curriculum):
        view = build_view(curriculum["subjects"], config=COMPACT)
        assert view.year_labels[0].x == COMPACT.margin_x

    def test_status_change_recomputes(self, curriculum):
        graph = canonicalize(curriculum["subjects"])
        geometry = layout(graph)
        states = initial_states(graph)

        before = assemble_view(graph, states, geometry)
        assert before.enabled[4] is False

        states = with_status(states, 1, "approved", 10)
        after = assemble_view(graph, states, geometry)
        assert after.enabled[4] is True
        assert after.stats.average == "10.00"
        assert after.year_labels == before.year_labels

    def test_cycle_policy_reject(self):
        subjects = [
            {"subjectId": 1, "code": "A", "name": "A", "prerequisites": ["B"]},
            {"subjectId": 2, "code": "B", "name": "B", "prerequisites": ["A"]},
        ]
        with pytest.raises(CyclicCurriculumError):
            build_view(subjects, cycle_policy="reject")
        view = build_view(subjects)
        assert len(view.removed_edges) == 1


# =========================================================================
# Test: Validation
# =========================================================================


class TestValidation:
    """Every problem is reported, not only the first one."""

    def test_sample_is_valid(self, curriculum):
        assert validate_curriculum(curriculum) == []

    def test_bare_list_accepted(self, curriculum):
        assert validate_curriculum(curriculum["subjects"]) == []

    def test_not_a_list(self):
        assert len(validate_curriculum({"subjects": "nope"})) == 1

    def test_reports_all_problems(self):
        errors = validate_curriculum([
            {"subjectId": 1, "code": "A", "name": "A", "suggestedQuarter": 3},
            {"subjectId": 1, "code": "A", "name": "", "suggestedYear": 12},
            {"subjectId": 3, "code": "C", "name": "C", "prerequisites": ["ZZZ", 40, {}]},
        ])
        joined = "\n".join(errors)
        assert "Duplicate subject id: 1" in joined
        assert "Duplicate subject code: A" in joined
        assert '"suggestedQuarter" must be 1 or 2' in joined
        assert '"suggestedYear" must be an integer between 1 and 9' in joined
        assert '"name" is required' in joined
        assert 'prerequisite "ZZZ" does not exist' in joined
        assert "prerequisite id 40 does not exist" in joined
        assert "has neither id nor code" in joined


# =========================================================================
# Test: Config
# =========================================================================


class TestLayoutConfig:
    def test_profiles(self):
        assert get_layout_profile("compact") is COMPACT
        assert get_layout_profile("REGULAR") is REGULAR
        with pytest.raises(ValueError):
            get_layout_profile("huge")

    def test_row_step(self):
        assert REGULAR.row_step == 150
        assert COMPACT.row_step == 110

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "layout.json")
        save_layout_config(COMPACT, path)
        assert load_layout_config(path) == COMPACT

    def test_load_with_overrides(self, tmp_path):
        path = tmp_path / "layout.json"
        path.write_text(json.dumps({"profile": "compact", "card_height": 90}))
        config = load_layout_config(str(path))
        assert config.card_height == 90
        assert config.card_width == COMPACT.card_width


# =========================================================================
# Test: Pipeline + CLI
# =========================================================================


class TestPipeline:
    def test_run_pipeline(self, tmp_path):
        out = str(tmp_path / "out" / "view.json")
        summary = run_pipeline(CURRICULUM_PATH, PROGRESS_PATH, out_path=out)

        assert summary["total_subjects"] == 11
        assert summary["total_edges"] == 10
        assert summary["max_depth"] == 4
        assert summary["isolated_subjects_count"] == 1
        assert summary["enabled_subjects"] == 6
        assert summary["stats"]["progress"] == 27

        with open(out, encoding="utf-8") as fh:
            view = json.load(fh)
        assert len(view["subjects"]) == 11
        assert view["stats"]["average"] == "8.00"

    def test_run_pipeline_without_progress(self):
        summary = run_pipeline(CURRICULUM_PATH)
        assert summary["stats"]["progress"] == 0
        assert summary["enabled_subjects"] == 4

    def test_cli_success(self, tmp_path):
        out = str(tmp_path / "view.json")
        with pytest.raises(SystemExit) as excinfo:
            main(["--input", CURRICULUM_PATH, "--progress", PROGRESS_PATH, "--out", out])
        assert excinfo.value.code == 0
        assert os.path.isfile(out)

    def test_cli_validate_only(self):
        main(["--input", CURRICULUM_PATH, "--validate-only"])

    def test_cli_validate_only_invalid(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps([{"subjectId": 1, "code": "A", "name": "A", "prerequisites": ["X"]}]))
        with pytest.raises(SystemExit) as excinfo:
            main(["--input", str(bad), "--validate-only"])
        assert excinfo.value.code == 1

    def test_cli_structural_error_exits_1(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"subjects": [{"subjectId": 1, "name": "no code"}]}))
        with pytest.raises(SystemExit) as excinfo:
            main(["--input", str(bad)])
        assert excinfo.value.code == 1

    def test_cli_save_config(self, tmp_path):
        path = str(tmp_path / "cfg.json")
        main(["--input", CURRICULUM_PATH, "--profile", "compact", "--save-config", path])
        assert load_layout_config(path) == COMPACT
