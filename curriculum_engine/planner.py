"""
Planner: run the whole engine and build the view model for the UI.

Usage::

    python -m curriculum_engine.planner \\
        --input ./data/curriculum.json \\
        --progress ./data/progress.json \\
        --profile regular --out ./data/view.json

Pipeline: canonicalise → layout → session state → enablement +
criticality → progress statistics. Only this module touches files; the
engine modules it calls are pure.
"""

import argparse
import logging
import sys
from typing import Any, Dict, Iterable, Optional

from curriculum_engine.config import (
    DEFAULT_CYCLE_POLICY,
    LAYOUT_PROFILES,
    REGULAR,
    CyclePolicy,
    LayoutConfig,
    get_layout_profile,
    load_layout_config,
    save_layout_config,
)
from curriculum_engine.criticality import score_all
from curriculum_engine.dag_validator import compute_metrics
from curriculum_engine.enablement import enabled_map
from curriculum_engine.errors import CurriculumError
from curriculum_engine.graph_model import DependencyGraph, canonicalize
from curriculum_engine.layout import layout
from curriculum_engine.models import CurriculumView, LayoutGeometry
from curriculum_engine.progress import compute_stats
from curriculum_engine.session import (
    SessionStates,
    apply_student_progress,
    build_nodes,
    initial_states,
    with_layout,
)
from curriculum_engine.utils import read_json, setup_logging, timed, write_json
from curriculum_engine.validation import subjects_of, validate_curriculum

logger = logging.getLogger(__name__)


# =========================================================================
# View model
# =========================================================================


def assemble_view(
    graph: DependencyGraph,
    states: SessionStates,
    geometry: LayoutGeometry,
) -> CurriculumView:
    """Recompute everything derived from statuses for an existing layout.

    Call this after every status or grade change; layout only needs to be
    redone when the subject set changes.
    """
    scores = score_all(graph)
    return CurriculumView(
        subjects=build_nodes(graph, states),
        enabled=enabled_map(graph, states),
        year_labels=geometry.year_labels,
        quarter_labels=geometry.quarter_labels,
        criticality=scores,
        stats=compute_stats(graph, states, scores),
        removed_edges=graph.removed_edges,
    )


def build_view(
    raw_subjects: Any,
    approved: Iterable[Any] = (),
    in_progress: Iterable[Any] = (),
    config: LayoutConfig = REGULAR,
    cycle_policy: CyclePolicy = DEFAULT_CYCLE_POLICY,
) -> CurriculumView:
    """Full pipeline from raw records and progress lists to a view model."""
    with timed("Canonicalise"):
        graph = canonicalize(raw_subjects, cycle_policy=cycle_policy)

    with timed("Layout"):
        geometry = layout(graph, config)

    states = with_layout(initial_states(graph), geometry)
    states = apply_student_progress(graph, states, approved, in_progress)

    with timed("Derived figures"):
        return assemble_view(graph, states, geometry)


# =========================================================================
# Pipeline
# =========================================================================


def _load_progress(path: Optional[str]) -> Dict[str, list]:
    if not path:
        return {"approved": [], "in_progress": []}
    data = read_json(path)
    return {
        "approved": data.get("approved") or [],
        "in_progress": data.get("inProgress") or data.get("in_progress") or [],
    }


def run_pipeline(
    input_path: str,
    progress_path: Optional[str] = None,
    config: LayoutConfig = REGULAR,
    cycle_policy: CyclePolicy = DEFAULT_CYCLE_POLICY,
    out_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Load files, build the view, optionally write it, return a summary."""
    subjects = subjects_of(read_json(input_path))
    progress = _load_progress(progress_path)

    view = build_view(
        subjects,
        approved=progress["approved"],
        in_progress=progress["in_progress"],
        config=config,
        cycle_policy=cycle_policy,
    )

    if out_path:
        write_json(view.model_dump(mode="json"), out_path)
        logger.info("📄 View → %s", out_path)

    edges = [
        (prereq_id, node.subject_id)
        for node in view.subjects
        for prereq_id in node.prerequisites
    ]
    summary = compute_metrics((node.subject_id for node in view.subjects), edges)
    summary["removed_edges"] = len(view.removed_edges)
    summary["enabled_subjects"] = sum(view.enabled.values())
    summary["stats"] = view.stats.model_dump()
    return summary


# =========================================================================
# CLI
# =========================================================================


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m curriculum_engine.planner",
        description="Lay out a curriculum and compute a student's progress.",
    )
    parser.add_argument("--input", required=True, help="Curriculum JSON file.")
    parser.add_argument("--progress", default=None, help="Student progress JSON file.")
    parser.add_argument(
        "--profile", default="regular", choices=sorted(LAYOUT_PROFILES),
    )
    parser.add_argument(
        "--layout-config", type=str, default=None,
        help="Layout config JSON (overrides --profile).",
    )
    parser.add_argument(
        "--save-config", type=str, default=None,
        help="Save the selected layout config to JSON and exit.",
    )
    parser.add_argument(
        "--cycle-policy", default=DEFAULT_CYCLE_POLICY, choices=["break", "reject"],
    )
    parser.add_argument("--out", type=str, default=None, help="Write the view JSON here.")
    parser.add_argument(
        "--validate-only", action="store_true",
        help="Only check the curriculum file and report problems.",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """CLI entry-point."""
    setup_logging()
    args = _parse_args(argv)

    if args.layout_config:
        config = load_layout_config(args.layout_config)
    else:
        config = get_layout_profile(args.profile)

    if args.save_config:
        save_layout_config(config, args.save_config)
        return

    if args.validate_only:
        errors = validate_curriculum(read_json(args.input))
        for error in errors:
            logger.error("  - %s", error)
        if errors:
            logger.error("❌ %d problem(s) found in %s.", len(errors), args.input)
            raise SystemExit(1)
        logger.info("✅ %s is valid.", args.input)
        return

    logger.info(
        "Planner starting — input=%s, progress=%s, profile=%s, cycle_policy=%s",
        args.input, args.progress, args.profile, args.cycle_policy,
    )
    try:
        summary = run_pipeline(
            args.input,
            progress_path=args.progress,
            config=config,
            cycle_policy=args.cycle_policy,
            out_path=args.out,
        )
    except CurriculumError as exc:
        logger.error("❌ %s", exc)
        raise SystemExit(1)

    stats = summary["stats"]
    logger.info(
        "✅ Planner complete — subjects=%d, edges=%d, max_depth=%d, "
        "enabled=%d, progress=%d%%, weighted=%.2f%%, average=%s",
        summary["total_subjects"],
        summary["total_edges"],
        summary["max_depth"],
        summary["enabled_subjects"],
        stats["progress"],
        stats["weighted_progress"],
        stats["average"],
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
