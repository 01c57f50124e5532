"""
DAG validation: cycle detection, cycle-breaking, ordering and graph metrics.

Uses ``networkx.DiGraph`` for cycle detection and topological sorting.
Edges are ``(prerequisite_id, dependent_id)`` pairs, i.e. they point in
the direction in which approving a subject unlocks another.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


def build_digraph(nodes: Iterable[int], edges: Iterable[Edge]) -> nx.DiGraph:
    """Directed graph with every node, including isolated ones."""
    G = nx.DiGraph()
    G.add_nodes_from(nodes)
    G.add_edges_from(edges)
    return G


# =========================================================================
# Cycle detection
# =========================================================================


def find_cycle(edges: Iterable[Edge]) -> Optional[List[Edge]]:
    """Return one prerequisite cycle as a list of edges, or ``None``."""
    G = nx.DiGraph(list(edges))
    try:
        cycle = nx.find_cycle(G, orientation="original")
    except nx.NetworkXNoCycle:
        return None
    return [(u, v) for u, v, _ in cycle]


# =========================================================================
# Cycle-breaking
# =========================================================================


def break_cycles(
    edges: List[Edge],
    terms: Dict[int, Tuple[int, int]],
) -> Tuple[List[Edge], List[Edge]]:
    """Remove one edge per cycle until the graph is acyclic.

    Within each cycle found by ``networkx.find_cycle`` the edge whose
    prerequisite is suggested latest in the plan is removed, since that
    is the edge most likely to be a data-entry mistake. Ties go to the
    highest prerequisite id, then the highest dependent id.

    Args:
        edges: ``(prerequisite_id, dependent_id)`` pairs.
        terms: ``{subject_id: (suggested_year, suggested_quarter)}``.

    Returns:
        Tuple of ``(acyclic_edges, removed_edges)``; acyclic edges keep
        their input order.
    """
    G = nx.DiGraph()
    G.add_edges_from(edges)
    removed: List[Edge] = []

    while True:
        try:
            cycle = nx.find_cycle(G, orientation="original")
        except nx.NetworkXNoCycle:
            break

        cycle_edges = [(u, v) for u, v, _ in cycle]
        victim = max(
            cycle_edges,
            key=lambda e: (terms.get(e[0], (0, 0)), e[0], e[1]),
        )
        G.remove_edge(*victim)
        removed.append(victim)
        logger.warning(
            "Prerequisite cycle %s: dropped edge %d → %d.",
            " → ".join(str(u) for u, _ in cycle_edges),
            victim[0], victim[1],
        )

    if removed:
        logger.info("Cycle-breaking complete: removed %d edge(s).", len(removed))

    dropped = set(removed)
    acyclic = [e for e in edges if e not in dropped]
    return acyclic, removed


# =========================================================================
# Validation + ordering
# =========================================================================


def validate_dag(edges: Iterable[Edge]) -> bool:
    """Verify that edges form a DAG (topological sort succeeds)."""
    G = nx.DiGraph(list(edges))
    try:
        list(nx.topological_sort(G))
        return True
    except nx.NetworkXUnfeasible:
        return False


def topological_order(
    nodes: Iterable[int],
    edges: Iterable[Edge],
    key: Callable[[int], Hashable],
) -> List[int]:
    """Prerequisites-first order, choosing the smallest *key* whenever free.

    When *key* already respects every edge (e.g. prerequisites are always
    suggested in an earlier term) the result is simply ``sorted(nodes,
    key=key)``.
    """
    G = build_digraph(nodes, edges)
    return list(nx.lexicographical_topological_sort(G, key=key))


# =========================================================================
# Metrics
# =========================================================================


def compute_metrics(
    nodes: Iterable[int],
    edges: Iterable[Edge],
) -> Dict[str, Any]:
    """Compute graph summary metrics.

    Returns dict with: total_subjects, total_edges, avg_out_degree,
    max_depth, isolated_subjects_count.
    """
    G = build_digraph(nodes, edges)

    n_subjects = G.number_of_nodes()
    total_edges = G.number_of_edges()

    # Isolated = subjects with neither prerequisites nor dependents
    isolated_count = sum(1 for _ in nx.isolates(G))

    avg_out = total_edges / n_subjects if n_subjects > 0 else 0.0

    # Longest prerequisite chain
    if total_edges > 0 and nx.is_directed_acyclic_graph(G):
        max_depth = nx.dag_longest_path_length(G)
    else:
        max_depth = 0

    return {
        "total_subjects": n_subjects,
        "total_edges": total_edges,
        "avg_out_degree": round(avg_out, 4),
        "max_depth": max_depth,
        "isolated_subjects_count": isolated_count,
    }
