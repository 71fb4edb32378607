"""
Pytest configuration and shared fixtures.
"""

import pytest

from graph_spine import PangenomeGraph


def _graph_from(nodes, edges):
    """
    nodes: {node_id: (length, [assembly labels])}
    edges: [(starting_node, ending_node)]
    """
    node_records = {node_id: {'length': length, 'assembly': list(assemblies)}
                    for node_id, (length, assemblies) in nodes.items()}
    edge_records = [{'starting_node': u, 'ending_node': v} for u, v in edges]
    return PangenomeGraph.from_records(node_records, edge_records)


@pytest.fixture
def build_graph():
    """Factory building a frozen graph from compact node and edge tables."""
    return _graph_from


@pytest.fixture
def chain_graph():
    """
    Three-node linear component:

        1+ (10bp) ── 2+ (20bp) ── 3+ (30bp)
    """
    return _graph_from(
        {'1+': (10, ['ref']), '2+': (20, ['ref']), '3+': (30, ['ref'])},
        [('1+', '2+'), ('2+', '3+')],
    )


@pytest.fixture
def detour_graph():
    """
    Spine L -> M -> R on 'ref', plus X joining L and R on 'alt' only:

        1+ (10bp) ── 2+ (20bp) ── 3+ (30bp)
            └──── 4+ (40bp) ────┘
    """
    return _graph_from(
        {'1+': (10, ['ref', 'alt']), '2+': (20, ['ref']), '3+': (30, ['ref', 'alt']), '4+': (40, ['alt'])},
        [('1+', '2+'), ('2+', '3+'), ('1+', '4+'), ('4+', '3+')],
    )


@pytest.fixture
def bubble_graph():
    """
    One bubble between two tips, every node on 'all':

        0+ ── 1+ ── 2+ ── 3+ ── 5+
               └─── 4+ ───┘
    """
    lengths = {'0+': 5, '1+': 10, '2+': 20, '3+': 30, '4+': 25, '5+': 5}
    return _graph_from(
        {node_id: (length, ['all']) for node_id, length in lengths.items()},
        [('0+', '1+'), ('1+', '2+'), ('2+', '3+'), ('1+', '4+'), ('4+', '3+'), ('3+', '5+')],
    )
