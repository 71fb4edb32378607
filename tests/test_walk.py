"""Tests for per-assembly walk extraction."""

import pytest

from graph_spine import Port, extract_all_walks, extract_walk
from graph_spine.search_tree import bounded_bfs, choose_endpoints, tree_path
from graph_spine.walk import decide_mode, induced_adjacency


def test_chain_uses_endpoint_mode(chain_graph):
    walk = extract_walk(chain_graph, 'ref')

    assert len(walk.paths) == 1
    path = walk.paths[0]
    assert path.mode_used == 'endpoint'
    assert path.nodes == ['1+', '2+', '3+']
    assert path.edges == ['edge:1+:2+', 'edge:2+:3+']
    assert (path.left_endpoint, path.right_endpoint) == ('1+', '3+')
    assert path.length_bp == 60
    assert walk.diagnostics.induced_nodes == 3
    assert walk.diagnostics.induced_edges == 2
    assert walk.diagnostics.mode_requested == 'auto'
    assert walk.diagnostics.warnings == []


def test_unknown_assembly_gives_empty_walk(chain_graph):
    walk = extract_walk(chain_graph, 'HG002')
    assert walk.paths == []
    assert walk.diagnostics.warnings == ['no nodes']
    assert walk.spine is None


def test_unknown_mode_is_rejected(chain_graph):
    with pytest.raises(ValueError):
        extract_walk(chain_graph, 'ref', mode='greedy')


def test_bubble_uses_block_cut_mode(bubble_graph):
    walk = extract_walk(bubble_graph, 'all')

    path, = walk.paths
    assert path.mode_used == 'blockcut'
    assert path.nodes == ['0+', '1+', '2+', '3+', '5+']
    assert path.length_bp == 5 + 10 + 20 + 30 + 5
    assert walk.diagnostics.induced_edges == 6


def test_forced_endpoint_mode_on_bubble(bubble_graph):
    walk = extract_walk(bubble_graph, 'all', mode='endpoint')
    path, = walk.paths
    assert path.mode_used == 'endpoint'
    assert path.nodes == ['0+', '1+', '2+', '3+', '5+']


def test_cycle_gives_simple_path(build_graph):
    G = build_graph(
        {node_id: (10, ['ring']) for node_id in ('1+', '2+', '3+', '4+')},
        [('1+', '2+'), ('2+', '3+'), ('3+', '4+'), ('4+', '1+')],
    )
    walk = extract_walk(G, 'ring')
    path, = walk.paths
    assert path.mode_used == 'blockcut'
    assert path.nodes == ['3+', '2+', '1+']
    assert len(set(path.nodes)) == len(path.nodes)


def test_isolated_node_falls_back_to_endpoint_mode(build_graph):
    G = build_graph({'7+': (12, ['solo'])}, [])
    walk = extract_walk(G, 'solo')
    path, = walk.paths
    assert path.nodes == ['7+']
    assert path.edges == []
    assert path.mode_used == 'endpoint'
    assert path.length_bp == 12


def test_one_path_per_component_in_id_order(build_graph):
    G = build_graph(
        {'5+': (1, ['a']), '6+': (1, ['a']), '1+': (1, ['a']), '2+': (1, ['a'])},
        [('5+', '6+'), ('1+', '2+')],
    )
    walk = extract_walk(G, 'a')
    assert [path.nodes for path in walk.paths] == [['1+', '2+'], ['5+', '6+']]


def _ports_used(graph, path):
    """(entry port, exit port) at every interior node of a path."""
    ports = []
    for previous, node, following in zip(path.nodes, path.nodes[1:], path.nodes[2:]):
        entered = next(e.self_port for e in graph.neighbors_of(node) if e.other == previous)
        left = next(e.self_port for e in graph.neighbors_of(node) if e.other == following)
        ports.append((entered, left))
    return ports


def test_chain_walk_passes_through_opposite_ends(chain_graph):
    path, = extract_walk(chain_graph, 'ref').paths
    assert _ports_used(chain_graph, path) == [(Port.START, Port.END)]


def test_walk_never_leaves_through_the_end_it_entered(build_graph):
    # both edges attach to the START of 2+, so no walk can pass through it from 1+ to 3+
    G = build_graph(
        {'1+': (10, ['a']), '2+': (10, ['a']), '3+': (10, ['a'])},
        [('1+', '2+'), ('3+', '2+')],
    )
    assert G.edge_record('edge:3+:2+').to_port == Port.START

    for mode in ('endpoint', 'blockcut', 'auto'):
        walk = extract_walk(G, 'a', mode=mode)
        for path in walk.paths:
            assert path.nodes != ['1+', '2+', '3+']
            assert path.nodes != ['3+', '2+', '1+']
            for entered, left in _ports_used(G, path):
                assert entered != left

    path, = extract_walk(G, 'a').paths
    assert path.nodes == ['1+', '2+']
    assert path.mode_used == 'blockcut'


def test_walk_only_uses_assembly_nodes(detour_graph):
    walk = extract_walk(detour_graph, 'alt')
    path, = walk.paths
    assert path.nodes == ['1+', '4+', '3+']
    assert path.edges == ['edge:1+:4+', 'edge:4+:3+']


def test_extraction_is_idempotent(bubble_graph):
    assert extract_walk(bubble_graph, 'all') == extract_walk(bubble_graph, 'all')


def test_extract_all_walks_sorted_and_parallel(detour_graph):
    sequential = extract_all_walks(detour_graph)
    assert [walk.key for walk in sequential] == ['alt', 'ref']

    parallel = extract_all_walks(detour_graph, workers=4)
    assert parallel == sequential

    subset = extract_all_walks(detour_graph, keys=['ref', 'missing'])
    assert [walk.key for walk in subset] == ['missing', 'ref']
    assert subset[0].diagnostics.warnings == ['no nodes']


def test_extract_all_walks_logs_timing(detour_graph, tmp_path):
    log_path = tmp_path / 'walks.log'
    extract_all_walks(detour_graph, log_path=str(log_path))
    line, = log_path.read_text().splitlines()
    assert line.endswith('Extracting walks: 2 keys, mode auto')


def test_decide_mode(bubble_graph, chain_graph):
    adjacency = induced_adjacency(chain_graph, chain_graph.nodes_of_assembly('ref'))
    assert decide_mode(adjacency, list(adjacency), 'auto') == 'endpoint'
    assert decide_mode(adjacency, list(adjacency), 'blockcut') == 'blockcut'

    adjacency = induced_adjacency(bubble_graph, bubble_graph.nodes_of_assembly('all'))
    assert decide_mode(adjacency, list(adjacency), 'auto') == 'blockcut'


def test_choose_endpoints_prefers_degree_one(bubble_graph):
    adjacency = induced_adjacency(bubble_graph, bubble_graph.nodes_of_assembly('all'))
    assert choose_endpoints(adjacency, list(adjacency)) == ('0+', '5+')


def test_bounded_bfs_respects_terminals_and_blocked_edges(detour_graph):
    adjacency = detour_graph.adjacency_index
    tree = bounded_bfs(adjacency, '1+', terminals={'1+', '2+', '3+'}, blocked_edges={'edge:1+:2+'})
    assert '2+' not in tree
    assert tree_path(tree, '3+') == (['1+', '4+', '3+'], ['edge:1+:4+', 'edge:4+:3+'])

    tree = bounded_bfs(adjacency, '1+', target='3+')
    assert tree_path(tree, '3+')[0] == ['1+', '2+', '3+']
