"""
Per-assembly walk extraction. The nodes of one assembly induce a subgraph; each connected component of it
yields one simple path, extracted either by a breadth-first search between two endpoints or by stitching
per-block paths along the block-cut tree.
"""
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import networkx as nx
from tqdm import tqdm

from .graph import PangenomeGraph
from .search_tree import (
    block_cut_tree,
    block_of_vertex,
    bounded_bfs,
    choose_endpoints,
    connected_components,
    degree_map,
    shortest_path,
    to_simple_graph,
    tree_path,
)
from .utils import log_action

MODES = ('auto', 'endpoint', 'blockcut')


@dataclass(frozen=True)
class Path:
    nodes: list
    edges: list
    left_endpoint: str
    right_endpoint: str
    length_bp: int
    mode_used: str


@dataclass(frozen=True)
class WalkDiagnostics:
    induced_nodes: int
    induced_edges: int
    mode_requested: str
    warnings: list = field(default_factory=list)


@dataclass(frozen=True)
class Walk:
    key: str
    paths: list
    diagnostics: WalkDiagnostics

    @property
    def spine(self):
        return self.paths[0] if self.paths else None


def induced_adjacency(graph: PangenomeGraph, node_set) -> dict:
    """Adjacency entries of graph restricted to edges with both ends in node_set, without self-loops."""
    return {node: tuple(entry for entry in graph.neighbors_of(node)
                        if entry.other in node_set and entry.other != node)
            for node in node_set}


def decide_mode(adjacency: dict, component: list, mode: str) -> str:
    """In auto mode, chain-like components use the endpoint strategy and everything else the block-cut one."""
    if mode != 'auto':
        return mode
    degree = degree_map(adjacency)
    n = len(component)
    e = sum(degree[node] for node in component) // 2
    endpoints = sum(1 for node in component if degree[node] == 1)
    max_degree = max(degree[node] for node in component)
    looks_chainy = endpoints == 2 and max_degree <= 2 and e <= n
    return 'endpoint' if looks_chainy else 'blockcut'


def extract_endpoint_path(adjacency: dict, component: list) -> list:
    if not component:
        return []
    source, target = choose_endpoints(adjacency, component)
    return shortest_path(adjacency, source, target, passable=set(component))


def extract_block_cut_path(adjacency: dict, component: list) -> list:
    if not component:
        return []
    G = to_simple_graph(adjacency, component)
    if G.number_of_edges() == 0:
        return []

    blocks, tree = block_cut_tree(G)
    source, target = choose_endpoints(adjacency, component)
    source_block = block_of_vertex(blocks, source)
    target_block = block_of_vertex(blocks, target)
    if source_block == -1 or target_block == -1:
        return shortest_path(adjacency, source, target)
    try:
        block_path = nx.shortest_path(tree, ('B', source_block), ('B', target_block))
    except nx.NetworkXNoPath:
        return shortest_path(adjacency, source, target)

    # Tree path alternates blocks and articulation points: B, A, B, ..., B
    result = []
    entry, entered_at = source, None
    for i, (label, value) in enumerate(block_path):
        if label != 'B':
            continue
        exit_node = block_path[i + 1][1] if i + 1 < len(block_path) else target
        search = bounded_bfs(adjacency, entry, target=exit_node, passable=blocks[value], entered_at=entered_at)
        if exit_node not in search:
            break
        segment = tree_path(search, exit_node)[0]
        if result and result[-1] == segment[0]:
            segment = segment[1:]
        result.extend(segment)
        entry, entered_at = exit_node, search[exit_node][2]
    return result


_strategies = {
    'endpoint': extract_endpoint_path,
    'blockcut': extract_block_cut_path,
}


def extract_walk(graph: PangenomeGraph, assembly_key: str, mode: str = 'auto') -> Walk:
    """
    Computes one simple path per connected component of the subgraph induced by an assembly's nodes.
    :param graph: the shared, read-only graph
    :param assembly_key: an assembly name or a full 'name#haplotype#sequence_id' contig key
    :param mode: 'auto', 'endpoint' or 'blockcut'
    :return: the walk; problems are reported in walk.diagnostics.warnings, never raised
    """
    if mode not in MODES:
        raise ValueError(f'Unknown walk mode {mode!r}; expected one of {MODES}')

    node_set = graph.nodes_of_assembly(assembly_key)
    if not node_set:
        return Walk(key=assembly_key,
                    paths=[],
                    diagnostics=WalkDiagnostics(0, 0, mode, ['no nodes']))

    adjacency = induced_adjacency(graph, node_set)
    induced_edges = sum(degree_map(adjacency).values()) // 2

    paths = []
    warnings = []
    for component in connected_components(adjacency):
        component_adjacency = {node: adjacency[node] for node in component}
        chosen = decide_mode(component_adjacency, component, mode)
        nodes = _strategies[chosen](component_adjacency, component)
        if not nodes:
            chosen = 'blockcut' if chosen == 'endpoint' else 'endpoint'
            nodes = _strategies[chosen](component_adjacency, component)
        if not nodes:
            warnings.append(f'component containing {component[0]} yielded no path')
            continue
        assert len(set(nodes)) == len(nodes), f'Walk for {assembly_key} repeats a node'

        edges = []
        for a, b in zip(nodes[:-1], nodes[1:]):
            key = graph.edge_key_between(a, b)
            if key is None:
                warnings.append(f'no edge found between {a} and {b}')
            else:
                edges.append(key)

        paths.append(Path(nodes=nodes,
                          edges=edges,
                          left_endpoint=nodes[0],
                          right_endpoint=nodes[-1],
                          length_bp=graph.path_length_bp(nodes),
                          mode_used=chosen))

    return Walk(key=assembly_key,
                paths=paths,
                diagnostics=WalkDiagnostics(len(node_set), induced_edges, mode, warnings))


def extract_all_walks(graph: PangenomeGraph,
                      keys: list = None,
                      mode: str = 'auto',
                      workers: int = 1,
                      log_path: str = None,
                      verbose: bool = False) -> list[Walk]:
    """
    Extracts the walk of every assembly key, or of the given keys. Keys are independent of each other, so
    with workers > 1 they are extracted on a thread pool; the result is always in sorted key order.
    """
    if mode not in MODES:
        raise ValueError(f'Unknown walk mode {mode!r}; expected one of {MODES}')
    keys = sorted(keys) if keys is not None else graph.assembly_keys

    start_time = time.time()
    if verbose:
        print(f"Extracting walks for {len(keys)} assembly keys")

    walks = {}
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(extract_walk, graph, key, mode): key for key in keys}
            for future in tqdm(as_completed(futures), total=len(futures), disable=not verbose):
                walks[futures[future]] = future.result()
    else:
        for key in tqdm(keys, disable=not verbose):
            walks[key] = extract_walk(graph, key, mode)

    if log_path:
        log_action(log_path, start_time, f"Extracting walks: {len(keys)} keys, mode {mode}")

    return [walks[key] for key in keys]
