from collections import deque
from typing import Optional

import networkx as nx

from .utils import Port, signed_id_sort_key


def bounded_bfs(adjacency: dict,
                source: str,
                target: Optional[str] = None,
                passable=None,
                terminals=frozenset(),
                blocked_edges=frozenset(),
                entered_at: Optional[Port] = None,
                oriented: bool = True) -> dict:
    """
    Breadth-first search tree of a bidirected adjacency, shared by walk extraction and feature discovery.

    In an oriented search a node entered at one port may only be left through its other port, so every
    tree path is a legal walk through the bidirected graph.
    :param adjacency: mapping node -> sequence of AdjacencyEntry, neighbours in visiting order
    :param source: start node
    :param target: if given, the search stops as soon as it is reached
    :param passable: if given, only these nodes may be entered
    :param terminals: nodes that may be entered but are never expanded
    :param blocked_edges: edge keys that may not be used
    :param entered_at: port the source was entered at, if the search continues an earlier walk
    :param oriented: set to False to ignore ports, e.g. for plain connectivity
    :return: mapping from each reached node to (parent, edge key, port it was entered at); the source maps
    to (None, None, entered_at)
    """
    tree = {source: (None, None, entered_at)}
    queue = deque([source])
    while queue:
        v = queue.popleft()
        arrival_port = tree[v][2]
        for entry in adjacency.get(v, ()):
            if entry.edge_key in blocked_edges:
                continue
            if oriented and arrival_port is not None and entry.self_port == arrival_port:
                continue
            w = entry.other
            if w in tree:
                continue
            if passable is not None and w not in passable:
                continue
            tree[w] = (v, entry.edge_key, entry.other_port)
            if w == target:
                return tree
            if w in terminals:
                continue
            queue.append(w)
    return tree


def tree_path(tree: dict, node: str) -> tuple[list, list]:
    """
    Walks a bounded_bfs tree back from node to the source.
    :return: (nodes, edge keys), both ordered from the source to node
    """
    nodes, edges = [], []
    while node is not None:
        nodes.append(node)
        node, edge_key, _ = tree[node]
        if edge_key is not None:
            edges.append(edge_key)
    return nodes[::-1], edges[::-1]


def shortest_path(adjacency: dict, source: str, target: str, passable=None) -> list:
    if source == target:
        return [source]
    tree = bounded_bfs(adjacency, source, target=target, passable=passable)
    if target not in tree:
        return []
    return tree_path(tree, target)[0]


def connected_components(adjacency: dict) -> list[list]:
    """Components ordered by their smallest node id; nodes within a component in search order."""
    seen = set()
    components = []
    for node in sorted(adjacency, key=signed_id_sort_key):
        if node in seen:
            continue
        component = list(bounded_bfs(adjacency, node, oriented=False))
        seen.update(component)
        components.append(component)
    return components


def degree_map(adjacency: dict) -> dict:
    """Number of distinct neighbours of each node, ignoring self-loops."""
    return {node: len({entry.other for entry in entries if entry.other != node})
            for node, entries in adjacency.items()}


def farthest_node(adjacency: dict, source: str) -> str:
    return list(bounded_bfs(adjacency, source))[-1]


def choose_endpoints(adjacency: dict, component: list) -> tuple[str, str]:
    """
    The first two degree-1 nodes in id order; without two of them, an approximate diameter pair from a
    double breadth-first sweep starting at the smallest node id.
    """
    degree = degree_map(adjacency)
    ordered = sorted(component, key=signed_id_sort_key)
    endpoints = [node for node in ordered if degree.get(node, 0) == 1]
    if len(endpoints) >= 2:
        return endpoints[0], endpoints[1]

    u = farthest_node(adjacency, ordered[0])
    v = farthest_node(adjacency, u)
    return u, v


def to_simple_graph(adjacency: dict, component: list) -> nx.Graph:
    """Undirected simple graph of a component, with nodes and edges inserted in id order."""
    G = nx.Graph()
    ordered = sorted(component, key=signed_id_sort_key)
    G.add_nodes_from(ordered)
    members = set(component)
    for node in ordered:
        for entry in adjacency.get(node, ()):
            if entry.other != node and entry.other in members:
                G.add_edge(node, entry.other)
    return G


def block_cut_tree(G: nx.Graph) -> tuple[list, nx.Graph]:
    """
    Block-cut tree of a connected graph.
    :return: (blocks, tree) where blocks are frozensets of nodes ordered by their smallest member, and tree
    has a node ('B', i) for block i and ('A', v) for each articulation point v
    """
    blocks = [frozenset(block) for block in nx.biconnected_components(G)]
    blocks.sort(key=lambda block: min(signed_id_sort_key(node) for node in block))
    articulation = set(nx.articulation_points(G))

    tree = nx.Graph()
    for i, block in enumerate(blocks):
        tree.add_node(('B', i))
        for v in sorted(block & articulation, key=signed_id_sort_key):
            tree.add_edge(('B', i), ('A', v))
    return blocks, tree


def block_of_vertex(blocks: list, v: str) -> int:
    for i, block in enumerate(blocks):
        if v in block:
            return i
    return -1
