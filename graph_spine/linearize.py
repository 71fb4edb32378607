"""
Projection of a walk onto a linear bp coordinate, and discovery of the alternate paths ("features") that
leave the walk at one spine node and rejoin it at a later, non-adjacent one.

Everything here is numeric: positions, lengths and placement hints. Turning them into geometry is left to
whatever renders the result.
"""
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .graph import PangenomeGraph
from .search_tree import bounded_bfs, connected_components, tree_path
from .utils import signed_id_sort_key
from .walk import Walk


@dataclass(frozen=True)
class SpineSegment:
    id: str
    bp_start: int
    bp_end: int
    length_bp: int
    x_start: float
    x_end: float


@dataclass(frozen=True)
class Anchor:
    left_id: str
    right_id: Optional[str]  # None for a dangling detour
    span_start: int
    span_end: int
    ref_len_bp: int
    left_bp_start: int
    left_bp_end: int
    right_bp_start: Optional[int]
    right_bp_end: Optional[int]


@dataclass(frozen=True)
class AltPath:
    nodes: list  # interior nodes only, excluding both anchors
    edges: list  # edge keys from the left anchor to the right anchor
    alt_len_bp: int


@dataclass(frozen=True)
class FeatureStats:
    n_paths: int
    min_alt_len_bp: int
    max_alt_len_bp: int
    truncated_paths: bool


@dataclass(frozen=True)
class Relations:
    parent_id: Optional[str] = None
    children_ids: list = field(default_factory=list)
    overlap_group_id: Optional[int] = None
    same_anchor_group_id: Optional[int] = None


@dataclass(frozen=True)
class Feature:
    id: str
    anchor: Anchor
    alt_paths: list
    stats: FeatureStats
    delta_bp: int
    sign: int
    lane: int
    pill: bool
    apex: float
    x_start: float
    x_end: float
    kind: Optional[str] = None
    relations: Relations = field(default_factory=Relations)

    @property
    def alt_len_bp(self) -> int:
        return self.alt_paths[0].alt_len_bp

    @property
    def interval(self) -> tuple[int, int]:
        return self.anchor.span_start, self.anchor.span_end


@dataclass(frozen=True)
class OffSpineComponent:
    nodes: list
    edges: list
    length_bp: int


@dataclass(frozen=True)
class LinearizationResult:
    spine_segments: list
    features: list
    off_spine: list = field(default_factory=list)

    @property
    def length_bp(self) -> int:
        if not self.spine_segments:
            return 0
        return self.spine_segments[-1].bp_end - self.spine_segments[0].bp_start


def classify_sign(delta_bp, epsilon_bp, lane: int) -> int:
    """
    +1 for an alternate path longer than the reference span by more than epsilon_bp, -1 for one shorter by
    more than epsilon_bp. Anything in between alternates by lane, so neutral features do not pile up on one
    side of the spine.
    """
    if delta_bp > epsilon_bp:
        return 1
    if delta_bp < -epsilon_bp:
        return -1
    return 1 if lane % 2 == 0 else -1


def linearize(graph: PangenomeGraph,
              walk: Walk,
              origin: int = 0,
              px_per_bp: float = 0.002,
              epsilon_bp: int = 5,
              lane_gap: float = 18.0,
              pill_width: float = 8.0,
              max_alt_paths: int = 4,
              include_direct_edges: bool = False,
              include_off_spine: bool = False,
              include_adjacent: bool = False,
              include_self_loops: bool = False,
              include_dangling: bool = False) -> LinearizationResult:
    """
    Lays the first path of a walk (the spine) out on a bp axis starting at origin, and finds features.
    :param graph: the graph the walk was extracted from
    :param walk: the walk; only its first path is used
    :param origin: bp coordinate of the start of the first spine node
    :param px_per_bp: scale applied to bp offsets from origin for the x hints
    :param epsilon_bp: length difference below which a feature is treated as neutral
    :param lane_gap: distance between successive lanes on one side of the spine
    :param pill_width: x extent given to features with a zero-length reference span
    :param max_alt_paths: maximum number of alternate paths sampled per feature, at least 1
    :param include_direct_edges: also report edges joining two non-adjacent spine nodes directly
    :param include_off_spine: also report the connected components of the nodes not on the spine
    :param include_adjacent: also report detours between spine-adjacent nodes (insertions)
    :param include_self_loops: also report detours that leave a spine node and come back to it
    :param include_dangling: also report off-spine regions that leave a spine node and never rejoin the spine
    """
    if max_alt_paths < 1:
        raise ValueError(f'max_alt_paths must be at least 1, got {max_alt_paths}')

    spine = walk.spine if walk is not None else None
    if spine is None or not spine.nodes:
        return LinearizationResult(spine_segments=[], features=[])

    spine_nodes = list(spine.nodes)
    lengths = np.array([graph.length_bp(node) for node in spine_nodes], dtype=np.int64)
    ends = origin + np.cumsum(lengths)
    starts = ends - lengths
    bp_start = dict(zip(spine_nodes, starts.tolist()))
    bp_end = dict(zip(spine_nodes, ends.tolist()))

    def x_of(bp):
        return (bp - origin) * px_per_bp

    spine_segments = [
        SpineSegment(id=node,
                     bp_start=bp_start[node],
                     bp_end=bp_end[node],
                     length_bp=int(length),
                     x_start=x_of(bp_start[node]),
                     x_end=x_of(bp_end[node]))
        for node, length in zip(spine_nodes, lengths)
    ]

    features = []

    def add_feature(left, right, alt_paths, truncated):
        if right is None or right == left:
            span_start = span_end = bp_end[left]
        else:
            span_start, span_end = bp_end[left], bp_start[right]
        ref_len_bp = max(0, span_end - span_start)
        delta_bp = alt_paths[0].alt_len_bp - ref_len_bp
        lane = len(features)
        sign = classify_sign(delta_bp, epsilon_bp, lane)
        pill = right is not None and ref_len_bp == 0
        x_start = x_of(span_start)
        alt_lens = np.array([path.alt_len_bp for path in alt_paths])
        features.append(Feature(
            id=f'{left}~{right if right is not None else "null"}',
            anchor=Anchor(left_id=left,
                          right_id=right,
                          span_start=span_start,
                          span_end=span_end,
                          ref_len_bp=ref_len_bp,
                          left_bp_start=bp_start[left],
                          left_bp_end=bp_end[left],
                          right_bp_start=bp_start[right] if right is not None else None,
                          right_bp_end=bp_end[right] if right is not None else None),
            alt_paths=alt_paths,
            stats=FeatureStats(n_paths=len(alt_paths),
                               min_alt_len_bp=int(alt_lens.min()),
                               max_alt_len_bp=int(alt_lens.max()),
                               truncated_paths=truncated),
            delta_bp=delta_bp,
            sign=sign,
            lane=lane,
            pill=pill,
            apex=sign * (lane // 2 + 1) * lane_gap,
            x_start=x_start,
            x_end=x_start + pill_width if pill or right is None else x_of(span_end),
        ))

    spine_set = set(spine_nodes)
    spine_index = {node: i for i, node in enumerate(spine_nodes)}
    first_right = 1 if include_adjacent else 2
    adjacency = graph.adjacency_index
    seen_dangling = set()
    for i, left in enumerate(spine_nodes):
        # Spine hops out of left are never part of a detour; other direct spine edges only on request
        blocked = frozenset(
            entry.edge_key for entry in graph.neighbors_of(left)
            if entry.other in spine_set
            and (not include_direct_edges or abs(spine_index[entry.other] - i) <= 1)
        )
        tree = bounded_bfs(adjacency, left, terminals=spine_set, blocked_edges=blocked)

        if include_self_loops:
            loop = loop_back_path(graph, tree, left, spine_set)
            if loop is not None:
                add_feature(left, left, [loop], False)

        for right in spine_nodes[i + first_right:]:
            if right not in tree:
                continue
            alt_paths, truncated = sample_alt_paths(graph, tree, left, right, spine_set, blocked, max_alt_paths)
            add_feature(left, right, alt_paths, truncated)

        if include_dangling:
            if include_direct_edges:
                spine_edges = frozenset(entry.edge_key for entry in graph.neighbors_of(left)
                                        if entry.other in spine_set)
                tree = bounded_bfs(adjacency, left, terminals=spine_set, blocked_edges=spine_edges)
            region = [node for node in tree if node not in spine_set]
            rejoins = any(node in spine_set for node in tree if node != left)
            signature = frozenset(region)
            if region and not rejoins and signature not in seen_dangling:
                seen_dangling.add(signature)
                region.sort(key=signed_id_sort_key)
                add_feature(left, None, [AltPath(nodes=region,
                                                 edges=[tree[node][1] for node in region],
                                                 alt_len_bp=graph.path_length_bp(region))], False)

    off_spine = off_spine_components(graph, spine_set) if include_off_spine else []
    return LinearizationResult(spine_segments=spine_segments, features=features, off_spine=off_spine)


def edges_along(graph: PangenomeGraph, nodes: list) -> set:
    """Keys of every edge record joining two consecutive nodes, whatever orientation it was written in."""
    keys = set()
    for a, b in zip(nodes[:-1], nodes[1:]):
        keys.update(entry.edge_key for entry in graph.neighbors_of(a) if entry.other == b)
    return keys


def sample_alt_paths(graph: PangenomeGraph,
                     tree: dict,
                     left: str,
                     right: str,
                     spine_set: set,
                     blocked: frozenset,
                     max_alt_paths: int) -> tuple[list[AltPath], bool]:
    """
    The minimum-hop alternate path from left to right read off tree, followed by further paths found after
    blocking every node-to-node hop of the paths found so far.
    :return: (paths, truncated) where truncated is True if max_alt_paths paths were collected
    """
    paths = []
    nodes, edges = tree_path(tree, right)
    while len(paths) < max_alt_paths:
        interior = nodes[1:-1]
        paths.append(AltPath(nodes=interior, edges=edges, alt_len_bp=graph.path_length_bp(interior)))
        blocked = blocked | edges_along(graph, nodes)
        next_tree = bounded_bfs(graph.adjacency_index, left, target=right,
                                terminals=spine_set, blocked_edges=blocked)
        if right not in next_tree:
            return paths, False
        nodes, edges = tree_path(next_tree, right)
    return paths, True


def loop_back_path(graph: PangenomeGraph, tree: dict, left: str, spine_set: set) -> Optional[AltPath]:
    """
    A detour that leaves left and returns to it: a self-loop edge on left, or else the first off-spine node of
    tree that can legally step back to left by an edge other than the one it was reached by.
    """
    for entry in graph.neighbors_of(left):
        if entry.other == left:
            return AltPath(nodes=[], edges=[entry.edge_key], alt_len_bp=0)

    for node, (_, arrived_by, entered_at) in tree.items():
        if node == left or node in spine_set:
            continue
        for entry in graph.neighbors_of(node):
            if entry.other != left or entry.edge_key == arrived_by or entry.self_port == entered_at:
                continue
            nodes, edges = tree_path(tree, node)
            interior = nodes[1:]
            return AltPath(nodes=interior, edges=edges + [entry.edge_key], alt_len_bp=graph.path_length_bp(interior))
    return None


def off_spine_components(graph: PangenomeGraph, spine_set: set) -> list[OffSpineComponent]:
    adjacency = {node: tuple(entry for entry in graph.neighbors_of(node) if entry.other not in spine_set)
                 for node in graph.nodes if node not in spine_set}
    components = []
    for component in connected_components(adjacency):
        edge_keys = {entry.edge_key for node in component for entry in adjacency[node]}
        edges = sorted(edge_keys, key=lambda key: graph.edge_record(key).index)
        components.append(OffSpineComponent(nodes=component,
                                            edges=edges,
                                            length_bp=graph.path_length_bp(component)))
    return components
