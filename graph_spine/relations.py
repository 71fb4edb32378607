from dataclasses import replace

from .linearize import Feature, Relations


def find(parent, i):
    if parent[i] == i:
        return i
    return find(parent, parent[i])

def union(parent, rank, x, y):
    xroot = find(parent, x)
    yroot = find(parent, y)

    if xroot == yroot:
        return
    if rank[xroot] < rank[yroot]:
        parent[xroot] = yroot
    elif rank[xroot] > rank[yroot]:
        parent[yroot] = xroot
    else:
        parent[yroot] = xroot
        rank[xroot] += 1

def contains(outer: tuple, inner: tuple) -> bool:
    """True if inner lies within outer and the two intervals differ."""
    return outer[0] <= inner[0] and inner[1] <= outer[1] and outer != inner

def overlaps(a: tuple, b: tuple) -> bool:
    return a[0] < b[1] and b[0] < a[1]

def span_length(interval: tuple) -> int:
    return interval[1] - interval[0]

def _anchor_of(feature: Feature) -> tuple:
    return feature.anchor.left_id, feature.anchor.right_id


def relate_features(features: list[Feature]) -> list[Feature]:
    """
    Derives nesting, overlap and same-anchor relations among features from their reference spans.
    :param features: features in discovery order, as returned by linearize
    :return: new features with relations and kind filled in, in the same order
    """
    n = len(features)
    intervals = [feature.interval for feature in features]

    # Nesting: each feature's parent is the smallest feature that contains it
    parent_of = [None] * n
    for i in range(n):
        enclosing = [j for j in range(n) if j != i and contains(intervals[j], intervals[i])]
        if enclosing:
            parent_of[i] = min(enclosing, key=lambda j: (span_length(intervals[j]), j))
    children = [[] for _ in range(n)]
    for i, j in enumerate(parent_of):
        if j is not None:
            children[j].append(features[i].id)

    # Overlap without containment, grouped transitively; routes sharing both anchors are bundled instead
    uf_parent, uf_rank = list(range(n)), [0] * n
    in_overlap = [False] * n
    for i in range(n):
        for j in range(i + 1, n):
            a, b = intervals[i], intervals[j]
            if _anchor_of(features[i]) == _anchor_of(features[j]):
                continue
            if overlaps(a, b) and not contains(a, b) and not contains(b, a):
                union(uf_parent, uf_rank, i, j)
                in_overlap[i] = in_overlap[j] = True
    overlap_group = {}
    for i in range(n):
        if in_overlap[i]:
            overlap_group.setdefault(find(uf_parent, i), len(overlap_group) + 1)

    # Parallel routes between the same two spine nodes
    anchor_group = {}
    anchor_members = {}
    for feature in features:
        anchor = _anchor_of(feature)
        anchor_group.setdefault(anchor, len(anchor_group) + 1)
        anchor_members[anchor] = anchor_members.get(anchor, 0) + 1

    related = []
    for i, feature in enumerate(features):
        anchor = _anchor_of(feature)
        relations = Relations(parent_id=features[parent_of[i]].id if parent_of[i] is not None else None,
                              children_ids=children[i],
                              overlap_group_id=overlap_group[find(uf_parent, i)] if in_overlap[i] else None,
                              same_anchor_group_id=anchor_group[anchor])
        if feature.anchor.right_id is None:
            kind = 'dangling'
        elif feature.pill:
            kind = 'pill'
        elif anchor_members[anchor] > 1:
            kind = 'parallel_bundle'
        elif relations.children_ids or relations.overlap_group_id is not None:
            kind = 'braid'
        else:
            kind = 'simple_bubble'
        related.append(replace(feature, relations=relations, kind=kind))
    return related
