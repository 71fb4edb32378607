import math
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional

import networkx as nx

from .utils import (
    ConstructionError,
    MalformedIdError,
    Port,
    parse_signed_id,
    node_complement,
    edge_key_of,
    port_for_starting_node,
    port_for_ending_node,
    signed_id_sort_key,
    contig_key,
)


class AdjacencyEntry(NamedTuple):
    edge_key: str
    other: str
    self_port: Port
    other_port: Port


class EdgeRecord(NamedTuple):
    key: str
    from_id: str
    to_id: str
    from_port: Port
    to_port: Port
    index: int


class LengthMismatch(NamedTuple):
    node_id: str
    declared_bp: int
    derived_bp: int


@dataclass
class ConstructionProblems:
    """Recoverable issues found while building a graph; none of them stop construction."""
    length_mismatches: list = field(default_factory=list)
    invalid_lengths: list = field(default_factory=list)
    missing_edge_endpoints: int = 0
    duplicate_edges: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.length_mismatches or self.invalid_lengths
                    or self.missing_edge_endpoints or self.duplicate_edges)


_known_node_fields = ('length', 'sequence', 'assembly', 'assemblies')


class PangenomeGraph(nx.MultiGraph):
    """
    Bidirected pangenome graph keyed by signed node ids such as '12+'. Each edge attaches to a specific port
    (START or END) of each endpoint; ports are computed once, when the edge is added. A graph returned by
    from_records or from_json is frozen: its nodes, edges and derived indices never change afterwards.
    """
    adjacency_index: dict
    assembly_index: dict
    edge_keys: list
    problems: ConstructionProblems

    @property
    def node_attribute_names(self) -> tuple:
        return 'bare_id', 'sign', 'length_bp', 'assemblies', 'layout'

    @property
    def assembly_keys(self) -> list[str]:
        return sorted(self.assembly_index)

    @property
    def sorted_nodes(self) -> list[str]:
        return sorted(self.nodes, key=signed_id_sort_key)

    @classmethod
    def from_json(cls, document):
        """
        Builds a graph from a parsed graph description.
        :param document: mapping with a 'node' table (node id -> record), an 'edge' list of
        {'starting_node', 'ending_node'} records and an optional 'sequence' table (node id -> sequence string)
        """
        if not isinstance(document, Mapping):
            raise ConstructionError(f'Graph description must be a mapping, got {type(document).__name__}')
        edge_records = document.get('edge') or []
        if not isinstance(edge_records, (list, tuple)):
            edge_records = []
        return cls.from_records(document.get('node') or {}, edge_records, sequences=document.get('sequence'))

    @classmethod
    def from_records(cls, node_records, edge_records, sequences: Optional[Mapping] = None):
        """
        Builds a frozen graph from raw node and edge records.
        :param node_records: mapping of signed node id -> record with optional 'length', 'sequence' and
        'assembly' fields; any other field is kept as opaque layout metadata
        :param edge_records: iterable of {'starting_node', 'ending_node'} mappings or (from, to) pairs
        :param sequences: optional mapping of node id -> sequence string, used when a record has no length
        :return: the graph; recoverable issues are listed in graph.problems
        """
        if not isinstance(node_records, Mapping):
            raise ConstructionError(f'Node records must be a mapping, got {type(node_records).__name__}')
        sequences = sequences if isinstance(sequences, Mapping) else {}

        G = cls()
        for node_id, record in node_records.items():
            if not isinstance(record, Mapping):
                raise ConstructionError(f'Record for node {node_id} must be a mapping')
            G.add_signed_node(str(node_id), record, sequences.get(node_id))

        for index, record in enumerate(edge_records):
            if isinstance(record, Mapping):
                starting_node, ending_node = record.get('starting_node'), record.get('ending_node')
            else:
                try:
                    starting_node, ending_node = record
                except (TypeError, ValueError):
                    G.problems.missing_edge_endpoints += 1
                    continue
            G.add_signed_edge(starting_node, ending_node, index)

        G.build_indices()
        return nx.freeze(G)

    def __init__(self, incoming_graph_data=None, **attr):
        super().__init__(incoming_graph_data, **attr)
        self.adjacency_index = {}
        self.assembly_index = {}
        self.edge_keys = []
        self.problems = ConstructionProblems()
        self._edges_by_key = {}
        self._key_by_pair = {}

    def add_signed_node(self, node_id: str, record: Mapping, sequence: Any = None):
        """
        Adds a node, resolving its length and its assembly memberships.
        """
        bare_id, sign = parse_signed_id(node_id)

        if isinstance(record.get('sequence'), str):
            sequence = record['sequence']
        derived_bp = len(sequence) if isinstance(sequence, str) else None

        declared = record.get('length')
        declared_bp = _as_length(declared)
        if declared is not None and declared_bp is None:
            self.problems.invalid_lengths.append((node_id, declared))

        if declared_bp is not None:
            length_bp = declared_bp
            if derived_bp is not None and derived_bp != declared_bp:
                self.problems.length_mismatches.append(LengthMismatch(node_id, declared_bp, derived_bp))
        elif derived_bp is not None:
            length_bp = derived_bp
        else:
            length_bp = 0

        layout = {key: value for key, value in record.items() if key not in _known_node_fields}
        self.add_node(node_id,
                      bare_id=bare_id,
                      sign=sign,
                      length_bp=length_bp,
                      assemblies=_assembly_labels(record),
                      layout=layout)

    def add_signed_edge(self, starting_node, ending_node, index: int) -> Optional[str]:
        """
        Adds the edge starting_node -> ending_node if both endpoints resolve to nodes; otherwise the edge is
        dropped and counted. An endpoint that names the opposite orientation of an existing node resolves to
        that node.
        :return: the edge key, or None if the edge was dropped
        """
        from_node = self.resolve_node(starting_node)
        to_node = self.resolve_node(ending_node)
        if from_node is None or to_node is None:
            self.problems.missing_edge_endpoints += 1
            return None

        key = edge_key_of(starting_node, ending_node)
        if key in self._edges_by_key:
            self.problems.duplicate_edges += 1
            return None

        record = EdgeRecord(key=key,
                            from_id=from_node,
                            to_id=to_node,
                            from_port=port_for_starting_node(starting_node, from_node),
                            to_port=port_for_ending_node(ending_node, to_node),
                            index=len(self.edge_keys))
        self.add_edge(from_node, to_node, key=key,
                      from_port=record.from_port, to_port=record.to_port, index=record.index)
        self._edges_by_key[key] = record
        self._key_by_pair.setdefault((from_node, to_node), key)
        self.edge_keys.append(key)
        return key

    def resolve_node(self, signed_id) -> Optional[str]:
        if signed_id is None:
            return None
        signed_id = str(signed_id)
        if self.has_node(signed_id):
            return signed_id
        try:
            complement = node_complement(signed_id)
        except MalformedIdError:
            return None
        return complement if self.has_node(complement) else None

    def build_indices(self):
        """Computes the adjacency index and the assembly index."""
        entries = {node: [] for node in self.nodes}
        for key in self.edge_keys:
            record = self._edges_by_key[key]
            u, v = record.from_id, record.to_id
            entries[u].append(AdjacencyEntry(key, v, record.from_port, record.to_port))
            if u != v:
                entries[v].append(AdjacencyEntry(key, u, record.to_port, record.from_port))

        self.adjacency_index = {
            node: tuple(sorted(node_entries, key=lambda entry: (signed_id_sort_key(entry.other), entry.edge_key)))
            for node, node_entries in entries.items()
        }

        assembly_index = defaultdict(set)
        for node, labels in self.nodes(data='assemblies'):
            for label in labels:
                assembly_index[label].add(node)
        self.assembly_index = {label: frozenset(nodes) for label, nodes in assembly_index.items()}

    def length_bp(self, node: str) -> int:
        return self.nodes[node]['length_bp']

    def sign(self, node: str) -> str:
        return self.nodes[node]['sign']

    def bare_id(self, node: str) -> str:
        return self.nodes[node]['bare_id']

    def assemblies(self, node: str) -> frozenset:
        return self.nodes[node]['assemblies']

    def layout(self, node: str) -> dict:
        return self.nodes[node]['layout']

    def neighbors_of(self, node: str) -> tuple:
        return self.adjacency_index.get(node, ())

    def has_edge_key(self, key: str) -> bool:
        return key in self._edges_by_key

    def edge_record(self, key: str) -> EdgeRecord:
        return self._edges_by_key[key]

    def edge_records(self) -> list[EdgeRecord]:
        return [self._edges_by_key[key] for key in self.edge_keys]

    def edge_key_between(self, a: str, b: str) -> Optional[str]:
        """Key of an edge a -> b if there is one, else of an edge b -> a, else None."""
        key = self._key_by_pair.get((a, b))
        if key is None:
            key = self._key_by_pair.get((b, a))
        return key

    def nodes_of_assembly(self, assembly_key: str) -> frozenset:
        return self.assembly_index.get(assembly_key, frozenset())

    def path_length_bp(self, nodes) -> int:
        return sum(self.length_bp(node) for node in nodes)

    def statistics(self) -> dict:
        return {
            'nodes': self.number_of_nodes(),
            'edges': len(self.edge_keys),
            'assemblies': len(self.assembly_index),
            'total_length_bp': self.path_length_bp(self.nodes),
        }


def _as_length(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0 or value != int(value):
        return None
    return int(value)


def _assembly_labels(record: Mapping) -> frozenset:
    memberships = record.get('assembly', record.get('assemblies'))
    if not isinstance(memberships, (list, tuple, set, frozenset)):
        return frozenset()

    labels = set()
    for membership in memberships:
        if isinstance(membership, str):
            if membership:
                labels.add(membership)
        elif isinstance(membership, Mapping):
            name = membership.get('assembly_name')
            if name:
                labels.add(name)
            parts = (name, membership.get('haplotype'), membership.get('sequence_id'))
            if all(part is not None for part in parts):
                labels.add(contig_key(*parts))
    return frozenset(labels)
