from .graph import PangenomeGraph, ConstructionProblems, LengthMismatch, AdjacencyEntry, EdgeRecord
from .walk import Walk, Path, WalkDiagnostics, extract_walk, extract_all_walks
from .linearize import LinearizationResult, Feature, linearize
from .relations import relate_features
from .utils import ConstructionError, MalformedIdError, Port, parse_signed_id, read_graph_json

__version__ = "0.1.0"

__all__ = [
    'PangenomeGraph',
    'ConstructionProblems',
    'LengthMismatch',
    'AdjacencyEntry',
    'EdgeRecord',
    'Walk',
    'Path',
    'WalkDiagnostics',
    'extract_walk',
    'extract_all_walks',
    'LinearizationResult',
    'Feature',
    'linearize',
    'relate_features',
    'ConstructionError',
    'MalformedIdError',
    'Port',
    'parse_signed_id',
    'read_graph_json'
]
