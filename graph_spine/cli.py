#!/usr/bin/env python3

import argparse
import sys
import os
import time
from dataclasses import asdict

from .graph import PangenomeGraph
from .walk import MODES, extract_all_walks
from .linearize import linearize
from .relations import relate_features
from .utils import ConstructionError, read_graph_json, write_json, log_action

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Extract assembly walks from a pangenome graph, linearize one of them and report the "
                    "alternate paths around it as a JSON file",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "graph_file",
        help="Input graph JSON file path"
    )

    parser.add_argument(
        "output_file",
        help="Output path for the JSON result"
    )

    parser.add_argument(
        "--ref_name",
        help="Assembly key whose walk is linearized (default: 'GRCh38')",
        type=str,
        default='GRCh38'
    )

    parser.add_argument(
        "--mode",
        help="Walk extraction mode (default: auto)",
        choices=MODES,
        default='auto'
    )

    parser.add_argument(
        "--origin",
        help="bp coordinate of the first spine node (default: the document's locus_start, else 0)",
        type=int,
        default=None
    )

    parser.add_argument(
        "--epsilon-bp",
        help="Length difference treated as neutral when classifying features (default: 5)",
        type=int,
        default=5
    )

    parser.add_argument(
        "--max-alt-paths",
        help="Maximum number of alternate paths sampled per feature (default: 4)",
        type=int,
        default=4
    )

    parser.add_argument(
        "--include-adjacent",
        help="Also report insertions between spine-adjacent nodes",
        action="store_true",
        default=False
    )

    parser.add_argument(
        "--include-dangling",
        help="Also report detours that never rejoin the spine",
        action="store_true",
        default=False
    )

    parser.add_argument(
        "--workers",
        help="Number of threads used to extract walks (default: 1)",
        type=int,
        default=1
    )

    parser.add_argument(
        "--log-path",
        help="Append timing and memory usage lines to this file",
        default=None
    )

    parser.add_argument(
        "--compressed",
        help="Read a gzipped graph file",
        action="store_true",
        default=False
    )

    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)

    # Check if input file exists
    if not os.path.exists(args.graph_file):
        print(f"Error: graph file '{args.graph_file}' not found", file=sys.stderr)
        sys.exit(1)

    # Load the graph
    start_time = time.time()
    print(f"Loading graph file: {args.graph_file}")
    document = read_graph_json(args.graph_file, compressed=args.compressed)
    try:
        G = PangenomeGraph.from_json(document)
    except ConstructionError as error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)
    if args.log_path:
        log_action(args.log_path, start_time, f"Building graph: {os.path.basename(args.graph_file)}")

    statistics = G.statistics()
    print("Num of nodes:", statistics['nodes'])
    print("Num of edges:", statistics['edges'])
    if G.problems.missing_edge_endpoints:
        print(f"Dropped {G.problems.missing_edge_endpoints} edges with missing endpoints")

    walks = extract_all_walks(G, mode=args.mode, workers=args.workers, log_path=args.log_path, verbose=True)
    reference_walk = next((walk for walk in walks if walk.key == args.ref_name), None)
    if reference_walk is None:
        print(f"Warning: no nodes for assembly '{args.ref_name}'", file=sys.stderr)

    origin = args.origin
    if origin is None:
        origin = document.get('locus_start') or 0

    start_time = time.time()
    print("Linearizing", args.ref_name)
    result = linearize(G, reference_walk,
                       origin=origin,
                       epsilon_bp=args.epsilon_bp,
                       max_alt_paths=args.max_alt_paths,
                       include_adjacent=args.include_adjacent,
                       include_dangling=args.include_dangling)
    features = relate_features(result.features)
    print("Num of features:", len(features))
    if args.log_path:
        log_action(args.log_path, start_time, f"Linearizing: {args.ref_name}")

    write_json({
        'statistics': statistics,
        'problems': asdict(G.problems),
        'walks': [asdict(walk) for walk in walks],
        'spine': {
            'assembly': args.ref_name,
            'segments': [asdict(segment) for segment in result.spine_segments],
        },
        'features': [asdict(feature) for feature in features],
    }, args.output_file)
    print(f"Result written to {args.output_file}")

if __name__ == "__main__":
    main()
