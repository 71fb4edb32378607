import re
import gzip
import json

import time
import psutil
from datetime import datetime
from enum import Enum


class ConstructionError(ValueError):
    """Raised when a graph description cannot be turned into a graph."""


class MalformedIdError(ConstructionError):
    """Raised for a node id that does not end in a '+' or '-' sign."""


class Port(Enum):
    START = 'START'
    END = 'END'


_signed_id_pattern = re.compile(r'^(.+?)([+-])$')


def parse_signed_id(node_id) -> tuple[str, str]:
    match = _signed_id_pattern.match(str(node_id))
    if not match:
        raise MalformedIdError(f'Node id "{node_id}" must end with + or -')
    return match.group(1), match.group(2)

def node_complement(s: str) -> str:
    bare_id, sign = parse_signed_id(s)
    return bare_id + _flip(sign)

def _flip(s):
    if s == '+':
        return '-'
    elif s == '-':
        return '+'
    else:
        raise ValueError()

def edge_key_of(a: str, b: str) -> str:
    return f'edge:{a}:{b}'

def _same_orientation(signed_id: str, node_id: str) -> bool:
    return parse_signed_id(signed_id)[1] == parse_signed_id(node_id)[1]

def port_for_starting_node(signed_id: str, node_id: str) -> Port:
    """
    Port of node_id that an edge leaves from when its starting node is written as signed_id. Leaving the
    node in its own orientation uses its END; leaving it in the opposite orientation uses its START.
    """
    return Port.END if _same_orientation(signed_id, node_id) else Port.START

def port_for_ending_node(signed_id: str, node_id: str) -> Port:
    """
    Port of node_id that an edge arrives at when its ending node is written as signed_id; the mirror image of
    port_for_starting_node.
    """
    return Port.START if _same_orientation(signed_id, node_id) else Port.END

def signed_id_sort_key(node_id: str) -> tuple:
    """Numeric bare ids sort numerically and before any non-numeric ids."""
    bare_id, sign = parse_signed_id(node_id)
    if bare_id.isdigit():
        return 0, int(bare_id), '', sign
    return 1, 0, bare_id, sign

def contig_key(assembly_name, haplotype, sequence_id) -> str:
    return f'{assembly_name}#{haplotype}#{sequence_id}'

def read_graph_json(filename: str, compressed: bool = False) -> dict:
    """
    Reads a graph description with 'node', 'edge' and optional 'sequence' sections.
    :param filename: path to a .json file
    :param compressed: set to True in order to read a gzipped file
    """
    if compressed:
        file = gzip.open(filename, 'rt')
    else:
        file = open(filename, 'r')
    with file:
        return json.load(file)

def write_json(document: dict, filename: str) -> None:
    with open(filename, 'w') as file:
        json.dump(document, file, indent=2)

def log_action(log_path: str, start_time: float, action: str):
    # Get timestamp
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    # Measure memory in MB
    memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
    elapsed = time.time() - start_time

    # Build the header string
    log_entry = f"{timestamp},{elapsed:.2f} s,{memory_mb:.2f} MB,{action}\n"

    # Append to the end of the log file
    with open(log_path, "a") as log_file:
        log_file.write(log_entry)
