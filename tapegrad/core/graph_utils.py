"""
Graph utilities
Print and analyse the structure of a recorded tape.
"""

import numpy as np
from typing import Dict, List
from collections import Counter

from .tracer import iter_nodes


def _parents(node) -> List[int]:
    """Tape indices of the nodes `node` reads, in argument order."""
    return [parent.index for parent in iter_nodes(node.args)]


def _fan_outs(nodes, n_nodes: int) -> List[int]:
    fan_outs = [0] * n_nodes
    for node in nodes:
        for idx in _parents(node):
            if idx < n_nodes:
                fan_outs[idx] += 1
    return fan_outs


def get_graph_stats(tape) -> Dict:
    """
    Statistics of the current recording (no printing).

    Returns:
        dict with node/root/edge counts, fan-in and fan-out extremes and
        means, and a per-operation count (roots are counted as 'root')
    """
    nodes = list(tape)
    if not nodes:
        return {
            'nodes': 0,
            'roots': 0,
            'edges': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    n_nodes = len(nodes)
    fan_ins = [len(_parents(node)) for node in nodes]
    fan_outs = _fan_outs(nodes, n_nodes)
    op_counter = Counter(node.op_name or 'root' for node in nodes)

    return {
        'nodes': n_nodes,
        'roots': sum(1 for node in nodes if node.is_root),
        'edges': sum(fan_ins),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(op_counter)
    }


def print_graph_summary(tape, detailed: bool = False) -> Dict:
    """
    Print a summary of the recorded graph.

    Args:
        tape: a Tape (typically inspected after a differentiation call)
        detailed: also list every node (only for graphs of <= 100 nodes)

    Returns:
        the statistics dict of get_graph_stats
    """
    stats = get_graph_stats(tape)
    if stats['nodes'] == 0:
        print("Empty computation graph")
        return stats

    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {stats['nodes']:,}")
    print(f"Root nodes:         {stats['roots']:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print()
    print("Operation breakdown:")
    for op_name, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / stats['nodes']
        print(f"  {op_name:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and stats['nodes'] <= 100:
        print()
        print("="*70)
        print("DETAILED NODE LIST")
        print("="*70)
        for node in tape:
            parent_info = ", ".join(f"Node{idx}" for idx in _parents(node))
            print(f"Node {node.index:3d}: {node.op_name or 'root':12s} <- [{parent_info}]")

    print("="*70 + "\n")
    return stats


def _describe_value(value) -> str:
    if np.size(value) == 1:
        return f"{float(np.asarray(value).reshape(())):10.6f}"
    return f"shape={np.shape(value)}"


def print_computation_graph(tape, max_nodes: int = 20) -> None:
    """
    Print the node list of the recording, one line per node.

    Args:
        tape: a Tape
        max_nodes: print at most this many nodes
    """
    print("\n" + "="*70)
    print("COMPUTATION GRAPH STRUCTURE")
    print("="*70)

    if len(tape) == 0:
        print("Empty graph")
        return

    for node in list(tape)[:max_nodes]:
        value = _describe_value(node.value)
        if node.is_root:
            print(f"Node {node.index:4d}: {'root':12s} ({value}) [leaf/input]")
        else:
            parent_info = ", ".join(f"Node{idx}" for idx in _parents(node))
            print(f"Node {node.index:4d}: {node.op_name:12s} ({value}) <- [{parent_info}]")

    if len(tape) > max_nodes:
        print(f"... ({len(tape) - max_nodes} more nodes)")

    print("="*70 + "\n")
