"""
Experiments
===========
Randomized workload driver for the B+ Tree.

Usage:
    from experiments import ExperimentConfig, perform_experiments
"""

from experiments.workload import (
    ExperimentConfig, OperationLog, OpType,
    generate_records, build_dense_tree, build_sparse_tree,
    perform_operations, perform_experiments, run_simple_example,
)

__all__ = [
    "ExperimentConfig", "OperationLog", "OpType",
    "generate_records", "build_dense_tree", "build_sparse_tree",
    "perform_operations", "perform_experiments", "run_simple_example",
]
