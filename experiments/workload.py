"""
B+ Tree Experiment Driver
=========================
Randomized workloads against BPlusTree, for comparing tree shapes across
orders and load patterns.

Steps:
  1. Generate random integer records (duplicates possible).
  2. Build trees per order: "dense" (records inserted as generated) and
     "sparse" (records inserted in sorted order).
  3. Run a fixed workload on each group: 2 inserts, 2 removes,
     5 search-then-remove-else-insert toggles, 5 searches.
  4. Finish with 5 searches over every tree.

Uses only search / range_search / insert / remove and the renderer (which
reads BPlusTree.dump()). Every record is stored with itself as value.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from indexing.btree import BPlusTree

logger = logging.getLogger(__name__)

SIMPLE_EXAMPLE_ORDER = 3
SIMPLE_EXAMPLE_RECORDS = [3, 5, 7, 9, 11, 13, 15, 18, 20, 25, 28, 29,
                          31, 32, 33, 34, 45, 60]

INSERT_ROUNDS = 2
REMOVE_ROUNDS = 2
TOGGLE_ROUNDS = 5
SEARCH_ROUNDS = 5


class OpType(Enum):
    INSERT = "INSERTING"
    REMOVE = "REMOVING"
    TOGGLE = "SEARCH AND REMOVE OTHERWISE INSERT"
    SEARCH = "SEARCHING"


@dataclass
class ExperimentConfig:
    """Knobs for perform_experiments()."""
    num_records: int = 10000
    min_key: int = 100000
    max_key: int = 200000
    dense_order: int = 13
    sparse_order: int = 24
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.num_records < 0:
            raise ValueError(f"num_records must be >= 0, got {self.num_records}")
        if self.min_key > self.max_key:
            raise ValueError(
                f"min_key {self.min_key} is greater than max_key {self.max_key}")


@dataclass
class OperationLog:
    """Ordered record of the workload steps applied to a group of trees."""
    entries: List[Tuple[OpType, int]] = field(default_factory=list)
    hits: int = 0

    def record(self, op: OpType, key: int) -> None:
        self.entries.append((op, key))

    def keys_for(self, op: OpType) -> List[int]:
        return [k for o, k in self.entries if o == op]


# ─── Records & Builders ─────────────────────────────────────────────────

def generate_records(num_records: int, min_key: int, max_key: int,
                     rng: Optional[random.Random] = None) -> List[int]:
    """Uniform random keys in [min_key, max_key]."""
    rng = rng or random.Random()
    return [rng.randint(min_key, max_key) for _ in range(num_records)]


def build_dense_tree(records: Sequence[int], order: int) -> BPlusTree:
    """Insert records in the order given."""
    tree = BPlusTree(order)
    for key in records:
        tree.insert(key, key)
    logger.info("built dense tree: order=%d entries=%d height=%d",
                order, tree.entry_count, tree.tree_height)
    return tree


def build_sparse_tree(records: Sequence[int], order: int) -> BPlusTree:
    """Insert records in ascending order."""
    tree = BPlusTree(order)
    for key in sorted(records):
        tree.insert(key, key)
    logger.info("built sparse tree: order=%d entries=%d height=%d",
                order, tree.entry_count, tree.tree_height)
    return tree


# ─── Workload ───────────────────────────────────────────────────────────

def _show(renderer, op: OpType, key: int, tree: BPlusTree) -> None:
    if renderer is not None:
        renderer.render_operation(op.value, key)
        renderer.render_tree(tree)


def perform_operations(trees: Sequence[BPlusTree], min_key: int, max_key: int,
                       rng: random.Random, renderer=None) -> OperationLog:
    """
    Apply the same random workload to every tree in `trees`.
    Each key is drawn once and applied to all trees before the next draw.
    """
    log = OperationLog()

    for _ in range(INSERT_ROUNDS):
        key = rng.randint(min_key, max_key)
        log.record(OpType.INSERT, key)
        for tree in trees:
            tree.insert(key, key)
            _show(renderer, OpType.INSERT, key, tree)

    for _ in range(REMOVE_ROUNDS):
        key = rng.randint(min_key, max_key)
        log.record(OpType.REMOVE, key)
        for tree in trees:
            tree.remove(key)
            _show(renderer, OpType.REMOVE, key, tree)

    for _ in range(TOGGLE_ROUNDS):
        key = rng.randint(min_key, max_key)
        log.record(OpType.TOGGLE, key)
        for tree in trees:
            if tree.search(key) is not None:
                tree.remove(key)
            else:
                tree.insert(key, key)
            _show(renderer, OpType.TOGGLE, key, tree)

    for _ in range(SEARCH_ROUNDS):
        key = rng.randint(min_key, max_key)
        log.record(OpType.SEARCH, key)
        for tree in trees:
            if tree.search(key) is not None:
                log.hits += 1

    return log


def perform_experiments(config: Optional[ExperimentConfig] = None,
                        renderer=None) -> Dict[str, BPlusTree]:
    """
    Build the four trees (dense/sparse x dense_order/sparse_order), run the
    workload on the dense pair and on the sparse pair, then search all four.
    Returns the trees keyed as "dense_<order>" / "sparse_<order>".
    """
    config = config or ExperimentConfig()
    config.validate()
    rng = random.Random(config.seed)

    records = generate_records(config.num_records, config.min_key,
                               config.max_key, rng)

    trees = {
        f"dense_{config.dense_order}": build_dense_tree(records, config.dense_order),
        f"sparse_{config.dense_order}": build_sparse_tree(records, config.dense_order),
        f"dense_{config.sparse_order}": build_dense_tree(records, config.sparse_order),
        f"sparse_{config.sparse_order}": build_sparse_tree(records, config.sparse_order),
    }
    dense_trees = [t for name, t in trees.items() if name.startswith("dense_")]
    sparse_trees = [t for name, t in trees.items() if name.startswith("sparse_")]

    perform_operations(dense_trees, config.min_key, config.max_key, rng, renderer)
    perform_operations(sparse_trees, config.min_key, config.max_key, rng, renderer)

    for _ in range(SEARCH_ROUNDS):
        key = rng.randint(config.min_key, config.max_key)
        for tree in dense_trees + sparse_trees:
            tree.search(key)
            if renderer is not None:
                renderer.render_tree(tree)

    return trees


def run_simple_example(renderer=None) -> BPlusTree:
    """Order-3 tree over the fixed example records, inserted as listed."""
    tree = BPlusTree(SIMPLE_EXAMPLE_ORDER)
    for key in SIMPLE_EXAMPLE_RECORDS:
        tree.insert(key, key)
    if renderer is not None:
        renderer.render_tree(tree)
    return tree
