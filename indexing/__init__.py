"""
Indexing Module
===============
In-memory B+ Tree index.

Components:
  - btree: BTreeNode (tagged leaf/internal node) and BPlusTree with
    search, range scan, insert, delete, level-order dump and verification.
"""

from indexing.btree import (
    BPlusTree, BTreeNode, BTreeConfigError,
    NODE_TYPE_LEAF, NODE_TYPE_INTERNAL, MIN_ORDER, DEFAULT_ORDER,
)

__all__ = [
    "BPlusTree", "BTreeNode", "BTreeConfigError",
    "NODE_TYPE_LEAF", "NODE_TYPE_INTERNAL", "MIN_ORDER", "DEFAULT_ORDER",
]
