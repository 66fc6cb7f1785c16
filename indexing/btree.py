"""
B+ Tree Index
=============
In-memory B+ Tree supporting exact search, inclusive range scan, insert
and delete with split / borrow / merge rebalancing.

Architecture:
  - Node arena: the tree owns every node in a dict keyed by integer handle.
    Parents, children and leaf links refer to nodes by handle only.
  - Root handle is None for an empty tree.

Node types:
  - LEAF: stores sorted (key, value) entries. Linked via next_leaf for range scan.
  - INTERNAL: stores sorted separator keys with child handles.
    Invariant: left subtree < K, right subtree >= K, and K equals the first
    key of the right subtree.

Capacity (order m >= 3):
  - max_keys = m for leaves AND internal nodes.
  - min_keys = floor((m+1)/2) for leaves, ceil((m+1)/2) - 1 for internal nodes.
  - The root is exempt from the minimum.

Duplicate keys: insert overwrites the stored value.
Concurrency: single-writer, no locking.
"""

import bisect
import logging
from collections import deque
from typing import Any, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# ─── Constants ──────────────────────────────────────────────────────────────

NODE_TYPE_LEAF = 0
NODE_TYPE_INTERNAL = 1

MIN_ORDER = 3
DEFAULT_ORDER = 3


class BTreeConfigError(ValueError):
    """Raised when a tree is constructed with an unusable configuration."""


# ─── Node ───────────────────────────────────────────────────────────────────

class BTreeNode:
    """
    One node of the tree, tagged as leaf or internal.
    Holds data and capacity bookkeeping only; all algorithms live in BPlusTree.
    """
    __slots__ = (
        'node_id', 'node_type', 'order', 'keys', 'values',
        'children', 'next_leaf', 'parent',
    )

    def __init__(self, node_id: int, node_type: int, order: int):
        self.node_id = node_id
        self.node_type = node_type
        self.order = order
        self.keys: List[Any] = []
        self.values: List[Any] = []           # leaf only: parallel to keys
        self.children: List[int] = []         # internal only: node handles
        self.next_leaf: Optional[int] = None  # leaf only
        self.parent: Optional[int] = None     # None = root

    @property
    def key_count(self) -> int:
        return len(self.keys)

    @property
    def is_leaf(self) -> bool:
        return self.node_type == NODE_TYPE_LEAF

    @property
    def max_keys(self) -> int:
        return self.order

    @property
    def min_keys(self) -> int:
        if self.is_leaf:
            return (self.order + 1) // 2
        # ceil((m+1)/2) - 1
        return (self.order + 2) // 2 - 1

    @property
    def is_overflow(self) -> bool:
        return len(self.keys) > self.max_keys

    @property
    def is_underflow(self) -> bool:
        return len(self.keys) < self.min_keys

    def __repr__(self) -> str:
        kind = "Leaf" if self.is_leaf else "Internal"
        return f"<{kind} #{self.node_id} keys={self.keys!r}>"


# ─── B+ Tree ────────────────────────────────────────────────────────────────

class BPlusTree:
    """
    In-memory B+ Tree.

    Usage:
        bt = BPlusTree(order=4)
        bt.insert(25, "row-25")
        bt.search(25)                  # -> "row-25"
        list(bt.range_search(10, 30))  # values for keys in [10, 30]
        bt.remove(25)
    """

    def __init__(self, order: int = DEFAULT_ORDER, validate: bool = False):
        if isinstance(order, bool) or not isinstance(order, int):
            raise BTreeConfigError(f"Order must be an integer, got {order!r}")
        if order < MIN_ORDER:
            raise BTreeConfigError(
                f"Order must be at least {MIN_ORDER}, got {order}")

        self._order = order
        self._validate = validate
        self._nodes: Dict[int, BTreeNode] = {}
        self._root: Optional[int] = None
        self._next_id: int = 1
        self._entry_count: int = 0
        self._tree_height: int = 0

    @property
    def order(self) -> int:
        return self._order

    @property
    def root(self) -> Optional[int]:
        return self._root

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def tree_height(self) -> int:
        return self._tree_height

    @property
    def is_empty(self) -> bool:
        return self._entry_count == 0

    def __len__(self) -> int:
        return self._entry_count

    def node(self, node_id: int) -> BTreeNode:
        """Resolve a handle to its node (read-only use)."""
        return self._nodes[node_id]

    # ─── Search ─────────────────────────────────────────────────────

    def search(self, key: Any, default: Any = None) -> Any:
        """Exact-match search. Returns the stored value or `default`."""
        if self._root is None:
            return default
        leaf = self._find_leaf(key)
        pos = bisect.bisect_left(leaf.keys, key)
        if pos < len(leaf.keys) and leaf.keys[pos] == key:
            return leaf.values[pos]
        return default

    def range_search(self, lo: Any, hi: Any) -> Iterator[Any]:
        """
        Yield values for keys in [lo, hi] in ascending key order.

        Walks the leaf chain from the leaf that would hold `lo` and stops at
        the first key above `hi`. Must not be advanced across a mutation.
        """
        if self._root is None or lo > hi:
            return

        leaf: Optional[BTreeNode] = self._find_leaf(lo)
        start = bisect.bisect_left(leaf.keys, lo)
        while leaf is not None:
            for i in range(start, len(leaf.keys)):
                if leaf.keys[i] > hi:
                    return
                yield leaf.values[i]
            start = 0
            leaf = self._next_leaf(leaf)

    def items(self) -> Iterator[Tuple[Any, Any]]:
        """Yield every (key, value) pair by walking the leaf chain."""
        leaf = self._find_leftmost_leaf()
        while leaf is not None:
            yield from zip(leaf.keys, leaf.values)
            leaf = self._next_leaf(leaf)

    def keys(self) -> Iterator[Any]:
        for key, _ in self.items():
            yield key

    # ─── Insert ─────────────────────────────────────────────────────

    def insert(self, key: Any, value: Any) -> None:
        """
        Insert a (key, value) pair. An existing key has its value replaced.
        Handles leaf splits, internal splits and root splits.
        """
        if self._root is None:
            leaf = self._alloc_node(NODE_TYPE_LEAF)
            self._root = leaf.node_id
            self._tree_height = 1
        else:
            leaf = self._find_leaf(key)

        pos = bisect.bisect_left(leaf.keys, key)
        if pos < len(leaf.keys) and leaf.keys[pos] == key:
            leaf.values[pos] = value
            return

        leaf.keys.insert(pos, key)
        leaf.values.insert(pos, value)
        self._entry_count += 1

        if leaf.is_overflow:
            self._split_leaf(leaf)

        if self._validate:
            self.check_invariants()

    def _insert_into_parent(self, node: BTreeNode, separator: Any,
                            new_node: BTreeNode) -> None:
        """
        Hook `new_node` in as the right neighbour of `node` under `separator`.
        Creates a new root when `node` was the root; splits the parent upward
        when it overflows.
        """
        if node.parent is None:
            new_root = self._alloc_node(NODE_TYPE_INTERNAL)
            new_root.keys.append(separator)
            new_root.children.append(node.node_id)
            new_root.children.append(new_node.node_id)
            node.parent = new_root.node_id
            new_node.parent = new_root.node_id
            self._root = new_root.node_id
            self._tree_height += 1
            logger.debug("root split: new root #%d separator=%r height=%d",
                         new_root.node_id, separator, self._tree_height)
            return

        parent = self._nodes[node.parent]
        idx = self._child_index(parent, node)
        parent.keys.insert(idx, separator)
        parent.children.insert(idx + 1, new_node.node_id)
        new_node.parent = parent.node_id

        if parent.is_overflow:
            self._split_internal(parent)

    # ─── Split ──────────────────────────────────────────────────────

    def _split_leaf(self, node: BTreeNode) -> None:
        """
        Split an overflowing leaf.
        First key of the new right leaf is COPIED UP to the parent.

        The left half keeps ceil(order/2) entries so both halves satisfy
        the leaf minimum for odd and even orders.
        """
        mid = (self._order + 1) // 2

        new_leaf = self._alloc_node(NODE_TYPE_LEAF)
        new_leaf.keys = node.keys[mid:]
        new_leaf.values = node.values[mid:]
        # Maintain chain: new.next = old.next; old.next = new
        new_leaf.next_leaf = node.next_leaf

        node.keys = node.keys[:mid]
        node.values = node.values[:mid]
        node.next_leaf = new_leaf.node_id

        logger.debug("leaf split: #%d -> #%d at %r",
                     node.node_id, new_leaf.node_id, new_leaf.keys[0])
        self._insert_into_parent(node, new_leaf.keys[0], new_leaf)

    def _split_internal(self, node: BTreeNode) -> None:
        """
        Split an overflowing internal node at order // 2.
        Median key is PUSHED UP to the parent (removed from both halves).

        Order 3: keys=[k0,k1,k2,k3], children=[c0,c1,c2,c3,c4]
        Mid=1: promoted=k1
        Left:  keys=[k0],       children=[c0,c1]
        Right: keys=[k2,k3],    children=[c2,c3,c4]
        """
        mid = self._order // 2
        promoted_key = node.keys[mid]

        new_internal = self._alloc_node(NODE_TYPE_INTERNAL)
        new_internal.keys = node.keys[mid + 1:]
        new_internal.children = node.children[mid + 1:]
        for child_id in new_internal.children:
            self._nodes[child_id].parent = new_internal.node_id

        node.keys = node.keys[:mid]
        node.children = node.children[:mid + 1]

        logger.debug("internal split: #%d -> #%d promoted %r",
                     node.node_id, new_internal.node_id, promoted_key)
        self._insert_into_parent(node, promoted_key, new_internal)

    # ─── Delete ─────────────────────────────────────────────────────

    def remove(self, key: Any) -> None:
        """
        Remove `key` and its value. Absent keys are a no-op.
        Underflow is repaired bottom-up by borrowing from a sibling or
        merging with one; an internal root left without keys is replaced
        by its only child.
        """
        if self._root is None:
            return

        leaf, path = self._find_leaf_with_path(key)
        pos = bisect.bisect_left(leaf.keys, key)
        if pos >= len(leaf.keys) or leaf.keys[pos] != key:
            return

        del leaf.keys[pos]
        del leaf.values[pos]
        self._entry_count -= 1

        if pos == 0 and leaf.keys:
            self._refresh_separator(path, leaf.keys[0])

        self._rebalance(leaf, path)
        self._collapse_root()

        if self._validate:
            self.check_invariants()

    def _refresh_separator(self, path: List[Tuple[int, int]],
                           new_first: Any) -> None:
        """
        A leaf's first key changed: rewrite the nearest ancestor separator
        that routes to the leaf's subtree from the left.
        """
        for parent_id, idx in reversed(path):
            if idx > 0:
                self._nodes[parent_id].keys[idx - 1] = new_first
                return

    def _rebalance(self, node: BTreeNode, path: List[Tuple[int, int]]) -> None:
        """
        Walk up from `node` restoring the minimum-key bound.
        `path` holds (parent_id, child_index) pairs from root to `node`; the
        indices stay valid because repairs only ever touch one level at a time.
        """
        while path and node.is_underflow:
            parent_id, idx = path.pop()
            parent = self._nodes[parent_id]
            assert node.parent == parent_id, \
                f"node #{node.node_id} parent link broken"
            assert parent.children[idx] == node.node_id, \
                f"node #{node.node_id} not at index {idx} of #{parent_id}"

            left = self._nodes[parent.children[idx - 1]] if idx > 0 else None
            right = (self._nodes[parent.children[idx + 1]]
                     if idx < len(parent.keys) else None)

            if left is not None and left.key_count > left.min_keys:
                self._borrow_from_left(node, left, parent, idx)
                return
            if right is not None and right.key_count > right.min_keys:
                self._borrow_from_right(node, right, parent, idx)
                return

            if left is not None:
                self._merge(left, node, parent, idx - 1)
            else:
                assert right is not None, \
                    f"internal node #{parent_id} has a single child"
                self._merge(node, right, parent, idx)
            node = parent

    def _collapse_root(self) -> None:
        root = self._nodes[self._root]
        if root.is_leaf or root.keys:
            return
        assert len(root.children) == 1
        new_root = self._nodes[root.children[0]]
        new_root.parent = None
        self._root = new_root.node_id
        self._free_node(root)
        self._tree_height -= 1
        logger.debug("root collapse: #%d -> #%d height=%d",
                     root.node_id, new_root.node_id, self._tree_height)

    # ─── Borrow / Merge ─────────────────────────────────────────────

    def _borrow_from_left(self, node: BTreeNode, left: BTreeNode,
                          parent: BTreeNode, idx: int) -> None:
        """Rotate the last entry of `left` into the front of `node`."""
        sep = idx - 1
        if node.is_leaf:
            node.keys.insert(0, left.keys.pop())
            node.values.insert(0, left.values.pop())
            parent.keys[sep] = node.keys[0]
        else:
            node.keys.insert(0, parent.keys[sep])
            child_id = left.children.pop()
            node.children.insert(0, child_id)
            self._nodes[child_id].parent = node.node_id
            parent.keys[sep] = left.keys.pop()
        logger.debug("borrow: #%d <- left #%d", node.node_id, left.node_id)

    def _borrow_from_right(self, node: BTreeNode, right: BTreeNode,
                           parent: BTreeNode, idx: int) -> None:
        """Rotate the first entry of `right` onto the end of `node`."""
        if node.is_leaf:
            node.keys.append(right.keys.pop(0))
            node.values.append(right.values.pop(0))
            parent.keys[idx] = right.keys[0]
        else:
            node.keys.append(parent.keys[idx])
            child_id = right.children.pop(0)
            node.children.append(child_id)
            self._nodes[child_id].parent = node.node_id
            parent.keys[idx] = right.keys.pop(0)
        logger.debug("borrow: #%d <- right #%d", node.node_id, right.node_id)

    def _merge(self, left: BTreeNode, right: BTreeNode,
               parent: BTreeNode, sep: int) -> None:
        """
        Fold `right` into `left` and drop separator `sep` (and the right
        child handle) from `parent`. The caller continues the repair at
        `parent`, which may now be under its minimum.
        """
        if left.is_leaf:
            left.keys.extend(right.keys)
            left.values.extend(right.values)
            left.next_leaf = right.next_leaf
        else:
            left.keys.append(parent.keys[sep])
            left.keys.extend(right.keys)
            left.children.extend(right.children)
            for child_id in right.children:
                self._nodes[child_id].parent = left.node_id

        assert not left.is_overflow, \
            f"merge overflowed node #{left.node_id}"

        del parent.keys[sep]
        del parent.children[sep + 1]
        self._free_node(right)
        logger.debug("merge: #%d absorbed #%d", left.node_id, right.node_id)

    # ─── Navigation ─────────────────────────────────────────────────

    def _find_child_index(self, node: BTreeNode, key: Any) -> int:
        """Child left of the first separator greater than `key`."""
        return bisect.bisect_right(node.keys, key)

    def _find_leaf(self, key: Any) -> BTreeNode:
        """Navigate from root to the leaf that should contain the key."""
        node = self._nodes[self._root]
        while not node.is_leaf:
            node = self._nodes[node.children[self._find_child_index(node, key)]]
        return node

    def _find_leaf_with_path(self, key: Any) -> Tuple[BTreeNode, List[Tuple[int, int]]]:
        """Like _find_leaf, also returning (parent_id, child_index) per level."""
        path: List[Tuple[int, int]] = []
        node = self._nodes[self._root]
        while not node.is_leaf:
            idx = self._find_child_index(node, key)
            path.append((node.node_id, idx))
            node = self._nodes[node.children[idx]]
        return node, path

    def _find_leftmost_leaf(self) -> Optional[BTreeNode]:
        if self._root is None:
            return None
        node = self._nodes[self._root]
        while not node.is_leaf:
            node = self._nodes[node.children[0]]
        return node

    def _next_leaf(self, leaf: BTreeNode) -> Optional[BTreeNode]:
        if leaf.next_leaf is None:
            return None
        return self._nodes[leaf.next_leaf]

    def _child_index(self, parent: BTreeNode, child: BTreeNode) -> int:
        """Position of `child` among `parent`'s children, by handle."""
        return parent.children.index(child.node_id)

    # ─── Arena ──────────────────────────────────────────────────────

    def _alloc_node(self, node_type: int) -> BTreeNode:
        node = BTreeNode(self._next_id, node_type, self._order)
        self._nodes[node.node_id] = node
        self._next_id += 1
        return node

    def _free_node(self, node: BTreeNode) -> None:
        del self._nodes[node.node_id]

    # ─── Debug / Verification ───────────────────────────────────────

    def dump(self, with_values: bool = False) -> List[List[List[Any]]]:
        """
        Level-order dump: one list per level, one entry per node from left
        to right. An entry is the node's key list, or for leaves with
        `with_values` a list of (key, value) pairs. Not a stable format.
        """
        levels: List[List[List[Any]]] = []
        if self._root is None:
            return levels

        queue = deque([self._root])
        while queue:
            level = []
            for _ in range(len(queue)):
                node = self._nodes[queue.popleft()]
                if node.is_leaf and with_values:
                    level.append(list(zip(node.keys, node.values)))
                else:
                    level.append(list(node.keys))
                if not node.is_leaf:
                    queue.extend(node.children)
            levels.append(level)
        return levels

    def check_invariants(self) -> None:
        """Raise AssertionError if any structural invariant is broken."""
        issues = self.verify_structure()
        if issues:
            raise AssertionError("B+ tree invariants violated: " + "; ".join(issues))

    def verify_structure(self) -> List[str]:
        """
        Verify structural integrity.
        Returns list of issues found (empty = healthy).
        """
        issues: List[str] = []
        if self._root is None:
            if self._nodes:
                issues.append("Empty tree still owns nodes")
            if self._entry_count != 0:
                issues.append(f"Empty tree reports {self._entry_count} entries")
            return issues

        root = self._nodes.get(self._root)
        if root is None:
            return [f"Root #{self._root} missing from arena"]
        if root.parent is not None:
            issues.append(f"Root #{root.node_id} has parent #{root.parent}")

        leaf_depths = set()
        reached = set()
        self._verify_node(root, None, None, 1, leaf_depths, reached, issues)

        if len(leaf_depths) > 1:
            issues.append(f"Leaves at different depths: {sorted(leaf_depths)}")
        elif leaf_depths and leaf_depths.pop() != self._tree_height:
            issues.append(f"Tree height {self._tree_height} does not match leaf depth")

        orphans = set(self._nodes) - reached
        if orphans:
            issues.append(f"Unreachable nodes in arena: {sorted(orphans)}")

        self._verify_leaf_chain(issues)
        return issues

    def _verify_node(self, node: BTreeNode, min_key: Any, max_key: Any,
                     depth: int, leaf_depths: set, reached: set,
                     issues: List[str]) -> Optional[Any]:
        """
        Recursively verify a node and its children.
        Returns the smallest key in the subtree (None if empty).
        """
        nid = node.node_id
        reached.add(nid)
        is_root = nid == self._root

        for i in range(1, len(node.keys)):
            if not node.keys[i - 1] < node.keys[i]:
                issues.append(f"Node #{nid}: keys not strictly sorted at position {i}")

        for k in node.keys:
            if min_key is not None and k < min_key:
                issues.append(f"Node #{nid}: key {k!r} below parent separator")
            if max_key is not None and k >= max_key:
                issues.append(f"Node #{nid}: key {k!r} at/above parent separator")

        if node.key_count > node.max_keys:
            issues.append(f"Node #{nid}: {node.key_count} keys exceeds max {node.max_keys}")
        if not is_root and node.key_count < node.min_keys:
            issues.append(f"Node #{nid}: {node.key_count} keys below min {node.min_keys}")

        if node.is_leaf:
            leaf_depths.add(depth)
            if len(node.values) != len(node.keys):
                issues.append(f"Leaf #{nid}: keys/values length mismatch")
            return node.keys[0] if node.keys else None

        if len(node.children) != len(node.keys) + 1:
            issues.append(f"Node #{nid}: children count mismatch")
            return None
        if is_root and not node.keys:
            issues.append(f"Internal root #{nid} has no keys")

        subtree_min = None
        for i, child_id in enumerate(node.children):
            child = self._nodes.get(child_id)
            if child is None:
                issues.append(f"Node #{nid}: child #{child_id} missing from arena")
                continue
            if child.parent != nid:
                issues.append(f"Node #{child_id}: parent link {child.parent} != #{nid}")
            lo = node.keys[i - 1] if i > 0 else min_key
            hi = node.keys[i] if i < len(node.keys) else max_key
            child_min = self._verify_node(child, lo, hi, depth + 1,
                                          leaf_depths, reached, issues)
            if i == 0:
                subtree_min = child_min
            elif child_min != node.keys[i - 1]:
                issues.append(
                    f"Node #{nid}: separator {node.keys[i - 1]!r} != "
                    f"first key {child_min!r} of child {i}")
        return subtree_min

    def _verify_leaf_chain(self, issues: List[str]) -> None:
        """Verify the leaf chain is ordered, acyclic and covers every entry."""
        leaf = self._find_leftmost_leaf()
        prev_key: Any = None
        have_prev = False
        visited = set()
        count = 0

        while leaf is not None:
            if leaf.node_id in visited:
                issues.append(f"Leaf chain cycle at node #{leaf.node_id}")
                break
            visited.add(leaf.node_id)

            for k in leaf.keys:
                if have_prev and not prev_key < k:
                    issues.append(f"Leaf chain ordering broken at node #{leaf.node_id}")
                prev_key = k
                have_prev = True
            count += len(leaf.keys)

            if leaf.next_leaf is not None and leaf.next_leaf not in self._nodes:
                issues.append(f"Leaf #{leaf.node_id}: next link to freed node")
                break
            leaf = self._next_leaf(leaf)

        if count != self._entry_count:
            issues.append(f"Leaf chain holds {count} entries, expected {self._entry_count}")
