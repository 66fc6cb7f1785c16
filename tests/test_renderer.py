"""
Tree Renderer Tests
===================
Keys mode, pairs mode, empty trees, rule lines and error classification.
"""

import io

import pytest

from cli.renderer import TreeRenderer, RULE
from indexing.btree import BPlusTree, BTreeConfigError


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def four_tree():
    bt = BPlusTree(3)
    for k in [1, 2, 3, 4]:
        bt.insert(k, k * 10)
    return bt


class TestTreeRenderer:

    def test_keys_mode(self, out, four_tree):
        r = TreeRenderer(out)
        levels = r.render_tree(four_tree)
        assert levels == 2
        assert out.getvalue().splitlines() == [
            "3 || ",
            "1 2 || 3 4 || ",
            RULE,
        ]

    def test_pairs_mode(self, out, four_tree):
        r = TreeRenderer(out)
        r.mode = "pairs"
        r.show_separator = False
        r.render_tree(four_tree)
        assert out.getvalue().splitlines() == [
            "<3>  ",
            "[(1, 10), (2, 20)]  [(3, 30), (4, 40)]  ",
        ]

    def test_pairs_mode_single_leaf_root(self, out):
        bt = BPlusTree(3)
        bt.insert(5, "five")
        r = TreeRenderer(out)
        r.mode = "pairs"
        r.show_separator = False
        r.render_tree(bt)
        assert out.getvalue() == "[(5, five)]  \n"

    def test_empty_tree(self, out):
        r = TreeRenderer(out)
        assert r.render_tree(BPlusTree(3)) == 0
        assert out.getvalue().splitlines() == ["The tree is empty.", RULE]

    def test_emptied_tree_prints_blank_leaf(self, out):
        bt = BPlusTree(3)
        bt.insert(1, 1)
        bt.remove(1)
        r = TreeRenderer(out)
        r.show_separator = False
        r.render_tree(bt)
        assert out.getvalue() == "|| \n"

    def test_value_limit_truncates(self, out):
        bt = BPlusTree(3)
        bt.insert(1, "abcdefghij")
        r = TreeRenderer(out)
        r.mode = "pairs"
        r.show_separator = False
        r.value_limit = 6
        r.render_tree(bt)
        assert "(1, abc...)" in out.getvalue()

    def test_render_operation(self, out):
        TreeRenderer(out).render_operation("INSERTING", 42)
        assert out.getvalue() == "INSERTING: 42\n"

    def test_render_error_classification(self, out):
        r = TreeRenderer(out)
        r.render_error(BTreeConfigError("Order must be at least 3, got 2"))
        r.render_error(AssertionError("broken"))
        r.render_error(OSError("disk"))
        assert out.getvalue().splitlines() == [
            "ConfigError: Order must be at least 3, got 2",
            "InvariantError: broken",
            "Error[OSError]: disk",
        ]

    def test_render_message_skips_empty(self, out):
        r = TreeRenderer(out)
        r.render_message("")
        r.render_message("done")
        assert out.getvalue() == "done\n"
