"""Tests for the tree model and cons-list helpers."""

from mtt_graph.tree import LIST_KIND, NIL_KIND, TreeNode, cons_list, from_cons_list


class TestTreeNode:
    def test_get_attr(self):
        node = TreeNode(kind="x", attrs=[("a", 1), ("b", None)])
        assert node.get_attr("a") == 1
        assert node.get_attr("b") is None
        assert node.get_attr("c") is None
        assert node.get_attr("c", "dflt") == "dflt"

    def test_has_attr(self):
        node = TreeNode(kind="x", attrs=[("b", None)])
        assert node.has_attr("b")
        assert not node.has_attr("a")

    def test_depth_first(self):
        tree = TreeNode(kind="a", children=[
            TreeNode(kind="b", children=[TreeNode(kind="c")]),
            TreeNode(kind="d"),
        ])
        assert [n.kind for n in tree.depth_first()] == ["a", "b", "c", "d"]

    def test_to_dict_omits_empty_fields(self):
        assert TreeNode(kind="e").to_dict() == {"kind": "e"}

    def test_dict_form(self):
        tree = TreeNode(
            kind="Plant",
            name="p1",
            attrs=[("capacity", 10), ("city", "Oslo")],
            children=[TreeNode(kind="e")],
        )
        data = tree.to_dict()
        assert data == {
            "kind": "Plant",
            "name": "p1",
            "attrs": [{"key": "capacity", "value": 10}, {"key": "city", "value": "Oslo"}],
            "children": [{"kind": "e"}],
        }
        assert TreeNode.from_dict(data) == tree


class TestConsList:
    def test_empty(self):
        assert cons_list([]) == TreeNode(kind=NIL_KIND)
        assert from_cons_list(TreeNode(kind=NIL_KIND)) == []

    def test_shape(self):
        a, b = TreeNode(kind="a"), TreeNode(kind="b")
        lst = cons_list([a, b])
        assert lst.kind == LIST_KIND
        assert lst.children[0] is a
        assert lst.children[1].kind == LIST_KIND
        assert lst.children[1].children[0] is b
        assert lst.children[1].children[1].kind == NIL_KIND

    def test_flatten(self):
        items = [TreeNode(kind=k) for k in "abc"]
        assert from_cons_list(cons_list(items)) == items

    def test_flatten_keeps_improper_tail(self):
        tree = TreeNode(kind=LIST_KIND, children=[TreeNode(kind="a"), TreeNode(kind="GHGReport")])
        assert [n.kind for n in from_cons_list(tree)] == ["a", "GHGReport"]
