"""Graph <-> tree codec.

Three policies turn a labeled property graph into a single tree the
transducer can rewrite, and back:

* ``star``: one child per graph node, outgoing edges as ``neighbor``
  wrappers holding a flat copy of the target.
* ``canonical-root``: depth-first expansion from a deterministic root, with
  ``edge`` wrappers and ``ref`` placeholders breaking cycles. Only the part
  of the graph reachable from the root survives.
* ``nested``: nodes grouped into ``type_group`` children by type. Edges are
  not encoded, so decoding never yields any.
"""

from __future__ import annotations

import logging
from enum import Enum

from mtt_graph.errors import EncodingPolicyError
from mtt_graph.graph import Graph, GraphEdge, GraphNode
from mtt_graph.tree import TreeNode

logger = logging.getLogger(__name__)


class EncodingPolicy(str, Enum):
    """Graph-to-tree encoding policies."""

    STAR = "star"
    CANONICAL_ROOT = "canonical-root"
    NESTED = "nested"


GRAPH_KIND = "graph"
NEIGHBOR_KIND = "neighbor"
EDGE_KIND = "edge"
REF_KIND = "ref"
TYPE_GROUP_KIND = "type_group"
DEFAULT_EDGE_LABEL = "related"


def _resolve_policy(policy: EncodingPolicy | str) -> EncodingPolicy:
    try:
        return EncodingPolicy(policy)
    except ValueError:
        raise EncodingPolicyError(f"Codec: unknown encoding policy '{policy}'") from None


def _node_id(tree: TreeNode, count: int) -> str:
    return tree.name if tree.name is not None else f"node_{count}"


class GraphTreeCodec:
    """Encodes graphs as trees and decodes them back, per policy."""

    # ---- Public API ----

    def encode(
        self,
        graph: Graph,
        policy: EncodingPolicy | str = EncodingPolicy.STAR,
        root_id: str | None = None,
    ) -> TreeNode:
        """Encode a graph as a tree.

        ``root_id`` is only used by the canonical-root policy.
        """
        resolved = _resolve_policy(policy)
        logger.debug(
            "encoding %d nodes / %d edges with policy %s",
            len(graph.nodes), len(graph.edges), resolved.value,
        )
        if resolved is EncodingPolicy.STAR:
            return self._encode_star(graph)
        elif resolved is EncodingPolicy.CANONICAL_ROOT:
            return self._encode_canonical_root(graph, root_id)
        else:
            return self._encode_nested(graph)

    def decode(self, tree: TreeNode, policy: EncodingPolicy | str = EncodingPolicy.STAR) -> Graph:
        """Decode a tree produced by encode() with the same policy."""
        resolved = _resolve_policy(policy)
        if resolved is EncodingPolicy.STAR:
            return self._decode_star(tree)
        elif resolved is EncodingPolicy.CANONICAL_ROOT:
            return self._decode_canonical_root(tree)
        else:
            return self._decode_nested(tree)

    # ---- Shared helpers ----

    def _encode_flat(self, node: GraphNode) -> TreeNode:
        """A node's properties as attributes, no children."""
        return TreeNode(kind=node.type, name=node.id, attrs=list(node.properties.items()))

    def _properties(self, tree: TreeNode) -> dict:
        return {k: v for k, v in tree.attrs}

    # ---- Star ----

    def _encode_star(self, graph: Graph) -> TreeNode:
        children: list[TreeNode] = []
        for node in graph.nodes:
            tree = self._encode_flat(node)
            for edge in graph.outgoing(node.id):
                target = graph.node(edge.target_id)
                if target is None:
                    continue
                tree.children.append(TreeNode(
                    kind=NEIGHBOR_KIND,
                    attrs=[
                        ("label", edge.label),
                        ("target_id", target.id),
                        ("target_type", target.type),
                    ],
                    children=[self._encode_flat(target)],
                ))
            children.append(tree)
        return TreeNode(kind=GRAPH_KIND, children=children)

    def _decode_star(self, tree: TreeNode) -> Graph:
        graph = Graph()
        if tree.kind != GRAPH_KIND:
            return graph
        for child in tree.children:
            node_id = _node_id(child, len(graph.nodes))
            graph.nodes.append(GraphNode(id=node_id, type=child.kind, properties=self._properties(child)))
            for neighbor in child.children:
                if neighbor.kind != NEIGHBOR_KIND:
                    continue
                graph.edges.append(GraphEdge(
                    id=f"edge_{len(graph.edges)}",
                    label=neighbor.get_attr("label") or DEFAULT_EDGE_LABEL,
                    source_id=node_id,
                    target_id=neighbor.get_attr("target_id"),
                ))
        return graph

    # ---- Canonical root ----

    def select_root(self, graph: Graph, root_id: str | None = None) -> GraphNode:
        """Pick the traversal origin.

        Caller id if given, else the first node with no incoming edge, else
        (fully cyclic graph) the first node.
        """
        if root_id is not None:
            root = graph.node(root_id)
            if root is None:
                raise EncodingPolicyError(f"Codec: root node '{root_id}' not found")
            return root
        targets = graph.incoming_ids()
        for node in graph.nodes:
            if node.id not in targets:
                return node
        if graph.nodes:
            return graph.nodes[0]
        raise EncodingPolicyError("Codec: cannot find root node in empty graph")

    def _encode_canonical_root(self, graph: Graph, root_id: str | None) -> TreeNode:
        root = self.select_root(graph, root_id)
        return self._encode_subtree(root, graph, set())

    def _encode_subtree(self, node: GraphNode, graph: Graph, path: set[str]) -> TreeNode:
        # Only ancestors on the current path become refs; a node shared by two
        # branches of a DAG is expanded under each of them.
        if node.id in path:
            return TreeNode(kind=REF_KIND, attrs=[("id", node.id)])
        path.add(node.id)

        tree = self._encode_flat(node)
        for edge in graph.outgoing(node.id):
            target = graph.node(edge.target_id)
            if target is None:
                continue
            tree.children.append(TreeNode(
                kind=EDGE_KIND,
                attrs=[("label", edge.label)],
                children=[self._encode_subtree(target, graph, path)],
            ))
        path.discard(node.id)
        return tree

    def _decode_canonical_root(self, tree: TreeNode) -> Graph:
        graph = Graph()
        self._decode_subtree(tree, graph, set())
        return graph

    def _decode_subtree(self, tree: TreeNode, graph: Graph, visited: set[str]) -> str | None:
        """Emit tree's node and its edges; returns its id, or None for a ref."""
        if tree.kind == REF_KIND:
            return None
        node_id = _node_id(tree, len(graph.nodes))
        if node_id in visited:
            return node_id
        visited.add(node_id)
        graph.nodes.append(GraphNode(id=node_id, type=tree.kind, properties=self._properties(tree)))

        for child in tree.children:
            if child.kind != EDGE_KIND or not child.children:
                continue
            target = child.children[0]
            target_id = self._decode_subtree(target, graph, visited)
            if target_id is None:
                continue
            graph.edges.append(GraphEdge(
                id=f"edge_{len(graph.edges)}",
                label=child.get_attr("label") or DEFAULT_EDGE_LABEL,
                source_id=node_id,
                target_id=target_id,
            ))
        return node_id

    # ---- Nested ----

    def _encode_nested(self, graph: Graph) -> TreeNode:
        groups: dict[str, list[GraphNode]] = {}
        for node in graph.nodes:
            groups.setdefault(node.type, []).append(node)
        children = [
            TreeNode(
                kind=TYPE_GROUP_KIND,
                attrs=[("type", node_type)],
                children=[self._encode_flat(n) for n in nodes],
            )
            for node_type, nodes in groups.items()
        ]
        return TreeNode(kind=GRAPH_KIND, children=children)

    def _decode_nested(self, tree: TreeNode) -> Graph:
        graph = Graph()
        if tree.kind != GRAPH_KIND:
            return graph
        for group in tree.children:
            if group.kind != TYPE_GROUP_KIND:
                continue
            for leaf in group.children:
                graph.nodes.append(GraphNode(
                    id=_node_id(leaf, len(graph.nodes)),
                    type=leaf.kind,
                    properties=self._properties(leaf),
                ))
        return graph


_default_codec = GraphTreeCodec()


def encode(
    graph: Graph,
    policy: EncodingPolicy | str = EncodingPolicy.STAR,
    root_id: str | None = None,
) -> TreeNode:
    """Module-level shortcut for GraphTreeCodec().encode()."""
    return _default_codec.encode(graph, policy, root_id)


def decode(tree: TreeNode, policy: EncodingPolicy | str = EncodingPolicy.STAR) -> Graph:
    """Module-level shortcut for GraphTreeCodec().decode()."""
    return _default_codec.decode(tree, policy)
