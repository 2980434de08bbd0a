"""
Bounded walks over the document tree.

DocumentWalker collects nodes for bulk operations, DocumentTreePrinter
renders a subtree for inspection. Both only read through the provider.
"""

import logging
from itertools import islice

import click

logger = logging.getLogger(__name__)

INDENT = "  "


class DocumentWalker:
    """Collects a root node and its document descendants in pre-order."""

    def __init__(self, provider, root):
        self.provider = provider
        self.root = root

    def walk(self):
        """Yield the root, then each child subtree in stored order."""
        yield self.root
        yield from self._walk_children(self.root)

    def _walk_children(self, node):
        for child in self.provider.get_child_documents(node):
            yield child
            yield from self._walk_children(child)

    def get_nodes(self, limit=0):
        """
        Return the nodes to operate on.

        Args:
            limit (int): maximum number of nodes, root included; 0 for no limit

        Returns:
            list: Node handles in depth-first pre-order
        """
        if limit < 0:
            raise ValueError("limit must not be negative")

        nodes = self.walk()
        if limit:
            # islice stops pulling before the next provider lookup
            nodes = islice(nodes, limit)
        result = list(nodes)
        logger.debug("Collected %d node(s) below %s", len(result), self.root)
        return result


class DocumentTreePrinter:
    """Renders the document tree below a root down to a fixed depth."""

    def __init__(self, provider, root, depth=1):
        if depth < 0:
            raise ValueError("depth must not be negative")
        self.provider = provider
        self.root = root
        self.depth = depth

    def format_node(self, node, level):
        line = f"{INDENT * level}{self.provider.get_path(node)}"
        title = self.provider.get_property(node, "title")
        if title:
            line += f" ({title})"
        return line

    def lines(self):
        result = []
        self._collect(self.root, 0, result)
        return result

    def _collect(self, node, level, result):
        result.append(self.format_node(node, level))
        if level >= self.depth:
            return
        for child in self.provider.get_child_documents(node):
            self._collect(child, level + 1, result)

    def print_tree(self, echo=click.echo):
        for line in self.lines():
            echo(line)
