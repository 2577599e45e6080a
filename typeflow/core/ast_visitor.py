"""Syntax visitor base class for typeflow

Provides a visitor pattern for traversing typeflow syntax trees.
"""

import dataclasses
from abc import ABC
from typing import Any, List

from typeflow.core.syntax import Node


class SyntaxVisitor(ABC):
    """Base visitor for syntax tree traversal

    Override visit_* methods to handle specific node types. Variants
    without a visit_* method fall back to :meth:`generic_visit`. Extra
    positional arguments given to :meth:`visit` are passed through to
    the visit_* method.
    """

    def visit(self, node: Node, *args: Any) -> Any:
        """Visit a node using double-dispatch pattern

        Args:
            node: Syntax node to visit
            *args: Extra state forwarded to the visit method

        Returns:
            Result from visit method (often None)
        """
        method_name = f"visit_{node.__class__.__name__}"
        method = getattr(self, method_name, self.generic_visit)
        return method(node, *args)

    def generic_visit(self, node: Node, *args: Any) -> Any:
        """Default visitor - visit all child nodes

        Args:
            node: Syntax node
            *args: Extra state forwarded to child visits
        """
        for child in self.get_children(node):
            self.visit(child, *args)
        return None

    @staticmethod
    def get_children(node: Node) -> List[Node]:
        """Get all child nodes of a node in field order

        Args:
            node: Syntax node

        Returns:
            List of child nodes
        """
        children = []
        for f in dataclasses.fields(node):
            value = getattr(node, f.name)
            if isinstance(value, Node):
                children.append(value)
            elif isinstance(value, list):
                children.extend(v for v in value if isinstance(v, Node))
        return children
