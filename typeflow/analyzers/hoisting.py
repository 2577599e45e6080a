"""Declaration hoisting for typeflow

Collects the names a function body (or program) declares for its own
frame: variable declarations anywhere in the body, function
declarations, and loop counters. Nested function bodies own their
declarations and are not entered. Catch parameters belong to their
catch frame and are not collected.
"""

from typing import Dict, List

from typeflow.core.ast_visitor import SyntaxVisitor
from typeflow.core.syntax import (
    CatchClause,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    Node,
    NumericForStatement,
    VariableDeclarator,
)


class DeclarationCollector(SyntaxVisitor):
    """Collects hoisted declaration names of one body"""

    def __init__(self) -> None:
        self.names: Dict[str, None] = {}

    def _declare(self, node: Node) -> None:
        if isinstance(node, Identifier):
            self.names.setdefault(node.name, None)

    def visit_FunctionDeclaration(self, node: FunctionDeclaration) -> None:
        self._declare(node.id)

    def visit_FunctionExpression(self, node: FunctionExpression) -> None:
        pass

    def visit_VariableDeclarator(self, node: VariableDeclarator) -> None:
        self._declare(node.id)
        if node.init is not None:
            self.visit(node.init)

    def visit_NumericForStatement(self, node: NumericForStatement) -> None:
        self._declare(node.target)
        self.generic_visit(node)

    def visit_CatchClause(self, node: CatchClause) -> None:
        self.visit(node.body)


def collect_declared_names(body: Node) -> List[str]:
    """Names declared directly in a body's own frame

    Args:
        body: Function body or program node

    Returns:
        Declared names in first-declaration order
    """
    collector = DeclarationCollector()
    collector.visit(body)
    return list(collector.names)
