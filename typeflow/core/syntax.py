"""Syntax tree for typeflow

Language-neutral tagged union of syntax node variants. Frontends
(JavaScript via tree-sitter, Lua via luaparser) build these nodes; the
constraint generator consumes them through one visit method per variant.

Nodes compare and hash by identity so that they can key the analysis
tables (recorded Abstract Values, function instances).
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


class Node:
    """Base class of all syntax nodes

    Source spans are character offsets, ``start`` inclusive and ``end``
    exclusive. Frontends set them with :meth:`at`.
    """

    start: int = 0
    end: int = 0

    def at(self, start: int, end: int) -> "Node":
        """Attach a source span and return the node itself

        Args:
            start: Start character offset
            end: End character offset (exclusive)

        Returns:
            This node
        """
        self.start = start
        self.end = end
        return self

    def contains(self, offset: int) -> bool:
        """Check if a character offset lies within this node's span"""
        return self.start <= offset <= self.end


# Program structure

@dataclass(eq=False)
class Program(Node):
    body: List[Node] = field(default_factory=list)
    language: str = "javascript"


@dataclass(eq=False)
class Block(Node):
    body: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class EmptyStatement(Node):
    pass


@dataclass(eq=False)
class ExpressionStatement(Node):
    expression: Node


# Declarations

@dataclass(eq=False)
class Identifier(Node):
    name: str


@dataclass(eq=False)
class VariableDeclarator(Node):
    id: Node
    init: Optional[Node] = None


@dataclass(eq=False)
class VariableDeclaration(Node):
    declarations: List[VariableDeclarator] = field(default_factory=list)
    kind: str = "var"


@dataclass(eq=False)
class Param(Node):
    """Formal parameter

    A destructuring parameter keeps its position under a placeholder
    name that no identifier can spell; the pattern itself is kept in
    ``pattern`` and binds nothing.
    """
    id: Identifier
    default: Optional[Node] = None
    pattern: Optional[Node] = None


@dataclass(eq=False)
class FunctionDeclaration(Node):
    id: Identifier
    params: List[Param] = field(default_factory=list)
    body: Block = field(default_factory=Block)

    @property
    def param_names(self) -> List[str]:
        return [p.id.name for p in self.params]


@dataclass(eq=False)
class FunctionExpression(Node):
    """Anonymous, named or arrow function in expression position

    When ``body`` is not a :class:`Block` the function is an
    expression-bodied arrow whose body value is its return value.
    ``name`` is the display name inferred from the binding an anonymous
    function is assigned to; unlike ``id`` it binds nothing.
    """
    params: List[Param] = field(default_factory=list)
    body: Node = field(default_factory=Block)
    id: Optional[Identifier] = None
    is_arrow: bool = False
    name: Optional[str] = None

    @property
    def param_names(self) -> List[str]:
        return [p.id.name for p in self.params]


# Statements

@dataclass(eq=False)
class ReturnStatement(Node):
    argument: Optional[Node] = None


@dataclass(eq=False)
class ThrowStatement(Node):
    argument: Node


@dataclass(eq=False)
class IfStatement(Node):
    test: Node
    consequent: Node
    alternate: Optional[Node] = None


@dataclass(eq=False)
class WhileStatement(Node):
    """``while`` and ``do ... while`` (Lua ``repeat ... until``) loops"""
    test: Node
    body: Node


@dataclass(eq=False)
class ForStatement(Node):
    init: Optional[Node] = None
    test: Optional[Node] = None
    update: Optional[Node] = None
    body: Node = field(default_factory=Block)


@dataclass(eq=False)
class ForInStatement(Node):
    """Iteration over keys (``in``) or values (``of``)

    JavaScript loops have one target; Lua generic ``for`` may have many.
    """
    targets: List[Node]
    iterable: Node
    body: Node
    kind: str = "in"


@dataclass(eq=False)
class NumericForStatement(Node):
    target: Identifier
    start_value: Node
    stop_value: Node
    step: Optional[Node] = None
    body: Node = field(default_factory=Block)


@dataclass(eq=False)
class CatchClause(Node):
    param: Optional[Identifier] = None
    body: Block = field(default_factory=Block)


@dataclass(eq=False)
class TryStatement(Node):
    block: Block
    handler: Optional[CatchClause] = None
    finalizer: Optional[Block] = None


# Expressions

@dataclass(eq=False)
class ThisExpression(Node):
    pass


@dataclass(eq=False)
class Literal(Node):
    """Primitive literal; ``regex`` holds the pattern of a regex literal"""
    value: Any = None
    regex: Optional[str] = None


@dataclass(eq=False)
class AssignmentExpression(Node):
    target: Node
    value: Node
    operator: str = "="


@dataclass(eq=False)
class LogicalExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass(eq=False)
class ConditionalExpression(Node):
    test: Node
    consequent: Node
    alternate: Node


@dataclass(eq=False)
class BinaryExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass(eq=False)
class UnaryExpression(Node):
    operator: str
    argument: Node


@dataclass(eq=False)
class UpdateExpression(Node):
    operator: str
    argument: Node


@dataclass(eq=False)
class SequenceExpression(Node):
    expressions: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class MemberExpression(Node):
    """Property access; ``computed`` holds the key expression of ``o[k]``"""
    object: Node
    property: Optional[str] = None
    computed: Optional[Node] = None


@dataclass(eq=False)
class CallExpression(Node):
    callee: Node
    arguments: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class NewExpression(Node):
    callee: Node
    arguments: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class ObjectExpression(Node):
    values: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class ArrayExpression(Node):
    elements: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class Unsupported(Node):
    """Construct the analysis does not model (patterns, classes, errors)"""
    kind: str
    children: List[Node] = field(default_factory=list)


def name_function(target: Optional[Node], value: Optional[Node]) -> Optional[Node]:
    """Give an anonymous function the name of the variable it is bound to

    Args:
        target: Assignment or declaration target
        value: Assigned value

    Returns:
        The value, unchanged apart from its display name
    """
    if isinstance(value, FunctionExpression) and value.id is None and value.name is None \
            and isinstance(target, Identifier):
        value.name = target.name
    return value
