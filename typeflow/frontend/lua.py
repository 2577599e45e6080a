"""Lua frontend for typeflow

Parses Lua with luaparser and converts its AST into typeflow syntax
nodes:
- ``local`` statements become declarations hoisted to the enclosing
  function frame
- ``function f()`` assigns a function value to ``f``
- ``obj:m()`` calls and ``function obj:m()`` definitions go through
  member expressions
- Only the first value of a multiple assignment or return is tracked
"""

from typing import Any, List, Optional

from luaparser import ast, astnodes
from luaparser.ast import SyntaxException

from typeflow.core.syntax import (
    ArrayExpression,
    AssignmentExpression,
    Block,
    BinaryExpression,
    CallExpression,
    EmptyStatement,
    ExpressionStatement,
    ForInStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    IfStatement,
    Literal,
    LogicalExpression,
    MemberExpression,
    Node,
    NumericForStatement,
    ObjectExpression,
    Param,
    Program,
    ReturnStatement,
    SequenceExpression,
    UnaryExpression,
    Unsupported,
    VariableDeclaration,
    VariableDeclarator,
    WhileStatement,
    name_function,
)
from typeflow.frontend.errors import ParseError

BINARY_OPERATORS = {
    "AddOp": "+",
    "SubOp": "-",
    "MultOp": "*",
    "FloatDivOp": "/",
    "FloorDivOp": "//",
    "ModOp": "%",
    "ExpoOp": "^",
    "BAndOp": "&",
    "BOrOp": "|",
    "BXorOp": "~",
    "BShiftLOp": "<<",
    "BShiftROp": ">>",
    "LessThanOp": "<",
    "GreaterThanOp": ">",
    "LessOrEqThanOp": "<=",
    "GreaterOrEqThanOp": ">=",
    "EqToOp": "==",
    "NotEqToOp": "~=",
    "Concat": "..",
}

LOGICAL_OPERATORS = {
    "AndLoOp": "and",
    "OrLoOp": "or",
}

UNARY_OPERATORS = {
    "UMinusOp": "-",
    "UBNotOp": "~",
    "ULNotOp": "not",
    "ULengthOP": "#",
}

NO_OP_STATEMENTS = frozenset({"Break", "Goto", "Label", "SemiColon", "Comment"})


class LuaConverter:
    """Converts a luaparser AST into typeflow syntax nodes

    Node classes are handled by ``_convert_<ClassName>`` methods;
    operators are looked up in the operator tables.
    """

    def convert(self, node: astnodes.Node) -> Node:
        """Convert one luaparser node (and its subtree)

        Args:
            node: luaparser AST node

        Returns:
            typeflow syntax node with its span attached when known
        """
        class_name = node.__class__.__name__
        if class_name in BINARY_OPERATORS:
            result = BinaryExpression(
                BINARY_OPERATORS[class_name], self.convert(node.left), self.convert(node.right)
            )
        elif class_name in LOGICAL_OPERATORS:
            result = LogicalExpression(
                LOGICAL_OPERATORS[class_name], self.convert(node.left), self.convert(node.right)
            )
        elif class_name in UNARY_OPERATORS:
            result = UnaryExpression(UNARY_OPERATORS[class_name], self.convert(node.operand))
        elif class_name in NO_OP_STATEMENTS:
            result = EmptyStatement()
        else:
            method = getattr(self, f"_convert_{class_name}", self._convert_unsupported)
            result = method(node)
        return self._span(result, node)

    def _span(self, result: Node, node: Any) -> Node:
        start = getattr(node, "start_char", None)
        stop = getattr(node, "stop_char", None)
        if start is not None and stop is not None and result.start == 0 and result.end == 0:
            result.at(start, stop + 1)
        return result

    # Helpers

    def _convert_all(self, nodes: Any) -> List[Node]:
        if isinstance(nodes, astnodes.Node):
            nodes = [nodes]
        return [self.convert(node) for node in nodes or []]

    def _block(self, node: Optional[astnodes.Node]) -> Block:
        if node is None:
            return Block()
        converted = self.convert(node)
        if isinstance(converted, Block):
            return converted
        return Block([converted]).at(converted.start, converted.end)

    def _params(self, args: List[astnodes.Node]) -> List[Param]:
        params = []
        for arg in args or []:
            if isinstance(arg, astnodes.Name):
                ident = self.convert(arg)
                params.append(Param(ident).at(ident.start, ident.end))
        return params

    def _statement(self, node: Node) -> Node:
        """Expression used as a statement (calls)"""
        if isinstance(node, (CallExpression, SequenceExpression, AssignmentExpression)):
            return ExpressionStatement(node).at(node.start, node.end)
        return node

    def _first_and_rest(self, values: List[Node]) -> Optional[Node]:
        """First value; extra values are still evaluated"""
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return SequenceExpression(values[1:] + values[:1])

    # Program and statements

    def _convert_Chunk(self, node: astnodes.Chunk) -> Program:
        return Program(self._block(node.body).body, language="lua")

    def _convert_Block(self, node: astnodes.Block) -> Block:
        return Block([self._statement(self.convert(stmt)) for stmt in node.body])

    def _convert_Do(self, node: astnodes.Do) -> Block:
        return self._block(node.body)

    def _convert_LocalAssign(self, node: astnodes.LocalAssign) -> VariableDeclaration:
        values = self._convert_all(node.values)
        declarators = []
        for index, target in enumerate(node.targets):
            ident = self.convert(target)
            init = values[index] if index < len(values) else None
            if index == len(node.targets) - 1 and len(values) > len(node.targets):
                init = self._first_and_rest(values[index:])
            declarators.append(
                VariableDeclarator(ident, name_function(ident, init)).at(ident.start, ident.end)
            )
        return VariableDeclaration(declarators, kind="local")

    def _convert_Assign(self, node: astnodes.Assign) -> Node:
        values = self._convert_all(node.values)
        assignments: List[Node] = []
        for index, target in enumerate(node.targets):
            if index >= len(values):
                break
            lhs = self.convert(target)
            rhs = values[index]
            if index == len(node.targets) - 1 and len(values) > len(node.targets):
                rhs = self._first_and_rest(values[index:])
            assignments.append(AssignmentExpression(lhs, name_function(lhs, rhs)))
        if len(assignments) == 1:
            return assignments[0]
        return SequenceExpression(assignments)

    def _convert_LocalFunction(self, node: astnodes.LocalFunction) -> FunctionDeclaration:
        return FunctionDeclaration(self.convert(node.name), self._params(node.args), self._block(node.body))

    def _convert_Function(self, node: astnodes.Function) -> AssignmentExpression:
        target = self.convert(node.name)
        fn = FunctionExpression(self._params(node.args), self._block(node.body))
        if isinstance(target, MemberExpression):
            fn.name = target.property
        return AssignmentExpression(target, name_function(target, fn))

    def _convert_Method(self, node: astnodes.Method) -> AssignmentExpression:
        """``function obj:m(...)`` with the implicit ``self`` parameter"""
        self_param = Param(Identifier("self"))
        fn = FunctionExpression([self_param] + self._params(node.args), self._block(node.body))
        fn.name = node.name.id
        return AssignmentExpression(MemberExpression(self.convert(node.source), node.name.id), fn)

    def _convert_Return(self, node: astnodes.Return) -> ReturnStatement:
        values = self._convert_all(node.values)
        return ReturnStatement(self._first_and_rest(values))

    def _convert_If(self, node: astnodes.If) -> IfStatement:
        alternate = self.convert(node.orelse) if node.orelse is not None else None
        return IfStatement(self.convert(node.test), self._block(node.body), alternate)

    _convert_ElseIf = _convert_If

    def _convert_While(self, node: astnodes.While) -> WhileStatement:
        return WhileStatement(self.convert(node.test), self._block(node.body))

    def _convert_Repeat(self, node: astnodes.Repeat) -> WhileStatement:
        return WhileStatement(self.convert(node.test), self._block(node.body))

    def _convert_Fornum(self, node: astnodes.Fornum) -> NumericForStatement:
        step = self.convert(node.step) if node.step is not None else None
        return NumericForStatement(
            self.convert(node.target),
            self.convert(node.start),
            self.convert(node.stop),
            step,
            self._block(node.body),
        )

    def _convert_Forin(self, node: astnodes.Forin) -> ForInStatement:
        declarators = []
        for target in node.targets:
            ident = self.convert(target)
            declarators.append(VariableDeclarator(ident).at(ident.start, ident.end))
        iterators = self._convert_all(node.iter)
        iterable = iterators[0] if len(iterators) == 1 else SequenceExpression(iterators)
        return ForInStatement(
            [VariableDeclaration(declarators, kind="local")], iterable, self._block(node.body), kind="of"
        )

    # Expressions

    def _convert_Name(self, node: astnodes.Name) -> Identifier:
        return Identifier(node.id)

    def _convert_Nil(self, node: astnodes.Nil) -> Literal:
        return Literal(None)

    def _convert_TrueExpr(self, node: astnodes.TrueExpr) -> Literal:
        return Literal(True)

    def _convert_FalseExpr(self, node: astnodes.FalseExpr) -> Literal:
        return Literal(False)

    def _convert_Number(self, node: astnodes.Number) -> Literal:
        return Literal(node.n)

    def _convert_String(self, node: astnodes.String) -> Literal:
        value = node.s.decode("utf-8", errors="replace") if isinstance(node.s, bytes) else node.s
        return Literal(value)

    def _convert_Index(self, node: astnodes.Index) -> MemberExpression:
        if node.notation == astnodes.IndexNotation.DOT and isinstance(node.idx, astnodes.Name):
            return MemberExpression(self.convert(node.value), node.idx.id)
        return MemberExpression(self.convert(node.value), computed=self.convert(node.idx))

    def _convert_Call(self, node: astnodes.Call) -> CallExpression:
        return CallExpression(self.convert(node.func), self._convert_all(node.args))

    def _convert_Invoke(self, node: astnodes.Invoke) -> CallExpression:
        callee = MemberExpression(self.convert(node.source), node.func.id)
        return CallExpression(callee, self._convert_all(node.args))

    def _convert_AnonymousFunction(self, node: astnodes.AnonymousFunction) -> FunctionExpression:
        return FunctionExpression(self._params(node.args), self._block(node.body))

    def _convert_Table(self, node: astnodes.Table) -> Node:
        values = [self.convert(f.value) for f in node.fields]
        if node.fields and all(isinstance(f.key, astnodes.Number) for f in node.fields) \
                and not any(getattr(f, "between_brackets", False) for f in node.fields):
            return ArrayExpression(values)
        return ObjectExpression(values)

    def _convert_unsupported(self, node: astnodes.Node) -> Unsupported:
        children = []
        for value in vars(node).values():
            if isinstance(value, astnodes.Node):
                children.append(self.convert(value))
            elif isinstance(value, list):
                children.extend(self.convert(v) for v in value if isinstance(v, astnodes.Node))
        return Unsupported(node.__class__.__name__, children)


def parse_lua(source: str) -> Program:
    """Parse Lua source into a typeflow Program

    Args:
        source: Program text

    Returns:
        Program syntax tree

    Raises:
        ParseError: If the source has syntax errors or nests deeper
            than the converter can follow
    """
    try:
        chunk = ast.parse(source)
        return LuaConverter().convert(chunk)
    except SyntaxException as e:
        raise ParseError(f"Lua syntax error: {e}") from e
    except RecursionError as e:
        raise ParseError("Lua source nests too deeply to convert") from e
