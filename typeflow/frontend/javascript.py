"""JavaScript frontend for typeflow

Parses JavaScript with tree-sitter and converts the concrete syntax tree
into typeflow syntax nodes. Spans are converted from UTF-8 byte offsets
to character offsets so that they line up with editor cursor positions.

Constructs without a typeflow variant (classes, switch, destructuring
patterns, template substitutions...) become ``Unsupported`` nodes that
keep their convertible children.
"""

from typing import Callable, List, Optional, Tuple

from tree_sitter import Node as TSNode
from tree_sitter import Parser
from tree_sitter_language_pack import get_language

from typeflow.core.syntax import (
    ArrayExpression,
    AssignmentExpression,
    Block,
    BinaryExpression,
    CallExpression,
    CatchClause,
    ConditionalExpression,
    EmptyStatement,
    ExpressionStatement,
    ForInStatement,
    ForStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    IfStatement,
    Literal,
    LogicalExpression,
    MemberExpression,
    NewExpression,
    Node,
    ObjectExpression,
    Param,
    Program,
    ReturnStatement,
    SequenceExpression,
    ThisExpression,
    ThrowStatement,
    TryStatement,
    UnaryExpression,
    Unsupported,
    UpdateExpression,
    VariableDeclaration,
    VariableDeclarator,
    WhileStatement,
    name_function,
)
from typeflow.frontend.errors import ParseError

LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})
SKIPPED_NODES = frozenset({"comment", "hash_bang_line"})
NO_OP_STATEMENTS = frozenset({
    "empty_statement", "break_statement", "continue_statement", "debugger_statement",
})

_parser: Optional[Parser] = None


def get_parser() -> Parser:
    """Get or create the JavaScript parser"""
    global _parser
    if _parser is None:
        _parser = Parser(get_language("javascript"))
    return _parser


class JavaScriptConverter:
    """Converts a tree-sitter JavaScript tree into typeflow syntax nodes

    Each tree-sitter node type is handled by a ``_convert_<type>``
    method; types without one become ``Unsupported``.
    """

    def __init__(self, source: str) -> None:
        """Initialize converter

        Args:
            source: Program text the tree was parsed from
        """
        self.source = source
        self.source_bytes = source.encode("utf-8")
        self._char_offsets: Optional[List[int]] = None
        if len(self.source_bytes) != len(source):
            self._char_offsets = self._build_char_offsets()

    def _build_char_offsets(self) -> List[int]:
        offsets = []
        for index, char in enumerate(self.source):
            offsets.extend([index] * len(char.encode("utf-8")))
        offsets.append(len(self.source))
        return offsets

    def char_offset(self, byte_offset: int) -> int:
        """Character offset of a UTF-8 byte offset"""
        if self._char_offsets is None:
            return byte_offset
        return self._char_offsets[byte_offset]

    def text(self, node: TSNode) -> str:
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8")

    def convert(self, node: TSNode) -> Node:
        """Convert one tree-sitter node (and its subtree)

        Args:
            node: tree-sitter node

        Returns:
            typeflow syntax node with its span attached
        """
        method: Callable[[TSNode], Node] = getattr(
            self, f"_convert_{node.type}", self._convert_unsupported
        )
        result = method(node)
        # pass-through conversions keep the inner node's span
        if result.start == 0 and result.end == 0:
            result.at(self.char_offset(node.start_byte), self.char_offset(node.end_byte))
        return result

    def convert_program(self, root: TSNode) -> Program:
        return self.convert(root)

    # Helpers

    def _children(self, node: TSNode) -> List[TSNode]:
        return [child for child in node.named_children if child.type not in SKIPPED_NODES]

    def _field(self, node: TSNode, name: str) -> Optional[Node]:
        child = node.child_by_field_name(name)
        if child is None:
            return None
        return self.convert(child)

    def _operator(self, node: TSNode) -> str:
        return self.text(node.child_by_field_name("operator"))

    def _statements(self, node: TSNode) -> List[Node]:
        return [self.convert(child) for child in self._children(node)]

    def _inner_expression(self, node: TSNode) -> Node:
        """Expression held by a wrapper (parentheses, clause, statement)"""
        children = self._children(node)
        if len(children) == 1:
            return self.convert(children[0])
        return SequenceExpression([self.convert(child) for child in children])

    def _as_block(self, node: Optional[Node]) -> Block:
        if node is None:
            return Block()
        if isinstance(node, Block):
            return node
        return Block([node]).at(node.start, node.end)

    def _for_clause(self, node: TSNode, name: str) -> Optional[Node]:
        """Initializer, condition or update of a ``for`` header"""
        part = self._field(node, name)
        if isinstance(part, EmptyStatement):
            return None
        if isinstance(part, ExpressionStatement):
            return part.expression
        return part

    def _params(self, node: TSNode) -> List[Param]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            ident = self.convert(single)
            return [Param(ident).at(ident.start, ident.end)]
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []
        return [self._param(child, index)
                for index, child in enumerate(self._children(params_node))]

    def _param(self, node: TSNode, index: int) -> Param:
        """Plain, defaulted or rest parameter; patterns keep their slot"""
        if node.type == "identifier":
            ident = self.convert(node)
            return Param(ident).at(ident.start, ident.end)
        if node.type == "assignment_pattern":
            left = node.child_by_field_name("left")
            default = self._field(node, "right")
            if left is not None and left.type == "identifier":
                ident = self.convert(left)
                return Param(ident, default).at(
                    self.char_offset(node.start_byte), self.char_offset(node.end_byte)
                )
            return self._pattern_param(node, index, left, default)
        if node.type == "rest_pattern":
            children = self._children(node)
            if children and children[0].type == "identifier":
                ident = self.convert(children[0])
                return Param(ident).at(ident.start, ident.end)
            return self._pattern_param(node, index, children[0] if children else None)
        return self._pattern_param(node, index, node)

    def _pattern_param(self, node: TSNode, index: int, pattern: Optional[TSNode],
                       default: Optional[Node] = None) -> Param:
        start, end = self.char_offset(node.start_byte), self.char_offset(node.end_byte)
        placeholder = Identifier(f"<pattern{index}>").at(start, end)
        converted = self.convert(pattern) if pattern is not None else Unsupported(node.type)
        return Param(placeholder, default, pattern=converted).at(start, end)

    def _function_body(self, node: TSNode) -> Node:
        body = node.child_by_field_name("body")
        if body is None:
            return Block()
        return self.convert(body)

    # Program and statements

    def _convert_program(self, node: TSNode) -> Program:
        return Program(self._statements(node), language="javascript")

    def _convert_statement_block(self, node: TSNode) -> Block:
        return Block(self._statements(node))

    def _convert_expression_statement(self, node: TSNode) -> ExpressionStatement:
        return ExpressionStatement(self._inner_expression(node))

    def _convert_variable_declaration(self, node: TSNode) -> VariableDeclaration:
        return VariableDeclaration(self._declarators(node), kind="var")

    def _convert_lexical_declaration(self, node: TSNode) -> VariableDeclaration:
        kind_node = node.child_by_field_name("kind")
        kind = self.text(kind_node) if kind_node is not None else "let"
        return VariableDeclaration(self._declarators(node), kind=kind)

    def _declarators(self, node: TSNode) -> List[VariableDeclarator]:
        return [self.convert(child) for child in self._children(node)
                if child.type == "variable_declarator"]

    def _convert_variable_declarator(self, node: TSNode) -> VariableDeclarator:
        target = self._field(node, "name")
        return VariableDeclarator(target, name_function(target, self._field(node, "value")))

    def _convert_function_declaration(self, node: TSNode) -> FunctionDeclaration:
        return FunctionDeclaration(
            self._field(node, "name"), self._params(node), self._as_block(self._function_body(node))
        )

    _convert_generator_function_declaration = _convert_function_declaration

    def _convert_function_expression(self, node: TSNode) -> FunctionExpression:
        return FunctionExpression(
            self._params(node), self._as_block(self._function_body(node)), self._field(node, "name")
        )

    _convert_function = _convert_function_expression
    _convert_generator_function = _convert_function_expression

    def _convert_arrow_function(self, node: TSNode) -> FunctionExpression:
        return FunctionExpression(self._params(node), self._function_body(node), is_arrow=True)

    def _convert_method_definition(self, node: TSNode) -> FunctionExpression:
        return FunctionExpression(self._params(node), self._as_block(self._function_body(node)))

    def _convert_return_statement(self, node: TSNode) -> ReturnStatement:
        if not self._children(node):
            return ReturnStatement()
        return ReturnStatement(self._inner_expression(node))

    def _convert_throw_statement(self, node: TSNode) -> ThrowStatement:
        return ThrowStatement(self._inner_expression(node))

    def _convert_if_statement(self, node: TSNode) -> IfStatement:
        return IfStatement(
            self._field(node, "condition"),
            self._field(node, "consequence"),
            self._field(node, "alternative"),
        )

    def _convert_else_clause(self, node: TSNode) -> Node:
        children = self._children(node)
        if not children:
            return EmptyStatement()
        return self.convert(children[0])

    def _convert_while_statement(self, node: TSNode) -> WhileStatement:
        return WhileStatement(self._field(node, "condition"), self._field(node, "body"))

    def _convert_do_statement(self, node: TSNode) -> WhileStatement:
        return WhileStatement(self._field(node, "condition"), self._field(node, "body"))

    def _convert_for_statement(self, node: TSNode) -> ForStatement:
        return ForStatement(
            self._for_clause(node, "initializer"),
            self._for_clause(node, "condition"),
            self._for_clause(node, "increment"),
            self._field(node, "body"),
        )

    def _convert_for_in_statement(self, node: TSNode) -> ForInStatement:
        """``for (k in o)`` and ``for (v of xs)``, optionally declaring"""
        left = self._field(node, "left")
        kind_node = node.child_by_field_name("kind")
        if kind_node is not None and isinstance(left, Identifier):
            declarator = VariableDeclarator(left).at(left.start, left.end)
            left = VariableDeclaration([declarator], kind=self.text(kind_node)).at(
                self.char_offset(kind_node.start_byte), left.end
            )
        operator = node.child_by_field_name("operator")
        kind = self.text(operator) if operator is not None else "in"
        return ForInStatement([left], self._field(node, "right"), self._field(node, "body"), kind=kind)

    def _convert_try_statement(self, node: TSNode) -> TryStatement:
        handler = self._field(node, "handler")
        finalizer = node.child_by_field_name("finalizer")
        return TryStatement(
            self._as_block(self._field(node, "body")),
            handler,
            self._as_block(self._field(finalizer, "body")) if finalizer is not None else None,
        )

    def _convert_catch_clause(self, node: TSNode) -> CatchClause:
        param = self._field(node, "parameter")
        if param is not None and not isinstance(param, Identifier):
            param = None
        return CatchClause(param, self._as_block(self._field(node, "body")))

    def _convert_labeled_statement(self, node: TSNode) -> Node:
        return self._field(node, "body")

    # Expressions

    def _convert_identifier(self, node: TSNode) -> Node:
        name = self.text(node)
        if name == "undefined":
            return Literal(None)
        return Identifier(name)

    _convert_shorthand_property_identifier = _convert_identifier

    def _convert_undefined(self, node: TSNode) -> Literal:
        return Literal(None)

    def _convert_null(self, node: TSNode) -> Literal:
        return Literal(None)

    def _convert_this(self, node: TSNode) -> ThisExpression:
        return ThisExpression()

    def _convert_true(self, node: TSNode) -> Literal:
        return Literal(True)

    def _convert_false(self, node: TSNode) -> Literal:
        return Literal(False)

    def _convert_number(self, node: TSNode) -> Literal:
        return Literal(parse_number(self.text(node)))

    def _convert_string(self, node: TSNode) -> Literal:
        return Literal(self.text(node)[1:-1])

    def _convert_template_string(self, node: TSNode) -> Node:
        substitutions = [child for child in self._children(node)
                         if child.type == "template_substitution"]
        if not substitutions:
            return Literal(self.text(node)[1:-1])
        parts = [self._inner_expression(child) for child in substitutions]
        return BinaryExpression("+", Literal(""), SequenceExpression(parts))

    def _convert_regex(self, node: TSNode) -> Literal:
        pattern = node.child_by_field_name("pattern")
        return Literal(regex=self.text(pattern) if pattern is not None else self.text(node))

    def _convert_parenthesized_expression(self, node: TSNode) -> Node:
        return self._inner_expression(node)

    def _convert_sequence_expression(self, node: TSNode) -> SequenceExpression:
        expressions: List[Node] = []
        for child in self._children(node):
            converted = self.convert(child)
            if isinstance(converted, SequenceExpression):
                expressions.extend(converted.expressions)
            else:
                expressions.append(converted)
        return SequenceExpression(expressions)

    def _convert_assignment_expression(self, node: TSNode) -> AssignmentExpression:
        target = self._field(node, "left")
        return AssignmentExpression(target, name_function(target, self._field(node, "right")))

    def _convert_augmented_assignment_expression(self, node: TSNode) -> AssignmentExpression:
        return AssignmentExpression(
            self._field(node, "left"), self._field(node, "right"), self._operator(node)
        )

    def _convert_binary_expression(self, node: TSNode) -> Node:
        operator = self._operator(node)
        left = self._field(node, "left")
        right = self._field(node, "right")
        if operator in LOGICAL_OPERATORS:
            return LogicalExpression(operator, left, right)
        return BinaryExpression(operator, left, right)

    def _convert_unary_expression(self, node: TSNode) -> UnaryExpression:
        return UnaryExpression(self._operator(node), self._field(node, "argument"))

    def _convert_update_expression(self, node: TSNode) -> UpdateExpression:
        return UpdateExpression(self._operator(node), self._field(node, "argument"))

    def _convert_ternary_expression(self, node: TSNode) -> ConditionalExpression:
        return ConditionalExpression(
            self._field(node, "condition"),
            self._field(node, "consequence"),
            self._field(node, "alternative"),
        )

    def _convert_member_expression(self, node: TSNode) -> MemberExpression:
        prop = node.child_by_field_name("property")
        return MemberExpression(
            self._field(node, "object"), self.text(prop) if prop is not None else None
        )

    def _convert_subscript_expression(self, node: TSNode) -> MemberExpression:
        return MemberExpression(self._field(node, "object"), computed=self._field(node, "index"))

    def _arguments(self, node: TSNode) -> List[Node]:
        args = node.child_by_field_name("arguments")
        if args is None or args.type != "arguments":
            return []
        return [self.convert(child) for child in self._children(args)]

    def _convert_call_expression(self, node: TSNode) -> CallExpression:
        return CallExpression(self._field(node, "function"), self._arguments(node))

    def _convert_new_expression(self, node: TSNode) -> NewExpression:
        return NewExpression(self._field(node, "constructor"), self._arguments(node))

    def _convert_object(self, node: TSNode) -> ObjectExpression:
        values = []
        for child in self._children(node):
            if child.type == "pair":
                values.append(self._field(child, "value"))
            else:
                values.append(self.convert(child))
        return ObjectExpression(values)

    def _convert_array(self, node: TSNode) -> ArrayExpression:
        return ArrayExpression([self.convert(child) for child in self._children(node)])

    def _convert_spread_element(self, node: TSNode) -> Node:
        return self._inner_expression(node)

    def _convert_unsupported(self, node: TSNode) -> Node:
        if node.type in NO_OP_STATEMENTS:
            return EmptyStatement()
        return Unsupported(node.type, [self.convert(child) for child in self._children(node)])


def parse_number(text: str) -> float:
    """Numeric value of a JavaScript number literal

    Args:
        text: Literal source text

    Returns:
        The value (int or float)
    """
    cleaned = text.replace("_", "")
    if cleaned.endswith("n"):
        cleaned = cleaned[:-1]
    lowered = cleaned.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        return int(lowered, 0)
    if len(lowered) > 1 and lowered.startswith("0") and all(c in "01234567" for c in lowered):
        return int(lowered, 8)
    try:
        return int(lowered)
    except ValueError:
        return float(lowered)


def parse_javascript(source: str) -> Program:
    """Parse JavaScript source into a typeflow Program

    Args:
        source: Program text

    Returns:
        Program syntax tree

    Raises:
        ParseError: If the source has syntax errors, is not encodable
            text, or nests deeper than the converter can follow
    """
    try:
        source_bytes = source.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ParseError(f"JavaScript source is not valid text: {e.reason} at offset {e.start}") from e
    tree = get_parser().parse(source_bytes)
    root = tree.root_node
    try:
        if root.has_error:
            line, column = _first_error(root) or (1, 1)
            raise ParseError(f"JavaScript syntax error at line {line}, column {column}")
        return JavaScriptConverter(source).convert_program(root)
    except RecursionError as e:
        raise ParseError("JavaScript source nests too deeply to convert") from e


def _first_error(node: TSNode) -> Optional[Tuple[int, int]]:
    if node.type == "ERROR" or node.is_missing:
        row, column = node.start_point
        return row + 1, column + 1
    for child in node.children:
        if child.has_error:
            found = _first_error(child)
            if found is not None:
                return found
    return None
