"""Tests for syntax nodes and the syntax visitor"""

from typeflow.core.ast_visitor import SyntaxVisitor
from typeflow.core.syntax import (
    BinaryExpression,
    Block,
    ExpressionStatement,
    FunctionExpression,
    Identifier,
    Literal,
    Param,
    Program,
    VariableDeclarator,
    name_function,
)


class NameCollector(SyntaxVisitor):
    def __init__(self):
        self.names = []

    def visit_Identifier(self, node):
        self.names.append(node.name)


class DepthVisitor(SyntaxVisitor):
    def visit_Literal(self, node, depth):
        return depth


class TestSyntaxNodes:
    """Test suite for syntax node basics"""

    def test_identity_equality(self):
        """Test structurally equal nodes stay distinct keys"""
        a, b = Identifier("x"), Identifier("x")
        assert a != b
        assert len({a, b}) == 2

    def test_span(self):
        """Test spans are attached with at()"""
        node = Identifier("x").at(4, 5)
        assert (node.start, node.end) == (4, 5)
        assert node.contains(4)
        assert node.contains(5)
        assert not node.contains(6)

    def test_default_span(self):
        """Test nodes without a span start and end at zero"""
        node = Literal(1)
        assert (node.start, node.end) == (0, 0)

    def test_param_names(self):
        """Test function parameter names"""
        fn = FunctionExpression([Param(Identifier("a")), Param(Identifier("b"))])
        assert fn.param_names == ["a", "b"]

    def test_name_function(self):
        """Test anonymous functions take the name of their binding"""
        fn = FunctionExpression()
        decl = VariableDeclarator(Identifier("f"), name_function(Identifier("f"), fn))
        assert decl.init.name == "f"

    def test_name_function_keeps_own_name(self):
        """Test named function expressions are left alone"""
        fn = FunctionExpression(id=Identifier("g"))
        name_function(Identifier("f"), fn)
        assert fn.name is None


class TestSyntaxVisitor:
    """Test suite for SyntaxVisitor"""

    def test_generic_visit_descends(self):
        """Test variants without a visit method visit their children"""
        program = Program([
            ExpressionStatement(BinaryExpression("+", Identifier("a"), Identifier("b"))),
            Block([ExpressionStatement(Identifier("c"))]),
        ])
        collector = NameCollector()
        collector.visit(program)
        assert collector.names == ["a", "b", "c"]

    def test_extra_arguments_forwarded(self):
        """Test extra visit arguments reach the visit method"""
        assert DepthVisitor().visit(Literal(1), 7) == 7

    def test_get_children_in_field_order(self):
        """Test children follow field order and skip non-nodes"""
        left, right = Identifier("a"), Literal(2)
        node = BinaryExpression("*", left, right)
        assert SyntaxVisitor.get_children(node) == [left, right]
