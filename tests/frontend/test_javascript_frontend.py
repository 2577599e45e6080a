"""Tests for the tree-sitter JavaScript frontend"""

import pytest

pytest.importorskip("tree_sitter_language_pack")

from typeflow.analyzers.query import answer_request
from typeflow.core.syntax import (
    CallExpression,
    ConditionalExpression,
    ExpressionStatement,
    ForInStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    Literal,
    LogicalExpression,
    MemberExpression,
    TryStatement,
    Unsupported,
    VariableDeclaration,
)
from typeflow.frontend import ParseError, parse_source
from typeflow.frontend.javascript import parse_javascript, parse_number


def first_expression(source):
    stmt = parse_javascript(source).body[0]
    assert isinstance(stmt, ExpressionStatement)
    return stmt.expression


class TestJavaScriptConversion:
    """Test suite for tree-sitter conversion"""

    def test_variable_declaration(self):
        """Test declarations keep their kind and spans"""
        program = parse_javascript("var x = 1;")
        assert program.language == "javascript"
        [decl] = program.body
        assert isinstance(decl, VariableDeclaration)
        assert decl.kind == "var"
        [declarator] = decl.declarations
        assert declarator.id.name == "x"
        assert (declarator.id.start, declarator.id.end) == (4, 5)
        assert isinstance(declarator.init, Literal)
        assert declarator.init.value == 1

    def test_lexical_declaration_kind(self):
        """Test let and const declarations"""
        program = parse_javascript("let a = 1; const b = 'two';")
        assert [d.kind for d in program.body] == ["let", "const"]
        assert program.body[1].declarations[0].init.value == "two"

    def test_function_declaration(self):
        """Test function declarations with parameters"""
        [fn] = parse_javascript("function f(p, q = 2) { return p; }").body
        assert isinstance(fn, FunctionDeclaration)
        assert fn.id.name == "f"
        assert fn.param_names == ["p", "q"]
        assert fn.params[1].default.value == 2

    def test_arrow_function(self):
        """Test arrow functions keep expression bodies and get a name"""
        [decl] = parse_javascript("const g = x => x;").body
        arrow = decl.declarations[0].init
        assert isinstance(arrow, FunctionExpression)
        assert arrow.is_arrow
        assert arrow.param_names == ["x"]
        assert isinstance(arrow.body, Identifier)
        assert arrow.name == "g"

    def test_literals(self):
        """Test literal conversion"""
        assert first_expression("true;").value is True
        assert first_expression("null;").value is None
        assert first_expression("0x10;").value == 16
        assert first_expression("1.5;").value == 1.5
        assert first_expression("/ab+c/g;").regex == "ab+c"
        assert first_expression("`plain`;").value == "plain"

    def test_logical_and_conditional(self):
        """Test logical operators and the conditional operator"""
        logical = first_expression("a && b;")
        assert isinstance(logical, LogicalExpression)
        assert logical.operator == "&&"
        assert isinstance(first_expression("c ? 1 : 'x';"), ConditionalExpression)

    def test_member_and_calls(self):
        """Test member expressions and method calls"""
        member = first_expression("o.p;")
        assert isinstance(member, MemberExpression)
        assert member.property == "p"
        computed = first_expression("o[k];")
        assert isinstance(computed.computed, Identifier)
        method = first_expression("o.m(1, 2);")
        assert isinstance(method, CallExpression)
        assert isinstance(method.callee, MemberExpression)
        assert len(method.arguments) == 2

    def test_parentheses_keep_inner_span(self):
        """Test parenthesized expressions unwrap to their content"""
        inner = first_expression("(x);")
        assert isinstance(inner, Identifier)
        assert (inner.start, inner.end) == (1, 2)

    def test_for_in_and_of(self):
        """Test for-in declares its target and for-of is marked"""
        loop_in, loop_of = parse_javascript("for (const k in o) {} for (v of xs) {}").body
        assert isinstance(loop_in, ForInStatement)
        assert loop_in.kind == "in"
        assert isinstance(loop_in.targets[0], VariableDeclaration)
        assert loop_in.targets[0].kind == "const"
        assert loop_of.kind == "of"
        assert isinstance(loop_of.targets[0], Identifier)

    def test_try_statement(self):
        """Test try/catch/finally"""
        [stmt] = parse_javascript("try { f(); } catch (e) { g(); } finally { h(); }").body
        assert isinstance(stmt, TryStatement)
        assert stmt.handler.param.name == "e"
        assert stmt.finalizer is not None

    def test_unsupported_construct(self):
        """Test constructs without a variant are kept as unsupported"""
        [stmt] = parse_javascript("class A {}").body
        assert isinstance(stmt, Unsupported)
        assert stmt.kind == "class_declaration"

    def test_pattern_parameters_keep_positions(self):
        """Test destructuring parameters hold their slot"""
        [fn] = parse_javascript("function f({a}, [b] = [], c, ...{d}) { return c; }").body
        assert fn.param_names == ["<pattern0>", "<pattern1>", "c", "<pattern3>"]
        assert fn.params[0].pattern is not None
        assert fn.params[1].default is not None
        assert fn.params[2].pattern is None

    def test_deep_nesting_is_parse_error(self):
        """Test chains too deep to convert raise ParseError"""
        source = "var s = " + " + ".join(['"a"'] * 3000) + ";"
        with pytest.raises(ParseError, match="nests too deeply"):
            parse_javascript(source)

    def test_lone_surrogate_is_parse_error(self):
        """Test text that cannot be encoded raises ParseError"""
        with pytest.raises(ParseError, match="not valid text"):
            parse_javascript("var s = '\ud800';")

    def test_character_offsets(self):
        """Test spans count characters, not UTF-8 bytes"""
        program = parse_javascript('var s = "é"; var t = s;')
        ref = program.body[1].declarations[0].init
        assert (ref.start, ref.end) == (21, 22)

    def test_syntax_error(self):
        """Test syntax errors raise ParseError"""
        with pytest.raises(ParseError):
            parse_javascript("var = ;")

    def test_parse_source_dispatch(self):
        """Test language aliases and unknown languages"""
        assert parse_source("1;", "js").language == "javascript"
        with pytest.raises(ValueError, match="Unsupported language"):
            parse_source("1;", "cobol")


class TestParseNumber:
    """Test suite for number literal parsing"""

    @pytest.mark.parametrize("text, expected", [
        ("42", 42),
        ("1_000", 1000),
        ("0b101", 5),
        ("0o17", 15),
        ("017", 15),
        ("019", 19),
        ("1e3", 1000.0),
        (".5", 0.5),
        ("10n", 10),
    ])
    def test_values(self, text, expected):
        """Test numeric literal forms"""
        assert parse_number(text) == expected


class TestAnswerRequest:
    """Test suite for end-to-end JavaScript queries"""

    SOURCE = 'function f(p) { return p; }\nvar a = f(1);\nvar b = f("s");'

    def test_parameter_types(self):
        """Test the parameter collects the types of every call"""
        response = answer_request(self.SOURCE, 11)
        assert response.type_names == ["number", "string"]
        assert response.variable_name == "p"
        assert response.occurrences == [(11, 12), (23, 24)]

    def test_function_members(self):
        """Test function values report their members"""
        response = answer_request(self.SOURCE, 9)
        assert response.type_names == ["fn f(p)"]
        assert "apply" in response.property_names

    def test_call_site_sensitive_request(self):
        """Test call-site sensitivity separates call results"""
        offset = self.SOURCE.index("a =")
        response = answer_request(self.SOURCE, offset, call_site_sensitivity=1)
        assert response.type_names == ["number"]

    def test_parse_failure_is_no_result(self):
        """Test unparsable input yields an empty response"""
        assert answer_request("function (", 3).is_empty()

    def test_pattern_parameter_does_not_shift_arguments(self):
        """Test arguments after a destructuring parameter reach their own slot"""
        source = 'function f({a}, b) { return b; }\nvar r = f({}, "s");'
        response = answer_request(source, source.index("r ="))
        assert response.type_names == ["string"]

    def test_deep_nesting_is_no_result(self):
        """Test a very long chain yields an empty response"""
        source = "var s = " + " + ".join(['"a"'] * 3000) + ";\ns;"
        assert answer_request(source, len(source) - 2).is_empty()

    def test_lone_surrogate_is_no_result(self):
        """Test unencodable text yields an empty response"""
        assert answer_request("var s = '\ud800';", 4).is_empty()
