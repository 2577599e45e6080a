"""Tests for constraint generation

Test Coverage:
- Literal typing and invariant violations
- Implicit globals and graceful degradation of unmodeled constructs
- Function instantiation and catch-frame stripping
- Call constraints and call site handles
"""

from dataclasses import dataclass

import pytest

from typeflow.analyzers.constraint_generator import ConstraintGenerator, InvariantViolation
from typeflow.analyzers.constraints import CallConstraint, DeclareConstraint, FlowConstraint
from typeflow.core.analysis_log import GapKind
from typeflow.core.context import AnalysisContext
from typeflow.core.scope import ScopeKind
from typeflow.core.syntax import (
    AssignmentExpression,
    Block,
    CallExpression,
    CatchClause,
    ExpressionStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    Literal,
    MemberExpression,
    Node,
    Param,
    Program,
    ReturnStatement,
    ThrowStatement,
    TryStatement,
    Unsupported,
    VariableDeclaration,
    VariableDeclarator,
)
from typeflow.core.types import TypeKind


@dataclass(eq=False)
class Mystery(Node):
    pass


def var(name, init=None):
    return VariableDeclaration([VariableDeclarator(Identifier(name), init)])


def expr(node):
    return ExpressionStatement(node)


def generate(*statements):
    context = AnalysisContext()
    generator = ConstraintGenerator(context)
    generator.generate(Program(list(statements)))
    return context, generator


class TestLiterals:
    """Test suite for literal typing"""

    @pytest.mark.parametrize("value, expected", [
        (5, {TypeKind.NUMBER}),
        (2.5, {TypeKind.NUMBER}),
        ("a", {TypeKind.STRING}),
        (True, {TypeKind.BOOLEAN}),
        (False, {TypeKind.BOOLEAN}),
        (None, set()),
    ])
    def test_literal_types(self, value, expected):
        """Test each primitive literal seeds its own tag"""
        literal = Literal(value)
        context, _ = generate(expr(literal))
        [aval] = context.avals_of(literal)
        assert aval.types == expected

    def test_regex_literal_is_empty(self):
        """Test regex literals yield an empty value and log a gap"""
        literal = Literal(regex="a+")
        context, _ = generate(expr(literal))
        [aval] = context.avals_of(literal)
        assert aval.is_empty()
        assert len(context.analysis_log.gaps_of_kind(GapKind.REGEX_LITERAL)) == 1

    def test_function_valued_literal_raises(self):
        """Test a literal holding a function aborts the pass"""
        with pytest.raises(InvariantViolation):
            generate(expr(Literal(lambda: None)))

    def test_unknown_literal_kind_raises(self):
        """Test a literal holding an unexpected object aborts the pass"""
        with pytest.raises(InvariantViolation):
            generate(expr(Literal(object())))


class TestNames:
    """Test suite for name resolution during generation"""

    def test_declaration_emits_flow(self):
        """Test an initializer flows into the declared binding"""
        literal = Literal(1)
        context, generator = generate(var("x", literal))
        x = context.global_scope.lookup("x")
        [aval] = context.avals_of(literal)
        flows = generator.constraints.of_type(FlowConstraint)
        assert any(c.source is aval and c.target is x for c in flows)

    def test_same_name_same_value(self):
        """Test every reference to a name shares one value"""
        first, second = Identifier("x"), Identifier("x")
        context, _ = generate(var("x"), expr(first), expr(second))
        assert context.avals_of(first)[0] is context.avals_of(second)[0]

    def test_unresolved_name_is_implicit_global(self):
        """Test unknown names become globals and are reported"""
        ref = Identifier("g").at(3, 4)
        context, _ = generate(expr(ref))
        assert context.global_scope.lookup("g") is context.avals_of(ref)[0]
        [gap] = context.analysis_log.gaps_of_kind(GapKind.IMPLICIT_GLOBAL)
        assert gap.symbol == "g"
        assert gap.offset == 3

    def test_unknown_variant_raises(self):
        """Test a node without a constraint rule aborts the pass"""
        with pytest.raises(InvariantViolation):
            generate(expr(Mystery()))


class TestDegradation:
    """Test suite for constructs recognized but not modeled"""

    def test_member_assignment_keeps_side_effects(self):
        """Test member assignment evaluates its parts without flowing"""
        call = CallExpression(Identifier("make"))
        target = MemberExpression(Identifier("o"), "p")
        context, generator = generate(var("o"), expr(AssignmentExpression(target, call)))

        assert len(generator.constraints.of_type(CallConstraint)) == 1
        [gap] = context.analysis_log.gaps_of_kind(GapKind.MEMBER_ASSIGNMENT)
        assert gap.symbol == "p"
        o = context.global_scope.lookup("o")
        assert not any(c.target is o for c in generator.constraints.of_type(FlowConstraint))

    def test_method_call_evaluates_arguments_only(self):
        """Test method calls wire nothing but evaluate their arguments"""
        inner = CallExpression(Identifier("g"), [Literal(1)])
        method = CallExpression(MemberExpression(Identifier("o"), "m"), [inner])
        context, generator = generate(expr(method))

        calls = generator.constraints.of_type(CallConstraint)
        assert len(calls) == 1
        assert calls[0].callee is context.global_scope.lookup("g")
        assert len(context.analysis_log.gaps_of_kind(GapKind.METHOD_CALL)) == 1

    def test_property_read_is_empty(self):
        """Test property reads yield an empty value"""
        member = MemberExpression(Identifier("o"), "p")
        context, _ = generate(var("o"), expr(member))
        assert context.avals_of(member)[0].is_empty()
        assert len(context.analysis_log.gaps_of_kind(GapKind.PROPERTY_ACCESS)) == 1

    def test_unsupported_evaluates_children(self):
        """Test unsupported constructs still evaluate their children"""
        call = CallExpression(Identifier("f"))
        node = Unsupported("class_declaration", [call])
        context, generator = generate(expr(node))
        assert context.avals_of(node)[0].is_empty()
        assert len(generator.constraints.of_type(CallConstraint)) == 1
        [gap] = context.analysis_log.gaps_of_kind(GapKind.UNSUPPORTED_SYNTAX)
        assert "class_declaration" in gap.reason


class TestFunctions:
    """Test suite for function instantiation"""

    def test_declaration_binds_function_value(self):
        """Test a declaration includes its function value in its name"""
        decl = FunctionDeclaration(Identifier("f"), [Param(Identifier("p"))], Block())
        context, generator = generate(decl)
        [fn] = generator.registry.instances_for(decl)
        assert context.global_scope.lookup("f").fns == [fn]
        assert len(generator.constraints.of_type(DeclareConstraint)) == 1
        assert () in fn.envs

    def test_body_generated_in_declaration_context(self):
        """Test the body is generated once when the instance is created"""
        ret = ReturnStatement(Identifier("p"))
        decl = FunctionDeclaration(Identifier("f"), [Param(Identifier("p"))], Block([ret]))
        _, generator = generate(decl)
        [fn] = generator.registry.instances_for(decl)
        env = fn.envs[()]
        flows = generator.constraints.of_type(FlowConstraint)
        assert any(c.source is env.params[0] and c.target is env.ret for c in flows)

    def test_same_chain_reuses_instance(self):
        """Test re-evaluating under the same chain reuses the instance"""
        fn_expr = FunctionExpression()
        context = AnalysisContext()
        generator = ConstraintGenerator(context)
        generator.generate(Program([expr(fn_expr)]))
        generator.generate(Program([expr(fn_expr)]))
        assert len(generator.registry.instances_for(fn_expr)) == 1

    def test_catch_frames_not_captured(self):
        """Test functions created in a catch block capture the outer chain"""
        fn_expr = FunctionExpression()
        handler = CatchClause(Identifier("e"), Block([expr(fn_expr)]))
        context, generator = generate(TryStatement(Block(), handler))
        [fn] = generator.registry.instances_for(fn_expr)
        assert fn.sc is context.global_scope
        assert fn.sc.kind != ScopeKind.CATCH

    def test_throw_feeds_catch_parameter_directly(self):
        """Test a throw in a try block flows into the catch parameter"""
        param = Identifier("e")
        thrown = Literal("boom")
        try_stmt = TryStatement(Block([ThrowStatement(thrown)]), CatchClause(param, Block()))
        context, generator = generate(try_stmt)
        [bound] = context.avals_of(param)
        [value] = context.avals_of(thrown)
        flows = generator.constraints.of_type(FlowConstraint)
        sources = [c.source for c in flows if c.target is bound]
        assert len(sources) == 1
        assert any(c.source is value and c.target is sources[0] for c in flows)


class TestCalls:
    """Test suite for call constraints"""

    def test_call_constraint_fields(self):
        """Test a plain call records callee, arguments and receiver"""
        arg = Literal(1)
        call = CallExpression(Identifier("f"), [arg])
        context, generator = generate(expr(call))
        [constraint] = generator.constraints.of_type(CallConstraint)
        assert constraint.callee is context.global_scope.lookup("f")
        assert constraint.args == context.avals_of(arg)
        assert constraint.ret is context.avals_of(call)[0]
        assert constraint.self_aval is context.global_self
        assert constraint.exc is context.program_exc
        assert constraint.delta == ()

    def test_distinct_sites(self):
        """Test each call node gets its own site handle"""
        _, generator = generate(
            expr(CallExpression(Identifier("f"))), expr(CallExpression(Identifier("f")))
        )
        sites = [c.site for c in generator.constraints.of_type(CallConstraint)]
        assert len(set(sites)) == 2
