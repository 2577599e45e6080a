"""Constraint generator for typeflow

Walks a syntax tree once and converts it into a graph of abstract values
connected by constraints, without evaluating the program.

Each expression node yields the abstract value standing for "the value of
this expression"; statements yield nothing. Constructs the analysis
recognizes but does not model (member assignment, method calls, regex
literals, patterns) still evaluate their sub-expressions, emit no
constraint of their own, and are reported to the analysis log.

Function bodies are generated once per (instance, call context): the
declaration context when an instance is created, and further contexts on
demand from the solver when call-site sensitivity is enabled.
"""

from typing import Dict, List, Optional, Tuple

from typeflow.analyzers.constraints import (
    AddConstraint,
    CallConstraint,
    ConstraintSet,
    DeclareConstraint,
)
from typeflow.analyzers.function_registry import FunctionInstanceRegistry
from typeflow.analyzers.hoisting import collect_declared_names
from typeflow.core.analysis_log import GapKind
from typeflow.core.ast_visitor import SyntaxVisitor
from typeflow.core.context import AnalysisContext, EvalStatus
from typeflow.core.function_value import Delta, FnEnv, FnType
from typeflow.core.scope import Scope, ScopeKind
from typeflow.core.syntax import (
    ArrayExpression,
    AssignmentExpression,
    Block,
    BinaryExpression,
    CallExpression,
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
    NumericForStatement,
    ObjectExpression,
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
)
from typeflow.core.types import AVal, TypeKind

LOGICAL_OPERATORS = frozenset({"&&", "||", "??", "and", "or"})
BOOLEAN_OPERATORS = frozenset({
    "==", "!=", "===", "!==", "~=", "<", ">", "<=", ">=", "in", "instanceof",
})
STRING_OPERATORS = frozenset({".."})
BOOLEAN_UNARY = frozenset({"!", "not", "delete"})


class InvariantViolation(RuntimeError):
    """Unrecoverable assumption failure; aborts the analysis pass"""


class ConstraintGenerator(SyntaxVisitor):
    """Generates constraints from a syntax tree

    One generator serves one analysis pass: it appends to a single
    ConstraintSet and records function instances in a single registry.
    """

    def __init__(
        self,
        context: AnalysisContext,
        constraints: Optional[ConstraintSet] = None,
        registry: Optional[FunctionInstanceRegistry] = None
    ) -> None:
        """Initialize constraint generator

        Args:
            context: Analysis context of the pass
            constraints: Accumulator to append to (a fresh one by default)
            registry: Function instance registry (a fresh one by default)
        """
        self.context = context
        self.constraints = constraints if constraints is not None else ConstraintSet()
        self.registry = registry if registry is not None else FunctionInstanceRegistry()
        self.language = "javascript"
        self._declared: Dict[Node, List[str]] = {}
        self._sites: Dict[Node, int] = {}

    def generate(self, program: Program,
                 status: Optional[EvalStatus] = None) -> ConstraintSet:
        """Generate constraints for a whole program

        Args:
            program: Program syntax tree
            status: Top-level status (the context's by default)

        Returns:
            The constraint accumulator

        Raises:
            InvariantViolation: If the tree breaks a generator assumption
        """
        self.language = program.language
        if status is None:
            status = self.context.top_status()
        self.visit(program, status)
        return self.constraints

    def ensure_env(self, fn: FnType, delta: Delta) -> Tuple[FnEnv, bool]:
        """Get the environment of a function for a call context

        A newly created environment gets its body generated at once.

        Args:
            fn: Function value
            delta: Call context

        Returns:
            Tuple of (environment, True if it was just created)
        """
        env, created = fn.get_env(delta)
        if created:
            self._generate_body(fn, env)
        return env, created

    # Helpers

    def _expr(self, node: Node, status: EvalStatus) -> AVal:
        """Evaluate an expression node and record its value"""
        result = self.visit(node, status)
        if not isinstance(result, AVal):
            raise InvariantViolation(
                f"{node.__class__.__name__} used as an expression produced no value"
            )
        self.context.record(node, result)
        return result

    def _any(self, node: Node, status: EvalStatus) -> Optional[AVal]:
        """Evaluate a node that may be a statement or an expression"""
        result = self.visit(node, status)
        if isinstance(result, AVal):
            self.context.record(node, result)
        return result

    def _resolve(self, name: str, status: EvalStatus, node: Optional[Node] = None) -> AVal:
        aval = status.scope.lookup(name)
        if aval is None:
            self.context.analysis_log.log_gap(
                GapKind.IMPLICIT_GLOBAL, name, "unresolved name bound as implicit global",
                node.start if node is not None else None
            )
            aval = status.scope.resolve(name)
        return aval

    def _gap(self, kind: GapKind, node: Node, reason: str, symbol: Optional[str] = None) -> None:
        self.context.analysis_log.log_gap(kind, symbol, reason, node.start)

    def _declared_names(self, body: Node) -> List[str]:
        names = self._declared.get(body)
        if names is None:
            names = collect_declared_names(body)
            self._declared[body] = names
        return names

    def _hoist(self, body: Node, scope: Scope) -> None:
        for name in self._declared_names(body):
            scope.declare(name)

    def _site_of(self, node: Node) -> int:
        return self._sites.setdefault(node, len(self._sites))

    def _declare(self, fn: FnType, target: AVal) -> None:
        # applied at once, the solver re-applies and enqueues
        target.add_fn(fn)
        self.constraints.add(DeclareConstraint(fn, target))

    def _merge(self, origin: str, *sources: AVal) -> AVal:
        res = AVal(origin)
        for source in sources:
            self.constraints.flow(source, res)
        return res

    def _tagged(self, origin: str, kind: TypeKind) -> AVal:
        res = AVal(origin)
        res.add_type(kind)
        return res

    def _combine(self, operator: str, left: AVal, right: AVal) -> AVal:
        """Abstract result of a binary operator over two operand values"""
        if operator in LOGICAL_OPERATORS:
            return self._merge(operator, left, right)
        if operator == "+" and self.language != "lua":
            res = AVal(operator)
            self.constraints.add(AddConstraint(left, right, res))
            return res
        if operator in STRING_OPERATORS:
            return self._tagged(operator, TypeKind.STRING)
        if operator in BOOLEAN_OPERATORS:
            return self._tagged(operator, TypeKind.BOOLEAN)
        return self._tagged(operator, TypeKind.NUMBER)

    def _instantiate(self, node: Node, name: Optional[str], status: EvalStatus) -> FnType:
        """Get or create the function instance for the current chain

        Args:
            node: Function syntax node
            name: Declared name
            status: Status at the point of evaluation

        Returns:
            Function value instance
        """
        sc0 = status.scope.without_catch_frames()
        fn, created = self.registry.get_or_create(
            node, sc0, lambda: FnType(name, node.param_names, sc0, node)
        )
        if created:
            if isinstance(node, FunctionExpression) and node.is_arrow:
                fn.lexical_self = status.self_aval
            self.ensure_env(fn, ())
        return fn

    def _generate_body(self, fn: FnType, env: FnEnv) -> None:
        node = fn.node
        self._hoist(node.body, env.scope)
        for param in node.params:
            if param.pattern is not None:
                self._gap(GapKind.UNSUPPORTED_SYNTAX, param, "parameter pattern not bound")
                continue
            self.context.record(param.id, env.scope.bindings[param.id.name])

        if isinstance(node, FunctionExpression) and node.id is not None:
            own = env.scope.declare(node.id.name)
            self.context.record(node.id, own)
            if node.id.name not in fn.param_names:
                self._declare(fn, own)

        self_aval = fn.lexical_self if fn.lexical_self is not None else env.self_aval
        status = EvalStatus(
            self_aval=self_aval, ret=env.ret, exc=env.exc, scope=env.scope, delta=env.delta
        )
        for param in node.params:
            if param.default is not None:
                default = self._expr(param.default, status)
                self.constraints.flow(default, env.scope.bindings[param.id.name])

        if isinstance(node.body, Block):
            self.visit(node.body, status)
        else:
            self.constraints.flow(self._expr(node.body, status), env.ret)

    def _bind_target(self, target: Node, status: EvalStatus) -> List[AVal]:
        """Values of the variables a loop target assigns to"""
        if isinstance(target, Identifier):
            aval = self._resolve(target.name, status, target)
            self.context.record(target, aval)
            return [aval]
        if isinstance(target, VariableDeclaration):
            avals = []
            for decl in target.declarations:
                self.visit(decl, status)
                if isinstance(decl.id, Identifier):
                    avals.append(self._resolve(decl.id.name, status, decl.id))
            return avals
        self._any(target, status)
        return []

    def generic_visit(self, node: Node, *args) -> None:
        raise InvariantViolation(f"No constraint rule for {node.__class__.__name__}")

    # Statements

    def visit_Program(self, node: Program, status: EvalStatus) -> None:
        self._hoist(node, status.scope)
        for stmt in node.body:
            self._any(stmt, status)

    def visit_Block(self, node: Block, status: EvalStatus) -> None:
        for stmt in node.body:
            self._any(stmt, status)

    def visit_EmptyStatement(self, node: EmptyStatement, status: EvalStatus) -> None:
        return None

    def visit_ExpressionStatement(self, node: ExpressionStatement, status: EvalStatus) -> None:
        self._expr(node.expression, status)

    def visit_VariableDeclaration(self, node: VariableDeclaration, status: EvalStatus) -> None:
        for decl in node.declarations:
            self.visit(decl, status)

    def visit_VariableDeclarator(self, node: VariableDeclarator, status: EvalStatus) -> None:
        """Declared binding; an initializer flows into it

        Without an initializer the binding is only resolved.
        """
        if not isinstance(node.id, Identifier):
            self._gap(GapKind.UNSUPPORTED_SYNTAX, node, "destructuring declaration not tracked")
            if node.init is not None:
                self._expr(node.init, status)
            return
        lhs = self._resolve(node.id.name, status, node.id)
        self.context.record(node.id, lhs)
        if node.init is not None:
            rhs = self._expr(node.init, status)
            self.constraints.flow(rhs, lhs)

    def visit_FunctionDeclaration(self, node: FunctionDeclaration, status: EvalStatus) -> None:
        """Bind the declared name to the function instance

        Nothing usable is returned.
        """
        fn = self._instantiate(node, node.id.name, status)
        lhs = fn.sc.resolve(node.id.name)
        self.context.record(node.id, lhs)
        self._declare(fn, lhs)
        return None

    def visit_ReturnStatement(self, node: ReturnStatement, status: EvalStatus) -> None:
        if node.argument is not None:
            self.constraints.flow(self._expr(node.argument, status), status.ret)

    def visit_ThrowStatement(self, node: ThrowStatement, status: EvalStatus) -> None:
        self.constraints.flow(self._expr(node.argument, status), status.exc)

    def visit_IfStatement(self, node: IfStatement, status: EvalStatus) -> None:
        self._expr(node.test, status)
        self._any(node.consequent, status)
        if node.alternate is not None:
            self._any(node.alternate, status)

    def visit_WhileStatement(self, node: WhileStatement, status: EvalStatus) -> None:
        self._expr(node.test, status)
        self._any(node.body, status)

    def visit_ForStatement(self, node: ForStatement, status: EvalStatus) -> None:
        for part in (node.init, node.test, node.update):
            if part is not None:
                self._any(part, status)
        self._any(node.body, status)

    def visit_ForInStatement(self, node: ForInStatement, status: EvalStatus) -> None:
        """Loop over keys (strings) or values (untracked)"""
        self._expr(node.iterable, status)
        targets: List[AVal] = []
        for target in node.targets:
            targets.extend(self._bind_target(target, status))
        if node.kind == "in":
            key = self._tagged("key", TypeKind.STRING)
            for aval in targets:
                self.constraints.flow(key, aval)
        self._any(node.body, status)

    def visit_NumericForStatement(self, node: NumericForStatement, status: EvalStatus) -> None:
        for part in (node.start_value, node.stop_value, node.step):
            if part is not None:
                self._expr(part, status)
        counter = self._resolve(node.target.name, status, node.target)
        self.context.record(node.target, counter)
        self.constraints.flow(self._tagged("counter", TypeKind.NUMBER), counter)
        self._any(node.body, status)

    def visit_TryStatement(self, node: TryStatement, status: EvalStatus) -> None:
        """Protected block with its own exception channel

        The channel feeds the catch parameter, or the enclosing channel
        when there is no handler.
        """
        try_exc = AVal("exc(try)")
        self.visit(node.block, status.changed(exc=try_exc))
        if node.handler is not None:
            catch_scope = Scope(parent=status.scope, kind=ScopeKind.CATCH)
            param = node.handler.param
            if param is not None:
                bound = catch_scope.declare(param.name)
                self.context.record(param, bound)
                self.constraints.flow(try_exc, bound)
            self.visit(node.handler.body, status.changed(scope=catch_scope))
        else:
            self.constraints.flow(try_exc, status.exc)
        if node.finalizer is not None:
            self.visit(node.finalizer, status)

    # Expressions

    def visit_Identifier(self, node: Identifier, status: EvalStatus) -> AVal:
        return self._resolve(node.name, status, node)

    def visit_ThisExpression(self, node: ThisExpression, status: EvalStatus) -> AVal:
        return status.self_aval

    def visit_Literal(self, node: Literal, status: EvalStatus) -> AVal:
        """Seed a fresh value with the literal's primitive tag

        Regex literals and null stay empty.
        """
        res = AVal("literal")
        if node.regex is not None:
            self._gap(GapKind.REGEX_LITERAL, node, "regular expression type not modeled")
            return res
        value = node.value
        if isinstance(value, bool):
            res.add_type(TypeKind.BOOLEAN)
        elif isinstance(value, (int, float)):
            res.add_type(TypeKind.NUMBER)
        elif isinstance(value, str):
            res.add_type(TypeKind.STRING)
        elif value is None:
            pass
        elif callable(value):
            raise InvariantViolation("Literal node holds a function value")
        else:
            raise InvariantViolation(
                f"Literal node holds a value of unknown kind: {type(value).__name__}"
            )
        return res

    def visit_AssignmentExpression(self, node: AssignmentExpression, status: EvalStatus) -> AVal:
        """Assignment evaluates to the assigned value

        Only simple variable targets receive a flow.
        """
        target = node.target
        if not isinstance(target, Identifier):
            if isinstance(target, MemberExpression):
                self._member_side_effects(target, status)
                self._gap(GapKind.MEMBER_ASSIGNMENT, node, "property flow not tracked",
                          target.property)
            else:
                self._gap(GapKind.UNSUPPORTED_SYNTAX, node, "assignment pattern not tracked")
            return self._expr(node.value, status)

        lhs = self._resolve(target.name, status, target)
        self.context.record(target, lhs)
        rhs = self._expr(node.value, status)
        if node.operator == "=":
            self.constraints.flow(rhs, lhs)
            return rhs
        result = self._combine(node.operator[:-1], lhs, rhs)
        self.constraints.flow(result, lhs)
        return result

    def visit_LogicalExpression(self, node: LogicalExpression, status: EvalStatus) -> AVal:
        left = self._expr(node.left, status)
        right = self._expr(node.right, status)
        return self._merge(node.operator, left, right)

    def visit_ConditionalExpression(self, node: ConditionalExpression, status: EvalStatus) -> AVal:
        self._expr(node.test, status)
        cons = self._expr(node.consequent, status)
        alt = self._expr(node.alternate, status)
        return self._merge("?:", cons, alt)

    def visit_BinaryExpression(self, node: BinaryExpression, status: EvalStatus) -> AVal:
        left = self._expr(node.left, status)
        right = self._expr(node.right, status)
        return self._combine(node.operator, left, right)

    def visit_UnaryExpression(self, node: UnaryExpression, status: EvalStatus) -> AVal:
        self._expr(node.argument, status)
        if node.operator == "typeof":
            return self._tagged("typeof", TypeKind.STRING)
        if node.operator in BOOLEAN_UNARY:
            return self._tagged(node.operator, TypeKind.BOOLEAN)
        if node.operator == "void":
            return AVal("void")
        return self._tagged(node.operator, TypeKind.NUMBER)

    def visit_UpdateExpression(self, node: UpdateExpression, status: EvalStatus) -> AVal:
        target = self._expr(node.argument, status)
        res = self._tagged(node.operator, TypeKind.NUMBER)
        if isinstance(node.argument, Identifier):
            self.constraints.flow(res, target)
        return res

    def visit_SequenceExpression(self, node: SequenceExpression, status: EvalStatus) -> AVal:
        last = AVal("sequence")
        for expr in node.expressions:
            last = self._expr(expr, status)
        return last

    def visit_ObjectExpression(self, node: ObjectExpression, status: EvalStatus) -> AVal:
        for value in node.values:
            self._expr(value, status)
        return self._tagged("object", TypeKind.OBJECT)

    def visit_ArrayExpression(self, node: ArrayExpression, status: EvalStatus) -> AVal:
        for element in node.elements:
            self._expr(element, status)
        return self._tagged("array", TypeKind.ARRAY)

    def visit_FunctionExpression(self, node: FunctionExpression, status: EvalStatus) -> AVal:
        name = node.id.name if node.id is not None else node.name
        fn = self._instantiate(node, name, status)
        res = AVal(fn.name)
        self._declare(fn, res)
        return res

    def visit_MemberExpression(self, node: MemberExpression, status: EvalStatus) -> AVal:
        self._member_side_effects(node, status)
        self._gap(GapKind.PROPERTY_ACCESS, node, "property read not tracked", node.property)
        return AVal("property")

    def _member_side_effects(self, node: MemberExpression, status: EvalStatus) -> None:
        self._expr(node.object, status)
        if node.computed is not None:
            self._expr(node.computed, status)

    def visit_CallExpression(self, node: CallExpression, status: EvalStatus) -> AVal:
        """Call site: one Call constraint wiring callee, receiver and args

        Method calls only evaluate their receiver and arguments.
        """
        if isinstance(node.callee, MemberExpression):
            self._member_side_effects(node.callee, status)
            for arg in node.arguments:
                self._expr(arg, status)
            self._gap(GapKind.METHOD_CALL, node, "method call not wired", node.callee.property)
            return AVal("call")

        callee = self._expr(node.callee, status)
        args = [self._expr(arg, status) for arg in node.arguments]
        res = AVal("call")
        self.constraints.add(CallConstraint(
            callee=callee,
            self_aval=self.context.global_self,
            args=args,
            ret=res,
            exc=status.exc,
            site=self._site_of(node),
            delta=status.delta,
        ))
        return res

    def visit_NewExpression(self, node: NewExpression, status: EvalStatus) -> AVal:
        """Fresh object, also passed as receiver to the constructor"""
        res = self._tagged("new", TypeKind.OBJECT)
        if isinstance(node.callee, MemberExpression):
            self._member_side_effects(node.callee, status)
            for arg in node.arguments:
                self._expr(arg, status)
            self._gap(GapKind.METHOD_CALL, node, "constructor member not wired", node.callee.property)
            return res

        callee = self._expr(node.callee, status)
        args = [self._expr(arg, status) for arg in node.arguments]
        self.constraints.add(CallConstraint(
            callee=callee,
            self_aval=res,
            args=args,
            ret=AVal("ret(new)"),
            exc=status.exc,
            site=self._site_of(node),
            delta=status.delta,
        ))
        return res

    def visit_Unsupported(self, node: Unsupported, status: EvalStatus) -> AVal:
        self._gap(GapKind.UNSUPPORTED_SYNTAX, node, f"{node.kind} not modeled")
        for child in node.children:
            self._any(child, status)
        return AVal(node.kind)
