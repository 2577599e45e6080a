"""Constraint solver for typeflow

Brings the abstract value graph to a fixpoint with a worklist:
- Flow edges push a source's full contents into their target
- Declare constraints include a function value and enqueue its target
- Call constraints wire each new function value reaching the callee:
  arguments to parameters, receiver to "this", and the function's
  return and exception channels back to the call site
- Add constraints type a JavaScript ``+`` from its operands

Constraints materialized while solving (call wiring, bodies generated
for new call contexts) are ingested as they appear. Abstract values only
grow and the number of constraints is finite, so the loop terminates.
"""

from collections import deque
from typing import TYPE_CHECKING, Deque, Dict, List, Optional, Set

from typeflow.analyzers.constraints import (
    AddConstraint,
    CallConstraint,
    Constraint,
    ConstraintSet,
    DeclareConstraint,
    FlowConstraint,
)
from typeflow.analyzers.propagation_logger import PropagationKind, PropagationLogger
from typeflow.core.function_value import FnEnv, FnType
from typeflow.core.types import AVal, TypeKind

if TYPE_CHECKING:
    from typeflow.analyzers.constraint_generator import ConstraintGenerator

DEFAULT_MAX_STEPS = 1_000_000

_NUMERIC_OPERANDS = (TypeKind.NUMBER, TypeKind.BOOLEAN)
_STRINGIFIED_OPERANDS = (TypeKind.STRING, TypeKind.OBJECT, TypeKind.ARRAY)


def _names(items) -> List[str]:
    names = []
    for item in items:
        if isinstance(item, TypeKind):
            names.append(item.value)
        else:
            names.append(item.describe())
    return sorted(names)


class ConstraintSolver:
    """Worklist-driven fixpoint solver

    Usage Example:
        solver = ConstraintSolver(constraints)
        converged = solver.solve()
    """

    def __init__(
        self,
        constraints: ConstraintSet,
        generator: Optional["ConstraintGenerator"] = None,
        call_site_sensitivity: int = 0,
        max_steps: int = DEFAULT_MAX_STEPS,
        logger: Optional[PropagationLogger] = None
    ) -> None:
        """Initialize solver

        Args:
            constraints: Constraints of the pass (may grow while solving)
            generator: Generator used to analyze new call contexts
            call_site_sensitivity: Number of call sites kept in a context
                (0 analyzes every function once per instance)
            max_steps: Worklist steps after which solving gives up
            logger: Propagation logger (a quiet one by default)

        Raises:
            ValueError: If the configuration is inconsistent
        """
        if call_site_sensitivity < 0:
            raise ValueError("call_site_sensitivity must be non-negative")
        if call_site_sensitivity > 0 and generator is None:
            raise ValueError("call-site sensitivity requires a constraint generator")
        if max_steps <= 0:
            raise ValueError("max_steps must be positive")

        self.constraints = constraints
        self.generator = generator
        self.call_site_sensitivity = call_site_sensitivity
        self.max_steps = max_steps
        self.logger = logger if logger is not None else PropagationLogger()

        self._edges: Dict[AVal, List[AVal]] = {}
        self._calls: Dict[AVal, List[CallConstraint]] = {}
        self._adds: Dict[AVal, List[AddConstraint]] = {}
        self._wired: Dict[CallConstraint, Set[FnType]] = {}
        self._worklist: Deque[AVal] = deque()
        self._queued: Set[AVal] = set()
        self._cursor = 0
        self.steps = 0
        self.converged = False

    def solve(self) -> bool:
        """Propagate until no abstract value changes

        Returns:
            True if a fixpoint was reached within ``max_steps``
        """
        self.logger.start_step(self.steps)
        self._ingest_new()

        while self._worklist:
            if self.steps >= self.max_steps:
                self.logger.log_warning(
                    f"Propagation did not converge after {self.max_steps} steps; "
                    "results are incomplete."
                )
                self.converged = False
                return False

            aval = self._worklist.popleft()
            self._queued.discard(aval)
            self.steps += 1
            self.logger.start_step(self.steps)

            for target in self._edges.get(aval, []):
                self._propagate(aval, target)
            for call in self._calls.get(aval, []):
                self._wire_call(call)
            for add in self._adds.get(aval, []):
                self._apply_add(add)

            self._ingest_new()

        self.converged = True
        return True

    def pending(self) -> int:
        """Number of values waiting in the worklist"""
        return len(self._worklist)

    def _enqueue(self, aval: AVal) -> None:
        if aval not in self._queued:
            self._queued.add(aval)
            self._worklist.append(aval)

    def _ingest_new(self) -> None:
        """Ingest constraints appended since the last call"""
        while self._cursor < len(self.constraints):
            constraint = self.constraints.constraints[self._cursor]
            self._cursor += 1
            self._ingest(constraint)

    def _ingest(self, constraint: Constraint) -> None:
        if isinstance(constraint, FlowConstraint):
            self._edges.setdefault(constraint.source, []).append(constraint.target)
            self._propagate(constraint.source, constraint.target)
        elif isinstance(constraint, DeclareConstraint):
            if constraint.target.add_fn(constraint.fn):
                self.logger.log_propagation(
                    PropagationKind.DECLARE, constraint.fn.name,
                    constraint.target.origin, [constraint.fn.describe()]
                )
            self._enqueue(constraint.target)
        elif isinstance(constraint, CallConstraint):
            self._calls.setdefault(constraint.callee, []).append(constraint)
            self._wired[constraint] = set()
            self._wire_call(constraint)
        elif isinstance(constraint, AddConstraint):
            for operand in {id(constraint.left): constraint.left,
                            id(constraint.right): constraint.right}.values():
                self._adds.setdefault(operand, []).append(constraint)
            self._apply_add(constraint)
        else:
            raise TypeError(f"Unknown constraint: {constraint!r}")

    def _propagate(self, source: AVal, target: AVal) -> None:
        before = target.snapshot()
        if target.merge(source):
            self.logger.log_propagation(
                PropagationKind.FLOW, source.origin, target.origin,
                _names(target.snapshot() - before)
            )
            self._enqueue(target)

    def _env_for(self, call: CallConstraint, fn: FnType) -> FnEnv:
        """Environment a call reaches in a function value

        Args:
            call: Call constraint
            fn: Function value reaching the callee

        Returns:
            Environment for the call's context
        """
        k = self.call_site_sensitivity
        delta = ((call.site,) + call.delta)[:k] if k > 0 else ()
        if self.generator is None:
            env, created = fn.get_env(delta)
        else:
            env, created = self.generator.ensure_env(fn, delta)
        if created:
            self.logger.log_propagation(
                PropagationKind.CONTEXT_CREATED, fn.name, f"{fn.name}{list(delta)}",
                site=call.site
            )
        return env

    def _wire_call(self, call: CallConstraint) -> None:
        """Materialize flows for function values new to a call site

        Excess arguments are ignored; parameters without an argument
        stay unfed.
        """
        seen = self._wired[call]
        for fn in call.callee.fns:
            if fn in seen:
                continue
            seen.add(fn)
            env = self._env_for(call, fn)
            for arg, param in zip(call.args, env.params):
                self.constraints.flow(arg, param)
            self.constraints.flow(call.self_aval, env.self_aval)
            self.constraints.flow(env.ret, call.ret)
            self.constraints.flow(env.exc, call.exc)
            self.logger.log_propagation(
                PropagationKind.CALL_WIRED, call.callee.origin, fn.describe(), site=call.site
            )

    def _apply_add(self, add: AddConstraint) -> None:
        """String if either side may stringify, number if both may be numeric"""
        left, right = add.left, add.right
        added = []
        if any(side.has_type(kind) for side in (left, right) for kind in _STRINGIFIED_OPERANDS) \
                or left.fns or right.fns:
            if add.result.add_type(TypeKind.STRING):
                added.append(TypeKind.STRING)
        if any(left.has_type(kind) for kind in _NUMERIC_OPERANDS) and \
                any(right.has_type(kind) for kind in _NUMERIC_OPERANDS):
            if add.result.add_type(TypeKind.NUMBER):
                added.append(TypeKind.NUMBER)
        if added:
            self.logger.log_propagation(
                PropagationKind.ADD, f"{left.origin} + {right.origin}",
                add.result.origin, _names(added)
            )
            self._enqueue(add.result)
