"""Constraint records for typeflow

Constraints describe how type information must propagate between
abstract values. They are produced by the constraint generator into a
pass-scoped ConstraintSet and consumed by the solver; none is ever
removed.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Union

from typeflow.core.function_value import Delta, FnType
from typeflow.core.types import AVal


@dataclass(eq=False)
class FlowConstraint:
    """Everything that reaches ``source`` also reaches ``target``"""
    source: AVal
    target: AVal


@dataclass(eq=False)
class DeclareConstraint:
    """A function value is included in ``target`` (binding of its name)"""
    fn: FnType
    target: AVal


@dataclass(eq=False)
class CallConstraint:
    """Call site: wires every function value reaching ``callee``

    Attributes:
        callee: Value in callee position
        self_aval: Receiver passed to the callee
        args: Argument values, in call order
        ret: Result of the call expression
        exc: Exception channel of the calling region
        site: Call site handle, one per call node
        delta: Call context the call was generated under
    """
    callee: AVal
    self_aval: AVal
    args: List[AVal]
    ret: AVal
    exc: AVal
    site: int = 0
    delta: Delta = ()


@dataclass(eq=False)
class AddConstraint:
    """Result of a JavaScript ``+`` over two operand values"""
    left: AVal
    right: AVal
    result: AVal


Constraint = Union[FlowConstraint, DeclareConstraint, CallConstraint, AddConstraint]


@dataclass
class ConstraintSet:
    """Append-only list of constraints owned by one analysis pass"""
    constraints: List[Constraint] = field(default_factory=list)

    def add(self, constraint: Constraint) -> Constraint:
        self.constraints.append(constraint)
        return constraint

    def flow(self, source: AVal, target: AVal) -> FlowConstraint:
        """Append a flow constraint from ``source`` to ``target``"""
        return self.add(FlowConstraint(source, target))

    def of_type(self, constraint_type: type) -> List[Constraint]:
        return [c for c in self.constraints if isinstance(c, constraint_type)]

    def __len__(self) -> int:
        return len(self.constraints)

    def __iter__(self) -> Iterator[Constraint]:
        return iter(self.constraints)
