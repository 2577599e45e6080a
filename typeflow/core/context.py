"""Analysis context for typeflow

Maintains the state of one analysis pass:
- Global scope and the global receiver
- Program-level return and exception channels
- Recorded abstract values per syntax node
- Analysis gap log

Nothing here is shared between passes.
"""

import dataclasses
from dataclasses import dataclass
from typing import Dict, List, Optional

from typeflow.core.analysis_log import AnalysisLog
from typeflow.core.function_value import Delta
from typeflow.core.scope import Scope
from typeflow.core.syntax import Node
from typeflow.core.types import AVal, TypeKind


@dataclass(frozen=True)
class EvalStatus:
    """Ambient state threaded through constraint generation

    Attributes:
        self_aval: Current receiver ("this")
        ret: Return channel of the enclosing function
        exc: Exception channel of the enclosing protected region
        scope: Current scope chain
        delta: Call context the enclosing body is analyzed under
    """
    self_aval: AVal
    ret: AVal
    exc: AVal
    scope: Scope
    delta: Delta = ()

    def changed(self, **changes) -> "EvalStatus":
        """Copy of this status with some fields replaced"""
        return dataclasses.replace(self, **changes)


class AnalysisContext:
    """Context for one analysis pass"""

    def __init__(self, global_scope: Optional[Scope] = None) -> None:
        """Initialize analysis context

        Args:
            global_scope: Initial global frame (a fresh one by default)
        """
        if global_scope is not None and not global_scope.is_global():
            raise ValueError("Initial scope must be a global frame")
        self.global_scope = global_scope if global_scope is not None else Scope()
        self.global_self = AVal("this(global)")
        self.global_self.add_type(TypeKind.OBJECT)
        self.program_ret = AVal("ret(program)")
        self.program_exc = AVal("exc(program)")
        self.analysis_log = AnalysisLog()
        self.node_avals: Dict[Node, List[AVal]] = {}

    def top_status(self) -> EvalStatus:
        """Status for evaluating top-level program code"""
        return EvalStatus(
            self_aval=self.global_self,
            ret=self.program_ret,
            exc=self.program_exc,
            scope=self.global_scope,
        )

    def record(self, node: Node, aval: AVal) -> None:
        """Remember an abstract value computed for a node

        A node evaluated under several call contexts keeps one value per
        context.

        Args:
            node: Syntax node
            aval: Abstract value of the node in the current context
        """
        avals = self.node_avals.setdefault(node, [])
        if not any(existing is aval for existing in avals):
            avals.append(aval)

    def avals_of(self, node: Node) -> List[AVal]:
        """Get all abstract values recorded for a node

        Args:
            node: Syntax node

        Returns:
            Recorded values (empty if the node was never evaluated)
        """
        return list(self.node_avals.get(node, []))
