"""Function values for typeflow

A Function Value (FnType) is one context-specific instance of a declared
function: its parameters, its body, and the scope chain it captured when
the declaration was evaluated. Each instance owns one environment per
call context it is analyzed under.
"""

from typing import Dict, List, Optional, Tuple

from typeflow.core.scope import Scope, ScopeKind
from typeflow.core.syntax import Node
from typeflow.core.types import AVal

Delta = Tuple[int, ...]


class FnEnv:
    """Environment of a function instance under one call context

    Attributes:
        fn: Owning function value
        delta: Call context (most recent call site first)
        scope: Function frame over the captured chain
        self_aval: Receiver ("this") of the body
        ret: Return channel
        exc: Exception channel
    """

    def __init__(self, fn: "FnType", delta: Delta) -> None:
        self.fn = fn
        self.delta = delta
        self.scope = Scope(parent=fn.sc, kind=ScopeKind.FUNCTION)
        self.self_aval = AVal(f"this({fn.name})")
        self.ret = AVal(f"ret({fn.name})")
        self.exc = AVal(f"exc({fn.name})")
        for name in fn.param_names:
            self.scope.declare(name)

    @property
    def params(self) -> List[AVal]:
        """Abstract values of the parameters, in declaration order"""
        return [self.scope.bindings[name] for name in self.fn.param_names]

    def __repr__(self) -> str:
        return f"FnEnv({self.fn.name!r}, delta={self.delta})"


class FnType:
    """Function value: declared function parameterized by captured scope"""

    def __init__(self, name: Optional[str], param_names: List[str],
                 sc: Scope, node: Node) -> None:
        """Initialize function value

        Args:
            name: Declared name (None for anonymous functions)
            param_names: Ordered parameter names
            sc: Captured scope chain snapshot
            node: Defining syntax node
        """
        self.name = name or "<anonymous>"
        self.param_names = list(param_names)
        self.sc = sc
        self.node = node
        self.envs: Dict[Delta, FnEnv] = {}
        # receiver seen by arrow functions, fixed where they are evaluated
        self.lexical_self: Optional[AVal] = None

    def get_env(self, delta: Delta = ()) -> Tuple[FnEnv, bool]:
        """Get or create the environment for a call context

        Args:
            delta: Call context

        Returns:
            Tuple of (environment, True if it was just created)
        """
        env = self.envs.get(delta)
        if env is not None:
            return env, False
        env = FnEnv(self, delta)
        self.envs[delta] = env
        return env, True

    def describe(self) -> str:
        """Display name such as ``fn f(a, b)``"""
        return f"fn {self.name}({', '.join(self.param_names)})"

    def __repr__(self) -> str:
        return f"FnType({self.describe()!r}, scope_id={self.sc.scope_id})"
