"""Abstract values for typeflow

An Abstract Value (AVal) is the node of the constraint graph: the set of
type tags and function values that may reach one program point. Values
only ever grow, which bounds propagation to a finite number of steps.
"""

from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Set

if TYPE_CHECKING:
    from typeflow.core.function_value import FnType


class TypeKind(Enum):
    """Concrete type tags an abstract value can hold"""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    OBJECT = "Object"
    ARRAY = "Array"


PRIMITIVE_KINDS = frozenset({TypeKind.NUMBER, TypeKind.STRING, TypeKind.BOOLEAN})


class AVal:
    """Evolving set of types that may reach one program location

    Lattice operations return whether the value changed; the solver
    uses that to decide what to re-enqueue. There is no removal.
    """

    def __init__(self, origin: str = "") -> None:
        """Initialize an empty abstract value

        Args:
            origin: Human-readable description used in propagation logs
        """
        self.origin = origin
        self._types: Set[TypeKind] = set()
        # dict as insertion-ordered set
        self._fns: Dict["FnType", None] = {}

    @property
    def types(self) -> FrozenSet[TypeKind]:
        """Type tags recorded so far"""
        return frozenset(self._types)

    @property
    def fns(self) -> List["FnType"]:
        """Function values recorded so far, in arrival order"""
        return list(self._fns)

    def add_type(self, kind: TypeKind) -> bool:
        """Record a type tag

        Args:
            kind: Type tag to add

        Returns:
            True if the tag was not present before
        """
        if kind in self._types:
            return False
        self._types.add(kind)
        return True

    def add_fn(self, fn: "FnType") -> bool:
        """Record a function value

        Args:
            fn: Function value to add

        Returns:
            True if the function value was not present before
        """
        if fn in self._fns:
            return False
        self._fns[fn] = None
        return True

    def merge(self, other: "AVal") -> bool:
        """Add everything recorded in another value into this one

        Args:
            other: Source value (left unchanged)

        Returns:
            True if this value grew
        """
        if other is self:
            return False
        changed = False
        for kind in other._types:
            changed |= self.add_type(kind)
        for fn in other._fns:
            changed |= self.add_fn(fn)
        return changed

    def has_type(self, kind: TypeKind) -> bool:
        return kind in self._types

    def is_empty(self) -> bool:
        return not self._types and not self._fns

    def snapshot(self) -> FrozenSet[object]:
        """Immutable view of the current contents, for monotonicity checks"""
        return frozenset(self._types) | frozenset(self._fns)

    def type_names(self) -> List[str]:
        """Sorted tag names followed by function descriptions

        Returns:
            Display names of everything recorded
        """
        names = sorted(kind.value for kind in self._types)
        names.extend(fn.describe() for fn in self._fns)
        return names

    def __repr__(self) -> str:
        label = f"{self.origin!r}, " if self.origin else ""
        return f"AVal({label}{self.type_names()})"
