"""Scope chain for typeflow

Models the lexical environments of the analyzed program:
- Each frame maps a variable name to exactly one Abstract Value
- Lookup walks frames innermost-first
- Unresolved names become implicit globals in the outermost frame
- Catch frames are not part of a function's captured closure
"""

import itertools
from enum import Enum
from typing import Dict, Iterator, Optional

from typeflow.core.types import AVal


class ScopeKind(Enum):
    """Kinds of lexical frames"""
    GLOBAL = "global"
    FUNCTION = "function"
    CATCH = "catch"


class Scope:
    """One lexical frame, linked to its enclosing frame

    A frame together with its parents forms a scope chain. Frames carry
    a ``scope_id`` handle, unique within one analysis pass, used to key
    function instances by captured chain.
    """

    def __init__(self, parent: Optional["Scope"] = None,
                 kind: Optional[ScopeKind] = None) -> None:
        """Initialize scope

        Args:
            parent: Enclosing scope (None for the global scope)
            kind: Frame kind (defaults to GLOBAL without a parent,
                FUNCTION otherwise)
        """
        if kind is None:
            kind = ScopeKind.GLOBAL if parent is None else ScopeKind.FUNCTION
        if kind == ScopeKind.GLOBAL and parent is not None:
            raise ValueError("Global scope cannot have a parent")
        self.parent = parent
        self.kind = kind
        self.bindings: Dict[str, AVal] = {}
        self._ids = parent._ids if parent is not None else itertools.count()
        self.scope_id: int = next(self._ids)

    def declare(self, name: str) -> AVal:
        """Bind a name in this frame, reusing an existing binding

        Args:
            name: Variable name

        Returns:
            Abstract value bound to the name in this frame
        """
        aval = self.bindings.get(name)
        if aval is None:
            aval = AVal(name)
            self.bindings[name] = aval
        return aval

    def lookup(self, name: str) -> Optional[AVal]:
        """Look up a name, checking enclosing frames

        Args:
            name: Variable name

        Returns:
            Bound abstract value, or None if no frame binds it
        """
        owner = self.owner_of(name)
        if owner is None:
            return None
        return owner.bindings[name]

    def lookup_local(self, name: str) -> Optional[AVal]:
        return self.bindings.get(name)

    def has(self, name: str) -> bool:
        return name in self.bindings

    def owner_of(self, name: str) -> Optional["Scope"]:
        """Find the innermost frame binding a name

        Args:
            name: Variable name

        Returns:
            Frame that binds the name, or None
        """
        for frame in self.frames():
            if name in frame.bindings:
                return frame
        return None

    def resolve(self, name: str) -> AVal:
        """Resolve a name to its abstract value

        Names no frame binds are implicit globals: a fresh binding is
        created in the outermost frame.

        Args:
            name: Variable name

        Returns:
            Abstract value of the binding
        """
        aval = self.lookup(name)
        if aval is None:
            aval = self.root.declare(name)
        return aval

    def without_catch_frames(self) -> "Scope":
        """Chain equal to this one with leading catch frames elided

        Used when snapshotting a closure, so that catch-bound names are
        not retained in reusable function instances. Returns an existing
        frame, never a copy.

        Returns:
            First non-catch frame of the chain
        """
        current = self
        while current.kind == ScopeKind.CATCH and current.parent is not None:
            current = current.parent
        return current

    def frames(self) -> Iterator["Scope"]:
        """Iterate frames from innermost to outermost"""
        current: Optional[Scope] = self
        while current is not None:
            yield current
            current = current.parent

    @property
    def root(self) -> "Scope":
        """Outermost (global) frame of this chain"""
        current = self
        while current.parent is not None:
            current = current.parent
        return current

    def get_depth(self) -> int:
        """Get nesting depth of this scope

        Returns:
            Depth (0 for global scope)
        """
        return sum(1 for _ in self.frames()) - 1

    def is_global(self) -> bool:
        return self.parent is None

    def __repr__(self) -> str:
        names = ", ".join(sorted(self.bindings))
        return f"Scope(id={self.scope_id}, kind={self.kind.value}, names=[{names}])"
