"""Function instance registry for context-sensitive closure analysis

Tracks the Function Value instances created for each function syntax
node, keyed by the identity handle of the scope chain they captured.

Architecture:
- The same function source evaluated under the same captured chain maps
  to one instance, analyzed once
- Evaluated under a different captured chain (for example nested inside
  another call context of its enclosing function) it gets a distinct
  instance
- The number of instances is bounded by the distinct enclosing chains
  actually observed
"""

from typing import Callable, Dict, List, Tuple

from typeflow.core.function_value import FnType
from typeflow.core.scope import Scope
from typeflow.core.syntax import Node


class FunctionInstanceRegistry:
    """Registry of function value instances per syntax node

    Usage Example:
        registry = FunctionInstanceRegistry()

        fn, created = registry.get_or_create(
            node, snapshot, lambda: FnType("f", ["x"], snapshot, node)
        )

        # Same node, same snapshot: same instance
        again, created = registry.get_or_create(node, snapshot, factory)
        assert again is fn and not created
    """

    def __init__(self) -> None:
        """Initialize empty registry"""
        self._instances: Dict[Node, Dict[int, FnType]] = {}

    def get_or_create(
        self,
        node: Node,
        snapshot: Scope,
        factory: Callable[[], FnType]
    ) -> Tuple[FnType, bool]:
        """Get the instance of a function node for a captured chain

        Args:
            node: Function syntax node
            snapshot: Captured (catch-stripped) scope chain
            factory: Builds a new instance when none is recorded

        Returns:
            Tuple of (instance, True if it was just created)
        """
        by_scope = self._instances.setdefault(node, {})
        fn = by_scope.get(snapshot.scope_id)
        if fn is not None:
            return fn, False
        fn = factory()
        by_scope[snapshot.scope_id] = fn
        return fn, True

    def lookup(self, node: Node, snapshot: Scope):
        """Get the recorded instance for a node and chain, if any"""
        return self._instances.get(node, {}).get(snapshot.scope_id)

    def instances_for(self, node: Node) -> List[FnType]:
        """Get all instances of a function node

        Args:
            node: Function syntax node

        Returns:
            Instances in creation order (empty if never evaluated)
        """
        return list(self._instances.get(node, {}).values())

    def all_instances(self) -> List[FnType]:
        return [fn for by_scope in self._instances.values() for fn in by_scope.values()]

    def get_statistics(self) -> Dict:
        """Get registry statistics

        Returns:
            Dictionary with statistics about function instances
        """
        instances = self.all_instances()
        return {
            "function_nodes": len(self._instances),
            "total_instances": len(instances),
            "total_environments": sum(len(fn.envs) for fn in instances),
            "max_instances_per_node": max(
                (len(by_scope) for by_scope in self._instances.values()), default=0
            ),
        }

    def print_statistics(self) -> str:
        """Generate formatted statistics string

        Returns:
            Formatted statistics as string
        """
        stats = self.get_statistics()
        lines = ["=== Function Instance Statistics ==="]
        lines.append(f"Function nodes: {stats['function_nodes']}")
        lines.append(f"Total instances: {stats['total_instances']}")
        lines.append(f"Total environments: {stats['total_environments']}")
        lines.append(f"Max instances per node: {stats['max_instances_per_node']}")

        multi = [fns for fns in self._instances.values() if len(fns) > 1]
        if multi:
            lines.append(f"\nContext-sensitive functions ({len(multi)}):")
            for by_scope in multi:
                fn = next(iter(by_scope.values()))
                lines.append(f"  {fn.name}: {len(by_scope)} instances")

        return "\n".join(lines)
