"""Propagation logger for the constraint solver

Logs type propagation along constraint edges with configurable verbosity.
By default only warnings are shown in summaries, but every propagation is
recorded for statistics and debugging.

Design Principles:
- Warnings-only output by default
- Comprehensive statistics tracking
- Clear formatting for debugging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class PropagationKind(Enum):
    """Kind of propagation event"""
    FLOW = "flow"
    DECLARE = "declare"
    CALL_WIRED = "call"
    CONTEXT_CREATED = "context"
    ADD = "add"


@dataclass
class PropagationRecord:
    """Record of a single propagation event

    Attributes:
        kind: Propagation kind
        from_label: Origin of the source value (or function name)
        to_label: Origin of the target value
        added: Type names newly recorded in the target
        step: Worklist step at which the event happened
        site: Call site handle (call wiring only)
    """
    kind: PropagationKind
    from_label: str
    to_label: str
    added: List[str] = field(default_factory=list)
    step: int = 0
    site: Optional[int] = None

    def format(self) -> str:
        """Format propagation record for display

        Returns:
            Formatted string representation
        """
        added = f": {', '.join(self.added)}" if self.added else ""
        site = f" @{self.site}" if self.site is not None else ""
        return (
            f"  {self.kind.value} (step {self.step}){site}: "
            f"{self.from_label or '?'} → {self.to_label or '?'}{added}"
        )


class PropagationLogger:
    """Logs solver propagation decisions

    Usage Example:
        logger = PropagationLogger()

        logger.start_step(1)
        logger.log_propagation(PropagationKind.FLOW, "x", "y", ["number"])

        print(logger.print_summary())
    """

    def __init__(self, verbose: bool = False) -> None:
        """Initialize propagation logger

        Args:
            verbose: If True, summaries include every propagation
        """
        self.verbose = verbose
        self.propagations: List[PropagationRecord] = []
        self.warnings: List[str] = []
        self._step = 0

    def start_step(self, step: int) -> None:
        """Mark the worklist step subsequent events belong to

        Args:
            step: Step number (0 while ingesting constraints)
        """
        self._step = step

    def log_propagation(
        self,
        kind: PropagationKind,
        from_label: str,
        to_label: str,
        added: Optional[List[str]] = None,
        site: Optional[int] = None
    ) -> None:
        """Log a propagation event

        Records all propagations regardless of verbose setting (for
        statistics).

        Args:
            kind: Propagation kind
            from_label: Source description
            to_label: Target description
            added: Type names newly added to the target
            site: Call site handle
        """
        self.propagations.append(PropagationRecord(
            kind=kind,
            from_label=from_label,
            to_label=to_label,
            added=list(added or []),
            step=self._step,
            site=site
        ))

    def log_warning(self, message: str) -> None:
        """Log a warning message

        Args:
            message: Warning message
        """
        self.warnings.append(message)

    def count(self, kind: PropagationKind) -> int:
        return sum(1 for p in self.propagations if p.kind == kind)

    def get_statistics(self) -> Dict:
        """Get propagation statistics

        Returns:
            Dictionary with comprehensive statistics:
            - total_propagations: Total number of events
            - flows: Flow propagations that grew a value
            - declarations: Function values included by declarations
            - call_wirings: Function values wired into call sites
            - contexts: Call contexts created during solving
            - warnings: Number of warnings logged
            - steps: Highest worklist step reached
        """
        return {
            "total_propagations": len(self.propagations),
            "flows": self.count(PropagationKind.FLOW),
            "declarations": self.count(PropagationKind.DECLARE),
            "call_wirings": self.count(PropagationKind.CALL_WIRED),
            "contexts": self.count(PropagationKind.CONTEXT_CREATED),
            "warnings": len(self.warnings),
            "steps": max((p.step for p in self.propagations), default=0)
        }

    def print_summary(self) -> str:
        """Generate formatted summary string

        Shows warnings (if any) and propagation statistics. Verbose mode
        shows detailed propagation records.

        Returns:
            Formatted summary as string
        """
        stats = self.get_statistics()
        lines = ["=== Type Propagation Summary ==="]

        if self.warnings:
            lines.append(f"\n⚠ Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                lines.append(f"  {warning}")
            lines.append("")

        lines.append(f"Total propagations: {stats['total_propagations']}")
        lines.append(f"  Flows: {stats['flows']}")
        lines.append(f"  Declarations: {stats['declarations']}")
        lines.append(f"  Call wirings: {stats['call_wirings']}")
        lines.append(f"  Contexts created: {stats['contexts']}")
        lines.append(f"Worklist steps: {stats['steps']}")

        if self.verbose and self.propagations:
            lines.append("\nDetailed propagation log:")
            for prop in self.propagations:
                lines.append(prop.format())

        return "\n".join(lines)

    def print_propagation_graph(self) -> str:
        """Print simplified propagation graph for debugging

        Shows which values fed which others during solving.

        Returns:
            Graph representation as string
        """
        if not self.propagations:
            return "No propagations recorded."

        lines = ["=== Propagation Graph ==="]

        by_source: Dict[str, List[PropagationRecord]] = {}
        for prop in self.propagations:
            by_source.setdefault(prop.from_label or "?", []).append(prop)

        for source, props in sorted(by_source.items()):
            targets = set(p.to_label or "?" for p in props)
            lines.append(f"{source} → {', '.join(sorted(targets))}")

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all logged propagations and warnings"""
        self.propagations.clear()
        self.warnings.clear()
        self._step = 0
