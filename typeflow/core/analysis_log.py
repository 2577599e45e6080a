"""Analysis log for typeflow

Records the recoverable gaps met during constraint generation: implicit
globals and constructs the analysis recognizes but does not model.
None of these abort an analysis pass.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class GapKind(Enum):
    """Kinds of reportable, non-fatal analysis gaps"""
    IMPLICIT_GLOBAL = "implicit_global"
    MEMBER_ASSIGNMENT = "member_assignment"
    METHOD_CALL = "method_call"
    PROPERTY_ACCESS = "property_access"
    REGEX_LITERAL = "regex_literal"
    UNSUPPORTED_SYNTAX = "unsupported_syntax"


@dataclass
class GapRecord:
    """Record of a single gap"""
    kind: GapKind
    symbol: Optional[str]
    reason: str
    offset: Optional[int] = None

    def format(self) -> str:
        symbol_part = f"'{self.symbol}': " if self.symbol else ""
        offset_part = f" (at {self.offset})" if self.offset is not None else ""
        return f"  {self.kind.value} - {symbol_part}{self.reason}{offset_part}"


class AnalysisLog:
    """Logs analysis gaps and provides summaries"""

    def __init__(self) -> None:
        self.gaps: List[GapRecord] = []
        self.warnings: List[str] = []

    def log_gap(self,
                kind: GapKind,
                symbol: Optional[str],
                reason: str,
                offset: Optional[int] = None) -> None:
        """Log a recoverable gap

        Args:
            kind: Kind of gap
            symbol: Symbol name (if applicable)
            reason: What was not modeled
            offset: Source character offset
        """
        self.gaps.append(GapRecord(kind=kind, symbol=symbol, reason=reason, offset=offset))

    def log_warning(self, message: str) -> None:
        """Log a warning message

        Args:
            message: Warning message
        """
        self.warnings.append(message)

    def gaps_of_kind(self, kind: GapKind) -> List[GapRecord]:
        return [gap for gap in self.gaps if gap.kind == kind]

    def get_implicit_globals(self) -> List[str]:
        """Get names that resolved to implicit globals, without repeats

        Returns:
            List of symbol names in first-seen order
        """
        seen: Dict[str, None] = {}
        for gap in self.gaps_of_kind(GapKind.IMPLICIT_GLOBAL):
            if gap.symbol:
                seen.setdefault(gap.symbol, None)
        return list(seen)

    def get_summary(self) -> Dict:
        """Get summary statistics

        Returns:
            Dictionary with gap statistics
        """
        gaps_by_kind: Dict[GapKind, int] = {}
        for gap in self.gaps:
            gaps_by_kind[gap.kind] = gaps_by_kind.get(gap.kind, 0) + 1

        return {
            "total_gaps": len(self.gaps),
            "gaps_by_kind": gaps_by_kind,
            "implicit_globals": self.get_implicit_globals(),
            "total_warnings": len(self.warnings)
        }

    def print_summary(self) -> str:
        """Generate formatted summary string

        Returns:
            Formatted summary as string
        """
        summary = self.get_summary()
        lines = ["=== Analysis Gaps ==="]
        lines.append(f"Total gaps: {summary['total_gaps']}")

        if summary['gaps_by_kind']:
            lines.append("Gaps by kind:")
            for kind, count in summary['gaps_by_kind'].items():
                lines.append(f"  {kind.value}: {count}")
            lines.append("")

        if summary['implicit_globals']:
            lines.append(f"Implicit globals: {', '.join(summary['implicit_globals'])}")
            lines.append("")

        if self.gaps:
            lines.append("Gap details (top 10):")
            for gap in self.gaps[:10]:
                lines.append(gap.format())
            lines.append("")

        lines.append(f"Warnings: {summary['total_warnings']}")
        for warning in self.warnings:
            lines.append(f"  {warning}")

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all logged data"""
        self.gaps.clear()
        self.warnings.clear()
