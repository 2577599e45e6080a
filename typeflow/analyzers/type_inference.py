"""Type inference pass for typeflow

Runs one complete flow analysis over a program:
- Pass 1: Generate constraints from the syntax tree
- Pass 2: Propagate types to a fixpoint with the worklist solver

Design Principles:
- One TypeInference object owns one pass; nothing is shared across passes
- Generation completes before solving starts
- Invariant violations abort the pass; recoverable gaps are only logged
"""

from typing import List, Optional

from typeflow.analyzers.constraint_generator import ConstraintGenerator, InvariantViolation
from typeflow.analyzers.constraints import ConstraintSet
from typeflow.analyzers.function_registry import FunctionInstanceRegistry
from typeflow.analyzers.propagation_logger import PropagationLogger
from typeflow.analyzers.solver import DEFAULT_MAX_STEPS, ConstraintSolver
from typeflow.core.context import AnalysisContext
from typeflow.core.syntax import Node, Program
from typeflow.core.types import AVal


class TypeInference:
    """Infers the types flowing through every node of a program"""

    def __init__(
        self,
        context: Optional[AnalysisContext] = None,
        call_site_sensitivity: int = 0,
        max_steps: int = DEFAULT_MAX_STEPS,
        verbose: bool = False
    ) -> None:
        """Initialize type inference

        Args:
            context: Analysis context (a fresh one by default)
            call_site_sensitivity: Call sites kept per analysis context
            max_steps: Worklist step bound of the solver
            verbose: Enable verbose propagation summaries
        """
        if call_site_sensitivity < 0:
            raise ValueError("call_site_sensitivity must be non-negative")
        self.context = context if context is not None else AnalysisContext()
        self.call_site_sensitivity = call_site_sensitivity
        self.max_steps = max_steps

        self.constraints = ConstraintSet()
        self.registry = FunctionInstanceRegistry()
        self.propagation_logger = PropagationLogger(verbose=verbose)
        self.generator = ConstraintGenerator(self.context, self.constraints, self.registry)
        self.solver = ConstraintSolver(
            self.constraints,
            generator=self.generator,
            call_site_sensitivity=call_site_sensitivity,
            max_steps=max_steps,
            logger=self.propagation_logger,
        )
        self.program: Optional[Program] = None
        self.generated_constraints = 0

    @property
    def converged(self) -> bool:
        return self.solver.converged

    def infer_program(self, program: Program) -> "TypeInference":
        """Analyze a whole program

        Args:
            program: Program syntax tree

        Returns:
            This object, holding the solved graph

        Raises:
            InvariantViolation: If constraint generation hits an
                internal assumption failure, or the program nests too
                deeply to walk
        """
        self.program = program

        try:
            # Pass 1: constraint generation
            self.generator.generate(program)
            self.generated_constraints = len(self.constraints)

            # Pass 2: propagation to fixpoint (bodies of new call contexts
            # are generated on demand)
            converged = self.solver.solve()
        except RecursionError as e:
            raise InvariantViolation("Program nests too deeply to analyze") from e

        if not converged:
            self.context.analysis_log.log_warning(
                f"Solver stopped after {self.solver.steps} steps without reaching a fixpoint"
            )
        return self

    def avals_of(self, node: Node) -> List[AVal]:
        """Abstract values recorded for a node (one per context)"""
        return self.context.avals_of(node)

    def type_names_of(self, node: Node) -> List[str]:
        """Sorted union of type names over every context of a node

        Args:
            node: Syntax node

        Returns:
            Display names of the types reaching the node
        """
        names = set()
        for aval in self.context.avals_of(node):
            names.update(aval.type_names())
        return sorted(names)

    def binding_of(self, name: str) -> Optional[AVal]:
        """Abstract value of a global variable, if bound"""
        return self.context.global_scope.lookup(name)

    def print_summary(self) -> str:
        """Generate formatted summary of the whole pass

        Returns:
            Formatted summary as string
        """
        lines = ["=== Type Inference Summary ==="]
        lines.append(f"Constraints generated: {self.generated_constraints}")
        lines.append(f"Constraints after solving: {len(self.constraints)}")
        lines.append(f"Converged: {self.converged}")
        lines.append("")
        lines.append(self.registry.print_statistics())
        lines.append("")
        lines.append(self.propagation_logger.print_summary())
        lines.append("")
        lines.append(self.context.analysis_log.print_summary())
        return "\n".join(lines)
