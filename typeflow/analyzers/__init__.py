"""Analyzers for typeflow

This module contains the passes that run over a syntax tree.

Modules:
- TypeInference: Constraint generation followed by fixpoint solving
- ConstraintGenerator: Converts syntax into a constraint graph
- ConstraintSolver: Worklist propagation with lazy call wiring
- FunctionInstanceRegistry: Function value instances per captured scope
- PropagationLogger: Logs propagation events
- TypeQuery: Point queries over a solved pass
"""

from typeflow.analyzers.type_inference import TypeInference
from typeflow.analyzers.constraint_generator import ConstraintGenerator, InvariantViolation
from typeflow.analyzers.constraints import (
    AddConstraint, CallConstraint, ConstraintSet, DeclareConstraint, FlowConstraint
)
from typeflow.analyzers.solver import ConstraintSolver
from typeflow.analyzers.function_registry import FunctionInstanceRegistry
from typeflow.analyzers.propagation_logger import (
    PropagationLogger, PropagationKind, PropagationRecord
)
from typeflow.analyzers.query import QueryResponse, TypeQuery, answer_request

__all__ = [
    'TypeInference',
    'ConstraintGenerator',
    'InvariantViolation',
    'AddConstraint',
    'CallConstraint',
    'ConstraintSet',
    'DeclareConstraint',
    'FlowConstraint',
    'ConstraintSolver',
    'FunctionInstanceRegistry',
    'PropagationLogger',
    'PropagationKind',
    'PropagationRecord',
    'QueryResponse',
    'TypeQuery',
    'answer_request',
]
