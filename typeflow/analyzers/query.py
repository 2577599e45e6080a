"""Query layer for typeflow

Read-only projection over a solved analysis pass. Answers point queries
by source offset:
- Types reaching the node under the cursor
- Member names of the function values among them
- The variable under the cursor and every occurrence of its binding
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from typeflow.analyzers.constraint_generator import InvariantViolation
from typeflow.analyzers.type_inference import TypeInference
from typeflow.core.syntax import Identifier, Node
from typeflow.frontend import ParseError, parse_source

# Members every function value carries
FUNCTION_MEMBERS = ("apply", "bind", "call", "length", "name", "prototype")

Span = Tuple[int, int]


@dataclass
class QueryResponse:
    """Answer to one request of the consumer protocol"""
    type_names: List[str] = field(default_factory=list)
    property_names: List[str] = field(default_factory=list)
    variable_name: Optional[str] = None
    occurrences: List[Span] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.type_names or self.property_names
                    or self.variable_name or self.occurrences)

    def to_dict(self) -> Dict[str, Any]:
        """Protocol field names, as sent back to an editor"""
        data = asdict(self)
        return {
            "typeNames": data["type_names"],
            "propertyNames": data["property_names"],
            "variableNameAtPosition": data["variable_name"],
            "occurrences": [{"start": start, "end": end} for start, end in data["occurrences"]],
        }


class TypeQuery:
    """Point queries over a solved TypeInference

    Usage Example:
        inference = TypeInference().infer_program(program)
        query = TypeQuery(inference)
        query.type_names_at(12)
    """

    def __init__(self, inference: TypeInference) -> None:
        self.inference = inference
        self.context = inference.context

    def node_at(self, offset: int) -> Optional[Node]:
        """Find the innermost evaluated node covering an offset

        Args:
            offset: Character offset into the source

        Returns:
            Smallest recorded node whose span contains the offset,
            or None
        """
        best: Optional[Node] = None
        for node in self.context.node_avals:
            if node.end <= node.start or not node.contains(offset):
                continue
            if best is None or (node.end - node.start) < (best.end - best.start):
                best = node
        return best

    def type_names_at(self, offset: int) -> List[str]:
        node = self.node_at(offset)
        if node is None:
            return []
        return self.inference.type_names_of(node)

    def property_names_at(self, offset: int) -> List[str]:
        """Member names of the value under the cursor

        Only function values contribute members; object property
        enumeration is not modeled.
        """
        node = self.node_at(offset)
        if node is None:
            return []
        if any(aval.fns for aval in self.context.avals_of(node)):
            return list(FUNCTION_MEMBERS)
        return []

    def variable_at(self, offset: int) -> Optional[str]:
        node = self.node_at(offset)
        if isinstance(node, Identifier):
            return node.name
        return None

    def occurrences_at(self, offset: int) -> List[Span]:
        """Spans of every identifier sharing the binding under the cursor

        Args:
            offset: Character offset into the source

        Returns:
            Sorted (start, end) spans, empty if no variable is there
        """
        node = self.node_at(offset)
        if not isinstance(node, Identifier):
            return []
        bindings = {id(aval) for aval in self.context.avals_of(node)}
        spans = set()
        for other, avals in self.context.node_avals.items():
            if not isinstance(other, Identifier) or other.name != node.name:
                continue
            if any(id(aval) in bindings for aval in avals):
                spans.add((other.start, other.end))
        return sorted(spans)

    def respond(self, offset: int) -> QueryResponse:
        return QueryResponse(
            type_names=self.type_names_at(offset),
            property_names=self.property_names_at(offset),
            variable_name=self.variable_at(offset),
            occurrences=self.occurrences_at(offset),
        )


def answer_request(
    source: str,
    cursor: int,
    language: str = "javascript",
    call_site_sensitivity: int = 0
) -> QueryResponse:
    """Analyze a source text and answer one cursor query

    Parse failures and invariant violations abort only this request and
    yield an empty response.

    Args:
        source: Program text
        cursor: Character offset of the cursor
        language: "javascript" or "lua"
        call_site_sensitivity: Call sites kept per analysis context

    Returns:
        Query response (empty when there is no result)
    """
    try:
        program = parse_source(source, language)
        inference = TypeInference(call_site_sensitivity=call_site_sensitivity)
        inference.infer_program(program)
    except (ParseError, InvariantViolation):
        return QueryResponse()
    return TypeQuery(inference).respond(cursor)
