"""typeflow - flow-based type inference for dynamically typed programs

Converts a program into a graph of abstract values connected by
inclusion constraints and propagates types through it to a fixpoint.
"""

__version__ = "0.1.0"
