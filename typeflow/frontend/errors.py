"""Frontend errors for typeflow"""


class ParseError(ValueError):
    """Source text could not be parsed into a syntax tree"""
