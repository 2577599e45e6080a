"""Core data model for typeflow: syntax, abstract values, scopes, function values"""
