"""
Pydantic schema definitions.

The turf and booking models double as the validation step at the record
store boundary: every stored document is parsed into one of them
exactly once.
"""
