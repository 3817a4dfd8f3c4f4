"""Geometry layer.

Validation, union/merge, simplification and measurement of revealed-area
geometry.  Everything in this package is pure: no I/O, no shared state.
"""
