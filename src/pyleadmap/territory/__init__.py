"""Territory overlays.

Polygon acquisition (freehand draw or postal-code lookup), ring
validation, and reconciliation of territories with the persistence
backend.
"""
