"""
Schema subsystem.

Components:
- models.py: pydantic records (Task, BoardColumn, AppDataSnapshot, ...)
- validator.py: per-key decoding, encoding and import validation
"""
