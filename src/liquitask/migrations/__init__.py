"""
Migration subsystem.

Components:
- registry.py: ordered pure step functions and version comparison
- engine.py: backup-before-mutate runner used by Store.initialize
"""
