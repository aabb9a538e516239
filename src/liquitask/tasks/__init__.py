"""
Task subsystem.

Components:
- task_models.py: undo history and move/undo result types
- task_service.py: create/update/delete/move with dependency blocking and undo
"""
