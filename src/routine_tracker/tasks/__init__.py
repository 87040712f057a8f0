"""
Task subsystem.

Components:
- task_models.py: task variants (one-off / permanent / preset) and drafts
- task_router.py: single entry point dispatching operations by task kind
"""
