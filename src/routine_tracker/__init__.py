"""
routine_tracker: personal task tracker built around recurring task templates.

Entry point for callers is tasks.task_router.TaskRouter; bootstrap.create_router
wires it to the SQLite file from settings.
"""
