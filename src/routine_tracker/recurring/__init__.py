"""
Recurring task template engine.

Components:
- models.py: Template, Instance, Recurrence, TemplateStats
- factory.py: record construction + validation
- scheduler.py: next due date calculation (pure)
- stats.py: completion statistics
- actions.py: business rules for templates and instances
"""
