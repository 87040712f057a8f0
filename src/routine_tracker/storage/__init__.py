"""
SQLite persistence.

Components:
- database.py: explicit Database handle, schema + migrations
- task_store.py: `tasks` table (one-off rows, instance mirrors)
- template_store.py: `templates` table, cascading delete
- instance_store.py: `template_instances` table, live instance count
- stats_store.py: `template_stats` table
"""
