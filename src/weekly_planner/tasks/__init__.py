"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RecurringTemplate, Priority, creation requests)
- store_base.py / task_store.py / template_store.py: SQLite-backed stores with live updates
- recurrence.py: pure recurrence engine (which instances are missing today)
- retention.py: drop (or purge) instances dated before today on load
- task_sync.py: trigger-driven loop that materializes today's recurring instances
- task_api.py: validated high-level operations used by the console
"""
