"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, TaskStatus, FilterMode)
- task_timer.py: countdown math and mm:ss rendering
- task_filters.py: status filter + text search pipeline
- task_repo.py: SQLite-backed repository with per-owner live snapshots
- task_store.py: read-through cache driven by the repository subscription
- task_ticker.py: one-second repeating sampler for countdown refresh
"""
