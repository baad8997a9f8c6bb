"""
Domain layer for threat report publishing business logic.

This layer contains:
- Data models (threat matches, snapshots, job state, outcomes)
- Business logic (job polling, baseline lookup, diff, report scheduling)
- Result types (explicit success/failure handling)
"""
