"""State/store layer.

This package is the single source of truth for how snapshots, pushed
events and mutation results are merged into the per-identity view of
conversations, messages and notifications.
"""
