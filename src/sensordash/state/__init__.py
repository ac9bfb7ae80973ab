"""State layer.

This package is the single source of truth for how feed events from all
subscriptions are merged into one deterministic dashboard snapshot, and
for the dashboard-level loading/error lifecycle.
"""
