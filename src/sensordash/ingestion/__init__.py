"""Ingestion layer.

Adapters that turn raw provider notifications into typed feed events.
"""

__all__: list[str] = []
