"""Adapters for external systems (messaging transport, storage, HTTP)."""
