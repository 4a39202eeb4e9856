"""Ingestion layer.

This package contains adapters that fetch (snapshot) or receive (push
stream) portal data and turn it into state-store transitions.
"""

__all__: list[str] = []
