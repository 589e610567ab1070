# app/core/errors.py
from __future__ import annotations


class StoreError(Exception):
    """Raised by a record store when an operation cannot be completed."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
