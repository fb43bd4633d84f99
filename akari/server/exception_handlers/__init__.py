"""
Exception handlers for the AKARI server.

Every error leaves the server in the ``{"ok": false, "error": ...}`` envelope.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
