"""
Exception types shared by the template stores, usage logs, and pipeline.
"""


class ReplyAutoError(Exception):
    """Base class for errors raised by reply_auto components."""


class TemplateValidationError(ReplyAutoError, ValueError):
    """Raised when a template row cannot be parsed into a Template."""


class StoreError(ReplyAutoError):
    """Raised when a template store or usage log backend cannot be read or written."""
