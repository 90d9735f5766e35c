"""Pinata transport shared by the sync engine and the daemon."""

from .async_utils import run_sync
from .client import PinataClient
from .retry import RetryPolicy

__all__ = ["PinataClient", "RetryPolicy", "run_sync"]
