"""Offline mutation queue service module."""

from .service import MutationHandler, OfflineMutationQueue, ReplayReport

__all__ = ["MutationHandler", "OfflineMutationQueue", "ReplayReport"]
