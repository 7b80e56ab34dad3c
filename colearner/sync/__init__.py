"""Sync layer: per-process context and the routing/filtering consumer."""

from colearner.sync.context import SyncContext
from colearner.sync.router import SYNC_ORDER, SyncRouter

__all__ = ["SYNC_ORDER", "SyncContext", "SyncRouter"]
