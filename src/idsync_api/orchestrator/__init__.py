"""Orchestration of directory, session and identity operations per console view."""

from idsync_api.orchestrator.registry import ViewRegistry
from idsync_api.orchestrator.user_detail import UserAdminOrchestrator

__all__ = [
    "UserAdminOrchestrator",
    "ViewRegistry",
]
