"""Tab/panel registry and editing commands."""

from .manager import UnknownPanelError, UnknownTabError, WorkspaceManager

__all__ = ["WorkspaceManager", "UnknownTabError", "UnknownPanelError"]
