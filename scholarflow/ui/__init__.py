"""UI components for the ScholarFlow application."""

from .assistant_panel import AssistantPanel
from .citation_dialog import CitationDialog
from .dashboard import NewProjectDialog, ProjectDashboard
from .editor_window import EditorWindow

__all__ = [
    "AssistantPanel",
    "CitationDialog",
    "EditorWindow",
    "NewProjectDialog",
    "ProjectDashboard",
]
