"""Conversation, project and export services for ScholarFlow."""

from .chat_client import (
    ChatClient,
    ChatClientError,
    ChatResponseError,
    ConfigurationError,
    StreamFragment,
    StreamRequest,
    TransportError,
)
from .chat_session import (
    APOLOGY_TEXT,
    CancellationToken,
    ChatSession,
    EmptyMessageError,
    SessionState,
)
from .citation_service import CitationSource, CitationStyle, SourceType, format_citation
from .history import project_history
from .research_mode import DecoratedRequest, ModeController
from .transcript import (
    InvalidStateError,
    TranscriptError,
    TranscriptStore,
    Turn,
    TurnRole,
    TurnStatus,
    UnknownTurnError,
)

__all__ = [
    "APOLOGY_TEXT",
    "CancellationToken",
    "ChatClient",
    "ChatClientError",
    "ChatResponseError",
    "ChatSession",
    "CitationSource",
    "CitationStyle",
    "ConfigurationError",
    "DecoratedRequest",
    "EmptyMessageError",
    "InvalidStateError",
    "ModeController",
    "SessionState",
    "SourceType",
    "StreamFragment",
    "StreamRequest",
    "TranscriptError",
    "TranscriptStore",
    "TransportError",
    "Turn",
    "TurnRole",
    "TurnStatus",
    "UnknownTurnError",
    "format_citation",
    "project_history",
]

# Project, outline, export and runner services build on PyQt6 objects. They
# are imported lazily to avoid import errors when Qt libraries are missing.
try:  # pragma: no cover - optional dependency guard
    from .project_service import (
        OutlineItem,
        Project,
        ProjectService,
        ProjectStatus,
        ProjectType,
    )
    from .outline_service import OutlineGenerationError, OutlineService
    from .export_service import ExportFormat, ExportService, document_stats
except ImportError:  # pragma: no cover
    OutlineItem = Project = ProjectService = ProjectStatus = ProjectType = None  # type: ignore[assignment]
    OutlineGenerationError = OutlineService = None  # type: ignore[assignment]
    ExportFormat = ExportService = document_stats = None  # type: ignore[assignment]
else:  # pragma: no cover - executed when Qt is available
    __all__.extend(
        [
            "ExportFormat",
            "ExportService",
            "OutlineGenerationError",
            "OutlineItem",
            "OutlineService",
            "Project",
            "ProjectService",
            "ProjectStatus",
            "ProjectType",
            "document_stats",
        ]
    )

try:  # pragma: no cover - optional dependency guard
    from .session_runner import SessionRunner
except ImportError:  # pragma: no cover
    SessionRunner = None  # type: ignore[assignment]
else:  # pragma: no cover - executed when Qt is available
    __all__.append("SessionRunner")
