"""Entry point for launching the ScholarFlow desktop application."""

from __future__ import annotations

import sys

from PyQt6.QtWidgets import QApplication

from .config import ConfigManager, load_assistant_config
from .logging import install_exception_hook, setup_logging
from .services.chat_client import ChatClient
from .services.export_service import ExportService
from .services.outline_service import OutlineService
from .services.project_service import Project, ProjectService
from .ui import EditorWindow, ProjectDashboard


def main() -> None:
    """Start the PyQt6 application."""
    logger = setup_logging()
    install_exception_hook(logger)
    logger.debug("Starting QApplication")

    app = QApplication(sys.argv)
    app.setApplicationName("ScholarFlow")

    logger.info("Initialising core services")
    assistant_config = load_assistant_config(ConfigManager())
    chat_client = ChatClient.from_config(assistant_config)
    project_service = ProjectService()
    outline_service = OutlineService(chat_client)
    export_service = ExportService()
    logger.debug(
        "Service graph ready",
        extra={
            "base_url": chat_client.base_url,
            "model": chat_client.model,
            "has_credentials": chat_client.has_credentials,
        },
    )

    def open_editor(project: Project) -> EditorWindow:
        return EditorWindow(
            project_service=project_service,
            chat_client=chat_client,
            project=project,
            outline_service=outline_service,
            export_service=export_service,
        )

    window = ProjectDashboard(project_service, editor_factory=open_editor)
    window.show()
    logger.info("Application started")
    try:
        exit_code = app.exec()
        logger.info("Application event loop exited", extra={"exit_code": exit_code})
    finally:
        logger.info("Commencing shutdown sequence")
        project_service.shutdown()
        logger.info("Shutdown complete")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
