"""UI tests for the editor window."""

from __future__ import annotations

import os
import threading
import time

import pytest

pytest.importorskip("PyQt6", reason="PyQt6 is required for UI tests", exc_type=ImportError)
pytest.importorskip(
    "PyQt6.QtWidgets",
    reason="PyQt6 widgets require a Qt runtime",
    exc_type=ImportError,
)

from PyQt6.QtWidgets import QApplication, QMessageBox

from scholarflow.services import StreamFragment
from scholarflow.services.project_service import ProjectService, ProjectStatus
from scholarflow.ui.editor_window import EditorWindow


os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qt_app() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


class HeldBackend:
    """Streams one fragment, then waits for ``release`` before finishing."""

    model = "test-model"
    has_credentials = True

    def __init__(self) -> None:
        self.release = threading.Event()
        self.requests = []

    def open_stream(self, stream_request):
        self.requests.append(stream_request)

        def generate():
            yield StreamFragment("Working")
            self.release.wait(5)
            yield StreamFragment(" done")

        return generate()


class TimingOutOutlineService:
    def generate(self, project):
        raise TimeoutError("timed out")


@pytest.fixture()
def project_service(tmp_path):
    service = ProjectService(storage_root=tmp_path)
    yield service
    service.shutdown()


def _window(project_service, backend=None, outline_service=None) -> EditorWindow:
    project = project_service.add_project("Quantum Dots", "Optical properties of dots")
    return EditorWindow(
        project_service=project_service,
        chat_client=backend or HeldBackend(),
        project=project,
        outline_service=outline_service or TimingOutOutlineService(),
    )


def test_rejected_message_stays_in_input(qt_app: QApplication, project_service) -> None:
    backend = HeldBackend()
    window = _window(project_service, backend)
    panel = window.assistant_panel

    panel.input.setPlainText("first question")
    assert window.submit_message("first question")
    assert panel.input.toPlainText() == ""

    panel.input.setPlainText("second question")
    assert not window.submit_message("second question")
    assert panel.input.toPlainText() == "second question"

    backend.release.set()
    assert window.runner.wait(5)
    qt_app.processEvents()

    assert window.submit_message("second question")
    assert panel.input.toPlainText() == ""
    assert window.runner.wait(5)
    assert [request.message for request in backend.requests] == [
        "first question",
        "second question",
    ]
    assert "Optical properties of dots" in backend.requests[0].system_instruction
    window.close()


def test_unexpected_outline_error_resets_button(
    qt_app: QApplication, project_service, monkeypatch
) -> None:
    warnings: list[tuple] = []
    monkeypatch.setattr(QMessageBox, "warning", lambda *args, **kwargs: warnings.append(args))
    window = _window(project_service)

    window.generate_outline()
    assert window.generate_outline_button.text() == "Generating..."

    deadline = time.monotonic() + 5
    while not warnings and time.monotonic() < deadline:
        qt_app.processEvents()
        time.sleep(0.01)

    assert warnings
    assert "timed out" in warnings[0][2]
    assert window.generate_outline_button.isEnabled()
    assert window.generate_outline_button.text() == "Auto-Generate"
    window.close()


def test_status_and_progress_keep_unsaved_text(qt_app: QApplication, project_service) -> None:
    window = _window(project_service)
    window.editor.setPlainText("Unsaved draft")

    window.set_status(ProjectStatus.REVIEW)
    window.set_progress(140)

    stored = project_service.get_project(window.project.id)
    assert stored is not None
    assert stored.status is ProjectStatus.REVIEW
    assert stored.progress == 100
    assert stored.content == ""
    assert window.progress_spin.value() == 100
    assert window.status_combo.currentData() == "review"
    assert window.current_project().content == "Unsaved draft"


def test_closing_saves_and_reports_project(qt_app: QApplication, project_service) -> None:
    window = _window(project_service)
    closed: list[str] = []
    window.closed.connect(closed.append)
    window.editor.setPlainText("Chapter one")

    window.close()

    assert closed == [window.project.id]
    stored = project_service.get_project(window.project.id)
    assert stored is not None
    assert stored.content == "Chapter one"
