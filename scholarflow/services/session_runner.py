"""Qt bridge that runs chat exchanges off the UI thread."""

from __future__ import annotations

import logging
import threading

from PyQt6.QtCore import QObject, pyqtSignal

from ..logging import log_call
from .chat_session import CancellationToken, ChatSession, SessionState
from .transcript import Turn


logger = logging.getLogger(__name__)


class SessionRunner(QObject):
    """Publish a :class:`ChatSession`'s transcript and state as Qt signals.

    Signals are emitted from the worker thread; Qt queues them onto the
    receiver's thread, so widgets can connect directly.
    """

    transcript_changed = pyqtSignal(object)
    state_changed = pyqtSignal(object)
    busy_changed = pyqtSignal(bool)
    exchange_finished = pyqtSignal(object)

    @log_call(logger=logger, include_args=False)
    def __init__(self, session: ChatSession) -> None:
        super().__init__()
        self.session = session
        self._busy = False
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._token: CancellationToken | None = None
        self._unsubscribers = [
            session.transcript.add_listener(self.transcript_changed.emit),
            session.add_state_listener(self.state_changed.emit),
        ]

    @property
    def busy(self) -> bool:
        return self._busy

    def snapshot(self) -> tuple[Turn, ...]:
        return self.session.transcript.snapshot()

    def can_submit(self, text: str) -> bool:
        return bool(text.strip()) and not self._busy and self.session.is_idle

    @log_call(logger=logger, include_args=False)
    def submit(self, text: str, *, base_instruction: str | None = None) -> bool:
        """Start an exchange in the background; ``False`` if one is running."""

        with self._lock:
            if not self.can_submit(text):
                logger.debug("Ignoring submission", extra={"busy": self._busy})
                return False
            self._set_busy(True)
            self._token = CancellationToken()
            token = self._token

        def worker() -> None:
            turn: Turn | None = None
            try:
                turn = self.session.submit(
                    text, base_instruction=base_instruction, cancel_token=token
                )
            finally:
                with self._lock:
                    self._token = None
                    self._set_busy(False)
                if turn is not None:
                    self.exchange_finished.emit(turn)

        self._worker = threading.Thread(target=worker, name="chat-exchange", daemon=True)
        self._worker.start()
        return True

    def cancel(self) -> None:
        token = self._token
        if token is not None:
            token.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the running exchange ends; ``True`` when none remains."""

        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def shutdown(self) -> None:
        """Stop listening and discard the session."""

        self.cancel()
        self.session.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _set_busy(self, busy: bool) -> None:
        if busy == self._busy:
            return
        self._busy = busy
        self.busy_changed.emit(busy)

    def is_streaming(self) -> bool:
        return self.session.state in {SessionState.SUBMITTING, SessionState.STREAMING}


__all__ = ["SessionRunner"]
