import logging
import time

from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtWidgets import QDockWidget, QTextEdit


class _LogBridge(QObject):
    message = pyqtSignal(str)


class QtLogHandler(logging.Handler):
    """Forwards log records to the GUI thread through a Qt signal."""

    def __init__(self, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.bridge = _LogBridge()
        self.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s', datefmt='%H:%M:%S'))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.bridge.message.emit(self.format(record))
        except RuntimeError:
            pass


class LogDock(QDockWidget):
    def __init__(self, logger_names=('engine', 'ui')) -> None:
        super().__init__('Chart Log')
        self.setObjectName('LogDock')
        self._last_message: str = ""
        self._last_message_at: float = 0.0
        self._logger_names = tuple(logger_names)

        self.text = QTextEdit()
        self.text.setReadOnly(True)
        self.text.setPlaceholderText('Chart warnings and errors will appear here.')
        self.setWidget(self.text)

        self.handler = QtLogHandler()
        self.handler.bridge.message.connect(self.append_message)
        for name in self._logger_names:
            logging.getLogger(name).addHandler(self.handler)

    def append_message(self, message: str) -> None:
        # Avoid spamming identical records (e.g., a failing surface re-logging on every resize).
        now = time.monotonic()
        if message == self._last_message and (now - self._last_message_at) < 2.0:
            return
        self._last_message = message
        self._last_message_at = now
        self.text.append(message)

    def detach_handler(self) -> None:
        for name in self._logger_names:
            logging.getLogger(name).removeHandler(self.handler)
