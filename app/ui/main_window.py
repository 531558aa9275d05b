import logging
import os
from typing import Iterable, Optional

from PyQt6.QtWidgets import QDockWidget, QFileDialog, QMainWindow, QStyle
from PyQt6.QtGui import QAction
from PyQt6.QtCore import Qt, QSettings

from engine.config import ChartOptions
from engine.price_lines import PriceLine, PriceLineDraggedEvent
from engine.state import ChartState

from .chart_view import ChartView
from .log_dock import LogDock

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(
        self,
        state: ChartState,
        options: Optional[ChartOptions] = None,
        price_lines: Iterable[PriceLine] = (),
    ) -> None:
        super().__init__()
        self.setWindowTitle('Candle Canvas')
        self.resize(1400, 900)

        self.log_dock = LogDock()
        self.chart_view = ChartView(state, options)
        self.chart_view.set_price_lines(price_lines)
        overlay = self.chart_view.overlay
        overlay.price_line_dragged.connect(self._commit_drag)
        overlay.price_line_clicked.connect(lambda ev: logger.info("Price line clicked: %s", ev.line_id))
        self.setCentralWidget(self.chart_view)

        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self.log_dock)
        try:
            self.log_dock.setWindowIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxWarning))
        except RuntimeError:
            pass

        self._settings = QSettings('CandleCanvas', 'CandleCanvas')
        self._setup_menu()
        self._restore_layout()

    def _commit_drag(self, event: PriceLineDraggedEvent) -> None:
        # The overlay only reports intent; the window owns the lines.
        self.chart_view.commit_price_line(event.line_id, event.new_price)

    def closeEvent(self, event) -> None:
        self._save_layout()
        self.chart_view.shutdown()
        self.log_dock.detach_handler()
        super().closeEvent(event)

    def _setup_menu(self) -> None:
        menu_bar = self.menuBar()
        file_menu = menu_bar.addMenu('File')
        window_menu = menu_bar.addMenu('Window')

        export_action = QAction('Export Chart as PNG...', self)
        export_action.triggered.connect(self._export_chart_png)
        file_menu.addAction(export_action)

        action = QAction(self.log_dock.windowTitle(), self)
        action.setCheckable(True)
        action.setChecked(not self.log_dock.isHidden())
        action.triggered.connect(lambda checked: self._toggle_dock(self.log_dock, checked))
        self.log_dock.visibilityChanged.connect(action.setChecked)
        window_menu.addAction(action)
        self._log_action = action

    def _toggle_dock(self, dock: QDockWidget, visible: bool) -> None:
        if visible:
            dock.show()
            dock.raise_()
        else:
            dock.hide()

    def _export_chart_png(self) -> None:
        default_path = os.path.join(os.path.expanduser('~'), 'candle-canvas.png')
        path, _ = QFileDialog.getSaveFileName(
            self,
            'Export Chart as PNG',
            default_path,
            'PNG Image (*.png)',
        )
        if not path:
            return
        if not path.lower().endswith('.png'):
            path = f'{path}.png'
        if not self.chart_view.export_chart_png(path):
            logger.warning("Chart export failed: %s", path)

    def _save_layout(self) -> None:
        self._settings.setValue('geometry', self.saveGeometry())
        self._settings.setValue('windowState', self.saveState())

    def _restore_layout(self) -> None:
        geometry = self._settings.value('geometry')
        window_state = self._settings.value('windowState')
        if geometry is not None:
            self.restoreGeometry(geometry)
        if window_state is not None:
            self.restoreState(window_state)
