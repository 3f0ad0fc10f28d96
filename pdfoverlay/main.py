"""Main entry point for the PDF text overlay editor."""
import logging
import os
import sys
from typing import Optional

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QApplication, QFileDialog, QMainWindow, QMessageBox

from pdfoverlay import data_store
from pdfoverlay.errors import InputRejected, ParseFailed
from pdfoverlay.models import EditorSettings
from pdfoverlay.pdf_viewer import PDFViewerPanel
from pdfoverlay.session import EditorSession
from pdfoverlay.settings_dialog import SettingsDialog

logger = logging.getLogger(__name__)

_PDF_FILTER = "PDF files (*.pdf)"


class MainWindow(QMainWindow):
    def __init__(self, settings: Optional[EditorSettings] = None):
        super().__init__()
        self.setWindowTitle("PDF Text Overlay")
        self.resize(1100, 900)

        self._settings = settings or EditorSettings()
        self._session = EditorSession(self._settings, parent=self)
        self._session.committed.connect(self._on_committed)
        self._session.commit_failed.connect(self._on_commit_failed)

        self._setup_ui()

    def _setup_ui(self):
        file_menu = self.menuBar().addMenu("File")
        open_action = file_menu.addAction("Open PDF…")
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_dialog)

        self._export_action = file_menu.addAction("Save Edited PDF…")
        self._export_action.setShortcut(QKeySequence.StandardKey.Save)
        self._export_action.setEnabled(False)
        self._export_action.triggered.connect(self._export)
        file_menu.addSeparator()
        quit_action = file_menu.addAction("Quit")
        quit_action.triggered.connect(self.close)

        edit_menu = self.menuBar().addMenu("Edit")
        commit_action = edit_menu.addAction("Commit Text")
        commit_action.setShortcut(QKeySequence("Ctrl+Return"))
        commit_action.triggered.connect(lambda: self._viewer.commit())
        edit_menu.addSeparator()
        settings_action = edit_menu.addAction("Settings…")
        settings_action.setMenuRole(QAction.MenuRole.NoRole)
        settings_action.triggered.connect(self._show_settings)

        self._viewer = PDFViewerPanel(self._session)
        self._viewer.export_requested.connect(self._export)
        self.setCentralWidget(self._viewer)

    # ── File handling ─────────────────────────────────────────────────────────

    def _open_dialog(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Select a PDF file", self._settings.last_directory, _PDF_FILTER
        )
        if path:
            self.open_file(path)

    def open_file(self, path: str):
        try:
            self._session.load_file(path)
        except InputRejected as exc:
            logger.info("Rejected %s: %s", path, exc)
            QMessageBox.warning(self, "Not a PDF", f"Please select a valid PDF file.\n\n{exc}")
            return
        except ParseFailed as exc:
            logger.warning("Cannot open %s: %s", path, exc)
            QMessageBox.critical(self, "Cannot Open PDF", str(exc))
            return
        except OSError as exc:
            QMessageBox.critical(self, "Cannot Open PDF", f"Could not read {path}:\n{exc}")
            return
        self._export_action.setEnabled(False)
        self.setWindowTitle(f"PDF Text Overlay — {os.path.basename(path)}")
        self._settings.last_directory = os.path.dirname(os.path.abspath(path))
        self._save_settings()

    def _export(self):
        if not self._session.can_export:
            return
        start_dir = self._settings.last_directory or os.getcwd()
        default = os.path.join(start_dir, self._settings.export_filename)
        path, _ = QFileDialog.getSaveFileName(self, "Save Edited PDF", default, _PDF_FILTER)
        if not path:
            return
        try:
            self._session.export(path)
        except OSError as exc:
            QMessageBox.critical(self, "Save Error", f"Could not save {path}:\n{exc}")
            return
        self.statusBar().showMessage(f"Saved {path}", 5000)

    # ── Session slots ─────────────────────────────────────────────────────────

    def _on_committed(self, data: bytes):
        self._export_action.setEnabled(True)
        self.statusBar().showMessage(f"Committed ({len(data)} bytes)", 5000)

    def _on_commit_failed(self, message: str):
        QMessageBox.warning(
            self, "Commit Failed",
            f"The source file could not be processed.\n\n{message}",
        )

    # ── Settings ──────────────────────────────────────────────────────────────

    def _show_settings(self):
        dlg = SettingsDialog(self._settings, self)
        if dlg.exec():
            self._settings = dlg.get_settings()
            self._session.apply_settings(self._settings)
            self._save_settings()

    def _save_settings(self):
        try:
            data_store.save_settings(self._settings)
        except OSError as exc:
            logger.warning("Could not save settings: %s", exc)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        settings = data_store.load_settings()
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file: %s", exc)
        settings = EditorSettings()
    data_store.set_debug(settings.debug_mode)

    app = QApplication(sys.argv)
    app.setApplicationName("PDF Text Overlay")
    window = MainWindow(settings)
    window.show()
    if len(sys.argv) > 1:
        window.open_file(sys.argv[1])
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
