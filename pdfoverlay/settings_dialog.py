"""Settings dialog: rendering scale, committed text style, box defaults, debug."""
import dataclasses

from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QCheckBox,
    QColorDialog,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from pdfoverlay.models import EditorSettings


class SettingsDialog(QDialog):
    """Tabs for Display/Text and Export/Debug."""

    def __init__(self, settings: EditorSettings, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setMinimumWidth(420)
        self._settings = settings
        self._color = QColor.fromRgbF(*settings.text_color)

        layout = QVBoxLayout(self)
        tabs = QTabWidget()
        layout.addWidget(tabs)
        tabs.addTab(self._build_text_tab(settings), "Display && Text")
        tabs.addTab(self._build_export_tab(settings), "Export && Debug")

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    # ── Tab builders ──────────────────────────────────────────────────────────

    def _build_text_tab(self, settings: EditorSettings) -> QWidget:
        w = QWidget()
        layout = QVBoxLayout(w)
        layout.setContentsMargins(12, 12, 12, 12)
        form = QFormLayout()
        layout.addLayout(form)

        self._scale_spin = QDoubleSpinBox()
        self._scale_spin.setRange(0.25, 4.0)
        self._scale_spin.setSingleStep(0.25)
        self._scale_spin.setValue(settings.raster_scale)
        self._scale_spin.setSuffix(" ×")
        form.addRow("Page raster scale:", self._scale_spin)

        self._font_spin = QDoubleSpinBox()
        self._font_spin.setRange(4.0, 96.0)
        self._font_spin.setValue(settings.font_size)
        self._font_spin.setSuffix(" pt")
        form.addRow("Committed font size:", self._font_spin)

        self._color_btn = QPushButton()
        self._color_btn.setFixedWidth(60)
        self._color_btn.clicked.connect(self._pick_color)
        self._refresh_color_button()
        form.addRow("Text colour:", self._color_btn)

        self._default_text_edit = QLineEdit(settings.default_text)
        form.addRow("New box text:", self._default_text_edit)

        self._box_w_spin = QSpinBox()
        self._box_w_spin.setRange(20, 2000)
        self._box_w_spin.setValue(int(settings.box_width))
        self._box_w_spin.setSuffix(" px")
        form.addRow("New box width:", self._box_w_spin)

        self._box_h_spin = QSpinBox()
        self._box_h_spin.setRange(12, 500)
        self._box_h_spin.setValue(int(settings.box_height))
        self._box_h_spin.setSuffix(" px")
        form.addRow("New box height:", self._box_h_spin)

        hint = QLabel(
            "Changing the scale re-renders the page.  Boxes already placed keep "
            "their screen position, so commit before changing it."
        )
        hint.setWordWrap(True)
        hint.setStyleSheet("color: #555;")
        layout.addWidget(hint)
        layout.addStretch()
        return w

    def _build_export_tab(self, settings: EditorSettings) -> QWidget:
        w = QWidget()
        layout = QVBoxLayout(w)
        layout.setContentsMargins(12, 12, 12, 12)
        form = QFormLayout()
        layout.addLayout(form)

        self._filename_edit = QLineEdit(settings.export_filename)
        form.addRow("Default file name:", self._filename_edit)

        layout.addSpacing(16)

        self._debug_cb = QCheckBox("Enable debug mode")
        self._debug_cb.setChecked(settings.debug_mode)
        self._debug_cb.setToolTip(
            "When enabled:\n"
            "  • Print detailed debug messages to the terminal\n"
            "  • Write a coordinate log for every commit (last_commit.log)"
        )
        layout.addWidget(self._debug_cb)
        layout.addStretch()
        return w

    # ── Colour ────────────────────────────────────────────────────────────────

    def _refresh_color_button(self):
        self._color_btn.setStyleSheet(f"background-color: {self._color.name()};")

    def _pick_color(self):
        color = QColorDialog.getColor(self._color, self, "Text colour")
        if color.isValid():
            self._color = color
            self._refresh_color_button()

    # ── Public API ────────────────────────────────────────────────────────────

    def get_settings(self) -> EditorSettings:
        filename = self._filename_edit.text().strip() or "edited.pdf"
        if not filename.lower().endswith(".pdf"):
            filename += ".pdf"
        return dataclasses.replace(
            self._settings,
            raster_scale=self._scale_spin.value(),
            font_size=self._font_spin.value(),
            text_color=(self._color.redF(), self._color.greenF(), self._color.blueF()),
            default_text=self._default_text_edit.text(),
            box_width=float(self._box_w_spin.value()),
            box_height=float(self._box_h_spin.value()),
            export_filename=filename,
            debug_mode=self._debug_cb.isChecked(),
        )
