#!/usr/bin/env python3
"""
NetCalc - programmer's calculator panel for the network tools window.
Unbounded integers shown in BIN/OCT/DEC/HEX, bit chips for the low 16 bits,
operator chaining, copy/paste and a session history.
"""

import sys
import logging
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QGridLayout, QPushButton, QLabel, QDialog, QDialogButtonBox,
    QCheckBox, QFontDialog, QFormLayout, QListWidget, QFrame, QMessageBox, QButtonGroup
)
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont, QAction
import qdarktheme

from calc_engine import (
    BASES, BASE_NAMES, BIT_WINDOW, OP_SYMBOLS, CalculatorEngine, Operator, allowed
)
from calc_keys import KeyboardSubscription
from settings import load_settings, save_settings

logger = logging.getLogger(__name__)

if sys.platform == "win32":
    import ctypes
    ctypes.windll.shell32.SetCurrentProcessExplicitAppUserModelID(
        "netcalc.netcalc"
    )

BASE_PREFIXES = {2: "0b", 8: "0o", 10: "", 16: "0x"}

ARITHMETIC_OPS = (Operator.ADD, Operator.SUB, Operator.MUL, Operator.DIV)
KEY_STYLE = "border: 1px solid #a0a0a0; border-radius: 3px; font-size: 12pt;"
ARITHMETIC_ACCENT = "background-color: #243036;"
EQUALS_ACCENT = "background-color: #1f2b27; font-weight: bold;"


def with_prefix(text, base):
    """Put the base prefix after the sign, e.g. -0xFF"""
    prefix = BASE_PREFIXES[base]
    if text.startswith("-"):
        return f"-{prefix}{text[1:]}"
    return f"{prefix}{text}"


class SettingsDialog(QDialog):
    """Display preferences: base prefixes and the main display font"""

    def __init__(self, parent):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.selected_font = None

        form = QFormLayout(self)

        self.prefix_check = QCheckBox("Prefix secondary views with 0x / 0o / 0b")
        self.prefix_check.setChecked(parent.config.show_prefixes)
        form.addRow(self.prefix_check)

        font_button = QPushButton("Choose...")
        font_button.clicked.connect(self.choose_font)
        form.addRow("Display font:", font_button)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

    def choose_font(self):
        font, ok = QFontDialog.getFont(self.parent().display.font(), self)
        if ok:
            self.selected_font = font


class HistoryPanel(QFrame):
    """Evaluations from this session, newest on top"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFrameStyle(QFrame.Shape.StyledPanel | QFrame.Shadow.Sunken)
        self.setFixedWidth(260)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.addWidget(QLabel("<b>History</b>"))

        self.list = QListWidget()
        self.list.setWordWrap(True)
        self.list.setFont(QFont("Consolas", 9))
        self.list.setSelectionMode(QListWidget.SelectionMode.NoSelection)
        layout.addWidget(self.list)

    def entries(self):
        return [self.list.item(row).text() for row in range(self.list.count())]

    def set_entries(self, entries):
        self.list.clear()
        self.list.addItems(entries)

    def clear_entries(self):
        self.list.clear()


class CalculatorWindow(QMainWindow):
    """Calculator panel. Emits close_requested when the user asks to dismiss it."""

    close_requested = pyqtSignal()

    def __init__(self, config=None, config_path=None):
        super().__init__()

        self.config_path = config_path
        self.config = config if config is not None else load_settings(config_path)
        self.engine = CalculatorEngine()

        self.keyboard = KeyboardSubscription(self.handle_key_action, window=self)
        self.dispose_keyboard = None
        self.shown_history = []

        self.init_ui()
        self.apply_font()

    def init_ui(self):
        """Initialize the user interface"""
        self.setWindowTitle("NetCalc")

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout()
        main_layout.setSpacing(10)

        calc_layout = QVBoxLayout()
        calc_layout.setSpacing(8)

        # Display area
        display_frame = QFrame()
        display_frame.setFrameStyle(QFrame.Shape.StyledPanel | QFrame.Shadow.Sunken)
        display_layout = QVBoxLayout()
        display_layout.setContentsMargins(5, 5, 5, 5)

        # Base name on the left, pending operator on the right
        info_layout = QHBoxLayout()
        self.mode_label = QLabel("DEC")
        self.mode_label.setStyleSheet("color: #0066cc; font-weight: bold; font-size: 9pt;")
        self.op_label = QLabel("")
        self.op_label.setStyleSheet("color: #ffa500; font: bold 20pt Consolas;")
        info_layout.addWidget(self.mode_label)
        info_layout.addStretch()
        info_layout.addWidget(self.op_label)
        display_layout.addLayout(info_layout)

        # Main display
        self.display = QLabel("0")
        self.display.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        self.display.setFont(QFont("Consolas", 24))
        self.display.setMinimumHeight(60)
        self.display.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        display_layout.addWidget(self.display)

        # The other three bases
        self.alt_labels = {}
        alt_font = QFont("Consolas", 9)
        for base in BASES:
            label = QLabel("")
            label.setFont(alt_font)
            label.setStyleSheet("padding: 2px; color: #888;")
            label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
            display_layout.addWidget(label)
            self.alt_labels[base] = label

        display_frame.setLayout(display_layout)
        calc_layout.addWidget(display_frame)

        # Base selector
        base_layout = QHBoxLayout()
        self.base_group = QButtonGroup(self)
        self.base_group.setExclusive(True)
        self.base_buttons = {}
        for base in BASES:
            btn = QPushButton(BASE_NAMES[base])
            btn.setCheckable(True)
            btn.clicked.connect(lambda checked, b=base: self.switch_base(b))
            self.base_group.addButton(btn)
            base_layout.addWidget(btn)
            self.base_buttons[base] = btn
        calc_layout.addLayout(base_layout)

        # Bit chips, bit 15 on the left
        bits_layout = QHBoxLayout()
        bits_layout.setSpacing(2)
        self.bit_chips = {}
        for index in reversed(range(BIT_WINDOW)):
            chip = QPushButton("0")
            chip.setCheckable(True)
            chip.setFixedSize(26, 26)
            chip.setToolTip(f"Bit {index}")
            chip.clicked.connect(lambda checked, i=index: self.bit_clicked(i))
            bits_layout.addWidget(chip)
            self.bit_chips[index] = chip
            if index % 4 == 0 and index:
                bits_layout.addSpacing(6)
        calc_layout.addLayout(bits_layout)

        # Button grid
        button_layout = QGridLayout()
        button_layout.setSpacing(4)

        # Button definitions (text, row, col, action)
        buttons = [
            # Row 0
            ("CLR", 0, 0, "clear"), ("⌫", 0, 1, "backspace"), ("±", 0, 2, "-"), ("/", 0, 3, Operator.DIV), ("<<", 0, 4, Operator.SHL),
            # Row 1
            ("7", 1, 0, "7"), ("8", 1, 1, "8"), ("9", 1, 2, "9"), ("*", 1, 3, Operator.MUL), (">>", 1, 4, Operator.SHR),
            # Row 2
            ("4", 2, 0, "4"), ("5", 2, 1, "5"), ("6", 2, 2, "6"), ("-", 2, 3, Operator.SUB), ("AND", 2, 4, Operator.AND),
            # Row 3
            ("1", 3, 0, "1"), ("2", 3, 1, "2"), ("3", 3, 2, "3"), ("+", 3, 3, Operator.ADD), ("OR", 3, 4, Operator.OR),
            # Row 4
            ("0", 4, 0, "0"), ("A", 4, 1, "A"), ("B", 4, 2, "B"), ("=", 4, 3, "equals"), ("XOR", 4, 4, Operator.XOR),
            # Row 5 - Hex digits
            ("C", 5, 0, "C"), ("D", 5, 1, "D"), ("E", 5, 2, "E"), ("F", 5, 3, "F"),
        ]

        self.digit_buttons = {}
        for text, row, col, action in buttons:
            btn = QPushButton(text)
            btn.setMinimumSize(50, 40)
            accent = ""

            if isinstance(action, Operator):
                btn.clicked.connect(lambda checked, op=action: self.operator_pressed(op))
                accent = ARITHMETIC_ACCENT if action in ARITHMETIC_OPS else ""
            elif action == "equals":
                btn.clicked.connect(self.equals_pressed)
                accent = EQUALS_ACCENT
            elif action == "clear":
                btn.clicked.connect(self.clear_all)
            elif action == "backspace":
                btn.clicked.connect(self.backspace)
            else:
                btn.clicked.connect(lambda checked, c=action: self.digit_pressed(c))
                self.digit_buttons[action] = btn

            btn.setStyleSheet(f"QPushButton {{ {KEY_STYLE} {accent} }}")

            button_layout.addWidget(btn, row, col)

        calc_layout.addLayout(button_layout)
        main_layout.addLayout(calc_layout)

        # Right side - history panel
        self.history_panel = HistoryPanel()
        main_layout.addWidget(self.history_panel)

        central.setLayout(main_layout)

        # Menu bar
        menubar = self.menuBar()

        edit_menu = menubar.addMenu("&Edit")

        copy_action = QAction("&Copy", self)
        copy_action.triggered.connect(self.copy_to_clipboard)
        edit_menu.addAction(copy_action)

        paste_action = QAction("&Paste", self)
        paste_action.triggered.connect(self.paste_from_clipboard)
        edit_menu.addAction(paste_action)

        edit_menu.addSeparator()
        clear_history_action = QAction("Clear &History", self)
        clear_history_action.triggered.connect(self.clear_history)
        edit_menu.addAction(clear_history_action)

        edit_menu.addSeparator()

        settings_action = QAction("&Settings...", self)
        settings_action.triggered.connect(self.show_settings)
        edit_menu.addAction(settings_action)

        help_menu = menubar.addMenu("&Help")

        shortcuts_action = QAction("&Keyboard Shortcuts", self)
        shortcuts_action.triggered.connect(self.show_shortcuts)
        help_menu.addAction(shortcuts_action)

        self.setFixedSize(760, 620)
        self.setWindowFlags(self.windowFlags() & ~Qt.WindowType.WindowMaximizeButtonHint)

        self.refresh()

    # --- Keyboard subscription ---

    def showEvent(self, event):
        if self.dispose_keyboard is None:
            self.dispose_keyboard = self.keyboard.subscribe(QApplication.instance())
        super().showEvent(event)

    def hideEvent(self, event):
        self.release_keyboard()
        super().hideEvent(event)

    def release_keyboard(self):
        if self.dispose_keyboard is not None:
            self.dispose_keyboard()
            self.dispose_keyboard = None

    def handle_key_action(self, action):
        """Dispatch a translated key-down event"""
        if action.kind == "digit":
            self.digit_pressed(action.value)
        elif action.kind == "operator":
            self.operator_pressed(action.value)
        elif action.kind == "equals":
            self.equals_pressed()
        elif action.kind == "backspace":
            self.backspace()
        elif action.kind == "clear":
            self.clear_all()
        elif action.kind == "base":
            self.switch_base(action.value)
        elif action.kind == "copy":
            self.copy_to_clipboard()
        elif action.kind == "paste":
            self.paste_from_clipboard()
        elif action.kind == "close":
            self.close_requested.emit()

    # --- Engine events ---

    def digit_pressed(self, char):
        if self.engine.append(char):
            self.refresh()

    def operator_pressed(self, op):
        self.engine.press_operator(op)
        self.refresh()

    def equals_pressed(self):
        self.engine.press_equals()
        self.refresh()

    def backspace(self):
        self.engine.backspace()
        self.refresh()

    def clear_all(self):
        self.engine.clear_all()
        self.refresh()

    def bit_clicked(self, index):
        self.engine.toggle_bit(index)
        self.refresh()

    def switch_base(self, base):
        self.engine.set_base(base)
        self.refresh()

    def clear_history(self):
        self.engine.clear_history()
        self.history_panel.clear_entries()
        self.shown_history = []

    def copy_to_clipboard(self):
        """Copy the displayed value, failures are only logged"""
        self.engine.copy_to(self.write_clipboard)

    @staticmethod
    def write_clipboard(text):
        QApplication.clipboard().setText(text)

    def paste_from_clipboard(self):
        text = QApplication.clipboard().text()
        if self.engine.paste(text):
            self.refresh()

    # --- Display ---

    def refresh(self):
        """Re-derive every view from the engine"""
        engine = self.engine
        base = engine.base

        self.mode_label.setText(BASE_NAMES[base])
        op = engine.pending_operator
        self.op_label.setText(OP_SYMBOLS[op] if op is not None else "")

        views = engine.views()
        self.display.setText(views[base])
        for other, label in self.alt_labels.items():
            label.setVisible(other != base)
            text = with_prefix(views[other], other) if self.config.show_prefixes else views[other]
            label.setText(f"{BASE_NAMES[other]}: {text}")

        self.base_buttons[base].setChecked(True)

        for index, bit in enumerate(engine.bits()):
            chip = self.bit_chips[index]
            chip.setChecked(bit)
            chip.setText("1" if bit else "0")

        for char, btn in self.digit_buttons.items():
            btn.setEnabled(allowed(char, base))

        if engine.history != self.shown_history:
            self.history_panel.set_entries(engine.history)
            self.shown_history = list(engine.history)

    def apply_font(self):
        font_str = self.config.display_font
        if font_str:
            font = QFont()
            if font.fromString(font_str):
                self.display.setFont(font)

    def show_settings(self):
        """Show settings dialog"""
        dialog = SettingsDialog(self)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self.config.show_prefixes = dialog.prefix_check.isChecked()
            if dialog.selected_font:
                self.display.setFont(dialog.selected_font)
                self.config.display_font = dialog.selected_font.toString()
            self.refresh()

    def show_shortcuts(self):
        """Show keyboard shortcuts help"""
        shortcuts = """
<h3>Keyboard Shortcuts</h3>
<table>
<tr><td><b>0-9, A-F</b></td><td>Digits valid in the active base</td></tr>
<tr><td><b>N</b></td><td>Type a minus sign</td></tr>
<tr><td><b>+, -, *, /</b></td><td>Arithmetic (division truncates)</td></tr>
<tr><td><b>&amp;, |, ^</b></td><td>AND, OR, XOR</td></tr>
<tr><td><b>&lt;, &gt;</b></td><td>Shift left, shift right</td></tr>
<tr><td><b>Enter, =</b></td><td>Equals</td></tr>
<tr><td><b>Backspace</b></td><td>Delete last digit</td></tr>
<tr><td><b>Delete</b></td><td>Clear all</td></tr>
<tr><td><b>F1-F4</b></td><td>BIN, OCT, DEC, HEX</td></tr>
<tr><td><b>Ctrl+C / Ctrl+V</b></td><td>Copy / paste value</td></tr>
<tr><td><b>ESC</b></td><td>Close calculator</td></tr>
</table>
        """
        msg = QMessageBox(self)
        msg.setWindowTitle("Keyboard Shortcuts")
        msg.setTextFormat(Qt.TextFormat.RichText)
        msg.setText(shortcuts)
        msg.exec()

    def closeEvent(self, event):
        """Handle window close"""
        self.release_keyboard()
        save_settings(self.config, self.config_path)
        logger.debug("Calculator closed")
        event.accept()


def main():
    config = load_settings()
    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    qdarktheme.setup_theme()

    calculator = CalculatorWindow(config)
    calculator.close_requested.connect(calculator.close)
    calculator.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
