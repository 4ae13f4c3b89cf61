"""
Keyboard handling for the calculator.

translate_key() maps a key-down event to a calculator action without touching
Qt, KeyboardSubscription puts a process-wide event filter on the QApplication
and hands translated actions to a handler until it is disposed.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Optional

from PyQt6.QtCore import QEvent, QObject, Qt
from PyQt6.QtWidgets import QApplication

from calc_engine import Operator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyAction:
    kind: str  # digit, operator, equals, backspace, clear, base, close, copy, paste
    value: object = None


OPERATOR_KEYS = {
    "+": Operator.ADD, "-": Operator.SUB, "*": Operator.MUL, "/": Operator.DIV,
    "&": Operator.AND, "|": Operator.OR, "^": Operator.XOR,
    "<": Operator.SHL, ">": Operator.SHR,
}

BASE_KEYS = {"F1": 2, "F2": 8, "F3": 10, "F4": 16}

NAMED_KEYS = {
    "Return": KeyAction("equals"),
    "Enter": KeyAction("equals"),
    "Backspace": KeyAction("backspace"),
    "Delete": KeyAction("clear"),
    "Escape": KeyAction("close"),
}

QT_KEY_NAMES = {
    Qt.Key.Key_Escape.value: "Escape",
    Qt.Key.Key_Return.value: "Return",
    Qt.Key.Key_Enter.value: "Enter",
    Qt.Key.Key_Backspace.value: "Backspace",
    Qt.Key.Key_Delete.value: "Delete",
    Qt.Key.Key_F1.value: "F1",
    Qt.Key.Key_F2.value: "F2",
    Qt.Key.Key_F3.value: "F3",
    Qt.Key.Key_F4.value: "F4",
}


def translate_key(name: str, text: str, ctrl: bool = False) -> Optional[KeyAction]:
    """Map a key-down event (key name and typed text) to an action, None if unbound"""
    if ctrl:
        if name.upper() == "C":
            return KeyAction("copy")
        if name.upper() == "V":
            return KeyAction("paste")
        return None

    if name in NAMED_KEYS:
        return NAMED_KEYS[name]
    if name in BASE_KEYS:
        return KeyAction("base", BASE_KEYS[name])

    char = text.upper()
    if len(char) != 1:
        return None
    if char in "0123456789ABCDEF":
        return KeyAction("digit", char)
    if char == "N":
        # Sign is typed as an appended "-", the minus key is subtraction
        return KeyAction("digit", "-")
    if char == "=":
        return KeyAction("equals")
    if char in OPERATOR_KEYS:
        return KeyAction("operator", OPERATOR_KEYS[char])
    return None


def qt_key_name(event) -> str:
    """Name for a QKeyEvent as understood by translate_key"""
    name = QT_KEY_NAMES.get(event.key())
    if name:
        return name
    if Qt.Key.Key_A.value <= event.key() <= Qt.Key.Key_Z.value:
        return chr(event.key())
    return ""


class KeyboardSubscription(QObject):
    """Application-wide key-down listener.

    Acquired by subscribe(), released by the returned disposer. The disposer
    removes the filter once; later calls do nothing. When bound to a window,
    destroying that window runs the disposer too.
    """

    def __init__(self, handler: Callable[[KeyAction], None], window=None):
        super().__init__()
        self.handler = handler
        self.window = window
        self.app = None
        if window is not None:
            # Destroying the window without hide/close must still release the filter
            window.destroyed.connect(lambda *args: self.dispose())

    @property
    def active(self):
        return self.app is not None

    def subscribe(self, app):
        if self.app is not None:
            raise RuntimeError("keyboard subscription already active")
        app.installEventFilter(self)
        self.app = app
        logger.debug("Keyboard subscription acquired")
        return self.dispose

    def dispose(self):
        if self.app is None:
            return
        self.app.removeEventFilter(self)
        self.app = None
        logger.debug("Keyboard subscription released")

    def eventFilter(self, obj, event):
        if event.type() != QEvent.Type.KeyPress:
            return False
        if self.window is not None and QApplication.activeWindow() is not self.window:
            return False

        ctrl = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
        action = translate_key(qt_key_name(event), event.text(), ctrl)
        if action is None:
            return False

        self.handler(action)
        return True


def subscribe(app, handler, window=None):
    """Start listening; returns the disposer"""
    return KeyboardSubscription(handler, window).subscribe(app)


@contextmanager
def keyboard_subscription(app, handler, window=None):
    """Scoped subscription, released on every exit path"""
    dispose = subscribe(app, handler, window)
    try:
        yield dispose
    finally:
        dispose()
