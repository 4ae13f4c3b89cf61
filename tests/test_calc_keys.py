"""
Tests for key translation and the keyboard subscription.

Run with: pytest tests/test_calc_keys.py -v
"""

import pytest

pytest.importorskip("PyQt6.QtWidgets")

from PyQt6.QtCore import QCoreApplication, QEvent, Qt
from PyQt6.QtGui import QKeyEvent
from PyQt6.QtWidgets import QApplication, QWidget

from calc_engine import Operator
from calc_keys import (
    KeyAction,
    KeyboardSubscription,
    keyboard_subscription,
    qt_key_name,
    subscribe,
    translate_key,
)


def key_press(key, text="", modifiers=Qt.KeyboardModifier.NoModifier):
    return QKeyEvent(QEvent.Type.KeyPress, key.value, modifiers, text)


class TestTranslateKey:
    """Tests for translate_key()."""

    def test_digits_and_hex_letters(self):
        assert translate_key("", "7") == KeyAction("digit", "7")
        assert translate_key("A", "a") == KeyAction("digit", "A")
        assert translate_key("F", "F") == KeyAction("digit", "F")

    def test_sign_key(self):
        assert translate_key("N", "n") == KeyAction("digit", "-")

    def test_operators(self):
        assert translate_key("", "-") == KeyAction("operator", Operator.SUB)
        assert translate_key("", "+") == KeyAction("operator", Operator.ADD)
        assert translate_key("", "^") == KeyAction("operator", Operator.XOR)
        assert translate_key("", "<") == KeyAction("operator", Operator.SHL)
        assert translate_key("", ">") == KeyAction("operator", Operator.SHR)

    def test_named_keys(self):
        assert translate_key("Return", "\r") == KeyAction("equals")
        assert translate_key("", "=") == KeyAction("equals")
        assert translate_key("Backspace", "\b") == KeyAction("backspace")
        assert translate_key("Delete", "") == KeyAction("clear")
        assert translate_key("Escape", "\x1b") == KeyAction("close")

    def test_base_keys(self):
        assert translate_key("F1", "") == KeyAction("base", 2)
        assert translate_key("F4", "") == KeyAction("base", 16)

    def test_ctrl_shortcuts(self):
        assert translate_key("C", "\x03", ctrl=True) == KeyAction("copy")
        assert translate_key("V", "\x16", ctrl=True) == KeyAction("paste")
        assert translate_key("A", "\x01", ctrl=True) is None

    def test_unbound(self):
        assert translate_key("", "G") is None
        assert translate_key("", "") is None
        assert translate_key("", "ab") is None


class TestQtKeyName:
    """Tests for qt_key_name()."""

    def test_named_and_letters(self, qapp):
        assert qt_key_name(key_press(Qt.Key.Key_Escape)) == "Escape"
        assert qt_key_name(key_press(Qt.Key.Key_F3)) == "F3"
        assert qt_key_name(key_press(Qt.Key.Key_C, "c")) == "C"
        assert qt_key_name(key_press(Qt.Key.Key_5, "5")) == ""


class TestKeyboardSubscription:
    """Tests for acquiring and releasing the key listener."""

    def test_filter_delivers_actions(self, qapp):
        received = []
        sub = KeyboardSubscription(received.append)

        assert sub.eventFilter(None, key_press(Qt.Key.Key_7, "7")) is True
        assert sub.eventFilter(None, key_press(Qt.Key.Key_G, "g")) is False
        assert sub.eventFilter(None, QEvent(QEvent.Type.FocusIn)) is False
        assert received == [KeyAction("digit", "7")]

    def test_ctrl_c_is_copy(self, qapp):
        received = []
        sub = KeyboardSubscription(received.append)
        event = key_press(Qt.Key.Key_C, "\x03", Qt.KeyboardModifier.ControlModifier)
        sub.eventFilter(None, event)
        assert received == [KeyAction("copy")]

    def test_disposer_releases_once(self, qapp):
        sub = KeyboardSubscription(lambda action: None)
        dispose = sub.subscribe(qapp)
        assert sub.active

        dispose()
        assert not sub.active
        dispose()
        assert not sub.active

    def test_double_subscribe_refused(self, qapp):
        sub = KeyboardSubscription(lambda action: None)
        dispose = sub.subscribe(qapp)
        try:
            with pytest.raises(RuntimeError):
                sub.subscribe(qapp)
        finally:
            dispose()

    def test_subscribe_function_returns_disposer(self, qapp):
        dispose = subscribe(qapp, lambda action: None)
        dispose()
        dispose()

    def test_scoped_release_on_error(self, qapp):
        with pytest.raises(KeyError):
            with keyboard_subscription(qapp, lambda action: None) as dispose:
                subscription = dispose.__self__
                assert subscription.active
                raise KeyError("boom")
        assert not subscription.active

    def test_ignores_keys_while_window_inactive(self, qapp):
        window = QWidget()
        received = []
        sub = KeyboardSubscription(received.append, window=window)

        assert QApplication.activeWindow() is not window
        assert sub.eventFilter(None, key_press(Qt.Key.Key_7, "7")) is False
        assert received == []
        window.deleteLater()

    def test_destroying_window_releases(self, qapp):
        window = QWidget()
        sub = KeyboardSubscription(lambda action: None, window=window)
        sub.subscribe(qapp)
        assert sub.active

        window.deleteLater()
        QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete)
        assert not sub.active
