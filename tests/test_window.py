"""
Tests for the calculator window wiring.

Run with: pytest tests/test_window.py -v
"""

import pytest

pytest.importorskip("PyQt6.QtWidgets")
pytest.importorskip("qdarktheme")

from PyQt6.QtCore import QCoreApplication, QEvent

from calc_engine import Operator
from calc_keys import KeyAction
from main import CalculatorWindow, with_prefix
from settings import Settings


@pytest.fixture
def window(qapp, tmp_path):
    win = CalculatorWindow(Settings(), config_path=tmp_path / "config.json")
    yield win
    win.release_keyboard()
    win.deleteLater()


def press(window, *actions):
    for action in actions:
        window.handle_key_action(action)


class TestWithPrefix:
    def test_prefix_after_sign(self):
        assert with_prefix("FF", 16) == "0xFF"
        assert with_prefix("-FF", 16) == "-0xFF"
        assert with_prefix("12", 10) == "12"


class TestCalculatorWindow:
    """Tests for CalculatorWindow."""

    def test_initial_display(self, window):
        assert window.display.text() == "0"
        assert window.mode_label.text() == "DEC"
        assert window.op_label.text() == ""

    def test_chain_from_keyboard(self, window):
        press(
            window,
            KeyAction("digit", "5"),
            KeyAction("operator", Operator.ADD),
            KeyAction("digit", "3"),
            KeyAction("operator", Operator.MUL),
        )
        assert window.display.text() == "8"
        assert window.op_label.text() == "*"

        press(window, KeyAction("digit", "2"), KeyAction("equals"))
        assert window.display.text() == "16"
        assert window.op_label.text() == ""
        assert window.history_panel.entries() == ["8 * 2 = 16", "5 + 3 = 8"]

    def test_alt_views(self, window):
        press(window, KeyAction("digit", "2"), KeyAction("digit", "5"), KeyAction("digit", "5"))
        assert window.alt_labels[16].text() == "HEX: 0xFF"
        assert window.alt_labels[2].text() == "BIN: 0b11111111"
        assert window.alt_labels[8].text() == "OCT: 0o377"

    def test_base_switch_disables_digits(self, window):
        press(window, KeyAction("base", 2))
        assert window.mode_label.text() == "BIN"
        assert not window.digit_buttons["2"].isEnabled()
        assert window.digit_buttons["1"].isEnabled()
        assert window.digit_buttons["-"].isEnabled()

        press(window, KeyAction("base", 16))
        assert window.digit_buttons["F"].isEnabled()

    def test_bit_chip_click(self, window):
        window.bit_chips[3].click()
        assert window.display.text() == "8"
        assert window.bit_chips[3].isChecked()

        window.bit_chips[3].click()
        assert window.display.text() == "0"
        assert not window.bit_chips[3].isChecked()

    def test_escape_requests_close(self, window):
        fired = []
        window.close_requested.connect(lambda: fired.append(True))
        press(window, KeyAction("close"))
        assert fired == [True]

    def test_keyboard_subscription_follows_visibility(self, window):
        window.show()
        assert window.keyboard.active

        window.hide()
        assert not window.keyboard.active

    def test_close_releases_keyboard_and_saves(self, window, tmp_path):
        window.show()
        window.close()
        assert not window.keyboard.active
        assert (tmp_path / "config.json").exists()

    def test_clear_history(self, window):
        press(
            window,
            KeyAction("operator", Operator.ADD),
            KeyAction("digit", "1"),
            KeyAction("equals"),
        )
        assert window.history_panel.entries() == ["0 + 1 = 1"]
        window.clear_history()
        assert window.history_panel.entries() == []
        assert window.engine.history == []

    def test_forced_delete_releases_keyboard(self, qapp, tmp_path):
        win = CalculatorWindow(Settings(), config_path=tmp_path / "config.json")
        subscription = win.keyboard
        win.show()
        assert subscription.active

        win.deleteLater()
        QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete)
        assert not subscription.active
