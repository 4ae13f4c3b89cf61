"""
Calculator engine - unbounded integers with base 2/8/10/16 views.
Parsing, formatting, operator chaining and the 16-bit chip window.
No Qt in here, the window in main.py only forwards events.

Importing this module lifts the interpreter-wide int/str digit limit
(sys.set_int_max_str_digits(0)) so decimal views of large values work.
"""

import logging
import sys
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

BASES = (2, 8, 10, 16)
BASE_NAMES = {2: "BIN", 8: "OCT", 10: "DEC", 16: "HEX"}
DIGITS = "0123456789ABCDEF"

BIT_WINDOW = 16
HISTORY_LIMIT = 50

# Registers are unbounded, decimal views included
if hasattr(sys, "set_int_max_str_digits"):
    sys.set_int_max_str_digits(0)


class ParseError(ValueError):
    """Raised by parse_strict for text that is not a number in the given base"""


class Operator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    SHL = "SHL"
    SHR = "SHR"


OP_SYMBOLS = {
    Operator.ADD: "+", Operator.SUB: "-", Operator.MUL: "*", Operator.DIV: "/",
    Operator.AND: "&", Operator.OR: "|", Operator.XOR: "^",
    Operator.SHL: "<<", Operator.SHR: ">>",
}


class Role(Enum):
    A = "A"
    B = "B"


class EngineState(Enum):
    IDLE = "Idle"
    PENDING_OP = "PendingOp"


@dataclass
class Register:
    """One operand text buffer"""
    text: str
    role: Role


# --- Parser / Formatter ---

def digit_value(char):
    """Value of a single digit character, or None if it is not a digit in any base"""
    index = DIGITS.find(char.upper()) if len(char) == 1 else -1
    return index if index >= 0 else None


def parse_strict(raw: str, base: int) -> int:
    """Parse register text in base. Raises ParseError on anything malformed."""
    if base not in BASES:
        raise ParseError(f"unsupported base {base}")

    text = raw.strip()
    if not text:
        return 0

    negative = text.startswith("-")
    if negative:
        text = text[1:]

    magnitude = text.lstrip("0") or "0"

    # int() alone would also take "0x", "_" and "+", which are not register syntax
    for char in magnitude:
        value = digit_value(char)
        if value is None or value >= base:
            raise ParseError(f"{char!r} is not a base-{base} digit")

    result = int(magnitude, base)
    return -result if negative else result


def parse(raw: str, base: int) -> int:
    """Total parse: malformed text reads as 0"""
    try:
        return parse_strict(raw, base)
    except ValueError as e:
        logger.debug("Parse fallback to 0 for %r: %s", raw, e)
        return 0


def format_value(value: int, base: int) -> str:
    """Canonical text for value in base: no prefix, no grouping, uppercase hex"""
    if value == 0:
        return "0"

    code = {2: "b", 8: "o", 10: "d", 16: "X"}[base]
    digits = format(abs(value), code)
    return f"-{digits}" if value < 0 else digits


# --- Input validation ---

def allowed(char: str, base: int) -> bool:
    """Whether a keystroke may be appended while base is active"""
    if char == "-":
        return True
    if len(char) != 1:
        return False
    if char in "0123456789":
        return int(char) < base
    if char in "ABCDEF":
        return base == 16
    return False


# --- Operations ---

def _shift_left(value, count):
    try:
        return value << count
    except (OverflowError, MemoryError):
        logger.debug("Left shift by %d cannot be represented, keeping left operand", count)
        return value


def apply(op: Operator, left: int, right: int) -> int:
    """Evaluate left op right. Never raises for integer operands."""
    if op is Operator.ADD:
        return left + right
    elif op is Operator.SUB:
        return left - right
    elif op is Operator.MUL:
        return left * right
    elif op is Operator.DIV:
        if right == 0:
            return left
        quotient = abs(left) // abs(right)
        return -quotient if (left < 0) != (right < 0) else quotient
    elif op is Operator.AND:
        return left & right
    elif op is Operator.OR:
        return left | right
    elif op is Operator.XOR:
        return left ^ right
    elif op is Operator.SHL:
        return _shift_left(left, right) if right >= 0 else left >> -right
    elif op is Operator.SHR:
        return left >> right if right >= 0 else _shift_left(left, -right)
    raise ValueError(f"unknown operator {op!r}")


# --- Bit chips ---

def toggle_bit(value: int, index: int) -> int:
    """Flip one bit of the chip window, leaving every other bit alone"""
    return value ^ (1 << index)


def bit_window(value: int):
    """Chip states for bits 0..15 (two's complement view for negatives)"""
    return [bool((value >> i) & 1) for i in range(BIT_WINDOW)]


class CalculatorEngine:
    """Two registers, the active base and the pending operator.

    Idle:      pending_operator is None, editing A.
    PendingOp: an operator is staged, editing B (empty B means no right
               operand yet).
    """

    def __init__(self, base=10):
        self.base = base if base in BASES else 10
        self.a = Register("0", Role.A)
        self.b = Register("", Role.B)
        self.pending_operator = None
        self.editing_target = Role.A
        self.history = []

    @property
    def state(self):
        return EngineState.IDLE if self.pending_operator is None else EngineState.PENDING_OP

    def _target(self):
        return self.a if self.editing_target is Role.A else self.b

    # --- Editing ---

    def append(self, char):
        """Append a keystroke to the register being edited"""
        if not allowed(char, self.base):
            logger.debug("Rejected %r in base %d", char, self.base)
            return False

        register = self._target()
        if register.role is Role.A and register.text == "0" and char != "-":
            register.text = char
        else:
            register.text += char
        return True

    def backspace(self):
        register = self._target()
        text = register.text[:-1]
        register.text = "0" if text in ("", "-") else text

    def clear_all(self):
        self.a.text = "0"
        self.b.text = ""
        self.pending_operator = None
        self.editing_target = Role.A

    def paste(self, text):
        """Replace the register being edited with pasted text, if it is a number in the active base"""
        clean = text.strip().replace(",", "").replace(" ", "").replace("_", "")
        if not clean:
            return False
        try:
            value = parse_strict(clean, self.base)
        except ParseError:
            logger.debug("Could not paste %r in base %d", text, self.base)
            return False

        self._target().text = format_value(value, self.base)
        return True

    # --- Chaining ---

    def _evaluate(self):
        left = parse(self.a.text, self.base)
        right = parse(self.b.text, self.base)
        op = self.pending_operator
        result = apply(op, left, right)

        logger.debug("Evaluated %s %s %s = %s", left, op.value, right, result)
        self._add_history(
            f"{format_value(left, self.base)} {OP_SYMBOLS[op]} "
            f"{format_value(right, self.base)} = {format_value(result, self.base)}"
        )

        self.a.text = format_value(result, self.base)
        self.b.text = ""
        return result

    def press_operator(self, op):
        """Stage op, evaluating the pending one first if B holds an operand"""
        if self.pending_operator is not None and self.b.text:
            self._evaluate()
        elif self.pending_operator is None:
            self.b.text = ""

        self.pending_operator = op
        self.editing_target = Role.B

    def press_equals(self):
        if self.pending_operator is None or not self.b.text:
            return None

        result = self._evaluate()
        self.pending_operator = None
        self.editing_target = Role.A
        return result

    # --- Bits / base ---

    def toggle_bit(self, index):
        if not 0 <= index < BIT_WINDOW:
            return
        value = toggle_bit(parse(self.a.text, self.base), index)
        self.a.text = format_value(value, self.base)

    def set_base(self, base):
        """Switch interpretation only; register text is left as typed"""
        if base not in BASES:
            logger.debug("Ignoring unsupported base %r", base)
            return
        self.base = base

    # --- Views ---

    def displayed_register(self):
        if self.editing_target is Role.B and self.b.text:
            return self.b
        return self.a

    def current_value(self):
        return parse(self.displayed_register().text, self.base)

    def display_text(self):
        return format_value(self.current_value(), self.base)

    def views(self):
        """The displayed value in every base, keyed by base"""
        value = self.current_value()
        return {base: format_value(value, base) for base in BASES}

    def bits(self):
        return bit_window(parse(self.a.text, self.base))

    def copy_to(self, writer):
        """Best-effort clipboard write of the displayed value"""
        try:
            writer(self.display_text())
        except Exception as e:
            logger.warning("Clipboard write failed: %s", e)
            return False
        return True

    # --- History ---

    def _add_history(self, text):
        self.history.insert(0, text)
        del self.history[HISTORY_LIMIT:]

    def clear_history(self):
        self.history.clear()
