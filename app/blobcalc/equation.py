"""
Equation Engine

Owns the canonical equation string ("0", "12+340", ...) and applies
keypad presses to it one at a time. Every press either produces a new
valid equation or leaves it unchanged - the engine never raises.

Terms and the sum are derived from the string on demand.
"""

from dataclasses import dataclass
from typing import List, Optional

from .logging_config import get_logger

logger = get_logger("equation")

INITIAL_EQUATION = "0"
PLUS = "+"
CLEAR = "C"
EVALUATE = "="
DIGITS = "0123456789"


@dataclass
class KeyResult:
    """
    Outcome of a single key press.

    applied is False when the press was absorbed as a no-op; reason
    then says why, so callers can tell a rejection apart from a press
    that happened to leave the text the same.
    """
    key: str
    equation: str
    applied: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls, key: str, equation: str) -> "KeyResult":
        """Create an applied result."""
        return cls(key=key, equation=equation, applied=True)

    @classmethod
    def rejected(cls, key: str, equation: str, reason: str) -> "KeyResult":
        """Create a rejected (no-op) result."""
        return cls(key=key, equation=equation, applied=False, reason=reason)


def _trailing_term(equation: str) -> str:
    return equation.rsplit(PLUS, 1)[-1]


def _is_number(segment: str) -> bool:
    return segment.isascii() and segment.isdigit()


def transition(equation: str, key: str) -> KeyResult:
    """
    Compute the result of pressing `key` on `equation`.

    Rules:
    - "C" resets to "0".
    - "+" is appended unless the equation already ends with "+".
    - "0" is rejected after "+" and on a trailing "0" term.
    - "1".."9" replace a trailing "0" term, otherwise append.
    - "=" is recognized but never changes the equation.
    """
    if not equation:
        equation = INITIAL_EQUATION

    if not isinstance(key, str):
        return KeyResult.rejected(key, equation, "unknown key")

    if key == CLEAR:
        return KeyResult.ok(key, INITIAL_EQUATION)

    if key == PLUS:
        if equation.endswith(PLUS):
            return KeyResult.rejected(key, equation, "operator already pending")
        return KeyResult.ok(key, equation + PLUS)

    if key == EVALUATE:
        return KeyResult.rejected(key, equation, "evaluate")

    if len(key) != 1 or key not in DIGITS:
        return KeyResult.rejected(key, equation, "unknown key")

    trailing = _trailing_term(equation)

    if key == "0":
        if trailing == "":
            return KeyResult.rejected(key, equation, "leading zero after operator")
        if trailing == "0":
            return KeyResult.rejected(key, equation, "leading zero")
        return KeyResult.ok(key, equation + key)

    # A lone "0" term is a placeholder; the first real digit consumes it
    if trailing == "0":
        return KeyResult.ok(key, equation[:-1] + key)
    return KeyResult.ok(key, equation + key)


def apply_key(equation: str, key: str) -> str:
    """Pure form of a key press: returns the new equation string."""
    return transition(equation, key).equation


def parse_terms(equation: str) -> List[int]:
    """
    Split an equation on "+" into integer terms, left to right.

    Empty or non-numeric segments count as 0.
    """
    terms = []
    for segment in equation.split(PLUS):
        if _is_number(segment):
            terms.append(int(segment))
        else:
            terms.append(0)
    return terms


def group_digits(equation: str) -> str:
    """Insert thousands separators into each term ("1234+5" -> "1,234+5")."""
    grouped = []
    for segment in equation.split(PLUS):
        if _is_number(segment):
            grouped.append(format(int(segment), ","))
        else:
            grouped.append(segment)
    return PLUS.join(grouped)


class EquationEngine:
    """
    Stateful wrapper around transition() for one calculator session.

    The host forwards each key press to apply_key() and reads back
    `equation`, terms() and total() afterwards.
    """

    def __init__(self, equation: str = INITIAL_EQUATION):
        self._equation = INITIAL_EQUATION
        # Replay the seed through the rules so the state is always canonical
        for key in equation:
            self.apply_key(key)

    @property
    def equation(self) -> str:
        return self._equation

    def apply_key(self, key: str) -> KeyResult:
        """Apply one key press and return what happened."""
        result = transition(self._equation, key)
        if result.applied:
            logger.debug(f"Key {key!r} applied: {self._equation!r} -> {result.equation!r}")
            self._equation = result.equation
        else:
            logger.debug(f"Key {key!r} rejected on {self._equation!r}: {result.reason}")
        return result

    def reset(self) -> None:
        self.apply_key(CLEAR)

    def terms(self) -> List[int]:
        return parse_terms(self._equation)

    def total(self) -> int:
        """Arithmetic sum of all terms."""
        return sum(self.terms())

    # hosts written against the sum() name
    sum = total

    def grouped(self) -> str:
        return group_digits(self._equation)

    def display(self) -> str:
        """Equation and result line, e.g. "1,200+3 = 1,203"."""
        return f"{self.grouped()} = {self.total():,}"

    def __repr__(self) -> str:
        return f"EquationEngine({self._equation!r})"
