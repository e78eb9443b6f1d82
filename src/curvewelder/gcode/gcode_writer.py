"""Low-level G-code command formatting and length prediction.

A command is a keyword plus a list of :class:`Term` words.  The formatted
string and its predicted length are both computed from the same term list,
so adding or dropping a word changes both at once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Term:
    """One ``<letter><value>`` word printed at a fixed number of decimals."""

    letter: str
    value: float
    precision: int

    def __str__(self) -> str:
        return f"{self.letter}{fmt(self.value, self.precision)}"

    def __len__(self) -> int:
        # letter, sign, integer part, then ".ddd" unless precision is 0
        length = len(self.letter) + integer_digits(self.value, self.precision)
        if is_negative(self.value):
            length += 1
        if self.precision > 0:
            length += 1 + self.precision
        return length


def fmt(value: float, decimals: int) -> str:
    """Format a float for G-code at a fixed number of decimals.

    Trailing zeros are kept so the printed length is predictable.
    """
    return f"{value:.{decimals}f}"


def is_negative(value: float) -> bool:
    """True when :func:`fmt` prints a leading minus sign (includes -0.0)."""
    return math.copysign(1.0, value) < 0


def integer_digits(value: float, precision: int) -> int:
    """Number of digits before the decimal point of *value* at *precision*.

    ``round`` and fixed-point formatting both round the exact binary value
    half-to-even, so a carry (9.9996 -> 10.000) is counted the same way
    :func:`fmt` prints it.
    """
    n = int(round(abs(value), precision))
    digits = 1
    while n >= 10:
        n //= 10
        digits += 1
    return digits


def format_command(keyword: str, terms: Sequence[Term]) -> str:
    """Join *keyword* and *terms* with single spaces."""
    parts = [keyword]
    parts.extend(str(t) for t in terms)
    return " ".join(parts)


def predict_command_length(keyword: str, terms: Sequence[Term]) -> int:
    """Length of ``format_command(keyword, terms)`` without building it."""
    return len(keyword) + sum(1 + len(t) for t in terms)
