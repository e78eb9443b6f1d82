"""Minimal G-code line tokenizer.

Only what the welder needs: the command word, numeric parameters (with the
number of decimals they were written with) and the trailing comment.
Anything it cannot read is kept as text and passed through untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

_WORD = re.compile(r"([A-Za-z])\s*([-+]?(?:\d+\.?\d*|\.\d+))")
_PAREN_COMMENT = re.compile(r"\(([^)]*)\)")
_FLAG = re.compile(r"(?<![A-Za-z])([A-Za-z])(?![A-Za-z]|\s*[-+.\d])")


@dataclass
class GcodeCommand:
    """One parsed line."""

    line: str
    command: Optional[str] = None          # e.g. "G1", "M83"
    params: dict[str, float] = field(default_factory=dict)
    decimals: dict[str, int] = field(default_factory=dict)
    flags: set[str] = field(default_factory=set)    # bare letters, e.g. "G28 Z"
    comment: str = ""

    @property
    def has_comment(self) -> bool:
        return bool(self.comment)

    def has(self, letter: str) -> bool:
        return letter in self.params

    def get(self, letter: str, default: Optional[float] = None) -> Optional[float]:
        return self.params.get(letter, default)


def parse_line(line: str) -> GcodeCommand:
    """Parse a single line of G-code.

    ``G01`` and ``G1`` normalise to ``"G1"``.  A line whose first word is not
    G, M or T has no command.  Text commands (``M117 Hello``) keep only
    their command word.
    """
    cmd = GcodeCommand(line=line)
    code = line

    semicolon = code.find(";")
    if semicolon >= 0:
        cmd.comment = code[semicolon + 1:].strip()
        code = code[:semicolon]
    parens = _PAREN_COMMENT.findall(code)
    if parens:
        cmd.comment = " ".join(p.strip() for p in parens + ([cmd.comment] if cmd.comment else []))
        code = _PAREN_COMMENT.sub(" ", code)

    words = _WORD.findall(code)
    if not words:
        return cmd

    letter, value = words[0]
    letter = letter.upper()
    if letter in "GMT":
        cmd.command = f"{letter}{_normalise_number(value)}"
        words = words[1:]
        if letter == "M" and cmd.command in ("M117", "M118"):
            return cmd

    for letter, value in words:
        letter = letter.upper()
        cmd.params[letter] = float(value)
        cmd.decimals[letter] = _count_decimals(value)
    cmd.flags = {letter.upper() for letter in _FLAG.findall(code)} - set(cmd.params)
    return cmd


def _normalise_number(value: str) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return str(number)


def _count_decimals(value: str) -> int:
    dot = value.find(".")
    if dot < 0:
        return 0
    return len(value) - dot - 1
