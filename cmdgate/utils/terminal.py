"""Render raw terminal output into the text it would leave on screen.

Interactive programs redraw progress bars and spinners with carriage
returns and cursor-control escape sequences. Replaying those bytes over a
tiny line buffer gives a deterministic transcript of what the user would
actually see.

Supported:
    \\r, \\n, \\t (8-column stops), \\b
    ESC[nA / ESC[nB / ESC[nC / ESC[nD    cursor up / down / forward / back
    ESC[H, ESC[n;mH, ESC[n;mf            cursor position
    ESC[K, ESC[0K, ESC[1K, ESC[2K        clear line
    ESC[J, ESC[0J, ESC[1J, ESC[2J        clear screen
    ESC[...m                             SGR (dropped)
    ESC]...BEL, ESC]...ESC\\              OSC (dropped)

Any other CSI sequence is consumed without effect, and any other
two-byte escape is skipped.
"""

from typing import List, Optional

ESC = "\x1b"
BEL = "\x07"
TAB_WIDTH = 8

# Digits and separators plus the private-mode markers (ESC[?25l etc.)
_CSI_PARAM_CHARS = frozenset("0123456789;?<=>")


class _Screen:
    """Line buffer with a cursor. Rows past the last written line are blank."""

    def __init__(self):
        self.lines: List[str] = [""]
        self.row = 0
        self.col = 0

    def ensure_row(self, row: int) -> None:
        while len(self.lines) <= row:
            self.lines.append("")

    def write(self, char: str) -> None:
        self.ensure_row(self.row)
        line = self.lines[self.row]
        if len(line) < self.col:
            line += " " * (self.col - len(line))
        self.lines[self.row] = line[:self.col] + char + line[self.col + 1:]
        self.col += 1

    def tab(self) -> None:
        stop = (self.col // TAB_WIDTH + 1) * TAB_WIDTH
        while self.col < stop:
            self.write(" ")

    def clear_line(self, mode: int) -> None:
        self.ensure_row(self.row)
        line = self.lines[self.row]
        if mode == 0:
            self.lines[self.row] = line[:self.col]
        elif mode == 1:
            self.lines[self.row] = " " * self.col + line[self.col:]
        elif mode == 2:
            self.lines[self.row] = ""

    def clear_screen(self, mode: int) -> None:
        self.ensure_row(self.row)
        if mode == 0:
            self.lines[self.row] = self.lines[self.row][:self.col]
            del self.lines[self.row + 1:]
        elif mode == 1:
            self.lines[self.row] = " " * self.col + self.lines[self.row][self.col:]
            for r in range(self.row):
                self.lines[r] = ""
        elif mode in (2, 3):
            self.lines = [""]
            self.row = 0
            self.col = 0

    def text(self) -> str:
        lines = list(self.lines)
        while len(lines) > 1 and lines[-1] == "":
            lines.pop()
        return "\n".join(line.rstrip() for line in lines)


def _parse_params(params: str) -> List[Optional[int]]:
    """Split CSI parameters; empty fields mean 'use the default'."""
    if not params:
        return []
    values: List[Optional[int]] = []
    for field in params.lstrip("?<=>").split(";"):
        values.append(int(field) if field.isdigit() else None)
    return values


def _param(values: List[Optional[int]], index: int, default: int) -> int:
    if index < len(values) and values[index] is not None:
        return values[index]
    return default


def _apply_csi(screen: _Screen, final: str, values: List[Optional[int]]) -> None:
    if final == "A":
        screen.row = max(0, screen.row - _param(values, 0, 1))
    elif final == "B":
        screen.row += _param(values, 0, 1)
        screen.ensure_row(screen.row)
    elif final == "C":
        screen.col += _param(values, 0, 1)
    elif final == "D":
        screen.col = max(0, screen.col - _param(values, 0, 1))
    elif final in ("H", "f"):
        screen.row = max(0, _param(values, 0, 1) - 1)
        screen.col = max(0, _param(values, 1, 1) - 1)
        screen.ensure_row(screen.row)
    elif final == "J":
        screen.clear_screen(_param(values, 0, 0))
    elif final == "K":
        screen.clear_line(_param(values, 0, 0))
    # "m" (colors) and everything else: no visible effect


def render_terminal(text: str) -> str:
    """Replay terminal control sequences and return the final screen text.

    Args:
        text: Raw output captured from a terminal

    Returns:
        Rendered text with trailing blank lines removed and each line
        right-trimmed
    """
    screen = _Screen()
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char == ESC and i + 1 < length and text[i + 1] == "]":
            i += 2
            while i < length:
                if text[i] == BEL:
                    i += 1
                    break
                if text[i] == ESC and i + 1 < length and text[i + 1] == "\\":
                    i += 2
                    break
                i += 1
            continue

        if char == ESC and i + 1 < length and text[i + 1] == "[":
            i += 2
            start = i
            while i < length and text[i] in _CSI_PARAM_CHARS:
                i += 1
            params = text[start:i]
            final = text[i] if i < length else ""
            i += 1
            _apply_csi(screen, final, _parse_params(params))
            continue

        if char == ESC:
            # Unknown two-byte escape
            i += 2
            continue

        if char == "\r":
            screen.col = 0
        elif char == "\n":
            screen.row += 1
            screen.col = 0
            screen.ensure_row(screen.row)
        elif char == "\t":
            screen.tab()
        elif char == "\b":
            screen.col = max(0, screen.col - 1)
        elif ord(char) >= 32:
            screen.write(char)
        i += 1

    return screen.text()
