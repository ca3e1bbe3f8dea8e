"""Terminal styling shared by the reports.

Verbosity and colour are carried by an OutputStyle value that the command
line creates once per invocation and hands to every renderer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import click

from modinspect.constants import UpdateType


class Verbosity(int, Enum):
    quiet = 0
    normal = 1
    verbose = 2


_SEVERITY_COLORS = {
    "CRITICAL": "bright_red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "blue",
    "UNKNOWN": "white",
}

_UPDATE_COLORS = {
    UpdateType.major: "red",
    UpdateType.minor: "yellow",
    UpdateType.patch: "green",
    UpdateType.none: None,
}

UPDATE_SYMBOLS = {
    UpdateType.major: "▲ ",
    UpdateType.minor: "● ",
    UpdateType.patch: "· ",
    UpdateType.none: "",
}


@dataclass(frozen=True)
class OutputStyle:
    verbosity: Verbosity = Verbosity.normal
    color: bool = True

    @classmethod
    def from_flags(
        cls, quiet: bool = False, verbose: bool = False, color: bool = True
    ) -> "OutputStyle":
        if quiet:
            return cls(Verbosity.quiet, color)
        if verbose:
            return cls(Verbosity.verbose, color)
        return cls(Verbosity.normal, color)

    @property
    def quiet(self) -> bool:
        return self.verbosity is Verbosity.quiet

    @property
    def verbose(self) -> bool:
        return self.verbosity is Verbosity.verbose

    def paint(
        self, text: str, fg: Optional[str] = None, bold: bool = False, dim: bool = False
    ) -> str:
        if not self.color or (fg is None and not bold and not dim):
            return text
        return click.style(text, fg=fg, bold=bold, dim=dim)

    def severity(self, severity: str, text: Optional[str] = None) -> str:
        color = _SEVERITY_COLORS.get(severity.upper(), "white")
        return self.paint(severity if text is None else text, fg=color, bold=True)

    def update(self, update_type: UpdateType, text: str) -> str:
        return self.paint(text, fg=_UPDATE_COLORS.get(update_type))


def truncate(text: str, width: int) -> str:
    if width <= 3 or len(text) <= width:
        return text
    return text[: width - 3] + "..."


def render_table(headers, rows, style: OutputStyle, cell_style=None) -> str:
    """
    Render rows as an aligned plain-text table.

    Args:
        headers: Column titles
        rows: Sequences of cell strings
        style: Output style for colouring
        cell_style: Optional callable (row_index, column_index, text) -> str
            applied after padding, so escape codes do not break alignment.
    """
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header = "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)).rstrip()
    lines = [style.paint(header, bold=True), style.paint("─" * len(header), dim=True)]

    for r, row in enumerate(rows):
        cells = []
        for c, cell in enumerate(row):
            padded = cell.ljust(widths[c])
            cells.append(cell_style(r, c, padded) if cell_style else padded)
        lines.append("  ".join(cells).rstrip())

    return "\n".join(lines)
