"""
Terminal Host

An interactive keypad in the terminal. Each line typed is read as a
sequence of key presses; after every line the equation, the sum and
the blob groups are redrawn with rich.

Usage:
    python -m blobcalc
    python -m blobcalc 12+3      # press these keys, draw once, exit
"""

import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Config, load_config
from .layout import LayoutOptions, LayoutResult, blob_specs, compute_layout
from .logging_config import setup_logging, get_logger
from .services import CalculatorSession

console = Console()
logger = get_logger("terminal")

KEYPAD = [
    ["1", "2", "3"],
    ["4", "5", "6"],
    ["7", "8", "9"],
    ["C", "0", "+"],
]

BLOB_GLYPH = "●"
BLOB_ROWS = 8


def cell_options(config: Config) -> LayoutOptions:
    """Layout options for a character grid: one cell per blob, one gap."""
    return LayoutOptions(
        min_diameter=1.0,
        max_diameter=1.0,
        packing_factor=config.packing_factor,
        spacing=1.0,
        default_diameter=1.0,
        render_cap=config.render_cap,
    )


def paint_blobs(session: CalculatorSession, result: LayoutResult, width: int, height: int) -> Text:
    """Rasterize layout positions onto a width x height character grid."""
    grid: List[List[Optional[int]]] = [[None] * width for _ in range(height)]
    for position in result.positions:
        col, row = int(position.x), int(position.y)
        if 0 <= row < height and 0 <= col < width:
            grid[row][col] = position.color_index

    text = Text()
    for row_index, row in enumerate(grid):
        for cell in row:
            if cell is None:
                text.append(" ")
            else:
                text.append(BLOB_GLYPH, style=session.color_for(cell))
        if row_index < height - 1:
            text.append("\n")
    return text


def keypad_table() -> Table:
    table = Table.grid(padding=(0, 2))
    for row in KEYPAD:
        table.add_row(*[f"[bold]{key}[/bold]" for key in row])
    return table


def render(session: CalculatorSession, width: Optional[int] = None) -> Panel:
    """Build the full calculator view for the current session state."""
    width = width or max(10, console.width - 4)
    options = cell_options(session.config)
    specs = blob_specs(
        session.engine.terms(),
        palette_size=len(session.config.palette),
        max_per_term=session.config.per_term_cap,
    )
    result = compute_layout(specs, width, BLOB_ROWS, options)

    body = Text()
    body.append_text(paint_blobs(session, result, width, BLOB_ROWS))
    body.append("\n\n")
    body.append(session.engine.grouped(), style="bold")
    body.append("\n")
    body.append(f"= {session.engine.total():,}", style="bold green")
    if result.dropped:
        body.append(f"\n({result.dropped:,} blob(s) not shown)", style="dim")

    return Panel(body, title="BlobCalc", subtitle="keys: 0-9 + C  |  q to quit")


def run(argv: Optional[List[str]] = None) -> int:
    """Run the terminal calculator. Returns a process exit code."""
    config = load_config()
    setup_logging(level=config.log_level, json_format=config.log_json)
    session = CalculatorSession(config)

    if argv:
        session.press_many("".join(argv))
        console.print(render(session))
        return 0

    console.print(keypad_table())
    console.print(render(session))

    while True:
        try:
            line = console.input("[bold]keys> [/bold]").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if line.lower() in ("q", "quit", "exit"):
            break

        keys = [key for key in line if not key.isspace()]
        rejected = [
            r.key for r in session.press_many(keys)
            if not r.applied and r.reason != "evaluate"
        ]
        if rejected:
            console.print(f"[dim]ignored: {' '.join(rejected)}[/dim]")
        console.print(render(session))

    logger.info(f"Terminal session ended at {session.engine.equation!r}")
    return 0


def main():
    """Console script entry point."""
    sys.exit(run(sys.argv[1:]))
