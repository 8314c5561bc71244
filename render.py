"""Terminal output: color palette, aligned report table and message lines."""

import re
from typing import List, Sequence, Tuple

Segment = Tuple[str, Tuple[str, ...]]
Cell = List[Segment]

COLUMN_GAP = '  '

WARNING_PACKAGE_PATTERN = re.compile(r'"(@?[^@"]+)@[^"]*"')


class Colors:
    RED = '\x1B[38;5;9m'      # red - bright red
    GREEN = '\x1B[38;5;10m'   # green - bright green
    YELLOW = '\x1B[33m'       # yellow - standard yellow
    PURPLE = '\x1B[38;5;141m' # purple2 - light purple
    GRAY = '\x1B[38;5;242m'   # grey - medium gray

    # Style modifiers
    UNDERLINE = '\x1B[4m'
    END = '\x1B[0m'


STYLES = {
    'required': Colors.RED,
    'advisory': Colors.YELLOW,
    'muted': Colors.GRAY,
    'wanted': Colors.GREEN,
    'latest': Colors.PURPLE,
    'emphasis': Colors.UNDERLINE,
    'header': Colors.UNDERLINE,
    'error': Colors.RED,
    'field': Colors.PURPLE,
    'highlight': Colors.YELLOW,
    'success': Colors.GREEN,
}


def paint(text: str, styles: Sequence[str], color=True) -> str:
    """Wrap text in the escape sequences of the given style names."""
    if not color or not styles or not text:
        return text
    codes = ''.join(STYLES[style] for style in styles)
    return f"{codes}{text}{Colors.END}"


def plain(text: str, *styles: str) -> Cell:
    return [(text, tuple(styles))]


def cell_width(cell: Cell) -> int:
    return sum(len(text) for text, _ in cell)


def render_cell(cell: Cell, color=True) -> str:
    return ''.join(paint(text, styles, color) for text, styles in cell)


def render_table(titles: Sequence[str], rows: Sequence[Sequence[Cell]], color=True) -> List[str]:
    """Lay out a header and rows as left-aligned columns.

    Widths are measured on the visible text, so escape sequences do not shift
    the columns. Trailing padding is removed from every line.
    """
    header = [plain(title, 'header') for title in titles]
    table = [header] + [list(row) for row in rows]

    widths = [max(cell_width(row[index]) for row in table) for index in range(len(titles))]

    lines = []
    for row in table:
        parts = []
        for index, cell in enumerate(row):
            padding = ' ' * (widths[index] - cell_width(cell))
            parts.append(render_cell(cell, color) + padding)
        lines.append(COLUMN_GAP.join(parts).rstrip())
    return lines


def format_summary(count: int) -> str:
    if count == 1:
        return "1 outdated dependency found:"
    return f"{count} outdated dependencies found:"


def format_up_to_date(color=True) -> str:
    return paint("All dependencies are up-to-date.", ('success',), color)


def format_warning(message: str, color=True) -> str:
    """Highlight the package name of an ineffective ignore filter warning."""
    match = WARNING_PACKAGE_PATTERN.search(message)
    if not match or not color:
        return message
    start, end = match.span(1)
    return message[:start] + paint(match.group(1), ('highlight',), color) + message[end:]


def format_source_error(error, color=True) -> str:
    """Report a failed npm call: npm's diagnostic fields, or the message and raw output."""
    lines = [paint("Error while gathering outdated dependencies:", ('error',), color), '']

    if getattr(error, 'details', None):
        for key, value in error.details.items():
            lines.append(f"{paint(str(key), ('field',), color)} {value}")
    else:
        lines.append(str(error))
        output = getattr(error, 'output', None)
        if output:
            lines.append('')
            lines.append(output)

    return '\n'.join(lines)


def format_error(message: str, color=True) -> str:
    return paint(message, ('error',), color)
