"""Output formatting helpers: byte sizes, mode strings and aligned columns."""

import stat
from typing import Iterable, Sequence

BYTE_UNITS = ["B", "kB", "MB", "GB", "TB", "PB", "EB"]

# Type bits used to render the leading character of a mode string
KIND_TYPE_BITS = {
    "file": stat.S_IFREG,
    "hardlink": stat.S_IFREG,
    "dir": stat.S_IFDIR,
    "symlink": stat.S_IFLNK,
    "char": stat.S_IFCHR,
    "block": stat.S_IFBLK,
    "fifo": stat.S_IFIFO,
}


def human_bytes(size: int) -> str:
    """Render a byte count in SI units, e.g. 1000 -> "1.0 kB".

    Values are rounded to one decimal place; one decimal is shown below 10
    and none above, so 1234567 renders as "1.2 MB" and 12345678 as "12 MB".
    """
    if size < 10:
        return f"{size} B"

    exponent = 0
    while exponent < len(BYTE_UNITS) - 1 and size >= 1000 ** (exponent + 1):
        exponent += 1

    value = int(size / 1000**exponent * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {BYTE_UNITS[exponent]}"
    return f"{value:.0f} {BYTE_UNITS[exponent]}"


def file_mode_string(mode: int, kind: str) -> str:
    """Convert tar permission bits and entry kind to an ls-style string.

    Examples:
        0o755, "dir"     -> "drwxr-xr-x"
        0o644, "file"    -> "-rw-r--r--"
        0o4755, "file"   -> "-rwsr-xr-x"
        0o777, "symlink" -> "lrwxrwxrwx"
    """
    type_bits = KIND_TYPE_BITS.get(kind, stat.S_IFREG)
    return stat.filemode(type_bits | stat.S_IMODE(mode))


def format_table(rows: Iterable[Sequence[str]], padding: int = 2) -> str:
    """Align rows into space-padded columns.

    Every cell except the last of each row is padded to the widest cell in
    its column plus ``padding`` spaces. The result ends with a newline for
    every row.
    """
    rows = [list(row) for row in rows]
    widths: list[int] = []
    for row in rows:
        for index, cell in enumerate(row[:-1]):
            if index == len(widths):
                widths.append(0)
            widths[index] = max(widths[index], len(cell))

    lines = []
    for row in rows:
        cells = [cell.ljust(widths[i] + padding) for i, cell in enumerate(row[:-1])]
        if row:
            cells.append(row[-1])
        lines.append("".join(cells) + "\n")
    return "".join(lines)
