from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Tuple


class Orientation(Enum):
    """Placement axis of a domino."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def letter(self) -> str:
        return "h" if self is Orientation.HORIZONTAL else "v"

    @property
    def delta(self) -> Tuple[int, int]:
        # Offset of the second covered cell from the anchor
        return (0, 1) if self is Orientation.HORIZONTAL else (1, 0)


ORIENTATION_BY_LETTER = {o.letter: o for o in Orientation}


@dataclass(frozen=True)
class Move:
    """Engine-internal move representation.

    Attributes:
        row (int): Anchor row (0-based).
        col (int): Anchor column (0-based).
        orientation (Orientation): Horizontal moves cover ``(row, col)`` and
            ``(row, col + 1)``; vertical moves cover ``(row, col)`` and
            ``(row + 1, col)``.
    """

    row: int
    col: int
    orientation: Orientation

    def cells(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """Return the two ``(row, col)`` cells covered by the domino."""
        dr, dc = self.orientation.delta
        return (self.row, self.col), (self.row + dr, self.col + dc)

    def to_str(self) -> str:
        """Serialize the move into its text notation.

        Returns:
            str: Move encoded like ``"h0,1"`` or ``"v2,3"``.
        """
        return f"{self.orientation.letter}{self.row},{self.col}"


def parse_move(text: str) -> Move:
    """Parse a move in text notation.

    Args:
        text (str): Move encoded as ``h<row>,<col>`` or ``v<row>,<col>``.

    Returns:
        Move: Parsed move.

    Raises:
        ValueError: If the orientation letter or coordinates are invalid.
    """
    s = text.strip().lower()
    if len(s) < 4 or s[0] not in ORIENTATION_BY_LETTER:
        raise ValueError(f"invalid move: {text!r}")
    parts = s[1:].split(",")
    if len(parts) != 2:
        raise ValueError(f"invalid move: {text!r}")
    try:
        row = int(parts[0])
        col = int(parts[1])
    except ValueError as e:
        raise ValueError(f"invalid move coordinates: {text!r}") from e
    if row < 0 or col < 0:
        raise ValueError(f"invalid move coordinates: {text!r}")
    return Move(row, col, ORIENTATION_BY_LETTER[s[0]])


def coerce_move(value: Any) -> Move:
    """Convert a ``Move``, text notation, or mapping into a ``Move``.

    Mappings need ``row`` and ``col`` plus ``orientation`` (or ``direction``)
    set to ``"horizontal"``/``"vertical"`` (``"h"``/``"v"`` also accepted).

    Raises:
        ValueError: If ``value`` cannot be interpreted as a move.
    """
    if isinstance(value, Move):
        return value
    if isinstance(value, str):
        return parse_move(value)
    if isinstance(value, Mapping):
        raw = value.get("orientation", value.get("direction"))
        orientation = _parse_orientation(raw)
        try:
            row = int(value["row"])
            col = int(value["col"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"invalid move: {value!r}") from e
        if row < 0 or col < 0:
            raise ValueError(f"invalid move coordinates: {value!r}")
        return Move(row, col, orientation)
    raise ValueError(f"invalid move: {value!r}")


def _parse_orientation(raw: Any) -> Orientation:
    if isinstance(raw, Orientation):
        return raw
    key = str(raw).strip().lower()
    if key in ORIENTATION_BY_LETTER:
        return ORIENTATION_BY_LETTER[key]
    for o in Orientation:
        if o.value == key:
            return o
    raise ValueError(f"invalid orientation: {raw!r}")
