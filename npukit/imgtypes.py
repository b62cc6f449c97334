"""Basic image types shared by the image codecs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ImreadMode(IntEnum):
    """Flags that control how an image is loaded."""

    UNCHANGED = -1
    """Return the loaded image as is, alpha channel included."""
    GRAYSCALE = 0
    """Always convert to a single channel grayscale image."""
    COLOR = 1
    """Always convert to a three channel BGR image."""
    ANYCOLOR = 4
    """Read the image in any possible colour format."""


@dataclass
class Size:
    """A width and height pair."""

    width: int = 0
    height: int = 0

    def __iadd__(self, other: Size) -> Size:
        if not isinstance(other, Size):
            return NotImplemented
        self.width += other.width
        self.height += other.height
        return self