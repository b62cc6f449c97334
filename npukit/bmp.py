"""Windows bitmap (BMP) reading and writing."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

import numpy as np

_SCALE = 14
_C_B = 1868
_C_G = 9617
_C_R = 4899

_INT_MAX = 2**31 - 1


class BmpCompression(IntEnum):
    """Compression codes found in the bitmap header."""

    RGB = 0
    RLE8 = 1
    RLE4 = 2
    BITFIELDS = 3


class BmpFormatError(Exception):
    """Raised when a bitmap file is malformed or cannot be handled."""


@dataclass(frozen=True)
class PaletteEntry:
    """One colour table entry, in the on-disk blue, green, red, alpha order."""

    b: int = 0
    g: int = 0
    r: int = 0
    a: int = 0

    def to_bytes(self) -> bytes:
        return bytes((self.b, self.g, self.r, self.a))


_EMPTY_ENTRY = PaletteEntry()


def _descale(value, n: int = _SCALE):
    return (value + (1 << (n - 1))) >> n


def bgr_to_gray(blue, green, red):
    """Convert blue, green and red intensities to gray.

    Works on plain integers and on numpy arrays alike.
    """
    if all(isinstance(v, (int, np.integer)) for v in (blue, green, red)):
        return int(_descale(int(blue) * _C_B + int(green) * _C_G + int(red) * _C_R))
    b = np.asarray(blue, dtype=np.int64)
    g = np.asarray(green, dtype=np.int64)
    r = np.asarray(red, dtype=np.int64)
    return _descale(b * _C_B + g * _C_G + r * _C_R)


def is_color_palette(palette: Sequence[PaletteEntry], bpp: int) -> bool:
    """Return True if any of the first ``2**bpp`` entries is not a gray."""
    return any(e.b != e.g or e.b != e.r for e in palette[: 1 << bpp])


def palette_to_gray(palette: Sequence[PaletteEntry]) -> np.ndarray:
    """Map palette entries to gray levels, as a 256-entry lookup table."""
    table = np.zeros(256, dtype=np.uint8)
    for index, entry in enumerate(palette[:256]):
        table[index] = bgr_to_gray(entry.b, entry.g, entry.r)
    return table


def fill_gray_palette(bpp: int) -> list[PaletteEntry]:
    """Build an evenly spaced gray ramp with ``2**bpp`` entries."""
    length = 1 << bpp
    if length < 2:
        raise ValueError("a gray palette needs at least two entries")
    return [
        PaletteEntry(v, v, v, 0)
        for v in (i * 255 // (length - 1) for i in range(length))
    ]


class BmpDecoder:
    """Reader for uncompressed Windows bitmaps."""

    signature = b"BM"

    def __init__(self, filename) -> None:
        self.filename = os.fspath(filename)
        self.width = 0
        self.height = 0
        self.channels = 1
        self.bpp = 0
        self.offset = -1
        self.compression = BmpCompression.RGB
        self.bottom_up = False
        self.rgba_mask = [0, 0, 0, 0]
        self.rgba_bit_offset = [-1, -1, -1, -1]
        self.palette: list[PaletteEntry] = [_EMPTY_ENTRY] * 256
        self._data: bytes | None = None
        self._pos = 0

    def __enter__(self) -> BmpDecoder:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check_signature(self, signature) -> bool:
        """Return True if ``signature`` starts with the bitmap magic bytes."""
        if isinstance(signature, str):
            signature = signature.encode("latin-1")
        return bytes(signature[: len(self.signature)]) == self.signature

    def close(self) -> None:
        """Release the file contents."""
        self._data = None
        self._pos = 0

    # -- stream helpers -------------------------------------------------

    def _read(self, count: int) -> bytes:
        if self._data is None:
            raise BmpFormatError("stream is not open")
        if count < 0 or self._pos < 0 or self._pos + count > len(self._data):
            raise BmpFormatError("unexpected end of file")
        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return chunk

    def _skip(self, count: int) -> None:
        self._pos += count

    def _dword(self) -> int:
        return struct.unpack("<i", self._read(4))[0]

    def _udword(self) -> int:
        return struct.unpack("<I", self._read(4))[0]

    def _word(self) -> int:
        return struct.unpack("<H", self._read(2))[0]

    # -- header ---------------------------------------------------------

    def _reset_masks(self) -> None:
        self.rgba_mask = [0, 0, 0, 0]
        self.rgba_bit_offset = [-1, -1, -1, -1]

    def _read_palette(self, count: int, entry_size: int) -> list[PaletteEntry]:
        raw = self._read(count * entry_size)
        entries = [
            PaletteEntry(raw[i], raw[i + 1], raw[i + 2], raw[i + 3] if entry_size == 4 else 0)
            for i in range(0, len(raw), entry_size)
        ]
        return entries + [_EMPTY_ENTRY] * (256 - len(entries))

    def _parse_header(self) -> tuple[bool, bool]:
        result = False
        is_color = False
        self._skip(10)
        self.offset = self._dword()
        size = self._dword()
        if size <= 0:
            raise BmpFormatError(f"invalid header size: {size}")
        self._reset_masks()
        if size >= 36:
            self.width = self._dword()
            self.height = self._dword()
            self.bpp = self._udword() >> 16
            code = self._dword()
            if not 0 <= code <= BmpCompression.BITFIELDS:
                raise BmpFormatError(f"invalid compression code: {code}")
            self.compression = BmpCompression(code)
            self._skip(12)
            clrused = self._dword()
            if self.bpp == 32 and self.compression == BmpCompression.BITFIELDS and size >= 56:
                self._skip(4)
                for index in range(4):
                    mask = self._udword()
                    self.rgba_mask[index] = mask
                    if mask:
                        self.rgba_bit_offset[index] = (mask & -mask).bit_length() - 1
                self._skip(size - 56)
            else:
                self._skip(size - 36)
            bpp, code = self.bpp, self.compression
            supported = (
                (bpp in (1, 4, 8, 24, 32) and code == BmpCompression.RGB)
                or (bpp in (16, 32) and code in (BmpCompression.RGB, BmpCompression.BITFIELDS))
                or (bpp == 4 and code == BmpCompression.RLE4)
                or (bpp == 8 and code == BmpCompression.RLE8)
            )
            if self.width > 0 and self.height != 0 and supported:
                is_color = True
                result = True
                if bpp <= 8:
                    if not 0 <= clrused <= 256:
                        raise BmpFormatError(f"invalid palette size: {clrused}")
                    self.palette = self._read_palette(clrused or (1 << bpp), 4)
                    is_color = is_color_palette(self.palette, bpp)
                elif bpp == 16 and code == BmpCompression.BITFIELDS:
                    red, green, blue = self._udword(), self._udword(), self._udword()
                    if (blue, green, red) == (0x1F, 0x3E0, 0x7C00):
                        self.bpp = 15
                    elif (blue, green, red) != (0x1F, 0x7E0, 0xF800):
                        result = False
                elif bpp == 16 and code == BmpCompression.RGB:
                    self.bpp = 15
        elif size == 12:
            self.width = self._word()
            self.height = self._word()
            self.bpp = self._udword() >> 16
            self.compression = BmpCompression.RGB
            if self.width > 0 and self.height != 0 and self.bpp in (1, 4, 8, 24, 32):
                if self.bpp <= 8:
                    self.palette = self._read_palette(1 << self.bpp, 3)
                result = True
        return result, is_color

    def read_header(self) -> bool:
        """Parse the file header; return False if the layout is not supported."""
        with open(self.filename, "rb") as fh:
            self._data = fh.read()
        self._pos = 0
        try:
            result, is_color = self._parse_header()
        except BmpFormatError:
            self.close()
            raise
        if is_color:
            rgba = self.bpp == 32 and self.compression != BmpCompression.RGB
            self.channels = 4 if rgba else 3
        else:
            self.channels = 1
        self.bottom_up = self.height > 0
        self.height = abs(self.height)
        if not result:
            self.offset = -1
            self.width = self.height = -1
            self.close()
        return result

    # -- pixel data -----------------------------------------------------

    def read_data(self, channels: int) -> np.ndarray:
        """Decode the pixels into an array of shape (height, width, channels)."""
        if channels < 1:
            raise ValueError("channels must be positive")
        if self.offset < 0 or self._data is None:
            raise BmpFormatError("no valid header has been read")
        if self.bpp not in (8, 24, 32):
            raise BmpFormatError(f"unsupported bit depth: {self.bpp}")
        width, height = self.width, self.height
        out = np.zeros((height, width * channels), dtype=np.uint8)
        color = channels > 1
        bits = 16 if self.bpp == 15 else self.bpp
        src_pitch = ((width * bits + 7) // 8 + 3) & -4
        gray_palette = np.zeros(256, dtype=np.uint8)
        if not color and self.bpp <= 8:
            gray_palette = palette_to_gray(self.palette[: 1 << self.bpp])
        if self.bpp == 8 and self.compression != BmpCompression.RGB:
            return out.reshape(height, width, channels)

        self._pos = self.offset
        rows = range(height - 1, -1, -1) if self.bottom_up else range(height)
        for y in rows:
            src = np.frombuffer(self._read(src_pitch), dtype=np.uint8)
            row = out[y]
            if self.bpp == 32:
                self._decode_32(src, row, channels)
            elif self.bpp == 24:
                self._decode_24(src, row, color)
            elif not color:
                row[:width] = gray_palette[src[:width]]
        return out.reshape(height, width, channels)

    def _decode_32(self, src: np.ndarray, row: np.ndarray, channels: int) -> None:
        width = self.width
        pixels = src[: width * 4].reshape(width, 4).astype(np.int64)
        if channels == 1:
            row[:width] = bgr_to_gray(pixels[:, 0], pixels[:, 1], pixels[:, 2])
        elif channels == 3:
            row[:] = pixels[:, :3].reshape(-1)
        elif channels == 4:
            offsets = self.rgba_bit_offset
            if all(offset >= 0 for offset in offsets[:3]):
                values = (
                    pixels[:, 0] | (pixels[:, 1] << 8) | (pixels[:, 2] << 16) | (pixels[:, 3] << 24)
                )
                target = row.reshape(width, 4)
                for dest, idx in ((0, 2), (1, 1), (2, 0)):
                    target[:, dest] = ((self.rgba_mask[idx] & values) >> offsets[idx]) & 0xFF
                if offsets[3] >= 0:
                    target[:, 3] = ((self.rgba_mask[3] & values) >> offsets[3]) & 0xFF
                else:
                    target[:, 3] = 255
            else:
                row[:] = src[: width * 4]

    def _decode_24(self, src: np.ndarray, row: np.ndarray, color: bool) -> None:
        width = self.width
        if not color:
            pixels = src[: width * 3].reshape(width, 3).astype(np.int64)
            row[:width] = bgr_to_gray(pixels[:, 0], pixels[:, 1], pixels[:, 2])
        else:
            count = min(width * 3, row.size)
            row[:count] = src[:count]


class BmpEncoder:
    """Writer for uncompressed Windows bitmaps."""

    description = "Windows bitmap (*.bmp;*.dib)"

    def __init__(self, filename) -> None:
        self.filename = os.fspath(filename)

    def write(self, image) -> bool:
        """Write ``image`` (height x width, or height x width x channels)."""
        pixels = np.asarray(image)
        if pixels.ndim == 2:
            pixels = pixels[:, :, np.newaxis]
        if pixels.ndim != 3:
            raise ValueError("image must have two or three dimensions")
        height, width, channels = pixels.shape
        row_bytes = width * channels
        file_step = (row_bytes + 3) & -4
        palette_size = 0 if channels > 1 else 1024
        header_size = 14 + 40 + palette_size
        file_size = file_step * height + header_size
        if file_size > _INT_MAX:
            raise BmpFormatError("image is too large for a bitmap file")

        out = bytearray(b"BM")
        out += struct.pack("<iii", file_size, 0, header_size)
        out += struct.pack(
            "<iiiHHiiiiii",
            40, width, height, 1, channels << 3, BmpCompression.RGB, 0, 0, 0, 0, 0,
        )
        if channels == 1:
            out += b"".join(entry.to_bytes() for entry in fill_gray_palette(8))
        rows = pixels.reshape(height, row_bytes).astype(np.uint8)
        padding = bytes(file_step - row_bytes)
        for row in rows[::-1]:
            out += row.tobytes()
            out += padding
        with open(self.filename, "wb") as fh:
            fh.write(out)
        return True