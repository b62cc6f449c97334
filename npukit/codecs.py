"""Choosing an image codec from a file's contents or name, and loading and saving images."""

from __future__ import annotations

import os
import re

import numpy as np

from .bmp import BmpDecoder, BmpEncoder, BmpFormatError
from .imgtypes import ImreadMode

_DECODERS = (BmpDecoder,)
_ENCODERS = (BmpEncoder,)

_MAX_EXT_LEN = 128
_ALNUM_RUN = re.compile(r"[A-Za-z0-9]*")


class CodecNotFoundError(Exception):
    """Raised when no registered codec can handle a file."""


def _signature_length() -> int:
    return max((len(cls.signature) for cls in _DECODERS), default=0)


def find_decoder(filename):
    """Return a decoder for ``filename`` chosen by its leading bytes, or None."""
    path = os.fspath(filename)
    try:
        with open(path, "rb") as fh:
            signature = fh.read(_signature_length())
    except OSError:
        return None
    for cls in _DECODERS:
        decoder = cls(path)
        if decoder.check_signature(signature):
            return decoder
    return None


def _extension(name: str) -> str | None:
    if len(name) <= 1:
        return None
    dot = name.rfind(".")
    if dot < 0:
        return None
    match = _ALNUM_RUN.match(name, dot + 1)
    return match.group(0)[:_MAX_EXT_LEN]


def _described_extensions(description: str):
    paren = description.find("(")
    if paren < 0:
        return
    for match in re.finditer(r"\.([A-Za-z0-9]*)", description[paren + 1 :]):
        yield match.group(1)


def find_encoder(filename):
    """Return an encoder for ``filename`` chosen by its extension, or None."""
    path = os.fspath(filename)
    ext = _extension(path)
    if ext is None:
        return None
    wanted = ext.lower()
    for cls in _ENCODERS:
        if any(candidate.lower() == wanted for candidate in _described_extensions(cls.description)):
            return cls(path)
    return None


def imread(filename, flags=ImreadMode.COLOR) -> np.ndarray:
    """Load an image as an array of shape (height, width, channels).

    The result has three channels when colour is requested, or when any
    colour is allowed and the file holds colour; otherwise it has one.
    """
    decoder = find_decoder(filename)
    if decoder is None:
        raise CodecNotFoundError("Decoder not found for the given image.")
    with decoder:
        if not decoder.read_header():
            raise BmpFormatError(f"unsupported image layout: {decoder.filename}")
        flags = int(flags)
        if flags & ImreadMode.COLOR or (flags & ImreadMode.ANYCOLOR and decoder.channels > 1):
            channels = 3
        else:
            channels = 1
        return decoder.read_data(channels)


def imwrite(filename, image) -> bool:
    """Save ``image`` in the format named by the file's extension."""
    encoder = find_encoder(filename)
    if encoder is None:
        raise CodecNotFoundError("Encoder not found for the given image.")
    return encoder.write(image)