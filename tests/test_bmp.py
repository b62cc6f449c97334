import struct

import numpy as np
import pytest

from npukit.bmp import (
    BmpCompression,
    BmpDecoder,
    BmpEncoder,
    BmpFormatError,
    PaletteEntry,
    bgr_to_gray,
    fill_gray_palette,
    is_color_palette,
    palette_to_gray,
)


def _random_image(shape, seed=0):
    return np.random.default_rng(seed).integers(0, 256, size=shape, dtype=np.uint8)


def _write(path, image):
    assert BmpEncoder(path).write(image) is True
    return path.read_bytes()


def _bitfields_bmp(path, pixels_bgra):
    height, width, _ = pixels_bgra.shape
    header = struct.pack(
        "<iiiHHiiiiii",
        56, width, height, 1, 32, BmpCompression.BITFIELDS, 0, 0, 0, 0, 0,
    )
    header += struct.pack("<IIII", 0x00FF0000, 0x0000FF00, 0x000000FF, 0xFF000000)
    offset = 14 + len(header)
    body = b"".join(row.tobytes() for row in pixels_bgra[::-1])
    data = b"BM" + struct.pack("<iii", offset + len(body), 0, offset) + header + body
    path.write_bytes(data)


@pytest.mark.parametrize(
    "value, name", [(0, "RGB"), (1, "RLE8"), (2, "RLE4"), (3, "BITFIELDS")]
)
def test_compression_lookup_by_value(value, name):
    assert BmpCompression(value) is BmpCompression[name]


def test_check_signature(tmp_path):
    decoder = BmpDecoder(tmp_path / "x.bmp")
    assert decoder.check_signature(b"BM\x00\x00") is True
    assert decoder.check_signature("BMxyz") is True
    assert decoder.check_signature(b"\x89PNG") is False
    assert decoder.check_signature(b"B") is False


def test_fill_gray_palette():
    palette = fill_gray_palette(8)
    assert len(palette) == 256
    assert all(e.b == e.g == e.r == i and e.a == 0 for i, e in enumerate(palette))
    assert [e.b for e in fill_gray_palette(1)] == [0, 255]


def test_is_color_palette():
    gray = fill_gray_palette(8)
    assert is_color_palette(gray, 8) is False
    colored = list(gray)
    colored[10] = PaletteEntry(1, 2, 3)
    assert is_color_palette(colored, 8) is True
    assert is_color_palette(colored, 2) is False


def test_palette_to_gray_identity_for_gray_ramp():
    table = palette_to_gray(fill_gray_palette(8))
    assert np.array_equal(table, np.arange(256, dtype=np.uint8))


def test_bgr_to_gray_extremes_and_arrays():
    assert bgr_to_gray(0, 0, 0) == 0
    assert bgr_to_gray(255, 255, 255) == 255
    values = bgr_to_gray(np.array([0, 255]), np.array([0, 255]), np.array([0, 255]))
    assert list(values) == [0, 255]


def test_gray_round_trip(tmp_path):
    image = _random_image((3, 5))
    path = tmp_path / "gray.bmp"
    _write(path, image)
    with BmpDecoder(path) as decoder:
        assert decoder.read_header() is True
        assert (decoder.width, decoder.height, decoder.channels) == (5, 3, 1)
        assert decoder.bpp == 8
        out = decoder.read_data(1)
    assert out.shape == (3, 5, 1)
    assert np.array_equal(out[:, :, 0], image)


def test_color_round_trip(tmp_path):
    image = _random_image((4, 3, 3), seed=1)
    path = tmp_path / "color.bmp"
    _write(path, image)
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    assert decoder.channels == 3
    assert np.array_equal(decoder.read_data(3), image)


def test_four_channel_written_as_rgb_reads_three_channels(tmp_path):
    image = _random_image((2, 3, 4), seed=2)
    path = tmp_path / "rgba.bmp"
    _write(path, image)
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    assert decoder.bpp == 32
    assert decoder.channels == 3
    assert np.array_equal(decoder.read_data(3), image[:, :, :3])


def test_color_read_as_gray(tmp_path):
    image = _random_image((2, 4, 3), seed=3)
    path = tmp_path / "c.bmp"
    _write(path, image)
    decoder = BmpDecoder(path)
    decoder.read_header()
    out = decoder.read_data(1)[:, :, 0]
    expected = bgr_to_gray(image[:, :, 0], image[:, :, 1], image[:, :, 2])
    assert np.array_equal(out, expected.astype(np.uint8))


def test_header_fields(tmp_path):
    image = _random_image((3, 1, 3), seed=4)
    data = _write(tmp_path / "h.bmp", image)
    assert data[:2] == b"BM"
    file_size, reserved, offset = struct.unpack("<iii", data[2:14])
    assert file_size == len(data)
    assert reserved == 0
    assert offset == 54
    assert (len(data) - offset) % 4 == 0


def test_gray_file_has_palette(tmp_path):
    data = _write(tmp_path / "g.bmp", _random_image((2, 2)))
    offset = struct.unpack("<i", data[10:14])[0]
    assert offset == 54 + 1024
    assert data[54:58] == bytes(4)


def test_top_down_bitmap(tmp_path):
    image = _random_image((3, 4, 3), seed=5)
    path = tmp_path / "td.bmp"
    data = bytearray(_write(path, image))
    offset = struct.unpack("<i", data[10:14])[0]
    step = (len(data) - offset) // 3
    rows = [bytes(data[offset + i * step : offset + (i + 1) * step]) for i in range(3)]
    data[offset:] = b"".join(reversed(rows))
    data[22:26] = struct.pack("<i", -3)
    path.write_bytes(bytes(data))
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    assert decoder.bottom_up is False
    assert decoder.height == 3
    assert np.array_equal(decoder.read_data(3), image)


def test_bitfields_with_alpha(tmp_path):
    pixels = _random_image((2, 3, 4), seed=6)
    path = tmp_path / "bf.bmp"
    _bitfields_bmp(path, pixels)
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    assert decoder.channels == 4
    assert decoder.rgba_bit_offset == [16, 8, 0, 24]
    assert np.array_equal(decoder.read_data(4), pixels)


def test_invalid_compression_raises(tmp_path):
    path = tmp_path / "bad.bmp"
    data = bytearray(_write(path, _random_image((2, 2, 3))))
    data[30:34] = struct.pack("<i", 7)
    path.write_bytes(bytes(data))
    with pytest.raises(BmpFormatError):
        BmpDecoder(path).read_header()


def test_truncated_header_raises(tmp_path):
    path = tmp_path / "short.bmp"
    data = _write(path, _random_image((2, 2, 3)))
    path.write_bytes(data[:20])
    with pytest.raises(BmpFormatError):
        BmpDecoder(path).read_header()


def test_truncated_pixels_raise(tmp_path):
    path = tmp_path / "short.bmp"
    data = _write(path, _random_image((4, 4, 3)))
    path.write_bytes(data[:-5])
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    with pytest.raises(BmpFormatError):
        decoder.read_data(3)


def test_unsupported_header_size_returns_false(tmp_path):
    path = tmp_path / "odd.bmp"
    data = bytearray(_write(path, _random_image((2, 2, 3))))
    data[14:18] = struct.pack("<i", 20)
    path.write_bytes(bytes(data))
    decoder = BmpDecoder(path)
    assert decoder.read_header() is False
    assert (decoder.width, decoder.height, decoder.offset) == (-1, -1, -1)
    with pytest.raises(BmpFormatError):
        decoder.read_data(3)


def test_read_data_without_header_raises(tmp_path):
    with pytest.raises(BmpFormatError):
        BmpDecoder(tmp_path / "none.bmp").read_data(1)


def test_sixteen_bit_rgb_is_unsupported_for_data(tmp_path):
    path = tmp_path / "16.bmp"
    data = bytearray(_write(path, _random_image((2, 2, 3))))
    data[28:30] = struct.pack("<H", 16)
    path.write_bytes(bytes(data))
    decoder = BmpDecoder(path)
    assert decoder.read_header() is True
    assert decoder.bpp == 15
    with pytest.raises(BmpFormatError):
        decoder.read_data(3)


def test_encoder_rejects_bad_dimensions(tmp_path):
    with pytest.raises(ValueError):
        BmpEncoder(tmp_path / "x.bmp").write(np.zeros(4, dtype=np.uint8))