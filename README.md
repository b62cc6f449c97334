# npukit

Small tools around a matrix-accelerator workflow, built on `numpy`:

- `npukit.bmp` and `npukit.codecs` — read and write Windows bitmap (`.bmp`)
  files as `numpy` arrays of shape `(height, width, channels)`.
- `npukit.imgtypes` — the `ImreadMode` flags and a `Size` pair.
- `npukit.gemmini` — `Activation`, `ConfigCommand` and `Dataflow` enums,
  a few hardware constants, and `accumulator_address`.
- `npukit.scratchpad` — block allocators for the accelerator's scratchpad
  and accumulator memories.
- `npukit.workloads` — the matrix-multiplication and convolution benchmark
  cases, their input tensors, and a command that runs them on the host.

## Installation

```
pip install npukit
```

To run the test suite:

```
pip install "npukit[test]"
pytest
```

## Reading and writing images

```python
from npukit.codecs import imread, imwrite
from npukit.imgtypes import ImreadMode

image = imread("photo.bmp", ImreadMode.COLOR)      # uint8 array, BGR order
gray = imread("photo.bmp", ImreadMode.GRAYSCALE)   # shape (h, w, 1)

imwrite("copy.bmp", image)
```

`imread` chooses a decoder from the file's first bytes (`find_decoder`)
and returns three channels when `COLOR` is set, or when `ANYCOLOR` is set
and the file holds colour; otherwise one channel. The default flag is
`COLOR`. `imwrite` chooses an encoder from the file extension
(`find_encoder`; `.bmp` and `.dib` are recognised, case-insensitively).
When no codec fits, `CodecNotFoundError` is raised. A malformed or
unsupported bitmap raises `BmpFormatError`.

The decoder and encoder can be used directly; the decoder is also a
context manager that releases the file contents on exit:

```python
from npukit.bmp import BmpDecoder, BmpEncoder

with BmpDecoder("photo.bmp") as decoder:
    if decoder.read_header():
        pixels = decoder.read_data(3)

BmpEncoder("out.bmp").write(pixels)
```

What the bitmap code handles:

- `read_header` accepts 1/4/8/24/32-bit uncompressed headers, 16/32-bit
  bitfield headers, and 4-bit RLE4 / 8-bit RLE8 headers, in both the
  40-byte-and-larger and the 12-byte core header forms. It returns
  `False` for layouts outside that set.
- `read_data` decodes only 8-, 24- and 32-bit pixel data; other depths
  raise `BmpFormatError`. 24- and 32-bit images decode to gray, BGR or
  (for 32-bit) BGRA, honouring bitfield masks. 8-bit palette images
  decode only to a single gray channel; asking for colour from them, or
  reading RLE8 data, yields an all-zero array.
- `BmpEncoder.write` takes a 2-D array or a 3-D array with 1, 3 or 4
  channels and writes an uncompressed bottom-up bitmap: 8-bit with a gray
  palette for one channel, 24-bit or 32-bit otherwise.

Helper functions `bgr_to_gray`, `is_color_palette`, `palette_to_gray` and
`fill_gray_palette` are available in `npukit.bmp`.

## Gemmini helpers

```python
from npukit.gemmini import Activation, Dataflow, accumulator_address

addr = accumulator_address(16, accumulate=True)   # bit 31 and bit 30 set
```

`accumulator_address` raises `ValueError` for rows outside `0 .. 2**30 - 1`.

## Scratchpad allocation

```python
from npukit.scratchpad import AccumulatorAllocator, ScratchpadAllocator

spad = ScratchpadAllocator(heap_size=100000, dim=16)
a = spad.malloc(16 * 16 * 4)        # first row of the block
spad.free(a)

acc = AccumulatorAllocator(heap_size=100000, dim=16)
res = acc.malloc(16 * 16 * 4 * 4)   # address carries bit 31
acc.free(res)
```

Sizes are in elements and are rounded up to whole rows of `dim`. The
scratchpad allocator is first-fit and reuses freed blocks that are large
enough. The accumulator allocator is a stack: freeing the top block also
releases any free blocks beneath it. A non-positive size, or running out
of block descriptors (`heap_size // 9`), raises `AllocationError`;
freeing an unknown address does nothing. `reset()` forgets every
allocation.

`exo_matmul_inputs(rows, inner, cols)` builds the int8 operands
`x[i, j] = i + 2*j` and `y[i, j] = 3*j + i` (defaults 12544 × 64 and
64 × 256).

## Benchmark workloads

```python
from npukit.workloads import Dialect, conv_case, conv_inputs, matmul_case, matmul_inputs

case = matmul_case(3)                          # 128 x 128 x 128
lhs, rhs, out = matmul_inputs(case, Dialect.LINALG)
lhs, rhs, out, bias = matmul_inputs(case, Dialect.GEMMINI)

conv = conv_case(1)                            # 3x3 kernel on 256x256 input
image, weights, out = conv_inputs(conv, Dialect.LINALG)
```

Matmul cases 1–6 are square sizes 32, 64, 128, 256, 512 and 1024.
Convolution cases 1–6 use a 256×256 single-channel input with kernels of
3, 5, 7, 9, 11 and 13. Any other case number raises `ValueError`.

From the command line, the workload is computed on the host with `numpy`
and its size and elapsed time in nanoseconds are printed:

```
npukit-workloads --matmul 2 --dialect linalg
npukit-workloads --conv 1 --dialect gemmini
```

`--dialect` takes `none`, `linalg` (the default) or `gemmini`; with
`none`, nothing is run.

## What this package does not do

- It reads and writes BMP only; there is no JPEG or PNG codec.
- It does not compile, lower or translate programs for the accelerator,
  and it does not talk to accelerator hardware or a simulator. The
  workloads run on the host CPU, and the reported times are host times,
  not accelerator cycle counts.