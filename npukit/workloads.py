"""Matrix multiply and convolution benchmark workloads.

Each workload comes in two operand layouts. The ``linalg`` layout uses
NCHW/FCHW tensors. The ``gemmini`` layout uses NHWC input, im2col weights
and an explicit bias. A reference computation runs on the host so the
workloads can be timed and checked.
"""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


class Dialect(IntEnum):
    """Which operand layout a workload is built for."""

    NONE = 0
    LINALG = 1
    GEMMINI = 2


@dataclass(frozen=True)
class MatmulCase:
    """An ``i x k`` by ``k x j`` matrix multiplication."""

    index: int
    i: int
    k: int
    j: int


@dataclass(frozen=True)
class ConvCase:
    """A single-image, single-channel, stride-one convolution."""

    index: int
    batch_size: int
    in_channels: int
    out_channels: int
    in_dim: int
    kernel_dim: int
    out_dim: int


_MATMUL_DIMS = {1: 32, 2: 64, 3: 128, 4: 256, 5: 512, 6: 1024}
_CONV_SHAPES = {1: (3, 254), 2: (5, 252), 3: (7, 250), 4: (9, 248), 5: (11, 246), 6: (13, 244)}
_CONV_IN_DIM = 256

_INT8_MIN, _INT8_MAX = -128, 127


def matmul_case(index: int) -> MatmulCase:
    """Return the numbered matrix multiplication case (1 to 6)."""
    try:
        dim = _MATMUL_DIMS[index]
    except KeyError:
        raise ValueError("You specify the wrong matmul test case.") from None
    return MatmulCase(index=index, i=dim, k=dim, j=dim)


def conv_case(index: int) -> ConvCase:
    """Return the numbered convolution case (1 to 6)."""
    try:
        kernel_dim, out_dim = _CONV_SHAPES[index]
    except KeyError:
        raise ValueError("You specify the wrong conv test case.") from None
    return ConvCase(
        index=index,
        batch_size=1,
        in_channels=1,
        out_channels=1,
        in_dim=_CONV_IN_DIM,
        kernel_dim=kernel_dim,
        out_dim=out_dim,
    )


def _check_dialect(dialect) -> Dialect:
    dialect = Dialect(dialect)
    if dialect is Dialect.NONE:
        raise ValueError("a workload needs the linalg or gemmini dialect")
    return dialect


def matmul_inputs(case: MatmulCase, dialect=Dialect.LINALG) -> tuple[np.ndarray, ...]:
    """Build the operands of a matmul case.

    For ``linalg``: ``(lhs, rhs, output)``. For ``gemmini``:
    ``(lhs, rhs, output, bias)``, all shaped ``i x k``.
    Left operands are filled with 1, right operands with 2.
    """
    dialect = _check_dialect(dialect)
    if dialect is Dialect.LINALG:
        lhs = np.full((case.i, case.k), 1, dtype=np.int8)
        rhs = np.full((case.k, case.j), 2, dtype=np.int8)
        output = np.zeros((case.i, case.j), dtype=np.int8)
        return lhs, rhs, output
    shape = (case.i, case.k)
    lhs = np.full(shape, 1, dtype=np.int8)
    rhs = np.full(shape, 2, dtype=np.int8)
    output = np.zeros(shape, dtype=np.int8)
    bias = np.zeros(shape, dtype=np.int32)
    return lhs, rhs, output, bias


def conv_inputs(case: ConvCase, dialect=Dialect.LINALG) -> tuple[np.ndarray, ...]:
    """Build the operands of a convolution case.

    For ``linalg``: ``(input, weights, output)`` in NCHW, FCHW and NCHW.
    For ``gemmini``: ``(input, weights, bias, output)`` with NHWC input,
    ``(kernel*kernel, 1)`` weights and a flattened output.
    Input and weights are filled with 1.
    """
    dialect = _check_dialect(dialect)
    k = case.kernel_dim
    if dialect is Dialect.LINALG:
        image = np.ones((case.batch_size, case.in_channels, case.in_dim, case.in_dim), dtype=np.int8)
        weights = np.ones((case.out_channels, case.in_channels, k, k), dtype=np.int8)
        output = np.zeros((case.batch_size, case.out_channels, case.out_dim, case.out_dim), dtype=np.int8)
        return image, weights, output
    image = np.ones((case.batch_size, case.in_dim, case.in_dim, case.in_channels), dtype=np.int8)
    weights = np.ones((k * k, 1), dtype=np.int8)
    bias = np.zeros((case.out_channels,), dtype=np.int32)
    output = np.zeros((case.out_dim * case.out_dim, 1), dtype=np.int8)
    return image, weights, bias, output


def _saturate(values: np.ndarray) -> np.ndarray:
    return np.clip(values, _INT8_MIN, _INT8_MAX).astype(np.int8)


def _run_matmul(case: MatmulCase, dialect: Dialect) -> np.ndarray:
    operands = matmul_inputs(case, dialect)
    lhs, rhs, output = operands[:3]
    product = lhs.astype(np.int32) @ rhs.astype(np.int32)
    if dialect is Dialect.GEMMINI:
        product = product + operands[3]
    output[...] = _saturate(product)
    return output


def _run_conv(case: ConvCase, dialect: Dialect) -> np.ndarray:
    k = case.kernel_dim
    if dialect is Dialect.LINALG:
        image, weights, output = conv_inputs(case, dialect)
        windows = sliding_window_view(image.astype(np.int32), (k, k), axis=(2, 3))
        result = np.einsum("nchwij,fcij->nfhw", windows, weights.astype(np.int32))
        output[...] = _saturate(result)
        return output
    image, weights, bias, output = conv_inputs(case, dialect)
    windows = sliding_window_view(image.astype(np.int32), (k, k), axis=(1, 2))
    columns = windows.transpose(0, 1, 2, 4, 5, 3).reshape(-1, k * k * case.in_channels)
    result = columns @ weights.astype(np.int32) + bias
    output[...] = _saturate(result)
    return output


def _timed(func, *args) -> int:
    start = time.perf_counter_ns()
    func(*args)
    return time.perf_counter_ns() - start


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="Run a matmul or convolution workload.")
    parser.add_argument("--matmul", type=int, default=0, help="matmul case number (1-6)")
    parser.add_argument("--conv", type=int, default=0, help="convolution case number (1-6)")
    parser.add_argument(
        "--dialect",
        choices=[d.name.lower() for d in Dialect],
        default="linalg",
        help="operand layout",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Run the selected workload and report its size and elapsed time."""
    args = _parse_args(argv)
    dialect = Dialect[args.dialect.upper()]
    name = dialect.name.lower()

    if args.matmul and dialect is not Dialect.NONE:
        try:
            case = matmul_case(args.matmul)
        except ValueError as exc:
            print(exc)
            return 0
        elapsed = _timed(_run_matmul, case, dialect)
        print(f"The {name}.matmul test case is {case.index}")
        print(f"I = {case.i} K = {case.k} J = {case.j}")
        print(f"Time taken {elapsed} ns")
        return 0

    if args.conv and dialect is not Dialect.NONE:
        try:
            case = conv_case(args.conv)
        except ValueError as exc:
            print(exc)
            return 0
        elapsed = _timed(_run_conv, case, dialect)
        print(f"The {name}.conv test case is {case.index}")
        print(
            f"BATCH_SIZE = {case.batch_size} IN_CHANNELS = {case.in_channels} "
            f"OUT_CHANNELS = {case.out_channels} IN_DIM = {case.in_dim} "
            f"KERNEL_DIM = {case.kernel_dim} OUT_DIM = {case.out_dim}"
        )
        print(f"Time taken = {elapsed} ns")
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())