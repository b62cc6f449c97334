"""Allocators for the accelerator's scratchpad and accumulator memories."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .gemmini import ACC_ADDR_FLAG

# Each block descriptor is a packed record of two 32-bit words and a byte.
_BLOCK_RECORD_SIZE = 9
_ADDR_MASK = 0x7FFFFFFF


class AllocationError(Exception):
    """Raised when memory cannot be allocated."""


@dataclass
class _Block:
    size: int
    loc: int
    is_used: bool = True


def _rows_for(size: int, dim: int) -> int:
    return (size + dim - 1) // dim


class ScratchpadAllocator:
    """First-fit allocator over scratchpad rows.

    Freed blocks are reused by later requests that fit in them; a new block
    is carved from the end only when no free block is large enough.
    """

    def __init__(self, heap_size: int = 100000, dim: int = 16) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self.dim = dim
        self.capacity = heap_size // _BLOCK_RECORD_SIZE
        self._blocks: list[_Block] = []
        self._last_ptr = 0

    def reset(self) -> None:
        """Forget every allocation."""
        self._blocks.clear()
        self._last_ptr = 0

    def malloc(self, size: int) -> int:
        """Allocate room for ``size`` elements and return the first row."""
        if size <= 0:
            raise AllocationError("cannot allocate an empty block")
        rows = _rows_for(size, self.dim)
        for block in self._blocks:
            if not block.is_used and block.size >= rows:
                block.is_used = True
                return block.loc
        if len(self._blocks) >= self.capacity:
            raise AllocationError("no block descriptors left")
        block = _Block(size=rows, loc=self._last_ptr)
        self._blocks.append(block)
        self._last_ptr += rows
        return block.loc

    def free(self, addr: int) -> None:
        """Release the block starting at ``addr``; unknown addresses are ignored."""
        for block in self._blocks:
            if block.is_used and block.loc == addr:
                block.is_used = False
                return


class AccumulatorAllocator:
    """Stack allocator over accumulator rows.

    Addresses carry the accumulator flag in bit 31. Blocks are released
    from the top of the stack once everything above them is free.
    """

    def __init__(self, heap_size: int = 100000, dim: int = 16) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self.dim = dim
        self.capacity = heap_size // _BLOCK_RECORD_SIZE
        self._stack: list[_Block] = []

    def reset(self) -> None:
        """Forget every allocation."""
        self._stack.clear()

    def malloc(self, size: int) -> int:
        """Allocate room for ``size`` elements and return a flagged address."""
        if size <= 0:
            raise AllocationError("cannot allocate an empty block")
        if len(self._stack) >= self.capacity:
            raise AllocationError("no block descriptors left")
        rows = _rows_for(size, self.dim)
        loc = self._stack[-1].loc + self._stack[-1].size if self._stack else 0
        self._stack.append(_Block(size=rows, loc=loc))
        return loc | ACC_ADDR_FLAG

    def free(self, addr: int) -> None:
        """Release the block at ``addr``; unknown addresses are ignored."""
        if not self._stack:
            return
        addr &= _ADDR_MASK
        if self._stack[-1].loc == addr:
            self._stack[-1].is_used = False
            while self._stack and not self._stack[-1].is_used:
                self._stack.pop()
            return
        for block in reversed(self._stack):
            if block.loc == addr:
                block.is_used = False
                return


def exo_matmul_inputs(
    rows: int = 12544, inner: int = 64, cols: int = 256
) -> tuple[np.ndarray, np.ndarray]:
    """Build the int8 operands of the benchmark matmul.

    ``x[i, j] = i + 2*j`` and ``y[i, j] = 3*j + i``, both wrapped to int8.
    """
    i, j = np.indices((rows, inner), dtype=np.int64)
    x = (i + j * 2).astype(np.int8)
    i, j = np.indices((inner, cols), dtype=np.int64)
    y = (j * 3 + i).astype(np.int8)
    return x, y