"""Constants and address helpers for the Gemmini matrix accelerator."""

from __future__ import annotations

from enum import IntEnum


class Activation(IntEnum):
    """Activation functions applied when results leave the accumulator."""

    NO_ACTIVATION = 0
    RELU = 1
    LAYERNORM = 2
    IGELU = 3
    SOFTMAX = 4


class ConfigCommand(IntEnum):
    """Sub-commands of the configuration instruction."""

    EX = 0
    LD = 1
    ST = 2
    BERT = 3


class Dataflow(IntEnum):
    """Systolic array dataflow modes."""

    OUTPUT_STATIONARY = 0
    WEIGHT_STATIONARY = 1


GARBAGE_ADDR = 0xFFFFFFFF
MVIN_SCALE_IDENTITY = 1.0
ACC_SCALE_IDENTITY = 1.0
BANK_NUM = 4
MAX_BYTES = 64

ACC_ADDR_FLAG = 0x80000000
ACCUMULATE_FLAG = 0x40000000
_ROW_LIMIT = ACCUMULATE_FLAG


def accumulator_address(row: int, accumulate: bool = False) -> int:
    """Return the local address of an accumulator row.

    Bit 31 marks the address as an accumulator address; bit 30 asks the
    hardware to add to the existing contents instead of overwriting them.
    """
    if not 0 <= row < _ROW_LIMIT:
        raise ValueError(f"accumulator row out of range: {row}")
    address = ACC_ADDR_FLAG | row
    if accumulate:
        address |= ACCUMULATE_FLAG
    return address