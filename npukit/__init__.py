"""BMP image codec, Gemmini accelerator helpers, scratchpad allocators and benchmark workloads."""

__version__ = "0.1.0"

__all__ = ["bmp", "codecs", "gemmini", "imgtypes", "scratchpad", "workloads"]