[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "npukit"
version = "0.1.0"
description = "BMP image codec, Gemmini accelerator helpers, scratchpad allocators and benchmark workloads"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["bmp", "bitmap", "image", "codec", "gemmini", "npu", "scratchpad", "benchmark"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
npukit-workloads = "npukit.workloads:main"

[tool.hatch.build.targets.wheel]
packages = ["npukit"]

[tool.hatch.build.targets.sdist]
include = ["npukit", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
