[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zframe"
version = "0.1.0"
description = "Pure-Python building blocks for decoding Zstandard frames: frame headers, bit readers, FSE tables and Huffman tables"
requires-python = ">=3.10"
dependencies = []
keywords = ["zstd", "zstandard", "decompression", "fse", "huffman", "entropy coding"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zframe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
