[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pedeps"
version = "0.1.0"
description = "Parse Portable Executable headers, import, export and resource tables to inspect module dependencies."
requires-python = ">=3.10"
dependencies = []
keywords = ["pe", "portable-executable", "dll", "imports", "exports", "dependencies", "coff"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pedeps"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
