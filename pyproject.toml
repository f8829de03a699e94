[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "heip"
version = "4.0.0"
description = "Dodecagramic-overlay compiler and frame interpreter runtime for the H.E.I.P. instruction language"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "bytecode", "interpreter", "virtual-machine", "heip"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
heip = "heip.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["heip"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
