"""Compiler, bytecode runtime and command line for the H.E.I.P. instruction language."""

__version__ = "4.0.0"
__all__ = ["model", "compiler", "runtime", "cli"]