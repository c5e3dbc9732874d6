"""fnkit - function-calling declarations and dispatch for script tools."""

__version__ = "0.1.0"
