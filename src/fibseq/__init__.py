"""Background generalised-Fibonacci generator driven by a command surface."""

__version__ = "0.1.0"
