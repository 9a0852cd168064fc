"""Release orchestration for the dotty command-line tool."""

__version__ = "0.1.0"
