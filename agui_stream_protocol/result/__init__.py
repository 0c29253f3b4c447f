"""Result type (Ok | Error) used by parsing helpers."""

from .result import Error, Ok, Result


__all__ = ["Error", "Ok", "Result"]
