"""
Exception Hierarchy.

Every failure raised by pysplice derives from :class:`PySpliceError` and from
the closest builtin exception, so callers may catch either the library type
or the builtin kind (``ValueError`` for malformed input, ``LookupError`` for
missing rename targets, ``OSError`` for filesystem problems).
"""

from typing import Optional


class PySpliceError(Exception):
  """Base class for all library errors."""


class ParseError(PySpliceError, ValueError):
  """
  Raised when source text cannot be parsed.

  The message always starts with ``"Parse error"`` so callers can pattern
  match on it, followed by the best-effort location.

  Attributes:
      line (int): 1-based line of the failure (0 when unknown).
      column (int): 0-based column of the failure (0 when unknown).
      path (Optional[str]): Source file, when parsing from disk.
      reason (str): The parser message without the location prefix.
  """

  def __init__(self, message: str, line: int = 0, column: int = 0, path: Optional[str] = None):
    self.reason = message
    self.line = line
    self.column = column
    self.path = path
    location = f"{path}:{line}:{column}" if path else f"line {line}, column {column}"
    super().__init__(f"Parse error at {location}: {message}")


class NotFoundError(PySpliceError, LookupError):
  """
  Raised when a rename target does not exist at module level.

  Attributes:
      entity (str): Kind of entity looked up ("Function", "Class").
      name (str): The missing name.
  """

  def __init__(self, entity: str, name: str):
    self.entity = entity
    self.name = name
    super().__init__(f"{entity} '{name}' not found")


class StaleNodeRefError(PySpliceError, ValueError):
  """Raised when a NodeRef is used after a mutation invalidated it."""


class FileAccessError(PySpliceError, OSError):
  """Raised for missing files, missing directories and permission failures."""


class FormatError(PySpliceError, RuntimeError):
  """Raised by the formatter adapter when configured to fail loudly."""
