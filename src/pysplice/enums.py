"""
Enumerations for pysplice.

This module defines the closed sets of node kinds understood by the query
engine and the categories of changes recorded by the refactor engine.
"""

from enum import Enum
from typing import Union


class NodeKind(str, Enum):
  """
  Statement categories addressable through ``find_nodes``.

  Values match the names used by the Python grammar so that string filters
  such as ``find_nodes("FunctionDef")`` keep working.
  """

  FUNCTION_DEF = "FunctionDef"
  CLASS_DEF = "ClassDef"
  IMPORT = "Import"
  IMPORT_FROM = "ImportFrom"
  ASSIGN = "Assign"
  TRY = "Try"
  EXCEPT_HANDLER = "ExceptHandler"
  EXPR = "Expr"
  OTHER = "Other"

  @classmethod
  def coerce(cls, value: Union["NodeKind", str]) -> "NodeKind":
    """
    Converts a string or enum member into a ``NodeKind``.

    Args:
        value: Member or its string value (e.g. "ClassDef").

    Returns:
        NodeKind: The matching member.

    Raises:
        ValueError: If the string names no known kind.
    """
    if isinstance(value, cls):
      return value
    try:
      return cls(value)
    except ValueError:
      known = ", ".join(k.value for k in cls)
      raise ValueError(f"Unknown node kind: '{value}'. Supported kinds: {known}") from None


class ChangeKind(str, Enum):
  """Categorization of change log entries."""

  FUNCTION_RENAMED = "function_renamed"
  CLASS_RENAMED = "class_renamed"
  IMPORT_REPLACED = "import_replaced"
  IMPORT_ADDED = "import_added"
  SYNTAX_MODERNIZED = "syntax_modernized"
  IMPORTS_REMOVED = "imports_removed"
  DATA_MOCKED = "data_mocked"
  FORMATTED = "formatted"
  NODE_EDITED = "node_edited"
  CUSTOM = "custom"
