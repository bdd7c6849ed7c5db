"""
Code Generator.

Stateless synthesis of canonical source snippets from structured arguments.
The output is plain text meant to be fed to the refactor engine's splice
operations; it is not validated here.
"""

import textwrap
from typing import Optional, Sequence

INDENT = "    "


def _indent_block(body: Optional[str]) -> str:
  text = textwrap.dedent(body or "").strip("\n")
  if not text.strip():
    text = "pass"
  return textwrap.indent(text, INDENT)


class CodeGenerator:
  """
  Builds import, assignment, call, try/except, def and class snippets.

  Example:
      >>> gen = CodeGenerator()
      >>> gen.create_import("typing", ["List", "Dict"])
      'from typing import List, Dict'
  """

  def create_import(self, module: str, items: Optional[Sequence[str]] = None, alias: Optional[str] = None) -> str:
    """
    Creates an import statement.

    Args:
        module: Module to import.
        items: Names for a ``from`` import.
        alias: ``as`` name for a plain import.

    Returns:
        str: ``import m``, ``import m as a`` or ``from m import x, y``.

    Raises:
        ValueError: If both `items` and `alias` are given.
    """
    if items and alias:
      raise ValueError("An alias can only be used with a plain 'import' statement")
    if items:
      return f"from {module} import {', '.join(items)}"
    if alias:
      return f"import {module} as {alias}"
    return f"import {module}"

  def create_assignment(self, target: str, value: str) -> str:
    """Creates ``target = value``."""
    return f"{target} = {value}"

  def create_function_call(self, name: str, args: Optional[Sequence[str]] = None) -> str:
    """Creates ``name(arg0, arg1, ...)``."""
    return f"{name}({', '.join(args or [])})"

  def create_try_except(self, try_body: str, exception_type: str, except_body: str) -> str:
    """
    Creates a try/except block.

    Multi-line bodies are indented line by line.

    Args:
        try_body: Statements of the try block.
        exception_type: Caught exception, e.g. ``ValueError``.
        except_body: Statements of the except block.

    Returns:
        str: The block without a trailing newline.
    """
    return f"try:\n{_indent_block(try_body)}\nexcept {exception_type}:\n{_indent_block(except_body)}"

  def create_function_def(self, name: str, params: Optional[Sequence[str]] = None, body: Optional[str] = None) -> str:
    """
    Creates a function definition.

    Args:
        name: Function name.
        params: Parameter source texts (``"x"``, ``"y: int = 0"``).
        body: Function body; ``pass`` when empty.

    Returns:
        str: The definition without a trailing newline.
    """
    return f"def {name}({', '.join(params or [])}):\n{_indent_block(body)}"

  def create_class_def(self, name: str, bases: Optional[Sequence[str]] = None, body: Optional[str] = None) -> str:
    """
    Creates a class definition.

    Args:
        name: Class name.
        bases: Base class expressions.
        body: Class body; ``pass`` when empty.

    Returns:
        str: The definition without a trailing newline.
    """
    header = f"class {name}({', '.join(bases)}):" if bases else f"class {name}:"
    return f"{header}\n{_indent_block(body)}"
