"""
AST Scanners for Symbol Usage Detection.

This module provides LibCST visitors that analyze a module to determine which
names are actively referenced in the source body, and helpers to flatten
dotted names.

These scanners back two engine features:
1.  ``remove_unused_imports`` asks `NameUsageScanner` for every identifier
    referenced outside import statements.
2.  The query engine uses `get_full_name` to compare import modules and call
    targets with user supplied strings.
"""

from typing import List, Optional, Set, Union

import libcst as cst


def get_full_name(node: Optional[cst.CSTNode]) -> str:
  """
  Recursively resolves a CST Name or Attribute chain to a dot-separated string.

  Args:
    node: The CST node representing the identifier.
      Typically a `cst.Name` (e.g., `x`) or `cst.Attribute` (e.g., `x.y`).

  Returns:
    str: The fully qualified string representation (e.g., "os.path.join").
    Returns an empty string if the node is not a supported Name/Attribute chain.

  Example:
    >>> get_full_name(cst.Attribute(value=cst.Name("os"), attr=cst.Name("path")))
    'os.path'
  """
  if isinstance(node, cst.Name):
    return node.value
  elif isinstance(node, cst.Attribute):
    base = get_full_name(node.value)
    return f"{base}.{node.attr.value}" if base else ""
  return ""


def get_trailing_name(node: cst.CSTNode) -> str:
  """
  Returns the last identifier of a callee expression.

  ``pkg.mod.func`` yields ``func``; ``get()(x)`` yields ``""``.

  Args:
    node: The callee expression of a `cst.Call`.

  Returns:
    str: The trailing identifier, or an empty string.
  """
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    return node.attr.value
  return ""


def import_module_name(node: Union[cst.Import, cst.ImportFrom], alias: Optional[cst.ImportAlias] = None) -> str:
  """
  Computes the module field used for matching import statements.

  For ``import a.b`` this is ``a.b`` (per alias); for ``from ..pkg import x``
  it is the dotted module prefixed by its relative dots.

  Args:
    node: The import statement.
    alias: The alias to inspect when `node` is a plain `cst.Import`.

  Returns:
    str: The module string.
  """
  if isinstance(node, cst.Import):
    return get_full_name(alias.name) if alias is not None else ""
  dots = "".join("." for _ in node.relative)
  return f"{dots}{get_full_name(node.module)}"


def bound_name(alias: cst.ImportAlias, is_from_import: bool) -> str:
  """
  Returns the local name an import alias binds.

  ``import a.b`` binds ``a``; ``import a.b as c`` binds ``c``;
  ``from m import x`` binds ``x``.

  Args:
    alias: The CST ImportAlias node.
    is_from_import: True when the alias belongs to a `from` import.

  Returns:
    str: The bound identifier.
  """
  if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
    return alias.asname.name.value
  full = get_full_name(alias.name)
  if is_from_import:
    return full
  return full.split(".")[0]


class NameUsageScanner(cst.CSTVisitor):
  """
  Collects every identifier referenced outside of import statements.

  Attribute chains only contribute their root (``os.path.join`` records
  ``os``), so attribute names never keep an unrelated import alive. String
  annotations (``def f(p: "Path")``) are parsed and scanned like code.

  Attributes:
    used (Set[str]): Identifiers referenced in the scanned tree.
    exported (Set[str]): Names listed in a string-literal ``__all__``.
  """

  def __init__(self) -> None:
    self.used: Set[str] = set()
    self.exported: Set[str] = set()
    self._annotation_depth = 0

  def visit_Import(self, node: cst.Import) -> Optional[bool]:
    """Names appearing in imports are definitions, not usages."""
    return False

  def visit_ImportFrom(self, node: cst.ImportFrom) -> Optional[bool]:
    """Names appearing in imports are definitions, not usages."""
    return False

  def visit_Attribute(self, node: cst.Attribute) -> Optional[bool]:
    """Only the receiver of an attribute access is a reference."""
    node.value.visit(self)
    return False

  def visit_Name(self, node: cst.Name) -> None:
    """Records the identifier."""
    self.used.add(node.value)

  # --- String annotations ---

  def visit_Annotation(self, node: cst.Annotation) -> None:
    self._annotation_depth += 1

  def leave_Annotation(self, original_node: cst.Annotation) -> None:
    self._annotation_depth -= 1

  def visit_SimpleString(self, node: cst.SimpleString) -> None:
    """Scans forward references written as strings inside annotations."""
    if not self._annotation_depth:
      return
    text = node.evaluated_value
    if not isinstance(text, str):
      return
    try:
      expression = cst.parse_expression(text.strip())
    except cst.ParserSyntaxError:
      # Literal["..."] values are strings too
      return
    expression.visit(self)

  # --- __all__ ---

  def visit_Assign(self, node: cst.Assign) -> Optional[bool]:
    """Captures string entries of ``__all__ = [...]``."""
    for target in node.targets:
      if _is_all(target.target):
        self.exported.update(_string_elements(node.value))
    return True

  def visit_AnnAssign(self, node: cst.AnnAssign) -> Optional[bool]:
    """Captures ``__all__: List[str] = [...]``."""
    if _is_all(node.target) and node.value is not None:
      self.exported.update(_string_elements(node.value))
    return True

  def visit_AugAssign(self, node: cst.AugAssign) -> Optional[bool]:
    """Captures ``__all__ += [...]``."""
    if _is_all(node.target):
      self.exported.update(_string_elements(node.value))
    return True

  def visit_Call(self, node: cst.Call) -> Optional[bool]:
    """Captures ``__all__.extend([...])`` and ``__all__.append("name")``."""
    func = node.func
    if not (isinstance(func, cst.Attribute) and _is_all(func.value)) or len(node.args) != 1:
      return True
    value = node.args[0].value
    if func.attr.value == "extend":
      self.exported.update(_string_elements(value))
    elif func.attr.value == "append":
      self.exported.update(_string_elements(cst.List([cst.Element(value)])))
    return True

  def is_referenced(self, name: str) -> bool:
    """
    Checks whether a name is used or re-exported.

    Args:
      name: The bound import name.

    Returns:
      bool: True if the name is referenced.
    """
    return name in self.used or name in self.exported


def _is_all(node: cst.BaseExpression) -> bool:
  return isinstance(node, cst.Name) and node.value == "__all__"


def _string_elements(value: cst.BaseExpression) -> List[str]:
  if not isinstance(value, (cst.List, cst.Tuple)):
    return []
  names = []
  for element in value.elements:
    if isinstance(element.value, cst.SimpleString):
      evaluated = element.value.evaluated_value
      if isinstance(evaluated, str):
        names.append(evaluated)
  return names
