"""
AST Outline Utility.

This module provides the `OutlineGenerator`, a LibCST visitor that traverses
a module and renders an indented, human-readable outline of its statements.
It backs ``PythonAst.to_string()``, a diagnostic rendering that is not meant
to be valid source code.
"""

from typing import List, Optional

import libcst as cst

MAX_LABEL = 60


class OutlineGenerator(cst.CSTVisitor):
  """
  Generates an indented text outline from a CST tree.

  Compound statements open a nested level; simple statements are collapsed
  into one line showing their kind and (truncated) code.
  """

  INDENT = "  "

  def __init__(self):
    """Initializes the generator with empty buffers."""
    self.lines: List[str] = []
    self.depth = 0
    self._renderer = cst.Module([])

  def generate(self, tree: cst.Module) -> str:
    """
    Converts a CST Module into an outline string.

    Args:
        tree (cst.Module): The root node of the tree to render.

    Returns:
        str: One line per statement, indented by nesting depth.
    """
    self.lines = []
    self.depth = 0
    tree.visit(self)
    return "\n".join(self.lines)

  def _add_line(self, label: str) -> None:
    clean_label = " ".join(label.split())
    if len(clean_label) > MAX_LABEL:
      clean_label = clean_label[: MAX_LABEL - 3] + "..."
    self.lines.append(f"{self.INDENT * self.depth}{clean_label}")

  def _open(self, label: str) -> None:
    self._add_line(label)
    self.depth += 1

  def _close(self) -> None:
    if self.depth > 0:
      self.depth -= 1

  def _node_to_str(self, node: cst.CSTNode) -> str:
    """
    Extracts a compact string representation of an expression.

    Args:
        node (cst.CSTNode): The node to stringify.

    Returns:
        str: The code string.
    """
    if isinstance(node, cst.Name):
      return node.value
    elif isinstance(node, cst.Attribute):
      return f"{self._node_to_str(node.value)}.{node.attr.value}"

    try:
      return self._renderer.code_for_node(node).strip()
    except Exception:
      return f"<{type(node).__name__}>"

  def visit_Module(self, node: cst.Module) -> Optional[bool]:
    """Visits Module root."""
    self._open(f"Module ({len(node.body)} statements)")
    return True

  def leave_Module(self, original_node: cst.Module) -> None:
    """Leaves Module root."""
    self._close()

  def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
    """Visits Class Definitions."""
    bases = ", ".join(self._node_to_str(b.value) for b in node.bases)
    suffix = f"({bases})" if bases else ""
    self._open(f"Class: {node.name.value}{suffix}")
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    """Leaves Class Definitions."""
    self._close()

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    """Visits Function Definitions."""
    params = ", ".join(p.name.value for p in node.params.params)
    self._open(f"Def: {node.name.value}({params})")
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
    """Leaves Function Definitions."""
    self._close()

  def visit_Try(self, node: cst.Try) -> Optional[bool]:
    """Visits try statements."""
    self._open("Try")
    return True

  def leave_Try(self, original_node: cst.Try) -> None:
    """Leaves try statements."""
    self._close()

  def visit_ExceptHandler(self, node: cst.ExceptHandler) -> Optional[bool]:
    """Visits except clauses."""
    caught = self._node_to_str(node.type) if node.type else "*"
    self._open(f"Except: {caught}")
    return True

  def leave_ExceptHandler(self, original_node: cst.ExceptHandler) -> None:
    """Leaves except clauses."""
    self._close()

  def visit_If(self, node: cst.If) -> Optional[bool]:
    """Visits if statements."""
    self._open(f"If: {self._node_to_str(node.test)}")
    return True

  def leave_If(self, original_node: cst.If) -> None:
    """Leaves if statements."""
    self._close()

  def visit_For(self, node: cst.For) -> Optional[bool]:
    """Visits for loops."""
    self._open(f"For: {self._node_to_str(node.target)} in {self._node_to_str(node.iter)}")
    return True

  def leave_For(self, original_node: cst.For) -> None:
    """Leaves for loops."""
    self._close()

  def visit_While(self, node: cst.While) -> Optional[bool]:
    """Visits while loops."""
    self._open(f"While: {self._node_to_str(node.test)}")
    return True

  def leave_While(self, original_node: cst.While) -> None:
    """Leaves while loops."""
    self._close()

  def visit_With(self, node: cst.With) -> Optional[bool]:
    """Visits with statements."""
    items = ", ".join(self._node_to_str(i.item) for i in node.items)
    self._open(f"With: {items}")
    return True

  def leave_With(self, original_node: cst.With) -> None:
    """Leaves with statements."""
    self._close()

  def visit_SimpleStatementLine(self, node: cst.SimpleStatementLine) -> Optional[bool]:
    """Collapses each small statement of a line into one outline entry."""
    for small in node.body:
      self._add_line(f"{type(small).__name__}: {self._node_to_str(small)}")
    return False

  def visit_SimpleStatementSuite(self, node: cst.SimpleStatementSuite) -> Optional[bool]:
    """Collapses one-line suites (``def f(): pass``)."""
    for small in node.body:
      self._add_line(f"{type(small).__name__}: {self._node_to_str(small)}")
    return False
