"""
Declaration Renaming.

Renames the header of top-level ``def``/``class`` statements. Only the
declaration changes: call sites, string references and nested definitions
keep the old name.
"""

from typing import Type, Union

import libcst as cst

DeclarationNode = Union[cst.FunctionDef, cst.ClassDef]


class DeclarationRenamer(cst.CSTTransformer):
  """
  Renames every top-level definition of one kind named `old_name`.

  Attributes:
      renamed (int): Number of declarations rewritten.
  """

  def __init__(self, node_type: Type[DeclarationNode], old_name: str, new_name: str):
    """
    Args:
        node_type: ``cst.FunctionDef`` or ``cst.ClassDef``.
        old_name: Current identifier.
        new_name: Replacement identifier.
    """
    super().__init__()
    self.node_type = node_type
    self.old_name = old_name
    self.new_name = new_name
    self.renamed = 0

  def on_visit(self, node: cst.CSTNode) -> bool:
    # Statements are left (and renamed) without descending into their bodies.
    return isinstance(node, cst.Module)

  def _rename(self, node: DeclarationNode) -> DeclarationNode:
    if not isinstance(node, self.node_type) or node.name.value != self.old_name:
      return node
    self.renamed += 1
    return node.with_changes(name=node.name.with_changes(value=self.new_name))

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    return self._rename(updated_node)

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    return self._rename(updated_node)
