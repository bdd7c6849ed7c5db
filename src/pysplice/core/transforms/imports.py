"""
Import Transformers.

Two LibCST transformers operating on import statements anywhere in a module:

1.  `ImportReplacer` rewrites the module of ``import``/``from ... import``
    statements according to an exact-match mapping. Imported items and
    ``as`` aliases are kept.
2.  `UnusedImportRemover` drops aliases whose bound name is never
    referenced, using the usage set collected by `NameUsageScanner`.
    Statements left without aliases are removed.
"""

from typing import Dict, List, Optional, Union

import libcst as cst

from pysplice.core.scanners import NameUsageScanner, bound_name, get_full_name, import_module_name

# Python 2 era modules and their Python 3 replacements.
DEPRECATED_MODULES: Dict[str, str] = {
  "imp": "importlib",
  "optparse": "argparse",
  "ConfigParser": "configparser",
  "StringIO": "io",
  "cPickle": "pickle",
  "urllib2": "urllib.request",
  "urlparse": "urllib.parse",
  "Queue": "queue",
}


def dotted_name(name: str) -> Union[cst.Name, cst.Attribute]:
  """
  Builds a Name/Attribute chain from a dotted string.

  Args:
      name: E.g. ``"urllib.request"``.

  Returns:
      The CST expression.
  """
  parts = name.split(".")
  node: Union[cst.Name, cst.Attribute] = cst.Name(parts[0])
  for part in parts[1:]:
    node = cst.Attribute(value=node, attr=cst.Name(part))
  return node


def _without_trailing_comma(aliases: List[cst.ImportAlias]) -> List[cst.ImportAlias]:
  if aliases and aliases[-1].comma is not cst.MaybeSentinel.DEFAULT:
    aliases[-1] = aliases[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
  return aliases


class ImportReplacer(cst.CSTTransformer):
  """
  Rewrites imported module names.

  Attributes:
      replaced (int): Number of import aliases/statements rewritten.
  """

  def __init__(self, mapping: Dict[str, str]):
    """
    Args:
        mapping: Exact old module -> new module pairs.
    """
    super().__init__()
    self.mapping = mapping
    self.replaced = 0

  def leave_Import(self, original_node: cst.Import, updated_node: cst.Import) -> cst.Import:
    """Rewrites each alias of ``import a, b.c`` independently."""
    new_names = []
    for alias in updated_node.names:
      target = self.mapping.get(get_full_name(alias.name))
      if target is not None:
        alias = alias.with_changes(name=dotted_name(target))
        self.replaced += 1
      new_names.append(alias)
    return updated_node.with_changes(names=new_names)

  def leave_ImportFrom(self, original_node: cst.ImportFrom, updated_node: cst.ImportFrom) -> cst.ImportFrom:
    """Rewrites the module (and relative dots) of ``from m import x``."""
    target = self.mapping.get(import_module_name(updated_node))
    if target is None:
      return updated_node

    self.replaced += 1
    module_text = target.lstrip(".")
    dots = [cst.Dot() for _ in range(len(target) - len(module_text))]
    module: Optional[Union[cst.Name, cst.Attribute]] = dotted_name(module_text) if module_text else None
    return updated_node.with_changes(module=module, relative=dots)


class UnusedImportRemover(cst.CSTTransformer):
  """
  Removes import aliases that the module never references.

  ``from __future__`` imports and star imports are always kept.

  Attributes:
      removed (int): Number of aliases dropped.
      removed_names (List[str]): Bound names of the dropped aliases.
  """

  def __init__(self, usage: NameUsageScanner):
    """
    Args:
        usage: Scanner that already visited the module.
    """
    super().__init__()
    self.usage = usage
    self.removed = 0
    self.removed_names: List[str] = []

  def _keep(self, alias: cst.ImportAlias, is_from_import: bool) -> bool:
    name = bound_name(alias, is_from_import)
    if self.usage.is_referenced(name):
      return True
    self.removed += 1
    self.removed_names.append(name)
    return False

  def _prune(self, node: cst.BaseSmallStatement) -> Optional[cst.BaseSmallStatement]:
    if isinstance(node, cst.Import):
      kept = [a for a in node.names if self._keep(a, is_from_import=False)]
      return node.with_changes(names=_without_trailing_comma(kept)) if kept else None

    if isinstance(node, cst.ImportFrom):
      if isinstance(node.names, cst.ImportStar) or import_module_name(node) == "__future__":
        return node
      kept = [a for a in node.names if self._keep(a, is_from_import=True)]
      return node.with_changes(names=_without_trailing_comma(kept)) if kept else None

    return node

  def _prune_body(self, body: List[cst.BaseSmallStatement]) -> List[cst.BaseSmallStatement]:
    pruned = [self._prune(small) for small in body]
    kept = [small for small in pruned if small is not None]
    if kept and len(kept) < len(body):
      kept[-1] = kept[-1].with_changes(semicolon=cst.MaybeSentinel.DEFAULT)
    return kept

  def leave_SimpleStatementLine(
    self, original_node: cst.SimpleStatementLine, updated_node: cst.SimpleStatementLine
  ) -> Union[cst.SimpleStatementLine, cst.RemovalSentinel]:
    body = self._prune_body(list(updated_node.body))
    if not body:
      return cst.RemoveFromParent()
    return updated_node.with_changes(body=body)

  def leave_SimpleStatementSuite(
    self, original_node: cst.SimpleStatementSuite, updated_node: cst.SimpleStatementSuite
  ) -> cst.SimpleStatementSuite:
    body = self._prune_body(list(updated_node.body))
    return updated_node.with_changes(body=body or [cst.Pass()])

  def leave_IndentedBlock(self, original_node: cst.IndentedBlock, updated_node: cst.IndentedBlock) -> cst.IndentedBlock:
    """A block emptied by the removal keeps a ``pass`` statement."""
    if not updated_node.body:
      return updated_node.with_changes(body=[cst.SimpleStatementLine(body=[cst.Pass()])])
    return updated_node
