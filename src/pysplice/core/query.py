"""
Query Index.

Builds the secondary indices answered by the query API in one pass over a
LibCST module: the statement/kind index used by ``find_nodes`` and the
import, call, try/except and assignment records.

The index is immutable and tied to one tree; ``PythonAst`` rebuilds it
lazily after every mutation.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import libcst as cst
from libcst.metadata import CodeRange, MetadataWrapper, PositionProvider

from pysplice.core.paths import StatementPath, child_statements, sub_blocks
from pysplice.core.records import AssignmentRecord, CallRecord, ImportRecord, TryExceptRecord
from pysplice.core.scanners import get_full_name, get_trailing_name, import_module_name
from pysplice.enums import NodeKind
from pysplice.utils.node_diff import capture_node_source


@dataclass(frozen=True)
class StatementEntry:
  """One addressable statement (or except clause) of the tree."""

  path: StatementPath
  kind: NodeKind
  line: int
  handler_index: Optional[int] = None


def classify_statement(node: cst.CSTNode) -> NodeKind:
  """
  Maps a LibCST statement to its query kind.

  Simple statement lines are classified by their first small statement.

  Args:
      node: A statement node.

  Returns:
      NodeKind: The category.
  """
  if isinstance(node, cst.FunctionDef):
    return NodeKind.FUNCTION_DEF
  if isinstance(node, cst.ClassDef):
    return NodeKind.CLASS_DEF
  if isinstance(node, (cst.Try, cst.TryStar)):
    return NodeKind.TRY
  if isinstance(node, (cst.ExceptHandler, cst.ExceptStarHandler)):
    return NodeKind.EXCEPT_HANDLER
  if isinstance(node, cst.SimpleStatementLine) and node.body:
    first = node.body[0]
    if isinstance(first, cst.Import):
      return NodeKind.IMPORT
    if isinstance(first, cst.ImportFrom):
      return NodeKind.IMPORT_FROM
    if isinstance(first, (cst.Assign, cst.AnnAssign, cst.AugAssign)):
      return NodeKind.ASSIGN
    if isinstance(first, cst.Expr):
      return NodeKind.EXPR
  return NodeKind.OTHER


def exception_type_names(handler: cst.CSTNode) -> List[str]:
  """
  Lists the exception types caught by an except clause.

  Args:
      handler: An ``ExceptHandler`` or ``ExceptStarHandler``.

  Returns:
      List[str]: Dotted type names, empty for a bare ``except:``.
  """
  caught = getattr(handler, "type", None)
  if caught is None:
    return []
  if isinstance(caught, cst.Tuple):
    elements = [el.value for el in caught.elements]
  else:
    elements = [caught]
  return [get_full_name(el) or capture_node_source(el) for el in elements]


@dataclass
class QueryIndex:
  """
  Materialized indices over one module.

  Attributes:
      statements: Addressable statements in document order.
      function_names: Top-level function names in document order.
      class_names: Top-level class names in document order.
      imports: Import records for every import in the module.
      calls: Call records for every call in the module.
      try_excepts: One record per except clause.
      assignments: Assignment records for every assignment in the module.
  """

  statements: List[StatementEntry] = field(default_factory=list)
  function_names: List[str] = field(default_factory=list)
  class_names: List[str] = field(default_factory=list)
  imports: List[ImportRecord] = field(default_factory=list)
  calls: List[CallRecord] = field(default_factory=list)
  try_excepts: List[TryExceptRecord] = field(default_factory=list)
  assignments: List[AssignmentRecord] = field(default_factory=list)

  @classmethod
  def build(cls, tree: cst.Module) -> "QueryIndex":
    """
    Scans a module and builds all indices.

    Args:
        tree: The module to index.

    Returns:
        QueryIndex: The populated index.
    """
    positions = MetadataWrapper(tree, unsafe_skip_copy=True).resolve(PositionProvider)
    index = cls()

    for stmt in tree.body:
      if isinstance(stmt, cst.FunctionDef):
        index.function_names.append(stmt.name.value)
      elif isinstance(stmt, cst.ClassDef):
        index.class_names.append(stmt.name.value)

    index._walk(tree.body, (), positions)

    collector = _RecordCollector(tree, positions)
    tree.visit(collector)
    index.imports = collector.imports
    index.calls = collector.calls
    index.try_excepts = collector.try_excepts
    index.assignments = collector.assignments
    return index

  def _walk(
    self,
    statements: Sequence[cst.BaseStatement],
    parent: StatementPath,
    positions: Dict[cst.CSTNode, CodeRange],
  ) -> None:
    for i, stmt in enumerate(statements):
      path = parent + (i,)
      kind = classify_statement(stmt)
      self.statements.append(StatementEntry(path, kind, _line_of(stmt, positions)))
      self._walk_blocks(stmt, path, positions)

  def _walk_blocks(
    self,
    node: cst.CSTNode,
    path: StatementPath,
    positions: Dict[cst.CSTNode, CodeRange],
  ) -> None:
    """Walks the body of `node`, then its except clauses, cases and else/finally blocks."""
    nested = child_statements(node)
    if nested:
      self._walk(nested, path, positions)

    handler_index = 0
    for selector, block in sub_blocks(node):
      if isinstance(block, (cst.ExceptHandler, cst.ExceptStarHandler)):
        self.statements.append(
          StatementEntry(path, NodeKind.EXCEPT_HANDLER, _line_of(block, positions), handler_index=handler_index)
        )
        handler_index += 1
      self._walk_blocks(block, path + (selector,), positions)


def _line_of(node: cst.CSTNode, positions: Dict[cst.CSTNode, CodeRange]) -> int:
  code_range = positions.get(node)
  return code_range.start.line if code_range is not None else 0


class _RecordCollector(cst.CSTVisitor):
  """Collects value records for imports, calls, try/except and assignments."""

  def __init__(self, tree: cst.Module, positions: Dict[cst.CSTNode, CodeRange]):
    self._tree = tree
    self._positions = positions
    self.imports: List[ImportRecord] = []
    self.calls: List[CallRecord] = []
    self.try_excepts: List[TryExceptRecord] = []
    self.assignments: List[AssignmentRecord] = []

  def _code(self, node: cst.CSTNode) -> str:
    return capture_node_source(node, self._tree).strip()

  def _line(self, node: cst.CSTNode) -> int:
    return _line_of(node, self._positions)

  def _block_code(self, block: cst.BaseSuite) -> str:
    if isinstance(block, cst.IndentedBlock):
      return "\n".join(self._code(stmt) for stmt in block.body)
    return self._code(block)

  def visit_Import(self, node: cst.Import) -> None:
    for alias in node.names:
      asname = None
      if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
        asname = alias.asname.name.value
      self.imports.append(
        ImportRecord(
          module=import_module_name(node, alias),
          alias=asname,
          is_from_import=False,
          line=self._line(node),
        )
      )

  def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
    if isinstance(node.names, cst.ImportStar):
      items = ["*"]
    else:
      items = [get_full_name(alias.name) for alias in node.names]
    self.imports.append(
      ImportRecord(
        module=import_module_name(node),
        items=items,
        is_from_import=True,
        line=self._line(node),
      )
    )

  def visit_Call(self, node: cst.Call) -> None:
    self.calls.append(
      CallRecord(
        function_name=get_trailing_name(node.func),
        full_name=get_full_name(node.func),
        args=[self._code(arg).rstrip(",").strip() for arg in node.args],
        line=self._line(node),
      )
    )

  def _visit_try(self, node: cst.CSTNode) -> None:
    try_body = self._block_code(node.body)
    for handler in node.handlers:
      self.try_excepts.append(
        TryExceptRecord(
          exception_types=exception_type_names(handler),
          try_body=try_body,
          except_body=self._block_code(handler.body),
          line=self._line(handler),
        )
      )

  def visit_Try(self, node: cst.Try) -> None:
    self._visit_try(node)

  def visit_TryStar(self, node: cst.TryStar) -> None:
    self._visit_try(node)

  def visit_Assign(self, node: cst.Assign) -> None:
    value = self._code(node.value)
    for target in node.targets:
      self.assignments.append(AssignmentRecord(target=self._code(target.target), value=value, line=self._line(node)))

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    value = self._code(node.value) if node.value is not None else ""
    self.assignments.append(AssignmentRecord(target=self._code(node.target), value=value, line=self._line(node)))

  def visit_AugAssign(self, node: cst.AugAssign) -> None:
    self.assignments.append(
      AssignmentRecord(target=self._code(node.target), value=self._code(node.value), line=self._line(node))
    )
