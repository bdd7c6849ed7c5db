"""
In-Memory Syntax Model.

This module defines `PythonAst`, the parse result handed out by the parser,
and `NodeRef`, the handle returned by ``find_nodes``.

A `PythonAst` wraps an immutable LibCST module. Mutations never edit a tree
in place: the refactor engine builds a new tree and commits it through
`PythonAst._commit`, which bumps the generation counter and stamps every
statement path the edit touched. A `NodeRef` remembers the generation it
was issued at; it stays usable until a later stamp lands on its own path or
on one of its ancestors.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import libcst as cst

from pysplice.core.paths import StatementPath, resolve_statement
from pysplice.core.query import QueryIndex, classify_statement
from pysplice.core.records import AssignmentRecord, CallRecord, ImportRecord, TryExceptRecord
from pysplice.enums import NodeKind
from pysplice.errors import StaleNodeRefError
from pysplice.utils.node_diff import capture_node_source
from pysplice.utils.visualizer import OutlineGenerator


@dataclass(frozen=True)
class NodeRef:
  """
  Opaque handle to one statement (or except clause) of a `PythonAst`.

  Attributes:
      path: Steps from the module body down to the statement: statement
        indices plus block selectors such as ``"orelse"`` or
        ``"handlers[0]"`` (see `pysplice.core.paths`).
      generation: Tree generation the handle was issued at.
      kind: Statement category.
      handler_index: Except clause index when the handle addresses a clause
        of the ``Try`` at `path`.
      line: 1-based line of the statement when the handle was issued.
  """

  path: StatementPath
  generation: int
  kind: NodeKind
  handler_index: Optional[int] = None
  line: int = 0
  lineage: str = field(default="", repr=False)

  @property
  def is_except_handler(self) -> bool:
    return self.handler_index is not None

  def __str__(self) -> str:
    return f"{self.kind.value} at line {self.line}"


class PythonAst:
  """
  A parsed Python module with query helpers.

  Instances are immutable from the caller's point of view; `Refactor`
  adopts a private copy and becomes the only mutator of that copy.
  """

  def __init__(self, tree: cst.Module, path: Optional[str] = None):
    """
    Wraps a LibCST module.

    Args:
        tree: The parsed module.
        path: Source file the module was read from, if any.
    """
    self._tree = tree
    self.path = path
    self._lineage = uuid.uuid4().hex
    self._ancestry: Dict[str, int] = {}
    self._generation = 0
    self._stamps: Dict[StatementPath, int] = {}
    self._index: Optional[QueryIndex] = None

  # --- State ---

  @property
  def tree(self) -> cst.Module:
    """The current LibCST module."""
    return self._tree

  @property
  def code(self) -> str:
    """Exact source text of the current tree."""
    return self._tree.code

  @property
  def generation(self) -> int:
    """Number of commits applied to this tree lineage."""
    return self._generation

  def copy(self) -> "PythonAst":
    """
    Creates an independent handle on the same tree.

    The copy accepts NodeRefs issued by this instance up to its current
    generation, so refs found before a `Refactor` adopted the module stay
    usable against the refactor's copy.

    Returns:
        PythonAst: The copy.
    """
    clone = PythonAst(self._tree, self.path)
    clone._ancestry = {**self._ancestry, self._lineage: self._generation}
    clone._generation = self._generation
    clone._stamps = dict(self._stamps)
    clone._index = self._index
    return clone

  def _commit(self, tree: cst.Module, touched: Iterable[StatementPath] = ()) -> None:
    """
    Replaces the tree and invalidates refs addressing the touched paths.

    Args:
        tree: The new module.
        touched: Statement paths whose content or position changed.
    """
    self._generation += 1
    for path in touched:
      self._stamps[tuple(path)] = self._generation
    self._tree = tree
    self._index = None

  @property
  def index(self) -> QueryIndex:
    """Query indices of the current tree, built on first use."""
    if self._index is None:
      self._index = QueryIndex.build(self._tree)
    return self._index

  # --- Basic queries ---

  def statement_count(self) -> int:
    """Number of top-level statements."""
    return len(self._tree.body)

  def is_empty(self) -> bool:
    """True when the module holds no statements (blank or comment-only text)."""
    return not self._tree.body

  def is_comments_only(self) -> bool:
    """
    Checks whether the module consists of comments and whitespace only.

    Returns:
        bool: True when there is at least one comment and no statement.
    """
    if self._tree.body:
      return False
    lines = [*self._tree.header, *self._tree.footer]
    return any(line.comment is not None for line in lines)

  def function_names(self) -> List[str]:
    """Top-level function names in document order."""
    return list(self.index.function_names)

  def class_names(self) -> List[str]:
    """Top-level class names in document order."""
    return list(self.index.class_names)

  def imports(self) -> List[ImportRecord]:
    """All import records in document order."""
    return list(self.index.imports)

  def to_string(self) -> str:
    """
    Renders a diagnostic outline of the module.

    The outline is meant for humans and is not valid Python; use `code`
    for source text.

    Returns:
        str: Indented outline.
    """
    return OutlineGenerator().generate(self._tree)

  # --- Node queries ---

  def find_nodes(self, kind: Optional[Union[NodeKind, str]] = None) -> List[NodeRef]:
    """
    Lists statements, including nested ones, in document order.

    Args:
        kind: Optional filter, a `NodeKind` or its string value.

    Returns:
        List[NodeRef]: Handles valid for the current generation.

    Raises:
        ValueError: If `kind` is an unknown string.
    """
    wanted = NodeKind.coerce(kind) if kind is not None else None
    refs = []
    for entry in self.index.statements:
      if wanted is not None and entry.kind != wanted:
        continue
      refs.append(
        NodeRef(
          path=entry.path,
          generation=self._generation,
          kind=entry.kind,
          handler_index=entry.handler_index,
          line=entry.line,
          lineage=self._lineage,
        )
      )
    return refs

  def find_imports(self, module: Optional[str] = None) -> List[ImportRecord]:
    """
    Lists imports, optionally restricted to an exact module name.

    Args:
        module: Module to match (``"os.path"``, ``"pkg_resources"``).

    Returns:
        List[ImportRecord]: Matching records.
    """
    return [rec for rec in self.index.imports if module is None or rec.module == module]

  def find_function_calls(self, name: str) -> List[CallRecord]:
    """
    Lists calls whose callee is `name`.

    ``obj.method(...)`` matches ``"method"`` as well as ``"obj.method"``.

    Args:
        name: Bare or dotted callee name.

    Returns:
        List[CallRecord]: Matching calls anywhere in the module.
    """
    return [rec for rec in self.index.calls if name in (rec.function_name, rec.full_name)]

  def find_try_except_blocks(self, exception_type: Optional[str] = None) -> List[TryExceptRecord]:
    """
    Lists except clauses, one record per clause.

    Args:
        exception_type: Only clauses catching this type.

    Returns:
        List[TryExceptRecord]: Matching clauses.
    """
    return [rec for rec in self.index.try_excepts if exception_type is None or exception_type in rec.exception_types]

  def find_assignments(self, target: Optional[str] = None) -> List[AssignmentRecord]:
    """
    Lists assignments whose target text contains `target`.

    Args:
        target: Substring to look for (``"__"`` matches every dunder).

    Returns:
        List[AssignmentRecord]: Matching assignments.
    """
    return [rec for rec in self.index.assignments if target is None or target in rec.target]

  # --- Ref resolution ---

  def validate(self, ref: NodeRef) -> None:
    """
    Ensures a ref still addresses the statement it was issued for.

    Args:
        ref: The handle to check.

    Raises:
        StaleNodeRefError: If the ref belongs to another module or a later
          mutation touched its path or one of its ancestors.
    """
    if ref.lineage != self._lineage:
      issued_limit = self._ancestry.get(ref.lineage)
      if issued_limit is None or ref.generation > issued_limit:
        raise StaleNodeRefError(f"NodeRef {ref} does not belong to this module")

    for depth in range(len(ref.path) + 1):
      if self._stamps.get(ref.path[:depth], 0) > ref.generation:
        raise StaleNodeRefError(f"NodeRef {ref} was invalidated by a later mutation")

    try:
      node = resolve_statement(self._tree, ref.path)
    except IndexError:
      raise StaleNodeRefError(f"NodeRef {ref} no longer resolves") from None

    if ref.is_except_handler:
      handlers = getattr(node, "handlers", ())
      if ref.handler_index >= len(handlers):
        raise StaleNodeRefError(f"NodeRef {ref} no longer resolves")
    elif classify_statement(node) != ref.kind:
      raise StaleNodeRefError(f"NodeRef {ref} now points at a different statement")

  def resolve(self, ref: NodeRef) -> cst.CSTNode:
    """
    Returns the LibCST node addressed by a ref.

    Args:
        ref: A valid handle.

    Returns:
        cst.CSTNode: The statement or except clause.

    Raises:
        StaleNodeRefError: If the ref is no longer valid.
    """
    self.validate(ref)
    node = resolve_statement(self._tree, ref.path)
    if ref.is_except_handler:
      return node.handlers[ref.handler_index]
    return node

  def node_source(self, ref: NodeRef) -> str:
    """
    Returns the source text of the node addressed by a ref.

    Args:
        ref: A valid handle.

    Returns:
        str: Source text without the node's leading blank lines.
    """
    return capture_node_source(self.resolve(ref), self._tree).strip("\n")

  def __repr__(self) -> str:
    origin = f" path={self.path!r}" if self.path else ""
    return f"<PythonAst statements={self.statement_count()}{origin}>"
