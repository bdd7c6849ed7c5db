"""
Refactor Engine.

`Refactor` owns a private copy of one `PythonAst`, applies named mutations
to it and records one change log entry per successful mutation call.

Mutations come in two layers:

1.  **Named operations** (renames, import replacement, syntax and import
    modernization, unused import removal, data mocking, formatting). Each is
    a LibCST transformer from `pysplice.core.transforms` run over the whole
    tree.
2.  **Node splices** (`replace_node`, `insert_before`, `insert_after`,
    `remove_node`, `replace_code_range`, `add_import`, `add_statement`):
    the low-level primitives for user built transformations, keyed by the
    `NodeRef` handles returned by ``find_nodes``.

Every operation either succeeds completely or raises before touching the
tree and the change log. Refs addressing an edited region become stale and
raise `StaleNodeRefError` on reuse.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Type, Union

import libcst as cst
from rich.markup import escape

from pysplice.config import RefactorConfig
from pysplice.core.changelog import ChangeLog, ChangeLogEntry, ChangeSummary
from pysplice.core.codegen import CodeGenerator
from pysplice.core.formatter import FormatterAdapter
from pysplice.core.module import NodeRef, PythonAst
from pysplice.core.parser import parse_cst
from pysplice.core.paths import (
  StatementPath,
  block_length,
  changed_top_level_paths,
  resolve_statement,
  shifted_paths,
  splice_statements,
  update_statement,
)
from pysplice.core.query import classify_statement
from pysplice.core.records import AssignmentRecord, CallRecord, ImportRecord, TryExceptRecord
from pysplice.core.scanners import NameUsageScanner
from pysplice.core.snippets import ExceptClause, Snippet, parse_handler_snippet, parse_snippet
from pysplice.core.transforms import (
  DEPRECATED_MODULES,
  ComplexDataMocker,
  DeclarationRenamer,
  ImportReplacer,
  ModernizationStats,
  RealDataMocker,
  SyntaxModernizer,
  UnusedImportRemover,
)
from pysplice.enums import ChangeKind, NodeKind
from pysplice.errors import FileAccessError, NotFoundError, ParseError
from pysplice.utils.console import log_success

log = logging.getLogger(__name__)

CustomTransform = Callable[[PythonAst], Union[PythonAst, cst.Module, None]]

# Only \n, \r\n and \r end a source line.
_SOURCE_LINE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")


def _is_docstring(statement: cst.BaseStatement) -> bool:
  return (
    isinstance(statement, cst.SimpleStatementLine)
    and len(statement.body) == 1
    and isinstance(statement.body[0], cst.Expr)
    and isinstance(statement.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
  )


def _carry_leading_lines(old: cst.BaseStatement, statements: List[cst.BaseStatement]) -> List[cst.BaseStatement]:
  """Moves the comments/blank lines above a replaced statement onto its replacement."""
  if not statements or not old.leading_lines:
    return statements
  first = statements[0]
  return [first.with_changes(leading_lines=[*old.leading_lines, *first.leading_lines]), *statements[1:]]


class Refactor:
  """
  Mutation engine over one module.

  The engine starts *clean* (empty change log) and becomes *dirty* after
  the first successful mutation; there is no undo.
  """

  def __init__(
    self,
    ast: PythonAst,
    config: Optional[RefactorConfig] = None,
    formatter: Optional[FormatterAdapter] = None,
  ):
    """
    Adopts a module.

    Args:
        ast: The parsed module. The engine works on its own copy, so the
          caller's instance keeps its original tree.
        config: Engine settings. Defaults are used if None.
        formatter: Formatter used by ``format_code``. Built from `config`
          if None.
    """
    self.config = config or RefactorConfig()
    self._ast = ast.copy()
    self._formatter = formatter or FormatterAdapter.from_config(self.config)
    self._log = ChangeLog()
    self._generator = CodeGenerator()

  # --- Accessors ---

  @property
  def is_dirty(self) -> bool:
    """True once at least one mutation has been recorded."""
    return len(self._log) > 0

  def ast(self) -> PythonAst:
    """Returns the module in its current state."""
    return self._ast

  def code_generator(self) -> CodeGenerator:
    """Returns the snippet generator used for replacement text."""
    return self._generator

  # --- Internal helpers ---

  def _record(self, description: str, kind: ChangeKind, **metadata: Any) -> ChangeLogEntry:
    return self._log.record(description, kind, **metadata)

  def _replace_tree(self, tree: cst.Module) -> None:
    self._ast._commit(tree, changed_top_level_paths(self._ast.tree, tree))

  def _rewrite(self, transformer: cst.CSTTransformer) -> None:
    self._replace_tree(self._ast.tree.visit(transformer))

  def _splice(self, parent: StatementPath, start: int, stop: int, snippet: Snippet) -> None:
    tree = self._ast.tree
    old_length = block_length(tree, parent)
    new_tree = splice_statements(tree, parent, start, stop, snippet.statements, snippet.dangling)
    touched = shifted_paths(parent, start, stop - start, len(snippet.statements), old_length)
    self._ast._commit(new_tree, touched)

  def _edit_handlers(self, ref: NodeRef, start: int, stop: int, handlers: List[ExceptClause]) -> None:
    is_star = isinstance(resolve_statement(self._ast.tree, ref.path), cst.TryStar)
    expected = cst.ExceptStarHandler if is_star else cst.ExceptHandler
    if any(not isinstance(handler, expected) for handler in handlers):
      clause = "except*" if is_star else "except"
      raise ParseError(f"Expected {clause} clauses to match the try statement", line=1)

    def update(node: cst.BaseStatement) -> cst.BaseStatement:
      new_handlers = list(node.handlers)
      new_handlers[start:stop] = handlers
      if not new_handlers and (node.finalbody is None or node.orelse is not None):
        raise ValueError("A try statement needs an except clause unless it only has a finally block")
      return node.with_changes(handlers=new_handlers)

    self._ast._commit(update_statement(self._ast.tree, ref.path, update), [ref.path])

  # --- Renames ---

  def _rename(
    self,
    node_type: Type[Union[cst.FunctionDef, cst.ClassDef]],
    old_name: str,
    new_name: str,
    required: bool,
  ) -> bool:
    if node_type is cst.FunctionDef:
      entity, kind, existing = "Function", ChangeKind.FUNCTION_RENAMED, self._ast.function_names()
    else:
      entity, kind, existing = "Class", ChangeKind.CLASS_RENAMED, self._ast.class_names()

    if old_name not in existing:
      if required:
        raise NotFoundError(entity, old_name)
      log.debug("%s '%s' not present, skipping rename", entity, old_name)
      return False

    renamer = DeclarationRenamer(node_type, old_name, new_name)
    self._rewrite(renamer)
    self._record(
      f"Renamed {entity.lower()} '{old_name}' to '{new_name}'",
      kind,
      old_name=old_name,
      new_name=new_name,
      count=renamer.renamed,
    )
    return True

  def rename_function(self, old_name: str, new_name: str) -> None:
    """
    Renames top-level function declarations.

    Only the ``def`` header changes; call sites keep the old name.

    Args:
        old_name: Existing top-level function name.
        new_name: Replacement name.

    Raises:
        NotFoundError: If no top-level function is named `old_name`.
    """
    self._rename(cst.FunctionDef, old_name, new_name, required=True)

  def rename_class(self, old_name: str, new_name: str) -> None:
    """
    Renames top-level class declarations.

    Args:
        old_name: Existing top-level class name.
        new_name: Replacement name.

    Raises:
        NotFoundError: If no top-level class is named `old_name`.
    """
    self._rename(cst.ClassDef, old_name, new_name, required=True)

  def rename_function_optional(self, old_name: str, new_name: str, required: bool = False) -> bool:
    """
    Renames a function, optionally tolerating its absence.

    Args:
        old_name: Function to rename.
        new_name: Replacement name.
        required: If True, a missing function raises `NotFoundError`.

    Returns:
        bool: True if a rename was applied.
    """
    return self._rename(cst.FunctionDef, old_name, new_name, required=required)

  def rename_class_optional(self, old_name: str, new_name: str, required: bool = False) -> bool:
    """
    Renames a class, optionally tolerating its absence.

    Args:
        old_name: Class to rename.
        new_name: Replacement name.
        required: If True, a missing class raises `NotFoundError`.

    Returns:
        bool: True if a rename was applied.
    """
    return self._rename(cst.ClassDef, old_name, new_name, required=required)

  # --- Imports ---

  def replace_import(self, old_module: str, new_module: str) -> None:
    """
    Rewrites the module of every import of `old_module`.

    Matching is exact (``os`` does not match ``os.path``). Items and
    aliases are kept. A module that is never imported is a logged no-op.

    Args:
        old_module: Module to replace.
        new_module: Replacement module.
    """
    replacer = ImportReplacer({old_module: new_module})
    self._rewrite(replacer)
    self._record(
      f"Replaced import '{old_module}' with '{new_module}'",
      ChangeKind.IMPORT_REPLACED,
      old_module=old_module,
      new_module=new_module,
      count=replacer.replaced,
    )

  def modernize_imports(self) -> int:
    """
    Replaces imports of Python 2 era modules with their Python 3 names.

    Returns:
        int: Number of rewritten imports.
    """
    replacer = ImportReplacer(DEPRECATED_MODULES)
    self._rewrite(replacer)
    self._record(
      f"Modernized deprecated imports ({replacer.replaced} replaced)",
      ChangeKind.IMPORT_REPLACED,
      count=replacer.replaced,
    )
    return replacer.replaced

  def remove_unused_imports(self) -> int:
    """
    Drops imports whose bound name is never referenced in the module.

    Returns:
        int: Number of removed import names.
    """
    usage = NameUsageScanner()
    self._ast.tree.visit(usage)
    remover = UnusedImportRemover(usage)
    self._rewrite(remover)
    self._record(
      f"Removed {remover.removed} unused imports",
      ChangeKind.IMPORTS_REMOVED,
      count=remover.removed,
      names=remover.removed_names,
    )
    return remover.removed

  def add_import(self, text: str) -> None:
    """
    Inserts import statement(s) after the module's existing import block.

    The insertion point follows the module docstring and the leading run
    of import statements (``__future__`` imports included).

    Args:
        text: Import source, e.g. ``"from pathlib import Path"``.

    Raises:
        ParseError: If `text` is not valid Python.
    """
    snippet = parse_snippet(text)
    body = self._ast.tree.body
    index = 1 if body and _is_docstring(body[0]) else 0
    while index < len(body) and classify_statement(body[index]) in (NodeKind.IMPORT, NodeKind.IMPORT_FROM):
      index += 1
    self._splice((), index, index, snippet)
    self._record(f"Added import: {text.strip()}", ChangeKind.IMPORT_ADDED, text=text)

  # --- Syntax ---

  def modernize_syntax(self) -> ModernizationStats:
    """
    Applies the fixed table of legacy-to-modern syntax rewrites.

    Unrecognized patterns are left untouched; this never fails.

    Returns:
        ModernizationStats: Rewrite counts per rule.
    """
    modernizer = SyntaxModernizer()
    self._rewrite(modernizer)
    stats = modernizer.stats
    self._record(
      f"Modernized Python syntax ({stats.total} changes)",
      ChangeKind.SYNTAX_MODERNIZED,
      count=stats.total,
      rules={k: v for k, v in vars(stats).items() if v},
    )
    return stats

  # --- Test data ---

  def replace_complex_data_with_mocks(self) -> int:
    """
    Empties oversized or deeply nested top-level container literals.

    Returns:
        int: Number of replaced assignments.
    """
    mocker = ComplexDataMocker(self.config)
    self._rewrite(mocker)
    self._record(
      f"Replaced {mocker.replaced} complex data structures with mock data",
      ChangeKind.DATA_MOCKED,
      count=mocker.replaced,
    )
    return mocker.replaced

  def replace_real_data_with_mocks(self) -> int:
    """
    Replaces top-level values that look like credentials or real data.

    Returns:
        int: Number of replaced assignments.
    """
    mocker = RealDataMocker(self.config)
    self._rewrite(mocker)
    self._record(
      f"Replaced {mocker.replaced} real data values with mock data",
      ChangeKind.DATA_MOCKED,
      count=mocker.replaced,
    )
    return mocker.replaced

  def convert_to_test_code(self) -> None:
    """Removes unused imports, then mocks complex and real data."""
    self.remove_unused_imports()
    self.replace_complex_data_with_mocks()
    self.replace_real_data_with_mocks()

  # --- Formatting ---

  def format_code(self) -> None:
    """
    Formats the current code and re-parses the result.

    Raises:
        FormatError: If formatting fails under the ``"raise"`` policy.
    """
    before = self._ast.code
    formatted = self._formatter.format(before)
    self._replace_tree(parse_cst(formatted))
    self._record("Applied code formatting", ChangeKind.FORMATTED, changed=formatted != before)

  def rename_function_with_format(self, old_name: str, new_name: str, apply_formatting: bool = False) -> None:
    """Renames a function, then formats when `apply_formatting` is set."""
    self.rename_function(old_name, new_name)
    if apply_formatting:
      self.format_code()

  def rename_class_with_format(self, old_name: str, new_name: str, apply_formatting: bool = False) -> None:
    """Renames a class, then formats when `apply_formatting` is set."""
    self.rename_class(old_name, new_name)
    if apply_formatting:
      self.format_code()

  def replace_import_with_format(self, old_module: str, new_module: str, apply_formatting: bool = False) -> None:
    """Replaces an import, then formats when `apply_formatting` is set."""
    self.replace_import(old_module, new_module)
    if apply_formatting:
      self.format_code()

  def modernize_syntax_with_format(self, apply_formatting: bool = False) -> None:
    """Modernizes syntax, then formats when `apply_formatting` is set."""
    self.modernize_syntax()
    if apply_formatting:
      self.format_code()

  # --- Output ---

  def get_code(self) -> str:
    """Serializes the current tree exactly, without formatting."""
    return self._ast.code

  def to_string(self) -> str:
    """Alias of `get_code`."""
    return self.get_code()

  def get_code_with_format(self, apply_formatting: bool = False) -> str:
    """
    Returns the code, formatting it first when requested.

    Args:
        apply_formatting: If True, ``format_code`` runs (and is logged).

    Returns:
        str: The current code.
    """
    if apply_formatting:
      self.format_code()
    return self.get_code()

  def refactor_and_format(self) -> str:
    """Formats the current code and returns it."""
    return self.get_code_with_format(apply_formatting=True)

  def save_to_file(self, path: Union[str, Path]) -> None:
    """
    Writes the current code to disk as UTF-8.

    The text is written to a temporary sibling and moved into place, so an
    existing file is never left truncated.

    Args:
        path: Destination file.

    Raises:
        FileAccessError: If the parent directory is missing or not writable.
    """
    target = Path(path)
    code = self.get_code()
    try:
      fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    except OSError as e:
      raise FileAccessError(f"Cannot write {target}: {e}") from e

    try:
      with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
        handle.write(code)
      os.chmod(tmp_name, target.stat().st_mode & 0o777 if target.exists() else 0o644)
      os.replace(tmp_name, target)
    except OSError as e:
      Path(tmp_name).unlink(missing_ok=True)
      raise FileAccessError(f"Cannot write {target}: {e}") from e
    log_success(f"Saved [path]{escape(str(target))}[/path]")

  # --- Change log ---

  def change_summary(self) -> ChangeSummary:
    """
    Returns the ordered change descriptions.

    ``str()`` of the result renders ``"No changes made"`` or
    ``"Made <N> changes:"`` plus a numbered list.
    """
    return self._log.summary()

  def change_summary_text(self) -> str:
    """Returns the rendered change summary."""
    return self._log.summary().render()

  def changes(self) -> Tuple[ChangeLogEntry, ...]:
    """Returns the full change log entries."""
    return self._log.entries

  # --- Queries ---

  def find_nodes(self, kind: Optional[Union[NodeKind, str]] = None) -> List[NodeRef]:
    """See `PythonAst.find_nodes`."""
    return self._ast.find_nodes(kind)

  def find_imports(self, module: Optional[str] = None) -> List[ImportRecord]:
    """See `PythonAst.find_imports`."""
    return self._ast.find_imports(module)

  def find_function_calls(self, name: str) -> List[CallRecord]:
    """See `PythonAst.find_function_calls`."""
    return self._ast.find_function_calls(name)

  def find_try_except_blocks(self, exception_type: Optional[str] = None) -> List[TryExceptRecord]:
    """See `PythonAst.find_try_except_blocks`."""
    return self._ast.find_try_except_blocks(exception_type)

  def find_assignments(self, target: Optional[str] = None) -> List[AssignmentRecord]:
    """See `PythonAst.find_assignments`."""
    return self._ast.find_assignments(target)

  # --- Node splices ---

  def replace_node(self, ref: NodeRef, text: str) -> None:
    """
    Replaces the statement (or except clause) addressed by `ref`.

    Comments above the replaced statement are kept above the replacement.
    An empty `text` removes the statement.

    Args:
        ref: Handle from ``find_nodes``.
        text: Replacement source; dedented before parsing.

    Raises:
        StaleNodeRefError: If `ref` is no longer valid.
        ParseError: If `text` does not parse. Nothing is changed.
    """
    before = self._ast.node_source(ref)
    if ref.is_except_handler:
      index = ref.handler_index
      self._edit_handlers(ref, index, index + 1, parse_handler_snippet(text))
    else:
      snippet = parse_snippet(text)
      old = resolve_statement(self._ast.tree, ref.path)
      statements = _carry_leading_lines(old, snippet.statements)
      index = ref.path[-1]
      self._splice(ref.path[:-1], index, index + 1, Snippet(statements, snippet.dangling))
    self._record(
      f"Replaced {ref.kind.value} node at line {ref.line}",
      ChangeKind.NODE_EDITED,
      operation="replace",
      line=ref.line,
      before=before,
      after=text,
    )

  def insert_before(self, ref: NodeRef, text: str) -> None:
    """
    Inserts statements (or except clauses) in front of `ref`.

    Args:
        ref: Handle from ``find_nodes``.
        text: Source to insert; comment-only text inserts comment lines.

    Raises:
        StaleNodeRefError: If `ref` is no longer valid.
        ParseError: If `text` does not parse.
    """
    self._insert(ref, text, offset=0)
    self._record(
      f"Inserted code before {ref.kind.value} node at line {ref.line}",
      ChangeKind.NODE_EDITED,
      operation="insert_before",
      line=ref.line,
      after=text,
    )

  def insert_after(self, ref: NodeRef, text: str) -> None:
    """
    Inserts statements (or except clauses) after `ref`.

    Args:
        ref: Handle from ``find_nodes``.
        text: Source to insert.

    Raises:
        StaleNodeRefError: If `ref` is no longer valid.
        ParseError: If `text` does not parse.
    """
    self._insert(ref, text, offset=1)
    self._record(
      f"Inserted code after {ref.kind.value} node at line {ref.line}",
      ChangeKind.NODE_EDITED,
      operation="insert_after",
      line=ref.line,
      after=text,
    )

  def _insert(self, ref: NodeRef, text: str, offset: int) -> None:
    self._ast.validate(ref)
    if ref.is_except_handler:
      index = ref.handler_index + offset
      self._edit_handlers(ref, index, index, parse_handler_snippet(text))
    else:
      snippet = parse_snippet(text)
      index = ref.path[-1] + offset
      self._splice(ref.path[:-1], index, index, snippet)

  def remove_node(self, ref: NodeRef) -> None:
    """
    Removes the statement (or except clause) addressed by `ref`.

    A nested block left without statements receives ``pass``.

    Args:
        ref: Handle from ``find_nodes``.

    Raises:
        StaleNodeRefError: If `ref` is no longer valid.
        ValueError: If the last except clause of a try without ``finally``
          would be removed.
    """
    before = self._ast.node_source(ref)
    if ref.is_except_handler:
      index = ref.handler_index
      self._edit_handlers(ref, index, index + 1, [])
    else:
      index = ref.path[-1]
      self._splice(ref.path[:-1], index, index + 1, Snippet())
    self._record(
      f"Removed {ref.kind.value} node at line {ref.line}",
      ChangeKind.NODE_EDITED,
      operation="remove",
      line=ref.line,
      before=before,
    )

  def replace_code_range(self, start_line: int, end_line: int, text: str) -> None:
    """
    Replaces whole lines of the current code.

    Args:
        start_line: First replaced line (1-based).
        end_line: Last replaced line (inclusive).
        text: Replacement lines, used verbatim (no dedent).

    Raises:
        ValueError: If the range is outside the current code.
        ParseError: If the resulting code does not parse. Nothing is changed.
    """
    lines = _SOURCE_LINE.findall(self._ast.code)
    if not 1 <= start_line <= end_line <= len(lines):
      raise ValueError(f"Invalid line range {start_line}-{end_line} for code with {len(lines)} lines")

    replacement = text
    if replacement and not replacement.endswith("\n"):
      replacement += self._ast.tree.default_newline
    new_code = "".join(lines[: start_line - 1]) + replacement + "".join(lines[end_line:])
    self._replace_tree(parse_cst(new_code))
    self._record(
      f"Replaced lines {start_line}-{end_line}",
      ChangeKind.NODE_EDITED,
      operation="replace_range",
      before="".join(lines[start_line - 1 : end_line]),
      after=text,
    )

  def add_statement(self, text: str) -> None:
    """
    Appends statements at the end of the module.

    Args:
        text: Statement source.

    Raises:
        ParseError: If `text` does not parse.
    """
    snippet = parse_snippet(text)
    end = self._ast.statement_count()
    self._splice((), end, end, snippet)
    self._record("Added statement at end of module", ChangeKind.NODE_EDITED, operation="append", after=text)

  # --- Extension points ---

  def apply_transformer(self, transformer: cst.CSTTransformer, description: Optional[str] = None) -> None:
    """
    Runs an arbitrary LibCST transformer over the module.

    Args:
        transformer: The transformer instance.
        description: Change log text; defaults to the transformer class name.
    """
    self._rewrite(transformer)
    self._record(description or f"Applied {type(transformer).__name__}", ChangeKind.CUSTOM)

  def apply_custom_transform(self, description: str, transform: CustomTransform) -> None:
    """
    Runs a user function over the module and adopts its result.

    Args:
        description: Change log text.
        transform: Callable receiving the current `PythonAst` and returning
          a new `PythonAst`, a LibCST module, or None for no tree change.

    Raises:
        TypeError: If the callable returns anything else.
    """
    result = transform(self._ast)
    if result is None:
      tree = self._ast.tree
    elif isinstance(result, PythonAst):
      tree = result.tree
    elif isinstance(result, cst.Module):
      tree = result
    else:
      raise TypeError(f"Custom transform returned {type(result).__name__}, expected PythonAst, Module or None")
    self._replace_tree(tree)
    self._record(description, ChangeKind.CUSTOM)

  def __repr__(self) -> str:
    return f"<Refactor changes={len(self._log)} statements={self._ast.statement_count()}>"
