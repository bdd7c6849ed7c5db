"""
Statement Addressing and Splicing.

A statement is addressed by its *path*: the steps leading from the module
body down to it. An integer step indexes the statement list of the current
block; the block of a statement is its indented ``body`` unless a string
step selects another one:

- ``"orelse"``: the ``else:`` block of ``if``/``for``/``while``/``try``, or
  the ``elif`` that follows an ``if`` (``"orelse"`` again reaches its own
  ``elif``/``else``).
- ``"finalbody"``: the ``finally:`` block of a ``try``.
- ``"handlers[k]"``: the body of the k-th except clause of a ``try``.
- ``"cases[k]"``: the body of the k-th case of a ``match``.

``(3, 0)`` is the first statement inside the fourth top-level statement,
``(3, "orelse", 0)`` the first statement of its ``else:`` block.
LibCST trees are immutable, so every edit rebuilds the spine from the module
down to the edited block while sharing all untouched subtrees.
"""

import re
from typing import Callable, List, Optional, Sequence, Tuple, Union

import libcst as cst

PathStep = Union[int, str]
StatementPath = Tuple[PathStep, ...]

_SELECTOR = re.compile(r"(orelse|finalbody)|(handlers|cases)\[(\d+)\]")


def child_statements(node: cst.CSTNode) -> Optional[Sequence[cst.BaseStatement]]:
  """
  Returns the addressable statement list owned by a node.

  Args:
      node: A module, compound statement or selected sub-block (``else``,
        ``finally``, except clause, match case).

  Returns:
      The module body or the statements of the node's indented ``body``;
      None for nodes without an indented body (e.g. ``def f(): pass``).
  """
  if isinstance(node, cst.Module):
    return node.body
  body = getattr(node, "body", None)
  if isinstance(body, cst.IndentedBlock):
    return body.body
  return None


def with_child_statements(node: cst.CSTNode, statements: Sequence[cst.BaseStatement]) -> cst.CSTNode:
  """
  Rebuilds a module or compound statement around a new statement list.

  Args:
      node: The container returned by `child_statements`.
      statements: Replacement statement list.

  Returns:
      The updated container.
  """
  if isinstance(node, cst.Module):
    return node.with_changes(body=list(statements))
  return node.with_changes(body=node.body.with_changes(body=list(statements)))


def sub_blocks(node: cst.CSTNode) -> List[Tuple[str, cst.CSTNode]]:
  """
  Lists the blocks of a compound statement besides its ``body``.

  Args:
      node: A statement or selected sub-block.

  Returns:
      ``(selector, block)`` pairs in document order.
  """
  blocks: List[Tuple[str, cst.CSTNode]] = []
  for name in ("handlers", "cases"):
    for k, block in enumerate(getattr(node, name, None) or ()):
      blocks.append((f"{name}[{k}]", block))
  for name in ("orelse", "finalbody"):
    block = getattr(node, name, None)
    if isinstance(block, cst.CSTNode):
      blocks.append((name, block))
  return blocks


def _parse_selector(step: str) -> Tuple[str, Optional[int]]:
  match = _SELECTOR.fullmatch(step)
  if match is None:
    raise IndexError(f"Unknown block selector {step!r}")
  single, many, index = match.groups()
  return (single, None) if single else (many, int(index))


def _descend(node: cst.CSTNode, step: PathStep) -> cst.CSTNode:
  if isinstance(step, str):
    name, index = _parse_selector(step)
    value = getattr(node, name, None)
    if index is not None:
      items = value or ()
      value = items[index] if 0 <= index < len(items) else None
    if not isinstance(value, cst.CSTNode):
      raise IndexError(f"Block {step!r} does not exist")
    return value

  statements = child_statements(node)
  if statements is None or not 0 <= step < len(statements):
    raise IndexError(f"Statement {step} does not exist")
  return statements[step]


def _replace_child(node: cst.CSTNode, step: PathStep, child: cst.CSTNode) -> cst.CSTNode:
  if isinstance(step, str):
    name, index = _parse_selector(step)
    if index is None:
      return node.with_changes(**{name: child})
    items = list(getattr(node, name))
    items[index] = child
    return node.with_changes(**{name: items})

  statements = list(child_statements(node))
  statements[step] = child
  return with_child_statements(node, statements)


def resolve_node(tree: cst.Module, path: StatementPath) -> cst.CSTNode:
  """
  Follows a path down to its statement or selected block.

  Args:
      tree: The module.
      path: Statement path; ``()`` resolves to the module itself.

  Returns:
      The addressed node.

  Raises:
      IndexError: If the path does not exist in the tree.
  """
  node: cst.CSTNode = tree
  try:
    for step in path:
      node = _descend(node, step)
  except IndexError:
    raise IndexError(f"Statement path {path} does not exist") from None
  return node


def resolve_statement(tree: cst.Module, path: StatementPath) -> cst.BaseStatement:
  """
  Follows a path down to its statement.

  Args:
      tree: The module.
      path: Non-empty statement path ending in a statement index.

  Returns:
      The addressed statement.

  Raises:
      IndexError: If the path does not exist in the tree.
  """
  if not path or not isinstance(path[-1], int):
    raise IndexError(f"Statement path {path} does not address a statement")
  return resolve_node(tree, path)


def update_node(
  tree: cst.Module,
  path: StatementPath,
  update: Callable[[cst.CSTNode], cst.CSTNode],
) -> cst.Module:
  """
  Replaces the node at `path` with ``update(node)``.

  Args:
      tree: The module.
      path: Statement or block path; ``()`` updates the module.
      update: Function producing the replacement node.

  Returns:
      cst.Module: The rebuilt module.
  """

  def rebuild(node: cst.CSTNode, remaining: StatementPath) -> cst.CSTNode:
    if not remaining:
      return update(node)
    step = remaining[0]
    return _replace_child(node, step, rebuild(_descend(node, step), remaining[1:]))

  return rebuild(tree, path)


def update_statement(
  tree: cst.Module,
  path: StatementPath,
  update: Callable[[cst.BaseStatement], cst.BaseStatement],
) -> cst.Module:
  """
  Replaces the statement at `path` with ``update(statement)``.

  Args:
      tree: The module.
      path: Non-empty statement path.
      update: Function producing the replacement statement.

  Returns:
      cst.Module: The rebuilt module.
  """
  resolve_statement(tree, path)
  return update_node(tree, path, update)


def splice_statements(
  tree: cst.Module,
  parent: StatementPath,
  start: int,
  stop: int,
  replacement: Sequence[cst.BaseStatement],
  dangling: Sequence[cst.EmptyLine] = (),
) -> cst.Module:
  """
  Replaces ``statements[start:stop]`` of the block at `parent`.

  Comment lines in `dangling` are attached in front of whatever follows the
  inserted statements, or to the block footer at the end of the block.
  A nested block emptied by the splice receives a ``pass`` statement. A
  module that gains its first statements also gains a trailing newline.

  Args:
      tree: The module.
      parent: Path of the block owner; ``()`` for the module body.
      start: First replaced index.
      stop: One past the last replaced index (``start == stop`` inserts).
      replacement: Statements to insert.
      dangling: Comment lines without a statement to carry them.

  Returns:
      cst.Module: The rebuilt module.
  """

  def splice(container: cst.CSTNode) -> cst.CSTNode:
    statements: List[cst.BaseStatement] = list(child_statements(container) or [])
    was_empty = not statements
    statements[start:stop] = list(replacement)
    follow = start + len(replacement)

    if dangling:
      if follow < len(statements):
        nxt = statements[follow]
        statements[follow] = nxt.with_changes(leading_lines=[*dangling, *nxt.leading_lines])
      else:
        container = _append_footer(container, dangling)

    if isinstance(container, cst.Module):
      if statements and was_empty and not container.has_trailing_newline:
        container = container.with_changes(has_trailing_newline=True)
    elif not statements:
      statements = [cst.SimpleStatementLine(body=[cst.Pass()])]
    return with_child_statements(container, statements)

  return update_node(tree, parent, splice)


def _append_footer(container: cst.CSTNode, lines: Sequence[cst.EmptyLine]) -> cst.CSTNode:
  if isinstance(container, cst.Module):
    return container.with_changes(footer=[*lines, *container.footer])
  block = container.body
  return container.with_changes(body=block.with_changes(footer=[*lines, *block.footer]))


def block_length(tree: cst.Module, parent: StatementPath) -> int:
  """
  Counts the statements of the block owned by `parent`.

  Args:
      tree: The module.
      parent: Path of the block owner; ``()`` for the module body.

  Returns:
      int: Number of statements, 0 for nodes without an indented body.
  """
  container = resolve_node(tree, parent)
  return len(child_statements(container) or [])


def shifted_paths(parent: StatementPath, start: int, removed: int, inserted: int, old_length: int) -> List[StatementPath]:
  """
  Lists the sibling paths whose statement changes after a splice.

  A splice that keeps the block length only changes the replaced slots;
  otherwise every index from `start` to the end of the block holds a new
  or a shifted statement.

  Args:
      parent: Path of the edited block owner.
      start: First edited index.
      removed: Number of statements taken out.
      inserted: Number of statements put in.
      old_length: Block length before the splice.

  Returns:
      List of affected statement paths.
  """
  if removed == inserted:
    end = start + removed
  else:
    end = max(old_length, old_length - removed + inserted)
  return [parent + (i,) for i in range(start, end)]


def changed_top_level_paths(before: cst.Module, after: cst.Module) -> List[StatementPath]:
  """
  Compares two module bodies and lists the top-level paths that differ.

  Equal-length bodies report individually changed statements; otherwise all
  positions from the first difference on are reported as shifted.

  Args:
      before: The module prior to a rewrite.
      after: The module after the rewrite.

  Returns:
      List of changed top-level paths.
  """
  old_body, new_body = before.body, after.body
  if len(old_body) == len(new_body):
    return [(i,) for i, (a, b) in enumerate(zip(old_body, new_body)) if a is not b and not a.deep_equals(b)]

  first = 0
  for a, b in zip(old_body, new_body):
    if a is not b and not a.deep_equals(b):
      break
    first += 1
  return [(i,) for i in range(first, max(len(old_body), len(new_body)))]
