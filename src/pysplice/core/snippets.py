"""
Snippet Parsing for Node Splices.

Converts user supplied replacement text into LibCST statements ready to be
spliced into an existing tree. Snippets are dedented first, so text copied
from inside a function body can be inserted anywhere.
"""

import re
import textwrap
from dataclasses import dataclass, field
from typing import List, Union

import libcst as cst

from pysplice.core.parser import parse_cst
from pysplice.errors import ParseError

ExceptClause = Union[cst.ExceptHandler, cst.ExceptStarHandler]

# Lines prepended to an except-clause snippet so that it parses as a module.
_HANDLER_PRELUDE = "try:\n    pass\n"
_PRELUDE_LINES = 2
# "error at 6:4" / "@ 6:4" locations inside LibCST messages.
_LOCATION = re.compile(r"(\bat|@) (\d+):(\d+)")


@dataclass
class Snippet:
  """
  Parsed replacement text.

  Attributes:
      statements: Statements in source order.
      dangling: Comment lines not attached to any statement.
  """

  statements: List[cst.BaseStatement] = field(default_factory=list)
  dangling: List[cst.EmptyLine] = field(default_factory=list)

  @property
  def is_empty(self) -> bool:
    return not self.statements and not self.dangling


def _normalize(text: str) -> str:
  source = textwrap.dedent(text)
  if source and not source.endswith("\n"):
    source += "\n"
  return source


def _shift_location(match: "re.Match[str]") -> str:
  line = max(int(match.group(2)) - _PRELUDE_LINES, 1)
  return f"{match.group(1)} {line}:{match.group(3)}"


def parse_snippet(text: str) -> Snippet:
  """
  Parses a statement snippet.

  Header comments are attached to the first statement; trailing comments
  (or all comments of a comment-only snippet) are returned as dangling lines.

  Args:
      text: One or more statements, possibly indented.

  Returns:
      Snippet: The parsed statements.

  Raises:
      ParseError: If the snippet is not valid Python.
  """
  module = parse_cst(_normalize(text))
  statements = list(module.body)
  header = list(module.header)
  footer = [line for line in module.footer if line.comment is not None]

  if not statements:
    comments = [line for line in header if line.comment is not None]
    return Snippet(dangling=comments + footer)

  if header:
    first = statements[0]
    statements[0] = first.with_changes(leading_lines=[*header, *first.leading_lines])
  return Snippet(statements=statements, dangling=footer)


def parse_handler_snippet(text: str) -> List[ExceptClause]:
  """
  Parses one or more ``except`` clauses.

  Args:
      text: Except clause source, e.g. ``"except KeyError:\\n    pass"``.

  Returns:
      List[ExceptClause]: The parsed clauses.

  Raises:
      ParseError: If the text is not a sequence of except clauses.
  """
  source = _normalize(text)
  try:
    module = parse_cst(_HANDLER_PRELUDE + source)
  except ParseError as e:
    reason = _LOCATION.sub(_shift_location, e.reason)
    raise ParseError(reason, line=max(e.line - _PRELUDE_LINES, 1), column=e.column) from e

  if len(module.body) != 1 or not isinstance(module.body[0], (cst.Try, cst.TryStar)):
    raise ParseError("Expected only except clauses", line=1)
  node = module.body[0]
  if node.orelse is not None or node.finalbody is not None:
    raise ParseError("Expected only except clauses", line=1)
  return list(node.handlers)
