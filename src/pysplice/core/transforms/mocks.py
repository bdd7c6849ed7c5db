"""
Test Data Mocking.

Transformers that shrink module-level data so a module can be used as a
test fixture:

1.  `ComplexDataMocker` empties container literals that are too large or
    too deeply nested.
2.  `RealDataMocker` replaces values that look like credentials, URLs with
    passwords, API keys, absolute paths or digests.

Both only look at top-level ``name = <literal>`` assignments. The binding
name is kept so every usage of it elsewhere stays valid.
"""

import re
from typing import Optional, Union

import libcst as cst

from pysplice.config import RefactorConfig

ContainerNode = Union[cst.Dict, cst.List, cst.Tuple, cst.Set]
_CONTAINERS = (cst.Dict, cst.List, cst.Tuple, cst.Set)

_SECRET_VALUE_PATTERNS = [
  re.compile(r"^[a-z][a-z0-9+.\-]*://[^/\s:@]+:[^/\s@]+@", re.IGNORECASE),
  re.compile(r"^sk-[A-Za-z0-9_\-]{8,}$"),
  re.compile(r"^bearer\s+\S+$", re.IGNORECASE),
  re.compile(r"^-----BEGIN [A-Z ]*PRIVATE KEY-----"),
  re.compile(r"^(/[^/\s]+){2,}/?$"),
  re.compile(r"^[A-Za-z]:\\"),
  re.compile(r"^[0-9a-fA-F]{32,}$"),
]


def looks_like_secret_value(value: str) -> bool:
  """
  Checks a string literal against the credential/real-data heuristics.

  Args:
      value: The evaluated string.

  Returns:
      bool: True for URLs with credentials, ``sk-`` keys, bearer tokens,
      private keys, absolute paths and hex digests.
  """
  text = value.strip()
  return any(p.search(text) for p in _SECRET_VALUE_PATTERNS)


def string_value(node: cst.CSTNode) -> Optional[str]:
  """Evaluates a plain or implicitly concatenated str literal."""
  if isinstance(node, (cst.SimpleString, cst.ConcatenatedString)):
    value = node.evaluated_value
    return value if isinstance(value, str) else None
  return None


def empty_literal(node: ContainerNode) -> cst.BaseExpression:
  """
  Builds an empty literal of the same container type.

  ``set()`` is used for sets since ``{}`` is a dict.
  """
  if isinstance(node, cst.Dict):
    return cst.Dict(elements=[])
  if isinstance(node, cst.List):
    return cst.List(elements=[])
  if isinstance(node, cst.Tuple):
    return cst.Tuple(elements=[])
  return cst.Call(func=cst.Name("set"))


def container_size(node: cst.BaseExpression) -> int:
  """Total number of elements (dict entries count once) at every level."""
  if not isinstance(node, _CONTAINERS):
    return 0
  total = len(node.elements)
  for element in node.elements:
    total += container_size(element.value)
  return total


def container_depth(node: cst.BaseExpression) -> int:
  """Nesting depth: 0 for scalars, 1 for a flat container."""
  if not isinstance(node, _CONTAINERS):
    return 0
  return 1 + max((container_depth(element.value) for element in node.elements), default=0)


class _TopLevelAssignTransformer(cst.CSTTransformer):
  """Base class visiting only ``name = value`` statements of the module body."""

  def __init__(self, config: RefactorConfig):
    super().__init__()
    self.config = config
    self.replaced = 0

  def on_visit(self, node: cst.CSTNode) -> bool:
    return isinstance(node, (cst.Module, cst.SimpleStatementLine))

  def leave_Assign(self, original_node: cst.Assign, updated_node: cst.Assign) -> cst.Assign:
    if len(updated_node.targets) != 1 or not isinstance(updated_node.targets[0].target, cst.Name):
      return updated_node
    target = updated_node.targets[0].target.value
    value = self.mock_value(target, updated_node.value)
    if value is None:
      return updated_node
    self.replaced += 1
    return updated_node.with_changes(value=value)

  def mock_value(self, target: str, value: cst.BaseExpression) -> Optional[cst.BaseExpression]:
    """Returns the replacement value or None to keep the assignment."""
    raise NotImplementedError


class ComplexDataMocker(_TopLevelAssignTransformer):
  """
  Empties container literals exceeding ``mock_max_items`` elements or
  ``mock_max_depth`` levels of nesting.
  """

  def mock_value(self, target: str, value: cst.BaseExpression) -> Optional[cst.BaseExpression]:
    if not isinstance(value, _CONTAINERS) or not value.elements:
      return None
    too_large = container_size(value) > self.config.mock_max_items
    too_deep = container_depth(value) > self.config.mock_max_depth
    if too_large or too_deep:
      return empty_literal(value)
    return None


class RealDataMocker(_TopLevelAssignTransformer):
  """
  Replaces values that look like real credentials or environment data.

  A plain string bound to a secret-looking name (or holding a secret-looking
  value) becomes ``"mock_<name>"``; a container holding such data becomes an
  empty literal.
  """

  def mock_value(self, target: str, value: cst.BaseExpression) -> Optional[cst.BaseExpression]:
    key_regex = self.config.secret_key_regex
    text = string_value(value)
    if text is not None:
      if key_regex.search(target) or looks_like_secret_value(text):
        placeholder = f"mock_{target.lower()}"
        if text == placeholder:
          return None
        return cst.SimpleString(f'"{placeholder}"')
      return None

    if isinstance(value, _CONTAINERS) and self._container_has_secret(value):
      return empty_literal(value)
    return None

  def _container_has_secret(self, node: ContainerNode) -> bool:
    key_regex = self.config.secret_key_regex
    for element in node.elements:
      if isinstance(element, cst.DictElement):
        key = string_value(element.key)
        if key is not None and key_regex.search(key) and string_value(element.value) is not None:
          return True
      child = element.value
      text = string_value(child)
      if text is not None and looks_like_secret_value(text):
        return True
      if isinstance(child, _CONTAINERS) and self._container_has_secret(child):
        return True
    return False
