"""
Syntax Modernization.

A fixed table of legacy-to-modern rewrites expressed as LibCST matchers.
Every rule only fires on patterns it fully understands; anything else is
left untouched.

Rules:
1.  ``"%s and %r" % (a, b)`` -> ``f"{a} and {b!r}"`` (``%s``, ``%d``, ``%i``,
    ``%r`` and ``%%`` only; arguments must be names, attributes or numbers).
    ``%d``/``%i`` truncate floats, so they only accept integer literals.
2.  ``"{} {0}".format(a)`` -> f-string (empty or positional fields, with
    optional conversion and format spec).
3.  ``super(Cls, self)`` inside a method of ``Cls`` -> ``super()``.
4.  ``class C(object):`` -> ``class C:``.
5.  ``u"text"`` -> ``"text"``.
6.  ``set([1, 2])`` / ``set((1, 2))`` -> ``{1, 2}``.
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Collection, List, Optional, Sequence, Tuple

import libcst as cst
from libcst import matchers as m

from pysplice.core.scanners import get_full_name

_FORMAT_FIELD = re.compile(r"(\d*)(![rsa])?(:[^{}]*)?")
_PERCENT_CONVERSIONS = {"s": "", "d": "", "i": "", "r": "!r"}
_INTEGER_CONVERSIONS = frozenset("di")
# Scopes that cannot hold a zero-argument super() call on their own.
_NESTED_SCOPES = (cst.Lambda, cst.GeneratorExp, cst.ListComp, cst.SetComp, cst.DictComp)


@dataclass
class ModernizationStats:
  """Counts the rewrites applied by each rule."""

  percent_format: int = 0
  str_format: int = 0
  super_calls: int = 0
  object_bases: int = 0
  unicode_prefixes: int = 0
  set_literals: int = 0

  @property
  def total(self) -> int:
    return sum(getattr(self, f.name) for f in fields(self))


def _simple_arg_text(node: cst.BaseExpression) -> Optional[str]:
  if isinstance(node, (cst.Name, cst.Attribute)):
    return get_full_name(node) or None
  if isinstance(node, (cst.Integer, cst.Float)) and not node.lpar:
    return node.value
  return None


def _string_parts(node: cst.SimpleString) -> Optional[Tuple[str, str, str]]:
  """Splits a non-bytes string into (prefix without u, quote, raw body)."""
  prefix = node.prefix.lower()
  if "b" in prefix or "f" in prefix:
    return None
  if "r" not in prefix and "\\N" in node.raw_value:
    return None
  new_prefix = "".join(c for c in node.prefix if c.lower() != "u")
  return new_prefix, node.quote, node.raw_value


def _build_fstring(prefix: str, quote: str, body: str) -> cst.FormattedString:
  return cst.ensure_type(cst.parse_expression(f"{prefix}f{quote}{body}{quote}"), cst.FormattedString)


def convert_percent_template(raw: str, args: Sequence[str], integer_args: Collection[int] = ()) -> Optional[str]:
  """
  Converts a %-template body into an f-string body.

  Args:
      raw: String body as written in the source.
      args: Source text of each positional argument.
      integer_args: Positions of arguments that are integer literals. A
        ``%d``/``%i`` field consuming any other argument is unsupported.

  Returns:
      The f-string body, or None if the template is not supported.
  """
  out: List[str] = []
  arg_index = 0
  i = 0
  while i < len(raw):
    ch = raw[i]
    if ch == "%":
      spec = raw[i + 1 : i + 2]
      if spec == "%":
        out.append("%")
      elif spec in _PERCENT_CONVERSIONS:
        if arg_index >= len(args):
          return None
        if spec in _INTEGER_CONVERSIONS and arg_index not in integer_args:
          return None
        out.append(f"{{{args[arg_index]}{_PERCENT_CONVERSIONS[spec]}}}")
        arg_index += 1
      else:
        return None
      i += 2
      continue
    out.append(ch * 2 if ch in "{}" else ch)
    i += 1

  if arg_index != len(args):
    return None
  return "".join(out)


def convert_format_template(raw: str, args: Sequence[str]) -> Optional[str]:
  """
  Converts a str.format template body into an f-string body.

  Args:
      raw: String body as written in the source.
      args: Source text of each positional argument.

  Returns:
      The f-string body, or None if the template is not supported.
  """
  out: List[str] = []
  used = set()
  auto_index = 0
  numbering = None
  i = 0
  while i < len(raw):
    ch = raw[i]
    if ch in "{}" and raw[i + 1 : i + 2] == ch:
      out.append(ch * 2)
      i += 2
      continue
    if ch == "}":
      return None
    if ch != "{":
      out.append(ch)
      i += 1
      continue

    end = raw.find("}", i)
    if end == -1:
      return None
    match = _FORMAT_FIELD.fullmatch(raw[i + 1 : end])
    if match is None:
      return None
    digits, conversion, format_spec = match.groups()

    style = "manual" if digits else "auto"
    if numbering not in (None, style):
      return None
    numbering = style
    if digits:
      index = int(digits)
    else:
      index = auto_index
      auto_index += 1
    if index >= len(args):
      return None

    used.add(index)
    out.append(f"{{{args[index]}{conversion or ''}{format_spec or ''}}}")
    i = end + 1

  if used != set(range(len(args))):
    return None
  return "".join(out)


class SyntaxModernizer(m.MatcherDecoratableTransformer):
  """
  Applies the modernization rule table to a module.

  Attributes:
      stats (ModernizationStats): Per-rule rewrite counters.
  """

  def __init__(self, stats: Optional[ModernizationStats] = None):
    super().__init__()
    self.stats = stats or ModernizationStats()
    # ("class", name) / ("def", first parameter) / ("nested", None) entries,
    # innermost last.
    self._scopes: List[Tuple[str, Optional[str]]] = []

  # --- Scope tracking ---

  def on_visit(self, node: cst.CSTNode) -> bool:
    if isinstance(node, _NESTED_SCOPES):
      self._scopes.append(("nested", None))
    return super().on_visit(node)

  def on_leave(self, original_node: cst.CSTNode, updated_node: cst.CSTNode) -> Any:
    result = super().on_leave(original_node, updated_node)
    if isinstance(original_node, _NESTED_SCOPES):
      self._scopes.pop()
    return result

  def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
    self._scopes.append(("class", node.name.value))
    return True

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    params = node.params.params
    self._scopes.append(("def", params[0].name.value if params else None))
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    self._scopes.pop()
    return updated_node

  # --- Rule 4: object base ---

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    """Drops an explicit ``object`` base class."""
    self._scopes.pop()
    bases = [b for b in updated_node.bases if not m.matches(b, m.Arg(value=m.Name("object"), keyword=None))]
    if len(bases) == len(updated_node.bases):
      return updated_node

    self.stats.object_bases += 1
    if not bases and not updated_node.keywords:
      return updated_node.with_changes(bases=[], lpar=cst.MaybeSentinel.DEFAULT, rpar=cst.MaybeSentinel.DEFAULT)
    if bases and not updated_node.keywords:
      bases[-1] = bases[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
    return updated_node.with_changes(bases=bases)

  # --- Rule 1: percent formatting ---

  @m.leave(m.BinaryOperation(left=m.SimpleString(), operator=m.Modulo()))
  def convert_percent_format(
    self, original_node: cst.BinaryOperation, updated_node: cst.BinaryOperation
  ) -> cst.BaseExpression:
    parts = _string_parts(updated_node.left)
    if parts is None:
      return updated_node

    right = updated_node.right
    values = [el.value for el in right.elements] if isinstance(right, cst.Tuple) else [right]
    if any(isinstance(el, cst.StarredElement) for el in getattr(right, "elements", [])):
      return updated_node
    args = [_simple_arg_text(v) for v in values]
    if None in args:
      return updated_node

    prefix, quote, raw = parts
    integer_args = {i for i, v in enumerate(values) if isinstance(v, cst.Integer)}
    body = convert_percent_template(raw, args, integer_args)
    if body is None:
      return updated_node

    self.stats.percent_format += 1
    return _build_fstring(prefix, quote, body).with_changes(lpar=updated_node.lpar, rpar=updated_node.rpar)

  # --- Rule 2: str.format ---

  @m.leave(m.Call(func=m.Attribute(value=m.SimpleString(), attr=m.Name("format"))))
  def convert_str_format(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
    parts = _string_parts(updated_node.func.value)
    if parts is None or updated_node.func.value.lpar:
      return updated_node
    if any(arg.keyword is not None or arg.star for arg in updated_node.args):
      return updated_node

    args = [_simple_arg_text(arg.value) for arg in updated_node.args]
    if None in args:
      return updated_node

    prefix, quote, raw = parts
    body = convert_format_template(raw, args)
    if body is None:
      return updated_node

    self.stats.str_format += 1
    return _build_fstring(prefix, quote, body).with_changes(lpar=updated_node.lpar, rpar=updated_node.rpar)

  # --- Rule 3: zero-argument super ---

  @m.leave(
    m.Call(
      func=m.Name("super"),
      args=[m.Arg(value=m.Name(), keyword=None, star=""), m.Arg(value=m.Name(), keyword=None, star="")],
    )
  )
  def simplify_super(self, original_node: cst.Call, updated_node: cst.Call) -> cst.Call:
    if len(self._scopes) < 2:
      return updated_node
    (outer_kind, class_name), (inner_kind, first_param) = self._scopes[-2:]
    cls_arg, self_arg = (arg.value.value for arg in updated_node.args)
    if outer_kind != "class" or inner_kind != "def" or cls_arg != class_name or self_arg != first_param:
      return updated_node

    self.stats.super_calls += 1
    return updated_node.with_changes(args=[])

  # --- Rule 5: u prefix ---

  @m.leave(m.SimpleString())
  def drop_unicode_prefix(self, original_node: cst.SimpleString, updated_node: cst.SimpleString) -> cst.SimpleString:
    if updated_node.prefix.lower() != "u":
      return updated_node
    self.stats.unicode_prefixes += 1
    return updated_node.with_changes(value=updated_node.value[1:])

  # --- Rule 6: set literals ---

  @m.leave(m.Call(func=m.Name("set"), args=[m.Arg(value=m.List() | m.Tuple(), keyword=None, star="")]))
  def convert_set_call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
    elements = updated_node.args[0].value.elements
    if not elements:
      return updated_node

    self.stats.set_literals += 1
    return cst.Set(elements=list(elements), lpar=updated_node.lpar, rpar=updated_node.rpar)
