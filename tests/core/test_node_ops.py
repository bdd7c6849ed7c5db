"""
Tests for the bottom-level splice API.

Verifies:
- replace/insert/remove keyed by NodeRef, including except clauses.
- Stale NodeRefs fail fast after edits touching their region.
- Failed splices leave the tree and the change log untouched.
- Line-range replacement and import/statement insertion.
"""

import sys

import pytest

from pysplice import ParseError, Parser, Refactor, StaleNodeRefError

SOURCE = """import os


def first():
    return 1


def second():
    x = 1
    return x
"""

TRY_SOURCE = """try:
    run()
except ValueError:
    handle()
except KeyError:
    pass
"""


@pytest.fixture
def refactor(parser):
  return Refactor(parser.parse_string(SOURCE))


def test_replace_node_keeps_surrounding_layout(refactor):
  ref = refactor.find_nodes("FunctionDef")[0]
  refactor.replace_node(ref, "def first():\n    return 2\n")

  assert refactor.get_code() == SOURCE.replace("return 1", "return 2")
  assert len(refactor.change_summary()) == 1
  entry = refactor.changes()[0]
  assert entry.metadata["before"].startswith("def first():")


def test_replace_node_dedents_snippet(refactor):
  ref = refactor.find_nodes("Assign")[0]
  refactor.replace_node(ref, "        x = 2")
  assert "    x = 2\n    return x\n" in refactor.get_code()


def test_replaced_ref_becomes_stale(refactor):
  first, second = refactor.find_nodes("FunctionDef")
  refactor.replace_node(first, "def first():\n    return 2\n")

  with pytest.raises(StaleNodeRefError):
    refactor.remove_node(first)

  # A same-size replacement does not move siblings
  refactor.remove_node(second)
  assert "def second" not in refactor.get_code()


def test_insert_before_shifts_following_refs(refactor):
  first, second = refactor.find_nodes("FunctionDef")
  refactor.insert_before(second, "VALUE = 0\n")

  with pytest.raises(StaleNodeRefError):
    refactor.replace_node(second, "pass")

  # Earlier siblings keep their position
  refactor.replace_node(first, "def first():\n    return VALUE\n")
  code = refactor.get_code()
  assert "VALUE = 0\n" in code
  assert code.index("return VALUE") < code.index("VALUE = 0")


def test_insert_after(refactor):
  ref = refactor.find_nodes("Import")[0]
  refactor.insert_after(ref, "import sys")

  assert refactor.get_code().startswith("import os\nimport sys\n")
  assert refactor.change_summary() == ["Inserted code after Import node at line 1"]


def test_insert_comment_only_snippet(refactor):
  first, second = refactor.find_nodes("FunctionDef")
  refactor.insert_after(first, "# helpers below")

  code = refactor.get_code()
  assert "# helpers below\n" in code
  assert code.index("# helpers below") < code.index("def second")
  # Comment lines do not shift statements
  refactor.remove_node(second)


def test_remove_nested_statements_leaves_pass(refactor):
  refactor.remove_node(refactor.find_nodes("Assign")[0])
  ret = [r for r in refactor.find_nodes("Other") if r.path[:1] == (2,)][0]
  refactor.remove_node(ret)

  assert refactor.get_code().endswith("def second():\n    pass\n")
  assert len(refactor.change_summary()) == 2


def test_removal_invalidates_shifted_siblings(refactor):
  assign = refactor.find_nodes("Assign")[0]
  ret = [r for r in refactor.find_nodes("Other") if r.path == (2, 1)][0]
  refactor.remove_node(assign)

  with pytest.raises(StaleNodeRefError):
    refactor.remove_node(ret)


def test_edit_inside_parent_invalidates_children(refactor):
  fn = refactor.find_nodes("FunctionDef")[1]
  assign = refactor.find_nodes("Assign")[0]
  refactor.replace_node(fn, "def second():\n    return 0\n")

  with pytest.raises(StaleNodeRefError):
    refactor.remove_node(assign)


def test_parse_error_leaves_state_unchanged(refactor):
  ref = refactor.find_nodes("FunctionDef")[0]

  with pytest.raises(ParseError):
    refactor.replace_node(ref, "def first(:\n")

  assert refactor.get_code() == SOURCE
  assert refactor.change_summary() == []
  assert not refactor.is_dirty
  # The ref is still usable
  refactor.remove_node(ref)


def test_refs_from_foreign_module_are_rejected(refactor):
  other = Parser().parse_string(SOURCE)
  with pytest.raises(StaleNodeRefError, match="does not belong"):
    refactor.remove_node(other.find_nodes("FunctionDef")[0])


def test_refs_issued_before_adoption_are_accepted(parser):
  ast = parser.parse_string(SOURCE)
  ref = ast.find_nodes("Import")[0]

  refactor = Refactor(ast)
  refactor.remove_node(ref)

  assert not refactor.get_code().startswith("import os")
  # The caller's module is never mutated
  assert ast.code == SOURCE


def test_replace_except_handler(parser):
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  handler = refactor.find_nodes("ExceptHandler")[1]

  refactor.replace_node(handler, "except (KeyError, IndexError):\n    recover()")

  assert refactor.get_code() == TRY_SOURCE.replace("except KeyError:\n    pass", "except (KeyError, IndexError):\n    recover()")
  assert refactor.find_try_except_blocks("IndexError")[0].except_body == "recover()"


def test_insert_and_remove_except_handlers(parser):
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  first = refactor.find_nodes("ExceptHandler")[0]
  refactor.insert_before(first, "except TypeError:\n    pass")

  types = [r.exception_types for r in refactor.find_try_except_blocks()]
  assert types == [["TypeError"], ["ValueError"], ["KeyError"]]

  # Handler edits invalidate every ref into the try statement
  with pytest.raises(StaleNodeRefError):
    refactor.remove_node(first)

  refactor.remove_node(refactor.find_nodes("ExceptHandler")[2])
  refactor.remove_node(refactor.find_nodes("ExceptHandler")[1])
  assert [r.exception_types for r in refactor.find_try_except_blocks()] == [["TypeError"]]


def test_cannot_remove_last_except_handler(parser):
  refactor = Refactor(parser.parse_string("try:\n    run()\nexcept ValueError:\n    pass\n"))
  handler = refactor.find_nodes("ExceptHandler")[0]

  with pytest.raises(ValueError, match="except clause"):
    refactor.remove_node(handler)
  assert refactor.change_summary() == []


def test_handler_snippet_must_be_except_clauses(parser):
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  handler = refactor.find_nodes("ExceptHandler")[0]

  with pytest.raises(ParseError):
    refactor.replace_node(handler, "x = 1")
  assert refactor.get_code() == TRY_SOURCE


def test_replace_try_statement(parser):
  """The pkg_resources pattern: swap a whole try/except for one assignment."""
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  ref = refactor.find_nodes("Try")[0]

  refactor.replace_node(ref, "__version__ = get_version()")
  assert refactor.get_code() == "__version__ = get_version()\n"


def test_replace_code_range(refactor):
  refactor.replace_code_range(4, 5, "def first():\n    return 3")

  assert "return 3" in refactor.get_code()
  assert refactor.change_summary() == ["Replaced lines 4-5"]
  assert refactor.ast().function_names() == ["first", "second"]


@pytest.mark.parametrize("start,end", [(0, 1), (3, 2), (1, 99)])
def test_replace_code_range_rejects_bad_ranges(refactor, start, end):
  with pytest.raises(ValueError, match="Invalid line range"):
    refactor.replace_code_range(start, end, "pass")


def test_replace_code_range_parse_error(refactor):
  with pytest.raises(ParseError):
    refactor.replace_code_range(4, 4, "def first(:")
  assert refactor.get_code() == SOURCE
  assert not refactor.is_dirty


def test_add_import_after_existing_block(parser):
  source = '"""Doc."""\nfrom __future__ import annotations\nimport os\n\nx = 1\n'
  refactor = Refactor(parser.parse_string(source))
  refactor.add_import("import sys")

  assert refactor.get_code() == '"""Doc."""\nfrom __future__ import annotations\nimport os\nimport sys\n\nx = 1\n'
  assert refactor.change_summary() == ["Added import: import sys"]


def test_add_import_into_empty_module(parser):
  refactor = Refactor(parser.parse_string(""))
  refactor.add_import(refactor.code_generator().create_import("typing", ["List"]))
  assert refactor.get_code() == "from typing import List\n"


def test_add_statement(refactor):
  refactor.add_statement("print(first())")
  assert refactor.get_code().endswith("    return x\nprint(first())\n")
  assert refactor.ast().statement_count() == 4


# --- Else / elif / except / finally blocks ---

TRY_ELSE_SOURCE = """try:
    x = load()
except ValueError:
    x = None
else:
    y = x
finally:
    close()
"""


def test_splices_inside_except_else_and_finally_blocks(parser):
  refactor = Refactor(parser.parse_string(TRY_ELSE_SOURCE))
  _, fallback, success = refactor.find_nodes("Assign")
  closing = refactor.find_nodes("Expr")[0]

  refactor.replace_node(fallback, "x = default()")
  # Edits in one block leave refs into sibling blocks valid
  refactor.insert_after(success, "log(y)")
  refactor.remove_node(closing)

  assert refactor.get_code() == (
    "try:\n    x = load()\nexcept ValueError:\n    x = default()\nelse:\n    y = x\n    log(y)\nfinally:\n    pass\n"
  )
  assert len(refactor.changes()) == 3


def test_elif_and_else_blocks_are_addressable(parser):
  refactor = Refactor(parser.parse_string("if a:\n    f()\nelif b:\n    g()\nelse:\n    h()\n"))
  calls = {ref.path: ref for ref in refactor.find_nodes("Expr")}

  refactor.remove_node(calls[(0, "orelse", 0)])
  refactor.replace_node(calls[(0, "orelse", "orelse", 0)], "k()")

  assert refactor.get_code() == "if a:\n    f()\nelif b:\n    pass\nelse:\n    k()\n"


def test_handler_edit_invalidates_refs_into_handler_bodies(parser):
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  body_ref = next(ref for ref in refactor.find_nodes("Expr") if ref.path == (0, "handlers[0]", 0))
  refactor.insert_before(refactor.find_nodes("ExceptHandler")[0], "except TypeError:\n    pass")

  with pytest.raises(StaleNodeRefError):
    refactor.replace_node(body_ref, "recover()")


@pytest.mark.skipif(sys.version_info < (3, 11), reason="except* needs Python 3.11")
def test_except_star_clauses_must_match(parser):
  source = "try:\n    run()\nexcept* ValueError:\n    pass\n"
  refactor = Refactor(parser.parse_string(source))
  handler = refactor.find_nodes("ExceptHandler")[0]

  with pytest.raises(ParseError, match=r"except\*"):
    refactor.insert_after(handler, "except KeyError:\n    pass")
  assert refactor.get_code() == source
  assert not refactor.is_dirty

  refactor.insert_after(handler, "except* KeyError:\n    pass")
  assert Parser().parse_string(refactor.get_code()).find_try_except_blocks("KeyError")


def test_plain_try_rejects_except_star_clauses(parser):
  refactor = Refactor(parser.parse_string(TRY_SOURCE))
  handler = refactor.find_nodes("ExceptHandler")[0]

  with pytest.raises(ParseError, match="except clauses"):
    refactor.insert_after(handler, "except* KeyError:\n    pass")
  assert refactor.get_code() == TRY_SOURCE


def test_replace_code_range_ignores_unicode_line_breaks(parser):
  source = 'a = "one\x1ctwo\x0cthree"\nb = 2\nc = 3\n'
  refactor = Refactor(parser.parse_string(source))

  refactor.replace_code_range(2, 2, "b = 20")
  assert refactor.get_code() == 'a = "one\x1ctwo\x0cthree"\nb = 20\nc = 3\n'


def test_add_statement_into_empty_module(parser):
  refactor = Refactor(parser.parse_string(""))
  refactor.add_statement("x = 1")
  assert refactor.get_code() == "x = 1\n"
