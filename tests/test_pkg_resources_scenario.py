"""
End-to-end scenario: migrating a pkg_resources version lookup.

A user-built transformation registered in a TransformRegistry locates the
import, try/except, call and assignment records of the legacy pattern and
rewrites them with the bottom-level splice API.
"""

import pytest

from pysplice import FormatterAdapter, Refactor, TransformRegistry

EXPECTED = '''"""Package metadata."""

import os
from importlib.metadata import version

__version__ = version(__name__)

__author__ = "Jane Doe"


def data_dir():
    return os.path.join(os.path.dirname(__file__), "data")
'''


@pytest.fixture
def registry():
  registry = TransformRegistry()

  @registry.transform("pkg_resources")
  def modernize_version(refactor, target_module="importlib.metadata"):
    gen = refactor.code_generator()
    ast = refactor.ast()

    import_ref = next(r for r in refactor.find_nodes("ImportFrom") if "pkg_resources" in ast.node_source(r))
    try_ref = next(r for r in refactor.find_nodes("Try") if "get_distribution" in ast.node_source(r))

    call = gen.create_function_call("version", ["__name__"])
    refactor.replace_node(try_ref, gen.create_assignment("__version__", call))
    refactor.replace_node(import_ref, gen.create_import(target_module, ["version"]))

  return registry


def test_queries_locate_the_pattern(parser, pkg_resources_source):
  ast = parser.parse_string(pkg_resources_source)

  assert [r.items for r in ast.find_imports("pkg_resources")] == [["get_distribution", "DistributionNotFound"]]
  assert len(ast.find_try_except_blocks("DistributionNotFound")) == 1
  assert ast.find_function_calls("get_distribution")[0].args == ["__name__"]
  assert [r.target for r in ast.find_assignments("__")] == ["__version__", "__version__", "__author__"]


def test_migration(parser, registry, pkg_resources_source):
  refactor = Refactor(parser.parse_string(pkg_resources_source))
  registry.apply("pkg_resources", refactor)

  assert refactor.get_code() == EXPECTED
  assert refactor.find_imports("pkg_resources") == []
  assert refactor.find_function_calls("get_distribution") == []
  assert refactor.find_try_except_blocks() == []

  summary = refactor.change_summary()
  assert "2 changes" in summary
  assert list(summary) == ["Replaced Try node at line 6", "Replaced ImportFrom node at line 4"]


def test_migration_then_cleanup_and_format(parser, registry, pkg_resources_source):
  refactor = Refactor(parser.parse_string(pkg_resources_source))
  registry.apply("pkg_resources", refactor, target_module="importlib_metadata")

  assert refactor.remove_unused_imports() == 0
  formatted = refactor.refactor_and_format()

  assert "from importlib_metadata import version\n" in formatted
  assert FormatterAdapter().format(formatted) == formatted
  assert len(refactor.change_summary()) == 4


def test_migration_over_a_directory(parser, registry, tmp_path, pkg_resources_source):
  (tmp_path / "pkg_a.py").write_text(pkg_resources_source, encoding="utf-8")
  (tmp_path / "pkg_b.py").write_text("import os\n", encoding="utf-8")

  migrated = []
  for path, ast in parser.parse_directory(tmp_path):
    if not ast.find_imports("pkg_resources"):
      continue
    refactor = Refactor(ast)
    registry.apply("pkg_resources", refactor)
    refactor.save_to_file(path)
    migrated.append(path)

  assert migrated == [str(tmp_path / "pkg_a.py")]
  assert (tmp_path / "pkg_a.py").read_text(encoding="utf-8") == EXPECTED
  assert (tmp_path / "pkg_b.py").read_text(encoding="utf-8") == "import os\n"
