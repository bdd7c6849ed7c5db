"""
Tests for the Parser front end.

Verifies:
- Empty, whitespace-only and comment-only inputs produce empty modules.
- Malformed syntax raises ParseError with a location.
- File and directory wrappers (collect-and-continue, excludes, sorting).
"""

from pathlib import Path

import pytest

from pysplice import DirectoryParseResult, FileAccessError, ParseError, Parser, RefactorConfig


def test_parse_simple_function(parser):
  ast = parser.parse_string("def hello(): pass")

  assert not ast.is_empty()
  assert ast.statement_count() == 1
  assert ast.function_names() == ["hello"]
  assert ast.class_names() == []


@pytest.mark.parametrize(
  "text",
  [
    "",
    "   \n\n    \n",
    "# just a comment\n",
    "# first\n\n# second\n",
  ],
)
def test_blank_inputs_are_empty(parser, text):
  ast = parser.parse_string(text)
  assert ast.is_empty()
  assert ast.statement_count() == 0


def test_lone_docstring_is_a_statement(parser):
  ast = parser.parse_string('"""doc"""')
  assert not ast.is_empty()
  assert ast.statement_count() == 1
  assert not ast.is_comments_only()


def test_comments_only_predicate(parser):
  assert parser.parse_string("# only a comment\n").is_comments_only()
  assert not parser.parse_string("").is_comments_only()
  assert not parser.parse_string("  \n").is_comments_only()
  assert not parser.parse_string("x = 1  # trailing\n").is_comments_only()


def test_round_trip_is_exact(parser, pkg_resources_source):
  """Unmodified trees serialize back to the exact input."""
  ast = parser.parse_string(pkg_resources_source)
  assert ast.code == pkg_resources_source


def test_parse_is_repeatable(parser, pkg_resources_source):
  first = parser.parse_string(pkg_resources_source)
  second = parser.parse_string(pkg_resources_source)

  assert first.statement_count() == second.statement_count()
  assert first.imports() == second.imports()
  assert first.find_assignments() == second.find_assignments()


@pytest.mark.parametrize(
  "text",
  [
    "def broken(:\n    pass\n",
    "x = (1, 2\n",
    "s = 'unclosed\n",
    "class 1Bad:\n    pass\n",
    "if True\n    pass\n",
  ],
)
def test_malformed_input_raises_parse_error(parser, text):
  with pytest.raises(ParseError) as exc:
    parser.parse_string(text)

  assert "Parse error" in str(exc.value)
  assert exc.value.line >= 1
  assert exc.value.path is None


def test_parse_error_is_a_value_error(parser):
  with pytest.raises(ValueError):
    parser.parse_string("def (:")


def test_parse_file(parser, tmp_path):
  target = tmp_path / "mod.py"
  target.write_text("import sys\n", encoding="utf-8")

  ast = parser.parse_file(target)

  assert ast.path == str(target)
  assert ast.find_imports("sys")[0].module == "sys"


def test_parse_file_missing(parser, tmp_path):
  with pytest.raises(FileAccessError):
    parser.parse_file(tmp_path / "nope.py")

  # FileAccessError is an OSError for callers catching builtin kinds
  with pytest.raises(OSError):
    parser.parse_file(tmp_path / "nope.py")


def test_parse_file_syntax_error_names_the_file(parser, tmp_path):
  target = tmp_path / "bad.py"
  target.write_text("def broken(:\n", encoding="utf-8")

  with pytest.raises(ParseError) as exc:
    parser.parse_file(target)

  assert str(target) in str(exc.value)
  assert exc.value.path == str(target)


def test_parse_file_rejects_non_utf8(parser, tmp_path):
  target = tmp_path / "latin.py"
  target.write_bytes(b"name = '\xe9t\xe9'\n")

  with pytest.raises(ParseError, match="UTF-8"):
    parser.parse_file(target)


def test_parse_directory_top_level(parser, sample_project):
  results = parser.parse_directory(sample_project, recursive=False)

  assert [Path(p).name for p, _ in results] == ["a.py", "b.py"]
  assert results[0][1].function_names() == ["alpha"]
  assert results[1][1].class_names() == ["Beta"]


def test_parse_directory_recursive(parser, sample_project):
  results = parser.parse_directory(sample_project, recursive=True)
  names = [Path(p).name for p, _ in results]

  # __pycache__ is excluded by default
  assert len(results) == 3
  assert set(names) == {"a.py", "b.py", "c.py"}


def test_parse_directory_custom_excludes(sample_project):
  parser = Parser(RefactorConfig(directory_excludes=["nested"]))
  names = {Path(p).name for p, _ in parser.parse_directory(sample_project, recursive=True)}
  assert names == {"a.py", "b.py", "cached.py"}


def test_parse_directory_collects_and_continues(parser, sample_project, captured_console):
  broken = sample_project / "broken.py"
  broken.write_text("def broken(:\n", encoding="utf-8")

  results = parser.parse_directory(sample_project)

  assert [Path(p).name for p, _ in results] == ["a.py", "b.py"]
  output = captured_console.export_text()
  assert "Skipping" in output
  assert "Parsed 2 files (1 skipped)" in output


def test_parse_directory_report(parser, sample_project):
  (sample_project / "broken.py").write_text("x = (\n", encoding="utf-8")

  report = parser.parse_directory_report(sample_project)

  assert isinstance(report, DirectoryParseResult)
  assert report.has_errors
  assert len(report.modules) == 2
  assert report.errors[0].path.endswith("broken.py")
  assert "Parse error" in report.errors[0].message


def test_reports_are_independent_between_calls(parser, sample_project):
  broken = sample_project / "broken.py"
  broken.write_text("x = (\n", encoding="utf-8")
  first = parser.parse_directory_report(sample_project)

  broken.unlink()
  second = parser.parse_directory_report(sample_project)

  assert first.has_errors
  assert not second.has_errors
  assert not hasattr(parser, "last_errors")


def test_parse_directory_missing(parser, tmp_path):
  with pytest.raises(FileAccessError):
    parser.parse_directory(tmp_path / "absent")
