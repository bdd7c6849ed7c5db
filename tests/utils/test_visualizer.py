"""
Tests for the Outline Visualizer.

Verifies:
1. One line per statement, indented by nesting depth.
2. Compound statement labels.
3. Truncation of long labels.
"""

import libcst as cst

from pysplice.utils.visualizer import MAX_LABEL, OutlineGenerator


def outline(code):
  return OutlineGenerator().generate(cst.parse_module(code))


def test_outline_simple_assignment():
  assert outline("x = 1\n") == "Module (1 statements)\n  Assign: x = 1"


def test_outline_nesting():
  code = """class A(Base):
    def run(self, n):
        for i in range(n):
            if i:
                print(i)
"""
  lines = outline(code).splitlines()

  assert lines == [
    "Module (1 statements)",
    "  Class: A(Base)",
    "    Def: run(self, n)",
    "      For: i in range(n)",
    "        If: i",
    "          Expr: print(i)",
  ]


def test_outline_try_except():
  text = outline("try:\n    go()\nexcept ValueError:\n    pass\nexcept:\n    raise\n")

  assert "  Try" in text
  assert "Except: ValueError" in text
  assert "Except: *" in text


def test_outline_one_line_suites():
  assert "Pass: pass" in outline("def f(): pass\n")


def test_outline_truncates_long_labels():
  text = outline(f"x = '{'A' * 100}'\n")
  label = text.splitlines()[1].strip()

  assert label.endswith("...")
  assert len(label) == MAX_LABEL


def test_generator_is_reusable():
  gen = OutlineGenerator()
  first = gen.generate(cst.parse_module("a = 1\n"))
  second = gen.generate(cst.parse_module("a = 1\n"))
  assert first == second
