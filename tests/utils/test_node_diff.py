"""
Tests for Node Source Capture.
"""

import libcst as cst

from pysplice.utils.node_diff import capture_node_source


def test_capture_simple_call():
  """Verify source code capture for a detached Call node."""
  node = cst.Call(func=cst.Name("my_func"), args=[cst.Arg(cst.Integer("1"))])
  assert capture_node_source(node) == "my_func(1)"


def test_capture_complex_assignment():
  target = cst.AssignTarget(target=cst.Name("x"))
  node = cst.Assign(targets=[target], value=cst.Integer("10"))
  assert "x = 10" in capture_node_source(node)


def test_capture_uses_module_defaults():
  """Nested blocks are rendered with the owning module's indentation."""
  module = cst.parse_module("def f():\n  return 1\n")
  fn = module.body[0]

  assert capture_node_source(fn, module) == "def f():\n  return 1\n"
  assert capture_node_source(fn) == "def f():\n    return 1\n"


def test_capture_fallback():
  """Verify robust handling of unrepresentable nodes."""
  res = capture_node_source("NotANode")  # type: ignore
  assert "<Unrepresentable Node: str>" in res
