"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Shared sample sources (the pkg_resources version lookup pattern).
- A throwaway project tree for directory parsing tests.
- Console capture for asserting on logged warnings.
"""

import io
import sys
import pytest
from pathlib import Path

# Add src to path so we can import 'pysplice' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from rich.console import Console

from pysplice import Parser
from pysplice.utils.console import reset_console, set_console

PKG_RESOURCES_SOURCE = '''"""Package metadata."""

import os
from pkg_resources import get_distribution, DistributionNotFound

try:
    __version__ = get_distribution(__name__).version
except DistributionNotFound:
    __version__ = "unknown"

__author__ = "Jane Doe"


def data_dir():
    return os.path.join(os.path.dirname(__file__), "data")
'''


@pytest.fixture
def parser():
  """A default-configured parser."""
  return Parser()


@pytest.fixture
def pkg_resources_source():
  return PKG_RESOURCES_SOURCE


@pytest.fixture
def sample_project(tmp_path):
  """
  Creates a small source tree:

      project/
        a.py
        b.py
        notes.txt
        nested/c.py
        __pycache__/cached.py
  """
  root = tmp_path / "project"
  (root / "nested").mkdir(parents=True)
  (root / "__pycache__").mkdir()

  (root / "a.py").write_text("def alpha():\n    return 1\n", encoding="utf-8")
  (root / "b.py").write_text("class Beta:\n    pass\n", encoding="utf-8")
  (root / "notes.txt").write_text("not python (", encoding="utf-8")
  (root / "nested" / "c.py").write_text("import os\n", encoding="utf-8")
  (root / "__pycache__" / "cached.py").write_text("x = 1\n", encoding="utf-8")
  return root


@pytest.fixture
def captured_console():
  """
  Routes library logging to an in-memory console.

  Yields:
      Console: The recording console; read it with ``export_text()``.
  """
  buffer = Console(record=True, file=io.StringIO(), width=200)
  set_console(buffer)
  yield buffer
  reset_console()
