"""
Tests for import rewriting: replacement, deprecated module modernization and
unused import removal.
"""

import libcst as cst
import pytest

from pysplice import Refactor
from pysplice.core.scanners import NameUsageScanner
from pysplice.core.transforms import ImportReplacer, UnusedImportRemover


def run(transformer, source):
  return cst.parse_module(source).visit(transformer).code


@pytest.mark.parametrize(
  "source,expected",
  [
    ("import numpy as np\n", "import cupy as np\n"),
    ("import numpy, os\n", "import cupy, os\n"),
    ("from numpy import array, zeros\n", "from cupy import array, zeros\n"),
    ("import numpy.linalg\n", "import numpy.linalg\n"),
    ("from numpy.linalg import norm\n", "from numpy.linalg import norm\n"),
  ],
)
def test_import_replacer_exact_match(source, expected):
  assert run(ImportReplacer({"numpy": "cupy"}), source) == expected


def test_import_replacer_dotted_targets():
  replacer = ImportReplacer({"urllib2": "urllib.request"})
  assert run(replacer, "import urllib2\nfrom urllib2 import urlopen\n") == (
    "import urllib.request\nfrom urllib.request import urlopen\n"
  )
  assert replacer.replaced == 2


def test_import_replacer_relative_modules():
  replacer = ImportReplacer({".compat": "..compat"})
  assert run(replacer, "from .compat import text\n") == "from ..compat import text\n"


def test_replace_import_reaches_nested_imports(parser):
  refactor = Refactor(parser.parse_string("def f():\n    import pkg_resources\n    return pkg_resources\n"))
  refactor.replace_import("pkg_resources", "importlib.metadata")

  assert "    import importlib.metadata\n" in refactor.get_code()


def test_modernize_imports(parser):
  refactor = Refactor(parser.parse_string("import urllib2\nfrom StringIO import StringIO\nimport cPickle as pickle\n"))
  count = refactor.modernize_imports()

  assert count == 3
  assert refactor.get_code() == "import urllib.request\nfrom io import StringIO\nimport pickle as pickle\n"
  assert refactor.change_summary() == ["Modernized deprecated imports (3 replaced)"]


def test_remove_unused_imports(parser):
  source = (
    "from __future__ import annotations\n"
    "import os\n"
    "import sys, json\n"
    "from typing import List, Dict\n"
    "\n"
    "\n"
    "def f(x: List[int]) -> None:\n"
    "    print(sys.argv)\n"
  )
  refactor = Refactor(parser.parse_string(source))
  removed = refactor.remove_unused_imports()

  assert removed == 3
  assert refactor.get_code() == (
    "from __future__ import annotations\n"
    "import sys\n"
    "from typing import List\n"
    "\n"
    "\n"
    "def f(x: List[int]) -> None:\n"
    "    print(sys.argv)\n"
  )
  assert refactor.change_summary() == ["Removed 3 unused imports"]
  assert refactor.changes()[0].metadata["names"] == ["os", "json", "Dict"]


def test_remove_unused_imports_nothing_to_do(parser):
  source = "import os\n\nos.getcwd()\n"
  refactor = Refactor(parser.parse_string(source))

  assert refactor.remove_unused_imports() == 0
  assert refactor.get_code() == source
  assert refactor.change_summary() == ["Removed 0 unused imports"]


def test_dotted_import_binds_its_root(parser):
  refactor = Refactor(parser.parse_string("import os.path\nimport xml.dom as dom\n\nos.getcwd()\n"))
  refactor.remove_unused_imports()
  assert refactor.get_code() == "import os.path\n\nos.getcwd()\n"


def test_attribute_names_do_not_keep_imports(parser):
  refactor = Refactor(parser.parse_string("from os import path\n\nimport sys\nsys.path\n"))
  refactor.remove_unused_imports()
  assert refactor.get_code() == "\nimport sys\nsys.path\n"


def test_all_exports_and_star_imports_are_kept(parser):
  source = "from helpers import *\nimport os\n\n__all__ = ['os']\n"
  refactor = Refactor(parser.parse_string(source))

  assert refactor.remove_unused_imports() == 0
  assert refactor.get_code() == source


@pytest.mark.parametrize(
  "export",
  [
    "__all__ = []\n__all__ += ['path']\n",
    "__all__: List[str] = ['path']\n",
    "__all__ = []\n__all__.extend(('path',))\n",
    "__all__ = []\n__all__.append('path')\n",
  ],
)
def test_all_export_forms_are_kept(parser, export):
  source = f"from typing import List\nfrom os import path\n\n{export}"
  refactor = Refactor(parser.parse_string(source))

  refactor.remove_unused_imports()
  assert "from os import path\n" in refactor.get_code()


@pytest.mark.parametrize(
  "annotation",
  ["'Path'", '"Optional[Path]"', "List['Path']", "'pathlib_alias.Path'"],
)
def test_string_annotations_keep_imports(parser, annotation):
  source = (
    "from typing import List, Optional\n"
    "from pathlib import Path\n"
    "import pathlib as pathlib_alias\n\n\n"
    f"def f(p: {annotation}) -> None:\n"
    "    pass\n"
  )
  refactor = Refactor(parser.parse_string(source))
  refactor.remove_unused_imports()
  code = refactor.get_code()

  if "pathlib_alias" in annotation:
    assert "import pathlib as pathlib_alias\n" in code
  else:
    assert "from pathlib import Path\n" in code


def test_string_literals_outside_annotations_are_ignored(parser):
  source = "import json\n\nname = 'json'\n\n\ndef f(p: Literal['not an expression']):\n    pass\n"
  refactor = Refactor(parser.parse_string(source))

  assert refactor.remove_unused_imports() == 1
  assert "import json" not in refactor.get_code()


def test_emptied_block_receives_pass(parser):
  refactor = Refactor(parser.parse_string("try:\n    import json\nexcept ImportError:\n    pass\n"))
  refactor.remove_unused_imports()
  assert refactor.get_code() == "try:\n    pass\nexcept ImportError:\n    pass\n"


def test_semicolon_lines_are_pruned(parser):
  refactor = Refactor(parser.parse_string("import os; import sys\nsys.exit()\n"))
  refactor.remove_unused_imports()
  assert refactor.get_code() == "import sys\nsys.exit()\n"


def test_one_line_suite_keeps_pass(parser):
  refactor = Refactor(parser.parse_string("if True: import json\n"))
  refactor.remove_unused_imports()
  assert refactor.get_code() == "if True: pass\n"


def test_remover_counts_names():
  tree = cst.parse_module("import a, b\nfrom c import d as e\nprint(b)\n")
  usage = NameUsageScanner()
  tree.visit(usage)
  remover = UnusedImportRemover(usage)
  tree.visit(remover)

  assert remover.removed == 2
  assert remover.removed_names == ["a", "e"]
