"""
pysplice Package.

Lossless Python parsing, querying and programmatic rewriting built on
LibCST. Source text is parsed into a `PythonAst`, inspected through the
query API and mutated through a `Refactor`, which records every change and
re-emits exact source text (optionally formatted with black).

Usage
-----

Simple Modernization
^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import pysplice

    code = 'msg = "Hello %s" % name'
    print(pysplice.modernize(code))
    # msg = f"Hello {name}"

Bottom-Level API
^^^^^^^^^^^^^^^^

.. code-block:: python

    from pysplice import Parser, Refactor

    ast = Parser().parse_string(source)
    refactor = Refactor(ast)

    for ref in refactor.find_nodes("Try"):
        refactor.replace_node(ref, "__version__ = get_package_version(__name__)")
        break

    refactor.replace_import("pkg_resources", "mypkg.version")
    print(refactor.change_summary())
"""

from typing import Optional

from pysplice.config import RefactorConfig
from pysplice.core.changelog import ChangeLogEntry, ChangeSummary
from pysplice.core.codegen import CodeGenerator
from pysplice.core.formatter import FormatterAdapter
from pysplice.core.module import NodeRef, PythonAst
from pysplice.core.parser import DirectoryParseResult, Parser
from pysplice.core.records import AssignmentRecord, CallRecord, ImportRecord, TryExceptRecord
from pysplice.core.refactor import Refactor
from pysplice.core.registry import TransformRegistry
from pysplice.enums import ChangeKind, NodeKind
from pysplice.errors import (
  FileAccessError,
  FormatError,
  NotFoundError,
  ParseError,
  PySpliceError,
  StaleNodeRefError,
)

__version__ = "0.1.0"


def modernize(code: str, apply_formatting: bool = False, config: Optional[RefactorConfig] = None) -> str:
  """
  Applies syntax and import modernization to a string of Python code.

  This is a high-level convenience wrapper around `Refactor`. For queries or
  custom splices, use `Parser` and `Refactor` directly.

  Args:
      code (str): The source code to modernize.
      apply_formatting (bool): If True, format the result with black.
      config (RefactorConfig, optional): Engine settings.

  Returns:
      str: The modernized source code.

  Raises:
      ParseError: If `code` is not valid Python.
  """
  refactor = Refactor(Parser(config).parse_string(code), config=config)
  refactor.modernize_syntax()
  refactor.modernize_imports()
  return refactor.get_code_with_format(apply_formatting)


__all__ = [
  "AssignmentRecord",
  "CallRecord",
  "ChangeKind",
  "ChangeLogEntry",
  "ChangeSummary",
  "CodeGenerator",
  "DirectoryParseResult",
  "FileAccessError",
  "FormatError",
  "FormatterAdapter",
  "ImportRecord",
  "NodeKind",
  "NodeRef",
  "NotFoundError",
  "ParseError",
  "Parser",
  "PySpliceError",
  "PythonAst",
  "Refactor",
  "RefactorConfig",
  "StaleNodeRefError",
  "TransformRegistry",
  "TryExceptRecord",
  "modernize",
  "__version__",
]
