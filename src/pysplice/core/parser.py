"""
Source Parser.

Turns Python text, files and directories into `PythonAst` instances.

Parsing is delegated to LibCST, which keeps every byte of the input
(comments, blank lines, quoting) so that an unmodified module serializes
back to exactly the text it was parsed from. Syntax errors are re-raised as
`ParseError` carrying the position reported by LibCST.

Directory parsing collects and continues: a file that fails to parse is
reported as a warning without preventing the remaining files from being
returned; `Parser.parse_directory_report` also returns the failures.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import libcst as cst
from pydantic import BaseModel, ConfigDict, Field
from rich.markup import escape

from pysplice.config import RefactorConfig
from pysplice.core.module import PythonAst
from pysplice.errors import FileAccessError, ParseError
from pysplice.utils.console import log_info, log_warning

PathLike = Union[str, Path]


def parse_cst(text: str, path: Optional[str] = None) -> cst.Module:
  """
  Parses text into a LibCST module.

  Args:
      text: Python source.
      path: File name used in error messages.

  Returns:
      cst.Module: The concrete syntax tree.

  Raises:
      ParseError: If the text is not valid Python.
  """
  try:
    return cst.parse_module(text)
  except cst.ParserSyntaxError as e:
    raise ParseError(e.message, line=e.raw_line, column=e.raw_column, path=path) from e


class ParseFailure(BaseModel):
  """A file that could not be parsed during a directory walk."""

  path: str = Field(..., description="The offending file.")
  message: str = Field(..., description="The parse or IO error message.")


class DirectoryParseResult(BaseModel):
  """
  Outcome of parsing every ``.py`` file under a directory.
  """

  model_config = ConfigDict(arbitrary_types_allowed=True)

  modules: List[Tuple[str, PythonAst]] = Field(default_factory=list, description="Parsed files, sorted by path.")
  errors: List[ParseFailure] = Field(default_factory=list, description="Files that failed to parse.")

  @property
  def has_errors(self) -> bool:
    """
    Check if any file failed to parse.

    Returns:
        True if one or more failures are present.
    """
    return len(self.errors) > 0


class Parser:
  """
  Stateless front end converting text into `PythonAst` objects.

  An instance holds only its configuration and may be shared between
  threads.
  """

  def __init__(self, config: Optional[RefactorConfig] = None):
    """
    Initializes the parser.

    Args:
        config: Settings used for directory walking. Defaults are used if None.
    """
    self.config = config or RefactorConfig()

  def parse_string(self, text: str) -> PythonAst:
    """
    Parses source text.

    Empty, whitespace-only and comment-only text yields a module with no
    statements.

    Args:
        text: Python source.

    Returns:
        PythonAst: The parsed module.

    Raises:
        ParseError: On malformed syntax.
    """
    return PythonAst(parse_cst(text))

  def parse_file(self, path: PathLike) -> PythonAst:
    """
    Reads and parses a UTF-8 source file.

    Args:
        path: The file to read.

    Returns:
        PythonAst: The parsed module, with ``path`` set.

    Raises:
        FileAccessError: If the file is missing or unreadable.
        ParseError: If the file is not UTF-8 or not valid Python.
    """
    file_path = Path(path)
    if not file_path.is_file():
      raise FileAccessError(f"File not found: {file_path}")

    try:
      raw = file_path.read_bytes()
    except OSError as e:
      raise FileAccessError(f"Cannot read {file_path}: {e}") from e

    try:
      text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
      raise ParseError(f"File is not valid UTF-8 ({e.reason})", path=str(file_path)) from e

    return PythonAst(parse_cst(text, path=str(file_path)), path=str(file_path))

  def parse_directory(self, path: PathLike, recursive: bool = False) -> List[Tuple[str, PythonAst]]:
    """
    Parses every ``.py`` file in a directory.

    Files that fail to parse are logged and skipped; use
    `parse_directory_report` to receive the failures.

    Args:
        path: Directory to scan.
        recursive: If True, descend into subdirectories (except the
          configured ``directory_excludes``).

    Returns:
        List of ``(file path, PythonAst)`` pairs sorted by path.

    Raises:
        FileAccessError: If the directory does not exist.
    """
    report = self.parse_directory_report(path, recursive=recursive)
    return report.modules

  def parse_directory_report(self, path: PathLike, recursive: bool = False) -> DirectoryParseResult:
    """
    Parses a directory and returns parsed modules together with failures.

    Args:
        path: Directory to scan.
        recursive: If True, descend into subdirectories.

    Returns:
        DirectoryParseResult: Modules and per-file errors.

    Raises:
        FileAccessError: If the directory does not exist.
    """
    root = Path(path)
    if not root.is_dir():
      raise FileAccessError(f"Directory not found: {root}")

    result = DirectoryParseResult()
    for file_path in self._discover(root, recursive):
      try:
        result.modules.append((str(file_path), self.parse_file(file_path)))
      except (ParseError, FileAccessError) as e:
        log_warning(f"Skipping [path]{escape(str(file_path))}[/path]: {escape(str(e))}")
        result.errors.append(ParseFailure(path=str(file_path), message=str(e)))

    skipped = f" ({len(result.errors)} skipped)" if result.has_errors else ""
    log_info(f"Parsed {len(result.modules)} files{skipped} from [path]{escape(str(root))}[/path]")
    return result

  def _discover(self, root: Path, recursive: bool) -> List[Path]:
    if not recursive:
      candidates = root.glob("*.py")
    else:
      excludes = set(self.config.directory_excludes)
      candidates = (p for p in root.rglob("*.py") if not excludes.intersection(p.relative_to(root).parts[:-1]))
    return sorted(p for p in candidates if p.is_file())
