"""
Runtime Configuration Store.

Holds the tunables of the refactor engine: formatter layout, the formatter
failure policy, the heuristics used by the data-mocking transforms and the
directory walking excludes. Values are read from ``[tool.pysplice]`` in the
nearest ``pyproject.toml`` and may be overridden by keyword arguments.
"""

import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

DEFAULT_SECRET_KEY_PATTERNS = [
  r"pass(word|wd)?",
  r"secret",
  r"token",
  r"api[_-]?key",
  r"credential",
  r"private[_-]?key",
  r"auth(?!or)",
  r"checksum",
  r"sha\d+",
]


class RefactorConfig(BaseModel):
  """
  Global configuration container for the refactor engine.
  """

  line_length: int = Field(88, description="Maximum line length used by the formatter.")
  string_normalization: bool = Field(True, description="If True, the formatter normalizes string quotes.")
  format_failure: Literal["fallback", "raise"] = Field(
    "fallback",
    description="'fallback' returns unformatted text on formatter failure, 'raise' raises FormatError.",
  )
  mock_max_items: int = Field(10, description="Container literals with more elements than this are mocked.")
  mock_max_depth: int = Field(2, description="Container literals nested deeper than this are mocked.")
  secret_key_patterns: List[str] = Field(
    default_factory=lambda: list(DEFAULT_SECRET_KEY_PATTERNS),
    description="Regexes matched against dict keys and binding names to detect credentials.",
  )
  directory_excludes: List[str] = Field(
    default_factory=lambda: ["__pycache__", ".git", ".venv", ".tox"],
    description="Directory names skipped by recursive directory parsing.",
  )

  @field_validator("line_length", "mock_max_items", "mock_max_depth")
  @classmethod
  def validate_positive(cls, v: int) -> int:
    """
    Ensures numeric thresholds are positive.

    Args:
        v (int): The value to validate.

    Returns:
        int: The value unchanged.

    Raises:
        ValueError: If the value is not strictly positive.
    """
    if v <= 0:
      raise ValueError(f"Expected a positive integer, got {v}")
    return v

  @field_validator("secret_key_patterns")
  @classmethod
  def validate_patterns(cls, v: List[str]) -> List[str]:
    """
    Ensures every secret pattern compiles as a regular expression.

    Args:
        v (List[str]): Patterns to validate.

    Returns:
        List[str]: The patterns unchanged.

    Raises:
        ValueError: If a pattern is not a valid regex.
    """
    for pattern in v:
      try:
        re.compile(pattern)
      except re.error as e:
        raise ValueError(f"Invalid secret pattern '{pattern}': {e}")
    return v

  @property
  def secret_key_regex(self) -> "re.Pattern[str]":
    """
    Combines all secret key patterns into one case-insensitive regex.

    Returns:
        re.Pattern: Compiled alternation of the configured patterns.
    """
    return re.compile("|".join(f"(?:{p})" for p in self.secret_key_patterns), re.IGNORECASE)

  @classmethod
  def load(cls, search_path: Optional[Path] = None, **overrides: Any) -> "RefactorConfig":
    """
    Loads configuration from pyproject.toml and applies keyword overrides.

    Args:
        search_path (Optional[Path]): Directory to start searching for TOML config.
        **overrides: Field values that take precedence over the file.

    Returns:
        RefactorConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)
    explicit = {k: v for k, v in overrides.items() if v is not None}
    return cls(**{**toml_config, **explicit})


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches the start directory and its parents for 'pyproject.toml'.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("pysplice", {}), parent

  return {}, None
