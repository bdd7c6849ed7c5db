"""
Formatter Adapter.

Thin wrapper around ``black.format_str``. The adapter keeps no state between
calls; the layout options and the failure policy are fixed at construction.
"""

import logging
from typing import Literal, Optional

import black
from rich.markup import escape

from pysplice.config import RefactorConfig
from pysplice.errors import FormatError
from pysplice.utils.console import log_error, log_warning

log = logging.getLogger(__name__)

FailurePolicy = Literal["fallback", "raise"]


class FormatterAdapter:
  """
  Formats source text with black.

  Failures are handled according to ``failure_policy``:

  * ``"fallback"``: log a warning and return the input unchanged.
  * ``"raise"``: raise `FormatError`.
  """

  def __init__(
    self,
    line_length: int = 88,
    string_normalization: bool = True,
    failure_policy: FailurePolicy = "fallback",
  ):
    self.line_length = line_length
    self.string_normalization = string_normalization
    self.failure_policy = failure_policy

  @classmethod
  def from_config(cls, config: Optional[RefactorConfig] = None) -> "FormatterAdapter":
    """
    Builds an adapter from the formatter settings of a config.

    Args:
        config: Source of the settings. Defaults are used if None.

    Returns:
        FormatterAdapter: The configured adapter.
    """
    config = config or RefactorConfig()
    return cls(
      line_length=config.line_length,
      string_normalization=config.string_normalization,
      failure_policy=config.format_failure,
    )

  @property
  def mode(self) -> black.Mode:
    return black.Mode(line_length=self.line_length, string_normalization=self.string_normalization)

  def format(self, code: str) -> str:
    """
    Formats source text.

    Args:
        code: Python source.

    Returns:
        str: Formatted source. Blank input yields an empty string.

    Raises:
        FormatError: If black fails and the policy is ``"raise"``.
    """
    if not code.strip():
      return ""
    try:
      return black.format_str(code, mode=self.mode)
    except Exception as e:
      if self.failure_policy == "raise":
        log_error(f"Formatting failed: {escape(str(e))}")
        raise FormatError(f"Formatting failed: {e}") from e
      log_warning(f"Formatting failed, keeping unformatted code: {escape(str(e))}")
      log.debug("black failure", exc_info=True)
      return code

  def __call__(self, code: str) -> str:
    return self.format(code)
