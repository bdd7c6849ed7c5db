"""
Query Result Records.

Read-only value types materialized by the query engine. Records are
snapshots: they do not follow later mutations and stay valid after the
tree they were read from has been replaced.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
  model_config = ConfigDict(frozen=True)

  line: int = Field(0, description="1-based line where the construct starts.")


class ImportRecord(_Record):
  """
  One import statement (or one alias of a multi-name ``import a, b``).
  """

  module: str = Field(..., description="Imported module, e.g. 'os.path' or 'pkg_resources'.")
  items: List[str] = Field(default_factory=list, description="Names imported by a 'from' import.")
  alias: Optional[str] = Field(None, description="The 'as' name of a plain import.")
  is_from_import: bool = Field(False, description="True for 'from ... import ...' statements.")

  def __str__(self) -> str:
    if self.is_from_import:
      return f"from {self.module} import {', '.join(self.items)}"
    text = f"import {self.module}"
    if self.alias:
      text += f" as {self.alias}"
    return text


class CallRecord(_Record):
  """
  A function call expression found anywhere in the module.
  """

  function_name: str = Field(..., description="Trailing identifier of the callee.")
  full_name: str = Field("", description="Dotted callee, empty for computed callees.")
  args: List[str] = Field(default_factory=list, description="Source text of each argument.")

  def __str__(self) -> str:
    callee = self.full_name or self.function_name
    return f"{callee}({', '.join(self.args)})"


class TryExceptRecord(_Record):
  """
  One except clause of a try statement.

  A try statement with N except clauses produces N records sharing
  the same ``try_body``.
  """

  exception_types: List[str] = Field(default_factory=list, description="Caught types, empty for bare except.")
  try_body: str = Field("", description="Source text of the try block.")
  except_body: str = Field("", description="Source text of this clause's block.")

  def __str__(self) -> str:
    caught = ", ".join(self.exception_types) or "<bare>"
    return f"try/except {caught}"


class AssignmentRecord(_Record):
  """
  An assignment statement (plain, annotated or augmented).
  """

  target: str = Field(..., description="Source text of the assignment target.")
  value: str = Field("", description="Source text of the assigned value.")

  def __str__(self) -> str:
    return f"{self.target} = {self.value}"
