"""
Data structures representing the output of an expansion job.

`ExpansionResult` is returned by the non-raising engine entry points
(`ChainEngine.run` and `ChainEngine.transform`).
"""

from typing import List

from pydantic import BaseModel, Field

from with_chain.enums import DirectiveKind


class ExpansionResult(BaseModel):
  """
  Container for the results of expanding a chain or a module.
  """

  code: str = Field(default="", description="The generated source code.")
  errors: List[str] = Field(default_factory=list, description="Errors that prevented (part of) the expansion.")
  warnings: List[str] = Field(default_factory=list, description="Macro sites left untouched.")
  success: bool = Field(default=True, description="True if every expansion completed.")
  directives: List[DirectiveKind] = Field(
    default_factory=list, description="Kinds of the directives of a single-chain expansion, in order."
  )
  expanded_sites: int = Field(default=0, description="Number of macro sites replaced in a module.")

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0
