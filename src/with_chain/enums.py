"""
Enumerations for with-chain.

Shared categorisations used by the classifier, the emitter and the source
expander.
"""

from enum import Enum


class DirectiveKind(str, Enum):
  """
  The variant tag of a parsed chain step.

  The declaration order mirrors the recognition order used by the classifier.
  """

  BARE_CALL = "bare_call"  # .method(args)
  LET_CALL = "let_call"  # let pat = .method(args);
  ASSIGN_CALL = "assign_call"  # target = .method(args);
  PASS_THROUGH = "pass_through"  # anything else


class ScopeKind(str, Enum):
  """
  The kind of scope surrounding an expansion site.

  Controls how the emitted block declares identifiers it assigns on behalf
  of the enclosing code.
  """

  GLOBAL = "global"  # module level, or evaluate() against a namespace
  NONLOCAL = "nonlocal"  # inside a function body
  NONE = "none"  # class bodies: no declaration can reach the class namespace
