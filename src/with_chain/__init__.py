"""
with-chain Package.

Call methods on a value without naming it at every step. A chain names its
receiver once, lists directives that act on it, and evaluates to the receiver.

Usage
-----

Evaluating a chain
^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import with_chain as wc

    numbers = wc.evaluate("mut [] => .append(1) .append(42) let n = .__len__(); assert n == 2;")
    # [1, 42]

Seeing the expansion
^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    print(wc.expand("mut [] => .append(1)"))
    # def _with_chain_block():
    #     _receiver = []
    #     _receiver.append(1)
    #     return _receiver

Expanding macro sites in a module
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from with_chain import ChainEngine, RewriteConfig

    engine = ChainEngine(RewriteConfig())
    res = engine.transform(open("module.py").read())
    if res.success:
        print(res.code)
"""

import sys
from typing import Any, Dict, Optional

from with_chain.config import RewriteConfig
from with_chain.core.engine import ChainEngine
from with_chain.core.errors import BlockCompileError, ChainError, ChainSyntaxError
from with_chain.core.expansion_result import ExpansionResult
from with_chain.core.nodes import RECEIVER_NAME
from with_chain.core.parser import parse_chain
from with_chain.core.rewriter import Block, rewrite

__version__ = "0.1.0"


def expand(source: str, config: Optional[RewriteConfig] = None) -> str:
  """
  Expands chain text into the Python function definition it stands for.

  Args:
      source (str): Chain text, e.g. ``"mut [] => .append(1)"``.
      config (RewriteConfig, optional): Rewrite settings. Defaults when omitted.

  Returns:
      str: The block source.

  Raises:
      ChainSyntaxError: If the binding header is malformed.
  """
  return ChainEngine(config or RewriteConfig()).expand(source)


def evaluate(source: str, namespace: Optional[Dict[str, Any]] = None, config: Optional[RewriteConfig] = None) -> Any:
  """
  Runs a chain and returns its receiver.

  Args:
      source (str): Chain text.
      namespace (dict, optional): Globals the directives run against. Plain
          names the directives assign outside a ``let`` are written here.
      config (RewriteConfig, optional): Rewrite settings.

  Returns:
      Any: The receiver after every directive ran.

  Raises:
      ChainSyntaxError: If the binding header is malformed.
      BlockCompileError: If a fragment is not valid Python.
  """
  return ChainEngine(config or RewriteConfig()).evaluate(source, namespace)


def with_chain(source: str) -> Any:
  """
  Runtime form of a macro site.

  Evaluates `source` against the caller's globals, so names the chain
  assigns are written there. Called from inside a function, the caller's
  locals are readable too, but only as a snapshot: assignments to a name the
  caller holds as a local do not reach it, while assignments to any other
  name still land in the caller's globals. Run the source expander
  (``with-chain transform``) to give sites full access to local scope.

  Args:
      source (str): Chain text.

  Returns:
      Any: The receiver after every directive ran.
  """
  frame = sys._getframe(1)
  try:
    caller_globals = frame.f_globals
    caller_locals = None if frame.f_locals is caller_globals else dict(frame.f_locals)
  finally:
    del frame

  engine = ChainEngine(RewriteConfig())
  block = engine.rewrite(engine.parse(source))
  if caller_locals is None:
    return engine.evaluate_block(block, caller_globals)

  namespace = {**caller_globals, **caller_locals}
  try:
    return engine.evaluate_block(block, namespace)
  finally:
    for name in block.declarations:
      if name not in caller_locals and name in namespace:
        caller_globals[name] = namespace[name]


__all__ = [
  "Block",
  "BlockCompileError",
  "ChainEngine",
  "ChainError",
  "ChainSyntaxError",
  "ExpansionResult",
  "RECEIVER_NAME",
  "RewriteConfig",
  "__version__",
  "evaluate",
  "expand",
  "parse_chain",
  "rewrite",
  "with_chain",
]
