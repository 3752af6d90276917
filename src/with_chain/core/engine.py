"""
Orchestration Engine for Chain Expansion.

This module provides the `ChainEngine`, the driver tying the pipeline
together:

1.  **Parsing**: chain text -> `Chain` (lexer, splitter, classifier).
2.  **Rewriting**: `Chain` -> `Block` (the emitter).
3.  **Rendering**: `Block` -> Python source.
4.  **Evaluation**: compile the block, run it once against a namespace and
    return the receiver.
5.  **Module transformation**: expand every macro site of a Python module via
    the LibCST `MacroExpander`.

Parsing and compilation errors surface as `ChainError` subclasses from the
raising entry points (`parse`, `expand`, `evaluate`) and are collected into an
`ExpansionResult` by the non-raising ones (`run`, `transform`).
"""

import itertools
import linecache
import logging
from typing import Any, Dict, Optional

import libcst as cst

from with_chain.config import RewriteConfig
from with_chain.core.errors import BlockCompileError, ChainError
from with_chain.core.expansion_result import ExpansionResult
from with_chain.core.expander import MacroExpander
from with_chain.core.nodes import Chain
from with_chain.core.parser import parse_chain
from with_chain.core.rewriter import Block, rewrite
from with_chain.enums import ScopeKind

logger = logging.getLogger(__name__)

# Gives every evaluated block its own linecache entry.
_block_ids = itertools.count()


class ChainEngine:
  """
  The main expansion unit.

  Stateless apart from its configuration; one engine can serve any number of
  chains and modules.
  """

  def __init__(self, config: Optional[RewriteConfig] = None):
    """
    Initializes the Engine.

    Args:
        config (RewriteConfig, optional): Rewrite settings. Loaded from the
            nearest pyproject.toml when omitted.
    """
    self.config = config or RewriteConfig.load()

  def parse(self, source: str) -> Chain:
    """
    Parses chain text.

    Args:
        source (str): Chain text.

    Returns:
        Chain: The parsed chain.

    Raises:
        ChainSyntaxError: If the binding header is malformed.
    """
    return parse_chain(source)

  def rewrite(self, chain: Chain, scope: ScopeKind = ScopeKind.GLOBAL, name: Optional[str] = None) -> Block:
    """
    Rewrites a parsed chain into a block.

    Args:
        chain (Chain): The parsed chain.
        scope (ScopeKind): Scope the block is emitted into.
        name (str, optional): Block function name override.

    Returns:
        Block: The emitted block.
    """
    return rewrite(chain, config=self.config, scope=scope, name=name)

  def expand(self, source: str, scope: ScopeKind = ScopeKind.GLOBAL) -> str:
    """
    Expands chain text into Python source.

    Args:
        source (str): Chain text.
        scope (ScopeKind): Scope the block is emitted into.

    Returns:
        str: A function definition whose call yields the receiver.
    """
    return self.rewrite(self.parse(source), scope=scope).to_source()

  def compile_block(self, block: Block) -> Any:
    """
    Compiles an emitted block and registers its source with `linecache`.

    Args:
        block (Block): The block to compile.

    Returns:
        code: The compiled module code object defining the block function.

    Raises:
        BlockCompileError: If Python rejects the emitted source.
    """
    code = block.to_source()
    filename = f"<with-chain-{next(_block_ids)}>"
    try:
      compiled = compile(code, filename, "exec")
    except SyntaxError as e:
      span = block.origin_for_line(e.lineno) if e.lineno else None
      raise BlockCompileError(f"emitted block does not compile: {e.msg}", span, source=code, cause=e) from e

    linecache.cache[filename] = (len(code), None, code.splitlines(True), filename)
    return compiled

  def evaluate(self, source: str, namespace: Optional[Dict[str, Any]] = None) -> Any:
    """
    Expands and runs a chain, returning the receiver.

    `namespace` serves as the block's globals: directives read names from it
    and plain names assigned by `AssignCall` targets or pass-through statements
    are written back to it. Exceptions raised by the directives themselves
    propagate unchanged.

    Args:
        source (str): Chain text.
        namespace (dict, optional): Globals for the block. A fresh dict if omitted.

    Returns:
        Any: The receiver after all directives ran.

    Raises:
        ChainSyntaxError: If the binding header is malformed.
        BlockCompileError: If a fragment makes the block invalid Python.
    """
    return self.evaluate_block(self.rewrite(self.parse(source)), namespace)

  def evaluate_block(self, block: Block, namespace: Optional[Dict[str, Any]] = None) -> Any:
    """
    Compiles and runs an already rewritten block.

    Args:
        block (Block): The block to run.
        namespace (dict, optional): Globals for the block. A fresh dict if omitted.

    Returns:
        Any: The receiver after all directives ran.

    Raises:
        BlockCompileError: If a fragment makes the block invalid Python.
    """
    compiled = self.compile_block(block)

    globals_ns = namespace if namespace is not None else {}
    definitions: Dict[str, Any] = {}
    exec(compiled, globals_ns, definitions)
    return definitions[block.name]()

  def run(self, source: str) -> ExpansionResult:
    """
    Non-raising expansion of chain text.

    Args:
        source (str): Chain text.

    Returns:
        ExpansionResult: The rendered block or the errors encountered.
    """
    try:
      chain = self.parse(source)
    except ChainError as e:
      logger.debug("Chain rejected: %s", e)
      return ExpansionResult(success=False, errors=[str(e)])

    block = self.rewrite(chain)
    return ExpansionResult(code=block.to_source(), directives=[d.kind for d in chain.directives])

  def transform(self, module_source: str) -> ExpansionResult:
    """
    Expands every macro site in a Python module.

    Args:
        module_source (str): Python source code.

    Returns:
        ExpansionResult: The transformed module. Sites that failed are left
        in place and reported in `errors`.
    """
    try:
      tree = cst.parse_module(module_source)
    except cst.ParserSyntaxError as e:
      return ExpansionResult(success=False, errors=[f"Invalid Python module: {e}"], code=module_source)

    expander = MacroExpander(self)
    new_tree = tree.visit(expander)

    return ExpansionResult(
      code=new_tree.code,
      errors=expander.errors,
      warnings=expander.warnings,
      success=not expander.errors,
      expanded_sites=expander.expanded,
    )
