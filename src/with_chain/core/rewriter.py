"""
Chain Rewriter.

Substitutes the implicit receiver into every directive of a `Chain` and wraps
the resulting statements in a single function scope whose return value is the
receiver itself.

Given::

    mut Counter() =>
        .reset()
        total = .value();
        let n = .value();
        assert n == 0;

the emitted block is::

    def _with_chain_block():
        global total
        _receiver = Counter()
        _receiver.reset()
        total = _receiver.value()
        n = _receiver.value()
        assert n == 0
        return _receiver

Rules:
- The initializer is evaluated exactly once, before any directive.
- One statement per directive, in input order; nothing is fused or dropped.
- Pass-through fragments are emitted as written.
- The block always yields the receiver, whatever the last directive returns.
- Only the receiver and chain-local names live in the block's scope; plain
  identifiers assigned by `AssignCall` or stored by a pass-through fragment
  are declared ``global``/``nonlocal`` so the write reaches the enclosing
  scope.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Collection, Dict, List, Optional, Tuple

from with_chain.config import RewriteConfig
from with_chain.core.bindings import stored_names
from with_chain.core.nodes import (
  RECEIVER_NAME,
  AssignCall,
  BareCall,
  Chain,
  Directive,
  Fragment,
  LetCall,
  PassThrough,
  SourceSpan,
)
from with_chain.enums import DirectiveKind, ScopeKind

logger = logging.getLogger(__name__)

FINAL_ANNOTATION = "Final"


@dataclass(frozen=True)
class EmittedStatement:
  """
  One emitted statement.

  Attributes:
      source: Statement text. Continuation lines already carry the block indent.
      origin: Span of the chain text that produced it.
      kind: Directive kind, or None for the binding statement.
  """

  source: str
  origin: SourceSpan
  kind: Optional[DirectiveKind] = None


@dataclass
class Block:
  """
  The scoped result of rewriting one chain.

  Attributes:
      name: Name of the wrapping function.
      binding: The receiver binding statement.
      statements: One statement per directive, in directive order.
      mutable: Whether the receiver was declared ``mut``.
      scope: Scope kind the block is emitted into.
      declarations: Outer names assigned by the block.
      indent: Body indentation.
      receiver: The receiver identifier.
  """

  name: str
  binding: EmittedStatement
  statements: List[EmittedStatement] = field(default_factory=list)
  mutable: bool = False
  scope: ScopeKind = ScopeKind.GLOBAL
  declarations: Tuple[str, ...] = ()
  indent: str = "    "
  receiver: str = RECEIVER_NAME

  @property
  def trailing(self) -> str:
    """The block's final expression: always the receiver."""
    return self.receiver

  @property
  def declaration(self) -> Optional[str]:
    if not self.declarations or self.scope == ScopeKind.NONE:
      return None
    return f"{self.scope.value} {', '.join(self.declarations)}"

  def _lines(self) -> List[Tuple[str, Optional[SourceSpan]]]:
    entries: List[Tuple[str, Optional[SourceSpan]]] = [(f"def {self.name}():", None)]
    if self.declaration:
      entries.append((self.indent + self.declaration, None))
    for stmt in [self.binding, *self.statements]:
      entries.append((self.indent + stmt.source, stmt.origin))
    entries.append((f"{self.indent}return {self.trailing}", None))
    return entries

  def to_source(self) -> str:
    """
    Renders the block as a Python function definition.

    Returns:
        str: Source text ending with a newline.
    """
    return "\n".join(text for text, _ in self._lines()) + "\n"

  def line_origins(self) -> Dict[int, SourceSpan]:
    """
    Maps 1-based lines of `to_source()` to the chain span they came from.

    Returns:
        Dict[int, SourceSpan]: Only lines produced by the binding or a directive.
    """
    origins: Dict[int, SourceSpan] = {}
    lineno = 1
    for text, span in self._lines():
      height = text.count("\n") + 1
      if span is not None:
        for offset in range(height):
          origins[lineno + offset] = span
      lineno += height
    return origins

  def origin_for_line(self, lineno: int) -> Optional[SourceSpan]:
    return self.line_origins().get(lineno)


def _call(method_name: str, arguments: Fragment, indent: str) -> str:
  return f"{RECEIVER_NAME}.{method_name}({arguments.reindent(indent)})"


class BlockEmitter:
  """
  Emits the statements of a block, one per directive.

  Attributes:
      config: Rewrite settings (indent, block name, annotations).
  """

  def __init__(self, config: RewriteConfig):
    self.config = config
    self._handlers: Dict[DirectiveKind, Callable[[Directive], str]] = {
      DirectiveKind.BARE_CALL: self._emit_bare_call,
      DirectiveKind.LET_CALL: self._emit_let_call,
      DirectiveKind.ASSIGN_CALL: self._emit_assign_call,
      DirectiveKind.PASS_THROUGH: self._emit_pass_through,
    }

  def emit(
    self,
    chain: Chain,
    scope: ScopeKind = ScopeKind.GLOBAL,
    name: Optional[str] = None,
    enclosing: Optional[Collection[str]] = None,
  ) -> Block:
    indent = self.config.indent
    binding = chain.binding
    init = binding.initializer.reindent(indent)
    if binding.mutable or not self.config.annotate_immutable:
      binding_src = f"{RECEIVER_NAME} = {init}"
    else:
      binding_src = f"{RECEIVER_NAME}: {FINAL_ANNOTATION} = {init}"

    statements = [
      EmittedStatement(self._handlers[d.kind](d), d.span, d.kind) for d in chain.directives
    ]

    return Block(
      name=name or self.config.block_name,
      binding=EmittedStatement(binding_src, binding.initializer.span),
      statements=statements,
      mutable=binding.mutable,
      scope=scope,
      declarations=outer_names(chain, enclosing) if scope != ScopeKind.NONE else (),
      indent=indent,
    )

  def _emit_bare_call(self, d: BareCall) -> str:
    return _call(d.method_name, d.arguments, self.config.indent)

  def _emit_let_call(self, d: LetCall) -> str:
    return f"{d.pattern.reindent(self.config.indent)} = {_call(d.method_name, d.arguments, self.config.indent)}"

  def _emit_assign_call(self, d: AssignCall) -> str:
    return f"{d.target.reindent(self.config.indent)} = {_call(d.method_name, d.arguments, self.config.indent)}"

  def _emit_pass_through(self, d: PassThrough) -> str:
    return d.fragment.reindent(self.config.indent)


def outer_names(chain: Chain, enclosing: Optional[Collection[str]] = None) -> Tuple[str, ...]:
  """
  Lists identifiers the block must declare to write the enclosing scope.

  These are the plain-name targets of `AssignCall` directives and the plain
  names stored by pass-through fragments (``total += 1``, ``for i in ...``).
  Names bound by any `LetCall` stay chain-local, and the receiver itself is
  never declared.

  A `LetCall` binding makes its names local for the whole block, including
  directives that precede it: in ``n = .a(); let n = .b();`` the first write
  stays inside the block as well.

  Args:
      chain: The parsed chain.
      enclosing: Names the enclosing function binds. When given, pass-through
          stores outside this set stay block-local, since ``nonlocal`` could not
          reach them. `AssignCall` targets are declared regardless.

  Returns:
      Tuple[str, ...]: Names in first-assignment order.
  """
  local = {RECEIVER_NAME}
  for d in chain.directives:
    if isinstance(d, LetCall):
      local.update(d.bound_names)

  names: List[str] = []
  for d in chain.directives:
    if isinstance(d, AssignCall):
      candidates = d.target_names
    elif isinstance(d, PassThrough):
      candidates = tuple(
        n for n in stored_names(d.fragment.text) if enclosing is None or n in enclosing
      )
    else:
      continue
    for n in candidates:
      if n in local:
        if n != RECEIVER_NAME:
          logger.debug("'%s' is assigned and let-bound in the same chain; it stays block-local", n)
      elif n not in names:
        names.append(n)
  return tuple(names)


def rewrite(
  chain: Chain,
  config: Optional[RewriteConfig] = None,
  scope: ScopeKind = ScopeKind.GLOBAL,
  name: Optional[str] = None,
  enclosing: Optional[Collection[str]] = None,
) -> Block:
  """
  Rewrites a chain into a scoped block. Total: never raises.

  Args:
      chain: The parsed chain.
      config: Rewrite settings. Defaults are used when omitted.
      scope: Kind of scope the block will be defined in.
      name: Function name for the block, overriding `config.block_name`.
      enclosing: Names bound by the enclosing function, for ``nonlocal`` scope.

  Returns:
      Block: The emitted block.
  """
  block = BlockEmitter(config or RewriteConfig()).emit(chain, scope=scope, name=name, enclosing=enclosing)
  logger.debug("Rewrote chain into %s with %d statement(s)", block.name, len(block.statements))
  return block
