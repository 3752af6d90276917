"""
Macro Site Expander.

LibCST transformer that expands ``with_chain("...")`` call sites inside a
Python module. Python has no block expressions, so each site is lowered in
three steps:

1.  The chain literal is parsed and rewritten into a block function named
    ``<block_name>_<n>``.
2.  The function definition is inserted immediately before the statement
    containing the site, and the site becomes a call to it.
3.  At module and class level the hoisted name is deleted again right after
    the statement so it does not leak into the namespace. Module-level sites
    inside a lambda, generator or comprehension keep their block, since they
    may run after the statement. Such sites in a class body cannot see the
    class namespace at all and are left unexpanded.

Transformation::

    numbers = with_chain("mut [] => .append(1) .append(2)")

Becomes::

    def _with_chain_block_0():
        _receiver = []
        _receiver.append(1)
        _receiver.append(2)
        return _receiver
    numbers = _with_chain_block_0()
    del _with_chain_block_0

Sites whose chain fails to parse are left untouched and reported in
`errors`; sites outside a simple statement (e.g. in an ``if`` test) are left
untouched and reported in `warnings`.

Inside functions, pass-through writes are declared ``nonlocal`` only for names
the enclosing functions bind. Unexpanded sites still work at runtime
through `with_chain.with_chain`.
"""

import logging
from typing import TYPE_CHECKING, List, Set, Tuple, Union

import libcst as cst

from with_chain.core.bindings import function_bindings
from with_chain.core.errors import ChainSyntaxError
from with_chain.core.rewriter import FINAL_ANNOTATION, outer_names, rewrite
from with_chain.enums import ScopeKind

if TYPE_CHECKING:
  from with_chain.core.engine import ChainEngine

logger = logging.getLogger(__name__)

_STRING_LITERALS = (cst.SimpleString, cst.ConcatenatedString)


def _is_docstring(node: cst.CSTNode) -> bool:
  if not isinstance(node, cst.SimpleStatementLine) or len(node.body) != 1:
    return False
  stmt = node.body[0]
  return isinstance(stmt, cst.Expr) and isinstance(stmt.value, _STRING_LITERALS)


def _is_future_import(node: cst.CSTNode) -> bool:
  if not isinstance(node, cst.SimpleStatementLine):
    return False
  return any(
    isinstance(stmt, cst.ImportFrom) and isinstance(stmt.module, cst.Name) and stmt.module.value == "__future__"
    for stmt in node.body
  )


class MacroExpander(cst.CSTTransformer):
  """
  Expands macro sites in place.

  Attributes:
      engine (ChainEngine): Supplies the parser, rewriter and configuration.
      errors (List[str]): Sites that could not be expanded.
      warnings (List[str]): Sites deliberately left alone.
      expanded (int): Number of sites replaced, nested sites included.
  """

  def __init__(self, engine: "ChainEngine") -> None:
    self.engine = engine
    self.config = engine.config
    self.errors: List[str] = []
    self.warnings: List[str] = []
    self.expanded = 0

    self._counter = 0
    self._scopes: List[ScopeKind] = [ScopeKind.GLOBAL]
    # Names bound by each enclosing function, innermost last.
    self._bindings: List[Set[str]] = []
    # Open lambdas and comprehensions per scope; their sites run later.
    self._deferred: List[int] = [0]
    # One list of (hoisted definition, keep after the statement) per open SimpleStatementLine.
    self._pending: List[List[Tuple[cst.FunctionDef, bool]]] = []
    self._needs_final = False
    self._final_imported = False
    self._block_config = self.config

  # --- Scope Tracking ---

  def visit_Module(self, node: cst.Module) -> bool:
    self._block_config = self.config.model_copy(update={"indent": node.default_indent})
    return True

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    self._scopes.append(ScopeKind.NONLOCAL)
    self._bindings.append(function_bindings(node))
    self._deferred.append(0)
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    self._scopes.pop()
    self._bindings.pop()
    self._deferred.pop()
    return updated_node

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    self._scopes.append(ScopeKind.NONE)
    self._deferred.append(0)
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    self._scopes.pop()
    self._deferred.pop()
    return updated_node

  # Bodies of these nodes run after the enclosing statement has started, or
  # in a scope that cannot see class-level names.

  def _enter_deferred(self) -> bool:
    self._deferred[-1] += 1
    return True

  def _leave_deferred(self, updated_node: cst.CSTNode) -> cst.CSTNode:
    self._deferred[-1] -= 1
    return updated_node

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    return self._enter_deferred()

  def leave_Lambda(self, original_node: cst.Lambda, updated_node: cst.Lambda) -> cst.BaseExpression:
    return self._leave_deferred(updated_node)

  def visit_GeneratorExp(self, node: cst.GeneratorExp) -> bool:
    return self._enter_deferred()

  def leave_GeneratorExp(self, original_node: cst.GeneratorExp, updated_node: cst.GeneratorExp) -> cst.BaseExpression:
    return self._leave_deferred(updated_node)

  def visit_ListComp(self, node: cst.ListComp) -> bool:
    return self._enter_deferred()

  def leave_ListComp(self, original_node: cst.ListComp, updated_node: cst.ListComp) -> cst.BaseExpression:
    return self._leave_deferred(updated_node)

  def visit_SetComp(self, node: cst.SetComp) -> bool:
    return self._enter_deferred()

  def leave_SetComp(self, original_node: cst.SetComp, updated_node: cst.SetComp) -> cst.BaseExpression:
    return self._leave_deferred(updated_node)

  def visit_DictComp(self, node: cst.DictComp) -> bool:
    return self._enter_deferred()

  def leave_DictComp(self, original_node: cst.DictComp, updated_node: cst.DictComp) -> cst.BaseExpression:
    return self._leave_deferred(updated_node)

  def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
    """Notes an existing ``from typing import Final``."""
    if isinstance(node.module, cst.Name) and node.module.value in ("typing", "typing_extensions"):
      if isinstance(node.names, cst.ImportStar):
        self._final_imported = True
      else:
        for alias in node.names:
          if isinstance(alias.name, cst.Name) and alias.name.value == FINAL_ANNOTATION and alias.asname is None:
            self._final_imported = True
    return False

  # --- Site Expansion ---

  def visit_SimpleStatementLine(self, node: cst.SimpleStatementLine) -> bool:
    self._pending.append([])
    return True

  def leave_SimpleStatementLine(
    self,
    original_node: cst.SimpleStatementLine,
    updated_node: cst.SimpleStatementLine,
  ) -> Union[cst.SimpleStatementLine, cst.FlattenSentinel]:
    """
    Places hoisted block definitions around the statement that used them.
    """
    hoisted = self._pending.pop()
    if not hoisted:
      return updated_node

    defs = [func for func, _ in hoisted]
    first = defs[0].with_changes(leading_lines=updated_node.leading_lines)
    statements: List[cst.BaseStatement] = [first, *defs[1:], updated_node.with_changes(leading_lines=[])]

    if self._scopes[-1] != ScopeKind.NONLOCAL:
      for func, keep in hoisted:
        if keep:
          continue
        statements.append(cst.SimpleStatementLine(body=[cst.Del(target=cst.Name(func.name.value))]))

    return cst.FlattenSentinel(statements)

  def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
    if not (isinstance(updated_node.func, cst.Name) and updated_node.func.value == self.config.macro_name):
      return updated_node

    text = self._literal_argument(updated_node)
    if text is None:
      self._warn(f"'{self.config.macro_name}' call without a single string literal argument left unexpanded")
      return updated_node

    if not self._pending:
      self._warn(f"'{self.config.macro_name}' site outside a simple statement left unexpanded")
      return updated_node

    scope = self._scopes[-1]
    deferred = scope != ScopeKind.NONLOCAL and self._deferred[-1] > 0
    if deferred and scope == ScopeKind.NONE:
      self._warn(f"'{self.config.macro_name}' site inside a lambda or comprehension in a class body left unexpanded")
      return updated_node

    try:
      chain = self.engine.parse(text)
    except ChainSyntaxError as e:
      self.errors.append(f"Cannot expand {text!r}: {e}")
      logger.debug("Skipping macro site: %s", e)
      return updated_node

    name = f"{self.config.block_name}_{self._counter}"
    self._counter += 1
    enclosing = set().union(*self._bindings) if scope == ScopeKind.NONLOCAL else None
    block = rewrite(chain, config=self._block_config, scope=scope, name=name, enclosing=enclosing)
    if scope == ScopeKind.NONE:
      stranded = outer_names(chain)
      if stranded:
        self._warn(f"{name}: assignments to {', '.join(stranded)} stay local inside a class body")

    try:
      func_def = cst.parse_statement(
        block.to_source(),
        config=cst.PartialParserConfig(default_indent=self._block_config.indent),
      )
    except cst.ParserSyntaxError as e:
      self.errors.append(f"Cannot expand {text!r}: emitted block is not valid Python ({e.message})")
      return updated_node

    if not block.mutable and self.config.annotate_immutable:
      self._needs_final = True

    # Sites nested inside the chain text now sit in the block body.
    func_def = func_def.visit(self)
    # At module level a deferred site still needs its block after the statement.
    self._pending[-1].append((func_def, deferred))
    self.expanded += 1
    return cst.Call(func=cst.Name(name))

  def leave_Module(self, original_node: cst.Module, updated_node: cst.Module) -> cst.Module:
    """
    Injects ``from typing import Final`` when an annotated block was emitted.
    """
    if not self._needs_final or self._final_imported:
      return updated_node

    body = list(updated_node.body)
    insert_at = 0
    for idx, node in enumerate(body):
      if (idx == 0 and _is_docstring(node)) or _is_future_import(node):
        insert_at = idx + 1
      else:
        break

    import_stmt = cst.SimpleStatementLine(
      body=[
        cst.ImportFrom(
          module=cst.Name("typing"),
          names=[cst.ImportAlias(name=cst.Name(FINAL_ANNOTATION))],
        )
      ]
    )
    if insert_at == 0 and body:
      # Header comments stay above the injected import.
      import_stmt = import_stmt.with_changes(leading_lines=body[0].leading_lines)
      body[0] = body[0].with_changes(leading_lines=[])

    body.insert(insert_at, import_stmt)
    return updated_node.with_changes(body=body)

  # --- Helpers ---

  def _literal_argument(self, node: cst.Call):
    if len(node.args) != 1:
      return None
    arg = node.args[0]
    if arg.keyword is not None or arg.star or not isinstance(arg.value, _STRING_LITERALS):
      return None
    value = arg.value.evaluated_value
    return value if isinstance(value, str) else None

  def _warn(self, message: str) -> None:
    self.warnings.append(message)
    logger.warning(message)
