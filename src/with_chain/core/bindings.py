"""
Binding Analysis.

Finds the plain names a piece of Python source stores to in its own scope.
Used to decide which names an emitted block must declare ``global`` or
``nonlocal``:

1.  **Pass-through fragments**: names written by assignments, augmented
    assignments, ``for``/``with`` targets and ``:=`` expressions. Annotated
    assignments declare a block-local instead.
2.  **Enclosing functions**: parameters and locals of the function a macro
    site lives in, so ``nonlocal`` is only declared for names it can reach.

Nested ``def``, ``class`` and ``lambda`` bodies open their own scope and are
not entered.
"""

from typing import List, Set, Tuple

import libcst as cst


class StoredNameCollector(cst.CSTVisitor):
  """
  Collects names bound in the current scope, in first-store order.

  Attributes:
      names (List[str]): Stored names.
      declared_global (Set[str]): Names the scope itself declares ``global``.
      include_definitions (bool): Also count declarations as stores:
          ``def``/``class`` names, imports and annotated assignments.
  """

  def __init__(self, include_definitions: bool = False) -> None:
    self.names: List[str] = []
    self.declared_global: Set[str] = set()
    self.include_definitions = include_definitions

  def _store(self, target: cst.CSTNode) -> None:
    if isinstance(target, cst.Name):
      if target.value not in self.names:
        self.names.append(target.value)
    elif isinstance(target, (cst.Tuple, cst.List)):
      for element in target.elements:
        self._store(element.value)
    elif isinstance(target, cst.StarredElement):
      self._store(target.value)
    # Attribute and subscript targets mutate an object; they bind nothing.

  # --- Stores ---

  def visit_AssignTarget(self, node: cst.AssignTarget) -> None:
    self._store(node.target)

  def visit_AugAssign(self, node: cst.AugAssign) -> None:
    self._store(node.target)

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    # An annotated name cannot be declared global, so it is a local declaration.
    if self.include_definitions:
      self._store(node.target)

  def visit_For(self, node: cst.For) -> None:
    self._store(node.target)

  def visit_WithItem(self, node: cst.WithItem) -> None:
    if node.asname is not None:
      self._store(node.asname.name)

  def visit_NamedExpr(self, node: cst.NamedExpr) -> None:
    self._store(node.target)

  def visit_Global(self, node: cst.Global) -> None:
    self.declared_global.update(item.name.value for item in node.names)

  def visit_Import(self, node: cst.Import) -> None:
    if not self.include_definitions:
      return
    for alias in node.names:
      if alias.asname is not None:
        self._store(alias.asname.name)
      else:
        root = alias.name
        while isinstance(root, cst.Attribute):
          root = root.value
        self._store(root)

  def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
    if not self.include_definitions or isinstance(node.names, cst.ImportStar):
      return
    for alias in node.names:
      self._store(alias.asname.name if alias.asname is not None else alias.name)

  # --- Scope boundaries ---

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    if self.include_definitions:
      self._store(node.name)
    return False

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    if self.include_definitions:
      self._store(node.name)
    return False

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    return False

  @property
  def local_names(self) -> Tuple[str, ...]:
    return tuple(n for n in self.names if n not in self.declared_global)


def stored_names(source: str) -> Tuple[str, ...]:
  """
  Lists the plain names a statement fragment writes.

  Args:
      source: Python source of one or more statements.

  Returns:
      Tuple[str, ...]: Stored names in order, or an empty tuple when the
      source does not parse.
  """
  try:
    module = cst.parse_module(source)
  except cst.ParserSyntaxError:
    return ()
  collector = StoredNameCollector()
  module.visit(collector)
  return collector.local_names


def function_bindings(node: cst.FunctionDef) -> Set[str]:
  """
  Lists the names local to a function: parameters plus everything its body binds.

  Args:
      node: The function definition.

  Returns:
      Set[str]: Names a nested scope may declare ``nonlocal``.
  """
  params = node.params
  names: Set[str] = set()
  for param in [*params.posonly_params, *params.params, *params.kwonly_params]:
    names.add(param.name.value)
  if isinstance(params.star_arg, cst.Param):
    names.add(params.star_arg.name.value)
  if params.star_kwarg is not None:
    names.add(params.star_kwarg.name.value)

  collector = StoredNameCollector(include_definitions=True)
  node.body.visit(collector)
  names.update(collector.local_names)
  return names
