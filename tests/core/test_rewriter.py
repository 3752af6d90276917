"""
Tests for the Chain Rewriter.

Verifies:
1. Rendering of the binding (`mut`, `Final` annotation) and of each directive.
2. One statement per directive, in order, with pass-through text unchanged.
3. The block always returns the receiver.
4. Outer-scope declarations for assign targets and pass-through stores.
5. Re-indentation of multi-line fragments and line-origin mapping.
"""

import logging

from with_chain.config import RewriteConfig
from with_chain.core.nodes import RECEIVER_NAME
from with_chain.core.parser import parse_chain
from with_chain.core.rewriter import outer_names, rewrite
from with_chain.enums import DirectiveKind, ScopeKind


def block_for(text, **kwargs):
  return rewrite(parse_chain(text), **kwargs)


def test_zero_directives_mutable():
  src = block_for("mut [1] =>").to_source()
  assert src == "def _with_chain_block():\n    _receiver = [1]\n    return _receiver\n"


def test_zero_directives_immutable_is_final():
  src = block_for("[1] =>").to_source()
  assert src == "def _with_chain_block():\n    _receiver: Final = [1]\n    return _receiver\n"


def test_final_annotation_can_be_disabled():
  block = block_for("[1] =>", config=RewriteConfig(annotate_immutable=False))
  assert block.binding.source == "_receiver = [1]"


def test_bare_calls_in_order():
  src = block_for("mut [] => .append(1) .append(2)").to_source()
  assert src == (
    "def _with_chain_block():\n"
    "    _receiver = []\n"
    "    _receiver.append(1)\n"
    "    _receiver.append(2)\n"
    "    return _receiver\n"
  )


def test_one_statement_per_directive():
  text = "Foo() => .a() let x = .b(); y = .c(); print(x); ;; .d()"
  chain = parse_chain(text)
  block = rewrite(chain)
  assert len(block.statements) == len(chain.directives) == 5
  assert [s.kind for s in block.statements] == [d.kind for d in chain.directives]
  assert [s.source for s in block.statements] == [
    "_receiver.a()",
    "x = _receiver.b()",
    "y = _receiver.c()",
    "print(x)",
    "_receiver.d()",
  ]


def test_pass_through_is_verbatim():
  block = block_for("x => assert x   ==  0 ;  let q = 5;")
  assert [s.source for s in block.statements] == ["assert x   ==  0", "let q = 5"]
  assert block.statements[1].kind == DirectiveKind.PASS_THROUGH


def test_trailing_value_is_the_receiver():
  block = block_for("x => let y = .pop();")
  assert block.trailing == RECEIVER_NAME
  assert block.to_source().endswith("    return _receiver\n")


def test_assigned_names_are_declared_global():
  block = block_for("x => a = .f(); let b = .g(); b = .h(); self.c = .i(); _receiver = .j(); a = .k();")
  assert block.declarations == ("a",)
  assert block.declaration == "global a"
  assert block.to_source().splitlines()[1] == "    global a"


def test_nonlocal_declaration_in_function_scope():
  block = block_for("x => a, b = .pair();", scope=ScopeKind.NONLOCAL)
  assert block.declaration == "nonlocal a, b"


def test_no_declaration_in_class_scope():
  block = block_for("x => a = .f();", scope=ScopeKind.NONE)
  assert block.declarations == ()
  assert block.declaration is None
  assert "global" not in block.to_source()


def test_outer_names_excludes_let_bound_names_anywhere():
  # A let later in the chain still makes the name chain-local.
  chain = parse_chain("x => n = .a(); let n = .b();")
  assert outer_names(chain) == ()


def test_custom_block_name_and_indent():
  config = RewriteConfig(block_name="_blk", indent="  ")
  src = block_for("mut [] => .clear()", config=config, name=None).to_source()
  assert src == "def _blk():\n  _receiver = []\n  _receiver.clear()\n  return _receiver\n"
  assert block_for("[] =>", name="_other").name == "_other"


def test_multiline_pass_through_is_reindented():
  block = block_for("x =>\n  if x:\n      print(x);")
  assert block.statements[0].source == "if x:\n          print(x)"
  assert "    if x:\n          print(x)\n" in block.to_source()


def test_multiline_string_contents_are_not_reindented():
  block = block_for('x => .write("""a\nb""")')
  assert block.statements[0].source == '_receiver.write("""a\nb""")'


def test_line_origins_point_into_the_chain():
  block = block_for("x =>\n  a = .f();\n  if a:\n      print(a);")
  # 1 def, 2 global, 3 binding, 4 assign, 5-6 if statement, 7 return
  assert block.origin_for_line(1) is None
  assert block.origin_for_line(2) is None
  assert block.origin_for_line(3).line == 1
  assert block.origin_for_line(4).line == 2
  assert block.origin_for_line(5).line == 3
  assert block.origin_for_line(6).line == 3
  assert block.origin_for_line(7) is None


def test_pass_through_stores_are_declared():
  chain = parse_chain("x => total += 1; seen = True; for i in range(2): pass; obj.attr = 1; d[k] = 2;")
  assert outer_names(chain) == ("total", "seen", "i")
  assert rewrite(chain).declaration == "global total, seen, i"


def test_pass_through_locals_and_receiver_are_not_declared():
  chain = parse_chain("x => let n = .size(); n += 1; _receiver = None; y: int = 0; let q = 5;")
  assert outer_names(chain) == ()


def test_enclosing_names_filter_pass_through_stores_only():
  chain = parse_chain("x => total += 1; tmp = 2; a = .f();")
  assert outer_names(chain, enclosing={"total"}) == ("total", "a")
  block = rewrite(chain, scope=ScopeKind.NONLOCAL, enclosing={"total"})
  assert block.declaration == "nonlocal total, a"


def test_assigned_and_let_bound_name_is_logged(caplog):
  caplog.set_level(logging.DEBUG, logger="with_chain.core.rewriter")
  assert outer_names(parse_chain("x => n = .a(); let n = .b();")) == ()
  assert "'n' is assigned and let-bound" in caplog.text
