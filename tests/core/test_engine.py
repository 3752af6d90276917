"""
Tests for the ChainEngine.

Verifies:
1. Evaluation semantics: single initializer evaluation, effect order,
   receiver as result, writes to the namespace.
2. Error reporting: header errors and compile errors with chain spans.
3. Non-raising `run`.
"""

import linecache

import pytest

from with_chain.config import RewriteConfig
from with_chain.core.engine import ChainEngine
from with_chain.core.errors import BlockCompileError, ChainSyntaxError
from with_chain.enums import DirectiveKind


class Foo:
  def __init__(self, val):
    self.val = val

  def get_val(self):
    return self.val

  def set_val(self, val):
    self.val = val

  def add(self, n):
    self.val += n

  def mul(self, n):
    self.val *= n


@pytest.fixture
def engine():
  return ChainEngine(RewriteConfig())


def test_basic_chain(engine):
  ns = {"Foo": Foo}
  foo = engine.evaluate(
    """Foo(0) =>
    .set_val(10)
    .mul(2)
    a = .get_val();
    .add(1)
    let n = .get_val();
    assert n == 21;
    .mul(2)""",
    ns,
  )
  assert isinstance(foo, Foo)
  assert foo.get_val() == 42
  assert ns["a"] == 20
  # let bindings stay inside the block
  assert "n" not in ns


def test_mutable_list(engine):
  result = engine.evaluate(
    """mut [] =>
    .append(1)
    .append(42)
    .append(-13)
    let l = .__len__();
    assert l == 3;""",
  )
  assert result == [1, 42, -13]


def test_empty_chain_returns_initializer(engine):
  assert engine.evaluate("mut [] =>") == []


def test_let_binding_does_not_change_result():
  class Init:
    def size(self):
      return 0

  engine = ChainEngine(RewriteConfig())
  ns = {"Init": Init}
  result = engine.evaluate("Init() => let x = .size(); assert x == 0;", ns)
  assert isinstance(result, Init)
  assert "x" not in ns


def test_nested_chain(engine):
  from with_chain import with_chain

  ns = {"Foo": Foo, "with_chain": with_chain}
  result = engine.evaluate(
    """mut [] =>
    .append(with_chain("Foo(3) =>"))
    .append(with_chain("Foo(4) => .add(1)"))""",
    ns,
  )
  assert [f.get_val() for f in result] == [3, 5]


def test_initializer_runs_once(engine):
  calls = []

  def make():
    calls.append(1)
    return []

  engine.evaluate("mut make() => .append(1) .append(2) let n = .__len__();", {"make": make})
  assert calls == [1]


def test_result_is_receiver_even_when_last_directive_returns(engine):
  ns = {}
  result = engine.evaluate("mut [1, 2] => y = .pop();", ns)
  assert result == [1]
  assert ns["y"] == 2


def test_directive_exceptions_propagate(engine):
  with pytest.raises(AttributeError):
    engine.evaluate("[] => .missing()")


def test_header_error_raises(engine):
  with pytest.raises(ChainSyntaxError):
    engine.evaluate("no arrow here")


def test_compile_error_points_at_fragment(engine):
  with pytest.raises(BlockCompileError) as exc:
    engine.evaluate("[] =>\n  .append(1)\n  let x = 5;")
  err = exc.value
  assert err.span is not None
  assert (err.span.line, err.span.column) == (3, 3)
  assert "let x = 5" in err.source
  assert isinstance(err.cause, SyntaxError)


def test_compiled_block_source_is_in_linecache(engine):
  block = engine.rewrite(engine.parse("mut [] => .append(1)"))
  compiled = engine.compile_block(block)
  lines = linecache.getlines(compiled.co_filename)
  assert lines[0] == "def _with_chain_block():\n"


def test_expand_uses_config():
  engine = ChainEngine(RewriteConfig(block_name="_blk"))
  assert engine.expand("mut [] =>").startswith("def _blk():")


def test_run_success(engine):
  result = engine.run("x => .a() let y = .b(); z = .c(); pass")
  assert result.success
  assert not result.has_errors
  assert result.directives == [
    DirectiveKind.BARE_CALL,
    DirectiveKind.LET_CALL,
    DirectiveKind.ASSIGN_CALL,
    DirectiveKind.PASS_THROUGH,
  ]
  assert "def _with_chain_block():" in result.code


def test_run_failure(engine):
  result = engine.run("=> .a()")
  assert not result.success
  assert result.has_errors
  assert "missing receiver initializer" in result.errors[0]
  assert result.code == ""


def test_pass_through_writes_reach_namespace(engine):
  ns = {"total": 0, "seen": False}
  assert engine.evaluate("mut [] => .append(1) total += 1;", ns) == [1]
  assert engine.evaluate("mut [] => .append(1) seen = True;", ns) == [1]
  assert ns["total"] == 1
  assert ns["seen"] is True


def test_pass_through_loop_target_reaches_namespace(engine):
  ns = {}
  assert engine.evaluate("mut [] => for i in range(3): _receiver.append(i);", ns) == [0, 1, 2]
  assert ns["i"] == 2


def test_let_bound_names_stay_in_block(engine):
  ns = {}
  engine.evaluate("mut [1] => let n = .__len__(); n += 1; assert n == 2;", ns)
  assert "n" not in ns
