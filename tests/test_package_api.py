"""
Tests for the top-level package API.

Verifies:
1. `expand` and `evaluate` convenience wrappers.
2. The runtime `with_chain` entry point resolves names from the caller.
"""

import pytest

import with_chain as wc
from with_chain import with_chain


def test_expand():
  assert wc.expand("mut [] => .append(1)") == (
    "def _with_chain_block():\n    _receiver = []\n    _receiver.append(1)\n    return _receiver\n"
  )


def test_evaluate_with_namespace():
  ns = {"base": 10}
  result = wc.evaluate("mut [base] => .append(base + 1) size = .__len__();", ns)
  assert result == [10, 11]
  assert ns["size"] == 2


def test_evaluate_errors():
  with pytest.raises(wc.ChainSyntaxError):
    wc.evaluate("nothing")
  with pytest.raises(wc.BlockCompileError):
    wc.evaluate("[] => let x = 1;")
  assert issubclass(wc.BlockCompileError, wc.ChainError)


def test_with_chain_sees_function_locals():
  class Counter:
    def __init__(self):
      self.n = 0

    def bump(self, by=1):
      self.n += by

  step = 5
  counter = with_chain("mut Counter() => .bump() .bump(step)")
  assert counter.n == 6


def test_with_chain_assignments_do_not_reach_function_locals():
  result = None
  items = with_chain("mut [1] => result = .copy();")
  assert items == [1]
  assert result is None


def test_with_chain_at_module_level_writes_globals():
  ns = {}
  exec(
    "from with_chain import with_chain\n"
    "last = None\n"
    "items = with_chain('mut [1, 2, 3] => last = .pop();')\n",
    ns,
  )
  assert ns["items"] == [1, 2]
  assert ns["last"] == 3


def test_version():
  assert wc.__version__


def test_with_chain_writes_globals_from_functions():
  ns = {}
  exec(
    "from with_chain import with_chain\n"
    "last = None\n"
    "def build():\n"
    "    return with_chain('mut [1, 2] => last = .pop();')\n"
    "items = build()\n",
    ns,
  )
  assert ns["items"] == [1]
  assert ns["last"] == 2
