"""
Tests for the Chain Parser.

Verifies:
1. Binding header recognition, including the `mut` marker heuristics.
2. Header errors (missing arrow, missing initializer) carry spans.
3. Splitting: bare calls stand alone, `;` terminates, EOF terminates,
   empty fragments are dropped.
4. Directive spans point back into the chain text.
"""

import pytest

from with_chain.core.errors import ChainSyntaxError
from with_chain.core.nodes import BareCall, LetCall, PassThrough
from with_chain.core.parser import ChainParser, parse_chain


@pytest.mark.parametrize(
  "text, initializer, mutable",
  [
    ("mut [] => .append(1)", "[]", True),
    ("mut Foo(0) =>", "Foo(0)", True),
    ("mut -1 =>", "-1", True),
    ("mut 'abc' =>", "'abc'", True),
    ("Foo(0) => .bar()", "Foo(0)", False),
    ("mut(x) =>", "mut(x)", False),
    ("mut.copy() =>", "mut.copy()", False),
    ("mut =>", "mut", False),
    ("mut and other =>", "mut and other", False),
    ("mutable =>", "mutable", False),
  ],
)
def test_header_mut_marker(text, initializer, mutable):
  chain = parse_chain(text)
  assert chain.binding.initializer.text == initializer
  assert chain.binding.mutable is mutable


def test_arrow_inside_brackets_is_not_the_header_arrow():
  chain = parse_chain("f(x => y) => .a()")
  assert chain.binding.initializer.text == "f(x => y)"
  assert len(chain.directives) == 1


def test_arrow_inside_string_is_not_the_header_arrow():
  chain = parse_chain('make("=>") => .a()')
  assert chain.binding.initializer.text == 'make("=>")'


def test_multiline_initializer_is_kept_verbatim():
  chain = parse_chain("dict(\n  a=1,\n) => .clear()")
  assert chain.binding.initializer.text == "dict(\n  a=1,\n)"


def test_missing_arrow_raises():
  with pytest.raises(ChainSyntaxError) as exc:
    parse_chain("Foo() .bar()")
  assert "'=>'" in str(exc.value)
  assert exc.value.span is not None


def test_missing_initializer_raises():
  with pytest.raises(ChainSyntaxError) as exc:
    parse_chain("  => .bar()")
  assert "missing receiver initializer" in str(exc.value)
  assert exc.value.span.column == 3


def test_mut_alone_before_arrow_is_an_initializer():
  # A bare `mut` is a name, not a marker with nothing after it.
  chain = parse_chain("mut => .x()")
  assert chain.binding.initializer.text == "mut"


def test_zero_directives():
  chain = parse_chain("mut [] =>")
  assert chain.directives == ()
  assert chain.source == "mut [] =>"


def test_bare_calls_need_no_separator():
  chain = parse_chain("mut [] => .append(1) .append(2).append(3)")
  assert [d.arguments.text for d in chain.directives] == ["1", "2", "3"]
  assert all(isinstance(d, BareCall) for d in chain.directives)


def test_semicolon_after_bare_call_is_absorbed():
  chain = parse_chain("x => .a(); .b();")
  assert [type(d) for d in chain.directives] == [BareCall, BareCall]


def test_empty_fragments_are_dropped():
  chain = parse_chain("x => ;; .a() ;;")
  assert len(chain.directives) == 1


def test_end_of_input_terminates_last_fragment():
  chain = parse_chain("x => print(1)")
  assert len(chain.directives) == 1
  assert isinstance(chain.directives[0], PassThrough)
  assert chain.directives[0].fragment.text == "print(1)"


def test_semicolon_inside_brackets_does_not_terminate():
  chain = parse_chain("x => f('a;b', [1, 2]); g()")
  assert [d.fragment.text for d in chain.directives] == ["f('a;b', [1, 2])", "g()"]


def test_mixed_chain_keeps_order():
  chain = parse_chain(
    """Foo(0) =>
    .set_val(10)
    .mul(2)
    a = .get_val();
    .add(1)
    let n = .get_val();
    assert n == 21;
    .mul(2)"""
  )
  kinds = [d.kind.value for d in chain.directives]
  assert kinds == [
    "bare_call",
    "bare_call",
    "assign_call",
    "bare_call",
    "let_call",
    "pass_through",
    "bare_call",
  ]


def test_directive_spans():
  chain = parse_chain("x =>\n  .a()\n  let y = .b();")
  first, second = chain.directives
  assert (first.span.line, first.span.column) == (2, 3)
  assert isinstance(second, LetCall)
  assert (second.span.line, second.span.column) == (3, 3)


def test_comments_are_ignored_between_directives():
  chain = parse_chain("mut [] =>\n  # first\n  .append(1)  # trailing\n  .append(2)")
  assert [d.arguments.text for d in chain.directives] == ["1", "2"]


def test_parser_exposes_significant_tokens_only():
  parser = ChainParser("x  =>  .a()  # c")
  assert [tk.text for tk in parser.tokens] == ["x", "=>", ".", "a", "(", ")", ""]
