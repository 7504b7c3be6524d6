"""Tests for the compiler module."""

import pytest

from stencil.ast.node import Echo, End, ForEach, If, Text, encode_program
from stencil.compiler import Compiler
from stencil.exceptions import (
    MalformedTagError,
    UnbalancedBlockError,
    UnknownBlockError,
    UnknownFilterError,
)


def test_compile_interpolation_defaults_to_escaping():
    program = Compiler().compile("Hello {{ name }}!")

    assert len(program.nodes) == 3
    text, echo, tail = program.nodes
    assert text == Text(text="Hello ")
    assert isinstance(echo, Echo)
    assert echo.path.parts == ["name"]
    assert echo.escape is True
    assert echo.filters == []
    assert tail == Text(text="!")


def test_compile_none_bypasses_escaping():
    (echo,) = Compiler().compile("{{ body|none }}").nodes
    assert echo.escape is False
    assert echo.filters == []


def test_compile_none_drops_later_filters():
    (echo,) = Compiler().compile("{{ body|none|upper|nope }}").nodes
    assert echo.escape is False
    assert echo.filters == []


def test_compile_filters_keep_written_order():
    (echo,) = Compiler().compile("{{ body|upper|lower }}").nodes
    assert [f.name for f in echo.filters] == ["upper", "lower"]
    assert echo.escape is False


def test_compile_pipe_inside_quoted_argument():
    (echo,) = Compiler().compile("{{ tags|join(' | ') }}").nodes
    assert len(echo.filters) == 1
    assert echo.filters[0].args == [" | "]


def test_compile_links_blocks():
    """Open and end nodes point at each other."""
    program = Compiler().compile(
        "{% foreach items %}{% if loop_value %}x{% end %}{% end %}"
    )
    nodes = program.nodes

    assert isinstance(nodes[0], ForEach)
    assert isinstance(nodes[1], If)
    assert nodes[2] == Text(text="x")
    assert isinstance(nodes[3], End)
    assert isinstance(nodes[4], End)

    assert nodes[0].end == 4
    assert nodes[4].start == 0
    assert nodes[1].end == 3
    assert nodes[3].start == 1


def test_compile_if_equality():
    (node, _) = Compiler().compile("{% if flag == false %}{% end %}").nodes
    assert isinstance(node, If)
    assert node.op == "=="
    assert node.operand is False


def test_compile_is_deterministic():
    source = (
        "<ul>{% foreach items %}<li>{{ loop_index }}: {{ loop_value|upper }}</li>"
        "{% end %}</ul>{% if user.admin == true %}{{ user.name|none }}{% end %}"
    )
    compiler = Compiler()
    first = encode_program(compiler.compile(source))
    second = encode_program(Compiler().compile(source))
    assert first == second


def test_tags_do_not_span_lines():
    program = Compiler().compile("{{ a\n}}")
    assert program.nodes == [Text(text="{{ a\n}}")]


def test_unknown_block_reports_token_and_line():
    with pytest.raises(UnknownBlockError) as exc_info:
        Compiler().compile("one\ntwo\n{% bogus x %}", name="page")

    err = exc_info.value
    assert err.token == "bogus x"
    assert err.lineno == 3
    assert err.template == "page"
    assert "page:3" in str(err)


def test_block_without_argument_is_malformed():
    with pytest.raises(MalformedTagError):
        Compiler().compile("{% foreach %}{% end %}")


def test_negation_is_rejected():
    with pytest.raises(MalformedTagError):
        Compiler().compile("{% if !flag %}{% end %}")


def test_unknown_filter_fails_at_compile_time():
    with pytest.raises(UnknownFilterError) as exc_info:
        Compiler().compile("{{ x|nope }}")
    assert exc_info.value.token == "nope"


def test_none_only_bypasses_in_first_position():
    with pytest.raises(UnknownFilterError):
        Compiler().compile("{{ x|upper|none }}")


def test_filter_arity_checked():
    with pytest.raises(MalformedTagError):
        Compiler().compile("{{ x|truncate }}")


def test_stray_end():
    with pytest.raises(UnbalancedBlockError):
        Compiler().compile("text{% end %}")


def test_unclosed_block():
    with pytest.raises(UnbalancedBlockError) as exc_info:
        Compiler().compile("\n{% if x %}never closed")
    assert exc_info.value.lineno == 2
    assert exc_info.value.token == "if x"
