import pytest

from codeloop.agent.parsing import (
    extract_balanced_braces,
    parse_structured_output,
    strip_code_fences,
)
from codeloop.errors import StructuredOutputError

# ---------------------------------------------------------------------------
# Fallback chain
# ---------------------------------------------------------------------------

def test_strict_json():
    assert parse_structured_output('{"steps": [], "reasoning": "ok"}') == {"steps": [], "reasoning": "ok"}

def test_fenced_json():
    text = '```json\n{"steps": [{"tool": "file"}]}\n```'
    assert parse_structured_output(text) == {"steps": [{"tool": "file"}]}

def test_fence_without_language():
    assert parse_structured_output('```\n{"a": 1}\n```') == {"a": 1}

def test_prose_around_json_uses_balanced_braces():
    text = 'Here is the plan:\n```json\n{"a": {"b": 2}}\n```\nLet me know!'
    assert parse_structured_output(text) == {"a": {"b": 2}}

def test_braces_inside_strings_are_ignored():
    text = 'Sure. {"content": "function f() { return \\"}\\"; }", "n": 1} trailing } noise'
    assert parse_structured_output(text) == {"content": 'function f() { return "}"; }', "n": 1}

def test_malformed_text_raises():
    with pytest.raises(StructuredOutputError):
        parse_structured_output("I could not come up with a plan, sorry.")

def test_unbalanced_braces_raise():
    with pytest.raises(StructuredOutputError):
        parse_structured_output('{"steps": [')

def test_empty_text_raises():
    with pytest.raises(StructuredOutputError):
        parse_structured_output("   ")

def test_top_level_array_is_rejected():
    with pytest.raises(StructuredOutputError):
        parse_structured_output("[1, 2, 3]")

def test_structured_output_error_is_value_error():
    with pytest.raises(ValueError):
        parse_structured_output("nope")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

def test_extract_balanced_braces_none_without_brace():
    assert extract_balanced_braces("no json here") is None

def test_extract_balanced_braces_first_object_only():
    assert extract_balanced_braces('x {"a": 1} y {"b": 2}') == '{"a": 1}'
