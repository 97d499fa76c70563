import pytest

from shopscore.json_extract import JSONExtractionError, extract_json_object, find_json_object


def test_plain_object():
    assert extract_json_object('{"a": 1}') == {"a": 1}


def test_code_fence_and_prose():
    text = 'Sure! Here it is:\n```json\n{"title_en": "Hi", "n": {"x": 1}}\n```\nHope this helps {really}'
    assert extract_json_object(text) == {"title_en": "Hi", "n": {"x": 1}}


def test_braces_inside_strings():
    text = 'prefix {"a": "curly } brace", "b": "\\"quoted {"} suffix'
    assert extract_json_object(text) == {"a": "curly } brace", "b": '"quoted {'}


def test_unbalanced_falls_back_to_outer_slice():
    assert find_json_object('{"a": {"b": 1}') == '{"a": {"b": 1}'
    assert find_json_object("no json here") is None


@pytest.mark.parametrize("text", ["", "nothing", '{"a": ', "[1, 2]", '{"a": 1'])
def test_failures_raise(text):
    with pytest.raises(JSONExtractionError):
        extract_json_object(text)
