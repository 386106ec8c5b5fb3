import pytest

from mfasession.io import ini_utils


SAMPLE = """
# managed by hand
[default]
aws_access_key_id = AKIAEXAMPLE
aws_secret_access_key=abc/def==
region = eu-west-1

[profile dev]
  output = json
role_arn = arn:aws:iam::123456789012:role/dev
"""


def test_parse_sections_and_values():
    document = ini_utils.parse(SAMPLE)
    assert list(document) == ["default", "profile dev"]
    assert document["default"] == {
        "aws_access_key_id": "AKIAEXAMPLE",
        "aws_secret_access_key": "abc/def==",
        "region": "eu-west-1",
    }
    assert list(document["profile dev"]) == ["output", "role_arn"]


def test_parse_keeps_equals_inside_values():
    document = ini_utils.parse("[a]\ntoken = x=y==z\n")
    assert document["a"]["token"] == "x=y==z"


def test_parse_ignores_lines_before_first_section():
    document = ini_utils.parse("orphan = 1\n[a]\nk = v\n")
    assert document == {"a": {"k": "v"}}


def test_parse_reopened_section_is_reset():
    document = ini_utils.parse("[a]\nold = 1\n[b]\nk = v\n[a]\nnew = 2\n")
    assert document["a"] == {"new": "2"}
    assert list(document) == ["a", "b"]


def test_parse_empty_and_comment_only_input():
    assert ini_utils.parse("") == {}
    assert ini_utils.parse("# nothing here\n\n   \n") == {}


def test_parse_handles_crlf_and_malformed_lines():
    document = ini_utils.parse("[a]\r\nk = v\r\n[not a header\r\n[]\r\n")
    assert document["a"]["k"] == "v"
    assert document["a"]["[not a header"] == ""
    assert "" not in document


def test_serialize_format():
    text = ini_utils.serialize({"a": {"k": "v", "x": "y"}, "b": {}})
    assert text == "[a]\nk = v\nx = y\n\n[b]\n"


def test_serialize_empty_document():
    assert ini_utils.serialize({}) == ""


def test_serialize_rejects_line_breaks_in_values():
    with pytest.raises(ValueError):
        ini_utils.serialize({"a": {"k": "line1\nline2"}})


def test_parse_serialize_preserves_document():
    document = ini_utils.parse(SAMPLE)
    assert ini_utils.parse(ini_utils.serialize(document)) == document
    reparsed = ini_utils.parse(ini_utils.serialize(document))
    assert list(reparsed) == list(document)
    for name in document:
        assert list(reparsed[name]) == list(document[name])


def test_parse_splits_on_newline_only():
    document = {"a": {"k": "x\u2028y", "form": "p\x0cq", "z": "1"}}
    assert ini_utils.parse(ini_utils.serialize(document)) == document
