"""Tests for template renderer."""

import pytest

from services.exceptions import MissingRequiredVariableError, TemplateError
from services.template_renderer import extract_variables, render_template


def test__render_template__simple_substitution() -> None:
    """Test basic variable substitution."""
    content = "Hello, {{ name }}!"
    variables = [{"name": "name", "required": True}]
    result = render_template(content, {"name": "World"}, variables)
    assert result == "Hello, World!"


def test__render_template__empty_content_returns_empty_string() -> None:
    """Test that empty content returns empty string."""
    assert render_template("", None, []) == ""
    assert render_template(None, None, []) == ""


def test__render_template__default_fills_omitted_variable() -> None:
    """A declared default is used when the caller omits the variable."""
    content = "Review this {{ language }} code"
    variables = [{"name": "language", "required": True, "default_value": "Python"}]
    assert render_template(content, {}, variables) == "Review this Python code"


def test__render_template__supplied_value_overrides_default() -> None:
    content = "Review this {{ language }} code"
    variables = [{"name": "language", "required": True, "default_value": "Python"}]
    assert render_template(content, {"language": "Go"}, variables) == "Review this Go code"


def test__render_template__missing_required_variable_error() -> None:
    """Test error when a required variable has no value and no default."""
    content = "Hello, {{ name }}!"
    variables = [{"name": "name", "required": True}]

    with pytest.raises(MissingRequiredVariableError, match="Missing required variable: name") as exc:
        render_template(content, {}, variables)
    assert exc.value.variable_name == "name"


def test__render_template__missing_required_variable_is_template_error() -> None:
    with pytest.raises(TemplateError):
        render_template("{{ a }}", None, [{"name": "a", "required": True}])


def test__render_template__undeclared_and_optional_variables_render_empty() -> None:
    """Optional or undeclared placeholders render as empty strings."""
    content = "[{{ optional }}][{{ undeclared }}]"
    variables = [{"name": "optional", "required": False}]
    assert render_template(content, {}, variables) == "[][]"


def test__render_template__complex_jinja_logic() -> None:
    """Test template with Jinja2 control structures."""
    content = "{% if formal %}Dear {{ name }},{% else %}Hey {{ name }}!{% endif %}"
    variables = [
        {"name": "name", "required": True},
        {"name": "formal", "required": False},
    ]
    assert render_template(content, {"name": "Bob", "formal": "yes"}, variables) == "Dear Bob,"
    assert render_template(content, {"name": "Bob"}, variables) == "Hey Bob!"


def test__render_template__no_html_escaping() -> None:
    result = render_template("{{ code }}", {"code": "<div>&</div>"}, [])
    assert result == "<div>&</div>"


def test__render_template__syntax_error() -> None:
    """Test error on invalid Jinja2 syntax."""
    with pytest.raises(TemplateError, match="Template syntax error"):
        render_template("Hello {{ name", {"name": "x"}, [])


def test__extract_variables__distinct_names_in_first_seen_order() -> None:
    content = "{{ b }} then {{a}} then {{ b }} and {{  c_1  }}"
    names = [v["name"] for v in extract_variables(content)]
    assert names == ["b", "a", "c_1"]


def test__extract_variables__extracted_variables_are_optional() -> None:
    [variable] = extract_variables("Hi {{ name }}")
    assert variable == {
        "name": "name",
        "description": None,
        "required": False,
        "default_value": None,
    }


def test__extract_variables__ignores_expressions_and_empty_content() -> None:
    assert extract_variables("{{ user.name }} {{ items | length }}") == []
    assert extract_variables("") == []
    assert extract_variables(None) == []
