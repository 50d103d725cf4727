"""
Jinja2 template rendering for prompt templates.

Extracts `{{ variable }}` placeholders from template content and renders
templates with caller-supplied values, declared defaults and required-variable
validation.
"""
import re
from typing import Any

from jinja2 import Environment, TemplateSyntaxError, UndefinedError

from services.exceptions import MissingRequiredVariableError, TemplateError

VARIABLE_PATTERN = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\}\}")

# Undeclared or missing optional variables render as empty string.
# Prompts are plain text, so no HTML autoescaping.
_jinja_env = Environment(autoescape=False)  # noqa: S701


def extract_variables(content: str | None) -> list[dict[str, Any]]:
    """
    Find the distinct `{{ name }}` placeholders in content, in first-seen order.

    Each extracted variable is optional with no description or default.
    """
    if not content:
        return []
    seen: list[str] = []
    for match in VARIABLE_PATTERN.finditer(content):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return [
        {"name": name, "description": None, "required": False, "default_value": None}
        for name in seen
    ]


def render_template(
    content: str | None,
    variables: dict[str, Any] | None,
    defined_variables: list[dict[str, Any]],
) -> str:
    """
    Render a prompt template.

    Args:
        content: The Jinja2 template content. Returns empty string if None.
        variables: Caller-supplied values keyed by variable name.
        defined_variables: Variable definitions stored on the template.
            Each dict has 'name', 'required' and optionally 'default_value'.

    Returns:
        The rendered template string.

    Raises:
        MissingRequiredVariableError: If a required variable has no value and no default.
        TemplateError: If the template cannot be parsed or rendered.
    """
    context = dict(variables or {})

    for var in defined_variables:
        default = var.get("default_value")
        if var["name"] not in context and default is not None:
            context[var["name"]] = default

    for var in defined_variables:
        if var.get("required") is True and var["name"] not in context:
            raise MissingRequiredVariableError(var["name"])

    if not content:
        return ""

    try:
        template = _jinja_env.from_string(content)
        return template.render(**context)
    except TemplateSyntaxError as e:
        raise TemplateError(f"Template syntax error: {e.message}") from e
    except UndefinedError as e:
        raise TemplateError(f"Template variable error: {e}") from e
