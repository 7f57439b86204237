"""Built-in prompt templates, chosen by operation and outcome.

Rendered with jinja2 against the summary data assembled by the notifier
(``result``, ``created_resources``, ``error_messages``, ``combined_output``, ...).
"""

_RESOURCES = """{% if created_resources %}Created: {{ created_resources | join(", ") }}
{% endif %}{% if updated_resources %}Updated: {{ updated_resources | join(", ") }}
{% endif %}{% if deleted_resources %}Deleted: {{ deleted_resources | join(", ") }}
{% endif %}{% if replaced_resources %}Replaced: {{ replaced_resources | join(", ") }}
{% endif %}{% if moved_resources %}Moved: {{ moved_resources | join(", ") }}
{% endif %}{% if imported_resources %}Imported: {{ imported_resources | join(", ") }}
{% endif %}"""

_ERRORS = """{% if error_messages %}
## Errors reported while notifying
{% for message in error_messages %}- {{ message }}
{% endfor %}{% endif %}"""

PLAN_SUCCESS = (
    """You are reviewing a Terraform plan for a pull request.
Summarize what will change in at most five short bullet points for a reviewer.
Call out resource deletions and replacements explicitly, and mention anything risky.

## Plan result
{{ result }}

## Resources
"""
    + _RESOURCES
    + """{% if warning %}
## Warnings
{{ warning }}
{% endif %}{% if change_outside_terraform %}
## Changes outside of Terraform
{{ change_outside_terraform }}
{% endif %}"""
    + _ERRORS
)

PLAN_FAILURE = (
    """A Terraform plan failed (exit code {{ exit_code }}).
Explain the most likely cause in plain language and suggest how to fix it.
Keep it under 150 words.

## Error
{{ result }}

## Full output
{{ combined_output }}
"""
    + _ERRORS
)

APPLY_SUCCESS = (
    """A Terraform apply finished successfully.
Summarize what was changed in at most five short bullet points.

## Apply result
{{ result }}

## Output
{{ combined_output }}
"""
    + _ERRORS
)

APPLY_FAILURE = (
    """A Terraform apply failed (exit code {{ exit_code }}).
Some resources may have been changed before the failure.
Explain the most likely cause, what state the infrastructure may be in,
and the next steps to recover. Keep it under 200 words.

## Error
{{ result }}

## Full output
{{ combined_output }}
"""
    + _ERRORS
)

DEFAULT = """Summarize the following Terraform output for a pull request reviewer in a few bullet points.

{{ combined_output }}
"""

_BY_CONTEXT = {
    ("plan", True): PLAN_SUCCESS,
    ("plan", False): PLAN_FAILURE,
    ("apply", True): APPLY_SUCCESS,
    ("apply", False): APPLY_FAILURE,
}


def select(operation_type: str, is_success: bool) -> str:
    return _BY_CONTEXT.get((operation_type, is_success), DEFAULT)
