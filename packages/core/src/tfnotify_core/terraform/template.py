"""Comment templates rendered with a sandboxed jinja2 environment.

The main template pulls in named parts with ``{% include "<name>" %}``; any
part can be replaced through the ``templates`` configuration entry. Output is
HTML-escaped unless ``use_raw_output`` is set, since GitHub renders the body
as markdown with inline HTML.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from jinja2 import DictLoader, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup, escape

from tfnotify_core.errors import TemplateRenderError
from tfnotify_core.terraform.parser import MovedResource

logger = logging.getLogger(__name__)

# GitHub rejects comments longer than 65536 characters.
_MAX_CODE_LENGTH = 60000
_KEEP_LENGTH = 20000

DEFAULT_PLAN_TEMPLATE = """
{% include "plan_title" %}

{% if link %}[CI link]({{ link }}){% endif %}

{% include "ai_summary" %}
{% include "deletion_warning" %}
{% include "result" %}
{% include "updated_resources" %}

{% include "changed_result" %}
{% include "change_outside_terraform" %}
{% include "warning" %}
{% include "error_messages" %}"""

DEFAULT_APPLY_TEMPLATE = """
{% include "apply_title" %}

{% if link %}[CI link]({{ link }}){% endif %}

{% if exit_code != 0 %}{% include "guide_apply_failure" %}{% include "ai_summary" %}{% endif %}

{% include "result" %}

<details><summary>Details (Click me)</summary>
{{ combined_output | wrap_code }}
</details>
{% include "error_messages" %}"""

DEFAULT_PLAN_PARSE_ERROR_TEMPLATE = """
{% include "plan_title" %}

{% if link %}[CI link]({{ link }}){% endif %}
{% include "ai_summary" %}
It failed to parse the result.

<details><summary>Details (Click me)</summary>
{{ combined_output | wrap_code }}
</details>
"""

DEFAULT_APPLY_PARSE_ERROR_TEMPLATE = """
{% include "apply_title" %}

{% if link %}[CI link]({{ link }}){% endif %}
{% include "ai_summary" %}
{% include "guide_apply_parse_error" %}

It failed to parse the result.

<details><summary>Details (Click me)</summary>
{{ combined_output | wrap_code }}
</details>
"""

NAMED_TEMPLATES: dict[str, str] = {
    "plan_title": (
        "## {% if exit_code == 1 or has_error %}:x: Plan Failed{% else %}Plan Result{% endif %}"
        "{% if vars.target %} ({{ vars.target }}){% endif %}"
    ),
    "apply_title": (
        "## {% if exit_code == 0 and not has_error %}:white_check_mark: Apply Succeeded"
        "{% else %}:x: Apply Failed{% endif %}"
        "{% if vars.target %} ({{ vars.target }}){% endif %}"
    ),
    "result": "{% if result %}<pre><code>{{ result }}</code></pre>{% endif %}",
    "ai_summary": (
        "{% if summary_enabled and ai_summary %}<details><summary>AI Summary (Click me)</summary>"
        "\n\n{{ ai_summary }}\n\n</details>{% endif %}"
    ),
    "updated_resources": """{% if created_resources %}
* Create
{%- for address in created_resources %}
  * {{ address }}
{%- endfor %}{% endif %}{% if updated_resources %}
* Update
{%- for address in updated_resources %}
  * {{ address }}
{%- endfor %}{% endif %}{% if deleted_resources %}
* Delete
{%- for address in deleted_resources %}
  * {{ address }}
{%- endfor %}{% endif %}{% if replaced_resources %}
* Replace
{%- for address in replaced_resources %}
  * {{ address }}
{%- endfor %}{% endif %}{% if imported_resources %}
* Import
{%- for address in imported_resources %}
  * {{ address }}
{%- endfor %}{% endif %}{% if moved_resources %}
* Move
{%- for moved in moved_resources %}
  * {{ moved.before }} => {{ moved.after }}
{%- endfor %}{% endif %}""",
    "deletion_warning": """{% if has_destroy %}
### :warning: Resource Deletion will happen
This plan contains resource delete operation. Please check the plan result very carefully!
{% endif %}""",
    "changed_result": """{% if changed_result %}
<details><summary>Change Result (Click me)</summary>
{{ changed_result | wrap_code }}
</details>
{% endif %}""",
    "change_outside_terraform": """{% if change_outside_terraform %}
<details><summary>:information_source: Objects have changed outside of Terraform</summary>

_This feature was introduced from [Terraform v0.15.4](https://github.com/hashicorp/terraform/releases/tag/v0.15.4)._
{{ change_outside_terraform | wrap_code }}
</details>
{% endif %}""",
    "warning": """{% if warning %}
## :warning: Warnings
{{ warning | wrap_code }}
{% endif %}""",
    "error_messages": """{% if error_messages %}
## :warning: Errors
{% for message in error_messages %}
* {{ message -}}
{%- endfor %}{% endif %}""",
    "guide_apply_failure": "",
    "guide_apply_parse_error": "",
}


@dataclass
class RenderContext:
    result: str = ""
    changed_result: str = ""
    change_outside_terraform: str = ""
    warning: str = ""
    link: str = ""
    vars: dict[str, str] = field(default_factory=dict)
    stdout: str = ""
    stderr: str = ""
    combined_output: str = ""
    exit_code: int = 0
    has_destroy: bool = False
    has_error: bool = False
    error_messages: list[str] = field(default_factory=list)
    created_resources: list[str] = field(default_factory=list)
    updated_resources: list[str] = field(default_factory=list)
    deleted_resources: list[str] = field(default_factory=list)
    replaced_resources: list[str] = field(default_factory=list)
    moved_resources: list[MovedResource] = field(default_factory=list)
    imported_resources: list[str] = field(default_factory=list)
    ai_summary: str = ""
    summary_enabled: bool = False

    def as_dict(self) -> dict:
        # Shallow copy; templates read `moved.before` off MovedResource.
        return dict(self.__dict__)


def wrap_code(text: str) -> Markup:
    """Fence ``text`` as an hcl code block that survives markdown rendering."""
    text = str(text)
    header = ""
    if len(text) > _MAX_CODE_LENGTH:
        header = "\n:warning: **The content is omitted as it is too long.** :warning:\n"
        text = (
            text[:_KEEP_LENGTH]
            + "\n\n# ...\n"
            + "# ... The maximum length of GitHub Comment is 65536, so the content is omitted by tfnotify.\n"
            + "# ...\n\n"
            + text[-_KEEP_LENGTH:]
        )
    if "```" in text:
        if "~~~" in text:
            return Markup(header + "<pre><code>" + str(escape(text)) + "</code></pre>")
        return Markup(header + "\n~~~hcl\n" + text + "\n~~~\n")
    return Markup(header + "\n```hcl\n" + text + "\n```\n")


def avoid_html_escape(text: str) -> Markup:
    return Markup(text)


def escape_html(text: str) -> str:
    return str(escape(text))


class Template:
    """A main template plus the named parts it includes."""

    def __init__(self, template: str, use_raw_output: bool = False, templates: dict[str, str] | None = None):
        self.template = template
        self.use_raw_output = use_raw_output
        self.templates = {**NAMED_TEMPLATES, **(templates or {})}

    def execute(self, context: RenderContext) -> str:
        env = SandboxedEnvironment(
            loader=DictLoader({**self.templates, "__main__": self.template}),
            autoescape=not self.use_raw_output,
            keep_trailing_newline=True,
        )
        env.filters.update(
            wrap_code=wrap_code,
            avoid_html_escape=avoid_html_escape,
            escape_html=escape_html,
        )
        try:
            return env.get_template("__main__").render(context.as_dict())
        except TemplateError as e:
            logger.debug("template rendering failed: %s", e)
            raise TemplateRenderError(f"render a template: {e}") from e


def plan_template(template: str = "", **kwargs) -> Template:
    return Template(template or DEFAULT_PLAN_TEMPLATE, **kwargs)


def apply_template(template: str = "", **kwargs) -> Template:
    return Template(template or DEFAULT_APPLY_TEMPLATE, **kwargs)


def plan_parse_error_template(template: str = "", **kwargs) -> Template:
    return Template(template or DEFAULT_PLAN_PARSE_ERROR_TEMPLATE, **kwargs)


def apply_parse_error_template(template: str = "", **kwargs) -> Template:
    return Template(template or DEFAULT_APPLY_PARSE_ERROR_TEMPLATE, **kwargs)
