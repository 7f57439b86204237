"""Option parsing and the run step shared by the plan and apply commands."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import click
from rich.console import Console

VAR_ENV_PREFIX = "TFCMT_VAR_"

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def parse_vars(var_options: Iterable[str], environ: Mapping[str, str]) -> dict[str, str]:
    """Collect template variables from TFCMT_VAR_<name> and ``--var name:value``.

    ``--var`` wins over the environment.
    """
    result = {
        key[len(VAR_ENV_PREFIX) :]: value for key, value in environ.items() if key.startswith(VAR_ENV_PREFIX)
    }
    for option in var_options:
        name, sep, value = option.partition(":")
        if not sep:
            raise click.BadParameter(
                f"the value of var option is invalid. the format should be '<name>:<value>': {option}",
                param_hint="'--var'",
            )
        result[name] = value
    return result


def is_set(ctx: click.Context, name: str) -> bool:
    """True when the option was given on the command line or through its env var."""
    source = ctx.get_parameter_source(name)
    return source in (click.core.ParameterSource.COMMANDLINE, click.core.ParameterSource.ENVIRONMENT)


def summary_options(func):
    """Attach the --summary* options shared by plan and apply."""
    func = click.option(
        "--summary-template",
        default=None,
        help="Path to a prompt template file for the AI summary.",
    )(func)
    func = click.option(
        "--summary-model",
        default=None,
        help="Model used for the AI summary. Defaults to the provider's default model.",
    )(func)
    func = click.option(
        "--summary-provider",
        type=click.Choice(["anthropic", "openai", "litellm"]),
        default=None,
        help="AI provider for the summary.",
    )(func)
    func = click.option("--summary", is_flag=True, help="Add an AI-generated summary to the comment.")(func)
    return func


def apply_summary_options(config: dict, summary: bool, provider: str | None, model: str | None, template: str | None):
    if not summary:
        return
    settings = config["ai_summary"]
    settings["enabled"] = True
    if provider:
        settings["provider"] = provider
    if model:
        settings["model"] = model
    if template:
        settings["template_file"] = template


def run(ctx: click.Context, operation: str, command: tuple[str, ...]) -> None:
    """Run ``command`` through the controller and exit with its exit code."""
    from tfnotify_core.controller import Controller
    from tfnotify_core.errors import ExitError, TfnotifyError
    from tfnotify_core.summary import build_summarizer

    config = ctx.obj["config"]
    try:
        summarizer = build_summarizer(config)
    except TfnotifyError as e:
        raise click.UsageError(str(e))

    controller = Controller(config, summarizer=summarizer)
    try:
        exit_code = controller.plan(list(command)) if operation == "plan" else controller.apply(list(command))
    except ExitError as e:
        if e.cause is not None:
            logger.error("tfnotify failed: %s", e.cause)
            console.print(f"[red]tfnotify failed: {e.cause}[/red]")
        ctx.exit(e.exit_code or 1)
    except TfnotifyError as e:
        raise click.ClickException(str(e))
    ctx.exit(exit_code)
