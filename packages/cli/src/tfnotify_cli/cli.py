"""CLI entry point for tfnotify.

Commands:
  plan   — run terraform plan, comment the result and update the outcome label
  apply  — run terraform apply and comment the result
"""

from __future__ import annotations

import importlib.metadata
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from tfnotify_cli.commands.apply import apply_cmd
from tfnotify_cli.commands.plan import plan_cmd

console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("tfnotify"),
    prog_name="tfnotify",
)
@click.option("--owner", envvar="TFCMT_REPO_OWNER", help="GitHub repository owner name.")
@click.option("--repo", envvar="TFCMT_REPO_NAME", help="GitHub repository name.")
@click.option("--sha", envvar="TFCMT_SHA", help="Commit SHA (revision).")
@click.option("--build-url", help="Link to the CI build, shown in the comment.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Log level. Defaults to log.level in the configuration file, then warning.",
)
@click.option("--pr", "pr_number", type=int, envvar="TFCMT_PR_NUMBER", help="Pull request number.")
@click.option(
    "--config",
    "config_path",
    envvar="TFCMT_CONFIG",
    help="Path to the configuration file. Defaults to the nearest tfnotify.yaml.",
)
@click.option(
    "--var",
    "var_options",
    multiple=True,
    help="Template variable in the form '<name>:<value>'. Refer to it as {{ vars.<name> }}.",
)
@click.option("--output", help="Write the result to this file instead of posting a comment.")
@click.pass_context
def main(
    ctx: click.Context,
    owner: str | None,
    repo: str | None,
    sha: str | None,
    build_url: str | None,
    log_level: str | None,
    pr_number: int | None,
    config_path: str | None,
    var_options: tuple[str, ...],
    output: str | None,
):
    """Notify the execution result of terraform commands to GitHub.

    \b
    Environment variables:
      TFCMT_GITHUB_TOKEN / GITHUB_TOKEN  GitHub token (falls back to `gh auth token`)
      TFCMT_VAR_<name>                   template variable
      TFNOTIFY_MASKS                     values to redact from output and comments
      ANTHROPIC_API_KEY / OPENAI_API_KEY / LITELLM_API_KEY  AI summary keys
    """
    from tfnotify_cli.auth import resolve_github_token
    from tfnotify_cli.options import parse_vars
    from tfnotify_core.config import load_config
    from tfnotify_core.errors import ConfigError
    from tfnotify_core.mask import parse_masks_from_env

    ctx.ensure_object(dict)

    overrides = {
        "ci": {
            "owner": owner or None,
            "repo": repo or None,
            "sha": sha or None,
            "link": build_url or None,
            "pr_number": pr_number or None,
        },
        "vars": parse_vars(var_options, os.environ),
        "output": output or None,
    }
    try:
        config = load_config(config_path, cli_overrides=overrides)
        config["masks"] = parse_masks_from_env()
    except ConfigError as e:
        raise click.ClickException(str(e))

    _setup_logging(log_level or config["log"].get("level") or "warning")

    if not config["ghe_base_url"]:
        config["ghe_base_url"] = os.environ.get("GITHUB_API_URL", "")
    if not config["ghe_graphql_endpoint"]:
        config["ghe_graphql_endpoint"] = os.environ.get("GITHUB_GRAPHQL_URL", "")

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(plan_cmd)
main.add_command(apply_cmd)
