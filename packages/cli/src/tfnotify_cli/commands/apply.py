"""apply command — run terraform apply and comment the result."""

from __future__ import annotations

import click

from tfnotify_cli.options import apply_summary_options, run, summary_options


@click.command(
    "apply",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@summary_options
@click.argument("command", nargs=-1, type=click.UNPROCESSED, required=True)
@click.pass_context
def apply_cmd(
    ctx,
    summary: bool,
    summary_provider: str | None,
    summary_model: str | None,
    summary_template: str | None,
    command: tuple[str, ...],
):
    """Run terraform apply and post a comment to a GitHub pull request or commit.

    The AI summary, when enabled, is only generated for failed applies.

    \b
    Example:
      tfnotify apply -- terraform apply -auto-approve -no-color
    """
    apply_summary_options(ctx.obj["config"], summary, summary_provider, summary_model, summary_template)
    run(ctx, "apply", command)
