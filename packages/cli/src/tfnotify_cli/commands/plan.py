"""plan command — run terraform plan and comment the result."""

from __future__ import annotations

import click

from tfnotify_cli.options import apply_summary_options, is_set, run, summary_options


@click.command(
    "plan",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option(
    "--patch",
    is_flag=True,
    envvar="TFCMT_PLAN_PATCH",
    help="Update the previous plan comment instead of creating a new one. "
    "If there is no previous comment, a new one is created.",
)
@click.option(
    "--skip-no-changes",
    is_flag=True,
    envvar="TFCMT_SKIP_NO_CHANGES",
    help="If there is no change, update the label but don't post a comment.",
)
@click.option(
    "--ignore-warning",
    is_flag=True,
    envvar="TFCMT_IGNORE_WARNING",
    help="Remove warnings from the comment, so --skip-no-changes skips comments with warnings too.",
)
@click.option(
    "--disable-label",
    is_flag=True,
    envvar="TFCMT_DISABLE_LABEL",
    help="Don't add or update the outcome label.",
)
@summary_options
@click.argument("command", nargs=-1, type=click.UNPROCESSED, required=True)
@click.pass_context
def plan_cmd(
    ctx,
    patch: bool,
    skip_no_changes: bool,
    ignore_warning: bool,
    disable_label: bool,
    summary: bool,
    summary_provider: str | None,
    summary_model: str | None,
    summary_template: str | None,
    command: tuple[str, ...],
):
    """Run terraform plan and post a comment to a GitHub pull request or commit.

    \b
    Example:
      tfnotify --var target:prod plan --patch -- terraform plan -no-color
    """
    config = ctx.obj["config"]
    plan = config["terraform"]["plan"]

    if is_set(ctx, "patch"):
        config["plan_patch"] = patch
    if is_set(ctx, "skip_no_changes"):
        plan["when_no_changes"]["disable_comment"] = skip_no_changes
    if is_set(ctx, "ignore_warning"):
        plan["ignore_warning"] = ignore_warning
    if is_set(ctx, "disable_label"):
        plan["disable_label"] = disable_label
    apply_summary_options(config, summary, summary_provider, summary_model, summary_template)

    run(ctx, "plan", command)
