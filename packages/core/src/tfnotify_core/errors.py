"""Exception hierarchy for tfnotify.

Only two conditions abort a notification: a template that fails to render
(a configuration defect) and a failed final post/patch call (nothing was
delivered). Everything else degrades into warning strings rendered into the
comment body.
"""

from __future__ import annotations


class TfnotifyError(Exception):
    """Base class for all tfnotify errors."""


class ConfigError(TfnotifyError):
    """Invalid or incomplete configuration or command-line options."""


class TemplateRenderError(TfnotifyError):
    """The comment template could not be rendered."""


class PublishError(TfnotifyError):
    """The final create/patch comment call failed."""


class ExitError(TfnotifyError):
    """Carries the wrapped command's exit code up to the CLI."""

    def __init__(self, exit_code: int, cause: Exception | None = None):
        self.exit_code = exit_code
        self.cause = cause
        super().__init__(str(cause) if cause else f"command exited with code {exit_code}")


class ParseError(TfnotifyError):
    """Command output matched neither the pass nor the fail signature.

    Never raised by the parsers; stored on ``ParseResult.error`` instead.
    """
