"""Runs the wrapped terraform command and hands its output to a notifier."""

from __future__ import annotations

import logging
import os
import re
import signal
import subprocess
import sys
import threading
from collections.abc import Callable
from typing import TextIO

from tfnotify_core.config import validate_config
from tfnotify_core.errors import ConfigError, ExitError, TfnotifyError
from tfnotify_core.gh.comment import CommentService
from tfnotify_core.gh.label import LabelService
from tfnotify_core.gh.pull_request import get_github, get_repo, graphql_url
from tfnotify_core.mask import MaskedWriter
from tfnotify_core.notifier.base import ExecResult, Notifier, NotifyOptions
from tfnotify_core.notifier.github import GitHubNotifier
from tfnotify_core.notifier.labels import ResultLabels, build_result_labels, update_labels
from tfnotify_core.notifier.localfile import LocalFileNotifier
from tfnotify_core.platform import complement

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


class Controller:
    def __init__(
        self,
        config: dict,
        summarizer=None,
        getenv: Callable[[str], str | None] = os.getenv,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        self.config = config
        self.summarizer = summarizer
        self.getenv = getenv
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def plan(self, command: list[str]) -> int:
        """Run ``command`` (a terraform plan) and publish its result.

        Returns the command's exit code; raises ExitError carrying that code
        when publishing fails.
        """
        return self._execute("plan", command)

    def apply(self, command: list[str]) -> int:
        return self._execute("apply", command)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _execute(self, operation: str, command: list[str]) -> int:
        if not command:
            raise ConfigError("no command specified")
        complement(self.config, self.getenv)
        validate_config(self.config)

        notifier = self._plan_notifier() if operation == "plan" else self._apply_notifier()
        result = self._run(command)
        logger.debug("%s exited with code %d", command[0], result.exit_code)

        try:
            if operation == "plan":
                notifier.plan(result)
            else:
                notifier.apply(result)
        except TfnotifyError as e:
            raise ExitError(result.exit_code, e) from e
        return result.exit_code

    def _github_notifier(self, options: NotifyOptions) -> GitHubNotifier:
        token = self.config.get("github_token")
        if not token:
            raise ConfigError("github token is missing")
        base_url = self.config.get("ghe_base_url") or None
        gh = get_github(token, base_url)
        repo = get_repo(gh, options.owner, options.repo)
        comments = CommentService(gh, repo, graphql_url(base_url, self.config.get("ghe_graphql_endpoint")))
        return GitHubNotifier(
            repo, comments, LabelService(repo), options, summarizer=self.summarizer, getenv=self.getenv
        )

    def _plan_notifier(self) -> Notifier:
        disable_label = self.config["terraform"]["plan"].get("disable_label")
        labels = ResultLabels() if disable_label else build_result_labels(self.config)
        options = NotifyOptions.from_config(self.config, labels)
        output = self.config.get("output")
        if not output:
            return self._github_notifier(options)

        labeler = None
        if not disable_label:
            if self.config.get("github_token") and options.owner and options.repo:
                github = self._github_notifier(options)

                def labeler(parsed):
                    return update_labels(github.labels, parsed, labels, options.pr_number)

            else:
                logger.warning("Labels are not updated: a GitHub token, owner and repository are required")
        return LocalFileNotifier(output, options, labeler=labeler, summarizer=self.summarizer, getenv=self.getenv)

    def _apply_notifier(self) -> Notifier:
        options = NotifyOptions.from_config(self.config)
        output = self.config.get("output")
        if output:
            return LocalFileNotifier(output, options, summarizer=self.summarizer, getenv=self.getenv)
        return self._github_notifier(options)

    def _run(self, command: list[str]) -> ExecResult:
        """Run ``command``, echoing masked output while capturing it without colors."""
        masks = self.config.get("masks") or []
        stdout: list[str] = []
        stderr: list[str] = []
        combined: list[str] = []
        lock = threading.Lock()

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise ConfigError(f"command not found: {command[0]}") from e

        def pump(stream, echo: TextIO, captured: list[str]) -> None:
            writer = MaskedWriter(echo, masks)
            for line in iter(stream.readline, ""):
                writer.write(line)
                writer.flush()
                plain = strip_ansi(line)
                with lock:
                    captured.append(plain)
                    combined.append(plain)
            stream.close()

        threads = [
            threading.Thread(target=pump, args=(process.stdout, self.stdout, stdout), daemon=True),
            threading.Thread(target=pump, args=(process.stderr, self.stderr, stderr), daemon=True),
        ]
        for thread in threads:
            thread.start()

        try:
            try:
                exit_code = process.wait()
            except KeyboardInterrupt:
                # terraform must finish writing its output before it is parsed.
                logger.warning("Interrupted, forwarding SIGINT to %s", command[0])
                process.send_signal(signal.SIGINT)
                exit_code = process.wait()
        finally:
            # Interrupted again while waiting: stop the command for good.
            if process.poll() is None:
                logger.warning("Interrupted again, killing %s", command[0])
                process.kill()
                process.wait()
            for thread in threads:
                thread.join()

        return ExecResult(
            stdout="".join(stdout),
            stderr="".join(stderr),
            combined_output="".join(combined),
            exit_code=exit_code,
            ci_name=self.config["ci"].get("name", ""),
        )
