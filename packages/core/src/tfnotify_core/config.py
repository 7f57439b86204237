import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from tfnotify_core.errors import ConfigError

CONFIG_FILE_NAMES = ("tfnotify.yaml", "tfnotify.yml", ".tfnotify.yaml", ".tfnotify.yml")


def _when(**extra) -> dict:
    return {"label": "", "label_color": "", "disable_label": False, **extra}


DEFAULT_CONFIG: dict = {
    "terraform": {
        "plan": {
            "template": "",
            "when_add_or_update_only": _when(),
            "when_destroy": _when(),
            "when_no_changes": _when(disable_comment=False),
            "when_plan_error": _when(),
            "when_parse_error": {"template": ""},
            "disable_label": False,
            "ignore_warning": False,
        },
        "apply": {
            "template": "",
            "when_parse_error": {"template": ""},
        },
        "use_raw_output": False,
    },
    "embedded_var_names": [],
    "templates": {},  # named template overrides, e.g. {"plan_title": "## My plan"}
    "log": {"level": ""},
    "ghe_base_url": "",
    "ghe_graphql_endpoint": "",
    "plan_patch": False,
    "repo_owner": "",
    "repo_name": "",
    "ai_summary": {
        "enabled": False,
        "provider": "",
        "model": "",
        "template": "",
        "template_file": "",
        "max_tokens": 0,
    },
}

# Filled from the command line and CI environment, never from the YAML file.
RUNTIME_DEFAULTS: dict = {
    "ci": {"name": "", "owner": "", "repo": "", "sha": "", "link": "", "pr_number": 0},
    "vars": {},
    "output": "",
    "masks": [],
}


def _merge(base: dict, overrides: dict, skip_none: bool = False) -> dict:
    """Recursively merge ``overrides`` into ``base`` in place."""
    for key, value in overrides.items():
        if skip_none and value is None:
            continue
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value, skip_none)
        else:
            base[key] = value
    return base


def find_config(config_path: Optional[str] = None, start: Optional[Path] = None) -> Optional[Path]:
    """
    Locate the configuration file.

    An explicit path must exist. Otherwise the working directory and each of
    its parents are searched for one of CONFIG_FILE_NAMES; None means
    "run with defaults".
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"config for tfnotify is not found at all: {config_path}")
        return path

    directory = (start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        for name in CONFIG_FILE_NAMES:
            path = candidate / name
            if path.is_file():
                return path
    return None


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. tfnotify.yaml (explicit path, or the nearest one found upwards)
      3. CLI argument overrides (None values are ignored)
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = find_config(config_path)
    if path is not None:
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigError(f"{path}: the configuration must be a mapping")
        _merge(config, file_config)

    config.update(copy.deepcopy(RUNTIME_DEFAULTS))

    if cli_overrides:
        _merge(config, cli_overrides, skip_none=True)

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("TFCMT_GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["litellm_api_key"] = os.environ.get("LITELLM_API_KEY")

    return config


def validate_config(config: dict) -> None:
    """Raise ConfigError unless there is somewhere to post the result."""
    if config.get("output"):
        return
    ci = config["ci"]
    if not ci.get("owner"):
        raise ConfigError("repository owner is missing")
    if not ci.get("repo"):
        raise ConfigError("repository name is missing")
    if not ci.get("sha") and (ci.get("pr_number") or 0) <= 0:
        raise ConfigError("pull request number or SHA (revision) is needed")
