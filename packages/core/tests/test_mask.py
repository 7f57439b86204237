"""Tests for secret masking."""

import io

import pytest

from tfnotify_core.errors import ConfigError
from tfnotify_core.mask import MaskedWriter, mask, parse_masks, parse_masks_from_env


def _env(values):
    return values.get


class TestParseMasks:
    def test_empty(self):
        assert parse_masks("") == []

    def test_env_and_regexp(self):
        masks = parse_masks("env:TOKEN,regexp:ghp_[a-z0-9]+", getenv=_env({"TOKEN": "s3cret"}))
        assert [m.type for m in masks] == ["equal", "regexp"]
        assert masks[0].value == "s3cret"

    def test_unset_env_is_skipped(self):
        assert parse_masks("env:MISSING", getenv=_env({})) == []

    def test_custom_separator(self):
        masks = parse_masks("regexp:a,b|regexp:c", separator="|")
        assert [m.value for m in masks] == ["a,b", "c"]

    def test_missing_colon(self):
        with pytest.raises(ConfigError, match="':' is missing"):
            parse_masks("TOKEN")

    def test_invalid_type(self):
        with pytest.raises(ConfigError, match="mask type is invalid"):
            parse_masks("literal:abc")

    def test_invalid_regexp(self):
        with pytest.raises(ConfigError, match="regular expression is invalid"):
            parse_masks("regexp:(")

    def test_from_env(self):
        env = {"TFNOTIFY_MASKS": "env:A;env:B", "TFNOTIFY_MASKS_SEPARATOR": ";", "A": "x", "B": "y"}
        assert [m.value for m in parse_masks_from_env(_env(env))] == ["x", "y"]


class TestMask:
    def test_replaces_every_match(self):
        masks = parse_masks("env:TOKEN,regexp:ghp_[a-z0-9]+", getenv=_env({"TOKEN": "s3cret"}))
        assert mask("s3cret and ghp_abc1 and s3cret", masks) == "*** and *** and ***"

    def test_no_masks(self):
        assert mask("unchanged", []) == "unchanged"


class TestMaskedWriter:
    def test_write_is_masked(self):
        stream = io.StringIO()
        writer = MaskedWriter(stream, parse_masks("regexp:[0-9]+"))
        assert writer.write("id=123\n") == len("id=123\n")
        writer.flush()
        assert stream.getvalue() == "id=***\n"
