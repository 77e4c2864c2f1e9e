"""Tests for User-Agent construction."""

import logging
import platform
import re
from importlib import metadata
from unittest.mock import patch

from connector.pipeline.user_agent import (
    FALLBACK_VERSION,
    PackageMetadataProvider,
    UserAgentBuilder,
    build_user_agent,
)

USER_AGENT_PATTERN = re.compile(r"^BotBuilder/[^ ]+ \([^ ]+ [^;]+; [^)]+\)$")


class StaticVersion:
    def __init__(self, version):
        self.version = version

    def get_version(self):
        return self.version


class BrokenVersion:
    def get_version(self):
        raise RuntimeError("metadata unavailable")


def test_format():
    user_agent = UserAgentBuilder(StaticVersion("4.14.2")).build()

    assert USER_AGENT_PATTERN.match(user_agent)
    assert user_agent == (
        f"BotBuilder/4.14.2 ({platform.python_implementation()} "
        f"{platform.python_version()}; {platform.system()})"
    )


def test_fallback_on_provider_failure(caplog):
    with caplog.at_level(logging.WARNING, logger="connector.pipeline.user_agent"):
        user_agent = build_user_agent(BrokenVersion())

    assert user_agent.startswith(f"BotBuilder/{FALLBACK_VERSION} (")
    assert USER_AGENT_PATTERN.match(user_agent)
    assert any("fallback" in r.getMessage() for r in caplog.records)


def test_fallback_on_empty_version():
    assert build_user_agent(StaticVersion("")).startswith("BotBuilder/4.0.0 (")


def test_missing_distribution_falls_back():
    with patch(
        "connector.pipeline.user_agent.metadata.version",
        side_effect=metadata.PackageNotFoundError("connector-pipeline"),
    ):
        user_agent = UserAgentBuilder().build()
    assert user_agent.startswith("BotBuilder/4.0.0 (")


def test_package_metadata_provider_reads_distribution():
    with patch("connector.pipeline.user_agent.metadata.version", return_value="9.9.9") as version:
        assert PackageMetadataProvider().get_version() == "9.9.9"
    version.assert_called_once_with("connector-pipeline")
