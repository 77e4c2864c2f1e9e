"""
User-Agent construction.

Format: ``BotBuilder/<version> (<runtime> <runtimeVersion>; <osName>)``, e.g.
``BotBuilder/4.0.0 (CPython 3.12.1; Linux)``.
"""

import logging
import platform
from importlib import metadata

from connector.types import BuildMetadataProvider

logger = logging.getLogger(__name__)

PRODUCT_NAME = "BotBuilder"
FALLBACK_VERSION = "4.0.0"
DISTRIBUTION_NAME = "connector-pipeline"
USER_AGENT_HEADER = "User-Agent"


class PackageMetadataProvider:
    """Reads the version of an installed distribution."""

    def __init__(self, distribution: str = DISTRIBUTION_NAME):
        self.distribution = distribution

    def get_version(self) -> str:
        return metadata.version(self.distribution)


class UserAgentBuilder:
    """Composes the client identity string once, at client construction."""

    def __init__(self, build_metadata: BuildMetadataProvider | None = None):
        self.build_metadata = build_metadata or PackageMetadataProvider()

    def _resolve_version(self) -> str:
        try:
            version = self.build_metadata.get_version()
        except Exception as e:
            logger.warning(
                "Could not determine client version, using fallback %s: %s",
                FALLBACK_VERSION,
                e,
                extra={"error_type": type(e).__name__},
            )
            return FALLBACK_VERSION

        if not version:
            logger.warning(
                "Build metadata returned an empty version, using fallback %s",
                FALLBACK_VERSION,
            )
            return FALLBACK_VERSION
        return str(version).strip()

    def build(self) -> str:
        version = self._resolve_version()
        runtime = platform.python_implementation() or "Python"
        runtime_version = platform.python_version()
        os_name = platform.system() or "unknown"
        return f"{PRODUCT_NAME}/{version} ({runtime} {runtime_version}; {os_name})"


def build_user_agent(build_metadata: BuildMetadataProvider | None = None) -> str:
    return UserAgentBuilder(build_metadata).build()
