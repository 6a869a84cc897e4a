"""Build identification for command-line output."""

VERSION = "development"
"""Release identifier, replaced when a release is built."""

COMMIT = "unknown"
"""Source revision the build was made from."""

BUILD_DATE = "unknown"
"""UTC build timestamp in RFC 3339 form."""


def version_string() -> str:
    """Return a compact human-readable build identifier."""
    if not COMMIT or COMMIT == "unknown":
        return VERSION
    return f"{VERSION} ({COMMIT})"