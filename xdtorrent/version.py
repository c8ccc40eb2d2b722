"""Program version string."""

from __future__ import annotations

NAME = "XD"
MAJOR = "0"
MINOR = "4"
PATCH = "6"


def version(git: str | None = None) -> str:
    """Return the version string, with the git revision appended if given."""
    text = f"{NAME}-{MAJOR}.{MINOR}.{PATCH}"
    if git:
        text += f"-{git}"
    return text