"""Map workspace paths to Claude Code project directory names."""

from pathlib import PurePosixPath


def project_key(workspace: str) -> str:
    """Encode a workspace path to its project log directory name.

    /Users/foo/bar.baz → -Users-foo-bar-baz

    The leading hyphen from the root separator is kept.
    """
    if not workspace:
        return ""
    return workspace.replace("/", "-").replace(".", "-")


def display_name(workspace: str) -> str:
    """Get the last path segment as the session display name.

    /Users/foo/bar.baz → bar.baz
    """
    if not workspace:
        return "Unknown"
    name = PurePosixPath(workspace).name
    return name or workspace


def basename(path: str) -> str:
    """Last component of a file path, as shown next to a running tool."""
    return PurePosixPath(path).name
