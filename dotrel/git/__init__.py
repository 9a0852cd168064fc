"""Git operations used by the release cycle.

Usage:
    from dotrel.git import Repository

    repo = Repository(Path("/path/to/dotty"))
    tags = repo.list_tags()
"""

from dotrel.git.repository import GitError, LogEntry, Repository

__all__ = ["GitError", "LogEntry", "Repository"]
