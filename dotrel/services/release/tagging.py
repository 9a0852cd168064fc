from __future__ import annotations

from dataclasses import replace

from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import Tag
from dotrel.services.release.naming import tag_name
from dotrel.services.release.semver import Version
from dotrel.services.release.vcs import VcsClient


def _duplicate(name: str) -> ReleaseError:
    return ReleaseError(
        kind="duplicate_tag",
        message=f"tag already exists: {name}",
        hint="This version was already released; nothing to do.",
    )


def publish_tag(
    *,
    vcs: VcsClient,
    version: Version,
    console: ConsoleProtocol,
) -> Result[Tag, ReleaseError]:
    """Create the version tag at HEAD and push it.

    The tag list is re-read here rather than trusted from resolution, so a
    tag pushed by a concurrent run is still caught before any mutation.
    """
    name = tag_name(version)

    tags = vcs.list_tags()
    if isinstance(tags, Err):
        return tags
    if name in tags.value:
        return Err(_duplicate(name))

    head = vcs.head_commit()
    if isinstance(head, Err):
        return head

    created = vcs.create_tag(name, head.value)
    if isinstance(created, Err):
        return created

    pushed = vcs.push(f"refs/tags/{name}")
    if isinstance(pushed, Err):
        # The local tag is left in place and would block a rerun.
        e = pushed.error
        return Err(replace(e, hint=f"{e.hint or e.message}; then run: git tag -d {name}"))

    console.success(f"tagged {name} at {head.value[:8]}")
    return Ok(Tag(name=name, commit=head.value))
