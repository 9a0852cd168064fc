from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

ReleaseBump = Literal["major", "minor", "patch"]

_NUM = r"(0|[1-9]\d*)"
_IDENT = r"[0-9A-Za-z-]+"
_TRIPLE_RE = re.compile(rf"^{_NUM}\.{_NUM}\.{_NUM}$")
_SEMVER_RE = re.compile(
    rf"^{_NUM}\.{_NUM}\.{_NUM}"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+({_IDENT}(?:\.{_IDENT})*))?$"
)


def _prerelease_key(ident: str) -> tuple[int, int, str]:
    # Numeric identifiers sort below alphanumeric ones and compare numerically.
    if ident.isdigit():
        return (0, int(ident), "")
    return (1, 0, ident)


@dataclass(frozen=True, slots=True)
class Version:
    """A semantic version. Renders without a leading "v".

    Ordering follows semver precedence: build metadata is ignored and a
    pre-release sorts below its release.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        s = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            s += "-" + ".".join(self.prerelease)
        if self.build:
            s += "+" + ".".join(self.build)
        return s

    def precedence(self) -> tuple[object, ...]:
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1)
        pre = tuple(_prerelease_key(p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0, pre)

    def __lt__(self, other: Version) -> bool:
        return self.precedence() < other.precedence()

    def __le__(self, other: Version) -> bool:
        return self.precedence() <= other.precedence()

    def __gt__(self, other: Version) -> bool:
        return self.precedence() > other.precedence()

    def __ge__(self, other: Version) -> bool:
        return self.precedence() >= other.precedence()

    def bump(self, kind: ReleaseBump) -> Version:
        """Next release version; pre-release and build metadata are dropped.

        A pre-release is promoted to its own core version when that already
        covers the bump: 2.0.0-rc.1 bumps to 2.0.0 for any kind, 2.1.3-rc.1
        bumps to 2.1.3 for a patch but to 2.2.0 for a minor.
        """
        core = Version(self.major, self.minor, self.patch)
        match kind:
            case "major":
                if self.prerelease and self.minor == 0 and self.patch == 0:
                    return core
                return Version(self.major + 1, 0, 0)
            case "minor":
                if self.prerelease and self.patch == 0:
                    return core
                return Version(self.major, self.minor + 1, 0)
            case "patch":
                if self.prerelease:
                    return core
                return Version(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


ZERO = Version(0, 0, 0)


def parse_version(text: str) -> Version | None:
    """Parse a full semantic version (pre-release/build allowed, no "v")."""
    m = _SEMVER_RE.match(text.strip())
    if m is None:
        return None
    pre = tuple(m.group(4).split(".")) if m.group(4) else ()
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    # Numeric pre-release identifiers must not have leading zeros.
    if any(p.isdigit() and len(p) > 1 and p.startswith("0") for p in pre):
        return None
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, build)


def parse_triple(text: str) -> Version | None:
    """Parse a strict MAJOR.MINOR.PATCH triple."""
    m = _TRIPLE_RE.match(text)
    if m is None:
        return None
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def latest_version(tags: list[str]) -> tuple[Version, str] | None:
    """Highest-precedence semver tag and its name; non-semver tags are ignored."""
    best: tuple[Version, str] | None = None
    for tag in tags:
        v = parse_version(tag)
        if v is None:
            continue
        if best is None or v > best[0]:
            best = (v, tag)
    return best
