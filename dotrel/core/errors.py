"""Process exit codes.

The release command reports the outcome of a whole release cycle through
its exit status, so CI can tell a rejected run from a broken one:

- 0: Release published (formula failures are warnings only)
- 1: User error (bad override, duplicate tag, trigger not satisfied)
- 2: Environment error (gh missing or unauthenticated, invalid config)
- 3: Build error (a platform failed, artifact set incomplete)
- 4: Network error (tag push or release creation rejected)
- 5: I/O error
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
