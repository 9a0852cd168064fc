"""Platform layer: build targets and subprocess execution."""

from dotrel.platform.process import ProcessError, run
from dotrel.platform.targets import SUPPORTED_PLATFORMS, TargetPlatform, get_platform

__all__ = [
    "ProcessError",
    "run",
    "SUPPORTED_PLATFORMS",
    "TargetPlatform",
    "get_platform",
]
