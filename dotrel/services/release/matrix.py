"""Build matrix: fan out one task per platform, gather every outcome.

The gather is a barrier. A failing task never cancels its siblings, and
the aggregator only runs once all outcomes are in.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable, Sequence

from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.build_errors import TaskCrashed
from dotrel.services.release.model import BuildOutcome

BuildTaskFn = Callable[[TargetPlatform], BuildOutcome]


def run_build_matrix(
    *,
    platforms: Sequence[TargetPlatform],
    run_task: BuildTaskFn,
    max_workers: int,
) -> list[BuildOutcome]:
    """Run `run_task` for every platform; outcomes come back in `platforms` order."""
    if not platforms:
        return []

    outcomes: dict[TargetPlatform, BuildOutcome] = {}
    workers = max(1, min(max_workers, len(platforms)))
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="dotrel-build"
    ) as executor:
        futures = {executor.submit(run_task, p): p for p in platforms}

        for future in concurrent.futures.as_completed(futures):
            platform = futures[future]
            try:
                outcomes[platform] = future.result()
            except Exception as e:
                outcomes[platform] = BuildOutcome(
                    platform=platform,
                    error=TaskCrashed(reason=f"{type(e).__name__}: {e}"),
                )

    return [outcomes[p] for p in platforms]
