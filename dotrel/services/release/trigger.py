"""What started a release cycle, and whether it should run.

Two triggers are recognized:

- `manual`: an operator (or workflow dispatch) asked for a release; it
  always runs and may carry a version input.
- `labeled_merge`: a pull request was closed; it runs only if the PR was
  merged and carries the release label.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from dotrel.core.result import Err, Ok, Result
from dotrel.core.structured import as_obj_list, as_str_dict, get_bool, get_str, get_table
from dotrel.services.release.errors import ReleaseError

TriggerKind = Literal["manual", "labeled_merge"]


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    kind: TriggerKind
    merged: bool = False
    labels: tuple[str, ...] = ()
    version_input: str | None = None


MANUAL = TriggerEvent(kind="manual")


def evaluate_trigger(event: TriggerEvent, *, label: str) -> Result[str | None, ReleaseError]:
    """Ok(version input or None) if the cycle should run, else `not_triggered`."""
    if event.kind == "manual":
        return Ok(event.version_input)

    if not event.merged:
        return Err(
            ReleaseError(
                kind="not_triggered",
                message="pull request was closed without merging",
            )
        )
    if label not in event.labels:
        return Err(
            ReleaseError(
                kind="not_triggered",
                message=f"pull request is not labeled {label!r}",
                hint=f"labels: {', '.join(event.labels) or '(none)'}",
            )
        )
    return Ok(event.version_input)


def _invalid(message: str, hint: str | None = None) -> ReleaseError:
    return ReleaseError(kind="invalid_input", message=message, hint=hint)


def trigger_from_github_event(
    *, event_name: str, payload: dict[str, object]
) -> Result[TriggerEvent, ReleaseError]:
    match event_name:
        case "workflow_dispatch":
            inputs = get_table(payload, "inputs") or {}
            version = get_str(inputs, "tag") or get_str(inputs, "version")
            return Ok(TriggerEvent(kind="manual", version_input=version))

        case "pull_request" | "pull_request_target":
            pr = get_table(payload, "pull_request")
            if pr is None:
                return Err(_invalid("pull_request event without a pull_request object"))

            labels: list[str] = []
            for item in as_obj_list(pr.get("labels")) or []:
                d = as_str_dict(item)
                name = get_str(d, "name") if d is not None else None
                if name is not None:
                    labels.append(name)
            # A `labeled` event carries the label that was just added.
            event_label = get_table(payload, "label")
            added = get_str(event_label, "name") if event_label is not None else None
            if added is not None and added not in labels:
                labels.append(added)

            return Ok(
                TriggerEvent(
                    kind="labeled_merge",
                    merged=get_bool(pr, "merged") is True,
                    labels=tuple(labels),
                )
            )

        case _:
            return Err(
                _invalid(
                    f"unsupported event: {event_name}",
                    "Expected workflow_dispatch or pull_request",
                )
            )


def read_event_file(
    path: Path, *, event_name: str | None = None
) -> Result[TriggerEvent, ReleaseError]:
    """Load a GitHub event payload (e.g. $GITHUB_EVENT_PATH).

    Without `event_name`, the event type is guessed from the payload shape.
    """
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(_invalid(f"failed to read event file: {e}", str(path)))
    except json.JSONDecodeError as e:
        return Err(_invalid(f"invalid JSON in event file: {e}", str(path)))

    payload = as_str_dict(obj)
    if payload is None:
        return Err(_invalid("event payload must be a JSON object", str(path)))

    if event_name is None:
        event_name = "pull_request" if "pull_request" in payload else "workflow_dispatch"
    return trigger_from_github_event(event_name=event_name, payload=payload)
