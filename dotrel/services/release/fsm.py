from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from dotrel.core.result import Err, Result
from dotrel.services.release.errors import ReleaseError

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    state: S


@dataclass(frozen=True, slots=True)
class StepFinish[S]:
    state: S


StepOutcome = StepAdvance[S] | StepFinish[S]
StepHandler = Callable[[S], Result[StepOutcome[S], ReleaseError]]
GetStep = Callable[[S], str]
OnEnter = Callable[[str, S], None]
OnError = Callable[[S, str, ReleaseError], S]


def advance[S](state: S) -> StepAdvance[S]:
    return StepAdvance(state=state)


def finish[S](state: S) -> StepFinish[S]:
    return StepFinish(state=state)


def run_state_machine(
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S]],
    on_error: OnError[S],
    on_enter: OnEnter[S] | None = None,
) -> S:
    """Drive `handlers` until one finishes or fails; returns the terminal state.

    A handler error is not retried: `on_error` builds the failed state from
    the last good state, the step name and the error.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            return on_error(
                current,
                step,
                ReleaseError(kind="invalid_input", message=f"unknown release stage: {step}"),
            )

        if on_enter is not None:
            on_enter(step, current)

        outcome = handler(current)
        if isinstance(outcome, Err):
            return on_error(current, step, outcome.error.at_stage(step))

        if isinstance(outcome.value, StepFinish):
            return outcome.value.state
        current = outcome.value.state
