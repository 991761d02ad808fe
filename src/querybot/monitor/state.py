# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Monitor state machine.

The monitor alternates between an entry regime (get placed on the server,
back off while the watched identity or a second copy of ourselves is
around) and a steady regime (poll presence, steer playback). All decisions
live in :func:`transition`, which does no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

BACKOFF_TIERS_S: tuple[float, ...] = (5 * 60, 30 * 60, 60 * 60)


class ReadinessOutcome(StrEnum):
    ONLINE = "online"  # web lookup says the watched user is online
    TARGET_DETECTED = "target_detected"
    DUPLICATE_CLIENT = "duplicate_client"
    NOT_ONLINE = "not_online"  # placed in the channel, ready to monitor


# -- states ------------------------------------------------------------------


@dataclass(frozen=True)
class Connecting:
    attempt: int = 0


@dataclass(frozen=True)
class ResolvingReadiness:
    attempt: int = 0


@dataclass(frozen=True)
class BackoffWait:
    attempt: int
    remaining: float
    outcome: ReadinessOutcome


@dataclass(frozen=True)
class SteadyMonitoring:
    pass


@dataclass(frozen=True)
class Stopped:
    reason: str


MonitorState = Connecting | ResolvingReadiness | BackoffWait | SteadyMonitoring | Stopped


# -- observations ------------------------------------------------------------


@dataclass(frozen=True)
class IdentityResolved:
    """``whoami`` succeeded."""


@dataclass(frozen=True)
class NotPlaced:
    """The console reported it is not connected to any server."""


@dataclass(frozen=True)
class Readiness:
    outcome: ReadinessOutcome


@dataclass(frozen=True)
class BackoffElapsed:
    pass


@dataclass(frozen=True)
class WatchedExit:
    """A watched identity appeared and the config asks to leave."""


@dataclass(frozen=True)
class Cancelled:
    pass


Observation = IdentityResolved | NotPlaced | Readiness | BackoffElapsed | WatchedExit | Cancelled


class InvalidTransition(ValueError):
    def __init__(self, state: MonitorState, observation: Observation) -> None:
        super().__init__(f"{observation!r} is not valid in {state!r}")
        self.state = state
        self.observation = observation


def backoff_duration(attempt: int, outcome: ReadinessOutcome, online_interval_s: float = 60.0) -> float:
    """Seconds to wait before the next entry attempt.

    Target/duplicate waits escalate 5, 30, 60 minutes and stay at 60 from the
    third attempt on. A web "online" result waits the configured interval.

    Raises:
        ValueError: For ``attempt < 1`` or ``NOT_ONLINE`` (which never waits)
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    match outcome:
        case ReadinessOutcome.ONLINE:
            return online_interval_s
        case ReadinessOutcome.TARGET_DETECTED | ReadinessOutcome.DUPLICATE_CLIENT:
            return BACKOFF_TIERS_S[min(attempt, len(BACKOFF_TIERS_S)) - 1]
        case ReadinessOutcome.NOT_ONLINE:
            raise ValueError("NOT_ONLINE does not back off")


def transition(state: MonitorState, observation: Observation, *, online_interval_s: float = 60.0) -> MonitorState:
    """Return the state that follows ``state`` after ``observation``.

    Raises:
        InvalidTransition: If the observation cannot occur in ``state``
    """
    if isinstance(state, Stopped):
        return state
    if isinstance(observation, Cancelled):
        return Stopped("cancelled")

    match state, observation:
        case Connecting(), IdentityResolved():
            return SteadyMonitoring()
        case Connecting(attempt=attempt), NotPlaced():
            return ResolvingReadiness(attempt)
        case ResolvingReadiness(), Readiness(outcome=ReadinessOutcome.NOT_ONLINE):
            return SteadyMonitoring()
        case ResolvingReadiness(attempt=attempt), Readiness(outcome=outcome):
            attempt += 1
            return BackoffWait(attempt, backoff_duration(attempt, outcome, online_interval_s), outcome)
        case BackoffWait(attempt=attempt), BackoffElapsed():
            return Connecting(attempt)
        case SteadyMonitoring(), NotPlaced():
            # Dropped off the server (e.g. after the duplicate-session guard).
            return Connecting()
        case SteadyMonitoring(), WatchedExit():
            return Stopped("watched identity detected")
    raise InvalidTransition(state, observation)
