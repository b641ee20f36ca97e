"""Connection state machine for the aisstream.io live feed.

Transitions are pure: ``transition(state, event, policy)`` returns the next
state and the effects the driver has to carry out (connect, wait, notify
consumers, fail over). Nothing here touches the network or the clock.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class LinkPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSING = "closing"
    FAILED_OVER = "failed_over"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Linear backoff with a ceiling, plus failover thresholds.

    ``max_attempts`` and ``failover_after`` may be None to reconnect forever.
    """

    base_interval: float = 5.0
    max_interval: float = 30.0
    max_attempts: Optional[int] = 10
    failover_after: Optional[int] = 3
    abnormal_code: int = ABNORMAL_CLOSURE

    def delay_for(self, attempt: int) -> float:
        return min(self.base_interval * attempt, self.max_interval)


@dataclass(frozen=True)
class LinkState:
    phase: LinkPhase = LinkPhase.DISCONNECTED
    attempts: int = 0
    abnormal_streak: int = 0
    last_close_code: Optional[int] = None


# Events


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Subscribed:
    pass


@dataclass(frozen=True)
class Closed:
    code: int
    reason: str = ""
    had_traffic: bool = False


@dataclass(frozen=True)
class ReconnectDue:
    pass


@dataclass(frozen=True)
class Shutdown:
    pass


LinkEvent = Union[Start, Subscribed, Closed, ReconnectDue, Shutdown]


# Effects


@dataclass(frozen=True)
class Connect:
    pass


@dataclass(frozen=True)
class ScheduleReconnect:
    delay: float
    attempt: int


@dataclass(frozen=True)
class Notify:
    state: str
    detail: str


@dataclass(frozen=True)
class Failover:
    reason: str


@dataclass(frozen=True)
class CloseTransport:
    pass


Effect = Union[Connect, ScheduleReconnect, Notify, Failover, CloseTransport]

_TERMINAL = (LinkPhase.CLOSING, LinkPhase.FAILED_OVER)


def _on_closed(
    state: LinkState, event: Closed, policy: ReconnectPolicy
) -> tuple[LinkState, list[Effect]]:
    if event.code == policy.abnormal_code:
        # A session that delivered data starts a fresh streak
        streak = 1 if event.had_traffic else state.abnormal_streak + 1
    else:
        streak = 0

    effects: list[Effect] = [
        Notify("disconnected", f"AIS connection closed ({event.code})"),
    ]
    closed = replace(
        state,
        phase=LinkPhase.DISCONNECTED,
        abnormal_streak=streak,
        last_close_code=event.code,
    )

    if policy.failover_after is not None and streak >= policy.failover_after:
        reason = f"{streak} consecutive abnormal closures"
        return replace(closed, phase=LinkPhase.FAILED_OVER), effects + [Failover(reason)]

    if policy.max_attempts is not None and state.attempts >= policy.max_attempts:
        reason = f"gave up after {state.attempts} reconnect attempts"
        return replace(closed, phase=LinkPhase.FAILED_OVER), effects + [Failover(reason)]

    attempt = state.attempts + 1
    effects.append(ScheduleReconnect(delay=policy.delay_for(attempt), attempt=attempt))
    return replace(closed, attempts=attempt), effects


def transition(
    state: LinkState, event: LinkEvent, policy: ReconnectPolicy
) -> tuple[LinkState, list[Effect]]:
    """Compute the next link state and the effects to execute.

    Events that do not apply to the current phase leave the state unchanged
    and produce no effects.
    """
    phase = state.phase

    if isinstance(event, Shutdown):
        if phase in _TERMINAL:
            return state, []
        return replace(state, phase=LinkPhase.CLOSING), [CloseTransport()]

    if isinstance(event, Start) and phase is LinkPhase.DISCONNECTED:
        return replace(state, phase=LinkPhase.CONNECTING), [
            Notify("connecting", "Connecting to AIS data stream"),
            Connect(),
        ]

    if isinstance(event, Subscribed) and phase is LinkPhase.CONNECTING:
        return replace(state, phase=LinkPhase.SUBSCRIBED, attempts=0), [
            Notify("connected", "Connected to AIS data stream"),
        ]

    if isinstance(event, Closed):
        if phase in (LinkPhase.CONNECTING, LinkPhase.SUBSCRIBED):
            return _on_closed(state, event, policy)
        if phase is LinkPhase.CLOSING:
            return replace(state, last_close_code=event.code), []

    if isinstance(event, ReconnectDue) and phase is LinkPhase.DISCONNECTED:
        return replace(state, phase=LinkPhase.CONNECTING), [Connect()]

    return state, []
