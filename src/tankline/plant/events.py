from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List

from ..utils import utc_iso


WARNING_70 = "warning_70"
OVERFLOW_ERROR = "overflow_error"
OVERFLOW_ALL_RESET = "overflow_all_reset"
AUTONOMOUS_FAILURE = "autonomous_failure"
REPAIR_STARTED = "repair_started"
REPAIR_COMPLETED = "repair_completed"
REPAIR_CANCELLED = "repair_cancelled"
INTERLOCK_STOP = "interlock_stop"
INTERLOCK_START = "interlock_start"


@dataclass
class Event:
    type: str                 # "warning_70" | "overflow_error" | "repair_started" | ...
    source: str               # tank id, or "plant" for system-wide events
    sim_time_s: float = 0.0   # simulated seconds when emitted
    data: Dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=utc_iso)
    seq: int = 0              # event sequence

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "source": self.source,
            "sim_time_s": round(float(self.sim_time_s), 3),
            "data": dict(self.data),
            "ts": self.ts,
            "seq": self.seq,
        }


Subscriber = Callable[[Event], None]


class EventBus:
    """
    Synchronous pub/sub for plant notifications.
    Subscribers are called in subscription order; the last `max_history`
    events are kept for the presentation layer.
    """

    def __init__(self, max_history: int = 500):
        self._subs: List[Subscriber] = []
        self._seq = 0
        self.history: Deque[Event] = deque(maxlen=max_history)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subs.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subs:
                self._subs.remove(callback)

        return _unsubscribe

    def publish(self, ev: Event) -> Event:
        self._seq += 1
        ev.seq = self._seq
        self.history.append(ev)
        for cb in list(self._subs):
            cb(ev)
        return ev

    def emit(self, type: str, source: str, sim_time_s: float = 0.0, **data: Any) -> Event:
        return self.publish(Event(type=type, source=source, sim_time_s=sim_time_s, data=data))

    def recent(self, n: int = 20) -> List[Event]:
        if n <= 0:
            return []
        return list(self.history)[-n:]
