"""
Payloads for the JSONL log / MQTT telemetry and parsing of operator commands.

Topics:
  {base}/tanks/{id}/telemetry   tank snapshot, every published tick
  {base}/events                 plant notifications
  {base}/tanks/{id}/cmd         operator command, JSON:
                                {"action": "set_state", "value": "STOPPED"}
                                {"action": "reset" | "repair" | "cancel_repair"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .plant.events import Event
from .plant.simulation import TankSimulator
from .utils import utc_iso


ACTIONS = ("set_state", "reset", "repair", "cancel_repair")


@dataclass
class Command:
    tank_id: str
    action: str
    value: Optional[str] = None


def tank_topic(base_topic: str, tank_id: str) -> str:
    return f"{base_topic}/tanks/{tank_id}/telemetry"


def events_topic(base_topic: str) -> str:
    return f"{base_topic}/events"


def command_filter(base_topic: str) -> str:
    return f"{base_topic}/tanks/+/cmd"


def build_tank_payload(sim: TankSimulator, tank_id: str, seq: int) -> Dict[str, Any]:
    snap = sim.get_snapshot(tank_id)
    return {
        "device_id": f"tank_{tank_id}",
        "ts": utc_iso(),
        "seq": seq,
        "sim_time_s": round(sim.sim_time_s, 3),
        "tank": {
            "id": snap.tank_id,
            "mode": snap.mode,
            "meter_pct": round(snap.meter, 2),
            "can_control": snap.can_control,
            "controllable": snap.controllable,
            "is_repairing": snap.is_repairing,
            "repair_remaining_s": round(snap.repair_remaining_s, 2),
            "repair_available": sim.can_start_repair(tank_id),
        },
    }


def build_event_payload(ev: Event) -> Dict[str, Any]:
    payload = ev.as_dict()
    payload["device_id"] = "plant" if ev.source == "plant" else f"tank_{ev.source}"
    return payload


def jsonl_line(topic: str, payload: Dict[str, Any]) -> str:
    return json.dumps({"topic": topic, "payload": payload}, ensure_ascii=False) + "\n"


def parse_command(topic: str, raw: bytes | str, base_topic: str) -> Optional[Command]:
    """Decode an operator command. Returns None for anything malformed."""
    prefix = f"{base_topic}/tanks/"
    if not topic.startswith(prefix) or not topic.endswith("/cmd"):
        return None
    tank_id = topic[len(prefix):-len("/cmd")]
    if not tank_id or "/" in tank_id:
        return None

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(body, dict):
        return None

    action = body.get("action")
    if action not in ACTIONS:
        return None

    value = body.get("value")
    if action == "set_state":
        if not isinstance(value, str):
            return None
        value = value.upper()
    else:
        value = None

    return Command(tank_id=tank_id, action=action, value=value)


def apply_command(sim: TankSimulator, cmd: Command) -> bool:
    """Run a parsed command against the simulator; False if it had no effect."""
    if cmd.tank_id not in sim.tanks:
        return False

    if cmd.action == "set_state":
        try:
            return sim.set_desired_state(cmd.tank_id, cmd.value or "")
        except ValueError:
            return False
    if cmd.action == "reset":
        return sim.reset_meter(cmd.tank_id)
    if cmd.action == "repair":
        return sim.start_repair(cmd.tank_id)
    if cmd.action == "cancel_repair":
        return sim.cancel_repair(cmd.tank_id)
    return False
