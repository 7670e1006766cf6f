#!/usr/bin/env python3
"""
Tank triad simulator runner: advances the core on a wall clock, writes
telemetry + notifications to JSONL and (optionally) MQTT, and accepts
operator commands over MQTT.

Run:
  tankline-sim --no-mqtt --duration 120
  tankline-sim --host 127.0.0.1 --base-topic tankline

Send a command:
  mosquitto_pub -t tankline/tanks/A/cmd -m '{"action": "set_state", "value": "STOPPED"}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import signal
from typing import Any, Dict, List, Optional, Tuple

from aiomqtt import Client, MqttError

from .plant.config import SimulatorConfig, load_config
from .plant.events import Event
from .plant.simulation import TankSimulator
from .telemetry import (
    apply_command,
    build_event_payload,
    build_tank_payload,
    command_filter,
    events_topic,
    jsonl_line,
    parse_command,
    tank_topic,
)
from .utils import ensure_dir_for_file, log


Outbound = Tuple[str, Dict[str, Any]]


# ============================================================
# Event sinks
# ============================================================
def console_sink(ev: Event) -> None:
    data = " ".join(f"{k}={v}" for k, v in ev.data.items())
    log(f"[SIM] t={ev.sim_time_s:.1f}s {ev.type} {ev.source} {data}".rstrip())


def queue_sink(queue: "asyncio.Queue[Outbound]", base_topic: str):
    def _sink(ev: Event) -> None:
        try:
            queue.put_nowait((events_topic(base_topic), build_event_payload(ev)))
        except asyncio.QueueFull:
            log(f"[PUB] queue full, dropped event seq={ev.seq} {ev.type}")

    return _sink


# ============================================================
# Clock: advances the simulator and queues telemetry
# ============================================================
async def clock_task(
    sim: TankSimulator,
    queue: "asyncio.Queue[Outbound]",
    stop_event: asyncio.Event,
    base_topic: str,
    tick_s: float,
    speed: float = 1.0,
    publish_every_ticks: int = 1,
    duration_s: Optional[float] = None,
) -> None:
    seq_map: Dict[str, int] = {tid: 0 for tid in sim.tanks.ids()}
    dt = tick_s * speed

    while not stop_event.is_set():
        sim.step(dt)

        if sim.tick_n % publish_every_ticks == 0:
            for tid in sim.tanks.ids():
                seq_map[tid] += 1
                payload = build_tank_payload(sim, tid, seq_map[tid])
                try:
                    queue.put_nowait((tank_topic(base_topic, tid), payload))
                except asyncio.QueueFull:
                    log(f"[PUB] queue full, dropped telemetry {tid} seq={seq_map[tid]}")

        if duration_s is not None and sim.sim_time_s >= duration_s:
            log(f"[SIM] duration {duration_s:.1f}s reached, stopping")
            stop_event.set()
            break

        await asyncio.sleep(tick_s)


# ============================================================
# Publisher: JSONL always, MQTT optionally
# ============================================================
async def _mqtt_connect(host: str, port: int) -> Optional[Client]:
    log(f"[PUB] connecting to mqtt://{host}:{port}")
    client = Client(hostname=host, port=port)
    try:
        await client.__aenter__()
    except MqttError as e:
        log(f"[PUB] MQTT error: {repr(e)} (retry in 1s, JSONL keeps going)")
        return None
    log("[PUB] connected")
    return client


async def _mqtt_close(client: Client) -> None:
    try:
        await client.__aexit__(None, None, None)
    except MqttError as e:
        log(f"[PUB] MQTT error on disconnect: {repr(e)}")


async def publisher_task(
    host: str,
    port: int,
    queue: "asyncio.Queue[Outbound]",
    stop_event: asyncio.Event,
    out_jsonl: str,
    enable_mqtt: bool = True,
) -> None:
    ensure_dir_for_file(out_jsonl)
    loop = asyncio.get_running_loop()

    mqtt_client: Optional[Client] = None
    retry_at = 0.0

    # JSONL does not depend on the broker being reachable
    with open(out_jsonl, "a", encoding="utf-8") as f:
        log(f"[PUB] writing to {os.path.abspath(out_jsonl)}")
        try:
            while not stop_event.is_set() or not queue.empty():
                if enable_mqtt and mqtt_client is None and not stop_event.is_set() and loop.time() >= retry_at:
                    mqtt_client = await _mqtt_connect(host, port)
                    if mqtt_client is None:
                        retry_at = loop.time() + 1.0

                try:
                    topic, payload = await asyncio.wait_for(queue.get(), timeout=0.5)
                except asyncio.TimeoutError:
                    continue

                f.write(jsonl_line(topic, payload))
                f.flush()

                if mqtt_client is not None:
                    try:
                        await mqtt_client.publish(topic, json.dumps(payload).encode("utf-8"), qos=0)
                    except MqttError as e:
                        log(f"[PUB] MQTT error: {repr(e)} (retry in 1s)")
                        await _mqtt_close(mqtt_client)
                        mqtt_client = None
                        retry_at = loop.time() + 1.0
        finally:
            if mqtt_client is not None:
                await _mqtt_close(mqtt_client)


# ============================================================
# Commands: MQTT -> simulator
# ============================================================
async def command_listener(
    sim: TankSimulator,
    host: str,
    port: int,
    base_topic: str,
    stop_event: asyncio.Event,
) -> None:
    topic_filter = command_filter(base_topic)

    while not stop_event.is_set():
        try:
            log(f"[CMD] connecting to mqtt://{host}:{port}")
            async with Client(hostname=host, port=port) as client:
                log(f"[CMD] connected, subscribing to '{topic_filter}'")
                await client.subscribe(topic_filter)

                async for msg in client.messages:
                    if stop_event.is_set():
                        break

                    topic = str(msg.topic)
                    cmd = parse_command(topic, msg.payload, base_topic)
                    if cmd is None:
                        log(f"[CMD] ignored malformed command on {topic}")
                        continue

                    applied = apply_command(sim, cmd)
                    log(f"[CMD] {cmd.tank_id} {cmd.action} {cmd.value or ''} -> {'applied' if applied else 'no-op'}")

        except MqttError as e:
            log(f"[CMD] MQTT error: {repr(e)} (retry in 1s)")
            await asyncio.sleep(1.0)


# ============================================================
# Main
# ============================================================
def install_signal_handlers(stop_event: asyncio.Event) -> None:
    def _handler(*_):
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Interlocked tank triad simulator over MQTT + JSONL")
    p.add_argument("--host", default="127.0.0.1", help="MQTT broker host")
    p.add_argument("--port", default=1883, type=int, help="MQTT broker port")
    p.add_argument("--base-topic", default="tankline", help="Base topic")

    p.add_argument("--config", default=None, help="JSON config with tank parameters")
    p.add_argument("--seed", type=int, default=None, help="RNG seed (overrides config)")

    p.add_argument("--tick", type=float, default=0.5, help="Tick seconds (wall clock)")
    p.add_argument("--speed", type=float, default=1.0, help="Simulated seconds per wall second")
    p.add_argument("--publish-every", type=int, default=1, help="Publish telemetry every N ticks")
    p.add_argument("--duration", type=float, default=None, help="Stop after N simulated seconds")

    p.add_argument("--out", default="out/tank_telemetry.jsonl", help="Output JSONL")
    p.add_argument("--no-mqtt", action="store_true", help="Disable MQTT (JSONL only, no commands)")
    p.add_argument("--quiet", action="store_true", help="Do not log plant events to console")

    args = p.parse_args(argv)
    if args.tick <= 0:
        p.error("--tick must be > 0")
    if args.speed <= 0:
        p.error("--speed must be > 0")
    return args


def build_config(args: argparse.Namespace) -> SimulatorConfig:
    cfg = load_config(args.config) if args.config else SimulatorConfig()
    if args.seed is not None:
        cfg.seed = args.seed
    return cfg


async def run_all(args: argparse.Namespace) -> None:
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)

    sim = TankSimulator(build_config(args))
    queue: "asyncio.Queue[Outbound]" = asyncio.Queue(maxsize=20000)

    if not args.quiet:
        sim.bus.subscribe(console_sink)
    sim.bus.subscribe(queue_sink(queue, args.base_topic))

    tasks: List[asyncio.Task] = [
        asyncio.create_task(clock_task(
            sim,
            queue,
            stop_event,
            base_topic=args.base_topic,
            tick_s=args.tick,
            speed=args.speed,
            publish_every_ticks=max(1, args.publish_every),
            duration_s=args.duration,
        )),
    ]
    publisher = asyncio.create_task(publisher_task(
        host=args.host,
        port=args.port,
        queue=queue,
        stop_event=stop_event,
        out_jsonl=args.out,
        enable_mqtt=(not args.no_mqtt),
    ))

    if not args.no_mqtt:
        tasks.append(asyncio.create_task(
            command_listener(sim, args.host, args.port, args.base_topic, stop_event)
        ))

    log(f"[MAIN] tanks={sim.tanks.ids()} seed={sim.cfg.seed} tick={args.tick}s speed={args.speed}x")
    log(f"[MAIN] out={os.path.abspath(args.out)} host={args.host} port={args.port} base_topic={args.base_topic}")
    if args.no_mqtt:
        log("[MAIN] MQTT disabled (--no-mqtt). Writing JSONL only.")

    while not stop_event.is_set():
        await asyncio.sleep(0.2)

    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)

    # let the publisher drain what is already queued
    await asyncio.gather(publisher, return_exceptions=True)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(run_all(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
