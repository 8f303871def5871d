#!/usr/bin/env python3
"""Connect to the HydrAI stream and print every decoded event.

Reads connection settings from ``HYDRAI_*`` environment variables and the
session token from ``HYDRAI_TOKEN`` (or ``--token``).

Examples:
    python scripts/stream_probe.py
    python scripts/stream_probe.py --duration 120 --horizon 30
    python scripts/stream_probe.py --no-inference --json -v
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys
import time
from dataclasses import dataclass, field

from hydrai import HydraiClient, HydraiConfig, HydraiError
from hydrai.state.events import EventKind, StreamEvent

_LOG = logging.getLogger("hydrai.stream_probe")


@dataclass
class ProbeStats:
    started_at: float
    by_kind: dict[str, int] = field(default_factory=dict)
    first_event_at: float | None = None
    last_event_at: float | None = None

    def on_event(self, event: StreamEvent, now: float) -> float | None:
        self.by_kind[event.kind] = self.by_kind.get(event.kind, 0) + 1
        delta = None if self.last_event_at is None else now - self.last_event_at
        if self.first_event_at is None:
            self.first_event_at = now
        self.last_event_at = now
        return delta


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print live HydrAI stream events.")
    parser.add_argument(
        "--token",
        default=os.environ.get("HYDRAI_TOKEN"),
        help="Session token (default: $HYDRAI_TOKEN).",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Stop after this many seconds (0 runs until interrupted).",
    )
    parser.add_argument(
        "--horizon",
        type=float,
        default=None,
        help="Send one forecast request for this horizon once connected.",
    )
    parser.add_argument(
        "--kind",
        action="append",
        choices=[kind.value for kind in EventKind],
        help="Only print these event kinds (repeatable).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print events as JSON instead of one summary line each.",
    )
    parser.add_argument(
        "--no-inference",
        action="store_true",
        help="Disable the local classify/predict pipeline.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_event(event: StreamEvent, delta: float | None, as_json: bool) -> None:
    gap_text = "first" if delta is None else f"{delta:.1f}s"
    if as_json:
        print(event.model_dump_json(indent=2))
        return
    body = event.model_dump(mode="json", exclude={"kind", "observed_at"})
    print(f"[probe] {event.kind} gap={gap_text} {body}")


def _print_summary(client: HydraiClient, stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    snapshot = client.snapshot()
    print("[probe] Summary")
    print(f"[probe]   runtime_s       : {runtime:.1f}")
    print(f"[probe]   connect_attempts: {client.connection.connect_attempts}")
    print(f"[probe]   decode_errors   : {snapshot.decode_errors}")
    for kind, count in sorted(stats.by_kind.items()):
        print(f"[probe]   {kind:<16}: {count}")
    if snapshot.inference.last_error is not None:
        print(f"[probe]   last_inference_error: {snapshot.inference.last_error}")


async def _run(args: argparse.Namespace) -> int:
    overrides = {"inference_enabled": False} if args.no_inference else {}
    config = HydraiConfig.from_env(**overrides)
    stats = ProbeStats(started_at=time.time())
    kinds = {EventKind(kind) for kind in args.kind} if args.kind else None

    def on_event(event: StreamEvent) -> None:
        delta = stats.on_event(event, time.time())
        _print_event(event, delta, args.json)

    async with HydraiClient(config, token=args.token) as client:
        client.bus.subscribe(on_event, kinds=kinds)
        print(f"[probe] Connecting to {config.ws_url}")
        await client.connect()

        if args.horizon is not None:
            try:
                horizon = await client.request_forecast(args.horizon)
                print(f"[probe] Requested forecast for {horizon}s")
            except HydraiError as exc:
                print(f"[probe] Forecast request failed: {exc}", file=sys.stderr)

        try:
            if args.duration > 0:
                await asyncio.sleep(args.duration)
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
            else:
                await asyncio.Event().wait()
        finally:
            _print_summary(client, stats)
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.token:
        print("[probe] No token given; set HYDRAI_TOKEN or pass --token.", file=sys.stderr)
        return 2

    try:
        with contextlib.suppress(KeyboardInterrupt):
            return asyncio.run(_run(args))
    except HydraiError as exc:
        print(f"[probe] {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
