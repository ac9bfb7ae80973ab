#!/usr/bin/env python3
"""Live dashboard watcher.

Subscribes to the four sensor feeds through the Firebase streaming or MQTT
provider and prints one line per published snapshot. Configuration is read
from ``SENSORDASH_*`` environment variables; see ``DashboardConfig``.

Type ``r`` + Enter to retry after an error, Ctrl+C to quit.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from sensordash import DashboardConfig, DashboardState, SensorDashboard, build_view  # noqa: E402
from sensordash.exceptions import SensorDashError  # noqa: E402
from sensordash.providers.firebase import FirebaseStreamProvider  # noqa: E402
from sensordash.providers.mqtt import MqttFeedProvider  # noqa: E402

_LOG = logging.getLogger("watch_dashboard")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print live sensor dashboard snapshots.",
    )
    parser.add_argument(
        "--provider",
        choices=("firebase", "mqtt"),
        default="firebase",
        help="Realtime data source to subscribe to.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print each snapshot as JSON instead of a summary line.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_snapshot(state: DashboardState, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(state.model_dump(mode="json")), flush=True)
        return
    view = build_view(state)
    if view.show_retry:
        print(f"[watch] v{state.version} {view.error_text} (type 'r' + Enter to retry)", flush=True)
        return
    if view.show_spinner:
        print(f"[watch] v{state.version} Loading Dashboard...", flush=True)
        return
    history = ", ".join(f"{value:g}" for value in view.history_data)
    print(
        f"[watch] v{state.version} last update {view.last_update_text or '-'} | "
        f"temp={state.temperature} presence={state.presence} "
        f"soil={state.soil_moisture} humidity={state.humidity} | history=[{history}]",
        flush=True,
    )


def _install_retry_key(loop: asyncio.AbstractEventLoop, dashboard: SensorDashboard) -> None:
    fd = sys.stdin.fileno()

    def on_input() -> None:
        line = sys.stdin.readline()
        if not line:
            loop.remove_reader(fd)
            return
        if line.strip().lower() == "r" and not dashboard.retry():
            print("[watch] nothing to retry", flush=True)

    try:
        loop.add_reader(fd, on_input)
    except (NotImplementedError, OSError, ValueError):
        _LOG.debug("stdin retry key unavailable on this platform")
        return
    _LOG.debug("Type r + Enter to retry")


def _remove_retry_key(loop: asyncio.AbstractEventLoop) -> None:
    with contextlib.suppress(NotImplementedError, OSError, ValueError):
        loop.remove_reader(sys.stdin.fileno())


async def _run(args: argparse.Namespace, config: DashboardConfig) -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    async with contextlib.AsyncExitStack() as stack:
        if args.provider == "firebase":
            http = await stack.enter_async_context(aiohttp.ClientSession())
            provider: FirebaseStreamProvider | MqttFeedProvider = FirebaseStreamProvider(
                http,
                database_url=config.database_url,
                auth_token=config.auth_token,
                stream_timeout=config.stream_timeout,
            )
        else:
            mqtt_provider = MqttFeedProvider(
                loop=loop,
                host=config.mqtt_host,
                port=config.mqtt_port,
                keepalive=config.mqtt_keepalive,
            )
            await loop.run_in_executor(None, mqtt_provider.start)
            stack.callback(mqtt_provider.stop)
            provider = mqtt_provider

        dashboard = await stack.enter_async_context(SensorDashboard(provider, config))
        dashboard.add_listener(lambda state: _print_snapshot(state, as_json=args.json))
        await dashboard.start()

        _install_retry_key(loop, dashboard)
        stack.callback(_remove_retry_key, loop)
        if args.duration > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), args.duration)
        else:
            await stop.wait()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = DashboardConfig.from_env()
        asyncio.run(_run(args, config))
    except SensorDashError as exc:
        print(f"[watch] {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
