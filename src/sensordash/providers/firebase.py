"""Firebase Realtime Database streaming provider.

Uses the REST streaming API: ``GET {database_url}/{path}.json`` with
``Accept: text/event-stream``. The server sends server-sent events:

* ``put``   ``{"path": "/sub/path", "data": ...}`` replaces the node at path
* ``patch`` ``{"path": "/sub/path", "data": {...}}`` updates child keys
* ``keep-alive`` no payload
* ``cancel`` the security rules no longer allow reading the location
* ``auth_revoked`` the auth token expired or was revoked

Each subscription keeps a local copy of its node so that sub-path updates
are delivered as full node values, the way a client SDK listener would.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import aiohttp

from sensordash._constants import USER_AGENT
from sensordash._redact import redact_for_log, redact_url
from sensordash.exceptions import FeedTransportError, SensorDashConfigError
from sensordash.providers.base import ErrorCallback, FeedNotification, ValueCallback

_logger = logging.getLogger(__name__)


def build_stream_url(database_url: str, path: str, auth_token: str | None = None) -> str:
    """Return the REST streaming URL for *path*."""
    base = database_url.rstrip("/")
    if not base:
        raise SensorDashConfigError("database_url is required for the Firebase provider")
    node = quote(path.strip("/"), safe="/")
    url = f"{base}/{node}.json"
    if auth_token:
        url = f"{url}?auth={quote(auth_token, safe='')}"
    return url


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def apply_at_path(tree: Any, path: str, value: Any) -> Any:
    """Return *tree* with *value* stored at *path* (``None`` deletes)."""
    segments = _split_path(path)
    if not segments:
        return copy.deepcopy(value)

    root: dict[str, Any] = copy.deepcopy(tree) if isinstance(tree, dict) else {}
    node = root
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child

    leaf = segments[-1]
    if value is None:
        node.pop(leaf, None)
    else:
        node[leaf] = copy.deepcopy(value)
    return _prune_empty(root)


def _prune_empty(tree: dict[str, Any]) -> dict[str, Any] | None:
    # The database has no empty objects; removing the last child removes the node.
    for key in list(tree):
        child = tree[key]
        if isinstance(child, dict):
            pruned = _prune_empty(child)
            if pruned is None:
                del tree[key]
    return tree or None


async def iter_sse(content: aiohttp.StreamReader) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event, data)`` pairs from a server-sent events stream."""
    event_name = ""
    data_lines: list[str] = []
    async for raw_line in content:
        line = raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
        if not line:
            if event_name or data_lines:
                yield event_name or "message", "\n".join(data_lines)
            event_name = ""
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)


class FirebaseStreamSubscription:
    """One streaming request for one path, driven by an asyncio task."""

    def __init__(
        self,
        *,
        http_session: aiohttp.ClientSession,
        path: str,
        url: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
        stream_timeout: float,
    ) -> None:
        self._http = http_session
        self._path = path
        self._url = url
        self._on_value = on_value
        self._on_error = on_error
        self._stream_timeout = stream_timeout
        self._tree: Any = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"sensordash-stream:{self._path}")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        _logger.debug("Stream closed path=%s", self._path)

    async def _run(self) -> None:
        try:
            await self._stream()
        except asyncio.CancelledError:
            raise
        except FeedTransportError as exc:
            self._report(exc)
        except (aiohttp.ClientError, TimeoutError) as exc:
            self._report(FeedTransportError(f"Stream for {self._path} failed: {exc}", path=self._path))
        except Exception as exc:
            _logger.warning("Unexpected stream failure path=%s", self._path, exc_info=True)
            error = FeedTransportError(f"Stream for {self._path} failed: {exc}", path=self._path)
            error.__cause__ = exc
            self._report(error)

    async def _stream(self) -> None:
        headers = {"accept": "text/event-stream", "user-agent": USER_AGENT}
        timeout = aiohttp.ClientTimeout(total=None, sock_read=self._stream_timeout or None)

        _logger.debug("GET %s (stream)", redact_url(self._url))
        async with self._http.get(self._url, headers=headers, timeout=timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise FeedTransportError(
                    f"HTTP {resp.status} from {self._path}: {text[:200]}",
                    path=self._path,
                )
            async for event_name, data in iter_sse(resp.content):
                if self._closed:
                    return
                self._handle(event_name, data)

        if not self._closed:
            raise FeedTransportError(f"Stream for {self._path} closed by server", path=self._path)

    def _handle(self, event_name: str, data: str) -> None:
        if event_name == "keep-alive":
            return
        if event_name == "cancel":
            raise FeedTransportError(f"Permission denied for {self._path}", path=self._path)
        if event_name == "auth_revoked":
            raise FeedTransportError(f"Auth revoked for {self._path}", path=self._path)
        if event_name not in {"put", "patch"}:
            _logger.debug("Ignoring stream event %r for %s", event_name, self._path)
            return

        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            _logger.debug("Unparseable %s frame for %s: %s", event_name, self._path, redact_for_log(data))
            return
        if not isinstance(message, dict) or "path" not in message:
            _logger.debug("Unexpected %s frame for %s: %s", event_name, self._path, redact_for_log(message))
            return

        sub_path = str(message.get("path") or "/")
        body = message.get("data")
        if event_name == "put":
            self._tree = apply_at_path(self._tree, sub_path, body)
        elif isinstance(body, dict):
            for key, value in body.items():
                self._tree = apply_at_path(self._tree, f"{sub_path.rstrip('/')}/{key}", value)

        self._on_value(
            FeedNotification(
                path=self._path,
                exists=self._tree is not None,
                value=copy.deepcopy(self._tree),
            )
        )

    def _report(self, exc: FeedTransportError) -> None:
        if self._closed:
            return
        _logger.debug("Stream error path=%s: %s", self._path, exc)
        self._on_error(exc)


class FirebaseStreamProvider:
    """Open one REST stream per subscribed path.

    Usage::

        async with aiohttp.ClientSession() as http:
            provider = FirebaseStreamProvider(http, database_url=config.database_url)
            async with SensorDashboard(provider, config) as dashboard:
                await dashboard.start()
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        database_url: str,
        auth_token: str | None = None,
        stream_timeout: float = 90.0,
    ) -> None:
        if not database_url.strip():
            raise SensorDashConfigError("database_url is required for the Firebase provider")
        self._http = http_session
        self._database_url = database_url.strip()
        self._auth_token = auth_token
        self._stream_timeout = stream_timeout

    def subscribe(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> FirebaseStreamSubscription:
        subscription = FirebaseStreamSubscription(
            http_session=self._http,
            path=path,
            url=build_stream_url(self._database_url, path, self._auth_token),
            on_value=on_value,
            on_error=on_error,
            stream_timeout=self._stream_timeout,
        )
        subscription.start()
        return subscription
