"""HTTP endpoint that lists effect presets and lets clients select one."""

from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Union

from .presets import EffectPreset, load_effects

log = logging.getLogger(__name__)

PathLike = Union[str, Path]
SelectCallback = Callable[[int, EffectPreset], None]

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_EFFECTS_PATH = "effects.json"
SERVER_NAME = "Beast"
REQUEST_TIMEOUT_SECONDS = 60
ALLOWED_METHODS = "GET, POST, OPTIONS"
_KNOWN_METHODS = ("GET", "POST", "OPTIONS")


def _dump(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def ints_to_json(values: Iterable[int]) -> str:
    """Serialise integers as a compact JSON array."""
    return _dump([int(value) for value in values])


def effects_to_json(presets: Sequence[EffectPreset]) -> str:
    """List presets as ``{"id", "name"}`` objects; the id is the list position."""
    return _dump([{"name": preset.name, "id": index} for index, preset in enumerate(presets)])


class _EffectServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        effects_path: PathLike,
        on_select: Optional[SelectCallback],
    ) -> None:
        self.effects_path = effects_path
        self.on_select = on_select
        super().__init__(address, EffectRequestHandler)


class EffectRequestHandler(BaseHTTPRequestHandler):
    """Serves ``GET /effects``, ``POST /`` and ``OPTIONS``; other methods get 400."""

    server: _EffectServer
    timeout = REQUEST_TIMEOUT_SECONDS
    requested_method = ""

    def version_string(self) -> str:
        return SERVER_NAME

    def log_message(self, format: str, *args: object) -> None:
        log.debug("%s - %s", self.address_string(), format % args)

    def parse_request(self) -> bool:
        if not super().parse_request():
            return False
        self.requested_method = self.command
        if self.command not in _KNOWN_METHODS:
            self.command = "INVALID"
        return True

    def _respond(
        self, status: int, headers: Sequence[tuple[str, str]], body: bytes = b""
    ) -> None:
        self.log_request(status)
        self.send_response_only(status)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        if body:
            self.wfile.write(body)
        self.close_connection = True

    def _not_found(self) -> None:
        self._respond(404, [("Server", SERVER_NAME)])

    def do_GET(self) -> None:
        if self.path != "/effects":
            self._not_found()
            return
        try:
            presets = load_effects(self.server.effects_path)
        except (OSError, ValueError) as exc:
            log.error("cannot read effect presets: %s", exc)
            self._respond(500, [("Server", SERVER_NAME), ("Content-Type", "text/plain")],
                          b"Cannot read effect presets")
            return
        self._respond(
            200,
            [
                ("Server", SERVER_NAME),
                ("Content-Type", "text/html"),
                ("Access-Control-Allow-Origin", "*"),
            ],
            effects_to_json(presets).encode("utf-8"),
        )

    def _select(self, body: bytes) -> None:
        action = json.loads(body)
        log.info("Received JSON: %s", _dump(action))
        if not isinstance(action, dict):
            raise TypeError("action must be a JSON object")
        value = action["value"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid effect index: {value!r}")
        preset = load_effects(self.server.effects_path)[value]
        if self.server.on_select is not None:
            self.server.on_select(value, preset)
        else:
            log.info("selected effect %d (%s)", value, preset.name)

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length > 0 else b""
        if self.path != "/":
            self._not_found()
            return
        try:
            self._select(body)
        except Exception:
            log.exception("Failed to parse JSON.")
        self._respond(
            200,
            [
                ("Server", SERVER_NAME),
                ("Content-Type", "text/html"),
                ("Access-Control-Allow-Origin", "*"),
            ],
            b"Got action",
        )

    def do_OPTIONS(self) -> None:
        self._respond(
            200,
            [
                ("Server", SERVER_NAME),
                ("Allow", ALLOWED_METHODS),
                ("Access-Control-Allow-Origin", "*"),
                ("Access-Control-Allow-Methods", ALLOWED_METHODS),
                ("Access-Control-Allow-Headers", "Content-Type, Content-Length, Authorization"),
            ],
        )

    def do_INVALID(self) -> None:
        message = f"Invalid request-method '{self.requested_method}'"
        self._respond(400, [("Content-Type", "text/plain")], message.encode("utf-8"))


def make_server(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    effects_path: PathLike = DEFAULT_EFFECTS_PATH,
    on_select: Optional[SelectCallback] = None,
) -> ThreadingHTTPServer:
    """Create a bound server; ``on_select`` receives the index and preset chosen."""
    return _EffectServer((host, port), effects_path, on_select)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve effect presets over HTTP.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--effects", default=DEFAULT_EFFECTS_PATH)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    with make_server(args.host, args.port, args.effects) as server:
        log.info("listening on %s:%d", *server.server_address[:2])
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            log.info("shutting down")
    return 0