#!/usr/bin/env python3
"""
Relay Directory HTTP API

This module provides:
- DirectoryHTTPHandler: request handler translating HTTP calls into RelayStore operations
- build_directory_server / start_directory_server: ThreadingHTTPServer wiring
- DirectoryClient: thin HTTP client matching the API shape
"""

import json
import sys
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple

from ..errors import DirectoryError
from .relay_store import DEFAULT_TIMEOUT_MS, RelayStore


class BadRequest(Exception):
    """Request body could not be understood."""


# ---------------------------------------------------------------------------
# HTTP handler
# ---------------------------------------------------------------------------

def _make_handler(store: RelayStore, timeout_ms: int = DEFAULT_TIMEOUT_MS,
                  log_requests: bool = True):
    """Create a handler class bound to the given store instance."""
    started = time.monotonic()

    class DirectoryHTTPHandler(BaseHTTPRequestHandler):

        def log_message(self, format, *args):
            if log_requests:
                stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
                print(f"{stamp} {self.address_string()} {format % args}", file=sys.stderr)

        def _json_response(self, data: Any, status: int = 200):
            body = json.dumps(data).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _error_response(self, message: str, status: int):
            self._json_response({"success": False, "error": message}, status=status)

        def _read_json(self) -> Dict[str, Any]:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                raise BadRequest("Invalid Content-Length") from None
            raw = self.rfile.read(length) if length > 0 else b""
            if not raw.strip():
                return {}
            try:
                data = json.loads(raw)
            except ValueError:
                raise BadRequest("Invalid JSON body") from None
            if not isinstance(data, dict):
                raise BadRequest("JSON body must be an object")
            return data

        def _path(self) -> str:
            return urllib.parse.urlparse(self.path).path.rstrip("/") or "/"

        def do_GET(self):
            path = self._path()

            if path == "/":
                self._json_response({"status": "ok", "message": "Matryoshka Directory Server is alive"})

            elif path == "/relays":
                relays = store.list_relays()
                self._json_response({"relays": relays, "count": len(relays)})

            elif path == "/health":
                summary = store.health_summary(timeout_ms=timeout_ms)
                self._json_response({
                    "status": "ok",
                    "relayCount": summary.total,
                    "activeRelays": summary.active,
                    "inactiveRelays": summary.inactive,
                    "uptime_seconds": int(time.monotonic() - started),
                })

            else:
                self._error_response("Not found", 404)

        def do_POST(self):
            path = self._path()
            if path not in ("/register", "/heartbeat"):
                self._error_response("Not found", 404)
                return

            try:
                body = self._read_json()
                if path == "/register":
                    store.register_relay(
                        body.get("id"), body.get("ip"), body.get("port"), body.get("public_key"),
                    )
                    print(f"[directory] Registered relay {body.get('id')}", file=sys.stderr)
                    self._json_response(
                        {"success": True, "message": "Relay registered successfully"}, status=201,
                    )
                else:
                    relay_id = body.get("id")
                    last_seen = store.heartbeat(relay_id)
                    self._json_response({
                        "success": True,
                        "message": "Heartbeat received",
                        "relay_id": relay_id,
                        "last_seen": last_seen,
                    })
            except BadRequest as e:
                self._error_response(str(e), 400)
            except DirectoryError as e:
                self._error_response(str(e), e.status)

        def do_DELETE(self):
            path = self._path()
            if not path.startswith("/relay/"):
                self._error_response("Not found", 404)
                return

            relay_id = urllib.parse.unquote(path[len("/relay/"):])
            try:
                store.remove_relay(relay_id)
            except DirectoryError as e:
                self._error_response(str(e), e.status)
                return
            print(f"[directory] Removed relay {relay_id}", file=sys.stderr)
            self._json_response({
                "success": True,
                "message": "Relay removed successfully",
                "relay_id": relay_id,
            })

    return DirectoryHTTPHandler


def build_directory_server(
    store: RelayStore,
    host: str = "0.0.0.0",
    port: int = 5600,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    log_requests: bool = True,
) -> ThreadingHTTPServer:
    handler = _make_handler(store, timeout_ms=timeout_ms, log_requests=log_requests)
    return ThreadingHTTPServer((host, port), handler)


def start_directory_server(
    store: RelayStore,
    host: str = "0.0.0.0",
    port: int = 5600,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    log_requests: bool = True,
) -> ThreadingHTTPServer:
    """Start a ThreadingHTTPServer in a daemon thread and return the server."""
    server = build_directory_server(
        store, host=host, port=port, timeout_ms=timeout_ms, log_requests=log_requests,
    )
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class DirectoryClient:
    """Thin HTTP client for the directory API.

    Mutating calls return ``(status, body)``; every method returns None
    (``[]`` for ``list_relays``) when the directory cannot be reached.
    """

    def __init__(self, host: str = "localhost", port: int = 5600, timeout: float = 10):
        self._base = f"http://{host}:{port}"
        self._timeout = timeout
        self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def _request(self, method: str, path: str,
                 payload: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        data = json.dumps(payload).encode() if payload is not None else None
        req = urllib.request.Request(f"{self._base}{path}", data=data, method=method)
        if data is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with self._opener.open(req, timeout=self._timeout) as resp:
                return resp.status, json.loads(resp.read().decode())
        except urllib.error.HTTPError as e:
            body = e.read().decode()
            try:
                return e.code, json.loads(body)
            except ValueError:
                return e.code, {"success": False, "error": body}

    def list_relays(self) -> List[Dict[str, Any]]:
        try:
            _, data = self._request("GET", "/relays")
            return data.get("relays", [])
        except (urllib.error.URLError, OSError):
            return []

    def register(self, relay_id: str, ip: str, port, public_key: str) -> Optional[Tuple[int, Dict[str, Any]]]:
        payload = {"id": relay_id, "ip": ip, "port": port, "public_key": public_key}
        try:
            return self._request("POST", "/register", payload)
        except (urllib.error.URLError, OSError):
            return None

    def heartbeat(self, relay_id: str) -> Optional[Tuple[int, Dict[str, Any]]]:
        try:
            return self._request("POST", "/heartbeat", {"id": relay_id})
        except (urllib.error.URLError, OSError):
            return None

    def remove(self, relay_id: str) -> Optional[Tuple[int, Dict[str, Any]]]:
        path = f"/relay/{urllib.parse.quote(relay_id, safe='')}"
        try:
            return self._request("DELETE", path)
        except (urllib.error.URLError, OSError):
            return None

    def health(self) -> Optional[Dict[str, Any]]:
        try:
            _, data = self._request("GET", "/health")
            return data
        except (urllib.error.URLError, OSError):
            return None
