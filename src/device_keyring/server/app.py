"""Local peer HTTP service for device-keyring using stdlib http.server.

Exposes one :class:`~device_keyring.manager.KeySessionManager` over the JSON
wire vocabulary (base64 public keys, DER signatures, sealed messages), so a
device can exchange keys, signatures and ciphertexts with it.

Routes:
    GET    /health             — health check
    GET    /public-key         — agreement and signing public keys
    POST   /exchange           — establish the session with the caller's key
    POST   /sign               — sign data with the signing key
    POST   /verify             — verify a signature
    POST   /encrypt            — seal data with the session key
    POST   /decrypt            — open a sealed message with the session key

Usage:
    python -m device_keyring.server.app --port 5000 --store-dir ./peer-keys
"""
from __future__ import annotations

import argparse
import json
import logging
import urllib.parse
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

from device_keyring.config import ManagerConfig
from device_keyring.errors import KeyGenerationFailed, KeyRetrievalFailed, KeyStorageFailed
from device_keyring.manager import KeySessionManager
from device_keyring.server import routes
from device_keyring.store.filesystem import FilesystemBlobStore
from device_keyring.store.memory import InMemoryBlobStore

logger = logging.getLogger(__name__)

_GET_ROUTES: dict[str, Callable[[KeySessionManager], routes.Response]] = {
    "/health": routes.handle_health,
    "/public-key": routes.handle_public_key,
}

_POST_ROUTES: dict[str, Callable[[KeySessionManager, dict[str, object]], routes.Response]] = {
    "/exchange": routes.handle_exchange,
    "/sign": routes.handle_sign,
    "/verify": routes.handle_verify,
    "/encrypt": routes.handle_encrypt,
    "/decrypt": routes.handle_decrypt,
}


class PeerHTTPServer(HTTPServer):
    """HTTPServer carrying the manager that serves every request."""

    def __init__(
        self,
        server_address: tuple[str, int],
        manager: KeySessionManager,
    ) -> None:
        super().__init__(server_address, PeerRequestHandler)
        self.manager = manager


class PeerRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the peer service.

    All request bodies and responses use JSON.
    """

    server: PeerHTTPServer

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")
        handler = _GET_ROUTES.get(path)
        if handler is None:
            self._send_json(404, {"error": "Not found", "detail": f"No route for GET {path}"})
            return
        self._dispatch(lambda: handler(self.server.manager))

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")
        handler = _POST_ROUTES.get(path)
        if handler is None:
            self._send_json(404, {"error": "Not found", "detail": f"No route for POST {path}"})
            return

        body = self._read_json_body()
        if body is None:
            return
        self._dispatch(lambda: handler(self.server.manager, body))

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _dispatch(self, call: Callable[[], routes.Response]) -> None:
        try:
            status, data = call()
        except (KeyGenerationFailed, KeyRetrievalFailed, KeyStorageFailed) as exc:
            status, data = routes.handle_store_error(exc)
        self._send_json(status, data)

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if Content-Length is
        not a non-negative integer, parsing fails, or the body is not a JSON
        object.
        """
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = -1
        if content_length < 0:
            self._send_json(
                400,
                {"error": "Invalid Content-Length", "detail": "Must be a non-negative integer."},
            )
            return None
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(400, {"error": "Invalid JSON", "detail": str(exc)})
            return None
        if not isinstance(parsed, dict):
            self._send_json(400, {"error": "Invalid JSON", "detail": "Body must be an object."})
            return None
        return parsed


def create_server(
    manager: KeySessionManager,
    host: str = "127.0.0.1",
    port: int = 5000,
) -> PeerHTTPServer:
    """Create (but do not start) the peer HTTP server.

    Parameters
    ----------
    manager:
        The key and session manager answering requests.
    host:
        Bind address (default loopback only).
    port:
        TCP port to listen on (default 5000).
    """
    server = PeerHTTPServer((host, port), manager)
    logger.info("device-keyring peer service created at http://%s:%d", host, port)
    return server


def run_server(
    manager: KeySessionManager,
    host: str = "127.0.0.1",
    port: int = 5000,
) -> None:
    """Create and run the peer HTTP server (blocking)."""
    server = create_server(manager, host=host, port=port)
    logger.info("Serving device-keyring on http://%s:%d, press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down device-keyring peer service.")
    finally:
        server.server_close()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="device-keyring peer HTTP service",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5000, help="TCP port")
    parser.add_argument(
        "--store-dir",
        default=None,
        help="Directory for persisted keys (in-memory when omitted)",
    )
    parser.add_argument("--app-id", default=None, help="Tag namespace for stored records")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    store = FilesystemBlobStore(Path(args.store_dir)) if args.store_dir else InMemoryBlobStore()
    run_server(
        KeySessionManager(store, ManagerConfig.from_env(app_identifier=args.app_id)),
        host=args.host,
        port=args.port,
    )
