#!/usr/bin/env python3
"""Example: Peer service

Starts the local peer HTTP service on an ephemeral port, exchanges keys
with it over POST /exchange, and round-trips a sealed message.

Usage:
    python examples/02_peer_service.py

Requirements:
    pip install device-keyring
"""
from __future__ import annotations

import json
import threading
import urllib.request

from device_keyring import InMemoryBlobStore, KeySessionManager
from device_keyring.server import create_server


def _post(url: str, payload: dict[str, object]) -> dict[str, object]:
    request = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request, timeout=5) as response:
        return json.loads(response.read())


def main() -> None:
    server = create_server(KeySessionManager(InMemoryBlobStore()), port=0)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    host, port = server.server_address[:2]
    base_url = f"http://{host}:{port}"
    print(f"Peer service listening on {base_url}")

    device = KeySessionManager(InMemoryBlobStore())
    reply = _post(f"{base_url}/exchange", {"publicKey": device.get_agreement_public_key_b64()})
    device.establish_session(str(reply["publicKey"]))
    print("Session established")

    opened = _post(f"{base_url}/decrypt", device.encrypt("ping").to_wire())
    print(f"Service decrypted: {opened['plaintext']}")

    sealed = _post(f"{base_url}/encrypt", {"data": "pong"})
    print(f"Device decrypted: {device.decrypt_wire(sealed).decode('utf-8')}")

    server.shutdown()
    server.server_close()


if __name__ == "__main__":
    main()
