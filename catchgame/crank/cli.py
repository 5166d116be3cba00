"""Command-line crank that consumes every ready randomness request."""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
import time
from typing import Any

from urllib import error, request

from catchgame.backend.vault import vault_account_for

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Catch game randomness crank")
    parser.add_argument("--server", default="http://127.0.0.1:8000")
    parser.add_argument("--once", action="store_true", help="consume ready requests once and exit")
    parser.add_argument("--interval", type=float, default=2.0)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--start-server", action="store_true", help="launch the API with uvicorn first")
    parser.add_argument(
        "--recipients",
        help=(
            "JSON file mapping player identity to the account awarded assets go to; "
            "without an entry an award stays unsettled until an admin settles it"
        ),
    )
    return parser.parse_args(argv)


def wait_for_server(server_url: str, timeout_s: float = 8.0) -> bool:
    start = time.time()
    while time.time() - start < timeout_s:
        try:
            with request.urlopen(f"{server_url}/docs", timeout=0.5) as response:
                if int(response.status) < 500:
                    return True
        except (error.URLError, TimeoutError):
            pass
        time.sleep(0.2)
    return False


def maybe_start_server(server_url: str) -> subprocess.Popen[str] | None:
    env = os.environ.copy()
    host_port = server_url.removeprefix("http://")
    host, port = host_port.split(":", maxsplit=1)
    command = [
        sys.executable,
        "-m",
        "uvicorn",
        "catchgame.backend.api:app",
        "--host",
        host,
        "--port",
        port,
    ]
    process = subprocess.Popen(command, env=env)
    if wait_for_server(server_url):
        return process
    process.terminate()
    return None


def _call(method: str, url: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    http_request = request.Request(url, data=data, method=method, headers={"Content-Type": "application/json"})
    with request.urlopen(http_request, timeout=5.0) as response:
        return json.loads(response.read().decode("utf-8"))


def load_recipients(path: str | None) -> dict[str, str]:
    if not path:
        return {}
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must hold a JSON object of identity to account")
    return {str(identity): str(account) for identity, account in payload.items()}


def transfer_accounts_for(
    server_url: str, request_payload: dict[str, Any], recipients: dict[str, str]
) -> list[dict[str, str]]:
    """Offer every vault asset to the thrower's account; the server keeps the one it awards."""
    recipient = recipients.get(request_payload.get("requester", ""))
    if request_payload.get("kind") != "throw" or not recipient:
        return []
    vault = _call("GET", f"{server_url}/api/vault")
    return [
        {"asset_id": asset_id, "source_account": vault_account_for(asset_id), "recipient_account": recipient}
        for asset_id in vault["assets"]
    ]


def consume_ready(server_url: str, recipients: dict[str, str] | None = None) -> int:
    """Consume each ready request; return how many this call resolved."""
    consumed = 0
    listed = _call("GET", f"{server_url}/api/requests?status=ready")
    for item in listed["requests"]:
        seed = item["request"]["seed"]
        accounts = transfer_accounts_for(server_url, item["request"], recipients or {})
        try:
            result = _call("POST", f"{server_url}/api/requests/{seed}/consume", {"transfer_accounts": accounts})
        except error.HTTPError as exc:
            if exc.code == 409:
                logger.info("Request %s already consumed or not ready, skipping", seed)
                continue
            raise
        kinds = ", ".join(event["kind"] for event in result["events"])
        logger.info("Consumed %s: %s", seed, kinds)
        consumed += 1
    return consumed


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    recipients = load_recipients(args.recipients)

    server_process = maybe_start_server(args.server) if args.start_server else None
    if args.start_server and server_process is None:
        logger.error("Could not start server at %s", args.server)
        return 1
    if not args.start_server and not wait_for_server(args.server):
        logger.error("Server %s not reachable", args.server)
        return 1

    try:
        while True:
            try:
                consume_ready(args.server, recipients)
            except error.URLError as exc:
                logger.error("Crank pass failed: %s", exc)
                if args.once:
                    return 1
            if args.once:
                return 0
            time.sleep(args.interval)
    finally:
        if server_process is not None:
            server_process.terminate()


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
