from urllib import error

import pytest

from catchgame.crank import cli


def test_parse_args_defaults() -> None:
    args = cli.parse_args([])

    assert args.server == "http://127.0.0.1:8000"
    assert args.once is False
    assert args.interval == 2.0
    assert args.log_level == "INFO"
    assert args.recipients is None


def test_consume_ready_posts_each_ready_seed(monkeypatch) -> None:
    calls: list[tuple[str, str, dict | None]] = []

    def fake_call(method: str, url: str, payload: dict | None = None) -> dict:
        calls.append((method, url, payload))
        if method == "GET":
            return {"requests": [{"request": {"seed": "aa"}, "status": "ready"}, {"request": {"seed": "bb"}, "status": "ready"}]}
        return {"events": [{"kind": "spawned"}], "state": {}}

    monkeypatch.setattr(cli, "_call", fake_call)

    consumed = cli.consume_ready("http://server")

    assert consumed == 2
    assert calls[0] == ("GET", "http://server/api/requests?status=ready", None)
    assert calls[1] == ("POST", "http://server/api/requests/aa/consume", {"transfer_accounts": []})
    assert calls[2][1] == "http://server/api/requests/bb/consume"


def test_consume_ready_offers_vault_assets_to_mapped_thrower(monkeypatch) -> None:
    posted: list[dict | None] = []

    def fake_call(method: str, url: str, payload: dict | None = None) -> dict:
        if url.endswith("/api/requests?status=ready"):
            return {
                "requests": [
                    {"request": {"seed": "aa", "kind": "throw", "requester": "player-a"}, "status": "ready"},
                    {"request": {"seed": "bb", "kind": "throw", "requester": "player-b"}, "status": "ready"},
                    {"request": {"seed": "cc", "kind": "spawn", "requester": "player-a"}, "status": "ready"},
                ]
            }
        if url.endswith("/api/vault"):
            return {"count": 2, "maxSize": 20, "assets": ["asset-1", "asset-2"]}
        posted.append(payload)
        return {"events": [], "state": {}}

    monkeypatch.setattr(cli, "_call", fake_call)

    assert cli.consume_ready("http://server", {"player-a": "wallet:a"}) == 3
    assert posted[0] == {
        "transfer_accounts": [
            {"asset_id": "asset-1", "source_account": "vault:asset-1", "recipient_account": "wallet:a"},
            {"asset_id": "asset-2", "source_account": "vault:asset-2", "recipient_account": "wallet:a"},
        ]
    }
    assert posted[1] == {"transfer_accounts": []}
    assert posted[2] == {"transfer_accounts": []}


def test_load_recipients_reads_identity_mapping(tmp_path) -> None:
    path = tmp_path / "recipients.json"
    path.write_text('{"player-a": "wallet:a"}', encoding="utf-8")

    assert cli.load_recipients(str(path)) == {"player-a": "wallet:a"}
    assert cli.load_recipients(None) == {}

    path.write_text('["wallet:a"]', encoding="utf-8")
    with pytest.raises(ValueError):
        cli.load_recipients(str(path))


def test_consume_ready_skips_requests_consumed_elsewhere(monkeypatch) -> None:
    def fake_call(method: str, url: str, payload: dict | None = None) -> dict:
        if method == "GET":
            return {"requests": [{"request": {"seed": "aa"}, "status": "ready"}]}
        raise error.HTTPError(url, 409, "Conflict", hdrs=None, fp=None)

    monkeypatch.setattr(cli, "_call", fake_call)

    assert cli.consume_ready("http://server") == 0


def test_consume_ready_raises_other_http_errors(monkeypatch) -> None:
    def fake_call(method: str, url: str, payload: dict | None = None) -> dict:
        if method == "GET":
            return {"requests": [{"request": {"seed": "aa"}, "status": "ready"}]}
        raise error.HTTPError(url, 500, "Server Error", hdrs=None, fp=None)

    monkeypatch.setattr(cli, "_call", fake_call)

    with pytest.raises(error.HTTPError):
        cli.consume_ready("http://server")


def test_main_returns_error_when_server_unreachable(monkeypatch) -> None:
    monkeypatch.setattr(cli, "wait_for_server", lambda server_url: False)

    assert cli.main(["--once"]) == 1


def test_main_once_runs_single_pass(monkeypatch) -> None:
    passes: list[str] = []
    monkeypatch.setattr(cli, "wait_for_server", lambda server_url: True)
    monkeypatch.setattr(cli, "consume_ready", lambda server_url, recipients: passes.append(server_url) or 0)

    assert cli.main(["--once", "--server", "http://server"]) == 0
    assert passes == ["http://server"]


def test_main_fails_when_started_server_never_answers(monkeypatch) -> None:
    monkeypatch.setattr(cli, "maybe_start_server", lambda server_url: None)

    assert cli.main(["--once", "--start-server"]) == 1
