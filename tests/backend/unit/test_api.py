import pytest

fastapi = pytest.importorskip("fastapi")
pytest.importorskip("httpx")
from fastapi.testclient import TestClient

from catchgame.backend.api import create_app
from catchgame.backend.config import BackendSettings
from catchgame.backend.oracle import InMemoryOracle
from catchgame.backend.store import InMemoryGameStore
from catchgame.backend.transfer import InMemoryAssetLedger


def _settings(dev_oracle: bool = True) -> BackendSettings:
    return BackendSettings(
        server_salt="test-salt",
        database_url=None,
        host="127.0.0.1",
        port=8000,
        log_level="INFO",
        dev_oracle=dev_oracle,
    )


def _client(dev_oracle: bool = True) -> tuple[TestClient, InMemoryGameStore]:
    store = InMemoryGameStore(oracle=InMemoryOracle(), transfer=InMemoryAssetLedger())
    return TestClient(create_app(store=store, settings=_settings(dev_oracle))), store


def _spawn_randomness_hex(x_raw: int, y_raw: int) -> str:
    data = bytearray(64)
    data[0:2] = x_raw.to_bytes(2, "little")
    data[2:4] = y_raw.to_bytes(2, "little")
    return bytes(data).hex()


def test_post_game_returns_authority_token() -> None:
    client, store = _client()

    response = client.post("/api/game", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert store.get_state().config.authority == data["identity"]
    assert store.get_state().config.ball_prices == [1_000_000, 10_000_000, 25_000_000, 49_900_000]


def test_second_initialize_is_rejected_with_code() -> None:
    client, _ = _client()
    client.post("/api/game", json={})

    response = client.post("/api/game", json={})

    assert response.status_code == 400
    assert response.json()["code"] == "already_initialized"


def test_spawn_fulfill_and_consume_round_trip() -> None:
    client, _ = _client()
    admin_token = client.post("/api/game", json={}).json()["token"]

    spawned = client.post("/api/spawns", json={"token": admin_token, "slot_index": 2})
    assert spawned.status_code == 200
    seed = spawned.json()["events"][0]["seed"]

    not_ready = client.post(f"/api/requests/{seed}/consume")
    assert not_ready.status_code == 409
    assert not_ready.json()["code"] == "randomness_not_ready"

    fulfilled = client.post(f"/api/oracle/{seed}/fulfill", json={"randomness_hex": _spawn_randomness_hex(7, 8)})
    assert fulfilled.json()["status"] == "ready"

    ready = client.get("/api/requests", params={"status": "ready"}).json()["requests"]
    assert [item["request"]["seed"] for item in ready] == [seed]

    consumed = client.post(f"/api/requests/{seed}/consume", json={"transfer_accounts": []})
    assert consumed.status_code == 200
    assert consumed.json()["events"] == [{"kind": "spawned", "creatureId": 1, "slotIndex": 2, "posX": 7, "posY": 8}]

    again = client.post(f"/api/requests/{seed}/consume")
    assert again.status_code == 409
    assert again.json()["code"] == "request_already_fulfilled"

    slots = client.get("/api/slots").json()["slots"]
    assert slots["activeCount"] == 1
    assert slots["slots"][2]["posX"] == 7


def test_non_authority_spawn_is_forbidden() -> None:
    client, _ = _client()
    client.post("/api/game", json={})
    player_token = client.post("/api/players").json()["token"]

    response = client.post("/api/spawns", json={"token": player_token, "slot_index": 0})

    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized"


def test_purchase_then_player_inventory() -> None:
    client, _ = _client()
    client.post("/api/game", json={})
    player = client.post("/api/players").json()

    missing = client.get(f"/api/players/{player['identity']}")
    purchased = client.post("/api/purchases", json={"token": player["token"], "ball_type": 1, "quantity": 2})
    inventory = client.get(f"/api/players/{player['identity']}").json()["inventory"]

    assert missing.status_code == 404
    assert purchased.status_code == 200
    assert inventory["balls"] == [0, 2, 0, 0]


def test_unknown_request_returns_404() -> None:
    client, _ = _client()
    client.post("/api/game", json={})

    response = client.get(f"/api/requests/{'ab' * 32}")

    assert response.status_code == 404
    assert response.json()["code"] == "request_not_found"


def test_admin_deposit_and_vault_listing() -> None:
    client, _ = _client()
    admin_token = client.post("/api/game", json={}).json()["token"]

    deposited = client.post("/api/admin/deposit", json={"token": admin_token, "asset_id": "asset-1"})
    vault = client.get("/api/vault").json()

    assert deposited.status_code == 200
    assert vault == {"count": 1, "maxSize": 20, "assets": ["asset-1"]}


def test_fulfill_route_absent_without_dev_oracle() -> None:
    client, _ = _client(dev_oracle=False)
    admin_token = client.post("/api/game", json={}).json()["token"]
    seed = client.post("/api/spawns", json={"token": admin_token, "slot_index": 0}).json()["events"][0]["seed"]

    response = client.post(f"/api/oracle/{seed}/fulfill")

    assert response.status_code in (404, 405)


def test_fulfill_for_request_unknown_to_oracle_returns_404() -> None:
    client, store = _client()
    admin_token = client.post("/api/game", json={}).json()["token"]
    seed = client.post("/api/spawns", json={"token": admin_token, "slot_index": 0}).json()["events"][0]["seed"]
    store.oracle = InMemoryOracle()

    response = client.post(f"/api/oracle/{seed}/fulfill")

    assert response.status_code == 404
    assert response.json()["code"] == "request_not_found"


def test_ws_sends_full_state_then_events() -> None:
    store = InMemoryGameStore(oracle=InMemoryOracle(), transfer=InMemoryAssetLedger())
    app = create_app(store=store, settings=_settings())

    with TestClient(app) as client:
        admin_token = client.post("/api/game", json={}).json()["token"]

        with client.websocket_connect("/ws/events") as websocket:
            first = websocket.receive_json()
            client.post(
                "/api/admin/force-spawn",
                json={"token": admin_token, "slot_index": 1, "pos_x": 3, "pos_y": 4},
            )
            pushed = websocket.receive_json()

    assert first["type"] == "state.full"
    assert first["state"]["config"]["isInitialized"] is True
    assert pushed["type"] == "events"
    assert pushed["events"][0]["kind"] == "spawned"
