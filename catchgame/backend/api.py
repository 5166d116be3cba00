"""FastAPI endpoints for the catch game and its websocket event feed."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import BackendSettings, load_settings
from .constants import DEFAULT_BALL_PRICES, DEFAULT_CATCH_RATES
from .engine import OperationResult
from .errors import GameError, MathOverflow, RandomnessNotReady, RequestAlreadyFulfilled, RequestNotFound, Unauthorized
from .models import RequestRecord, RequestStatus
from .oracle import InMemoryOracle
from .security import identity_for, issue_identity
from .store import GameStore, create_store
from .transfer import TransferAccounts

logger = logging.getLogger(__name__)


class InitializeRequest(BaseModel):
    ball_prices: list[int] = Field(default_factory=lambda: list(DEFAULT_BALL_PRICES))
    catch_rates: list[int] = Field(default_factory=lambda: list(DEFAULT_CATCH_RATES))
    treasury: str = ""


class IdentityResponse(BaseModel):
    token: str
    identity: str


class StateResponse(BaseModel):
    state: dict[str, Any]


class OperationResponse(BaseModel):
    events: list[dict[str, Any]]
    state: dict[str, Any]


class RequestResponse(BaseModel):
    request: dict[str, Any]
    status: str


class RequestListResponse(BaseModel):
    requests: list[RequestResponse]


class TransferAccountsModel(BaseModel):
    asset_id: str = Field(min_length=1)
    source_account: str
    recipient_account: str

    def to_accounts(self) -> TransferAccounts:
        return TransferAccounts(
            asset_id=self.asset_id,
            source_account=self.source_account,
            recipient_account=self.recipient_account,
        )


class TokenEnvelope(BaseModel):
    token: str = Field(min_length=1)


class PurchaseEnvelope(TokenEnvelope):
    ball_type: int
    quantity: int


class SlotEnvelope(TokenEnvelope):
    slot_index: int


class ThrowEnvelope(SlotEnvelope):
    ball_type: int


class PositionEnvelope(SlotEnvelope):
    pos_x: int
    pos_y: int


class ConsumeEnvelope(BaseModel):
    transfer_accounts: list[TransferAccountsModel] = Field(default_factory=list)


class DepositEnvelope(TokenEnvelope):
    asset_id: str = Field(min_length=1)
    source_account: str | None = None


class WithdrawEnvelope(TokenEnvelope):
    vault_index: int
    recipient_account: str | None = None


class PriceEnvelope(TokenEnvelope):
    ball_type: int
    price: int


class RateEnvelope(TokenEnvelope):
    ball_type: int
    rate: int


class MaxActiveEnvelope(TokenEnvelope):
    max_active: int


class RevenueEnvelope(TokenEnvelope):
    amount: int


class SettleEnvelope(TokenEnvelope):
    asset_id: str = Field(min_length=1)
    transfer_accounts: list[TransferAccountsModel] = Field(default_factory=list)


class FulfillEnvelope(BaseModel):
    randomness_hex: str | None = None


class GameEventHub:
    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)

    async def send_state(self, websocket: WebSocket, state: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", "state": state})

    async def broadcast_events(self, events: list[dict[str, Any]]) -> None:
        if not events:
            return
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections):
            try:
                await websocket.send_json({"type": "events", "events": events})
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(websocket)


def _status_code_for(exc: GameError) -> int:
    if isinstance(exc, Unauthorized):
        return 403
    if isinstance(exc, RequestNotFound):
        return 404
    if isinstance(exc, (RandomnessNotReady, RequestAlreadyFulfilled)):
        return 409
    if isinstance(exc, MathOverflow):
        return 422
    return 400


def _request_payload(request: RequestRecord, status: RequestStatus) -> RequestResponse:
    return RequestResponse(request=request.to_dict(), status=status.value)


def create_app(store: GameStore | None = None, settings: BackendSettings | None = None) -> FastAPI:
    settings = settings if settings is not None else load_settings()
    logging.getLogger("catchgame").setLevel(settings.log_level)

    app = FastAPI(title="Catch Game API", version="0.1.0")
    game_store = store if store is not None else create_store(database_url=settings.database_url)
    event_hub = GameEventHub()
    app.state.event_hub = event_hub

    def get_store() -> GameStore:
        return game_store

    def caller_identity(token: str) -> str:
        return identity_for(token, settings.server_salt)

    async def respond(result: OperationResult) -> OperationResponse:
        await event_hub.broadcast_events(result.events)
        return OperationResponse(events=result.events, state=result.state.to_dict())

    @app.exception_handler(GameError)
    async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
        status_code = _status_code_for(exc)
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
        return JSONResponse(status_code=status_code, content={"detail": exc.detail, "code": exc.code})

    @app.post("/api/game", response_model=IdentityResponse)
    async def initialize_game(
        payload: InitializeRequest,
        local_store: GameStore = Depends(get_store),
    ) -> IdentityResponse:
        created = issue_identity(settings.server_salt)
        result = local_store.initialize(
            authority=created.identity,
            ball_prices=payload.ball_prices,
            catch_rates=payload.catch_rates,
            treasury=payload.treasury,
        )
        await event_hub.broadcast_events(result.events)
        return IdentityResponse(token=created.token, identity=created.identity)

    @app.get("/api/game", response_model=StateResponse)
    def get_game(local_store: GameStore = Depends(get_store)) -> StateResponse:
        return StateResponse(state=local_store.get_state().to_dict())

    @app.post("/api/players", response_model=IdentityResponse)
    def create_player() -> IdentityResponse:
        created = issue_identity(settings.server_salt)
        return IdentityResponse(token=created.token, identity=created.identity)

    @app.get("/api/players/{identity}")
    def get_player(identity: str, local_store: GameStore = Depends(get_store)) -> dict[str, Any]:
        inventory = local_store.get_state().inventory_for(identity)
        if inventory is None:
            raise HTTPException(status_code=404, detail="Player has no inventory")
        return {"inventory": inventory.to_dict()}

    @app.get("/api/slots")
    def get_slots(local_store: GameStore = Depends(get_store)) -> dict[str, Any]:
        return {"slots": local_store.get_state().slots.to_dict()}

    @app.get("/api/vault")
    def get_vault(local_store: GameStore = Depends(get_store)) -> dict[str, Any]:
        vault = local_store.get_state().vault
        return {"count": vault.count, "maxSize": vault.max_size, "assets": vault.assets()}

    @app.post("/api/purchases", response_model=OperationResponse)
    async def post_purchase(payload: PurchaseEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.purchase_balls(caller_identity(payload.token), payload.ball_type, payload.quantity)
        return await respond(result)

    @app.post("/api/spawns", response_model=OperationResponse)
    async def post_spawn(payload: SlotEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.request_spawn(caller_identity(payload.token), payload.slot_index)
        return await respond(result)

    @app.post("/api/throws", response_model=OperationResponse)
    async def post_throw(payload: ThrowEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.request_throw(caller_identity(payload.token), payload.slot_index, payload.ball_type)
        return await respond(result)

    @app.get("/api/requests", response_model=RequestListResponse)
    def list_requests(
        status: RequestStatus | None = Query(default=None),
        local_store: GameStore = Depends(get_store),
    ) -> RequestListResponse:
        listed = local_store.list_requests(status=status)
        return RequestListResponse(requests=[_request_payload(request, current) for request, current in listed])

    @app.get("/api/requests/{seed}", response_model=RequestResponse)
    def get_request(seed: str, local_store: GameStore = Depends(get_store)) -> RequestResponse:
        status = local_store.request_status(seed)
        return _request_payload(local_store.get_state().requests[seed], status)

    @app.post("/api/requests/{seed}/consume", response_model=OperationResponse)
    async def post_consume(
        seed: str,
        payload: ConsumeEnvelope | None = None,
        local_store: GameStore = Depends(get_store),
    ) -> OperationResponse:
        accounts = [item.to_accounts() for item in payload.transfer_accounts] if payload is not None else []
        result = local_store.consume(seed, accounts)
        return await respond(result)

    @app.post("/api/admin/force-spawn", response_model=OperationResponse)
    async def post_force_spawn(payload: PositionEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.force_spawn(caller_identity(payload.token), payload.slot_index, payload.pos_x, payload.pos_y)
        return await respond(result)

    @app.post("/api/admin/reposition", response_model=OperationResponse)
    async def post_reposition(payload: PositionEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.reposition(caller_identity(payload.token), payload.slot_index, payload.pos_x, payload.pos_y)
        return await respond(result)

    @app.post("/api/admin/despawn", response_model=OperationResponse)
    async def post_despawn(payload: SlotEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.despawn(caller_identity(payload.token), payload.slot_index)
        return await respond(result)

    @app.post("/api/admin/deposit", response_model=OperationResponse)
    async def post_deposit(payload: DepositEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.deposit_asset(caller_identity(payload.token), payload.asset_id, payload.source_account)
        return await respond(result)

    @app.post("/api/admin/withdraw", response_model=OperationResponse)
    async def post_withdraw(payload: WithdrawEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.withdraw_asset(
            caller_identity(payload.token), payload.vault_index, payload.recipient_account
        )
        return await respond(result)

    @app.post("/api/admin/price", response_model=OperationResponse)
    async def post_price(payload: PriceEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.set_ball_price(caller_identity(payload.token), payload.ball_type, payload.price)
        return await respond(result)

    @app.post("/api/admin/catch-rate", response_model=OperationResponse)
    async def post_catch_rate(payload: RateEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.set_catch_rate(caller_identity(payload.token), payload.ball_type, payload.rate)
        return await respond(result)

    @app.post("/api/admin/max-active", response_model=OperationResponse)
    async def post_max_active(payload: MaxActiveEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        result = local_store.set_max_active(caller_identity(payload.token), payload.max_active)
        return await respond(result)

    @app.post("/api/admin/withdraw-revenue", response_model=OperationResponse)
    async def post_withdraw_revenue(
        payload: RevenueEnvelope,
        local_store: GameStore = Depends(get_store),
    ) -> OperationResponse:
        result = local_store.withdraw_revenue(caller_identity(payload.token), payload.amount)
        return await respond(result)

    @app.post("/api/admin/settle", response_model=OperationResponse)
    async def post_settle(payload: SettleEnvelope, local_store: GameStore = Depends(get_store)) -> OperationResponse:
        accounts = [item.to_accounts() for item in payload.transfer_accounts]
        result = local_store.settle_award(caller_identity(payload.token), payload.asset_id, accounts)
        return await respond(result)

    if settings.dev_oracle:

        @app.post("/api/oracle/{seed}/fulfill", response_model=RequestResponse)
        def post_fulfill(
            seed: str,
            payload: FulfillEnvelope | None = None,
            local_store: GameStore = Depends(get_store),
        ) -> RequestResponse:
            oracle = local_store.oracle
            if not isinstance(oracle, InMemoryOracle):
                raise HTTPException(status_code=404, detail="Development oracle is not in use")
            request = local_store.get_state().requests.get(seed)
            if request is None:
                raise RequestNotFound(f"No request with seed {seed}")
            try:
                randomness = bytes.fromhex(payload.randomness_hex) if payload and payload.randomness_hex else None
                oracle.fulfill(request.seed, randomness)
            except KeyError as exc:
                raise RequestNotFound(f"Oracle holds no request for seed {seed}") from exc
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            return _request_payload(request, local_store.request_status(seed))

    @app.websocket("/ws/events")
    async def events_ws(
        websocket: WebSocket,
        local_store: GameStore = Depends(get_store),
    ) -> None:
        await event_hub.connect(websocket)
        await event_hub.send_state(websocket, local_store.get_state().to_dict())

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            event_hub.disconnect(websocket)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("catchgame.backend.api:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
