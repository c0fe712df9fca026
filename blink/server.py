"""
blink/server.py - FastAPI Solana Actions server for the hand cricket tournament.

Endpoints:
    GET    /play                    Action metadata (register + play buttons)
    POST   /play/register           Pay entry, returns register_player tx
    POST   /play/game               Play one ball, returns play_turn tx
    POST   /play/leaderboard        Leaderboard message + empty tx
    POST   /play/end-tournament     Admin only, returns end_tournament tx
    GET    /leaderboard             Leaderboard as JSON
    GET    /players/{account}       One player's tracked state
    GET    /health                  Server health check

Every request runs through the TournamentTracker first. Transactions come
back unsigned; the wallet signs and submits them to the program, which keeps
the durable record.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from solders.hash import Hash
from solders.pubkey import Pubkey

from handcricket.chain import (
    ChainUnavailable,
    MalformedIdentifier,
    build_transaction,
    end_tournament_ix,
    get_latest_blockhash,
    parse_pubkey,
    play_turn_ix,
    player_addresses,
    program_id,
    register_player_ix,
    serialize_transaction,
)
from handcricket.config import HandCricketConfig, load_config
from handcricket.tracker import (
    InvalidChoice,
    LeaderboardEntry,
    TournamentTracker,
    TrackerError,
)

logger = logging.getLogger(__name__)

ACTION_VERSION = "2.1.3"

# Global state, set during lifespan and swapped out by tests
_tracker: TournamentTracker | None = None
_config: HandCricketConfig | None = None
_blockhash_source: Callable[[], Hash] | None = None


def get_tracker() -> TournamentTracker:
    assert _tracker is not None, "Tracker not initialized"
    return _tracker


def get_config() -> HandCricketConfig:
    assert _config is not None, "Config not initialized"
    return _config


def _recent_blockhash() -> Hash:
    assert _blockhash_source is not None, "Blockhash source not initialized"
    return _blockhash_source()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _tracker, _config, _blockhash_source
    config_path = getattr(app.state, "config_path", None) or os.environ.get("HANDCRICKET_CONFIG")
    _config = load_config(Path(config_path) if config_path else None)
    _tracker = TournamentTracker(_config.tournament)
    rpc_url = _config.chain.rpc_url
    _blockhash_source = lambda: get_latest_blockhash(rpc_url)

    _log_startup_config(_config)

    yield
    _tracker = None
    _config = None
    _blockhash_source = None


def _log_startup_config(config: HandCricketConfig):
    """Log tournament configuration on startup so operators can verify it."""
    t = config.tournament
    logger.info("=" * 50)
    logger.info("Hand cricket Blink startup config:")
    logger.info(f"  RPC: {config.chain.rpc_url} ({config.chain.blockchain_id})")
    logger.info(f"  Program: {config.chain.program_id}")
    try:
        parse_pubkey(t.admin, "admin")
        logger.info(f"  Admin: {t.admin}")
    except MalformedIdentifier:
        logger.error(f"  Admin {t.admin!r} is not a valid public key! end-tournament will never succeed.")
    logger.info(f"  Capacity: {t.capacity} | Entry fee: {t.entry_fee_sol} SOL")
    if t.allow_play_after_end:
        logger.info("  Turns after tournament end: ALLOWED")
    else:
        logger.info("  Turns after tournament end: rejected")
    logger.info("=" * 50)


app = FastAPI(title="Hand Cricket Blink", lifespan=lifespan)

# Blinks are rendered by wallets and third-party sites, so any origin may call us
from starlette.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_action_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Action-Version"] = ACTION_VERSION
    blockchain_id = _config.chain.blockchain_id if _config else HandCricketConfig().chain.blockchain_id
    response.headers["X-Blockchain-Ids"] = blockchain_id
    return response


# ======================================================================
# Error envelope
# ======================================================================


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status_code)


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    logger.info(f"Rejected {request.url.path}: {exc}")
    return _error(400, exc.message)


@app.exception_handler(MalformedIdentifier)
async def malformed_identifier_handler(request: Request, exc: MalformedIdentifier) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(ChainUnavailable)
async def chain_unavailable_handler(request: Request, exc: ChainUnavailable) -> JSONResponse:
    logger.warning(f"{request.url.path}: {exc}")
    return _error(503, "Solana network is unavailable, try again shortly")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


# ======================================================================
# Request/Response Models
# ======================================================================


class ActionPostRequest(BaseModel):
    account: str | None = None
    # Inputs arrive under "data" (current Actions clients) or "params" (older clients)
    data: dict[str, Any] | None = None
    params: dict[str, Any] | None = None


class EndTournamentRequest(BaseModel):
    admin: str | None = None


class HealthResponse(BaseModel):
    status: str
    active: bool
    capacity: int
    registered: int
    live_rounds: int
    completed_rounds: int
    total_pot: int
    allow_play_after_end: bool


class LeaderboardEntryResponse(BaseModel):
    rank: int
    player: str
    score: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    empty: bool


class PlayerResponse(BaseModel):
    player: str
    registered: bool
    round_score: int | None = None
    best_score: int
    games_played: int


# ======================================================================
# Action payloads
# ======================================================================


def _choice_parameter() -> dict[str, Any]:
    return {
        "type": "radio",
        "name": "options",
        "options": [
            {"label": f"Play {n}", "value": str(n), "selected": False}
            for n in range(1, 7)
        ],
    }


def _play_link(label: str) -> dict[str, Any]:
    return {
        "type": "transaction",
        "label": label,
        "parameters": [_choice_parameter()],
        "href": "/play/game",
    }


def _leaderboard_link() -> dict[str, Any]:
    return {
        "type": "transaction",
        "label": "View Tournament Leaderboard",
        "parameters": [],
        "href": "/play/leaderboard",
    }


def _inline_next(label: str, title: str, description: str, links: list[dict]) -> dict[str, Any]:
    return {
        "type": "inline",
        "action": {
            "type": "action",
            "label": label,
            "icon": get_config().blink.icon,
            "title": title,
            "description": description,
            "links": {"actions": links},
        },
    }


def _post_response(transaction: str, message: str, next_action: dict | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "transaction",
        "transaction": transaction,
        "message": message,
    }
    if next_action is not None:
        payload["links"] = {"next": next_action}
    return payload


def _short_key(key: str) -> str:
    return f"{key[:4]}...{key[-4:]}"


def _leaderboard_text(entries: list[LeaderboardEntry]) -> str:
    text = "🏆 Tournament Leaderboard 🏆\n\n"
    if not entries:
        return text + "No scores recorded yet!"
    for rank, entry in enumerate(entries, start=1):
        text += f"{rank}. {_short_key(entry.player)}: {entry.score} runs\n"
    return text


def _parse_choice(req: ActionPostRequest, player: str) -> int:
    """Pull the radio selection out of params/data. Raises InvalidChoice."""
    options = (req.params or {}).get("options") or (req.data or {}).get("options")
    if options is None:
        raise InvalidChoice(player, None)
    try:
        return int(str(options).strip())
    except ValueError:
        raise InvalidChoice(player, options)


def _program() -> Pubkey:
    return program_id(get_config().chain.program_id)


# ======================================================================
# Endpoints
# ======================================================================


@app.get("/play")
def action_metadata() -> dict[str, Any]:
    """Actions GET: what the Blink renders before the user clicks anything."""
    config = get_config()
    return {
        "type": "action",
        "icon": config.blink.icon,
        "label": config.blink.title,
        "title": config.blink.title,
        "description": (
            f"Join the Hand Cricket Tournament! Entry fee: {config.tournament.entry_fee_sol:g} SOL"
        ),
        "links": {
            "actions": [
                {
                    "type": "transaction",
                    "label": "Register for Tournament",
                    "parameters": [],
                    "href": "/play/register",
                },
                _play_link("Play Hand Cricket"),
            ],
        },
    }


@app.post("/play/end-tournament")
def end_tournament(req: EndTournamentRequest) -> dict[str, Any]:
    """Close the tournament and build the reward distribution transaction."""
    admin = parse_pubkey(req.admin, "admin")
    blockhash = _recent_blockhash()

    result = get_tracker().end_tournament(str(admin))

    program = _program()
    winners = [Pubkey.from_string(w.player) for w in result.winners]
    tx = build_transaction(
        admin,
        [end_tournament_ix(admin, winners, program)],
        blockhash,
        get_config().chain.compute_unit_price,
    )
    logger.info(f"End tournament tx built for {len(winners)} winners")
    return {
        "transaction": serialize_transaction(tx),
        "message": f"Tournament ended. Rewards distributed to top {len(winners)} players.",
        "winners": [
            {"rank": i, "player": w.player, "score": w.score}
            for i, w in enumerate(result.winners, start=1)
        ],
        "total_pot": result.total_pot,
        "payouts": [
            {"recipient": p.recipient, "lamports": p.lamports, "place": p.place}
            for p in result.payouts
        ],
    }


@app.post("/play/{action}")
def post_action(action: str, req: ActionPostRequest) -> dict[str, Any]:
    """Actions POST: dispatch on the last path segment."""
    handler = _ACTIONS.get(action)
    if handler is None:
        logger.info(f"Unknown action requested: {action!r}")
        return _error(400, "Invalid action requested")

    account = parse_pubkey(req.account, "account")
    blockhash = _recent_blockhash()
    return handler(account, req, blockhash)


def _register(account: Pubkey, req: ActionPostRequest, blockhash: Hash) -> dict[str, Any]:
    config = get_config()
    get_tracker().register(str(account))

    program = _program()
    tx = build_transaction(
        account,
        [register_player_ix(player_addresses(account, program), program)],
        blockhash,
        config.chain.compute_unit_price,
    )
    return _post_response(
        serialize_transaction(tx),
        (
            f"Registration successful! You've paid {config.tournament.entry_fee_sol:g} SOL "
            "to enter the tournament. You can now play the game."
        ),
        _inline_next(
            "Play Hand Cricket",
            "Hand Cricket Tournament 🏏",
            "You're registered! Play your turn now.",
            [_play_link("Play Turn")],
        ),
    )


def _game(account: Pubkey, req: ActionPostRequest, blockhash: Hash) -> dict[str, Any]:
    player = str(account)
    choice = _parse_choice(req, player)
    turn = get_tracker().play_turn(player, choice)

    program = _program()
    tx = build_transaction(
        account,
        [play_turn_ix(player_addresses(account, program), turn.player_choice, program)],
        blockhash,
        get_config().chain.compute_unit_price,
    )

    if turn.is_out:
        message = (
            f"OUT! Computer played {turn.computer_choice}. "
            f"Game Over! Final Score: {turn.score} runs 🏏"
        )
        next_action = _inline_next(
            "Game Over",
            "Hand Cricket - Game Over! 🏏",
            f"Game Over! Final Score: {turn.score} runs 🎯",
            [_play_link("Play Again"), _leaderboard_link()],
        )
    else:
        message = (
            f"You played {turn.player_choice}, Computer played {turn.computer_choice}. "
            f"Current Score: {turn.score} runs 🏏"
        )
        next_action = _inline_next(
            "Continue Playing",
            "Play Hand Cricket ☝️ ✌️ 🖐️",
            f"Current Score: {turn.score} runs. Play your next turn! 🏏",
            [_play_link("Play Turn")],
        )
    return _post_response(serialize_transaction(tx), message, next_action)


def _leaderboard(account: Pubkey, req: ActionPostRequest, blockhash: Hash) -> dict[str, Any]:
    entries = get_tracker().leaderboard()
    # Actions POST must return a transaction, even when there is nothing to do
    tx = build_transaction(account, [], blockhash)
    return _post_response(
        serialize_transaction(tx),
        _leaderboard_text(entries),
        _inline_next(
            "Back to Game",
            "Hand Cricket Tournament 🏏",
            "Play the Hand Cricket tournament game",
            [_play_link("Play Turn")],
        ),
    )


_ACTIONS: dict[str, Callable[[Pubkey, ActionPostRequest, Hash], dict[str, Any]]] = {
    "register": _register,
    "game": _game,
    "leaderboard": _leaderboard,
}


@app.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard() -> dict[str, Any]:
    """Leaderboard as plain JSON for dashboards."""
    entries = get_tracker().leaderboard()
    return {
        "entries": [
            {"rank": i, "player": e.player, "score": e.score}
            for i, e in enumerate(entries, start=1)
        ],
        "empty": not entries,
    }


@app.get("/players/{account}", response_model=PlayerResponse)
def get_player(account: str) -> dict[str, Any]:
    """Tracked state for one player."""
    player = str(parse_pubkey(account, "account"))
    snap = get_tracker().player(player)
    return {
        "player": snap.player,
        "registered": snap.registered,
        "round_score": snap.round_score,
        "best_score": snap.best_score,
        "games_played": snap.games_played,
    }


@app.get("/health", response_model=HealthResponse)
def health() -> dict[str, Any]:
    """Server health check."""
    return {"status": "ok", **get_tracker().status()}
