import os

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .assistant import CheckoutAssistant
from .checkout import FinishRoute, get_best_finish, minimal_route, suggest_checkout
from .config import load_config
from .game import MatchEngine
from .models import (
    AssistantOut,
    AssistantStart,
    AssistantThrow,
    CheckoutSuggestion,
    FinishRouteOut,
    MatchOut,
    NewGameRequest,
    PlayerNameUpdate,
    PlayerOut,
    RestartRequest,
    ThrowCreate,
    ThrowOut,
    TurnOut,
)
from .targets import FinishRule, parse_target

app = FastAPI(title="Dart Scorer", version="0.1.0")
engine = MatchEngine(load_config())
assistant = CheckoutAssistant()
api_key = os.getenv("DARTSCORER_API_KEY")


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if not api_key or request.method == "GET":
        return await call_next(request)

    supplied = request.headers.get("x-api-key") or request.query_params.get("api_key")
    if supplied != api_key:
        return JSONResponse(status_code=401, content={"detail": "invalid or missing api key"})

    return await call_next(request)


def _match_out() -> MatchOut:
    winner = engine.winner
    set_winner = engine.set_winner
    turn = engine.current_turn
    return MatchOut(
        players=[
            PlayerOut(
                id=p.id,
                name=p.name,
                score=p.score,
                legs_won=engine.legs_won(p),
                last_turn_throws=engine.last_turn_throws(p),
                leg_average=engine.leg_average(p),
            )
            for p in engine.players
        ],
        active_player_index=engine.active_player_index,
        current_turn=TurnOut(
            starting_score=turn.starting_score,
            darts=[d.notation for d in turn.darts],
            darts_remaining=turn.darts_remaining,
        ),
        finish_rule=engine.finish_rule,
        in_rule=engine.in_rule,
        starting_score=engine.starting_score,
        set_mode_enabled=engine.set_mode_enabled,
        legs_to_win=engine.legs_to_win,
        winner=winner.name if winner else None,
        set_winner=set_winner.name if set_winner else None,
        status_message=engine.status_message,
        can_undo=engine.can_undo,
        is_leg_in_progress=engine.is_leg_in_progress,
        best_possible_finish=engine.best_possible_finish_line,
        has_best_possible_finish=engine.has_best_possible_finish,
    )


def _assistant_out() -> AssistantOut:
    route = assistant.suggestion
    return AssistantOut(
        current_score=assistant.current_score,
        darts_remaining=assistant.darts_remaining,
        did_bust_last_throw=assistant.did_bust_last_throw,
        can_undo=assistant.can_undo,
        suggestion=route.tokens if route else None,
        label=route.label if route else None,
        rationale=route.rationale if route else None,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/match", response_model=MatchOut)
def match_state() -> MatchOut:
    return _match_out()


@app.post("/match/new", response_model=MatchOut)
def new_game(payload: NewGameRequest) -> MatchOut:
    engine.new_game(
        player_names=payload.player_names,
        finish_rule=payload.finish_rule,
        in_rule=payload.in_rule,
        starting_score=payload.starting_score,
        set_mode_enabled=payload.set_mode_enabled,
        legs_to_win=payload.legs_to_win,
    )
    return _match_out()


@app.post("/match/throw", response_model=ThrowOut)
def submit_throw(payload: ThrowCreate) -> ThrowOut:
    outcome = engine.submit_throw(payload.segment, payload.multiplier)
    return ThrowOut(outcome=outcome.value, match=_match_out())


@app.post("/match/undo", response_model=MatchOut)
def undo_throw() -> MatchOut:
    engine.undo_last_throw()
    return _match_out()


@app.post("/match/restart", response_model=MatchOut)
def restart_leg(payload: RestartRequest) -> MatchOut:
    if payload.order == "random":
        engine.restart_leg_random_sequence()
    elif payload.order == "inverted":
        engine.restart_leg_inverted_sequence()
    else:
        engine.restart_leg()
    return _match_out()


@app.put("/match/players/{index}", response_model=MatchOut)
def update_player_name(index: int, payload: PlayerNameUpdate) -> MatchOut:
    if not 0 <= index < len(engine.players):
        raise HTTPException(status_code=404, detail="player not found")
    engine.update_player_name(index, payload.name)
    return _match_out()


@app.get("/checkout/{score}", response_model=CheckoutSuggestion)
def checkout(score: int) -> CheckoutSuggestion:
    combos = suggest_checkout(score)
    if not combos:
        raise HTTPException(status_code=404, detail="No checkout combinations for score")
    return CheckoutSuggestion(score=score, combinations=combos)


@app.get("/finish/{score}", response_model=FinishRouteOut)
def best_finish(
    score: int,
    darts: int = Query(default=3, ge=1, le=3),
    strategy: str = Query(default="preferred", pattern="^(preferred|minimal)$"),
    rule: FinishRule = FinishRule.DOUBLE_OUT,
) -> FinishRouteOut:
    if strategy == "minimal":
        found = minimal_route(score, darts, rule)
        if found is None:
            route = FinishRoute((), "Invalid", "No finish available.")
        else:
            route = FinishRoute(found, "Minimal", "Fewest darts in fixed treble-first order.")
    else:
        route = get_best_finish(score, darts, rule)
    return FinishRouteOut(
        score=score,
        darts_remaining=darts,
        strategy=strategy,
        finish_rule=rule,
        darts=route.tokens,
        label=route.label,
        rationale=route.rationale,
        is_checkout=route.is_checkout(score, rule),
    )


@app.get("/assistant", response_model=AssistantOut)
def assistant_state() -> AssistantOut:
    return _assistant_out()


@app.post("/assistant/start", response_model=AssistantOut)
def assistant_start(payload: AssistantStart) -> AssistantOut:
    assistant.start_leg(payload.starting_at)
    return _assistant_out()


@app.post("/assistant/throw", response_model=AssistantOut)
def assistant_throw(payload: AssistantThrow) -> AssistantOut:
    if payload.target is not None:
        target = parse_target(payload.target)
        if target is None:
            raise HTTPException(status_code=400, detail=f"invalid target {payload.target!r}")
        assistant.record_target(target)
    elif payload.points is not None:
        assistant.record_points(payload.points)
    else:
        raise HTTPException(status_code=400, detail="target or points is required")
    return _assistant_out()


@app.post("/assistant/undo", response_model=AssistantOut)
def assistant_undo() -> AssistantOut:
    assistant.undo_last_throw()
    return _assistant_out()
