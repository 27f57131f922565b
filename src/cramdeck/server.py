import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from cramdeck.application.card_list import CardFilter, card_status, list_cards, mastered_percent
from cramdeck.application.session import SessionView, StudyController
from cramdeck.application.stats import StatsService
from cramdeck.consts import VERSION
from cramdeck.domain.cosmetics import COSMETICS
from cramdeck.domain.models import Feedback, OptionSlot, Phase, utc_now

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cramdeck.server")

_controller: StudyController | None = None
# One answer at a time: the feedback window must finish before the next input
_answer_lock = asyncio.Lock()


def get_controller() -> StudyController:
    """
    Lazily build the shared controller from the resolved config.
    """
    global _controller
    if _controller is None:
        from cramdeck.application.config import resolve_config
        from cramdeck.application.factory import build_controller

        _controller = build_controller(resolve_config())
    return _controller


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"cramdeck server v{VERSION} starting up...")
    yield
    # Shutdown
    if _controller is not None:
        _controller.close()
    logger.info("cramdeck server shutting down...")


app = FastAPI(
    title="cramdeck server",
    description="HTTP front end for cramdeck study sessions.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class CardOut(BaseModel):
    id: str
    prompt: str
    options: list[str]
    # Only revealed while learning
    answer: str | None = None
    correct_option: str | None = None


class SessionOut(BaseModel):
    phase: str
    deck_id: str | None
    card: CardOut | None
    learning_remaining: int
    testing_remaining: int
    session_remaining: int
    original_size: int
    eliminated: list[str]
    attempts: int
    feedback: str | None
    score: int
    gold: int


class AnswerOut(BaseModel):
    correct: bool
    session: SessionOut


class SelectRequest(BaseModel):
    deck_id: str


class AnswerRequest(BaseModel):
    option: OptionSlot


def _session_out(view: SessionView) -> SessionOut:
    card = None
    if view.active_card is not None:
        c = view.active_card
        learning = view.phase is Phase.LEARN
        card = CardOut(
            id=c.id,
            prompt=c.prompt,
            options=list(c.options),
            answer=c.answer if learning else None,
            correct_option=c.correct_option.value if learning else None,
        )
    return SessionOut(
        phase=view.phase.value,
        deck_id=view.deck_id,
        card=card,
        learning_remaining=view.learning_remaining,
        testing_remaining=view.testing_remaining,
        session_remaining=view.session_remaining,
        original_size=view.original_size,
        eliminated=[s.value for s in view.eliminated],
        attempts=view.attempts,
        feedback=view.feedback.value if view.feedback else None,
        score=view.score,
        gold=view.gold,
    )


@app.get("/session", response_model=SessionOut)
async def get_session(controller: StudyController = Depends(get_controller)):
    return _session_out(controller.view())


@app.post("/session/select", response_model=SessionOut)
async def select_deck(req: SelectRequest, controller: StudyController = Depends(get_controller)):
    """Start a fresh session on a deck, abandoning the current one."""
    if not controller.select_deck(req.deck_id):
        raise HTTPException(status_code=404, detail=f"Unknown deck: {req.deck_id}")
    return _session_out(controller.view())


@app.post("/session/advance", response_model=SessionOut)
async def advance(controller: StudyController = Depends(get_controller)):
    if not controller.advance_learning():
        raise HTTPException(status_code=409, detail="Not in the learning phase")
    return _session_out(controller.view())


@app.post("/session/answer", response_model=AnswerOut)
async def answer(req: AnswerRequest, controller: StudyController = Depends(get_controller)):
    """
    Submit an answer, hold for the feedback window, then commit it.
    """
    if _answer_lock.locked():
        raise HTTPException(status_code=409, detail="Feedback still showing")

    async with _answer_lock:
        pending = controller.submit_answer(req.option)
        if pending is None:
            raise HTTPException(status_code=409, detail="No card is waiting for an answer")

        await asyncio.sleep(pending.delay)
        pending.fire()

    return AnswerOut(correct=pending.kind is Feedback.CORRECT, session=_session_out(controller.view()))


@app.post("/session/close", response_model=SessionOut)
async def close_session(controller: StudyController = Depends(get_controller)):
    controller.close()
    return _session_out(controller.view())


# ---------------------------------------------------------------------------
# Decks & cards
# ---------------------------------------------------------------------------


@app.get("/decks")
async def list_decks(controller: StudyController = Depends(get_controller)):
    rows = StatsService(controller.state).deck_overview(utc_now())
    return [{**asdict(r), "total_due": r.total_due} for r in rows]


@app.get("/decks/{deck_id}/cards")
async def list_deck_cards(
    deck_id: str,
    filter: CardFilter = CardFilter.ALL,
    search: str = "",
    controller: StudyController = Depends(get_controller),
):
    """Browse a deck's cards by status and text."""
    deck = controller.state.find_deck(deck_id)
    if deck is None:
        raise HTTPException(status_code=404, detail=f"Unknown deck: {deck_id}")
    return {
        "deck_id": deck.id,
        "mastered_percent": mastered_percent(deck),
        "cards": [
            {
                "id": c.id,
                "prompt": c.prompt,
                "answer": c.answer,
                "status": card_status(c),
                "reps": c.reps,
                "suspended": c.suspended,
                "due_date": c.effective_due(),
            }
            for c in list_cards(deck, filter, search)
        ],
    }


@app.post("/decks/{deck_id}/cards/{card_id}/suspend")
async def suspend_card(deck_id: str, card_id: str, controller: StudyController = Depends(get_controller)):
    """Toggle suspension of a card."""
    if not controller.toggle_suspend(deck_id, card_id):
        raise HTTPException(status_code=404, detail=f"Card {deck_id}/{card_id} not found")
    card = controller.state.find_deck(deck_id).find_card(card_id)
    return {"ok": True, "suspended": card.suspended}


class ResetRequest(BaseModel):
    ease: float | None = None
    interval_days: float | None = None
    reps: int | None = None
    lapses: int | None = None
    due_date: datetime | None = None
    seen_count: int | None = None
    state: str | None = None


@app.post("/decks/{deck_id}/cards/{card_id}/reset")
async def reset_card(
    deck_id: str,
    card_id: str,
    req: ResetRequest | None = None,
    controller: StudyController = Depends(get_controller),
):
    """Reset a card to new, or overwrite only the given scheduling fields."""
    fields = req.model_dump(exclude_none=True) if req is not None else {}
    deck = controller.state.find_deck(deck_id)
    if deck is None or deck.find_card(card_id) is None:
        raise HTTPException(status_code=404, detail=f"Card {deck_id}/{card_id} not found")
    if not controller.reset_card_progress(deck_id, card_id, fields or None):
        raise HTTPException(status_code=400, detail=f"Could not reset {card_id}")
    return {"ok": True}


# ---------------------------------------------------------------------------
# Settings & stats
# ---------------------------------------------------------------------------


class SettingsRequest(BaseModel):
    new_cards_per_day: int | None = None
    reviews_per_day: int | None = None
    deadline: datetime | None = None


@app.get("/settings")
async def get_settings(controller: StudyController = Depends(get_controller)):
    return asdict(controller.state.settings)


@app.patch("/settings")
async def patch_settings(req: SettingsRequest, controller: StudyController = Depends(get_controller)):
    changes = req.model_dump(exclude_none=True)
    if not controller.update_settings(**changes):
        raise HTTPException(status_code=400, detail="Invalid settings")
    return asdict(controller.state.settings)


@app.get("/stats")
async def get_stats(controller: StudyController = Depends(get_controller)):
    return asdict(StatsService(controller.state).summary(utc_now()))


# ---------------------------------------------------------------------------
# Cosmetics
# ---------------------------------------------------------------------------


@app.get("/cosmetics")
async def list_cosmetics(controller: StudyController = Depends(get_controller)):
    state = controller.state
    return {
        "gold": state.gold,
        "equipped": dict(state.equipped_cosmetics),
        "items": [
            {**asdict(c), "type": c.type.value, "owned": c.id in state.owned_cosmetics}
            for c in COSMETICS
        ],
    }


@app.post("/cosmetics/{cosmetic_id}/buy")
async def buy_cosmetic(cosmetic_id: str, controller: StudyController = Depends(get_controller)):
    if not controller.buy_cosmetic(cosmetic_id):
        raise HTTPException(status_code=400, detail=f"Cannot buy {cosmetic_id}")
    return {"ok": True, "gold": controller.state.gold}


@app.post("/cosmetics/{cosmetic_id}/equip")
async def equip_cosmetic(cosmetic_id: str, controller: StudyController = Depends(get_controller)):
    if not controller.equip_cosmetic(cosmetic_id):
        raise HTTPException(status_code=400, detail=f"Cannot equip {cosmetic_id}")
    return {"ok": True, "equipped": dict(controller.state.equipped_cosmetics)}
