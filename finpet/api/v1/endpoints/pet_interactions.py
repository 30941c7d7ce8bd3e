# finpet/api/v1/endpoints/pet_interactions.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from finpet.models.events import FinancialEventData, FinancialEventType
from finpet.models.notification import Notification
from finpet.models.pet import PetProfile, PetStat, PetType
from finpet.services import pet_rules
from finpet.services.notifications import NotificationFeed
from finpet.services.pet_engine import PetEngine

router = APIRouter()


def get_engine(request: Request) -> PetEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Pet engine not initialized")
    return engine


def get_notification_feed(request: Request) -> Optional[NotificationFeed]:
    return getattr(request.app.state, "notification_feed", None)


def _current_profile(engine: PetEngine) -> PetProfile:
    if engine.is_loading or engine.profile is None:
        raise HTTPException(status_code=503, detail="Pet profile is still loading")
    return engine.profile


class PetView(BaseModel):
    profile: PetProfile
    mood: pet_rules.PetMood


class ActionResult(BaseModel):
    success: bool
    profile: PetProfile


class StatChangeRequest(BaseModel):
    stat: PetStat
    amount: int


class RenameRequest(BaseModel):
    name: str = Field(..., min_length=1)


class TreatRewardRequest(BaseModel):
    amount: int
    reason: Optional[str] = None


class FinancialEventRequest(BaseModel):
    event_type: FinancialEventType
    data: Optional[FinancialEventData] = None


class DecayResult(BaseModel):
    periods_applied: int
    profile: PetProfile


@router.get("/pet", response_model=PetView)
def get_pet_endpoint(engine: PetEngine = Depends(get_engine)):
    """Get the current state of the pet."""
    profile = _current_profile(engine)
    return PetView(profile=profile, mood=pet_rules.mood(profile))


@router.get("/pet/progress", response_model=pet_rules.XpProgress)
def get_progress_endpoint(engine: PetEngine = Depends(get_engine)):
    """XP progress toward the next stage."""
    return pet_rules.xp_progress(_current_profile(engine))


@router.post("/pet/xp", response_model=PetProfile)
def gain_xp_endpoint(amount: int = Body(..., embed=True), silent: bool = Body(default=False, embed=True),
                     engine: PetEngine = Depends(get_engine)):
    engine.gain_xp(amount, silent=silent)
    return _current_profile(engine)


@router.post("/pet/stats", response_model=PetProfile)
def update_stat_endpoint(payload: StatChangeRequest, engine: PetEngine = Depends(get_engine)):
    engine.update_stat(payload.stat, payload.amount)
    return _current_profile(engine)


@router.post("/pet/feed", response_model=ActionResult)
def feed_pet_endpoint(cost: int = Body(default=1, embed=True, ge=1), engine: PetEngine = Depends(get_engine)):
    """Feed the pet. Not having enough treats is reported via `success`, not an error status."""
    fed = engine.feed_pet(cost)
    return ActionResult(success=fed, profile=_current_profile(engine))


@router.post("/pet/play", response_model=ActionResult)
def play_with_pet_endpoint(engine: PetEngine = Depends(get_engine)):
    """Play with the pet."""
    played = engine.play_with_pet()
    return ActionResult(success=played, profile=_current_profile(engine))


@router.post("/pet/rename", response_model=PetProfile)
def rename_pet_endpoint(payload: RenameRequest, engine: PetEngine = Depends(get_engine)):
    if not payload.name.strip():
        raise HTTPException(status_code=422, detail="Name must not be blank")
    engine.rename_pet(payload.name)
    return _current_profile(engine)


@router.post("/pet/type", response_model=PetProfile)
def set_pet_type_endpoint(pet_type: PetType = Body(..., embed=True), engine: PetEngine = Depends(get_engine)):
    engine.set_pet_type(pet_type)
    return _current_profile(engine)


@router.post("/pet/treats", response_model=PetProfile)
def reward_treats_endpoint(payload: TreatRewardRequest, engine: PetEngine = Depends(get_engine)):
    engine.reward_treats(payload.amount, reason=payload.reason)
    return _current_profile(engine)


@router.post("/pet/events", response_model=ActionResult)
def financial_event_endpoint(payload: FinancialEventRequest, engine: PetEngine = Depends(get_engine)):
    """Report a financial action (goal set, debt overdue, ...) so the pet can react."""
    applied = engine.process_financial_event(payload.event_type, payload.data)
    return ActionResult(success=applied, profile=_current_profile(engine))


@router.post("/pet/decay", response_model=DecayResult)
def decay_endpoint(engine: PetEngine = Depends(get_engine)):
    periods = engine.apply_decay()
    return DecayResult(periods_applied=periods, profile=_current_profile(engine))


@router.get("/pet/notifications", response_model=List[Notification])
def notifications_endpoint(limit: int = Query(default=20, ge=1, le=50),
                           feed: Optional[NotificationFeed] = Depends(get_notification_feed)):
    if feed is None:
        return []
    return feed.recent(limit)
