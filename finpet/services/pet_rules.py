# finpet/services/pet_rules.py
"""Pure pet rules.

Every rule takes the current PetProfile snapshot and returns a Transition holding the next
snapshot. Rules never mutate their input; when nothing changes the same object is returned so
callers can skip persistence.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel

from finpet.models.events import FINANCIAL_EVENT_RULES, FinancialEventData, FinancialEventType
from finpet.models.notification import Notification, destructive, info
from finpet.models.pet import (
    XP_THRESHOLDS,
    PetProfile,
    PetStage,
    PetStat,
    PetType,
    clamp_stat,
    next_stage,
)

# Login rewards
DAILY_LOGIN_TREATS = 2
STREAK_BONUS_DAYS = 5
STREAK_BONUS_TREATS = 10

# Direct interactions
XP_GAIN_HAPPINESS = 5
FEED_HUNGER_GAIN = 20
FEED_HAPPINESS_GAIN = 5
PLAY_HAPPINESS_GAIN = 15
PLAY_ENERGY_COST = 10

# Inactivity decay
DECAY_INACTIVITY = timedelta(minutes=30)
DECAY_PERIOD = timedelta(minutes=15)
DECAY_HUNGER = 2
DECAY_ENERGY = 1


@dataclass
class Transition:
    profile: PetProfile
    notifications: List[Notification] = field(default_factory=list)
    result: Any = None

    @classmethod
    def unchanged(cls, profile: PetProfile, result: Any = None, *notifications: Notification) -> "Transition":
        return cls(profile=profile, notifications=list(notifications), result=result)


def evolve(profile: PetProfile) -> Transition:
    """Advance at most one stage when xp has reached the next stage's threshold."""
    target = next_stage(profile.stage)
    if target is None or profile.xp < XP_THRESHOLDS[target]:
        return Transition.unchanged(profile, False)
    evolved = profile.model_copy(update={"stage": target})
    return Transition(
        profile=evolved,
        notifications=[info("Evolution!", f"{profile.name} has evolved into a {target.value}!")],
        result=True,
    )


def gain_xp(profile: PetProfile, amount: int, now: datetime, silent: bool = False) -> Transition:
    # xp never goes down
    gained = max(0, amount)
    updated = profile.model_copy(update={
        "xp": profile.xp + gained,
        "happiness": clamp_stat(profile.happiness + XP_GAIN_HAPPINESS),
        "last_interaction": now,
    })
    notes = [] if silent else [info("XP Gained", f"{profile.name} gained {gained} XP!")]
    return Transition(profile=updated, notifications=notes)


def update_stat(profile: PetProfile, stat: PetStat, amount: int, now: datetime) -> Transition:
    current = getattr(profile, stat.value)
    updated = profile.model_copy(update={
        stat.value: clamp_stat(current + amount),
        "last_interaction": now,
    })
    return Transition(profile=updated)


def feed(profile: PetProfile, cost: int, now: datetime) -> Transition:
    if cost < 0 or profile.treats < cost:
        return Transition.unchanged(
            profile, False,
            destructive("Not enough treats", f"You need {cost} treat(s) to feed {profile.name}."),
        )
    updated = profile.model_copy(update={
        "hunger": clamp_stat(profile.hunger + FEED_HUNGER_GAIN),
        "happiness": clamp_stat(profile.happiness + FEED_HAPPINESS_GAIN),
        "treats": profile.treats - cost,
        "last_fed": now,
        "last_interaction": now,
    })
    return Transition(
        profile=updated,
        notifications=[info("Yum!", f"{profile.name} enjoyed the treat!")],
        result=True,
    )


def play(profile: PetProfile, now: datetime) -> Transition:
    if profile.energy < PLAY_ENERGY_COST:
        return Transition.unchanged(
            profile, False,
            destructive("Too Tired", f"{profile.name} is too tired to play right now."),
        )
    updated = profile.model_copy(update={
        "happiness": clamp_stat(profile.happiness + PLAY_HAPPINESS_GAIN),
        "energy": clamp_stat(profile.energy - PLAY_ENERGY_COST),
        "last_interaction": now,
    })
    return Transition(
        profile=updated,
        notifications=[info(
            "Playtime!",
            f"{profile.name} had fun playing! +{PLAY_HAPPINESS_GAIN} Happiness, -{PLAY_ENERGY_COST} Energy.",
        )],
        result=True,
    )


def rename(profile: PetProfile, name: str) -> Transition:
    trimmed = (name or "").strip()
    if not trimmed or trimmed == profile.name:
        return Transition.unchanged(profile, False)
    return Transition(profile=profile.model_copy(update={"name": trimmed}), result=True)


def set_type(profile: PetProfile, pet_type: PetType) -> Transition:
    if pet_type == profile.type:
        return Transition.unchanged(profile)
    return Transition(profile=profile.model_copy(update={"type": pet_type}))


def reward_treats(profile: PetProfile, amount: int, reason: Optional[str] = None) -> Transition:
    updated = profile.model_copy(update={"treats": max(0, profile.treats + amount)})
    notes = []
    if reason:
        notes.append(info("Treats Earned!", f"You earned {amount} treat(s) for {reason}."))
    return Transition(profile=updated, notifications=notes)


def apply_daily_login(profile: PetProfile, today: date) -> Transition:
    """Grant the once-per-day login bonus and account the streak."""
    if profile.last_login_date == today:
        return Transition.unchanged(profile, False)

    if profile.last_login_date == today - timedelta(days=1):
        streak = profile.consecutive_login_days + 1
    else:
        streak = 1

    treats = profile.treats + DAILY_LOGIN_TREATS
    notes = [info("Daily Bonus!", f"You received {DAILY_LOGIN_TREATS} treats for logging in today!")]
    # Re-fires every day the streak holds
    if streak >= STREAK_BONUS_DAYS:
        treats += STREAK_BONUS_TREATS
        notes.append(info(
            "Streak Bonus!",
            f"{streak}-day login streak! You earned an extra {STREAK_BONUS_TREATS} treats!",
        ))

    updated = profile.model_copy(update={
        "treats": treats,
        "consecutive_login_days": streak,
        "last_login_date": today,
    })
    return Transition(profile=updated, notifications=notes, result=True)


def _decay_periods_applied(profile: PetProfile, idle_since: datetime) -> int:
    # A last_decay_at from before the latest interaction belongs to an earlier idle stretch
    if profile.last_decay_at is None or profile.last_decay_at <= idle_since:
        return 0
    return (profile.last_decay_at - idle_since) // DECAY_PERIOD


def decay_periods_due(profile: PetProfile, now: datetime) -> int:
    """Decay periods owed for the current stretch of inactivity.

    The first period is owed as soon as the pet has been idle longer than DECAY_INACTIVITY, and
    one more for every DECAY_PERIOD after that. Periods already applied (tracked by last_decay_at)
    are subtracted, so a late or repeated check settles exactly what is owed.
    """
    idle_since = profile.last_interaction + DECAY_INACTIVITY
    if now <= idle_since:
        return 0
    owed = -((idle_since - now) // DECAY_PERIOD)  # ceiling division
    return max(0, owed - _decay_periods_applied(profile, idle_since))


def decay(profile: PetProfile, now: datetime) -> Transition:
    periods = decay_periods_due(profile, now)
    if periods == 0:
        return Transition.unchanged(profile, 0)
    idle_since = profile.last_interaction + DECAY_INACTIVITY
    already = _decay_periods_applied(profile, idle_since)
    updated = profile.model_copy(update={
        "hunger": clamp_stat(profile.hunger - DECAY_HUNGER * periods),
        "energy": clamp_stat(profile.energy - DECAY_ENERGY * periods),
        # last_interaction stays put so decay keeps accruing while idle
        "last_decay_at": idle_since + DECAY_PERIOD * (already + periods),
    })
    return Transition(profile=updated, result=periods)


def apply_financial_event(profile: PetProfile, event_type: FinancialEventType,
                          data: FinancialEventData, today: date) -> Transition:
    rule = FINANCIAL_EVENT_RULES[event_type]
    update = {
        "treats": max(0, profile.treats + rule.treats),
        "xp": profile.xp + max(0, rule.xp),
        "happiness": clamp_stat(profile.happiness + rule.happiness),
        "energy": clamp_stat(profile.energy + rule.energy),
    }

    if event_type == FinancialEventType.GOAL_SET:
        update["goals_set"] = profile.goals_set + 1
    elif event_type == FinancialEventType.GOAL_ACHIEVED:
        update["goals_completed"] = profile.goals_completed + 1
    elif event_type == FinancialEventType.DEBT_OVERDUE and data.debt_id:
        if profile.processed_overdue_debts_today.get(data.debt_id) == today:
            return Transition.unchanged(profile, False)
        # Entries from earlier days no longer block anything
        processed = {debt_id: day for debt_id, day in profile.processed_overdue_debts_today.items()
                     if day == today}
        processed[data.debt_id] = today
        update["processed_overdue_debts_today"] = processed

    if event_type == FinancialEventType.UNPLANNED_EXPENSE:
        subject = ""
        if data.amount is not None:
            subject += f" of {data.amount:.2f}"
        if data.category:
            subject += f" on {data.category}"
    else:
        subject = f'"{data.debt_name}"' if data.debt_name else "One of your debts"
    note = Notification(
        title=rule.title,
        description=rule.description.format(pet_name=profile.name, subject=subject),
        severity=rule.severity,
    )
    return Transition(profile=profile.model_copy(update=update), notifications=[note], result=True)


# --- Read-only views ---

class XpProgress(BaseModel):
    stage: PetStage
    next_stage: Optional[PetStage] = None
    xp: int
    xp_into_stage: int
    xp_needed_for_stage: int
    percent: float


def xp_progress(profile: PetProfile) -> XpProgress:
    base = XP_THRESHOLDS.get(profile.stage, 0)
    target_stage = next_stage(profile.stage)
    if target_stage is None:
        return XpProgress(stage=profile.stage, xp=profile.xp, xp_into_stage=profile.xp - base,
                          xp_needed_for_stage=0, percent=100.0)
    needed = XP_THRESHOLDS[target_stage] - base
    into = profile.xp - base
    percent = min(100.0, max(0.0, into / needed * 100)) if needed > 0 else 0.0
    return XpProgress(stage=profile.stage, next_stage=target_stage, xp=profile.xp,
                      xp_into_stage=into, xp_needed_for_stage=needed, percent=round(percent, 1))


class PetMood(str, Enum):
    HUNGRY = "hungry"
    UNHAPPY = "unhappy"
    SLEEPY = "sleepy"
    CONTENT = "content"
    NEUTRAL = "neutral"


def mood(profile: PetProfile) -> PetMood:
    # Checked in priority order; hunger is a fullness meter, so low means hungry
    if profile.hunger < 30:
        return PetMood.HUNGRY
    if profile.happiness < 30:
        return PetMood.UNHAPPY
    if profile.energy < 20:
        return PetMood.SLEEPY
    if profile.happiness > 70 and profile.hunger > 70:
        return PetMood.CONTENT
    return PetMood.NEUTRAL
