# finpet/models/pet.py
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
import structlog

log = structlog.get_logger(__name__)

SCHEMA_VERSION = 2
DEFAULT_USER_ID = "defaultUser"
DEFAULT_PET_NAME = "Buddy"

MAX_STAT_VALUE = 100
MIN_STAT_VALUE = 0


class PetType(str, Enum):
    CAT = "Cat"
    DRAGON = "Dragon"


class PetStage(str, Enum):
    HATCHLING = "Hatchling"
    JUVENILE = "Juvenile"
    ADULT = "Adult"
    WISE_ELDER = "Wise Elder"


class PetStat(str, Enum):
    HUNGER = "hunger"
    HAPPINESS = "happiness"
    ENERGY = "energy"


STAGE_ORDER = [PetStage.HATCHLING, PetStage.JUVENILE, PetStage.ADULT, PetStage.WISE_ELDER]

# XP needed to *enter* each stage
XP_THRESHOLDS = {
    PetStage.JUVENILE: 100,
    PetStage.ADULT: 300,
    PetStage.WISE_ELDER: 600,
}


def next_stage(stage: PetStage) -> Optional[PetStage]:
    """The stage after `stage`, or None for the terminal stage."""
    index = STAGE_ORDER.index(stage)
    if index + 1 < len(STAGE_ORDER):
        return STAGE_ORDER[index + 1]
    return None


def clamp_stat(value: int) -> int:
    return max(MIN_STAT_VALUE, min(MAX_STAT_VALUE, value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    # Stored records use the camelCase keys the web client wrote
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PetAccessory(_CamelModel):
    id: str
    name: str
    type: Literal["hat", "background"]
    asset_url: str


class PetProfile(_CamelModel):
    schema_version: int = SCHEMA_VERSION
    user_id: str = DEFAULT_USER_ID
    pet_id: str = Field(default_factory=lambda: f"pet-{uuid4().hex}")
    name: str = Field(default=DEFAULT_PET_NAME, min_length=1)
    type: PetType = PetType.CAT
    stage: PetStage = PetStage.HATCHLING
    xp: int = Field(default=0, ge=0)
    hunger: int = Field(default=80, ge=MIN_STAT_VALUE, le=MAX_STAT_VALUE)
    happiness: int = Field(default=70, ge=MIN_STAT_VALUE, le=MAX_STAT_VALUE)
    energy: int = Field(default=90, ge=MIN_STAT_VALUE, le=MAX_STAT_VALUE)
    last_fed: datetime = Field(default_factory=utcnow)
    last_interaction: datetime = Field(default_factory=utcnow)
    last_decay_at: Optional[datetime] = None
    treats: int = Field(default=10, ge=0)
    accessories: List[PetAccessory] = Field(default_factory=list)
    last_login_date: date = date(1970, 1, 1)  # Ensures first login gives treats
    consecutive_login_days: int = Field(default=0, ge=0)
    goals_set: int = Field(default=0, ge=0)
    goals_completed: int = Field(default=0, ge=0)
    processed_overdue_debts_today: Dict[str, date] = Field(default_factory=dict)

    @field_validator("last_fed", "last_interaction", "last_decay_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict in the stored (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True)


def default_pet_profile(user_id: str = DEFAULT_USER_ID, now: Optional[datetime] = None) -> PetProfile:
    now = now or utcnow()
    return PetProfile(user_id=user_id, last_fed=now, last_interaction=now)


# --- Restoring stored records ---

def _is_valid_enum(enum_cls, value: Any) -> bool:
    try:
        enum_cls(value)
        return True
    except ValueError:
        return False


def _has_required_fields(raw: Dict[str, Any]) -> bool:
    pet_id = raw.get("petId")
    login_days = raw.get("consecutiveLoginDays")
    return (
        isinstance(pet_id, str) and bool(pet_id)
        and isinstance(login_days, int) and not isinstance(login_days, bool)
        and _is_valid_enum(PetType, raw.get("type"))
        and _is_valid_enum(PetStage, raw.get("stage"))
    )


def _upgrade_v1(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Version 1 records came straight from the web client: no schemaVersion, no lastDecayAt,
    and stats that were only clamped on some code paths."""
    upgraded = dict(raw)
    for stat in PetStat:
        value = upgraded.get(stat.value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            upgraded[stat.value] = clamp_stat(int(round(value)))
    upgraded.pop("lastDecayAt", None)
    upgraded["schemaVersion"] = 2
    return upgraded


_UPGRADES = {
    1: _upgrade_v1,
}


def restore_profile(raw: Any, user_id: str = DEFAULT_USER_ID, now: Optional[datetime] = None) -> PetProfile:
    """Build a profile from a stored record.

    Records missing the pet id, the login-streak counter or a valid type/stage are replaced by a
    default profile that keeps only the user-chosen name. Otherwise every field that validates on
    its own is merged over a default profile; anything else falls back to its default.
    """
    default = default_pet_profile(user_id, now)
    if not isinstance(raw, dict):
        if raw is not None:
            log.warning("stored_profile_not_an_object", record_type=type(raw).__name__)
        return default

    if not _has_required_fields(raw):
        name = raw.get("name")
        log.warning("stored_profile_invalid_resetting", salvaged_name=isinstance(name, str) and bool(name.strip()))
        if isinstance(name, str) and name.strip():
            return default.model_copy(update={"name": name.strip()})
        return default

    version = raw.get("schemaVersion", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        version = 1
    record = dict(raw)
    while version in _UPGRADES:
        record = _UPGRADES[version](record)
        log.info("stored_profile_upgraded", from_version=version, to_version=record["schemaVersion"])
        version = record["schemaVersion"]
    if version > SCHEMA_VERSION:
        log.warning("stored_profile_newer_schema", version=version, supported=SCHEMA_VERSION)

    merged = default.to_record()
    for field_name, field_info in PetProfile.model_fields.items():
        key = field_info.alias or field_name
        if field_name == "schema_version" or key not in record:
            continue
        candidate = dict(merged)
        candidate[key] = record[key]
        try:
            PetProfile.model_validate(candidate)
        except ValidationError as e:
            log.warning("stored_profile_field_discarded", field=key, error=str(e.errors()[0].get("msg")))
            continue
        merged = candidate

    merged["schemaVersion"] = SCHEMA_VERSION
    return PetProfile.model_validate(merged)
