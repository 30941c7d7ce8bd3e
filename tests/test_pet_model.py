"""Profile model, defaults and restoring stored records."""
from datetime import date, datetime, timezone

from finpet.models.pet import (
    SCHEMA_VERSION,
    PetProfile,
    PetStage,
    PetType,
    clamp_stat,
    default_pet_profile,
    next_stage,
    restore_profile,
)

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _legacy_record(**overrides):
    # Shape written by the original web client (no schemaVersion)
    record = {
        "userId": "defaultUser",
        "petId": "pet-1718000000000",
        "name": "Mochi",
        "type": "Dragon",
        "stage": "Juvenile",
        "xp": 150,
        "hunger": 60,
        "happiness": 40,
        "energy": 75,
        "lastFed": "2026-10-18T08:00:00.000Z",
        "lastInteraction": "2026-10-18T09:30:00.000Z",
        "treats": 7,
        "accessories": [],
        "lastLoginDate": "2026-10-18",
        "consecutiveLoginDays": 3,
        "goalsSet": 1,
        "goalsCompleted": 0,
        "processedOverdueDebtsToday": {},
    }
    record.update(overrides)
    return record


def test_default_profile_values():
    profile = default_pet_profile(now=NOW)
    assert profile.name == "Buddy"
    assert profile.type == PetType.CAT
    assert profile.stage == PetStage.HATCHLING
    assert (profile.hunger, profile.happiness, profile.energy) == (80, 70, 90)
    assert profile.treats == 10
    assert profile.last_login_date == date(1970, 1, 1)
    assert profile.last_interaction == NOW
    assert profile.pet_id.startswith("pet-")


def test_pet_ids_are_unique():
    assert default_pet_profile().pet_id != default_pet_profile().pet_id


def test_record_uses_camel_case_keys():
    record = default_pet_profile(now=NOW).to_record()
    assert record["petId"].startswith("pet-")
    assert record["consecutiveLoginDays"] == 0
    assert record["lastLoginDate"] == "1970-01-01"
    assert record["stage"] == "Hatchling"
    assert record["schemaVersion"] == SCHEMA_VERSION


def test_clamp_stat():
    assert clamp_stat(-40) == 0
    assert clamp_stat(55) == 55
    assert clamp_stat(250) == 100


def test_next_stage_order():
    assert next_stage(PetStage.HATCHLING) == PetStage.JUVENILE
    assert next_stage(PetStage.ADULT) == PetStage.WISE_ELDER
    assert next_stage(PetStage.WISE_ELDER) is None


def test_restore_legacy_record_keeps_fields():
    profile = restore_profile(_legacy_record(), now=NOW)
    assert profile.pet_id == "pet-1718000000000"
    assert profile.name == "Mochi"
    assert profile.type == PetType.DRAGON
    assert profile.stage == PetStage.JUVENILE
    assert profile.xp == 150
    assert profile.consecutive_login_days == 3
    assert profile.last_login_date == date(2026, 10, 18)
    assert profile.last_interaction == datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
    assert profile.last_decay_at is None
    assert profile.schema_version == SCHEMA_VERSION


def test_restore_round_trips_current_record():
    original = default_pet_profile(now=NOW).model_copy(update={"xp": 420, "stage": PetStage.ADULT})
    assert restore_profile(original.to_record(), now=NOW) == original


def test_restore_clamps_legacy_stats():
    profile = restore_profile(_legacy_record(hunger=130, energy=-5, happiness=49.6), now=NOW)
    assert profile.hunger == 100
    assert profile.energy == 0
    assert profile.happiness == 50


def test_restore_drops_invalid_fields_to_defaults():
    record = _legacy_record(schemaVersion=2, treats=-3, accessories="nope", lastFed="yesterday-ish")
    profile = restore_profile(record, now=NOW)
    assert profile.treats == 10
    assert profile.accessories == []
    assert profile.last_fed == NOW
    # Everything valid survives
    assert profile.name == "Mochi"
    assert profile.xp == 150


def test_restore_missing_pet_id_resets_but_keeps_name():
    record = _legacy_record()
    del record["petId"]
    profile = restore_profile(record, now=NOW)
    assert profile.name == "Mochi"
    assert profile.pet_id != "pet-1718000000000"
    assert profile.xp == 0
    assert profile.stage == PetStage.HATCHLING


def test_restore_invalid_enum_resets():
    profile = restore_profile(_legacy_record(type="Unicorn", name="   "), now=NOW)
    assert profile.type == PetType.CAT
    assert profile.name == "Buddy"


def test_restore_missing_streak_counter_resets():
    record = _legacy_record()
    del record["consecutiveLoginDays"]
    profile = restore_profile(record, now=NOW)
    assert profile.consecutive_login_days == 0
    assert profile.last_login_date == date(1970, 1, 1)


def test_restore_non_dict_returns_default():
    for raw in (None, "garbage", 42, ["petId"]):
        profile = restore_profile(raw, user_id="u-7", now=NOW)
        assert isinstance(profile, PetProfile)
        assert profile.user_id == "u-7"
        assert profile.name == "Buddy"


def test_restore_naive_timestamps_are_utc():
    profile = restore_profile(_legacy_record(lastInteraction="2026-10-18T09:30:00"), now=NOW)
    assert profile.last_interaction.tzinfo is not None
