# finpet/services/pet_engine.py
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError
import structlog

from finpet.core.storage import KeyValueStore
from finpet.models.events import FinancialEventData, FinancialEventType
from finpet.models.notification import Notification
from finpet.models.pet import DEFAULT_USER_ID, PetProfile, PetStat, PetType, restore_profile
from finpet.services import pet_rules
from finpet.services.notifications import NotificationSink
from finpet.services.pet_rules import Transition

log = structlog.get_logger(__name__)

PET_PROFILE_STORAGE_KEY = "ascendiaLitePetProfile"

Clock = Callable[[], datetime]


def local_now() -> datetime:
    return datetime.now().astimezone()


class PetEngine:
    """Owns the single PetProfile and serializes every change to it.

    Each mutation reads the latest committed snapshot, computes the next one with a pure rule,
    runs the evolution check, replaces the snapshot and persists it, all under one lock.
    Notifications produced along the way are queued and handed to the sink only after the lock
    is released. Nothing here raises to the caller: store and sink failures are logged.
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[NotificationSink] = None,
        clock: Optional[Clock] = None,
        storage_key: str = PET_PROFILE_STORAGE_KEY,
        user_id: str = DEFAULT_USER_ID,
    ):
        self._store = store
        self._notifier = notifier
        self._clock = clock or local_now
        self._storage_key = storage_key
        self._user_id = user_id
        self._lock = threading.RLock()
        self._profile: Optional[PetProfile] = None
        self._is_loading = True
        self._outbox: List[Notification] = []

    @property
    def profile(self) -> Optional[PetProfile]:
        return self._profile

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    # --- Lifecycle ---

    def initialize(self) -> PetProfile:
        with self._lock:
            if self._profile is not None:
                return self._profile
            now = self._clock()
            profile = restore_profile(self._load_record(), user_id=self._user_id, now=now)
            login = pet_rules.apply_daily_login(profile, now.date())
            if login.result:
                log.info("daily_login_bonus_granted", pet_id=profile.pet_id,
                         streak=login.profile.consecutive_login_days, treats=login.profile.treats)
            self._profile = login.profile
            self._persist(self._profile)
            self._outbox.extend(login.notifications)
            self._is_loading = False
            log.info("pet_profile_loaded", pet_id=self._profile.pet_id, stage=self._profile.stage.value,
                     xp=self._profile.xp)
        self._dispatch()
        return self._profile

    def _load_record(self) -> Optional[Any]:
        try:
            return self._store.get(self._storage_key)
        except Exception as e:
            log.error("Failed to load pet profile from store", key=self._storage_key, error=str(e))
            return None

    def _persist(self, profile: PetProfile) -> None:
        try:
            self._store.set(self._storage_key, profile.to_record())
        except Exception as e:
            # In-memory state stays committed even if the durable write fails
            log.error("Failed to save pet profile to store", pet_id=profile.pet_id, error=str(e), exc_info=True)

    def _dispatch(self) -> None:
        with self._lock:
            pending, self._outbox = self._outbox, []
        if self._notifier is None:
            return
        for notification in pending:
            try:
                self._notifier.notify(notification)
            except Exception as e:
                log.error("Notification sink failed", title=notification.title, error=str(e))

    def _commit(self, action: str, rule: Callable[[PetProfile], Transition]) -> Any:
        if self._profile is None:
            log.warning("pet_engine_used_before_initialize", action=action)
            self.initialize()
        with self._lock:
            current = self._profile
            transition = rule(current)
            notifications = list(transition.notifications)
            evolved = pet_rules.evolve(transition.profile)
            notifications.extend(evolved.notifications)
            updated = evolved.profile

            if updated is not current:
                self._profile = updated
                self._persist(updated)
                log.info(f"pet_action_{action}", pet_id=updated.pet_id, result=transition.result,
                         new_state=updated.model_dump(mode="json", include={"xp", "stage", "hunger", "happiness",
                                                                            "energy", "treats"}))
                if evolved.result:
                    log.info("pet_evolved", pet_id=updated.pet_id, stage=updated.stage.value)
            else:
                log.debug(f"pet_action_{action}_no_change", pet_id=current.pet_id, result=transition.result)
            self._outbox.extend(notifications)
        self._dispatch()
        return transition.result

    # --- Mutations ---

    def gain_xp(self, amount: int, silent: bool = False) -> None:
        now = self._clock()
        self._commit("gain_xp", lambda p: pet_rules.gain_xp(p, amount, now, silent=silent))

    def update_stat(self, stat: Union[PetStat, str], amount: int) -> bool:
        try:
            stat = PetStat(stat)
        except ValueError:
            log.warning("unknown_pet_stat_ignored", stat=str(stat))
            return False
        now = self._clock()
        self._commit("update_stat", lambda p: pet_rules.update_stat(p, stat, amount, now))
        return True

    def feed_pet(self, cost: int = 1) -> bool:
        now = self._clock()
        return bool(self._commit("feed", lambda p: pet_rules.feed(p, cost, now)))

    def play_with_pet(self) -> bool:
        now = self._clock()
        return bool(self._commit("play", lambda p: pet_rules.play(p, now)))

    def rename_pet(self, name: str) -> bool:
        return bool(self._commit("rename", lambda p: pet_rules.rename(p, name)))

    def set_pet_type(self, pet_type: Union[PetType, str]) -> bool:
        try:
            pet_type = PetType(pet_type)
        except ValueError:
            log.warning("unknown_pet_type_ignored", pet_type=str(pet_type))
            return False
        self._commit("set_type", lambda p: pet_rules.set_type(p, pet_type))
        return True

    def reward_treats(self, amount: int, reason: Optional[str] = None) -> None:
        self._commit("reward_treats", lambda p: pet_rules.reward_treats(p, amount, reason))

    def process_financial_event(
        self,
        event_type: Union[FinancialEventType, str],
        data: Optional[Union[FinancialEventData, Dict[str, Any]]] = None,
    ) -> bool:
        try:
            event_type = FinancialEventType(event_type)
        except ValueError:
            log.warning("unknown_financial_event_ignored", event_type=str(event_type))
            return False
        if isinstance(data, FinancialEventData):
            event_data = data
        else:
            try:
                event_data = FinancialEventData.model_validate(data or {})
            except ValidationError as e:
                log.warning("financial_event_data_discarded", event_type=event_type.value, error=str(e))
                event_data = FinancialEventData()
        today = self._clock().date()
        applied = self._commit(
            f"event_{event_type.value}",
            lambda p: pet_rules.apply_financial_event(p, event_type, event_data, today),
        )
        return bool(applied)

    def apply_decay(self, now: Optional[datetime] = None) -> int:
        """Apply whatever inactivity decay is owed at `now`; returns the number of periods applied."""
        now = now or self._clock()
        return self._commit("decay", lambda p: pet_rules.decay(p, now)) or 0
