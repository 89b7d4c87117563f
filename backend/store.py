"""
Record store: keyed collections of health records on top of a storage backend.

Four JSON documents are kept, each under its own key:
- daily entries, a map of date -> entry
- the user profile singleton
- medicines, a map of str(id) -> medicine
- the dose history, an append-only list

Every write is a read-modify-write of a whole document. Writes to the same
document are serialized with a per-key lock; separate documents are not
written atomically together.
"""

import asyncio
import json
import logging
import time
from collections import defaultdict
from datetime import UTC, datetime

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from errors import InputError, NotFoundError, StorageUnavailableError, ValidationError
from schemas import DailyEntry, DoseHistoryEntry, Medicine, UserProfile
from storage import StorageBackend
from validation import (
    is_hour,
    is_iso_date,
    validate_daily_entry,
    validate_medicine,
    validate_user_profile,
)

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "DAILY_ENTRIES": "healthtracker_daily_entries",
    "USER_PROFILE": "healthtracker_user_profile",
    "MEDICINES": "healthtracker_medicines",
    "MEDICINE_DOSE_HISTORY": "healthtracker_medicine_dose_history",
}

PROFILE_ID = 1


def _now() -> datetime:
    return datetime.now(UTC)


def default_profile() -> dict:
    now = _now().isoformat()
    return {
        "id": PROFILE_ID,
        "name": "",
        "birthdate": None,
        "weight_kg": None,
        "height_cm": None,
        "activity_level": "moderate",
        "daily_water_goal_ml": 2000,
        "daily_calorie_goal": 2000,
        "daily_step_goal": 10000,
        "created_at": now,
        "updated_at": now,
    }


def _as_dict(data) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    if isinstance(data, dict):
        return dict(data)
    raise InputError(f"Expected a mapping of fields, got {type(data).__name__}")


def _check_date(value, label: str = "date") -> str:
    if not value or not isinstance(value, str):
        raise InputError(f"Invalid {label} format")
    if not is_iso_date(value):
        raise InputError(f"Invalid {label} format. Use YYYY-MM-DD")
    return value


def _medicine_key(medicine_id) -> str:
    if isinstance(medicine_id, bool):
        raise InputError("Invalid medicine id")
    if isinstance(medicine_id, float) and not medicine_id.is_integer():
        raise InputError(f"Invalid medicine id: {medicine_id!r}")
    try:
        return str(int(medicine_id))
    except (TypeError, ValueError) as e:
        raise InputError(f"Invalid medicine id: {medicine_id!r}") from e


class RecordStore:
    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_id = 0

    def _next_id(self) -> int:
        """Timestamp-derived id, strictly increasing within this store."""
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id

    # Documents ------------------------------------------------------------
    async def _read_document(self, key: str, default):
        raw = await self.storage.get(key)
        if raw is None:
            return default
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored document {key} is not valid JSON: {e}")
            raise StorageUnavailableError(f"Stored document '{key}' is unreadable") from e
        if not isinstance(document, type(default)):
            logger.error(f"Stored document {key} has type {type(document).__name__}")
            raise StorageUnavailableError(f"Stored document '{key}' is unreadable")
        return document

    async def _write_document(self, key: str, document) -> None:
        if not await self.storage.set(key, json.dumps(document)):
            logger.error(f"Write of {key} was not persisted by {self.storage.name} storage")
            raise StorageUnavailableError(f"Could not write '{key}' to {self.storage.name} storage")

    @staticmethod
    def _build(model: type[BaseModel], data: dict, prefix: str):
        try:
            return model.model_validate(data)
        except SchemaError as e:
            messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ValidationError(messages, prefix) from e

    async def initialize(self) -> None:
        """Write the empty collections and the default profile if they are missing."""
        sentinels = (
            (STORAGE_KEYS["DAILY_ENTRIES"], {}),
            (STORAGE_KEYS["USER_PROFILE"], default_profile()),
            (STORAGE_KEYS["MEDICINES"], {}),
            (STORAGE_KEYS["MEDICINE_DOSE_HISTORY"], []),
        )
        for key, sentinel in sentinels:
            async with self._locks[key]:
                if await self.storage.get(key) is None:
                    try:
                        await self._write_document(key, sentinel)
                    except StorageUnavailableError as e:
                        raise StorageUnavailableError(f"Database initialization failed: {e}") from e
        logger.info(f"{self.storage.name} storage initialized successfully")

    # Daily entries ----------------------------------------------------------
    async def get_entry(self, date: str) -> DailyEntry | None:
        _check_date(date)
        entries = await self._read_document(STORAGE_KEYS["DAILY_ENTRIES"], {})
        entry = entries.get(date)
        return DailyEntry.model_validate(entry) if entry else None

    async def upsert_entry(self, date: str, water_ml, calories, steps) -> DailyEntry:
        """Replace the entry for ``date``; id and created_at are stamped fresh."""
        _check_date(date)
        errors = validate_daily_entry(water_ml, calories, steps)
        if errors:
            logger.error(f"Rejected entry for {date}: {errors}")
            raise ValidationError(errors)

        entry = DailyEntry(
            id=self._next_id(),
            date=date,
            water_ml=int(water_ml),
            calories=int(calories),
            steps=int(steps),
            created_at=_now(),
        )
        key = STORAGE_KEYS["DAILY_ENTRIES"]
        async with self._locks[key]:
            entries = await self._read_document(key, {})
            entries[date] = entry.model_dump(mode="json")
            await self._write_document(key, entries)

        logger.info(f"Saved entry for {date}: water={entry.water_ml} calories={entry.calories} steps={entry.steps}")
        return entry

    async def get_entries_in_range(self, start_date: str, end_date: str) -> list[DailyEntry]:
        _check_date(start_date, "start date")
        _check_date(end_date, "end date")
        entries = await self._read_document(STORAGE_KEYS["DAILY_ENTRIES"], {})
        in_range = [
            DailyEntry.model_validate(entry)
            for entry in entries.values()
            if start_date <= entry["date"] <= end_date
        ]
        return sorted(in_range, key=lambda entry: entry.date)

    # Profile ----------------------------------------------------------------
    async def get_profile(self) -> UserProfile | None:
        profile = await self._read_document(STORAGE_KEYS["USER_PROFILE"], {})
        return UserProfile.model_validate(profile) if profile else None

    async def save_profile(self, profile) -> UserProfile:
        """Persist ``profile`` as the whole new profile. Callers merge beforehand."""
        data = _as_dict(profile)
        errors = validate_user_profile(data)
        if errors:
            logger.error(f"Rejected profile: {errors}")
            raise ValidationError(errors, "Invalid profile data")

        # None means "not provided"; the schema defaults fill those fields in
        data = {field: value for field, value in data.items() if value is not None}
        record = self._build(
            UserProfile,
            {**data, "id": PROFILE_ID, "updated_at": _now()},
            "Invalid profile data",
        )
        key = STORAGE_KEYS["USER_PROFILE"]
        async with self._locks[key]:
            # created_at is stamped once, when the profile is first written
            stored = await self._read_document(key, {})
            created_at = stored.get("created_at") or record.created_at or _now()
            record = UserProfile.model_validate({**record.model_dump(), "created_at": created_at})
            await self._write_document(key, record.model_dump(mode="json"))

        logger.info("Saved user profile")
        return record

    # Medicines --------------------------------------------------------------
    async def list_medicines(self) -> list[Medicine]:
        medicines = await self._read_document(STORAGE_KEYS["MEDICINES"], {})
        return sorted(
            (Medicine.model_validate(medicine) for medicine in medicines.values()),
            key=lambda medicine: medicine.name,
        )

    async def get_medicine(self, medicine_id) -> Medicine | None:
        medicines = await self._read_document(STORAGE_KEYS["MEDICINES"], {})
        medicine = medicines.get(_medicine_key(medicine_id))
        return Medicine.model_validate(medicine) if medicine else None

    async def add_medicine(self, data) -> int:
        data = _as_dict(data)
        errors = validate_medicine(data)
        if errors:
            logger.error(f"Rejected medicine: {errors}")
            raise ValidationError(errors, "Invalid medicine data")

        medicine_id = self._next_id()
        record = self._build(
            Medicine,
            {
                **data,
                "id": medicine_id,
                "created_at": _now(),
                "doses_taken": data.get("doses_taken") or 0,
            },
            "Invalid medicine data",
        )
        key = STORAGE_KEYS["MEDICINES"]
        async with self._locks[key]:
            medicines = await self._read_document(key, {})
            medicines[str(medicine_id)] = record.model_dump(mode="json")
            await self._write_document(key, medicines)

        logger.info(f"Added medicine {medicine_id} ({record.name})")
        return medicine_id

    async def update_medicine(self, medicine_id, data) -> Medicine:
        """Merge ``data`` onto the stored medicine; the merged record is validated."""
        medicine_key = _medicine_key(medicine_id)
        data = _as_dict(data)
        key = STORAGE_KEYS["MEDICINES"]
        async with self._locks[key]:
            medicines = await self._read_document(key, {})
            existing = medicines.get(medicine_key)
            if not existing:
                raise NotFoundError(f"Medicine {medicine_id} not found")

            merged = {**existing, **data}
            errors = validate_medicine(merged)
            if errors:
                logger.error(f"Rejected update of medicine {medicine_id}: {errors}")
                raise ValidationError(errors, "Invalid medicine data")

            merged.update(id=existing["id"], created_at=existing["created_at"], updated_at=_now())
            record = self._build(Medicine, merged, "Invalid medicine data")
            medicines[medicine_key] = record.model_dump(mode="json")
            await self._write_document(key, medicines)

        logger.info(f"Updated medicine {medicine_id}")
        return record

    async def remove_medicine(self, medicine_id) -> None:
        """Delete the medicine if present. Its dose history is left in place."""
        medicine_key = _medicine_key(medicine_id)
        key = STORAGE_KEYS["MEDICINES"]
        async with self._locks[key]:
            medicines = await self._read_document(key, {})
            medicines.pop(medicine_key, None)
            await self._write_document(key, medicines)
        logger.info(f"Removed medicine {medicine_id}")

    # Doses ------------------------------------------------------------------
    async def record_dose(self, medicine_id, dose_hour) -> DoseHistoryEntry:
        """Bump the medicine's counter (when it exists) and append to the history.

        The two writes are independent: a failure between them leaves the
        counter and the history out of step.
        """
        medicine_key = _medicine_key(medicine_id)
        if not is_hour(dose_hour):
            raise InputError(f"Invalid dose time: {dose_hour!r}")

        key = STORAGE_KEYS["MEDICINES"]
        async with self._locks[key]:
            medicines = await self._read_document(key, {})
            medicine = medicines.get(medicine_key)
            if medicine:
                medicine["doses_taken"] = (medicine.get("doses_taken") or 0) + 1
                await self._write_document(key, medicines)
            else:
                logger.warning(f"Dose recorded for unknown medicine {medicine_id}")

        dose = DoseHistoryEntry(
            id=self._next_id(),
            medicine_id=int(medicine_key),
            dose_time=dose_hour,
            taken_at=_now(),
        )
        key = STORAGE_KEYS["MEDICINE_DOSE_HISTORY"]
        async with self._locks[key]:
            history = await self._read_document(key, [])
            history.append(dose.model_dump(mode="json"))
            await self._write_document(key, history)

        logger.info(f"Recorded dose of medicine {medicine_id} at hour {dose_hour}")
        return dose

    async def get_dose_history(self, limit: int = 50) -> list[DoseHistoryEntry]:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise InputError(f"Invalid limit: {limit!r}")
        history = await self._read_document(STORAGE_KEYS["MEDICINE_DOSE_HISTORY"], [])
        doses = [DoseHistoryEntry.model_validate(dose) for dose in history]
        doses.sort(key=lambda dose: (dose.taken_at, dose.id), reverse=True)
        return doses[:limit]
