"""
Validation rules for the records kept by the store.

Each rule is a pure function returning a list of human-readable violation
messages; an empty list means the record is valid.
"""

import re
from datetime import date

ACTIVITY_LEVELS = {"low", "moderate", "high"}

# zero-padded, so stored dates sort lexicographically
ISO_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# field -> (low, high, message)
ENTRY_BOUNDS = {
    "water_ml": (0, 10000, "Water intake must be between 0 and 10,000 ml"),
    "calories": (0, 10000, "Calories must be between 0 and 10,000"),
    "steps": (0, 100000, "Steps must be between 0 and 100,000"),
}

PROFILE_BOUNDS = {
    "weight_kg": (20, 500, "Weight must be between 20 and 500 kg"),
    "height_cm": (50, 300, "Height must be between 50 and 300 cm"),
    "daily_water_goal_ml": (500, 5000, "Water goal must be between 500 and 5,000 ml"),
    "daily_calorie_goal": (1200, 4000, "Calorie goal must be between 1,200 and 4,000 calories"),
    "daily_step_goal": (1000, 50000, "Step goal must be between 1,000 and 50,000 steps"),
}


def is_number(value) -> bool:
    # bool is an int subclass but never a valid measurement
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_whole_number(value) -> bool:
    return is_number(value) and float(value).is_integer()


def is_hour(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 23


def is_iso_date(value) -> bool:
    if not isinstance(value, str) or not ISO_DATE_PATTERN.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _non_empty_string(value) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def validate_daily_entry(water_ml, calories, steps) -> list[str]:
    errors = []
    values = {"water_ml": water_ml, "calories": calories, "steps": steps}
    for field, (low, high, message) in ENTRY_BOUNDS.items():
        value = values[field]
        if not is_whole_number(value) or value < low or value > high:
            errors.append(message)
    return errors


def validate_user_profile(profile: dict) -> list[str]:
    """Check every field that is present; absent or None fields are not required."""
    errors = []

    name = profile.get("name")
    if name is not None and not isinstance(name, str):
        errors.append("Name must be a string")

    birthdate = profile.get("birthdate")
    if birthdate is not None and not is_iso_date(birthdate):
        errors.append("Birthdate must be a date in YYYY-MM-DD format")

    activity_level = profile.get("activity_level")
    if activity_level is not None and activity_level not in ACTIVITY_LEVELS:
        errors.append(f"Activity level must be one of: {', '.join(sorted(ACTIVITY_LEVELS))}")

    for field, (low, high, message) in PROFILE_BOUNDS.items():
        value = profile.get(field)
        if value is None:
            continue
        if not is_number(value) or value < low or value > high:
            errors.append(message)

    return errors


def validate_medicine(medicine: dict) -> list[str]:
    errors = []

    if not _non_empty_string(medicine.get("name")):
        errors.append("Medicine name is required")

    if not _non_empty_string(medicine.get("dosage")):
        errors.append("Dosage is required")

    if not _non_empty_string(medicine.get("frequency")):
        errors.append("Frequency is required")

    times = medicine.get("times")
    if not isinstance(times, list) or len(times) == 0:
        errors.append("At least one dose time is required")
    else:
        for index, hour in enumerate(times):
            if not is_hour(hour):
                errors.append(f"Invalid time for dose {index + 1}")
        hours = [hour for hour in times if is_hour(hour)]
        if len(hours) != len(set(hours)):
            errors.append("Dose times must not repeat")

    total_doses = medicine.get("total_doses")
    if total_doses is not None and (not is_whole_number(total_doses) or total_doses < 1):
        errors.append("Total doses must be a positive number")

    doses_taken = medicine.get("doses_taken")
    if doses_taken is not None and (not is_whole_number(doses_taken) or doses_taken < 0):
        errors.append("Doses taken must be non-negative")

    return errors
