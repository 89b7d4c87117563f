import pytest

from validation import validate_daily_entry, validate_medicine, validate_user_profile

ASPIRIN = {"name": "Aspirin", "dosage": "100mg", "frequency": "daily", "times": [8, 20]}


def test_valid_daily_entry():
    assert validate_daily_entry(0, 0, 0) == []
    assert validate_daily_entry(10000, 10000, 100000) == []


def test_daily_entry_bounds():
    errors = validate_daily_entry(10001, -1, 100001)
    assert errors == [
        "Water intake must be between 0 and 10,000 ml",
        "Calories must be between 0 and 10,000",
        "Steps must be between 0 and 100,000",
    ]


@pytest.mark.parametrize("value", ["100", None, True, 1.5])
def test_daily_entry_requires_whole_numbers(value):
    assert validate_daily_entry(value, 0, 0) == ["Water intake must be between 0 and 10,000 ml"]


def test_empty_profile_is_valid():
    assert validate_user_profile({}) == []
    assert validate_user_profile({"name": None, "weight_kg": None}) == []


def test_profile_ranges():
    errors = validate_user_profile(
        {
            "weight_kg": 19,
            "height_cm": 301,
            "daily_water_goal_ml": 499,
            "daily_calorie_goal": 4001,
            "daily_step_goal": 999,
        }
    )
    assert len(errors) == 5
    assert "Weight must be between 20 and 500 kg" in errors
    assert "Step goal must be between 1,000 and 50,000 steps" in errors


def test_profile_zero_is_checked():
    assert validate_user_profile({"weight_kg": 0}) == ["Weight must be between 20 and 500 kg"]


def test_profile_types():
    errors = validate_user_profile({"name": 42, "birthdate": "1990-13-45", "activity_level": "extreme"})
    assert errors == [
        "Name must be a string",
        "Birthdate must be a date in YYYY-MM-DD format",
        "Activity level must be one of: high, low, moderate",
    ]


@pytest.mark.parametrize("birthdate", ["1990-1-1", "1990-01-1", "19900101", "1990-01-01T00:00"])
def test_profile_birthdate_must_be_zero_padded(birthdate):
    assert validate_user_profile({"birthdate": birthdate}) == ["Birthdate must be a date in YYYY-MM-DD format"]


def test_valid_profile():
    profile = {
        "name": "Sam",
        "birthdate": "1990-01-01",
        "weight_kg": 70.5,
        "height_cm": 175,
        "activity_level": "moderate",
        "daily_water_goal_ml": 2000,
        "daily_calorie_goal": 2000,
        "daily_step_goal": 10000,
    }
    assert validate_user_profile(profile) == []


def test_valid_medicine():
    assert validate_medicine(ASPIRIN) == []
    assert validate_medicine({**ASPIRIN, "total_doses": 30, "doses_taken": 0, "instructions": None}) == []


def test_medicine_requires_text_fields():
    errors = validate_medicine({"name": " ", "dosage": "", "times": [8]})
    assert errors == ["Medicine name is required", "Dosage is required", "Frequency is required"]


def test_medicine_times():
    assert validate_medicine({**ASPIRIN, "times": []}) == ["At least one dose time is required"]
    assert validate_medicine({**ASPIRIN, "times": "8"}) == ["At least one dose time is required"]
    assert validate_medicine({**ASPIRIN, "times": [8, 24, -1]}) == [
        "Invalid time for dose 2",
        "Invalid time for dose 3",
    ]
    assert validate_medicine({**ASPIRIN, "times": [8, 8]}) == ["Dose times must not repeat"]


def test_medicine_counters():
    assert validate_medicine({**ASPIRIN, "total_doses": 0}) == ["Total doses must be a positive number"]
    assert validate_medicine({**ASPIRIN, "doses_taken": -1}) == ["Doses taken must be non-negative"]


def test_doses_taken_may_exceed_total():
    assert validate_medicine({**ASPIRIN, "total_doses": 5, "doses_taken": 9}) == []
