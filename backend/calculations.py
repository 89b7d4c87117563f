"""Body and goal calculations derived from the user profile."""

from datetime import UTC, date, datetime, timedelta

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Multipliers applied to BMR
ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,  # little or no exercise
    "light": 1.375,  # 1-3 days/week
    "moderate": 1.55,  # 3-5 days/week
    "active": 1.725,  # 6-7 days/week
    "very_active": 1.9,  # hard exercise and a physical job
}

# Profile activity levels mapped onto the multipliers above
PROFILE_ACTIVITY = {
    "low": "sedentary",
    "moderate": "moderate",
    "high": "active",
}

DEFAULT_WATER_GOAL_ML = 2000


def current_date() -> date:
    """Today's date in UTC."""
    return datetime.now(UTC).date()


def last_n_days(n: int, today: date | None = None) -> list[str]:
    """The last ``n`` dates as YYYY-MM-DD strings, oldest first, ending today."""
    today = today or current_date()
    return [(today - timedelta(days=offset)).isoformat() for offset in range(n - 1, -1, -1)]


def calculate_bmi(weight_kg: float | None, height_cm: float | None) -> float:
    if not weight_kg or not height_cm:
        return 0
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal"
    if bmi < 30:
        return "Overweight"
    return "Obese"


def calculate_water_goal(weight_kg: float | None) -> int:
    """30 ml per kg of body weight, 2 L when the weight is unknown."""
    if not weight_kg:
        return DEFAULT_WATER_GOAL_ML
    return round(weight_kg * 30)


def calculate_age(birthdate: str | None, today: date | None = None) -> int | None:
    if not birthdate:
        return None
    born = date.fromisoformat(birthdate)
    today = today or current_date()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def calculate_bmr(weight_kg: float | None, height_cm: float | None, age: int | None, gender: str = "male") -> float:
    """Basal metabolic rate, Mifflin-St Jeor equation."""
    if not weight_kg or not height_cm or not age:
        return 0
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base + 5 if gender == "male" else base - 161


def calculate_tdee(bmr: float, activity_level: str = "sedentary") -> int:
    """Total daily energy expenditure; unknown levels count as sedentary."""
    if bmr == 0:
        return 0
    activity_level = PROFILE_ACTIVITY.get(activity_level, activity_level)
    return round(bmr * ACTIVITY_MULTIPLIERS.get(activity_level, ACTIVITY_MULTIPLIERS["sedentary"]))
