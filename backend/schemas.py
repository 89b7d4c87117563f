from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# Persisted records ----------------------------------------------------------
class DailyEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    date: str  # YYYY-MM-DD format
    water_ml: int = 0
    calories: int = 0
    steps: int = 0
    created_at: datetime


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int = 1
    name: str | None = ""
    birthdate: str | None = None  # YYYY-MM-DD format
    weight_kg: float | None = None
    height_cm: float | None = None
    activity_level: str | None = None
    daily_water_goal_ml: int | float = 2000
    daily_calorie_goal: int | float = 2000
    daily_step_goal: int | float = 10000
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Medicine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    dosage: str
    frequency: str
    times: list[int]
    instructions: str | None = None
    total_doses: int | None = None
    doses_taken: int = 0
    created_at: datetime
    updated_at: datetime | None = None


class DoseHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    medicine_id: int
    dose_time: int
    taken_at: datetime


# Analytics views ------------------------------------------------------------
class Averages(BaseModel):
    water: int = 0
    calories: int = 0
    steps: int = 0
    days_tracked: int = 0


class Goals(BaseModel):
    water: float = 2000
    calories: float = 2000
    steps: float = 10000


class ChartPoint(BaseModel):
    date: str
    water: int
    calories: int
    steps: int
    label: str


class SummaryStats(BaseModel):
    today: Averages
    this_week: Averages
    last_week: Averages
    trend: str


class Insight(BaseModel):
    type: str
    message: str
    category: str


class Achievement(BaseModel):
    type: str
    title: str
    description: str
    icon: str


# Request bodies -------------------------------------------------------------
class EntryUpsert(BaseModel):
    water_ml: int | float
    calories: int | float
    steps: int | float


class ProfileUpdate(BaseModel):
    name: str | None = None
    birthdate: str | None = None
    weight_kg: float | None = None
    height_cm: float | None = None
    activity_level: str | None = None
    daily_water_goal_ml: int | float | None = None
    daily_calorie_goal: int | float | None = None
    daily_step_goal: int | float | None = None


class MedicineCreate(BaseModel):
    name: str
    dosage: str
    frequency: str
    times: list[int]
    instructions: str | None = None
    total_doses: int | None = None
    doses_taken: int | None = None


class MedicineUpdate(BaseModel):
    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    times: list[int] | None = None
    instructions: str | None = None
    total_doses: int | None = None
    doses_taken: int | None = None


class DoseCreate(BaseModel):
    dose_time: int = Field(..., description="Hour of the day the dose was scheduled for (0-23)")


class ProfileMetrics(BaseModel):
    bmi: float | None = None
    bmi_category: str | None = None
    age: int | None = None
    recommended_water_goal_ml: int
    bmr: float | None = None
    tdee: int | None = None
