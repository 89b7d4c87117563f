import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

import analytics
from calculations import bmi_category, calculate_age, calculate_bmi, calculate_bmr, calculate_tdee, calculate_water_goal
from errors import HealthTrackerError, InputError, NotFoundError, StorageUnavailableError, ValidationError
from schemas import (
    Achievement,
    Averages,
    ChartPoint,
    DailyEntry,
    DoseCreate,
    DoseHistoryEntry,
    EntryUpsert,
    Insight,
    Medicine,
    MedicineCreate,
    MedicineUpdate,
    ProfileMetrics,
    ProfileUpdate,
    SummaryStats,
    UserProfile,
)
from storage import create_storage
from store import RecordStore, default_profile

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_store: RecordStore | None = None

ERROR_STATUS = (
    (InputError, 400),
    (NotFoundError, 404),
    (ValidationError, 422),
    (StorageUnavailableError, 503),
)


def get_store() -> RecordStore:
    """Record store over the backend picked by STORAGE_BACKEND (created once)."""
    global _store
    if _store is None:
        _store = RecordStore(create_storage())
    return _store


def to_http_error(error: HealthTrackerError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize storage on startup."""
    store = app.dependency_overrides.get(get_store, get_store)()
    await store.initialize()
    logger.info("Record store initialized")
    yield


# Create FastAPI app
app = FastAPI(title="Health Tracker API", version="1.0.0", lifespan=lifespan)

# Local presentation layer (web build or device shell) calls from its own origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Daily entries --------------------------------------------------------------
@app.get("/entries", response_model=list[DailyEntry])
async def get_entries(
    date_from: str = Query(..., description="Start date (YYYY-MM-DD), inclusive"),
    date_to: str = Query(..., description="End date (YYYY-MM-DD), inclusive"),
    store: RecordStore = Depends(get_store),
):
    """Get entries between two dates, oldest first."""
    logger.info(f"Entries request - from: {date_from}, to: {date_to}")
    try:
        return await store.get_entries_in_range(date_from, date_to)
    except HealthTrackerError as e:
        logger.error(f"Error getting entries: {str(e)}")
        raise to_http_error(e) from e


@app.get("/entries/{date}", response_model=DailyEntry)
async def get_entry(date: str, store: RecordStore = Depends(get_store)):
    try:
        entry = await store.get_entry(date)
    except HealthTrackerError as e:
        logger.error(f"Error getting entry for {date}: {str(e)}")
        raise to_http_error(e) from e
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


@app.put("/entries/{date}", response_model=DailyEntry)
async def upsert_entry(date: str, request: EntryUpsert, store: RecordStore = Depends(get_store)):
    """Create or replace the entry for a day."""
    try:
        return await store.upsert_entry(date, request.water_ml, request.calories, request.steps)
    except HealthTrackerError as e:
        logger.error(f"Error saving daily entry: {str(e)}")
        raise to_http_error(e) from e


# Profile --------------------------------------------------------------------
@app.get("/profile", response_model=UserProfile)
async def get_profile(store: RecordStore = Depends(get_store)):
    try:
        profile = await store.get_profile()
    except HealthTrackerError as e:
        logger.error(f"Error getting user profile: {str(e)}")
        raise to_http_error(e) from e
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@app.put("/profile", response_model=UserProfile)
async def replace_profile(request: ProfileUpdate, store: RecordStore = Depends(get_store)):
    """Replace the whole profile with the given fields."""
    try:
        return await store.save_profile(request.model_dump(exclude_unset=True))
    except HealthTrackerError as e:
        logger.error(f"Error saving user profile: {str(e)}")
        raise to_http_error(e) from e


@app.patch("/profile", response_model=UserProfile)
async def update_profile(request: ProfileUpdate, store: RecordStore = Depends(get_store)):
    """Merge the given fields onto the stored profile, then save the result."""
    try:
        current = await store.get_profile()
        base = current.model_dump(mode="json") if current else default_profile()
        return await store.save_profile({**base, **request.model_dump(exclude_unset=True)})
    except HealthTrackerError as e:
        logger.error(f"Error updating user profile: {str(e)}")
        raise to_http_error(e) from e


@app.get("/profile/metrics", response_model=ProfileMetrics)
async def get_profile_metrics(store: RecordStore = Depends(get_store)):
    """Body metrics and suggested goals derived from the stored profile."""
    try:
        profile = await store.get_profile()
    except HealthTrackerError as e:
        raise to_http_error(e) from e
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    bmi = calculate_bmi(profile.weight_kg, profile.height_cm)
    age = calculate_age(profile.birthdate)
    bmr = calculate_bmr(profile.weight_kg, profile.height_cm, age)
    return ProfileMetrics(
        bmi=bmi or None,
        bmi_category=bmi_category(bmi) if bmi else None,
        age=age,
        recommended_water_goal_ml=calculate_water_goal(profile.weight_kg),
        bmr=bmr or None,
        tdee=calculate_tdee(bmr, profile.activity_level or "sedentary") or None,
    )


# Medicines ------------------------------------------------------------------
@app.get("/medicines", response_model=list[Medicine])
async def list_medicines(store: RecordStore = Depends(get_store)):
    try:
        return await store.list_medicines()
    except HealthTrackerError as e:
        logger.error(f"Error getting medicines: {str(e)}")
        raise to_http_error(e) from e


@app.post("/medicines", response_model=Medicine, status_code=201)
async def add_medicine(request: MedicineCreate, store: RecordStore = Depends(get_store)):
    try:
        medicine_id = await store.add_medicine(request.model_dump(exclude_none=True))
        return await store.get_medicine(medicine_id)
    except HealthTrackerError as e:
        logger.error(f"Error saving medicine: {str(e)}")
        raise to_http_error(e) from e


@app.patch("/medicines/{medicine_id}", response_model=Medicine)
async def update_medicine(medicine_id: int, request: MedicineUpdate, store: RecordStore = Depends(get_store)):
    try:
        return await store.update_medicine(medicine_id, request.model_dump(exclude_unset=True))
    except HealthTrackerError as e:
        logger.error(f"Error updating medicine: {str(e)}")
        raise to_http_error(e) from e


@app.delete("/medicines/{medicine_id}")
async def remove_medicine(medicine_id: int, store: RecordStore = Depends(get_store)):
    """Delete a medicine. Its dose history is kept."""
    try:
        await store.remove_medicine(medicine_id)
    except HealthTrackerError as e:
        logger.error(f"Error deleting medicine: {str(e)}")
        raise to_http_error(e) from e
    return {"ok": True}


@app.post("/medicines/{medicine_id}/doses", response_model=DoseHistoryEntry, status_code=201)
async def record_dose(medicine_id: int, request: DoseCreate, store: RecordStore = Depends(get_store)):
    try:
        return await store.record_dose(medicine_id, request.dose_time)
    except HealthTrackerError as e:
        logger.error(f"Error recording dose: {str(e)}")
        raise to_http_error(e) from e


@app.get("/doses", response_model=list[DoseHistoryEntry])
async def get_dose_history(
    limit: int = Query(50, ge=0, description="Maximum number of doses, most recent first"),
    store: RecordStore = Depends(get_store),
):
    try:
        return await store.get_dose_history(limit)
    except HealthTrackerError as e:
        logger.error(f"Error getting dose history: {str(e)}")
        raise to_http_error(e) from e


# Analytics ------------------------------------------------------------------
@app.get("/analytics/averages", response_model=Averages)
async def get_averages(
    start: str = Query(..., description="Window start date (YYYY-MM-DD)"),
    end: str = Query(..., description="Window end date (YYYY-MM-DD)"),
    store: RecordStore = Depends(get_store),
):
    try:
        return await analytics.averages_over_range(store, start, end)
    except HealthTrackerError as e:
        logger.error(f"Error calculating averages: {str(e)}")
        raise to_http_error(e) from e


@app.get("/analytics/progress")
def get_progress(current: float = Query(..., ge=0), goal: float = Query(..., ge=0)):
    return {"progress": analytics.progress_percentage(current, goal)}


@app.get("/analytics/chart", response_model=list[ChartPoint])
async def get_chart(days: int = Query(7, ge=0, le=366), store: RecordStore = Depends(get_store)):
    try:
        return await analytics.chart_series(store, days)
    except HealthTrackerError as e:
        logger.error(f"Error getting chart data: {str(e)}")
        raise to_http_error(e) from e


@app.get("/analytics/summary", response_model=SummaryStats)
async def get_summary(store: RecordStore = Depends(get_store)):
    try:
        return await analytics.summary_stats(store)
    except HealthTrackerError as e:
        logger.error(f"Error getting summary stats: {str(e)}")
        raise to_http_error(e) from e


async def _this_week_and_goals(store: RecordStore):
    summary = await analytics.summary_stats(store)
    goals = analytics.goals_from_profile(await store.get_profile())
    return summary, goals


@app.get("/analytics/insights", response_model=list[Insight])
async def get_insights(store: RecordStore = Depends(get_store)):
    """Insights for this week's averages against the profile goals."""
    try:
        summary, goals = await _this_week_and_goals(store)
    except HealthTrackerError as e:
        logger.error(f"Error getting insights: {str(e)}")
        raise to_http_error(e) from e
    return analytics.insights(summary.this_week, goals, summary.trend)


@app.get("/analytics/achievements", response_model=list[Achievement])
async def get_achievements(store: RecordStore = Depends(get_store)):
    try:
        summary, goals = await _this_week_and_goals(store)
    except HealthTrackerError as e:
        logger.error(f"Error getting achievements: {str(e)}")
        raise to_http_error(e) from e
    return analytics.achievements(summary.this_week, goals)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Health Tracker API", "docs": "/docs"}
