from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from src.database import get_db
from src.exceptions import BookingEngineError, InvalidInputError, to_http_exception
from src.models import Route
from src.routes.schemas import FareBreakdown, FareQuoteRequest, FareSchedule, CategorySuggestion
from src.routes.fare_service import FareCalculationService, age_on, suggest_fare_category
from src.schedules.time_policy import TimePolicy, get_time_policy

router = APIRouter()

@router.post("/quote", response_model=FareBreakdown)
def quote_fare(
    request: FareQuoteRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Price a passenger list without reserving seats"""

    fare_service = FareCalculationService(db)

    try:
        _get_route(db, request.route_id)
        on_date = request.travel_date or time_policy.today()
        return fare_service.quote(request.route_id, on_date, request.passengers, request.channel)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/suggest-category", response_model=CategorySuggestion)
def suggest_category(
    birthdate: date = Query(..., description="Passenger birthdate"),
    route_id: Optional[int] = Query(None, description="Route whose age bands apply"),
    travel_date: Optional[date] = Query(None, description="Date the age is computed on"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Age-based category suggestion; the passenger's own choice is what gets billed"""

    fare_service = FareCalculationService(db)
    on_date = travel_date or time_policy.today()

    try:
        schedule = fare_service.get_fare_schedule(route_id, on_date)
        category = suggest_fare_category(birthdate, on_date, schedule)
    except BookingEngineError as e:
        raise to_http_exception(e)

    return CategorySuggestion(
        birthdate=birthdate,
        on_date=on_date,
        age=age_on(birthdate, on_date),
        suggested_category=category
    )

@router.get("/routes/{route_id}", response_model=FareSchedule)
def get_route_fares(
    route_id: int,
    on_date: Optional[date] = Query(None, description="Date the fare rule must cover"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Fare schedule in force on a route"""

    try:
        _get_route(db, route_id)
        return FareCalculationService(db).get_fare_schedule(route_id, on_date or time_policy.today())
    except BookingEngineError as e:
        raise to_http_exception(e)

def _get_route(db: Session, route_id: int) -> Route:
    route = db.query(Route).filter(Route.id == route_id).first()
    if not route:
        raise InvalidInputError(f"Route {route_id} not found", field="route_id")
    return route
