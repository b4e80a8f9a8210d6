from typing import List, Optional
from datetime import date
from pydantic import BaseModel

from src.config import settings
from src.enums import Channel, FareCategory
from src.bookings.schemas import BookingCreateRequest

class BookingValidationError(BaseModel):
    error_code: str
    error_message: str
    field: Optional[str] = None

class BookingValidator:
    """Checks a booking request before anything is reserved"""

    def __init__(self, max_passengers: Optional[int] = None):
        self.max_passengers = max_passengers or settings.MAX_PASSENGERS_PER_BOOKING

    def validate_booking_request(
        self,
        request: BookingCreateRequest,
        today: Optional[date] = None,
    ) -> List[BookingValidationError]:
        """Validate a booking request; an empty list means it is acceptable"""
        errors = []

        if not request.passengers:
            errors.append(BookingValidationError(
                error_code="NO_PASSENGERS",
                error_message="At least one passenger is required",
                field="passengers"
            ))
        elif len(request.passengers) > self.max_passengers:
            errors.append(BookingValidationError(
                error_code="TOO_MANY_PASSENGERS",
                error_message=f"Maximum {self.max_passengers} passengers per booking",
                field="passengers"
            ))

        for index, passenger in enumerate(request.passengers):
            if not (passenger.full_name or "").strip():
                errors.append(BookingValidationError(
                    error_code="MISSING_PASSENGER_NAME",
                    error_message=f"Passenger {index + 1} has no name",
                    field=f"passengers[{index}].full_name"
                ))

            try:
                FareCategory(passenger.fare_category)
            except ValueError:
                allowed = ", ".join(c.value for c in FareCategory)
                errors.append(BookingValidationError(
                    error_code="INVALID_FARE_CATEGORY",
                    error_message=f"Passenger {index + 1} has unknown fare category '{passenger.fare_category}' (allowed: {allowed})",
                    field=f"passengers[{index}].fare_category"
                ))

            if passenger.birthdate and today and passenger.birthdate > today:
                errors.append(BookingValidationError(
                    error_code="BIRTHDATE_IN_FUTURE",
                    error_message=f"Passenger {index + 1} has a birthdate in the future",
                    field=f"passengers[{index}].birthdate"
                ))

        # Online bookings need a way to reach the passenger about payment
        if request.channel == Channel.ONLINE:
            if not (request.contact_email or "").strip():
                errors.append(BookingValidationError(
                    error_code="MISSING_CONTACT_EMAIL",
                    error_message="Contact email is required for online bookings",
                    field="contact_email"
                ))
            if not (request.contact_mobile or "").strip():
                errors.append(BookingValidationError(
                    error_code="MISSING_CONTACT_MOBILE",
                    error_message="Contact mobile number is required for online bookings",
                    field="contact_mobile"
                ))

        return errors
