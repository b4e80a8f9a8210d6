from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from datetime import date
from decimal import Decimal

from src.enums import Channel, FareCategory

class FareSchedule(BaseModel):
    """Discount schedule and fees in force for one route on one date"""
    route_id: Optional[int] = None
    fare_rule_id: Optional[int] = None
    base_fare_cents: int = Field(..., ge=0)
    discount_percents: Dict[FareCategory, Decimal]
    infant_max_age: int = 2
    child_min_age: int = 3
    child_max_age: int = 10
    senior_min_age: int = 60
    platform_fee_cents: int = Field(..., ge=0)
    processing_fee_cents: int = Field(..., ge=0)
    platform_fee_applies_walk_in: bool = True

class PassengerFareLine(BaseModel):
    """Billed price of one passenger"""
    position: int
    full_name: str
    fare_category: FareCategory
    discount_percent: Decimal
    price_cents: int

class FareBreakdown(BaseModel):
    """Priced booking; grand total is derived from the stored lines"""
    base_fare_cents: int
    channel: Channel
    lines: List[PassengerFareLine]
    fare_subtotal_cents: int
    platform_fee_per_passenger_cents: int
    platform_fee_total_cents: int
    processing_fee_cents: int
    grand_total_cents: int
    currency: str = "PHP"

    def recomputed_total(self) -> int:
        subtotal = sum(line.price_cents for line in self.lines)
        platform_total = self.platform_fee_per_passenger_cents * len(self.lines)
        return subtotal + platform_total + self.processing_fee_cents

    def verify(self) -> bool:
        """True when every stored total can be reproduced from the lines"""
        subtotal = sum(line.price_cents for line in self.lines)
        return (
            subtotal == self.fare_subtotal_cents
            and self.platform_fee_per_passenger_cents * len(self.lines) == self.platform_fee_total_cents
            and self.recomputed_total() == self.grand_total_cents
        )

class FareQuotePassenger(BaseModel):
    full_name: str = ""
    fare_category: FareCategory = FareCategory.ADULT

class FareQuoteRequest(BaseModel):
    """Price a passenger list on a route without reserving anything"""
    route_id: int
    channel: Channel = Channel.ONLINE
    travel_date: Optional[date] = None
    passengers: List[FareQuotePassenger] = Field(..., min_length=1)

class CategorySuggestion(BaseModel):
    birthdate: date
    on_date: date
    age: int
    suggested_category: FareCategory
