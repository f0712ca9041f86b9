"""
Budget Plan Models

A budget plan prices a stay in Bali for a lifestyle level, a number of
persons and pets over a number of months. Amounts are kept in IDR (the
currency costs are quoted in) and converted to EUR with a single
EUR→IDR rate captured when the plan is calculated.

DESIGN DECISION: A plan is a computed snapshot, never stored.
Recalculating with the same inputs and rate gives the same numbers.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from costdata.models.location import CamelModel, utc_now


class LifestyleLevel(str, Enum):
    """Spending tier a cost line belongs to."""
    BUDGET = "budget"
    COMFORT = "comfort"
    PREMIUM = "premium"


class CostItem(CamelModel):
    """One monthly cost line for one person at one lifestyle level."""

    category: str = Field(..., min_length=1, max_length=50)
    subcategory: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=200)
    monthly_cost_idr: float = Field(..., ge=0, alias="monthlyCostIDR")
    lifestyle_level: LifestyleLevel


class CustomCategory(CamelModel):
    """A user-defined monthly expense, in IDR, added on top of the plan."""

    name: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., ge=0, description="Monthly amount in IDR")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class PlanRequest(CamelModel):
    """Inputs of a plan calculation."""

    lifestyle_level: LifestyleLevel = Field(default=LifestyleLevel.COMFORT)
    duration: int = Field(default=12, ge=1, le=120, description="Length of stay in months")
    persons: int = Field(default=1, ge=1, le=20)
    pets: int = Field(default=0, ge=0, le=20)
    has_dog: bool = Field(default=False)
    custom_categories: list[CustomCategory] = Field(default_factory=list, max_length=50)


class PlanCategory(CamelModel):
    """A priced line of the plan."""

    category: str
    subcategory: str
    description: str
    monthly_idr: float = Field(..., alias="monthlyIDR")
    monthly_eur: float = Field(..., alias="monthlyEUR")
    yearly_idr: float = Field(..., alias="yearlyIDR")
    yearly_eur: float = Field(..., alias="yearlyEUR")


class BreakdownEntry(CamelModel):
    """Monthly total of one breakdown bucket and its share of the whole."""

    idr: float = 0.0
    eur: float = 0.0
    percentage: float = 0.0


class PetCost(CamelModel):
    idr: float = 0.0
    eur: float = 0.0


class PetDetails(CamelModel):
    """Monthly pet costs. `import_costs` is the one-time import fee spread over 12 months."""

    food: PetCost = Field(default_factory=PetCost)
    vet: PetCost = Field(default_factory=PetCost)
    grooming: PetCost = Field(default_factory=PetCost)
    insurance: PetCost = Field(default_factory=PetCost)
    import_costs: PetCost = Field(default_factory=PetCost, alias="import")


class SeasonalVariations(CamelModel):
    """Total plan cost in EUR adjusted for the season."""

    rainy_season: float
    dry_season: float
    peak_season: float
    low_season: float


class FinancialPlan(CamelModel):
    """A calculated budget plan."""

    plan_id: UUID = Field(default_factory=uuid4, alias="id")
    lifestyle_level: LifestyleLevel
    duration: int
    persons: int
    pets: int
    has_dog: bool

    total_cost_idr: float = Field(..., alias="totalCostIDR")
    total_cost_eur: float = Field(..., alias="totalCostEUR")
    exchange_rate: float = Field(..., gt=0, description="IDR per 1 EUR used for every conversion")
    exchange_rate_source: str

    categories: list[PlanCategory]
    breakdown: dict[str, BreakdownEntry]
    seasonal_variations: SeasonalVariations
    pet_details: PetDetails
    calculated_at: datetime = Field(default_factory=utc_now)
