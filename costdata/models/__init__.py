"""
Data Models Package

This package contains all Pydantic models used by Cost Data.
All data flowing through the resolver must conform to these schemas.
"""

from costdata.models.location import (
    CityRecord,
    CitySummary,
    CountryRecord,
    CountrySummary,
    DataQuality,
    ExchangeRate,
    LookupKind,
    utc_now,
)
from costdata.models.audit import (
    RequestLogBuilder,
    RequestLogEntry,
)
from costdata.models.budget import (
    BreakdownEntry,
    CostItem,
    CustomCategory,
    FinancialPlan,
    LifestyleLevel,
    PetCost,
    PetDetails,
    PlanCategory,
    PlanRequest,
    SeasonalVariations,
)

__all__ = [
    # Location models
    "CityRecord",
    "CitySummary",
    "CountryRecord",
    "CountrySummary",
    "DataQuality",
    "ExchangeRate",
    "LookupKind",
    "utc_now",
    # Request log models
    "RequestLogBuilder",
    "RequestLogEntry",
    # Budget plan models
    "BreakdownEntry",
    "CostItem",
    "CustomCategory",
    "FinancialPlan",
    "LifestyleLevel",
    "PetCost",
    "PetDetails",
    "PlanCategory",
    "PlanRequest",
    "SeasonalVariations",
]
