"""
Budget Planner

Prices a stay in Bali from a table of monthly per-person costs:

1. Cost lines of the chosen lifestyle level, multiplied by persons
2. Pet costs (food, vet, grooming, insurance, amortized import fee)
3. Custom monthly expenses
4. Totals for the whole stay, a per-bucket breakdown and seasonal
   variations of the total

Every EUR amount uses the one EUR→IDR rate fetched from the currency
service at the start of the calculation.
"""

from typing import Iterable, Optional

import structlog

from costdata.currency import CurrencyService
from costdata.models.budget import (
    BreakdownEntry,
    CostItem,
    FinancialPlan,
    LifestyleLevel,
    PetCost,
    PetDetails,
    PlanCategory,
    PlanRequest,
    SeasonalVariations,
)


BUDGET = LifestyleLevel.BUDGET
COMFORT = LifestyleLevel.COMFORT
PREMIUM = LifestyleLevel.PREMIUM

# Monthly IDR per person
DEFAULT_COST_TABLE: list[CostItem] = [
    CostItem(category=category, subcategory=subcategory, description=description,
             monthly_cost_idr=amount, lifestyle_level=level)
    for category, subcategory, description, amount, level in [
        ("Housing", "Apartment/Villa", "Monthly rent for 1-2 bedroom", 3_500_000, BUDGET),
        ("Housing", "Apartment/Villa", "Monthly rent for 1-2 bedroom", 8_000_000, COMFORT),
        ("Housing", "Apartment/Villa", "Monthly rent for 2-3 bedroom with pool", 20_000_000, PREMIUM),
        ("Food", "Groceries", "Monthly groceries for 1 person", 1_500_000, BUDGET),
        ("Food", "Groceries", "Monthly groceries for 1 person", 3_000_000, COMFORT),
        ("Food", "Groceries", "Monthly groceries with imported items", 6_000_000, PREMIUM),
        ("Food", "Restaurants", "Eating out per month", 800_000, BUDGET),
        ("Food", "Restaurants", "Mixed local and western restaurants", 2_000_000, COMFORT),
        ("Food", "Restaurants", "Fine dining and cafes", 5_000_000, PREMIUM),
        ("Transportation", "Scooter Rental", "Monthly scooter rental", 500_000, BUDGET),
        ("Transportation", "Scooter Rental", "Monthly scooter rental + fuel", 800_000, COMFORT),
        ("Transportation", "Car Rental", "Monthly car rental + driver", 5_000_000, PREMIUM),
        ("Utilities", "Electricity & Water", "Monthly utilities", 800_000, BUDGET),
        ("Utilities", "Electricity & Water", "Monthly utilities with AC", 1_500_000, COMFORT),
        ("Utilities", "Electricity & Water", "High usage with pool pump", 3_000_000, PREMIUM),
        ("Utilities", "Internet", "High-speed internet", 500_000, BUDGET),
        ("Utilities", "Internet", "High-speed internet", 800_000, COMFORT),
        ("Utilities", "Internet", "Fiber optic + backup", 1_500_000, PREMIUM),
        ("Healthcare", "Insurance", "International health insurance", 1_500_000, BUDGET),
        ("Healthcare", "Insurance", "Comprehensive international insurance", 3_000_000, COMFORT),
        ("Healthcare", "Insurance", "Premium international coverage", 6_000_000, PREMIUM),
        ("Entertainment", "Activities", "Monthly entertainment budget", 1_000_000, BUDGET),
        ("Entertainment", "Activities", "Gym, yoga, activities", 2_000_000, COMFORT),
        ("Entertainment", "Activities", "Club memberships, surfing, diving", 5_000_000, PREMIUM),
        ("Visa", "Visa Extension", "Monthly visa costs average", 1_000_000, BUDGET),
        ("Visa", "Visa Extension", "Business visa + agent fees", 2_000_000, COMFORT),
        ("Visa", "Visa Extension", "KITAS + sponsorship", 4_000_000, PREMIUM),
    ]
]

# Monthly IDR per pet, plus the extra a dog costs on top
PET_FOOD_IDR = 300_000
PET_VET_IDR = 150_000
PET_GROOMING_IDR = 100_000
PET_INSURANCE_IDR = 200_000
DOG_EXTRA_FOOD_IDR = 200_000
DOG_EXTRA_VET_IDR = 100_000
DOG_EXTRA_GROOMING_IDR = 150_000

# One-time import fee, spread over a year
PET_IMPORT_IDR = 3_000_000
DOG_IMPORT_IDR = 5_000_000

BREAKDOWN_BUCKETS = (
    "housing",
    "food",
    "transportation",
    "utilities",
    "healthcare",
    "entertainment",
    "visa",
    "pets",
    "other",
)
PET_CATEGORIES = {"Pet Food", "Pet Healthcare", "Pet Services"}

SEASONAL_FACTORS = {
    "rainy_season": 1.1,
    "dry_season": 1.0,
    "peak_season": 1.3,
    "low_season": 0.9,
}

logger = structlog.get_logger("costdata.budget")


def _priced(category: str, subcategory: str, description: str, monthly_idr: float, rate: float) -> PlanCategory:
    monthly_eur = monthly_idr / rate
    return PlanCategory(
        category=category,
        subcategory=subcategory,
        description=description,
        monthly_idr=monthly_idr,
        monthly_eur=monthly_eur,
        yearly_idr=monthly_idr * 12,
        yearly_eur=monthly_eur * 12,
    )


def breakdown_bucket(category: str) -> str:
    """Breakdown bucket a plan category is summed into."""
    if category in PET_CATEGORIES:
        return "pets"
    bucket = category.lower()
    return bucket if bucket in BREAKDOWN_BUCKETS else "other"


def calculate_pet_costs(pets: int, has_dog: bool, exchange_rate: float) -> PetDetails:
    """
    Monthly pet costs.

    No pets means no pet costs, whatever `has_dog` says.
    """
    if pets <= 0:
        return PetDetails()

    food = pets * PET_FOOD_IDR
    vet = pets * PET_VET_IDR
    grooming = pets * PET_GROOMING_IDR
    insurance = pets * PET_INSURANCE_IDR
    if has_dog:
        food += DOG_EXTRA_FOOD_IDR
        vet += DOG_EXTRA_VET_IDR
        grooming += DOG_EXTRA_GROOMING_IDR
    import_monthly = (DOG_IMPORT_IDR if has_dog else PET_IMPORT_IDR) / 12

    def cost(idr: float) -> PetCost:
        return PetCost(idr=idr, eur=idr / exchange_rate)

    return PetDetails(
        food=cost(food),
        vet=cost(vet),
        grooming=cost(grooming),
        insurance=cost(insurance),
        import_costs=cost(import_monthly),
    )


def calculate_breakdown(categories: Iterable[PlanCategory]) -> dict[str, BreakdownEntry]:
    """Monthly totals per bucket, each with its percentage of the monthly total."""
    totals = {bucket: [0.0, 0.0] for bucket in BREAKDOWN_BUCKETS}
    for line in categories:
        bucket = totals[breakdown_bucket(line.category)]
        bucket[0] += line.monthly_idr
        bucket[1] += line.monthly_eur

    monthly_idr = sum(idr for idr, _ in totals.values())
    return {
        bucket: BreakdownEntry(
            idr=idr,
            eur=eur,
            percentage=(idr / monthly_idr * 100) if monthly_idr else 0.0,
        )
        for bucket, (idr, eur) in totals.items()
    }


class BudgetPlanner:
    """
    Budget plan calculator.

    The cost table is injectable; the default is the Bali table above.
    """

    def __init__(
        self,
        currency: CurrencyService,
        cost_table: Optional[list[CostItem]] = None,
    ):
        self._currency = currency
        self._costs = list(DEFAULT_COST_TABLE if cost_table is None else cost_table)

    def list_costs(self, lifestyle_level: Optional[LifestyleLevel] = None) -> list[CostItem]:
        """Cost lines, optionally only those of one lifestyle level."""
        if lifestyle_level is None:
            return list(self._costs)
        return [cost for cost in self._costs if cost.lifestyle_level == lifestyle_level]

    async def calculate_plan(self, request: PlanRequest) -> FinancialPlan:
        """
        Price a stay.

        Args:
            request: Lifestyle level, duration in months, persons, pets,
                     whether one of the pets is a dog, custom expenses

        Returns:
            The plan with per-line, total, breakdown and seasonal figures
        """
        rate = await self._currency.get_rate("EUR", "IDR")
        eur_to_idr = rate.rate

        categories = [
            _priced(
                cost.category,
                cost.subcategory,
                cost.description,
                cost.monthly_cost_idr * request.persons,
                eur_to_idr,
            )
            for cost in self.list_costs(request.lifestyle_level)
        ]

        pet_details = calculate_pet_costs(request.pets, request.has_dog, eur_to_idr)
        if request.pets > 0:
            pets = request.pets
            categories.append(_priced(
                "Pet Food", "Pet Supplies",
                f"Monthly food and supplies for {pets} pet(s)",
                pet_details.food.idr, eur_to_idr,
            ))
            categories.append(_priced(
                "Pet Healthcare", "Veterinary Care",
                f"Vet visits and insurance for {pets} pet(s)",
                pet_details.vet.idr + pet_details.insurance.idr, eur_to_idr,
            ))
            categories.append(_priced(
                "Pet Services", "Grooming & Care",
                f"Grooming and additional services for {pets} pet(s)",
                pet_details.grooming.idr + pet_details.import_costs.idr, eur_to_idr,
            ))

        for custom in request.custom_categories:
            categories.append(_priced("Custom", custom.name, "Custom expense", custom.amount, eur_to_idr))

        monthly_idr = sum(line.monthly_idr for line in categories)
        total_idr = monthly_idr * request.duration
        total_eur = total_idr / eur_to_idr

        plan = FinancialPlan(
            lifestyle_level=request.lifestyle_level,
            duration=request.duration,
            persons=request.persons,
            pets=request.pets,
            has_dog=request.has_dog,
            total_cost_idr=total_idr,
            total_cost_eur=total_eur,
            exchange_rate=eur_to_idr,
            exchange_rate_source=rate.source,
            categories=categories,
            breakdown=calculate_breakdown(categories),
            seasonal_variations=SeasonalVariations(**{
                season: total_eur * factor for season, factor in SEASONAL_FACTORS.items()
            }),
            pet_details=pet_details,
        )

        logger.info(
            "plan_calculated",
            lifestyle=request.lifestyle_level.value,
            months=request.duration,
            persons=request.persons,
            pets=request.pets,
            total_eur=round(total_eur, 2),
            rate_source=rate.source,
        )
        return plan
