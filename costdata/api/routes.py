"""
HTTP Routes

Thin layer over the resolver, currency service and budget planner.

Every response is JSON with a `success` flag:
- 200 {success: true, ...payload}
- 400 {success: false, error} for malformed keys or bodies
- 404 {success: false, error} when nothing knows the key
- 500 {success: false, error} for anything unexpected
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from costdata.budget import BudgetPlanner
from costdata.currency import CurrencyService
from costdata.models.budget import LifestyleLevel, PlanRequest
from costdata.resolver import TieredDataResolver
from costdata.validation import (
    InvalidKeyError,
    normalize_city_name,
    normalize_country_code,
    normalize_currency_code,
)

router = APIRouter(prefix="/api", tags=["cost-data"])

logger = structlog.get_logger("costdata.api")


def get_resolver(request: Request) -> TieredDataResolver:
    return request.app.state.components.resolver


def get_currency_service(request: Request) -> CurrencyService:
    return request.app.state.components.currency


def get_planner(request: Request) -> BudgetPlanner:
    components = request.app.state.components
    return components.planner or BudgetPlanner(components.currency)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/countries")
async def list_countries(resolver: TieredDataResolver = Depends(get_resolver)):
    """All cached countries (never fetches)."""
    try:
        countries = await resolver.list_cached_countries()
    except Exception as e:
        logger.error("list_countries_failed", error=str(e))
        return error_response(500, "Failed to fetch countries")

    return {
        "success": True,
        "countries": [_dump(country) for country in countries],
        "count": len(countries),
    }


@router.get("/countries/{code}")
async def get_country(code: str, resolver: TieredDataResolver = Depends(get_resolver)):
    """Data for one country, fetched if not cached. Example: /api/countries/ID"""
    try:
        country_code = normalize_country_code(code)
    except InvalidKeyError as e:
        return error_response(400, e.message)

    try:
        country = await resolver.resolve_country(country_code)
    except Exception as e:
        logger.error("get_country_failed", code=country_code, error=str(e))
        return error_response(500, "Failed to fetch country data")

    if country is None:
        return error_response(404, f"Country data not found for {country_code}")

    return {"success": True, "country": _dump(country)}


@router.get("/countries/{code}/cities")
async def list_cities(code: str, resolver: TieredDataResolver = Depends(get_resolver)):
    """Cached cities of one country, largest first (never fetches)."""
    try:
        country_code = normalize_country_code(code)
    except InvalidKeyError as e:
        return error_response(400, e.message)

    try:
        cities = await resolver.list_cached_cities(country_code)
    except Exception as e:
        logger.error("list_cities_failed", code=country_code, error=str(e))
        return error_response(500, "Failed to fetch cities")

    return {
        "success": True,
        "cities": [_dump(city) for city in cities],
        "count": len(cities),
    }


@router.get("/cities/{country}/{city}")
async def get_city(country: str, city: str, resolver: TieredDataResolver = Depends(get_resolver)):
    """Data for one city, fetched if not cached. Example: /api/cities/ID/Ubud"""
    try:
        country_code = normalize_country_code(country)
        city_name = normalize_city_name(city)
    except InvalidKeyError as e:
        return error_response(400, e.message)

    try:
        city_data = await resolver.resolve_city(city_name, country_code)
    except Exception as e:
        logger.error("get_city_failed", code=country_code, city=city_name, error=str(e))
        return error_response(500, "Failed to fetch city data")

    if city_data is None:
        return error_response(404, f"City data not found for {city_name}, {country_code}")

    return {"success": True, "city": _dump(city_data)}


@router.get("/currency/{from_currency}/{to_currency}")
async def get_exchange_rate(
    from_currency: str,
    to_currency: str,
    currency: CurrencyService = Depends(get_currency_service),
):
    """Exchange rate between two currencies. Example: /api/currency/EUR/IDR"""
    try:
        source_code = normalize_currency_code(from_currency)
        target_code = normalize_currency_code(to_currency)
    except InvalidKeyError as e:
        return error_response(400, e.message)

    try:
        rate = await currency.get_rate(source_code, target_code)
    except Exception as e:
        logger.error("get_exchange_rate_failed", pair=f"{source_code}/{target_code}", error=str(e))
        return error_response(500, "Failed to fetch exchange rate")

    return {
        "success": True,
        "from": source_code,
        "to": target_code,
        "rate": rate.rate,
        "source": rate.source,
        "timestamp": rate.timestamp.isoformat(),
    }


@router.get("/bali-costs")
async def list_bali_costs(
    lifestyle: Optional[LifestyleLevel] = None,
    planner: BudgetPlanner = Depends(get_planner),
):
    """Monthly per-person cost lines. Example: /api/bali-costs?lifestyle=comfort"""
    costs = planner.list_costs(lifestyle)
    return {
        "success": True,
        "costs": [_dump(cost) for cost in costs],
        "count": len(costs),
    }


@router.post("/plan")
async def calculate_plan(plan_request: PlanRequest, planner: BudgetPlanner = Depends(get_planner)):
    """Price a stay in Bali. Amounts in IDR and EUR."""
    try:
        plan = await planner.calculate_plan(plan_request)
    except Exception as e:
        logger.error("calculate_plan_failed", lifestyle=plan_request.lifestyle_level.value, error=str(e))
        return error_response(500, "Failed to calculate financial plan")

    return {"success": True, "plan": _dump(plan)}
