"""
Data Sources Package

Pluggable providers consulted by the resolver in priority order.
"""

from costdata.services.sources.base import (
    CitySource,
    CountrySource,
    SourceError,
    SourceUnavailableError,
    get_json,
)
from costdata.services.sources.estimator import (
    COUNTRY_ESTIMATES,
    CityEstimator,
    CountryEstimator,
)
from costdata.services.sources.exchange_rates import ExchangeRateSource
from costdata.services.sources.geocoding import OpenMeteoGeocodingSource
from costdata.services.sources.restcountries import RestCountriesSource

__all__ = [
    # Interfaces
    "CitySource",
    "CountrySource",
    "get_json",
    # Exceptions
    "SourceError",
    "SourceUnavailableError",
    # Live sources
    "ExchangeRateSource",
    "OpenMeteoGeocodingSource",
    "RestCountriesSource",
    # Estimators
    "COUNTRY_ESTIMATES",
    "CityEstimator",
    "CountryEstimator",
]
