"""
Cost Data - Source Package

Country and city cost-of-living data for expatriate budget planning.
Answers come from a local cache first, then from an ordered chain of
live data sources, then from a deterministic estimator. A budget planner
prices a stay in Bali on top of the currency service.

DESIGN PRINCIPLES:
1. Callers always get a well-formed answer or a well-formed "not found"
2. Every lookup is logged with its latency and outcome
3. Data quality is always visible (verified vs estimated)
4. Storage and data sources are swappable
"""

__version__ = "1.0.0"
__author__ = "Cost Data Team"
