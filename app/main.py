"""
ASGI entrypoint for the Cost Data API.

Run locally with:
    uvicorn app.main:app --reload

Configuration comes from environment variables and .env
(see costdata/config/settings.py).
"""

from costdata.api import create_app

app = create_app()
