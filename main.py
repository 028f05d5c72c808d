"""
Trip Booking Backend
====================
Serves the trip booking API (``/api/v1``, docs at ``/docs``).

    alembic upgrade head      # create / migrate the schema
    python seed.py            # optional sample accounts and trips
    uvicorn main:app --reload
"""

import uvicorn

from src.api.app import create_app
from src.config import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=True,
    )
