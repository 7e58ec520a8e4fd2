"""FastAPI main application for the Canadian Salad game backend"""

import logging
import os

from .ws import create_app

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format='%(asctime)s %(levelname)s %(name)s %(message)s'
)
logger = logging.getLogger(__name__)

app = create_app()


@app.get("/")
async def root():
    return {"message": "Canadian Salad Game API", "version": "1.0.0"}
