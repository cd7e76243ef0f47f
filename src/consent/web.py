"""
Consent Web App - FastAPI application hosting the consent router.
"""

from fastapi import FastAPI

from . import __version__
from .api import router as consent_router

app = FastAPI(title="Consent", version=__version__)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(consent_router, prefix="/api")
