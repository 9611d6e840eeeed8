from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from ..schemas import HealthResponse


router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Event API is running"


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()
