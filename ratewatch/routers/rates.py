from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from typing import List

from ratewatch.models.rates import (
    CacheEntryOut,
    ConversionOut,
    FailureNoticeOut,
    RatesSnapshot,
)
from ratewatch.services.rate_service import RateController

"""Rates router: the collaborator surface of the rate controller.

Endpoints:
    - GET  /rates                    -> snapshot (rates, display rows, flags)
    - PUT  /rates/base               -> change base {base}
    - PUT  /rates/displayed/{code}   -> show / hide a currency {displayed}
    - POST /rates/refresh            -> force refresh (bypasses the limiter)
    - POST /rates/preload            -> start a preload pass in the background
    - GET  /rates/convert?amount=    -> amount in each displayed currency
    - GET  /rates/notifications      -> terminal base-change failures
    - GET  /rates/cache              -> cached bases and freshness

Codes are case-insensitive; unsupported codes answer 400.
"""

router = APIRouter(prefix="/rates", tags=["rates"])


def get_controller(request: Request) -> RateController:
    return request.app.state.controller


class BaseChangePayload(BaseModel):
    base: str = Field(..., min_length=3, max_length=3, description="Currency code")


class DisplayedPayload(BaseModel):
    displayed: bool


@router.get("", response_model=RatesSnapshot, summary="Current rates and flags")
async def get_rates(ctl: RateController = Depends(get_controller)):
    return ctl.snapshot()


@router.put("/base", response_model=RatesSnapshot, summary="Change the base currency")
async def change_base(
    payload: BaseChangePayload, ctl: RateController = Depends(get_controller)
):
    await ctl.set_active_base(payload.base)
    return ctl.snapshot()


@router.put(
    "/displayed/{code}",
    response_model=RatesSnapshot,
    summary="Show or hide a currency",
)
async def set_displayed(
    code: str,
    payload: DisplayedPayload,
    ctl: RateController = Depends(get_controller),
):
    ctl.set_displayed(code, payload.displayed)
    return ctl.snapshot()


@router.post("/refresh", response_model=RatesSnapshot, summary="Force a refresh")
async def force_refresh(ctl: RateController = Depends(get_controller)):
    await ctl.request_force_refresh()
    return ctl.snapshot()


@router.post("/preload", status_code=202, summary="Start a preload pass")
async def preload(ctl: RateController = Depends(get_controller)):
    task = ctl.start_preload()
    return {"status": "started", "running": task.running}


@router.get("/convert", response_model=ConversionOut, summary="Convert an amount")
async def convert(
    amount: float = Query(1.0, ge=0, description="Amount in the base currency"),
    ctl: RateController = Depends(get_controller),
):
    return ConversionOut(
        base=ctl.active_base, amount=amount, conversions=ctl.convert(amount)
    )


@router.get(
    "/notifications",
    response_model=List[FailureNoticeOut],
    summary="Terminal base-change failures",
)
async def notifications(ctl: RateController = Depends(get_controller)):
    return [FailureNoticeOut.from_notice(n) for n in ctl.notifications]


@router.get("/cache", response_model=List[CacheEntryOut], summary="Cached rate tables")
async def cache_entries(ctl: RateController = Depends(get_controller)):
    now = ctl.clock()
    return [
        CacheEntryOut(
            base=e.base,
            fetched_at=e.fetched_at,
            fresh=ctl.cache.is_fresh(e, now, ctl.cache.ttl),
            rates=e.rates,
        )
        for e in ctl.cache_entries()
    ]

