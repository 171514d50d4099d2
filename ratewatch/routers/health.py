from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    ctl = request.app.state.controller
    return {
        "status": "ok",
        "base": ctl.active_base.value,
        "cached_bases": len(ctl.cache),
        "torn_down": ctl.torn_down,
    }
