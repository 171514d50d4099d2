"""Smoke script for the rate controller.

Demonstrates against the configured provider (RATEWATCH_RATE_PROVIDER,
default fxratesapi):
 1. Initial fetch for the default base.
 2. Immediate second refresh is throttled by the limiter.
 3. Base change to USD (rollback + retry if the provider refuses).
 4. One preload pass with a short delay.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import asyncio
from pprint import pprint

from ratewatch.core.config import get_settings
from ratewatch.core.logging import init_logging
from ratewatch.services.rate_service import RateController


async def run():
    settings = get_settings()
    init_logging(debug=True)
    settings.preload_delay_seconds = 1.0
    ctl = RateController(settings)
    out = {}
    try:
        first = await ctl.refresh()
        out["initial"] = {
            "status": first.status.value if first else "failed",
            "snapshot": ctl.snapshot().model_dump(mode="json"),
        }

        second = await ctl.refresh()
        out["second"] = second.status.value if second else "failed"

        await ctl.set_active_base("USD")
        out["after_base_change"] = ctl.snapshot().model_dump(mode="json")
        out["notifications"] = [n.message for n in ctl.notifications]

        report = await ctl.preload()
        out["preload"] = {
            "fetched": [c.value for c in report.fetched],
            "skipped": [c.value for c in report.skipped],
            "failed": [c.value for c in report.failed],
        }
        out["cache"] = {
            e.base.value: e.fetched_at.isoformat() for e in ctl.cache_entries()
        }
    finally:
        await ctl.teardown()

    pprint(out)


if __name__ == "__main__":
    asyncio.run(run())
