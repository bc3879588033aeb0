from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pulse_recs.api import router
from pulse_recs.config import settings
from pulse_recs.errors import PulseError
from pulse_recs.log import get_logger
from pulse_recs.recommend.ranker import get_service
from pulse_recs.scheduler import create_scheduler

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = create_scheduler(get_service().cache)
    scheduler.start()
    logger.info("scheduler_started")

    yield

    scheduler.shutdown()
    logger.info("shutdown_complete")


app = FastAPI(title="pulse-recs", lifespan=lifespan)
app.include_router(router)


@app.exception_handler(PulseError)
async def pulse_error_handler(request: Request, exc: PulseError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status,
        content={"error": exc.code, "detail": str(exc)},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


def main():
    logger.info("starting", base_url=settings.base_url, log_level=settings.log_level)
    uvicorn.run(
        "pulse_recs.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
