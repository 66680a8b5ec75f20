import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .settings import get_settings
from .context import AppContext
from .errors import InvalidDateKey, NotFound
from .services.log_api import router as log_router
from .services.library_api import router as library_router

app = FastAPI(title="Lift Log")

app.include_router(log_router, prefix="/api")
app.include_router(library_router, prefix="/api")


@app.exception_handler(InvalidDateKey)
async def invalid_date(request: Request, exc: InvalidDateKey):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFound)
async def not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if getattr(app.state, "context", None) is None:
        app.state.context = await AppContext.open(settings.database_url)
    logging.getLogger(__name__).info("[liftlog] started with %s", settings.database_url)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    context = getattr(app.state, "context", None)
    if context is not None:
        await context.close()


@app.post("/reset-db")
async def reset_db():
    await app.state.context.db.reset()
    return {"reset": True}
