from fastapi import FastAPI
import logging

from tradingroom.api.routes import router
from tradingroom.registry import get_registry, init_registry
from tradingroom.store import seed_catalog

app = FastAPI(title="tradingroom", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Serve the browser client when it is shipped alongside the package.
# Tests and headless deployments have no static directory; don't fail import.
from pathlib import Path

from fastapi.staticfiles import StaticFiles

_static_dir = Path(__file__).resolve().parent / "static"
if _static_dir.exists():
    app.mount("/ui", StaticFiles(directory=str(_static_dir), html=True), name="ui")


@app.on_event("startup")
async def _startup() -> None:
    registry = init_registry()
    seed_catalog(r=registry.r)


@app.on_event("shutdown")
async def _shutdown() -> None:
    get_registry().stop_all()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "tradingroom", "version": "0.1.0"}
