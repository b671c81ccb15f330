# recipe_ledger/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recipe_ledger import __version__
from recipe_ledger.app.config import settings
from recipe_ledger.app.deps import get_recipe_store
from recipe_ledger.app.routers.recipes import router as recipes_router

# Plain stdout logging, works for dev and containers
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Recipe Ledger API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)


@app.on_event("startup")
async def startup() -> None:
    # Load the persisted ledger before the first request.
    get_recipe_store()


@app.get("/health")
def health():
    return {"ok": True}
