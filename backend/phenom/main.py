import logging
from typing import Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .catalog_routes import router as catalog_router
from .config import Settings, get_settings
from .logging_config import configure_logging
from .profile_routes import router as profile_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Phenom Ear Trainer Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

settings_snapshot = get_settings()
logger.info("Backend starting with stats file: %s", settings_snapshot.stats_path)
logger.info("Remote stats store enabled: %s", settings_snapshot.remote_enabled)

app.include_router(catalog_router)
app.include_router(profile_router)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "persistence_mode": settings.persistence_mode}
