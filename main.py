"""
FastAPI main application entry point.
"""

import json
import os
import uvicorn

# Import logging system first
from core.logging import setup_logging, get_logger, database_logger

# Setup logging early
setup_logging()
logger = get_logger("main")

from db_config import Base, async_engine
import models  # noqa: F401 - registers tables on Base.metadata
from app import app
from core.config import settings

os.makedirs("cache", exist_ok=True)


@app.on_event("startup")
async def startup_db_client():
    """Create missing tables when running without migrations."""
    if not settings.auto_create_tables:
        logger.info("Skipping table creation; schema is managed by migrations")
        return

    logger.info("Creating database tables")
    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready", tables=sorted(Base.metadata.tables))
    except Exception as e:
        database_logger.error("Database initialization failed", error=str(e), exc_info=True)
        raise


# Run the application
if __name__ == "__main__":
    # Export OpenAPI schema to a JSON file
    try:
        logger.info("Exporting OpenAPI schema")
        output_path = "cache/openapi.json"
        with open(output_path, "w") as f:
            json.dump(app.openapi(), f, indent=2)
        logger.info("OpenAPI schema successfully exported", output_path=output_path)
    except OSError as e:
        logger.error("Error exporting OpenAPI schema", error=str(e), exc_info=True)

    logger.info("Starting uvicorn server", host="0.0.0.0", port=8000)
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )
