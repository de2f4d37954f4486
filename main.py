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

from db_config import SessionLocal
from app import app
from core.config import settings
from services.category_service import CategoryService

os.makedirs("cache", exist_ok=True)


@app.on_event("startup")
async def seed_reference_data():
    """Make sure the category taxonomy exists before serving requests."""
    logger.info("Starting database initialization")
    with SessionLocal() as db:
        try:
            created = CategoryService(db).seed_taxonomy()
        except Exception as e:
            database_logger.error("Database initialization failed", error=str(e), exc_info=True)
            raise
    logger.info("Database initialization completed successfully", rows_created=created)


# Run the application
if __name__ == "__main__":
    logger.info("Exporting OpenAPI schema")
    output_path = "cache/openapi.json"
    with open(output_path, "w") as f:
        json.dump(app.openapi(), f, indent=2)
    logger.info("OpenAPI schema successfully exported", output_path=output_path)

    logger.info("Starting uvicorn server", host="0.0.0.0", port=8000, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_excludes=["*.pyc", "*.log", "*.db", "*.json"],
        reload_includes=["*.py"],
    )
