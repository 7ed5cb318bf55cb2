from tortoise import Tortoise
from loguru import logger

from agrohaat.core.config import settings

MODELS_MODULE = "agrohaat.models"


def tortoise_config(db_url: str) -> dict:
    return {
        "connections": {"default": db_url},
        "apps": {
            "models": {
                "models": [MODELS_MODULE],
                "default_connection": "default",
            }
        },
        "use_tz": True,
        "timezone": "UTC",
    }


class DatabaseManager:
    @staticmethod
    async def init(db_url: str | None = None):
        """Initialize database connections and schema"""
        await Tortoise.init(config=tortoise_config(db_url or settings.database_url))
        await Tortoise.generate_schemas(safe=True)
        logger.info("✅ Database schema initialized")

    @staticmethod
    async def close():
        """Close database connections"""
        await Tortoise.close_connections()
        logger.info("🛑 Database connections closed")


async def init_db():
    await DatabaseManager.init()


async def close_db():
    await DatabaseManager.close()
