from .database import DatabaseManager, init_db, close_db, tortoise_config
