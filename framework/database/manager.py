from .sql_driver import SQLDriver
from .redis_driver import RedisDriver

class DatabaseManager:
    """Process-wide holder of the SQL engine and the Redis client."""
    _instance = None

    def __init__(self, settings):
        self.sql = SQLDriver(settings.DATABASE_URL)
        self.redis = RedisDriver(settings.REDIS_URL)

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from framework.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    async def shutdown(self):
        await self.redis.disconnect()
        await self.sql.disconnect()
