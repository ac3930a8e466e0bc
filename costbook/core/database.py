import functools
import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from pymongo.errors import DuplicateKeyError, PyMongoError

from costbook.core.config import settings
from costbook.core.exceptions import DuplicateRecordError, PersistenceError

logger = logging.getLogger(__name__)


async def init_db():
    """
    Initialize MongoDB connection and Beanie ODM.
    """
    client = AsyncIOMotorClient(settings.DATABASE_URL)

    # Selecting the database name from the URL or default
    default_db = client.get_default_database(default=settings.DATABASE_NAME)
    db_name = default_db.name
    if not db_name or db_name == "test":
        db_name = settings.DATABASE_NAME

    # Import models
    from costbook.models import DOCUMENT_MODELS

    logger.info("Initializing Beanie on database '%s'", db_name)
    await init_beanie(
        database=client[db_name],
        document_models=DOCUMENT_MODELS,
    )
    return client


def database_write(operation: str):
    """
    Decorator for repository writes.

    Unique index violations become DuplicateRecordError (409). Other driver
    errors are logged and re-raised as PersistenceError (502).
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except DuplicateKeyError as e:
                raise DuplicateRecordError(f"{operation} rejected: duplicate key") from e
            except PyMongoError as e:
                logger.error("%s failed: %s", operation, e)
                raise PersistenceError(f"{operation} failed: {e}") from e
        return wrapper
    return decorator
