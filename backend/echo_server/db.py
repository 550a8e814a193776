# echo_server/db.py
import logging
from pymongo.server_api import ServerApi
from motor.motor_asyncio import AsyncIOMotorClient

from . import config

# Initialize logger for this module
logger = logging.getLogger(__name__)

# Use AsyncIOMotorClient for asynchronous operations. Connecting is lazy,
# nothing touches the network until the first command.
client = AsyncIOMotorClient(config.MONGO_URI, server_api=ServerApi('1'))

db = client[config.MONGO_DB_NAME]
memories_collection = db["memories"]
unlocks_collection = db["memory_unlocks"]


async def ping() -> bool:
    try:
        await client.admin.command('ping')
        logger.info("Pinged your deployment. Successfully connected to MongoDB!")
        return True
    except Exception as e:
        logger.error(f"MongoDB connection failed: {e}")
        return False
