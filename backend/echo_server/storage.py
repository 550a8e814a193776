from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from pymongo import ReturnDocument

from . import db
from .geo import nearby_pipeline
from .models import AccessType, MemoryEntry, MemoryUnlock, MemoryUpdate, UnlockCreate
from .utils import serialize_doc, to_object_id

logger = logging.getLogger(__name__)

# ------------------------
# Memory Operations
# ------------------------

async def create_memory(entry: MemoryEntry) -> Dict:
    doc = entry.model_dump()
    result = await db.memories_collection.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"Memory {result.inserted_id} created by {entry.user_id} ({entry.emotion})")
    return serialize_doc(doc)


async def get_memory_by_id(memory_id: str) -> Optional[Dict]:
    obj_id = to_object_id(memory_id)
    if obj_id is None:
        return None
    doc = await db.memories_collection.find_one({"_id": obj_id, "is_active": True})
    return serialize_doc(doc)


async def get_user_memories(user_id: str) -> List[Dict]:
    cursor = db.memories_collection.find({"user_id": user_id, "is_active": True}).sort("created_at", -1)
    return [serialize_doc(doc) for doc in await cursor.to_list(length=None)]


async def get_memories_near_location(lat: float, lng: float, radius_km: float, limit: int = 50) -> List[Dict]:
    """
    Public memories within radius_km of the point, nearest first. The haversine
    distance is computed inside MongoDB and returned as `distance_km`.
    """
    cursor = db.memories_collection.aggregate(nearby_pipeline(lat, lng, radius_km, limit))
    return [serialize_doc(doc) for doc in await cursor.to_list(length=limit)]


async def update_memory(memory_id: str, user_id: str, update: MemoryUpdate) -> Optional[Dict]:
    """Edits the mutable fields of a memory the user owns. None when missing or not theirs."""
    obj_id = to_object_id(memory_id)
    if obj_id is None:
        return None

    query = {"_id": obj_id, "user_id": user_id, "is_active": True}
    changes = update.model_dump(exclude_none=True)
    if not changes:
        doc = await db.memories_collection.find_one(query)
    else:
        doc = await db.memories_collection.find_one_and_update(
            query,
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
    return serialize_doc(doc)


async def delete_memory(memory_id: str, user_id: str) -> bool:
    """
    Soft delete: the memory is marked inactive, which drops it from every
    lookup, the nearby query and the emotion map. Its unlocks are kept.
    """
    obj_id = to_object_id(memory_id)
    if obj_id is None:
        return False

    result = await db.memories_collection.update_one(
        {"_id": obj_id, "user_id": user_id, "is_active": True},
        {"$set": {"is_active": False}},
    )
    if result.matched_count == 0:
        return False
    logger.info(f"Memory {memory_id} deleted by {user_id}")
    return True

# ------------------------
# Unlock Operations
# ------------------------

async def unlock_memory(memory_id: str, user_id: str, unlock: UnlockCreate) -> Dict:
    entry = MemoryUnlock(
        memory_id=memory_id,
        unlocked_by=user_id,
        echo_content=unlock.echo_content,
        echo_audio_url=unlock.echo_audio_url,
        unlocked_at=datetime.now(timezone.utc),
    )
    doc = entry.model_dump()
    result = await db.unlocks_collection.insert_one(doc)
    doc["_id"] = result.inserted_id

    await db.memories_collection.update_one(
        {"_id": to_object_id(memory_id)},
        {"$inc": {"unlock_count": 1}},
    )
    logger.info(f"Memory {memory_id} unlocked by {user_id}")
    return serialize_doc(doc)


async def get_memory_unlocks(memory_id: str) -> List[Dict]:
    cursor = db.unlocks_collection.find({"memory_id": memory_id}).sort("unlocked_at", 1)
    return [serialize_doc(doc) for doc in await cursor.to_list(length=None)]

# ------------------------
# Emotion Map
# ------------------------

async def get_emotion_map_data() -> List[Dict]:
    """Public memories grouped by emotion, with the group's mean position."""
    pipeline = [
        {"$match": {"access_type": AccessType.PUBLIC.value, "is_active": True}},
        {
            "$group": {
                "_id": "$emotion",
                "count": {"$sum": 1},
                "lat": {"$avg": "$latitude"},
                "lng": {"$avg": "$longitude"},
            }
        },
        {"$sort": {"count": -1, "_id": 1}},
    ]
    cursor = db.memories_collection.aggregate(pipeline)
    rows = await cursor.to_list(length=None)
    return [
        {"emotion": row["_id"], "count": row["count"], "lat": row["lat"], "lng": row["lng"]}
        for row in rows
    ]
