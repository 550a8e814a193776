import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config, db, storage
from .auth import verify_token
from .geo import haversine_km
from .glm_client import EmotionClient, clamp, get_emotion_client
from .models import AccessType, MemoryCreate, MemoryEntry, MemoryUpdate, UnlockCreate

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("ECHO backend starting up")
    await db.ping()
    yield
    logger.info("ECHO backend shutting down")
    db.client.close()


app = FastAPI(title="ECHO", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# ------------------------
# Error Handlers
# ------------------------

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid input", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "detail": str(exc)},
    )

# ------------------------
# Health
# ------------------------

@app.get("/")
def read_root():
    return {"message": "ECHO backend is running"}

# ------------------------
# AI Emotion Analysis
# ------------------------

@app.post("/api/ai/analyze-emotion")
async def analyze_emotion(body: dict, client: EmotionClient = Depends(get_emotion_client)):
    text = body.get("text")
    if not text or not isinstance(text, str):
        raise HTTPException(400, "Text is required for analysis")

    context = body.get("context")
    analysis = await client.analyze(text, context if isinstance(context, str) else None)
    return {"analysis": analysis}


@app.post("/api/ai/analyze-voice")
async def analyze_voice(body: dict, client: EmotionClient = Depends(get_emotion_client)):
    transcript = body.get("transcript")
    if not transcript or not isinstance(transcript, str):
        raise HTTPException(400, "Voice transcript is required for analysis")

    context = body.get("context")
    analysis = await client.analyze_voice(transcript, context if isinstance(context, str) else None)
    return {"analysis": analysis}

# ------------------------
# Emotion Map
# ------------------------

@app.get("/api/emotions/map")
async def get_emotion_map():
    return {"data": await storage.get_emotion_map_data()}

# ------------------------
# Memories
# ------------------------

def parse_coordinate(value: str, limit: float) -> float:
    try:
        number = float(value)
    except ValueError:
        raise HTTPException(400, "Latitude and longitude required")
    if not math.isfinite(number) or abs(number) > limit:
        raise HTTPException(400, "Latitude and longitude out of range")
    return number


@app.get("/api/memories/nearby/{lat}/{lng}")
async def get_nearby_memories(
    lat: str,
    lng: str,
    radius: float = Query(config.DEFAULT_NEARBY_RADIUS_METERS, ge=0, description="Radius in meters"),
    limit: int = Query(config.DEFAULT_NEARBY_LIMIT, ge=1, le=config.MAX_NEARBY_LIMIT),
):
    latitude = parse_coordinate(lat, 90.0)
    longitude = parse_coordinate(lng, 180.0)

    memories = await storage.get_memories_near_location(latitude, longitude, radius / 1000, limit)
    return {"data": memories}


@app.post("/api/memories")
async def create_memory(
    memory: MemoryCreate,
    user_id: str = Depends(verify_token),
    client: EmotionClient = Depends(get_emotion_client),
):
    emotion, confidence = memory.emotion, memory.emotion_confidence
    if not emotion:
        analysis = await client.analyze(memory.content or memory.title, memory.description)
        emotion, confidence = analysis.primaryEmotion, analysis.confidence

    entry = MemoryEntry(
        **memory.model_dump(exclude={"emotion", "emotion_confidence"}),
        user_id=user_id,
        emotion=emotion,
        emotion_confidence=clamp(confidence or 0.0),
        created_at=datetime.now(timezone.utc),
    )
    return {"memory": await storage.create_memory(entry)}


@app.get("/api/memories/user")
async def get_user_memories(user_id: str = Depends(verify_token)):
    return {"memories": await storage.get_user_memories(user_id)}


async def get_visible_memory(memory_id: str, user_id: str) -> dict:
    # Another user's private memory answers exactly like a missing one
    memory = await storage.get_memory_by_id(memory_id)
    if not memory or (memory["access_type"] == AccessType.PRIVATE.value and memory["user_id"] != user_id):
        raise HTTPException(404, "Memory not found")
    return memory


@app.get("/api/memories/{memory_id}")
async def get_memory(memory_id: str, user_id: str = Depends(verify_token)):
    return {"memory": await get_visible_memory(memory_id, user_id)}


@app.patch("/api/memories/{memory_id}")
async def update_memory(memory_id: str, update: MemoryUpdate, user_id: str = Depends(verify_token)):
    memory = await storage.update_memory(memory_id, user_id, update)
    if not memory:
        raise HTTPException(404, "Memory not found or not yours")
    return {"memory": memory}


@app.delete("/api/memories/{memory_id}")
async def delete_memory(memory_id: str, user_id: str = Depends(verify_token)):
    if not await storage.delete_memory(memory_id, user_id):
        raise HTTPException(404, "Memory not found or not yours")
    return {"success": True}


def check_unlock_allowed(memory: dict, user_id: str, unlock: UnlockCreate):
    if memory["user_id"] == user_id:
        return

    access_type = memory["access_type"]
    # No friend graph here yet, so friends-only memories stay with their owner
    if access_type in (AccessType.PRIVATE.value, AccessType.FRIENDS.value):
        raise HTTPException(403, "This memory cannot be unlocked")
    if access_type == AccessType.EMOTION_MATCH.value:
        if (unlock.emotion or "").strip().lower() != memory["emotion"].lower():
            raise HTTPException(403, "Your emotion does not match this memory")

    if (unlock.latitude is None) != (unlock.longitude is None):
        raise HTTPException(400, "Latitude and longitude must be sent together")
    if unlock.latitude is not None:
        distance = haversine_km(unlock.latitude, unlock.longitude, memory["latitude"], memory["longitude"])
        if distance > config.UNLOCK_RADIUS_KM:
            raise HTTPException(403, f"Too far away to unlock ({distance:.2f} km)")


@app.post("/api/memories/{memory_id}/unlock")
async def unlock_memory(memory_id: str, unlock: UnlockCreate, user_id: str = Depends(verify_token)):
    memory = await storage.get_memory_by_id(memory_id)
    if not memory:
        raise HTTPException(404, "Memory not found")

    check_unlock_allowed(memory, user_id, unlock)
    return {"unlock": await storage.unlock_memory(memory["id"], user_id, unlock)}


@app.get("/api/memories/{memory_id}/unlocks")
async def get_memory_unlocks(memory_id: str, user_id: str = Depends(verify_token)):
    memory = await get_visible_memory(memory_id, user_id)
    return {"unlocks": await storage.get_memory_unlocks(memory["id"])}
