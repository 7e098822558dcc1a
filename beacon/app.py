from fastapi import FastAPI, Body, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import os
import redis

from .dispatch import KEY_HEADER
from .payload import SessionPayload

app = FastAPI(title="Beacon Collector", version="0.1.0")

# pages on any origin POST here at unload
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)

QUEUE = "sessions"


def _redis():
    url = os.environ.get("BEACON_REDIS_URL")
    if url:
        return redis.Redis.from_url(url, decode_responses=False)
    return redis.Redis(host="localhost", port=6379, db=0, decode_responses=False)


r = _redis()


@app.get("/health")
def health():
    redis_ok = False
    try:
        r.ping()
        redis_ok = True
    except redis.RedisError:
        pass
    return {"ok": True, "service": "beacon-collector", "redis": redis_ok}


@app.post("/collect")
def collect(
    payload: SessionPayload = Body(...),
    project_key: Optional[str] = Header(None, alias=KEY_HEADER),
):
    """
    Accept one session payload. The header key must match payload.project_id.
    Queues the JSON on the Redis list 'sessions' for downstream analysis.
    """
    if not project_key or project_key != payload.project_id:
        return JSONResponse(status_code=401, content={"error": "project_key_mismatch"})
    try:
        r.rpush(QUEUE, payload.model_dump_json())
        return {"status": "queued", "session_id": payload.session_id}
    except redis.RedisError as e:
        return JSONResponse(status_code=500, content={"error": "collect_failed", "detail": str(e)})
