import asyncio
import logging
import os
import time
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import redis.asyncio as redis
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from chat_gateway import storage
from chat_gateway.config import describe_config, load_config
from chat_gateway.continuity import ContinuityTracker
from chat_gateway.errors import BackendCallError, OrchestrationError
from chat_gateway.metrics import metrics
from chat_gateway.models import AUGMENTED, ConversationMessage
from chat_gateway.orchestrator import orchestrate

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("chat_gateway")

app = FastAPI()

tracker = ContinuityTracker(storage.state_path())

REDIS_URL = os.getenv("REDIS_URL")


def _parse_rate_limit(raw: str):
    """'times/seconds' -> (times, seconds)."""
    times, _, seconds = raw.partition("/")
    return int(times), int(seconds or 60)


async def client_ip(req: Request) -> str:
    xff = req.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    cf = req.headers.get("cf-connecting-ip")
    if cf:
        return cf.strip()
    return req.client.host if req.client else "unknown"


# costed endpoint: rate limited per IP when redis is available
CHAT_LIMITS = []
if REDIS_URL:
    _times, _seconds = _parse_rate_limit(os.getenv("CHAT_RATE_LIMIT", "10/60"))
    CHAT_LIMITS = [Depends(RateLimiter(times=_times, seconds=_seconds))]

redis_client = None


@app.on_event("startup")
async def startup():
    global redis_client
    if not REDIS_URL:
        logger.info("REDIS_URL not set, rate limiting disabled")
        return
    redis_client = redis.from_url(REDIS_URL, encoding="utf-8", decode_responses=True)
    await FastAPILimiter.init(redis_client, identifier=client_ip)


@app.on_event("shutdown")
async def shutdown():
    global redis_client
    if redis_client:
        await redis_client.aclose()


class ChatReq(BaseModel):
    messages: Optional[List[ConversationMessage]] = None
    conversation_id: Optional[str] = None
    previous_response_id: Optional[str] = None


def _error_payload(e: OrchestrationError) -> dict:
    payload = e.to_payload()
    if isinstance(e, BackendCallError):
        payload["error"] = f"OpenAI API Error: {e.message}"
    return payload


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/api/chat", dependencies=CHAT_LIMITS)
async def chat(req: ChatReq):
    start_time = time.time()
    if not req.messages:
        return JSONResponse({"error": "Messages array is required"}, status_code=400)

    continuity_token = req.previous_response_id or tracker.get(req.conversation_id)
    try:
        config = load_config()
        result = await orchestrate(req.messages, config, continuity_token=continuity_token)
    except OrchestrationError as e:
        latency_ms = (time.time() - start_time) * 1000
        metrics.record_request(latency_ms=latency_ms, error_category=e.category)
        logger.error("chat failed [%s]: %s", e.category, e.message)
        return JSONResponse(_error_payload(e), status_code=e.status_code)
    except Exception:
        latency_ms = (time.time() - start_time) * 1000
        metrics.record_request(latency_ms=latency_ms, error_category="unexpected")
        logger.exception("chat failed unexpectedly")
        return JSONResponse({"error": "An unexpected error occurred", "category": "unexpected"}, status_code=500)

    await asyncio.to_thread(tracker.record, req.conversation_id, result)
    latency_ms = (time.time() - start_time) * 1000
    metrics.record_request(
        latency_ms=latency_ms,
        mode=result.mode_used,
        used_fallback=result.used_fallback,
        usage=result.usage,
    )
    if result.used_fallback:
        logger.info("answered via %s fallback: %s", result.mode_used, result.fallback_reason)

    return {
        "message": result.answer_text,
        "response_id": result.continuity_token,
        "mode_used": result.mode_used,
        "used_fallback": result.used_fallback,
        "has_file_search": result.mode_used == AUGMENTED and config.has_vector_stores,
        "usage": result.usage,
        "conversation_id": req.conversation_id,
    }


@app.delete("/api/conversations/{conversation_id}")
def forget_conversation(conversation_id: str):
    """Drop the stored continuity token when the client deletes a conversation."""
    return {"conversation_id": conversation_id, "forgotten": tracker.forget(conversation_id)}


@app.get("/api/config")
def get_config():
    try:
        return describe_config(load_config())
    except OrchestrationError as e:
        return JSONResponse(e.to_payload(), status_code=e.status_code)


@app.get("/api/metrics")
def get_metrics():
    """Get metrics data as JSON."""
    return metrics.get_stats()


@app.post("/api/metrics/reset")
def reset_metrics():
    """Reset all metrics."""
    metrics.reset()
    return {"status": "reset"}
