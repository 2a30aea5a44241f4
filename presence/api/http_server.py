"""FastAPI control surface for a running face."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from presence.api.schemas import (
    AvatarRequest,
    AvatarResponse,
    ChatRequest,
    ChatResponse,
    MoodRequest,
    MoodResponse,
)

if TYPE_CHECKING:
    from presence.runtime import Runtime

log = logging.getLogger(__name__)


def create_app(runtime: Runtime) -> FastAPI:
    app = FastAPI(title="Presence Face", version="0.1.0")

    @app.get("/status")
    async def get_status():
        return JSONResponse(runtime.status())

    @app.get("/debug/gateway")
    async def get_gateway_debug():
        return JSONResponse(runtime.gateway.debug_snapshot())

    @app.get("/mood", response_model=MoodResponse)
    async def get_mood():
        mood = runtime.mood
        return MoodResponse(mood=mood.mood.value, history_len=len(mood.history()))

    @app.post("/mood", response_model=MoodResponse)
    async def set_mood(body: MoodRequest):
        mood = runtime.mood
        if body.mood == "happy":
            mood.set_happy()
        elif body.mood == "angry":
            mood.set_angry()
        else:
            mood.set_neutral()
        log.info("api: manual mood %s -> %s", body.mood, mood.mood.value)
        return MoodResponse(mood=mood.mood.value, history_len=len(mood.history()))

    @app.post("/chat", response_model=ChatResponse)
    async def post_chat(body: ChatRequest):
        sent = await runtime.gateway.send(body.content)
        return ChatResponse(sent=sent)

    @app.post("/avatar", response_model=AvatarResponse)
    async def post_avatar(body: AvatarRequest):
        result = await runtime.avatar.generate(
            style=body.style,
            width=body.width,
            height=body.height,
            provider=body.provider,
            verify=body.verify,
        )
        return AvatarResponse(
            success=result.success,
            url=result.url,
            error=result.error,
            seed=result.seed,
            source=result.source,
            fallback_url=result.fallback_url,
        )

    @app.delete("/avatar")
    async def clear_avatar():
        runtime.avatar.clear_custom_avatar()
        return JSONResponse({"ok": True})

    return app
