# spotwise/api/v1/events.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from spotwise.core.auth_deps import principal_from_token
from spotwise.core.errors import AuthenticationError, SpotwiseError
from spotwise.core.streaming import sse_frame
from spotwise.policies.rbac import Principal
from spotwise.realtime.bus import EventBus, Subscription
from spotwise.realtime.events import (
    DomainEvent,
    auth_error_event,
    connected_event,
    heartbeat_event,
    pong_event,
    server_error_event,
)

logger = logging.getLogger(__name__)

router = APIRouter()

WS_AUTH_FAILED = 4401
WS_SEND_FAILED = 1011


def _coords(message: Dict[str, Any]):
    loc = message.get("location")
    if isinstance(loc, dict) and isinstance(loc.get("coordinates"), list) and len(loc["coordinates"]) == 2:
        return loc["coordinates"][0], loc["coordinates"][1]
    if "longitude" in message or "latitude" in message:
        return message.get("longitude"), message.get("latitude")
    return None, None


def _handle_client_message(app, principal: Principal, bus: EventBus, sub: Subscription, message: Dict[str, Any]) -> Optional[DomainEvent]:
    """
    Runs in the threadpool: may touch the store.
    """
    kind = message.get("type")
    if kind == "ping":
        return pong_event()

    db = app.state.session_factory()
    try:
        if kind == "locationUpdate":
            lon, lat = _coords(message)
            if lon is None or lat is None:
                return server_error_event("locationUpdate needs a location.", "ValidationError")
            app.state.locations.update_location(db, principal, lon, lat)
            return None

        if kind == "nearbyProviders":
            lon, lat = _coords(message)
            matches = app.state.locations.nearby_providers(
                db, principal, lon, lat, category=message.get("category")
            )
            bus.watch(sub, [str(m.provider.id) for m in matches])
            return app.state.notifier.nearby_providers_event(matches)
    except SpotwiseError as e:
        return server_error_event(e.message, e.code)
    finally:
        db.close()

    return server_error_event(f"Unknown message type: {kind!r}.", "ValidationError")


async def _pump(websocket: WebSocket, sub: Subscription, heartbeat_s: float, send_timeout_s: float) -> None:
    while True:
        event = await sub.next_event(timeout=heartbeat_s)
        if event is None:
            event = heartbeat_event()
        await asyncio.wait_for(websocket.send_json(event.to_wire()), timeout=send_timeout_s)


async def _listen(websocket: WebSocket, principal: Principal, bus: EventBus, sub: Subscription) -> None:
    app = websocket.app
    while True:
        raw = await websocket.receive_text()
        try:
            message = json.loads(raw)
            if not isinstance(message, dict):
                raise ValueError("message must be an object")
        except ValueError:
            bus.offer(sub, server_error_event("Malformed message.", "ValidationError"))
            continue

        reply = await run_in_threadpool(_handle_client_message, app, principal, bus, sub, message)
        if reply is not None:
            bus.offer(sub, reply)


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket, token: str = Query(default="")):
    app = websocket.app
    settings = app.state.settings
    bus: EventBus = app.state.bus

    await websocket.accept()
    try:
        principal = principal_from_token(token)
    except AuthenticationError as e:
        await websocket.send_json(auth_error_event(e.message).to_wire())
        await websocket.close(code=WS_AUTH_FAILED)
        return

    sub = bus.subscribe(principal.actor_id)
    bus.offer(sub, connected_event(principal.actor_id, principal.role.value))
    sender = asyncio.create_task(
        _pump(websocket, sub, settings.heartbeat_interval_seconds, settings.notifier_send_timeout_seconds)
    )
    receiver = asyncio.create_task(_listen(websocket, principal, bus, sub))
    tasks = {sender, receiver}

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        if sender in done:
            # a failed or timed-out send ends the connection
            logger.warning(
                "subscriber send failed, closing",
                extra={"actor_id": principal.actor_id},
                exc_info=sender.exception(),
            )
            try:
                await websocket.close(code=WS_SEND_FAILED)
            except (RuntimeError, WebSocketDisconnect):
                logger.info("socket already closed", extra={"actor_id": principal.actor_id})
        elif not isinstance(receiver.exception(), WebSocketDisconnect):
            logger.error(
                "subscriber receive failed",
                extra={"actor_id": principal.actor_id},
                exc_info=receiver.exception(),
            )
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        bus.unsubscribe(sub)
        if principal.is_provider and not bus.is_connected(principal.actor_id):
            app.state.notifier.provider_left(principal.actor_id)
        logger.info("subscriber detached", extra={"actor_id": principal.actor_id})


@router.get("/events")
async def realtime_sse(request: Request, token: str = Query(default="")):
    settings = request.app.state.settings
    bus: EventBus = request.app.state.bus

    try:
        principal = principal_from_token(token)
    except AuthenticationError as e:
        frame = sse_frame(auth_error_event(e.message).kind.value, {"message": e.message})
        return StreamingResponse(iter([frame]), media_type="text/event-stream")

    sub = bus.subscribe(principal.actor_id)

    async def stream():
        try:
            ev = connected_event(principal.actor_id, principal.role.value)
            yield sse_frame(ev.kind.value, ev.data)
            while not await request.is_disconnected():
                ev = await sub.next_event(timeout=settings.heartbeat_interval_seconds)
                if ev is None:
                    ev = heartbeat_event()
                yield sse_frame(ev.kind.value, ev.data)
        finally:
            bus.unsubscribe(sub)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
