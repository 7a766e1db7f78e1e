from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from ws_manager import manager, THREADS_CHANNEL
from database import SessionLocal
from deps import is_admin, user_for_token
from http import cookies as http_cookies
import json
import logging

log = logging.getLogger(__name__)

realtime_router = APIRouter()


def _token_from_websocket(websocket: WebSocket):
    """Read the token from the 'token' query param or the access_token cookie."""
    token = websocket.query_params.get('token')
    if token:
        return token

    cookie_header = websocket.headers.get('cookie', '')
    if cookie_header:
        c = http_cookies.SimpleCookie()
        try:
            c.load(cookie_header)
        except http_cookies.CookieError:
            return None
        m = c.get('access_token')
        if m:
            return m.value
    return None


async def _resolve_admin_from_websocket(websocket: WebSocket):
    async with SessionLocal() as db:
        user = await user_for_token(db, _token_from_websocket(websocket))
    if user is None or not user.is_active or not is_admin(user):
        return None
    return user


@realtime_router.websocket("/ws/admin/threads")
async def admin_threads_ws(websocket: WebSocket):
    # Validate admin before subscribing
    admin = await _resolve_admin_from_websocket(websocket)
    if not admin:
        # politely refuse connection
        await websocket.accept()
        await websocket.send_text(json.dumps({"error": "unauthorized"}))
        await websocket.close(code=1008)
        return

    await manager.connect(websocket, channel=THREADS_CHANNEL)
    try:
        await websocket.send_text(json.dumps({"event": "connected", "channel": THREADS_CHANNEL, "user_id": admin.id}))
        while True:
            data = await websocket.receive_text()
            # Simple echo ack for client pings
            await websocket.send_text(f"ack:{data}")
    except WebSocketDisconnect:
        log.debug(f"Admin {admin.id} left the threads channel")
    finally:
        await manager.disconnect(websocket, channel=THREADS_CHANNEL)
