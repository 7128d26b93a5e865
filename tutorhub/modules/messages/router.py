import json
import asyncio
import logging
from contextlib import suppress
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from supabase import Client, AsyncClient
from tutorhub.db.supabase import get_supabase, get_ws_supabase, get_async_supabase
from tutorhub.core.dependencies import get_principal
from tutorhub.core.security import resolve_principal, token_from_connection
from tutorhub.schemas.messages import MessageCreate, MessageResponse
from tutorhub.modules.messages import service
from tutorhub.modules.messages.realtime import RealtimeMessageFeed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Messages"])

POLICY_VIOLATION = 1008


@router.get("/history", response_model=list[MessageResponse])
def get_history(
    teacher_id: str = Query(..., description="Teacher in the conversation"),
    student_id: str = Query(..., description="Student in the conversation"),
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    """Messages between a teacher and a student, oldest first."""
    try:
        return [MessageResponse(**row) for row in service.history(client, principal, teacher_id, student_id)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Chat load error: %s", e)
        raise HTTPException(status_code=502, detail=f"Could not load messages: {e}")


@router.post("/", response_model=MessageResponse)
def send_message(
    message: MessageCreate,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    return MessageResponse(**service.send(client, principal, message.receiver_id, message.body))


async def _push_new_messages(websocket: WebSocket, feed: RealtimeMessageFeed):
    try:
        while True:
            row = await feed.next_message()
            await websocket.send_json({"type": "message", "message": jsonable(row)})
    except WebSocketDisconnect:
        logger.info("Socket gone before a pushed message could be sent")


async def _receive_text(websocket: WebSocket):
    """Next text frame, or None for a binary one."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    return message.get("text")


def jsonable(row: dict) -> dict:
    return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.items()}


@router.websocket("/ws")
async def conversation_socket(
    websocket: WebSocket,
    teacher_id: str,
    student_id: str,
    client: Client = Depends(get_ws_supabase),
    async_client: AsyncClient = Depends(get_async_supabase),
):
    """
    Live conversation between a teacher and a student.

    Sends `{"type": "history"}` first, then `{"type": "message"}` for every
    new row. Frames `{"body": "..."}` from the client send a message.
    """
    token = token_from_connection(websocket)
    principal = await run_in_threadpool(resolve_principal, client, token)
    if principal is None:
        await websocket.close(code=POLICY_VIOLATION, reason="Not authenticated")
        return

    try:
        rows = await run_in_threadpool(service.history, client, principal, teacher_id, student_id)
    except HTTPException as e:
        await websocket.close(code=POLICY_VIOLATION, reason=str(e.detail))
        return

    await websocket.accept()
    conversation = service.Conversation(teacher_id, student_id, rows)
    await websocket.send_json({
        "type": "history",
        "messages": [jsonable(row) for row in conversation.messages],
    })

    counterpart = student_id if principal["id"] == teacher_id else teacher_id

    async with RealtimeMessageFeed(async_client, conversation, access_token=token) as feed:
        pusher = asyncio.create_task(_push_new_messages(websocket, feed))
        try:
            while True:
                text = await _receive_text(websocket)
                if text is None:
                    await websocket.send_json({"type": "error", "detail": "Only text frames are supported"})
                    continue
                try:
                    frame = json.loads(text)
                except ValueError:
                    await websocket.send_json({"type": "error", "detail": "Invalid JSON"})
                    continue

                body = frame.get("body") if isinstance(frame, dict) else None
                try:
                    row = await run_in_threadpool(service.send, client, principal, counterpart, body)
                except HTTPException as e:
                    await websocket.send_json({"type": "error", "detail": e.detail})
                    continue

                if conversation.append(row):
                    await websocket.send_json({"type": "message", "message": jsonable(row)})
        except WebSocketDisconnect:
            logger.info("Conversation socket closed for %s", principal["id"])
        finally:
            pusher.cancel()
            with suppress(asyncio.CancelledError):
                await pusher
