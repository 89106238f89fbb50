import logging
from typing import List

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors import UpstreamError
from pipeline.transcript import Speaker, Utterance
from services.dialogue import DialogueClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class HistoryItem(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str
    conversationHistory: List[HistoryItem] = []
    systemPrompt: str = ""


@router.post("/chat")
def chat(req: ChatRequest):
    prior = [Utterance(Speaker.from_role(m.role), m.content) for m in req.conversationHistory]
    try:
        reply = DialogueClient().send(req.message, prior, req.systemPrompt)
    except UpstreamError as e:
        logger.error(f"[chat] {e} {e.details[:160]}")
        return JSONResponse({"error": "Internal Error"}, status_code=500)
    return {"response": reply}
