import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from errors import SynthesisError
from services import tts_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class VoiceRequest(BaseModel):
    text: str


@router.post("/voice")
def voice(req: VoiceRequest):
    logger.info(f"Voice called, text length: {len(req.text)}")
    try:
        audio = tts_client.synthesize(req.text)
    except SynthesisError as e:
        status = e.status or 500
        return JSONResponse(
            {"error": "Voice generation failed", "status": status, "details": e.details or str(e)},
            status_code=status,
        )
    return Response(content=audio, media_type="audio/mpeg")
