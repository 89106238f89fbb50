from fastapi import APIRouter
from pydantic import BaseModel

from services import prompt_builder
from services.scraper import normalize_url

router = APIRouter(prefix="/api")


class PromptRequest(BaseModel):
    websiteUrl: str


@router.post("/generate-prompt")
def generate_prompt(req: PromptRequest):
    # 失敗時もフォールバックの内容を200で返す
    return prompt_builder.generate(normalize_url(req.websiteUrl))
