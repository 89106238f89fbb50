from fastapi import APIRouter
import requests
import config

router = APIRouter()


@router.get("/health")
def health():
    result = {"llm": "down", "tts": "down", "ok": False}

    try:
        headers = {"Authorization": f"Bearer {config.LLM_API_KEY}"} if config.LLM_API_KEY else {}
        r = requests.get(f"{config.LLM_BASE}/models", headers=headers, timeout=config.TIMEOUT)
        r.raise_for_status()
        result["llm"] = "up"
    except requests.RequestException as e:
        result["llm_error"] = str(e)[:160]

    if not config.ELEVENLABS_API_KEY:
        result["tts_error"] = "ELEVENLABS_API_KEY is not set"
    else:
        try:
            r = requests.get(
                f"{config.ELEVENLABS_BASE}/v1/models",
                headers={"xi-api-key": config.ELEVENLABS_API_KEY},
                timeout=config.TIMEOUT,
            )
            r.raise_for_status()
            result["tts"] = "up"
        except requests.RequestException as e:
            result["tts_error"] = str(e)[:160]

    result["ok"] = (result["llm"] == "up" and result["tts"] == "up")
    return result
