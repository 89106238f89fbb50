"""Website -> knowledge base -> receptionist system prompt."""
import json
import logging
import re
from typing import Callable, Dict, List, Optional

import requests

import config
from errors import UpstreamError
from services import llm_client, scraper

logger = logging.getLogger(__name__)

MAX_SITE_CHARS = 7000
HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)

FALLBACK_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer questions professionally and keep responses "
    "to 2 sentences. If you don't have specific information, offer to connect the "
    "person with the team."
)
FALLBACK_QUESTIONS = [
    "What can you help me with?",
    "Tell me more",
    "How can I contact you?",
    "What are your hours?",
]
DEFAULT_QUESTIONS = [
    "What services do you offer?",
    "How can I contact you?",
    "What are your hours?",
    "Tell me more",
]

RECEPTIONIST_RULES = """You are a warm, professional receptionist for this business. Use ONLY the information above to answer questions.

RESPONSE RULES:
- Maximum 1-2 short sentences per response
- ALWAYS respond in the SAME language the customer is using (English, German, Spanish, etc.)
- Be conversational and human, use "Wonderful!", "Perfect!", "Absolutely!"
- Never mention AI, knowledge base, or that you can't actually book
- Ask only ONE thing at a time

BOOKING - collect these 5 things in order, ONE per message:
1. SERVICE -> what treatment/service do they want
2. DAY -> what day works for them
3. TIME -> what time works
4. NAME -> ask for name, then immediately ask them to spell it
5. EMAIL -> email for confirmation

CRITICAL TRACKING RULES:
- NEVER ask for something already provided in this conversation
- After getting the name spelled out, move DIRECTLY to asking for email
- After getting email, go DIRECTLY to the confirmation message
- Read the full conversation history before responding

CONFIRMATION - when you have ALL 5 pieces, respond with ONLY this:
"You're all set, [NAME]! I have you booked for [SERVICE] on [DAY] at [TIME], a confirmation will be sent to [EMAIL]. We look forward to seeing you!"
Then stop. Do not ask anything else.

EDGE CASES:
- Manager/specific person request: "I'll pass that along! You can also reach us at [PHONE] if it's urgent."
- Off-topic question mid-booking: answer in one sentence, then "Now, back to your booking:" and continue
- If they only want info, not booking: answer helpfully, gently offer to book at the end"""

SEPARATOR = "━" * 40


def build_analysis_prompt(site: scraper.ScrapedSite) -> str:
    return f"""You are creating a knowledge base document for an AI assistant that will represent a business.

WEBSITE URL: {site.url}
BUSINESS NAME: {site.title}
META DESCRIPTION: {site.description}

FULL WEBSITE CONTENT:
{site.text[:MAX_SITE_CHARS]}

EXTRACTED CONTACT INFO:
Emails: {', '.join(site.emails) or 'Not found'}
Phones: {', '.join(site.phones) or 'Not found'}

YOUR TASK:
Create a comprehensive knowledge base document that includes:

1. **Business Overview** - What they do, their purpose
2. **Services/Products** - Complete list with details
3. **Contact Information** - Use the extracted emails/phones above, state them explicitly
4. **Business Hours** - Extract from content if mentioned
5. **Location/Address** - If mentioned in content
6. **Pricing** - If mentioned in content
7. **Booking/Appointments** - How to book if mentioned
8. **About/History** - Company background if mentioned
9. **Unique Features** - What makes them special

Format this as a natural business information document (NOT as instructions to an AI). Write it as if you're documenting facts about the business.

CRITICAL RULES:
- Include the ACTUAL email addresses and phone numbers from the extracted data
- Write as factual statements, not instructions
- If information isn't in the content, don't mention it at all
- Keep it comprehensive but concise

Return ONLY a JSON object:
{{
  "businessName": "exact business name",
  "knowledgeBase": "The complete knowledge base document as described above",
  "greeting": "A warm, personalized greeting",
  "suggestedQuestions": ["4 relevant questions"],
  "brandColor": "hex color"
}}"""


def build_system_prompt(knowledge_base: str) -> str:
    return f"{knowledge_base}\n\n{SEPARATOR}\n\n{RECEPTIONIST_RULES}"


def parse_analysis(text: str) -> Dict:
    """Pull the first {...} block out of the model output. Raises ValueError."""
    match = _JSON_BLOCK_RE.search(text or "")
    parsed = json.loads(match.group(0) if match else "{}")
    if not isinstance(parsed, dict):
        raise ValueError("analysis is not a JSON object")
    return parsed


def _questions(value) -> List[str]:
    if not isinstance(value, list):
        return list(DEFAULT_QUESTIONS)
    questions = [str(q).strip() for q in value if str(q).strip()]
    return questions[:4] or list(DEFAULT_QUESTIONS)


def fallback_payload() -> Dict:
    return {
        "businessName": "Business",
        "knowledgeBase": "",
        "systemPrompt": FALLBACK_SYSTEM_PROMPT,
        "greeting": "Hello! How can I help you today?",
        "suggestedQuestions": list(FALLBACK_QUESTIONS),
        "brandColor": config.DEFAULT_PRIMARY_COLOR,
    }


def generate(url: str, chat: Optional[Callable[..., str]] = None) -> Dict:
    """Scrape `url` and author the assistant's prompt. Never raises."""
    chat = chat or llm_client.chat
    try:
        site = scraper.scrape(url)
        raw = chat(
            [{"role": "user", "content": build_analysis_prompt(site)}],
            temperature=0.4,
            max_tokens=2048,
            timeout=max(config.HTTP_TIMEOUT, 60.0),
        )
        parsed = parse_analysis(raw)
    except (requests.RequestException, UpstreamError, ValueError) as e:
        logger.error(f"[prompt] generation failed for {url}: {e!r}")
        return fallback_payload()

    title = site.title or "Business"
    knowledge_base = str(parsed.get("knowledgeBase") or "").strip()
    brand_color = str(parsed.get("brandColor") or "")
    payload = {
        "businessName": parsed.get("businessName") or title,
        "knowledgeBase": knowledge_base,
        "systemPrompt": build_system_prompt(knowledge_base),
        "greeting": parsed.get("greeting") or f"Welcome to {title}! How can I help you?",
        "suggestedQuestions": _questions(parsed.get("suggestedQuestions")),
        "brandColor": brand_color if HEX_COLOR_RE.match(brand_color) else config.DEFAULT_PRIMARY_COLOR,
    }
    logger.info(
        f"[prompt] {payload['businessName']}: system prompt {len(payload['systemPrompt'])} chars"
    )
    return payload
