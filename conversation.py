"""Talk to a website's receptionist from the terminal.

    python conversation.py --site example.com          # voice call
    python conversation.py --site example.com --chat   # typed chat
"""
import argparse
import asyncio
import logging
from pathlib import Path

from config import SessionConfig
from errors import CapabilityUnavailable
from logging_config import setup_logging
from pipeline.chat_session import ChatSession
from pipeline.playback import SpeechPlayback
from pipeline.transcript import TranscriptLog
from pipeline.turn_coordinator import TurnCoordinator
from services import prompt_builder
from services.dialogue import DialogueClient
from services.scraper import normalize_url
import config

logger = logging.getLogger(__name__)

EXIT_WORDS = ("exit", "quit")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Talk to a website's receptionist")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--site", help="website to build the assistant from")
    src.add_argument("--prompt-file", type=Path, help="use a ready-made system prompt")
    p.add_argument("--business-name", default=config.DEFAULT_BUSINESS_NAME)
    p.add_argument("--chat", action="store_true", help="type instead of talking")
    return p.parse_args(argv)


def build_session(args) -> SessionConfig:
    if args.prompt_file:
        return SessionConfig(
            business_name=args.business_name,
            system_prompt=args.prompt_file.read_text(encoding="utf-8").strip(),
        )
    url = normalize_url(args.site)
    return SessionConfig.from_prompt(prompt_builder.generate(url), preview_url=url)


def run_chat(session: SessionConfig, dialogue=None, read=input, write=print) -> TranscriptLog:
    """Typed conversation until EOF or an exit word."""
    chat = ChatSession(session, dialogue=dialogue)
    write(f"{session.business_name}: {session.greeting}")
    while True:
        try:
            text = read("you> ")
        except EOFError:
            break
        if text.strip().lower() in EXIT_WORDS:
            break
        reply = chat.send(text)
        if reply is not None:
            write(f"{session.business_name}: {reply.text}")
    return chat.transcript


async def run_call(session: SessionConfig) -> None:
    # マイク関連 (sounddevice / Whisper) は音声通話のときだけ読み込む
    from audio.capture import MicrophoneCapture

    coordinator = TurnCoordinator(
        session,
        capture=MicrophoneCapture(),
        dialogue=DialogueClient(),
        playback=SpeechPlayback(),
    )
    await coordinator.start_call()
    logger.info(f"{session.business_name}: {session.greeting}")
    try:
        # 復旧できないエラーでは coordinator 側で IDLE に戻る
        while coordinator.active:
            await asyncio.sleep(0.5)
    finally:
        for turn in coordinator.transcript:
            logger.info(f"[{turn.timestamp:%H:%M:%S}] {turn.speaker.value}: {turn.text}")
        await coordinator.end_call()


def main(argv=None) -> int:
    config.load_config()
    setup_logging(config.LOG_PATH)
    args = parse_args(argv)

    session = build_session(args)
    logger.info("conversation loop start (Ctrl+C to exit)")
    try:
        if args.chat:
            run_chat(session)
        else:
            asyncio.run(run_call(session))
    except CapabilityUnavailable as e:
        logger.error(f"cannot start call: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Ctrl+C received, exiting...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
