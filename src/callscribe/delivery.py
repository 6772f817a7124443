"""Message splitting and delivery to the text channel."""

from __future__ import annotations

import logging
from typing import List

from .errors import DeliveryFailed
from .transport import TextChannel

logger = logging.getLogger("callscribe.delivery")


def _label(index: int, total: int) -> str:
    return f"Part {index}/{total}\n"


def _split_words(paragraph: str, budget: int) -> List[str]:
    pieces: List[str] = []
    current = ""
    for word in paragraph.split(" "):
        while len(word) > budget:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:budget])
            word = word[budget:]
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= budget:
            current = f"{current} {word}"
        else:
            pieces.append(current)
            current = word
    if current:
        pieces.append(current)
    return pieces


def _pack(text: str, budget: int) -> List[str]:
    chunks: List[str] = []
    current = ""
    for paragraph in text.split("\n\n"):
        if not paragraph.strip():
            continue
        pieces = [paragraph] if len(paragraph) <= budget else _split_words(paragraph, budget)
        for piece in pieces:
            if not current:
                current = piece
            elif len(current) + 2 + len(piece) <= budget:
                current = f"{current}\n\n{piece}"
            else:
                chunks.append(current)
                current = piece
    if current:
        chunks.append(current)
    return chunks


def split_message(text: str, limit: int = 1900) -> List[str]:
    """Split ``text`` into messages no longer than ``limit`` characters.

    Paragraph boundaries are preferred, then word boundaries. When more than
    one message is needed each one is prefixed with ``Part i/total``.
    """
    text = text.strip()
    if len(text) <= limit:
        return [text] if text else []

    total_guess = 9
    while True:
        budget = limit - len(_label(total_guess, total_guess))
        if budget <= 0:
            raise ValueError("limit is too small to label message parts.")
        chunks = _pack(text, budget)
        if len(chunks) <= total_guess:
            break
        total_guess = len(chunks)

    total = len(chunks)
    return [f"{_label(i, total)}{chunk}" for i, chunk in enumerate(chunks, start=1)]


async def send_chunked(channel: TextChannel, text: str, limit: int = 1900) -> int:
    parts = split_message(text, limit)
    for index, part in enumerate(parts, start=1):
        try:
            await channel.send(part)
        except Exception as exc:
            raise DeliveryFailed(
                f"Failed to send part {index}/{len(parts)}: {exc}"
            ) from exc
    logger.info("Delivered %d message(s)", len(parts))
    return len(parts)


async def send_notice(channel: TextChannel, text: str) -> bool:
    try:
        await channel.send(text)
    except Exception:
        logger.exception("Failed to send notice")
        return False
    return True
