"""
Turn plain study notes into front/back pairs.

Three strategies, tried in order; the first that yields anything wins:

1. Numbered questions on their own line, answer on the following lines
2. Inline numbered pairs: "1. Question? Answer. 2. Question? Answer."
3. Paragraphs, with the first sentence as the front
"""

import re
from dataclasses import dataclass

PAGE_MARKER = re.compile(r"---\s*Page\s*\d+\s*---", re.IGNORECASE)
QUESTION_LINE = re.compile(r"^(\d+)\.\s+(.*\?)$")
NUMBERED_LINE = re.compile(r"^\d+\.\s+")
INLINE_PAIR = re.compile(r"(\d+)\.\s+(.*?)\?\s+(.*?)(?=\s+\d+\.|$)")
PARAGRAPH_BREAK = re.compile(r"\n{2,}")

MIN_ANSWER_LENGTH = 10
MIN_PARAGRAPH_LENGTH = 40
MAX_FRONT_LENGTH = 120


@dataclass(frozen=True)
class FlashcardChunk:
    front: str
    back: str


def clean_text(text: str) -> str:
    """Drop page markers left by PDF extraction and carriage returns."""
    return PAGE_MARKER.sub("", text).replace("\r", "").strip()


def _numbered_lines(cleaned: str) -> list[FlashcardChunk]:
    lines = [line.strip() for line in cleaned.split("\n")]
    lines = [line for line in lines if line]

    chunks: list[FlashcardChunk] = []
    i = 0
    while i < len(lines):
        match = QUESTION_LINE.match(lines[i])
        if not match:
            i += 1
            continue

        # Answer runs until the next numbered line
        j = i + 1
        answer_lines = []
        while j < len(lines) and not NUMBERED_LINE.match(lines[j]):
            answer_lines.append(lines[j])
            j += 1

        answer = " ".join(answer_lines)
        if len(answer) > MIN_ANSWER_LENGTH:
            chunks.append(FlashcardChunk(front=match.group(2).strip(), back=answer))
        i = j
    return chunks


def _inline_pairs(cleaned: str) -> list[FlashcardChunk]:
    return [
        FlashcardChunk(front=m.group(2).strip() + "?", back=m.group(3).strip())
        for m in INLINE_PAIR.finditer(cleaned)
    ]


def _paragraphs(cleaned: str) -> list[FlashcardChunk]:
    return [
        FlashcardChunk(front=p.split(". ")[0][:MAX_FRONT_LENGTH], back=p)
        for p in PARAGRAPH_BREAK.split(cleaned)
        if len(p) > MIN_PARAGRAPH_LENGTH
    ]


def chunk_text_to_flashcards(text: str) -> list[FlashcardChunk]:
    """
    Split free text into flashcards.

    Pairs with a blank front or back are dropped, since a card needs both.
    """
    cleaned = clean_text(text)
    for strategy in (_numbered_lines, _inline_pairs, _paragraphs):
        chunks = [c for c in strategy(cleaned) if c.front.strip() and c.back.strip()]
        if chunks:
            return chunks
    return []
