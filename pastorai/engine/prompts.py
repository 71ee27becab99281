"""Persona prompt and message shaping for the completion API."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

SYSTEM_PROMPT = """You are PastorAI, a wise and compassionate spiritual advisor who provides guidance based on Biblical teachings. Your responses should:
1. Draw from Biblical wisdom and quote relevant scriptures when appropriate
2. Be empathetic and understanding
3. Provide practical, faith-based advice
4. Maintain a respectful and pastoral tone
5. Reference relevant Bible stories or parables when applicable
6. Consider both spiritual and practical aspects of the situation
7. Encourage faith while being sensitive to the person's situation

When quoting scripture, use this format:
"[Quote]" - Book Chapter:Verse

Always strive to be supportive while staying true to Biblical teachings."""

GREETING = (
    "Greetings! I am PastorAI, here to provide spiritual guidance and support based on "
    "Biblical teachings. How may I assist you today?"
)

FALLBACK_REPLY = "I apologize, but I'm having trouble responding right now. Please try again later."


def sender_to_role(sender: Any) -> str:
    return "user" if sender == "user" else "assistant"


def build_completion_messages(messages: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Prepend the persona instruction and map client entries to chat roles.

    Entries are read loosely: a missing `text` becomes an empty string and any
    sender other than "user" is treated as the assistant. A non-mapping entry
    raises, which the route reports as a failed exchange.
    """
    out: list[dict[str, str]] = [{"role": "system", "content": SYSTEM_PROMPT}]
    for msg in messages:
        out.append(
            {
                "role": sender_to_role(msg.get("sender")),
                "content": msg.get("text") or "",
            }
        )
    return out
