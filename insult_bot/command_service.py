"""
Command recognition for Insult Bot.
Classifies a chat message as an insult request, an add-word request, or nothing.
"""

import re
from dataclasses import dataclass
from typing import Union

from .vocab_service import Category

# Slack user mention, e.g. <@U024BE7LH> or <@U024BE7LH|bob>
MENTION_PATTERN = r'<@[A-Z0-9]+(?:\|[^>]*)?>'

# Optional leading mention of the bot, e.g. "<@UBOT> add noun doorknob"
_LEADING_MENTION = rf'^\s*(?:{MENTION_PATTERN}\s+)?'

INSULT_TARGET_PATTERN = re.compile(
    _LEADING_MENTION + rf'insult\s+({MENTION_PATTERN})\s*[.!?]*\s*$',
    re.IGNORECASE,
)
INSULT_ME_PATTERN = re.compile(
    _LEADING_MENTION + r'insult\s+me\s*[.!?]*\s*$',
    re.IGNORECASE,
)
ADD_WORD_PATTERN = re.compile(
    _LEADING_MENTION + r'add\s+(adjective|noun)\b([\w ,-]*)$',
    re.IGNORECASE,
)

PART_OF_SPEECH = {
    "adjective": Category.DESCRIPTOR,
    "noun": Category.SUBJECT,
}


@dataclass(frozen=True)
class InsultRequest:
    target: str


@dataclass(frozen=True)
class AddWord:
    category: Category
    word: str


@dataclass(frozen=True)
class RejectedAddWord:
    pass


@dataclass(frozen=True)
class NoMatch:
    pass


CommandMatch = Union[InsultRequest, AddWord, RejectedAddWord, NoMatch]


def to_user_tag(user_id: str) -> str:
    """Format a Slack user id as a mention, e.g. U123 -> <@U123>."""
    return f"<@{user_id}>"


def classify(text: str, requester_id: str) -> CommandMatch:
    """Decide which command, if any, a message asks for.

    Patterns are tried in order and the first match wins: insult a
    mentioned user, insult the requester, add a word.

    Args:
        text: Raw message text from the chat event
        requester_id: User id of the message author

    Returns:
        One of InsultRequest, AddWord, RejectedAddWord or NoMatch
    """
    text = text or ""

    match = INSULT_TARGET_PATTERN.match(text)
    if match:
        return InsultRequest(target=match.group(1))

    if INSULT_ME_PATTERN.match(text):
        return InsultRequest(target=to_user_tag(requester_id))

    match = ADD_WORD_PATTERN.match(text)
    if match:
        word = match.group(2).strip()
        if not word:
            return RejectedAddWord()
        return AddWord(category=PART_OF_SPEECH[match.group(1).lower()], word=word)

    return NoMatch()
