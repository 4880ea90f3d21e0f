"""
Insult Bot - FastAPI webhook for the Slack Events API.
Answers the URL verification handshake and dispatches message events in the background.
"""

import logging
from collections import OrderedDict
from typing import Optional, Tuple

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from pydantic import BaseModel, ValidationError

from .config import (
    LOG_LEVEL,
    URL_VERIFICATION,
    EVENT_CALLBACK,
    MESSAGE_EVENT_TYPES,
    RECENT_EVENT_LIMIT,
)
from .dispatch_service import Dispatcher
from .dynamo_service import DynamoWordStore
from .errors import InsultBotError
from .slack_service import SlackReplySink
from .vocab_service import get_word_cache_cell

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="Insult Bot")


# Pydantic models for Slack payloads
class MessageEvent(BaseModel):
    channel: str
    user: str
    text: str
    ts: str
    subtype: Optional[str] = None
    bot_id: Optional[str] = None


class ChallengeRequest(BaseModel):
    challenge: str
    token: Optional[str] = None


_dispatcher: Optional[Dispatcher] = None

# (channel, ts) of recently dispatched posts, oldest first
_recent_posts: "OrderedDict[Tuple[str, str], None]" = OrderedDict()


def get_dispatcher() -> Dispatcher:
    """Build the process-wide dispatcher on first use."""
    global _dispatcher
    if _dispatcher is None:
        cell = get_word_cache_cell()
        _dispatcher = Dispatcher(cell, DynamoWordStore(), SlackReplySink())
    return _dispatcher


def _first_delivery(event: MessageEvent) -> bool:
    """False when this post was already dispatched.

    A post mentioning the bot arrives both as "message" and "app_mention"
    with the same channel and ts.
    """
    key = (event.channel, event.ts)
    if key in _recent_posts:
        return False
    _recent_posts[key] = None
    while len(_recent_posts) > RECENT_EVENT_LIMIT:
        _recent_posts.popitem(last=False)
    return True


async def dispatch_event(dispatcher: Dispatcher, event: MessageEvent) -> None:
    """Run one message through the dispatcher, logging internal failures."""
    try:
        command = await dispatcher.handle_message(event.text, event.user, event.channel)
    except InsultBotError as e:
        logger.error(f"Dropping message {event.ts} in {event.channel}: {e}")
        return
    logger.info(f"Handled message {event.ts} as {type(command).__name__}")


def _parse_message_event(raw) -> Optional[MessageEvent]:
    if not isinstance(raw, dict) or raw.get("type") not in MESSAGE_EVENT_TYPES:
        return None
    try:
        event = MessageEvent(**raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed {raw.get('type')} event: {e}")
        return None
    # Edits, joins and our own replies all carry a subtype or bot_id
    if event.subtype or event.bot_id:
        return None
    return event


# ─── Routes ───

@app.get("/health")
async def health():
    """Liveness probe."""
    return {"ok": True, "cache_loaded": get_word_cache_cell().loaded}


@app.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Receive a Slack Events API envelope."""
    try:
        body = await request.json()
    except ValueError:
        return {"error": "request body is not JSON"}
    type_ = body.get("type") if isinstance(body, dict) else None
    if type_ is None:
        return {"error": "slack event missing field 'type'"}
    if not isinstance(type_, str):
        return {"error": "expected string for field 'type'"}
    logger.debug(f"Received {type_} envelope")

    if type_ == URL_VERIFICATION:
        try:
            challenge = ChallengeRequest(**body)
        except ValidationError:
            return {"error": "url_verification missing field 'challenge'"}
        return {"challenge": challenge.challenge}

    if type_ == EVENT_CALLBACK:
        # Slack redelivers when we are slow to ack; the first delivery already replied
        if request.headers.get("X-Slack-Retry-Num"):
            logger.info(f"Ignoring Slack retry {request.headers.get('X-Slack-Retry-Num')}")
            return {"ok": True}
        event = _parse_message_event(body.get("event"))
        if event is not None and _first_delivery(event):
            background_tasks.add_task(dispatch_event, dispatcher, event)

    return {"ok": True}
