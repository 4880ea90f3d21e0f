"""
Configuration for Insult Bot - environment variables, reply strings, store layout.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Environment variables
INSULT_TABLE = os.getenv("INSULT_TABLE", "")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
SLACK_TOKEN = os.getenv("SLACK_TOKEN", "")
SLACK_API_URL = os.getenv("SLACK_API_URL", "https://slack.com/api/chat.postMessage")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Replies sent back to the channel
REPLY_EMPTY_CACHE = "Shut up."
REPLY_ADDED = "Added."
REPLY_DUPLICATE = "I already have that word!"
REPLY_REJECTED = "Nice try wise guy."

# DynamoDB item attributes
WORD_ATTRIBUTE = "word"
CATEGORY_ATTRIBUTE = "category"
# Written by the first deployment: true for nouns, false for adjectives
LEGACY_NOUN_FLAG_ATTRIBUTE = "isNoun"

# Slack envelope types handled by the webhook
URL_VERIFICATION = "url_verification"
EVENT_CALLBACK = "event_callback"
MESSAGE_EVENT_TYPES = ("message", "app_mention")
# Posts remembered for dropping the second of a message/app_mention pair
RECENT_EVENT_LIMIT = 1000
