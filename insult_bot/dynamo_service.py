"""
DynamoDB word store for Insult Bot.
Every known word is one item: {"word": <text>, "category": "descriptor" | "subject"}.
"""

import logging

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    INSULT_TABLE,
    AWS_REGION,
    HTTP_TIMEOUT,
    WORD_ATTRIBUTE,
    CATEGORY_ATTRIBUTE,
)
from .errors import ConfigurationError, RemoteStoreError

logger = logging.getLogger(__name__)


def is_configured(table_name=None):
    """Check if the DynamoDB table name is configured."""
    return bool(table_name or INSULT_TABLE)


class DynamoWordStore:
    """Scan and append words in a DynamoDB table (synchronous, run in an executor)."""

    def __init__(self, table_name=None, region=None, table=None):
        self.table_name = table_name or INSULT_TABLE
        self.region = region or AWS_REGION
        self._table = table

    def _get_table(self):
        """Create a boto3 Table resource for the configured table."""
        if self._table is not None:
            return self._table
        if not is_configured(self.table_name):
            raise ConfigurationError("INSULT_TABLE is not set")

        import boto3
        dynamodb = boto3.resource(
            "dynamodb",
            region_name=self.region,
            config=Config(connect_timeout=HTTP_TIMEOUT, read_timeout=HTTP_TIMEOUT),
        )
        self._table = dynamodb.Table(self.table_name)
        return self._table

    def scan(self):
        """Return every item in the table, following scan pagination."""
        table = self._get_table()
        items = []
        kwargs = {}
        try:
            while True:
                resp = table.scan(**kwargs)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise RemoteStoreError(f"DynamoDB scan of {self.table_name} failed: {e}") from e
        logger.debug(f"Scanned {len(items)} items from {self.table_name}")
        return items

    def put(self, word, category):
        """Append one tagged word to the table."""
        table = self._get_table()
        try:
            table.put_item(Item={
                WORD_ATTRIBUTE: word,
                CATEGORY_ATTRIBUTE: category.value,
            })
        except (BotoCoreError, ClientError) as e:
            raise RemoteStoreError(f"DynamoDB put of {word!r} failed: {e}") from e
