"""
Vocabulary service for Insult Bot.
Holds the descriptor and subject word lists loaded from the remote word table.
Lazy-builds on first use, cached for the life of the process.
"""

import asyncio
import enum
import random
import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple

from .config import WORD_ATTRIBUTE, CATEGORY_ATTRIBUTE, LEGACY_NOUN_FLAG_ATTRIBUTE
from .errors import PoisonedCacheError

logger = logging.getLogger(__name__)

VOWELS = "aeiou"


class Category(str, enum.Enum):
    DESCRIPTOR = "descriptor"
    SUBJECT = "subject"


class InsertResult(enum.Enum):
    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


class ReadWriteLock:
    """Many readers or one writer.

    A waiting writer holds off new readers so a steady stream of
    insults cannot starve an add-word command.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def article_for(word: str) -> str:
    """Return "an" for words starting with a vowel, "a" otherwise (and for "")."""
    if word and word[0].lower() in VOWELS:
        return "an"
    return "a"


class WordCache:
    """Descriptor and subject lists shared by every request in the process."""

    def __init__(self, descriptors=None, subjects=None, rng=None):
        self._words: Dict[Category, List[str]] = {
            Category.DESCRIPTOR: [],
            Category.SUBJECT: [],
        }
        for word in descriptors or ():
            self._append_unique(Category.DESCRIPTOR, word)
        for word in subjects or ():
            self._append_unique(Category.SUBJECT, word)
        self._rng = rng or random
        self._lock = ReadWriteLock()
        self._poisoned = False

    def _append_unique(self, category: Category, word: str) -> bool:
        words = self._words[category]
        if word in words:
            return False
        words.append(word)
        return True

    @contextmanager
    def _reading(self):
        with self._lock.read():
            if self._poisoned:
                raise PoisonedCacheError("word cache was poisoned by a failed write")
            yield

    @contextmanager
    def _writing(self):
        with self._lock.write():
            if self._poisoned:
                raise PoisonedCacheError("word cache was poisoned by a failed write")
            try:
                yield
            except BaseException:
                self._poisoned = True
                raise

    def pick_phrase(self) -> Optional[str]:
        """Pick a random "<article> <descriptor> <subject>", or None if a list is empty."""
        with self._reading():
            descriptors = self._words[Category.DESCRIPTOR]
            subjects = self._words[Category.SUBJECT]
            if not descriptors or not subjects:
                return None
            descriptor = self._rng.choice(descriptors)
            subject = self._rng.choice(subjects)
        return f"{article_for(descriptor)} {descriptor} {subject}"

    def insert(self, category: Category, word: str) -> InsertResult:
        """Add a trimmed word to a category unless it is already there.

        Raises ValueError for a word that is blank after trimming.
        """
        word = word.strip()
        if not word:
            raise ValueError("cannot add a blank word")
        with self._writing():
            if not self._append_unique(category, word):
                return InsertResult.ALREADY_PRESENT
        logger.info(f"Added {category.value} {word!r}")
        return InsertResult.INSERTED

    def snapshot(self) -> Tuple[List[str], List[str]]:
        """Copies of (descriptors, subjects) in insertion order."""
        with self._reading():
            return (
                list(self._words[Category.DESCRIPTOR]),
                list(self._words[Category.SUBJECT]),
            )


def _category_of(record) -> Optional[Category]:
    tag = record.get(CATEGORY_ATTRIBUTE)
    if isinstance(tag, str):
        try:
            return Category(tag.strip().lower())
        except ValueError:
            return None
    is_noun = record.get(LEGACY_NOUN_FLAG_ATTRIBUTE)
    if isinstance(is_noun, bool):
        return Category.SUBJECT if is_noun else Category.DESCRIPTOR
    return None


def build_word_cache(records, rng=None) -> WordCache:
    """Partition scanned records into a WordCache, dropping malformed ones."""
    cache = WordCache(rng=rng)
    discarded = 0
    for record in records:
        word = record.get(WORD_ATTRIBUTE) if isinstance(record, dict) else None
        if not isinstance(word, str) or not word.strip():
            discarded += 1
            continue
        category = _category_of(record)
        if category is None:
            discarded += 1
            continue
        cache._append_unique(category, word.strip())

    if discarded:
        logger.warning(f"Discarding remote insult words: {discarded} records were malformed")
    return cache


def load_word_cache(store, rng=None) -> WordCache:
    """Scan the whole remote table and build the cache (synchronous)."""
    logger.info("Building word cache from remote store...")
    cache = build_word_cache(store.scan(), rng=rng)
    descriptors, subjects = cache.snapshot()
    logger.info(f"Word cache built: {len(descriptors)} descriptors, {len(subjects)} subjects")
    return cache


class WordCacheCell:
    """Initialize a WordCache at most once, sharing the result with every caller.

    Concurrent first callers all await the same load. If the load fails,
    every caller for the rest of the process sees that same exception.
    """

    def __init__(self, store, rng=None):
        self._store = store
        self._rng = rng
        self._task: Optional[asyncio.Task] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def loaded(self) -> bool:
        return (
            self._task is not None
            and self._task.done()
            and not self._task.cancelled()
            and self._task.exception() is None
        )

    async def _load(self) -> WordCache:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, load_word_cache, self._store, self._rng)

    async def get(self) -> WordCache:
        if self._task is None:
            if self._lock is None:
                self._lock = asyncio.Lock()
            async with self._lock:
                # Double-check after acquiring lock
                if self._task is None:
                    self._task = asyncio.ensure_future(self._load())
        # shield: a cancelled waiter must not cancel the shared load
        return await asyncio.shield(self._task)


# Module-level cache
_cell: Optional[WordCacheCell] = None
_cell_lock = threading.Lock()


def get_word_cache_cell() -> WordCacheCell:
    """Get or create the process-wide cache cell backed by DynamoDB."""
    global _cell
    if _cell is not None:
        return _cell

    with _cell_lock:
        if _cell is None:
            from .dynamo_service import DynamoWordStore
            _cell = WordCacheCell(DynamoWordStore())
        return _cell
