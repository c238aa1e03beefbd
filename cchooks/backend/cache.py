"""File-backed response cache with lazy TTL expiry."""

import hashlib
import json
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import aiofiles

from cchooks.core.logging import get_logger


logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
MAX_KEY_LENGTH = 100

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def fingerprint(model: str, temperature: float, prompt: str) -> str:
    """Cache key for a request, bounded to ``MAX_KEY_LENGTH`` characters.

    The prompt is hashed so the whole of it contributes to the key; only the
    readable model and temperature prefix is trimmed.
    """
    digest = hashlib.sha256(json.dumps(prompt).encode("utf-8")).hexdigest()
    prefix = f"{model}:{temperature}"[: MAX_KEY_LENGTH - len(digest) - 1]
    return f"{prefix}:{digest}"


class ResponseCache:
    """One JSON document per cached response.

    Each file holds ``{"timestamp": <epoch ms>, "response": <payload>}``. Stale
    entries are deleted by the read that finds them; nothing sweeps the
    directory in the background. Read and write failures are logged and
    treated as cache misses.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, key: str) -> Any | None:
        """Return the cached payload, or None when missing or expired."""
        path = self.path_for(key)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                entry = json.loads(await f.read())
            age_ms = self._now_ms() - int(entry["timestamp"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("cache_read_error", path=str(path), error=str(e))
            return None

        if age_ms < self.ttl_seconds * 1000:
            logger.debug("cache_hit", key=key, age_ms=age_ms)
            return entry.get("response")

        logger.debug("cache_expired", key=key, age_ms=age_ms)
        await self.delete(key)
        return None

    async def set(self, key: str, response: Any) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(
                    json.dumps({"timestamp": self._now_ms(), "response": response})
                )
        except (OSError, TypeError) as e:
            logger.debug("cache_write_error", path=str(path), error=str(e))

    async def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.debug("cache_delete_error", path=str(path), error=str(e))
            return False
