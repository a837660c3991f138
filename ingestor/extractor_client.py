"""Client abstraction for handing chunks to the knowledge extractor."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from common.logging_config import get_logger

logger = get_logger(__name__)


class Extractor(ABC):
    """
    Opaque extraction collaborator.

    Implementations perform bounded-effort work on one chunk and report a
    boolean outcome. They must not raise for ordinary failures.
    """

    @abstractmethod
    async def extract(self, content_hash: str, chunk_index: int, text: str) -> bool:
        """
        Args:
            content_hash: Content identity of the owning file
            chunk_index: Zero-based chunk index
            text: Chunk text

        Returns:
            True if the chunk's knowledge was extracted and stored
        """

    async def close(self) -> None:
        """Release any held connections."""


class HttpExtractor(Extractor):
    """
    Extractor reached over HTTP.

    POSTs {"content_hash", "chunk_index", "text"} as JSON. A 2xx response is a
    success unless its JSON body carries a falsy "success" field.
    """

    def __init__(self, url: str, timeout: float, api_key: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            url: Extraction endpoint URL
            timeout: Per-call timeout in seconds
            api_key: Optional bearer token sent with each call
            client: Preconfigured client (tests inject one with a mock transport)
        """
        self.url = url
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        logger.info(f"Initialized HttpExtractor [url={url}] timeout={timeout}s")

    async def extract(self, content_hash: str, chunk_index: int, text: str) -> bool:
        payload = {
            "content_hash": content_hash,
            "chunk_index": chunk_index,
            "text": text,
        }

        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.TimeoutException:
            logger.warning(f"Extractor timed out [content_hash={content_hash}] chunk={chunk_index}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Extractor unreachable [content_hash={content_hash}] chunk={chunk_index}: {e}")
            return False

        if not response.is_success:
            logger.warning(
                f"Extractor returned {response.status_code} [content_hash={content_hash}] chunk={chunk_index}"
            )
            return False

        if not response.content:
            return True

        try:
            body = response.json()
        except ValueError:
            return True

        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                logger.warning(
                    f"Extractor reported failure [content_hash={content_hash}] chunk={chunk_index}: "
                    f"{body.get('error', 'no detail')}"
                )
            return bool(body["success"])
        return True

    async def close(self) -> None:
        await self.client.aclose()
