"""Content-addressed publishing of bootstrap payloads."""

from __future__ import annotations

import hashlib

from loguru import logger

from nodeform.constants import USER_DATA_SUFFIX
from nodeform.exceptions import PublishError
from nodeform.protocols import ObjectStore

log = logger.bind(component="publisher")


def content_key(content: bytes) -> str:
    """Object key of a payload: its SHA-512 hex digest plus a fixed suffix."""
    return f"{hashlib.sha512(content).hexdigest()}{USER_DATA_SUFFIX}"


class ContentAddressedPublisher:
    """Publishes payloads under a key derived from their digest.

    Publishing the same bytes twice yields the same URI and overwrites
    the object with identical content, so the operation is idempotent.
    """

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def publish(self, bucket: str, content: bytes) -> str:
        """Upload ``content`` and return its ``scheme://bucket/key`` URI.

        Raises:
            PublishError: The bucket could not be created or the upload failed.
        """
        key = content_key(content)
        try:
            self._store.ensure_bucket(bucket)
            self._store.put(bucket, key, content)
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"failed to publish {key} to bucket {bucket}: {e}") from e

        uri = f"{self._store.scheme}://{bucket}/{key}"
        log.debug("Published {size} bytes to {uri}", size=len(content), uri=uri)
        return uri
