"""Cache key generation for the response cache.

Keys are derived from a canonical JSON serialization (sorted keys, no
whitespace variance) so logically identical option sets always map to the
same key regardless of the order filters were supplied in.
"""

import hashlib
import json
from typing import Any, Dict

from art_rag.models.query import ResolvedOptions


class CacheKeyGenerator:
    """Response cache key generation.

    All keys include a version segment to enable cache invalidation
    when the key format or cached data structure changes.

    Key format: {prefix}{version}:{sha256 of canonical payload}

    Example:
        art_rag:v1:5e884898da28047151d0e56f8dc6292773603d0d6aabbdd62a11ef721d1542d8
    """

    VERSION = "v1"

    @staticmethod
    def normalize_question(question: str) -> str:
        """Lowercase and trim question text."""
        return question.lower().strip()

    @classmethod
    def canonical_payload(cls, question: str, options: ResolvedOptions) -> str:
        """Serialize the fields that identify a response."""
        data: Dict[str, Any] = {
            "question": cls.normalize_question(question),
            "topK": options.top_k,
            "scoreThreshold": options.score_threshold,
            "filters": options.filters,
            "model": options.model,
        }
        return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)

    @classmethod
    def fingerprint(cls, question: str, options: ResolvedOptions) -> str:
        """Return the hex digest identifying (question, options)."""
        payload = cls.canonical_payload(question, options)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @classmethod
    def response(cls, question: str, options: ResolvedOptions, prefix: str = "") -> str:
        """Generate the full cache key for a response envelope.

        Args:
            question: The raw question text.
            options: Options with defaults already applied.
            prefix: Namespace prefix shared by every key of the store.

        Returns:
            Cache key string.
        """
        return f"{prefix}{cls.VERSION}:{cls.fingerprint(question, options)}"
