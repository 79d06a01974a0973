"""
Cache Key Management
====================
Derivation of stable cache keys from a base key and structured parameters.

Pattern: {base}:{digest}

The digest is the base64-encoded SHA-256 of the canonical JSON text
of the parameters. Canonical text sorts mapping keys, uses compact
separators and writes integral floats as integers, so two equal
parameter objects always produce the same key no matter how they
were built.
"""

import base64
import hashlib
import json
import math
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Sequence, Set, Union

from pydantic import BaseModel

from cache_facade.core.exceptions import SerializationError


CanonicalValue = Union[
    None,
    bool,
    int,
    float,
    str,
    Sequence["CanonicalValue"],
    Mapping[str, "CanonicalValue"],
]


class CacheKeys:
    """
    Cache key deriver

    Stateless; every method is a classmethod so the class can be
    used directly or through the ``cache_keys`` instance.
    """

    SEPARATOR = ":"

    @classmethod
    def derive_key(cls, base: str, params: CanonicalValue) -> str:
        """
        Build the cache key for base + params

        Args:
            base: Human-chosen key segment (e.g. "user")
            params: Structured value disambiguating entries under base

        Returns:
            str: "{base}:{digest}"

        Raises:
            SerializationError: If params are not canonically serializable
        """
        return f"{base}{cls.SEPARATOR}{cls.hash_params(params)}"

    @classmethod
    def hash_params(cls, params: CanonicalValue) -> str:
        """
        Base64 SHA-256 digest of the canonical form of params

        Returns:
            str: 44-character digest
        """
        digest = hashlib.sha256(cls.canonicalize(params).encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")

    @classmethod
    def canonicalize(cls, params: CanonicalValue) -> str:
        """
        Serialize params to their canonical JSON text

        Raises:
            SerializationError: On cycles, non-string mapping keys,
                non-finite floats or unsupported types
        """
        normalized = cls._normalize(params, "$", set())
        return json.dumps(
            normalized,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )

    @classmethod
    def _normalize(cls, value: Any, path: str, active: Set[int]) -> Any:
        """Validate value and reduce it to plain JSON types"""
        if value is None or isinstance(value, (bool, str)):
            return value

        if isinstance(value, int):
            return int(value)

        if isinstance(value, float):
            if not math.isfinite(value):
                raise SerializationError(f"non-finite float {value!r}", path)
            # 1.0 and 1 must hash the same
            if value.is_integer():
                return int(value)
            return value

        if isinstance(value, BaseModel):
            return cls._normalize(value.model_dump(mode="json"), path, active)

        if isinstance(value, Mapping):
            with _visiting(value, path, active):
                result = {}
                for key, item in value.items():
                    if not isinstance(key, str):
                        raise SerializationError(
                            f"mapping key {key!r} is {type(key).__name__}, expected str",
                            path,
                        )
                    result[key] = cls._normalize(item, f"{path}.{key}", active)
                return result

        if isinstance(value, (list, tuple)):
            with _visiting(value, path, active):
                items: List[Any] = []
                for index, item in enumerate(value):
                    items.append(cls._normalize(item, f"{path}[{index}]", active))
                return items

        raise SerializationError(f"unsupported type {type(value).__name__}", path)


@contextmanager
def _visiting(container: Any, path: str, active: Set[int]) -> Iterator[None]:
    """Track containers on the current path to detect cycles"""
    marker = id(container)
    if marker in active:
        raise SerializationError("cyclic reference", path)
    active.add(marker)
    try:
        yield
    finally:
        active.discard(marker)


# Shared instance
cache_keys = CacheKeys()
