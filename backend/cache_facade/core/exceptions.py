"""
Custom Exceptions
=================
Cache-specific exception classes.

Redis errors never leave the façade untranslated: connection and
timeout failures become StoreUnavailableError, anything else the
store answers with becomes StoreProtocolError.
"""

from typing import Dict, Iterable, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from cache_facade.services.cache.invalidation import BulkDeletionReport


class CacheError(Exception):
    """Base cache exception"""


class SerializationError(CacheError, ValueError):
    """Parameter object cannot be canonically serialized"""
    def __init__(self, detail: str, path: str = "$"):
        self.detail = detail
        self.path = path
        super().__init__(f"Cannot serialize parameters at {path}: {detail}")


class StoreError(CacheError):
    """Base class for failures reported by the key-value store"""
    def __init__(self, detail: str, key: Optional[str] = None):
        self.detail = detail
        self.key = key
        super().__init__(detail)


class StoreUnavailableError(StoreError):
    """Store could not be reached (connection refused, timeout, not connected)"""


class StoreProtocolError(StoreError):
    """Store answered with an error or an unexpected reply"""


class PartialBulkFailure(CacheError):
    """
    One or more deletes failed during a pattern invalidation

    Raised after every listed key had its delete attempted. The
    keys in failed_keys can be retried on their own; patterns in
    pattern_errors could not be listed and were not attempted.
    """
    def __init__(
        self,
        failed: Dict[Union[str, bytes], BaseException],
        reports: Optional[Iterable["BulkDeletionReport"]] = None,
        pattern_errors: Optional[Dict[str, "StoreError"]] = None,
    ):
        self.errors = dict(failed)
        self.reports: List["BulkDeletionReport"] = list(reports or [])
        self.pattern_errors: Dict[str, StoreError] = dict(pattern_errors or {})

        parts = []
        if self.errors:
            parts.append(
                f"{len(self.errors)} key(s) could not be deleted: "
                + ", ".join(_key_text(key) for key in self.failed_keys)
            )
        if self.pattern_errors:
            parts.append(
                f"{len(self.pattern_errors)} pattern(s) could not be listed: "
                + ", ".join(self.pattern_errors)
            )
        super().__init__("; ".join(parts))

    @property
    def failed_keys(self) -> List[Union[str, bytes]]:
        return sorted(self.errors, key=_key_text)

    @property
    def report(self) -> Optional["BulkDeletionReport"]:
        """Report of the invalidation, when a single pattern was involved"""
        if len(self.reports) == 1:
            return self.reports[0]
        return None


def _key_text(key: Union[str, bytes]) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="backslashreplace")
    return key
