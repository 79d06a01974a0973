"""
Cache Invalidation Service
===========================
Pattern-based bulk invalidation.

The matching keys are listed once and each one is deleted with its
own DEL. Deletes run concurrently (bounded) and independently: a
failed delete never stops the others, and every failure is reported
through PartialBulkFailure once all attempts have finished.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from cache_facade.core.exceptions import PartialBulkFailure, StoreError
from cache_facade.core.logging_config import get_logger

if TYPE_CHECKING:
    from cache_facade.services.cache.redis_client import CacheClient


logger = get_logger(__name__)


@dataclass
class BulkDeletionReport:
    """Outcome of one pattern invalidation"""

    pattern: str
    matched: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    # Listed but already gone when their DEL ran
    missing: List[str] = field(default_factory=list)
    failed: Dict[str, BaseException] = field(default_factory=dict)
    # No finished attempt yet; non-empty only after cancellation
    pending: Set[str] = field(default_factory=set)

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.missing) + len(self.failed)

    @property
    def complete(self) -> bool:
        return not self.pending and self.attempted == len(self.matched)


class BulkInvalidator:
    """
    Deletes every key matching a glob pattern

    Not atomic: keys created after the listing are not guaranteed to
    be deleted.
    """

    def __init__(self, client: "CacheClient", concurrency: int = 32):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._concurrency = concurrency

    async def delete_by_pattern(
        self,
        pattern: str,
        report: Optional[BulkDeletionReport] = None,
    ) -> BulkDeletionReport:
        """
        Invalidate all keys matching a pattern

        Args:
            pattern: Redis key pattern (e.g. "user:*")
            report: Report to fill in; the caller keeps a handle on it so
                pending keys stay visible if the call is cancelled

        Returns:
            BulkDeletionReport: Outcome of every delete attempt

        Raises:
            PartialBulkFailure: If one or more deletes failed
            StoreError: If listing the keys failed
        """
        if report is None:
            report = BulkDeletionReport(pattern=pattern)
        report.pattern = pattern

        keys = await self._client.list_keys(pattern)
        report.matched = keys
        report.deleted.clear()
        report.missing.clear()
        report.failed.clear()
        report.pending = set(keys)

        if not keys:
            logger.debug(f"No keys matching pattern: {pattern}")
            return report

        semaphore = asyncio.Semaphore(self._concurrency)

        async def delete_one(key: str) -> None:
            async with semaphore:
                try:
                    removed = await self._client.delete(key)
                except Exception as e:
                    report.failed[key] = e
                else:
                    if removed:
                        report.deleted.append(key)
                    else:
                        report.missing.append(key)
                report.pending.discard(key)

        try:
            await asyncio.gather(*(delete_one(key) for key in keys))
        except asyncio.CancelledError:
            logger.warning(
                f"Bulk invalidation of '{pattern}' cancelled: "
                f"{report.attempted}/{len(keys)} attempted, "
                f"{len(report.pending)} pending"
            )
            raise

        if report.failed:
            logger.error(
                f"Bulk invalidation of '{pattern}' left {len(report.failed)} "
                f"of {len(keys)} keys undeleted"
            )
            raise PartialBulkFailure(report.failed, [report])

        logger.info(f"Deleted {len(report.deleted)} keys matching pattern: {pattern}")
        return report

    async def delete_by_patterns(self, patterns: Iterable[str]) -> List[BulkDeletionReport]:
        """
        Invalidate several patterns one after the other

        Neither a failed delete nor a failed listing stops the remaining
        patterns. Per-key failures and listing errors of every pattern
        are gathered into a single PartialBulkFailure raised after the
        last pattern.

        Returns:
            List[BulkDeletionReport]: One report per listed pattern
        """
        reports: List[BulkDeletionReport] = []
        failed: Dict[str, BaseException] = {}
        pattern_errors: Dict[str, StoreError] = {}

        for pattern in patterns:
            try:
                reports.append(await self.delete_by_pattern(pattern))
            except PartialBulkFailure as e:
                reports.extend(e.reports)
                failed.update(e.errors)
            except StoreError as e:
                logger.error(f"Could not list keys for pattern '{pattern}': {e}")
                pattern_errors[pattern] = e

        if failed or pattern_errors:
            raise PartialBulkFailure(failed, reports, pattern_errors=pattern_errors)

        return reports
