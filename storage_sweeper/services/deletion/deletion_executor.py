"""
Best-effort deletion of user-selected scan items.
"""

import asyncio
import logging
import shutil
from typing import Sequence

import aiofiles.os

from storage_sweeper.core.exceptions import MalformedDeletionRequestError
from storage_sweeper.logging_config import DELETION_AUDIT_LOGGER
from storage_sweeper.models import DeletionReport, DeletionResult, DeletionStatus, ScanItem
from storage_sweeper.utils.progress_utils import format_bytes_human_readable

audit_log = logging.getLogger(DELETION_AUDIT_LOGGER)


class DeletionExecutor:
    """
    Removes every item independently and concurrently.

    One item failing (missing, permission denied, busy) never stops the
    others. Nothing is rolled back. The only exception raised is for input
    that is not a sequence of ScanItems.
    """

    def __init__(self, max_concurrent: int = 8):
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def delete_items(self, items: Sequence[ScanItem]) -> DeletionReport:
        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            raise MalformedDeletionRequestError(
                f"Expected a sequence of ScanItem, got {type(items).__name__}"
            )
        bad = [type(item).__name__ for item in items if not isinstance(item, ScanItem)]
        if bad:
            raise MalformedDeletionRequestError(f"Deletion request contains non-ScanItem entries: {bad[:3]}")

        unique = list({item.path: item for item in items}.values())
        results = await asyncio.gather(*(self._delete_one(item) for item in unique))
        report = DeletionReport(results={item.path: result for item, result in zip(unique, results)})

        logging.info(
            f"Deletion finished: {report.deleted_count} deleted, {report.failed_count} failed, "
            f"{format_bytes_human_readable(report.freed_bytes)} freed"
        )
        return report

    async def _delete_one(self, item: ScanItem) -> DeletionResult:
        async with self._semaphore:
            try:
                is_link = await aiofiles.os.path.islink(item.path)
                if not is_link and not await aiofiles.os.path.exists(item.path):
                    return DeletionResult(status=DeletionStatus.MISSING)

                if not is_link and await aiofiles.os.path.isdir(item.path):
                    await asyncio.to_thread(shutil.rmtree, item.path)
                else:
                    await aiofiles.os.remove(item.path)

                audit_log.info(f"{item.path} {item.category.value} {item.size}")
                return DeletionResult(status=DeletionStatus.DELETED, freed_bytes=item.size)

            except FileNotFoundError:
                return DeletionResult(status=DeletionStatus.MISSING)
            except OSError as e:
                logging.warning(f"Could not delete {item.path}: {e}")
                return DeletionResult(status=DeletionStatus.FAILED, error=str(e))
