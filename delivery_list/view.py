import asyncio
import logging
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import List, Optional, Sequence
from urllib.parse import quote

from delivery_list.schemas import SEVERITY_VARIANTS, DeliveryCard, DeliveryViewModel, Severity
from delivery_list.source.client import DeliverySourceClient
from delivery_list.source.normalizer import normalize_deliveries

logger = logging.getLogger(__name__)


def filter_deliveries(deliveries: Sequence[DeliveryViewModel], term: Optional[str]) -> List[DeliveryViewModel]:
    """Case-insensitive substring match of the term against each client string. Empty term keeps all."""
    needle = (term or "").lower()
    return [d for d in deliveries if needle in d.client.lower()]


def calculate_progress(planned: int, total: int) -> float:
    """Planned share of total tasks in percent; 0 when there are no tasks. Not clamped."""
    if total == 0:
        return 0
    return planned / total * 100


def progress_severity(progress: float) -> Severity:
    if progress > 50:
        return "high"
    if progress > 20:
        return "medium"
    return "low"


def delivery_href(del_code: str) -> str:
    return f"/delivery/{quote(del_code, safe='')}"


def count_label(count: int) -> str:
    return f"You have {count} active deliveries"


def to_card(delivery: DeliveryViewModel) -> DeliveryCard:
    progress = calculate_progress(delivery.tasksPlanned, delivery.tasksTotal)
    severity = progress_severity(progress)
    return DeliveryCard(
        **delivery.model_dump(),
        progress=progress,
        severity=severity,
        variant=SEVERITY_VARIANTS[severity],
        href=delivery_href(delivery.delCode),
    )


@dataclass
class ListSnapshot:
    """The list as rendered for one search term."""
    search: str
    total_count: int
    visible_count: int
    cards: List[DeliveryCard]

    @property
    def label(self) -> str:
        return count_label(self.total_count)


class DeliveryListView:
    """
    Owns the delivery list for the lifetime of the application.

    `mount` starts the one fetch in the background and `unmount` cancels it;
    results arriving after `unmount` are discarded.
    """

    def __init__(self, client: DeliverySourceClient, visible_count: int, tz: tzinfo = timezone.utc):
        if visible_count <= 0:
            raise ValueError("visible_count must be a positive integer.")
        self.client = client
        self.visible_count = visible_count
        self.tz = tz
        self.deliveries: List[DeliveryViewModel] = []
        self._fetch_task: Optional[asyncio.Task] = None
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def loaded(self) -> bool:
        return self._fetch_task is not None and self._fetch_task.done()

    def mount(self) -> asyncio.Task:
        """Starts the background fetch. Calling it again returns the existing task."""
        if self._fetch_task is None:
            self._mounted = True
            logger.info("Mounting delivery list; starting initial fetch.")
            self._fetch_task = asyncio.create_task(self._load())
        return self._fetch_task

    async def _load(self):
        try:
            payload = await self.client.fetch_grouped_records()
            if not self._mounted:
                logger.info("Delivery list unmounted before fetch completed; discarding result.")
                return
            self.deliveries = normalize_deliveries(payload, self.tz)
        except Exception as e:
            logger.error(f"Failed to load deliveries: {e}", exc_info=True)

    async def wait_loaded(self):
        """Waits for the initial fetch to finish, whether it produced records or not."""
        if self._fetch_task is None:
            return
        try:
            await asyncio.shield(self._fetch_task)
        except asyncio.CancelledError:
            if not self._fetch_task.cancelled():
                raise

    async def unmount(self):
        """Tears the view down, cancelling a pending fetch."""
        self._mounted = False
        task = self._fetch_task
        if task is not None and not task.done():
            logger.info("Cancelling pending delivery fetch.")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Delivery list unmounted.")

    def snapshot(self, term: Optional[str] = None) -> ListSnapshot:
        """Filters the current list by the search term and slices it to the visible count."""
        filtered = filter_deliveries(self.deliveries, term)
        return ListSnapshot(
            search=term or "",
            total_count=len(filtered),
            visible_count=self.visible_count,
            cards=[to_card(d) for d in filtered[:self.visible_count]],
        )
