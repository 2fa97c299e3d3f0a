from functools import lru_cache
from typing import Any, Dict

from storage_sweeper.core.events.event_bus import DomainEventBus
from storage_sweeper.core.events.scan_events import ItemsDeletedEvent, ScanCompletedEvent
from storage_sweeper.core.scan_result_repository import ScanResultRepository
from storage_sweeper.services.scan_service import ScanService

from .config import Settings

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_event_bus() -> DomainEventBus:
    if "event_bus" not in _singletons:
        _singletons["event_bus"] = DomainEventBus()
    return _singletons["event_bus"]


def get_result_repository() -> ScanResultRepository:
    if "result_repository" not in _singletons:
        _singletons["result_repository"] = ScanResultRepository()
    return _singletons["result_repository"]


def get_scan_service() -> ScanService:
    if "scan_service" not in _singletons:
        _singletons["scan_service"] = ScanService(
            settings=get_settings(),
            event_bus=get_event_bus(),
        )
    return _singletons["scan_service"]


async def wire_event_handlers() -> None:
    """Subscribe the result repository to scan events. Called once at startup."""
    if _singletons.get("handlers_wired"):
        return
    event_bus = get_event_bus()
    repository = get_result_repository()
    await event_bus.subscribe(ScanCompletedEvent, repository.handle_scan_completed)
    await event_bus.subscribe(ItemsDeletedEvent, repository.handle_items_deleted)
    _singletons["handlers_wired"] = True


def reset_singletons() -> None:
    _singletons.clear()
    get_settings.cache_clear()
