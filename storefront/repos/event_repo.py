# storefront/repos/event_repo.py
from storefront.data.store import CollectionStore, utcnow_iso
from storefront.domain.models import ProcessedEvent


class EventRepo:
    """Processed webhook events, keyed by the provider's event id."""

    collection = "stripe_events"

    def __init__(self, store: CollectionStore):
        self.store = store

    async def is_processed(self, event_id: str) -> bool:
        return await self.store.find_by_id(self.collection, event_id) is not None

    async def mark_processed(self, event_id: str, event_type: str) -> ProcessedEvent:
        entry = ProcessedEvent(
            id=event_id,
            event_id=event_id,
            type=event_type,
            processed_at=utcnow_iso(),
        )
        row = await self.store.insert(self.collection, entry.to_record())
        return ProcessedEvent.from_record(row)
