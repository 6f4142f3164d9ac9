"""Wiring of the HTTP client, session, repositories and use cases."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from milk_center.domain.events import EventChannel
from milk_center.infrastructure.http.client import ApiClient
from milk_center.infrastructure.repositories.api_repositories import (
    ApiAdvanceRepository,
    ApiCollectionRepository,
    ApiFarmerRepository,
    ApiFatRateRepository,
    ApiHelperRepository,
)
from milk_center.infrastructure.storage.session_store import FileSessionStore

from .session import ForcedLogoutScheduler, SessionGuard
from .use_cases import (
    AdministrationContext,
    AdvanceContext,
    CollectionContext,
    DeleteCollectionUseCase,
    FarmerAdministration,
    FatRateEditor,
    RecordAdvanceUseCase,
    RecordCollectionUseCase,
    UpdateCollectionUseCase,
)


@dataclass(slots=True)
class MilkCenterServices:
    events: EventChannel
    store: FileSessionStore
    client: ApiClient
    guard: SessionGuard
    fat_rates: ApiFatRateRepository
    collections: ApiCollectionRepository
    advances: ApiAdvanceRepository
    farmers: ApiFarmerRepository
    helpers: ApiHelperRepository

    def record_collection(self) -> RecordCollectionUseCase:
        return RecordCollectionUseCase(self._collection_context())

    def update_collection(self) -> UpdateCollectionUseCase:
        return UpdateCollectionUseCase(self._collection_context())

    def delete_collection(self) -> DeleteCollectionUseCase:
        return DeleteCollectionUseCase(self._collection_context())

    def record_advance(self) -> RecordAdvanceUseCase:
        return RecordAdvanceUseCase(AdvanceContext(guard=self.guard, advances=self.advances, events=self.events))

    def fat_rate_editor(self) -> FatRateEditor:
        return FatRateEditor(self.guard, self.fat_rates)

    def administration(self) -> FarmerAdministration:
        return FarmerAdministration(
            AdministrationContext(guard=self.guard, farmers=self.farmers, events=self.events, helpers=self.helpers)
        )

    def _collection_context(self) -> CollectionContext:
        return CollectionContext(
            guard=self.guard,
            collections=self.collections,
            fat_rates=self.fat_rates,
            events=self.events,
        )

    def close(self) -> None:
        self.guard.scheduler.cancel()
        self.client.close()


def build_services(
    base_url: str | None = None,
    session_file: Path | None = None,
    transport: httpx.BaseTransport | None = None,
    scheduler: ForcedLogoutScheduler | None = None,
) -> MilkCenterServices:
    events = EventChannel()
    store = FileSessionStore(session_file)
    client = ApiClient(store, events, base_url=base_url, transport=transport)
    return MilkCenterServices(
        events=events,
        store=store,
        client=client,
        guard=SessionGuard(client, store, events, scheduler),
        fat_rates=ApiFatRateRepository(client),
        collections=ApiCollectionRepository(client),
        advances=ApiAdvanceRepository(client),
        farmers=ApiFarmerRepository(client),
        helpers=ApiHelperRepository(client),
    )
