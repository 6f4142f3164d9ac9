"""REST-backed repositories over :class:`ApiClient`."""
from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from milk_center.domain.models import AdvanceEntry, CollectionEntry, Farmer, Helper
from milk_center.domain.rates import RateTable
from milk_center.infrastructure.http.client import ApiClient
from milk_center.infrastructure.parsing import (
    advance_from_payload,
    advance_to_payload,
    collection_from_payload,
    collection_to_payload,
    farmer_from_payload,
    fat_rate_from_payload,
    helper_from_payload,
)

# The backend paginates; the dashboard asks for everything in one page.
LIST_LIMIT = 1000


def _data(response: dict[str, Any]) -> dict[str, Any]:
    data = response.get("data")
    return data if isinstance(data, dict) else {}


class ApiFatRateRepository:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def load(self) -> RateTable:
        rows = _data(self._client.get("/fat-rates")).get("fatRates") or []
        return RateTable(fat_rate_from_payload(row) for row in rows)

    def save_bulk(self, table: RateTable) -> RateTable:
        response = self._client.put("/fat-rates/bulk", {"fatRates": table.to_payload()})
        rows = _data(response).get("fatRates")
        if rows is None:
            return table.copy()
        return RateTable(fat_rate_from_payload(row) for row in rows)


class ApiCollectionRepository:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def list_collections(
        self,
        user_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Sequence[CollectionEntry]:
        params = {
            "userId": user_id,
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
            "limit": LIST_LIMIT,
        }
        rows = _data(self._client.get("/collections", params=params)).get("collections") or []
        return [collection_from_payload(row) for row in rows]

    def create(self, entry: CollectionEntry) -> CollectionEntry:
        response = self._client.post("/collections", collection_to_payload(entry))
        return self._entry_or(response, entry)

    def update(self, collection_id: str, entry: CollectionEntry) -> CollectionEntry:
        response = self._client.put(f"/collections/{collection_id}", collection_to_payload(entry))
        return self._entry_or(response, entry)

    def delete(self, collection_id: str) -> None:
        self._client.delete(f"/collections/{collection_id}")

    @staticmethod
    def _entry_or(response: dict[str, Any], fallback: CollectionEntry) -> CollectionEntry:
        row = _data(response).get("collection")
        return collection_from_payload(row) if row else fallback


class ApiAdvanceRepository:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def list_advances(self, user_id: str | None = None) -> Sequence[AdvanceEntry]:
        rows = _data(self._client.get("/advances", params={"userId": user_id, "limit": LIST_LIMIT})).get("advances") or []
        return [advance_from_payload(row) for row in rows]

    def create(self, entry: AdvanceEntry) -> AdvanceEntry:
        row = _data(self._client.post("/advances", advance_to_payload(entry))).get("advance")
        return advance_from_payload(row) if row else entry

    def delete(self, advance_id: str) -> None:
        self._client.delete(f"/advances/{advance_id}")


class ApiFarmerRepository:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def list_farmers(self, search: str | None = None) -> Sequence[Farmer]:
        rows = _data(self._client.get("/users", params={"search": search, "limit": LIST_LIMIT})).get("users") or []
        return [farmer_from_payload(row) for row in rows]

    def get(self, farmer_id: str) -> Farmer:
        return farmer_from_payload(_data(self._client.get(f"/users/{farmer_id}"))["user"])

    def create(self, fields: dict[str, Any]) -> Farmer:
        return farmer_from_payload(_data(self._client.post("/users", fields))["user"])

    def update(self, farmer_id: str, fields: dict[str, Any]) -> Farmer:
        return farmer_from_payload(_data(self._client.put(f"/users/{farmer_id}", fields))["user"])

    def delete(self, farmer_id: str) -> None:
        self._client.delete(f"/users/{farmer_id}")

    def deactivate(self, farmer_id: str, reason: str | None = None) -> Farmer:
        response = self._client.patch(f"/users/{farmer_id}/deactivate", {"reason": reason})
        return farmer_from_payload(_data(response)["user"])

    def reactivate(self, farmer_id: str) -> Farmer:
        return farmer_from_payload(_data(self._client.patch(f"/users/{farmer_id}/reactivate"))["user"])


class ApiHelperRepository:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def list_helpers(self) -> Sequence[Helper]:
        rows = _data(self._client.get("/helpers", params={"limit": LIST_LIMIT})).get("helpers") or []
        return [helper_from_payload(row) for row in rows]

    def create(self, fields: dict[str, Any]) -> Helper:
        return helper_from_payload(_data(self._client.post("/helpers", fields))["helper"])

    def update(self, helper_id: str, fields: dict[str, Any]) -> Helper:
        return helper_from_payload(_data(self._client.put(f"/helpers/{helper_id}", fields))["helper"])

    def delete(self, helper_id: str) -> None:
        self._client.delete(f"/helpers/{helper_id}")

    def extend_password(self, helper_id: str) -> Helper:
        return helper_from_payload(_data(self._client.patch(f"/helpers/{helper_id}/extend-password"))["helper"])

    def toggle_status(self, helper_id: str) -> Helper:
        return helper_from_payload(_data(self._client.patch(f"/helpers/{helper_id}/toggle-status"))["helper"])
