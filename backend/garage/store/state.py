"""
In-memory application state: one collection per entity type, the two
category lists and the garage profile.

AppState is created explicitly and handed to whoever needs it (the API
reads it from ``app.state``), so tests can build isolated stores.

CRUD contract per collection:
  add(record)     – assigns an id when the record has none; a supplied id
                    that already exists raises DuplicateRecordError
  update(record)  – full replace keyed by id; returns False (and changes
                    nothing) when the id is unknown
  delete(id)      – returns False when the id is unknown
Every mutation is mirrored to the DocumentStore boundary.
"""
from __future__ import annotations

from typing import Callable, Generic, Iterable, Iterator, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel

from garage.billing.numbering import DEFAULT_PREFIX, next_invoice_number
from garage.core.errors import DuplicateRecordError, UnknownCategoryKind
from garage.models.domain import Customer, GarageProfile, Invoice, Service, Stock
from garage.store.documents import DocumentStore, NullDocumentStore

T = TypeVar("T", bound=BaseModel)

DEFAULT_CATEGORIES: dict[str, list[str]] = {
    "stocks": ["Lubricants", "Brake System", "Filters", "Electrical", "Body Parts"],
    "services": ["Maintenance", "AC Services", "Painting", "Denting", "Electrical Work"],
}

CATEGORIES_COLLECTION = "categories"
PROFILE_COLLECTION = "garage_profile"
PROFILE_ID = "default"


class RecordCollection(Generic[T]):
    """Ordered id → record mapping with CRUD and a plain-text search."""

    def __init__(
        self,
        name: str,
        model: type[T],
        documents: DocumentStore,
        search_text: Callable[[T], Iterable[Optional[str]]],
    ):
        self.name = name
        self.model = model
        self._documents = documents
        self._search_text = search_text
        self._records: dict[str, T] = {}
        self._counter = 0

    # ── helpers ──────────────────────────────────────────────────────────────

    def _next_id(self) -> str:
        while True:
            self._counter += 1
            candidate = str(self._counter)
            if candidate not in self._records:
                return candidate

    def _persist(self, record: T) -> None:
        self._documents.upsert(self.name, record.id, record.model_dump(mode="json"))

    # ── CRUD ─────────────────────────────────────────────────────────────────

    def add(self, record: T) -> T:
        if record.id is not None and record.id in self._records:
            raise DuplicateRecordError(self.name, "id", record.id)
        record_id = record.id if record.id is not None else self._next_id()
        stored = record.model_copy(deep=True, update={"id": record_id})
        self._records[record_id] = stored
        self._persist(stored)
        logger.info(f"{self.name}: added {record_id}")
        return stored.model_copy(deep=True)

    def update(self, record: T) -> bool:
        if record.id is None or record.id not in self._records:
            logger.debug(f"{self.name}: update ignored, no record {record.id!r}")
            return False
        stored = record.model_copy(deep=True)
        self._records[record.id] = stored
        self._persist(stored)
        logger.info(f"{self.name}: updated {record.id}")
        return True

    def delete(self, record_id: str) -> bool:
        if record_id not in self._records:
            logger.debug(f"{self.name}: delete ignored, no record {record_id!r}")
            return False
        del self._records[record_id]
        self._documents.delete(self.name, record_id)
        logger.info(f"{self.name}: deleted {record_id}")
        return True

    def get(self, record_id: str) -> Optional[T]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def list(self) -> list[T]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    def search(self, term: str) -> list[T]:
        """Case-insensitive substring match over the collection's text fields."""
        needle = (term or "").strip().lower()
        if not needle:
            return self.list()
        return [
            r.model_copy(deep=True)
            for r in self._records.values()
            if any(needle in (text or "").lower() for text in self._search_text(r))
        ]

    def load(self, payloads: Iterable[dict]) -> int:
        """Replace contents with records read back from the document store."""
        self._records = {}
        for payload in payloads:
            record = self.model.model_validate(payload)
            self._records[record.id] = record
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())


class InvoiceCollection(RecordCollection[Invoice]):
    """Invoices additionally keep invoice numbers unique."""

    def __init__(self, documents: DocumentStore, prefix: str = DEFAULT_PREFIX):
        super().__init__(
            "invoices",
            Invoice,
            documents,
            lambda i: (i.invoice_number, i.customer.name, i.customer.phone, i.customer.vehicle_number),
        )
        self.prefix = prefix

    def next_number(self) -> str:
        return next_invoice_number(
            (i.invoice_number for i in self._records.values()), prefix=self.prefix
        )

    def _number_taken(self, number: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            i.invoice_number == number and i.id != exclude_id
            for i in self._records.values()
        )

    def add(self, record: Invoice) -> Invoice:
        number = record.invoice_number.strip()
        if not number:
            number = self.next_number()
        elif self._number_taken(number):
            raise DuplicateRecordError(self.name, "invoice_number", number)
        return super().add(record.model_copy(update={"invoice_number": number}))

    def update(self, record: Invoice) -> bool:
        number = record.invoice_number.strip()
        if record.id in self._records and number and self._number_taken(number, record.id):
            raise DuplicateRecordError(self.name, "invoice_number", number)
        return super().update(record)


class AppState:
    """All collections for one back-office session."""

    def __init__(
        self,
        documents: Optional[DocumentStore] = None,
        invoice_prefix: str = DEFAULT_PREFIX,
    ):
        self.documents = documents or NullDocumentStore()
        self.stocks: RecordCollection[Stock] = RecordCollection(
            "stocks",
            Stock,
            self.documents,
            lambda s: (s.product_name, s.part_number, s.category, s.hsn_code),
        )
        self.services: RecordCollection[Service] = RecordCollection(
            "services",
            Service,
            self.documents,
            lambda s: (s.service_name, s.category, s.hsn_code),
        )
        self.customers: RecordCollection[Customer] = RecordCollection(
            "customers",
            Customer,
            self.documents,
            lambda c: (c.name, c.phone, c.vehicle_number, c.make, c.model),
        )
        self.invoices = InvoiceCollection(self.documents, prefix=invoice_prefix)
        self.categories: dict[str, list[str]] = {
            kind: list(names) for kind, names in DEFAULT_CATEGORIES.items()
        }
        self.garage_profile: Optional[GarageProfile] = None

    # ── Categories ───────────────────────────────────────────────────────────

    def _category_list(self, kind: str) -> list[str]:
        if kind not in self.categories:
            raise UnknownCategoryKind(kind)
        return self.categories[kind]

    def _persist_categories(self, kind: str) -> None:
        self.documents.upsert(
            CATEGORIES_COLLECTION, kind, {"kind": kind, "names": self.categories[kind]}
        )

    def add_category(self, kind: str, name: str) -> bool:
        names = self._category_list(kind)
        name = (name or "").strip()
        if not name or name in names:
            return False
        names.append(name)
        self._persist_categories(kind)
        logger.info(f"categories: added {kind}/{name}")
        return True

    def delete_category(self, kind: str, name: str) -> bool:
        """Remove a label. Records already tagged with it keep the string."""
        names = self._category_list(kind)
        if name not in names:
            return False
        names.remove(name)
        self._persist_categories(kind)
        logger.info(f"categories: deleted {kind}/{name}")
        return True

    # ── Garage profile ───────────────────────────────────────────────────────

    def update_garage_profile(self, profile: GarageProfile) -> GarageProfile:
        self.garage_profile = profile.model_copy(deep=True)
        self.documents.upsert(
            PROFILE_COLLECTION, PROFILE_ID, self.garage_profile.model_dump(mode="json")
        )
        logger.info("garage_profile: replaced")
        return self.garage_profile.model_copy(deep=True)

    # ── Durable store ────────────────────────────────────────────────────────

    def hydrate(self) -> dict[str, int]:
        """Reload everything the document store holds."""
        counts = {}
        for collection in (self.stocks, self.services, self.customers, self.invoices):
            counts[collection.name] = collection.load(self.documents.list(collection.name))

        for doc in self.documents.list(CATEGORIES_COLLECTION):
            if doc.get("kind") in self.categories:
                self.categories[doc["kind"]] = list(doc.get("names") or [])

        profiles = self.documents.list(PROFILE_COLLECTION)
        if profiles:
            self.garage_profile = GarageProfile.model_validate(profiles[-1])

        logger.info(f"state hydrated from document store: {counts}")
        return counts
