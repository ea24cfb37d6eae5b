"""Barcode generation, normalisation and lookup.

Generated barcodes are only probabilistically unique. The unique constraint on
``inventory.barcode`` is what actually guarantees uniqueness at commit time.
"""

from __future__ import annotations

import logging
import random
import re
import string
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import IntegrityError

from app.wms.core.config import settings
from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.db.models import Barcode, BarcodeLog, InventoryItem
from app.wms.repos.audit import BarcodeLogRepository
from app.wms.repos.barcodes import BarcodeRegistryRepository
from app.wms.repos.inventory import InventoryRepository

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = string.digits + string.ascii_uppercase
_WHITESPACE = re.compile(r"\s+")
_FORMATTING = re.compile(r"[-\s]")
_DIGITS = re.compile(r"^\d+$")
MIN_BARCODE_LENGTH = 4
_MAX_REGISTRY_DRAWS = 20


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def barcode_key(product) -> str | None:
    """Human-readable key for a product: its SKU, else a short name prefix."""
    if product is None:
        return None
    sku = (getattr(product, "sku", None) or "").strip()
    if sku:
        return _WHITESPACE.sub("", sku).upper()
    name = (getattr(product, "name", None) or "").strip()
    if name:
        return _WHITESPACE.sub("", name[:6].upper()) or None
    return None


def normalize_barcode(barcode: str | None) -> str:
    if not barcode:
        return ""
    return _FORMATTING.sub("", barcode)


def validate_barcode(barcode: str | None) -> bool:
    if not barcode:
        return False
    return len(barcode) >= MIN_BARCODE_LENGTH


def format_barcode_for_display(barcode: str | None) -> str:
    if not barcode:
        return ""
    if "-" in barcode:
        return barcode
    if len(barcode) >= 32:
        return f"{barcode[:8]}-{barcode[8:12]}-{barcode[12:16]}-{barcode[16:20]}-{barcode[20:]}"
    if _DIGITS.match(barcode):
        return "-".join(barcode[index:index + 4] for index in range(0, len(barcode), 4))
    if len(barcode) > 8:
        return f"{barcode[:4]}-{barcode[4:8]}-{barcode[8:]}"
    return barcode


class BarcodeGenerator:
    """Produces ``{KEY}-{NNN}-{suffix}`` candidates, one per box.

    ``suffix`` is the base-36 millisecond timestamp followed by a base-36
    random fragment. Without a key every box gets a random UUID instead.
    Pass ``clock`` and a seeded ``rng`` for reproducible output.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] | None = None,
        rng: random.Random | None = None,
        random_length: int | None = None,
    ):
        self._clock = clock or time.time
        self._rng = rng or random.SystemRandom()
        self._random_length = random_length or settings.BARCODE_SUFFIX_RANDOM_LENGTH

    def generate(self, key: str | None, count: int, *, start: int = 1) -> list[str]:
        if count <= 0:
            return []
        if not key:
            return [self._random_uuid() for _ in range(count)]
        timestamp = to_base36(int(self._clock() * 1000))
        return [
            f"{key}-{str(start + offset).zfill(3)}-{timestamp}{self._random_fragment()}"
            for offset in range(count)
        ]

    def _random_fragment(self) -> str:
        return "".join(self._rng.choice(_BASE36_ALPHABET) for _ in range(self._random_length))

    def _random_uuid(self) -> str:
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))


@dataclass
class BarcodeLookup:
    barcode: str
    inventory: InventoryItem | None = None
    registry: Barcode | None = None
    history: list[BarcodeLog] = field(default_factory=list)


class BarcodeService:
    def __init__(self, db, *, rng: random.Random | None = None):
        self.db = db
        self.inventory_repo = InventoryRepository(db)
        self.registry_repo = BarcodeRegistryRepository(db)
        self.log_repo = BarcodeLogRepository(db)
        self._rng = rng or random.SystemRandom()

    def lookup(self, barcode: str) -> BarcodeLookup:
        candidates = [barcode]
        normalized = normalize_barcode(barcode)
        if normalized and normalized != barcode:
            candidates.append(normalized)
        for candidate in candidates:
            inventory = self.inventory_repo.get_by_barcode(candidate)
            if inventory is not None:
                return BarcodeLookup(
                    barcode=candidate,
                    inventory=inventory,
                    registry=self.registry_repo.get_by_barcode(candidate),
                    history=self.log_repo.history(candidate),
                )
        for candidate in candidates:
            registry = self.registry_repo.get_by_barcode(candidate)
            if registry is not None:
                return BarcodeLookup(barcode=candidate, registry=registry, history=self.log_repo.history(candidate))
        raise AppError(ErrorCatalog.BARCODE_NOT_FOUND, details={"barcode": barcode})

    def assign_item_barcode(self, item_id, *, length: int | None = None) -> str:
        """Return the barcode registered for ``item_id``, issuing a numeric one if none exists."""
        length = length or settings.BARCODE_REGISTRY_LENGTH
        if length < MIN_BARCODE_LENGTH:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": f"length must be at least {MIN_BARCODE_LENGTH}", "length": length},
            )
        existing = self.registry_repo.get_by_id(item_id)
        if existing is not None:
            return existing.barcode
        inventory = self.db.get(InventoryItem, item_id)
        if inventory is not None:
            return inventory.barcode

        low = 10 ** (length - 1)
        high = 10**length - 1
        drawn: list[str] = []
        for _ in range(_MAX_REGISTRY_DRAWS):
            barcode = str(self._rng.randint(low, high))
            drawn.append(barcode)
            if self.inventory_repo.get_by_barcode(barcode) is not None:
                continue
            try:
                with self.db.begin_nested():
                    self.registry_repo.add(Barcode(id=item_id, barcode=barcode, status="active", quantity=1))
            except IntegrityError:
                # Another request may have registered this item meanwhile.
                existing = self.registry_repo.get_by_id(item_id)
                if existing is not None:
                    self.db.commit()
                    return existing.barcode
                logger.warning("Registry barcode %s already taken, drawing again", barcode)
                continue
            self.db.commit()
            logger.info("Registered barcode %s for item %s", barcode, item_id)
            return barcode
        self.db.rollback()
        raise AppError(
            ErrorCatalog.DUPLICATE_BARCODES,
            details={"message": "no unused barcode could be drawn", "duplicate_barcodes": drawn},
        )
