from __future__ import annotations

from dataclasses import dataclass, field, replace

from app.wms.core.config import settings
from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.services.barcodes import BarcodeGenerator, barcode_key

_MAX_REDRAWS = 20
_UPDATABLE_FIELDS = {"warehouse_id", "location_id", "box_count", "quantity_per_box", "color", "size"}


@dataclass
class Batch:
    product_id: object
    warehouse_id: object
    location_id: object
    box_count: int
    quantity_per_box: int
    color: str | None = None
    size: str | None = None
    barcodes: list[str] = field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return self.box_count * self.quantity_per_box


class BatchComposer:
    """Ordered, in-memory list of batches for one stock-in.

    Box numbering in generated barcodes follows insertion order across the
    whole list. When ``box_limit`` is set, the boxes of all batches together
    may not exceed it.
    """

    def __init__(self, product, *, generator: BarcodeGenerator | None = None, box_limit: int | None = None):
        self.product = product
        self.generator = generator or BarcodeGenerator()
        self.box_limit = box_limit
        self.batches: list[Batch] = []
        self.editing_index: int | None = None

    @property
    def total_boxes(self) -> int:
        return sum(batch.box_count for batch in self.batches)

    @property
    def remaining_boxes(self) -> int | None:
        if self.box_limit is None:
            return None
        return self.box_limit - self.total_boxes

    def add_batch(
        self,
        *,
        warehouse_id,
        location_id,
        box_count: int,
        quantity_per_box: int,
        color: str | None = None,
        size: str | None = None,
    ) -> Batch:
        if self.product is None or not warehouse_id or not location_id:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "product, warehouse and location are required"},
            )
        self._validate_counts(box_count, quantity_per_box)

        index = self.editing_index
        self._check_box_limit(box_count, skip_index=index)
        position = len(self.batches) if index is None else index
        batch = Batch(
            product_id=self.product.id,
            warehouse_id=warehouse_id,
            location_id=location_id,
            box_count=box_count,
            quantity_per_box=quantity_per_box,
            color=color or None,
            size=size or None,
        )
        batch.barcodes = self._draw_barcodes(box_count, start=self._first_box_number(position), skip_index=index)

        if index is None:
            self.batches.append(batch)
        else:
            previous = self.batches[index]
            self.batches[index] = batch
            self.editing_index = None
            if previous.box_count != box_count:
                self._renumber_from(index + 1)
        return batch

    def edit_batch(self, index: int) -> Batch:
        self._check_index(index)
        self.editing_index = index
        return self.batches[index]

    def update_batch(self, index: int, **changes) -> Batch:
        self._check_index(index)
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unsupported batch fields", "fields": sorted(unknown)},
            )
        current = self.batches[index]
        updated = replace(current, **changes)
        self._validate_counts(updated.box_count, updated.quantity_per_box)
        if updated.box_count != current.box_count:
            self._check_box_limit(updated.box_count, skip_index=index)
            updated.barcodes = self._draw_barcodes(
                updated.box_count, start=self._first_box_number(index), skip_index=index
            )
        self.batches[index] = updated
        if updated.box_count != current.box_count:
            self._renumber_from(index + 1)
        return updated

    def delete_batch(self, index: int) -> Batch:
        self._check_index(index)
        removed = self.batches.pop(index)
        if self.editing_index == index:
            self.editing_index = None
        elif self.editing_index is not None and self.editing_index > index:
            self.editing_index -= 1
        self._renumber_from(index)
        return removed

    def clear(self) -> None:
        self.batches = []
        self.editing_index = None

    def all_barcodes(self) -> list[str]:
        return [barcode for batch in self.batches for barcode in batch.barcodes]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.batches):
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "batch index out of range", "index": index, "size": len(self.batches)},
            )

    @staticmethod
    def _validate_counts(box_count: int, quantity_per_box: int) -> None:
        if box_count <= 0:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "box_count must be greater than 0", "box_count": box_count},
            )
        if box_count > settings.STOCK_IN_MAX_BOXES_PER_BATCH:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={
                    "message": f"box_count must not exceed {settings.STOCK_IN_MAX_BOXES_PER_BATCH}",
                    "box_count": box_count,
                },
            )
        if quantity_per_box <= 0:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "quantity_per_box must be greater than 0", "quantity_per_box": quantity_per_box},
            )

    def _check_box_limit(self, box_count: int, *, skip_index: int | None) -> None:
        if self.box_limit is None:
            return
        used = sum(batch.box_count for i, batch in enumerate(self.batches) if i != skip_index)
        remaining = self.box_limit - used
        if box_count > remaining:
            raise AppError(
                ErrorCatalog.BOX_LIMIT_EXCEEDED,
                details={"box_count": box_count, "remaining_boxes": remaining, "box_limit": self.box_limit},
            )

    def _first_box_number(self, position: int) -> int:
        return sum(batch.box_count for batch in self.batches[:position]) + 1

    def _renumber_from(self, position: int) -> None:
        """Redraw the barcodes of every batch from ``position`` on so box numbers stay contiguous."""
        for index in range(position, len(self.batches)):
            batch = self.batches[index]
            batch.barcodes = self._draw_barcodes(
                batch.box_count, start=self._first_box_number(index), skip_index=index
            )

    def _draw_barcodes(self, count: int, *, start: int, skip_index: int | None) -> list[str]:
        key = barcode_key(self.product)
        taken = {
            barcode
            for i, batch in enumerate(self.batches)
            if i != skip_index
            for barcode in batch.barcodes
        }
        barcodes = self.generator.generate(key, count, start=start)
        for offset, barcode in enumerate(barcodes):
            attempts = 0
            while barcode in taken:
                attempts += 1
                if attempts > _MAX_REDRAWS:
                    raise AppError(
                        ErrorCatalog.VALIDATION_ERROR,
                        details={"message": "could not generate a unique barcode", "barcode": barcode},
                    )
                barcode = self.generator.generate(key, 1, start=start + offset)[0]
            barcodes[offset] = barcode
            taken.add(barcode)
        return barcodes
