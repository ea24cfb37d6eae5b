import re
import uuid
from types import SimpleNamespace

import pytest

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.services.barcodes import BarcodeGenerator
from app.wms.services.batch_composer import BatchComposer
from tests.wms_helpers import seeded_generator

WAREHOUSE_ID = uuid.uuid4()
LOCATION_ID = uuid.uuid4()


def _product(sku="WGT1", name="Widget"):
    return SimpleNamespace(id=uuid.uuid4(), sku=sku, name=name)


def _composer(**kwargs):
    return BatchComposer(_product(), generator=seeded_generator(), **kwargs)


def _add(composer, box_count=3, quantity_per_box=10, **kwargs):
    return composer.add_batch(
        warehouse_id=WAREHOUSE_ID,
        location_id=LOCATION_ID,
        box_count=box_count,
        quantity_per_box=quantity_per_box,
        **kwargs,
    )


def _box_number(barcode: str) -> int:
    return int(barcode.split("-")[1])


def test_add_batch_generates_one_barcode_per_box():
    composer = _composer()
    batch = _add(composer, box_count=3, quantity_per_box=10, color="Red")

    assert len(batch.barcodes) == batch.box_count == 3
    assert batch.total_quantity == 30
    assert batch.color == "Red"
    assert all(re.match(r"^WGT1-00[1-3]-", barcode) for barcode in batch.barcodes)
    assert [_box_number(barcode) for barcode in batch.barcodes] == [1, 2, 3]


def test_numbering_continues_across_batches():
    composer = _composer()
    _add(composer, box_count=2)
    second = _add(composer, box_count=3)

    assert [_box_number(barcode) for barcode in second.barcodes] == [3, 4, 5]
    assert composer.total_boxes == 5


def test_barcodes_are_pairwise_distinct_across_batches():
    composer = _composer()
    for _ in range(4):
        _add(composer, box_count=25)

    barcodes = composer.all_barcodes()
    assert len(barcodes) == 100
    assert len(set(barcodes)) == 100


def test_colliding_candidates_are_redrawn():
    class RepeatingGenerator(BarcodeGenerator):
        def __init__(self):
            super().__init__()
            self.calls = 0

        def generate(self, key, count, *, start=1):
            self.calls += 1
            if self.calls <= 2:
                return ["WGT1-001-SAME" for _ in range(count)]
            return [f"WGT1-{start:03d}-NEW{self.calls}" for _ in range(count)]

    composer = BatchComposer(_product(), generator=RepeatingGenerator())
    batch = _add(composer, box_count=2)

    assert batch.barcodes[0] == "WGT1-001-SAME"
    assert batch.barcodes[1] != "WGT1-001-SAME"
    assert len(set(batch.barcodes)) == 2


def test_missing_key_material_falls_back_to_uuid():
    composer = BatchComposer(_product(sku=None, name=""), generator=seeded_generator())
    batch = _add(composer, box_count=2)
    assert all(uuid.UUID(barcode).version == 4 for barcode in batch.barcodes)


@pytest.mark.parametrize("box_count,quantity_per_box", [(0, 10), (-1, 10), (3, 0)])
def test_add_batch_rejects_non_positive_counts(box_count, quantity_per_box):
    composer = _composer()
    with pytest.raises(AppError) as excinfo:
        _add(composer, box_count=box_count, quantity_per_box=quantity_per_box)
    assert excinfo.value.error is ErrorCatalog.VALIDATION_ERROR
    assert composer.batches == []


def test_add_batch_requires_location():
    composer = _composer()
    with pytest.raises(AppError) as excinfo:
        composer.add_batch(warehouse_id=WAREHOUSE_ID, location_id=None, box_count=1, quantity_per_box=1)
    assert excinfo.value.error is ErrorCatalog.VALIDATION_ERROR


def test_box_limit_reports_remaining_boxes():
    composer = _composer(box_limit=5)
    _add(composer, box_count=3)
    assert composer.remaining_boxes == 2

    with pytest.raises(AppError) as excinfo:
        _add(composer, box_count=3)

    assert excinfo.value.error is ErrorCatalog.BOX_LIMIT_EXCEEDED
    assert excinfo.value.details["remaining_boxes"] == 2
    assert composer.total_boxes == 3


def test_edit_then_add_replaces_batch():
    composer = _composer()
    _add(composer, box_count=2)
    _add(composer, box_count=2)

    target = composer.edit_batch(0)
    assert target is composer.batches[0]
    assert composer.editing_index == 0

    replaced = _add(composer, box_count=4, quantity_per_box=5)

    assert len(composer.batches) == 2
    assert composer.batches[0] is replaced
    assert composer.editing_index is None
    assert [_box_number(barcode) for barcode in replaced.barcodes] == [1, 2, 3, 4]


def test_edit_respects_box_limit_excluding_edited_batch():
    composer = _composer(box_limit=5)
    _add(composer, box_count=3)
    _add(composer, box_count=2)
    composer.edit_batch(0)

    replaced = _add(composer, box_count=3)
    assert replaced.box_count == 3
    assert composer.total_boxes == 5


def test_update_batch_merges_fields_and_regenerates_on_box_count_change():
    composer = _composer()
    original = _add(composer, box_count=2)
    original_barcodes = list(original.barcodes)

    recoloured = composer.update_batch(0, color="Blue")
    assert recoloured.color == "Blue"
    assert recoloured.barcodes == original_barcodes

    resized = composer.update_batch(0, box_count=4)
    assert len(resized.barcodes) == 4
    assert resized.color == "Blue"


def test_resizing_a_batch_renumbers_the_batches_after_it():
    composer = _composer()
    _add(composer, box_count=2)
    second = _add(composer, box_count=2)

    composer.update_batch(0, box_count=3)

    assert [_box_number(barcode) for barcode in composer.all_barcodes()] == [1, 2, 3, 4, 5]
    assert composer.batches[1] is second
    assert len(set(composer.all_barcodes())) == 5


def test_replacing_an_edited_batch_renumbers_the_batches_after_it():
    composer = _composer()
    _add(composer, box_count=2)
    _add(composer, box_count=2)
    composer.edit_batch(0)

    _add(composer, box_count=1)

    assert [_box_number(barcode) for barcode in composer.all_barcodes()] == [1, 2, 3]


def test_deleting_a_batch_renumbers_the_remaining_boxes():
    composer = _composer()
    _add(composer, box_count=2)
    _add(composer, box_count=2)
    _add(composer, box_count=1)

    composer.delete_batch(0)

    assert [_box_number(barcode) for barcode in composer.all_barcodes()] == [1, 2, 3]
    assert [_box_number(barcode) for barcode in composer.batches[0].barcodes] == [1, 2]


def test_update_batch_rejects_unknown_fields():
    composer = _composer()
    _add(composer)
    with pytest.raises(AppError) as excinfo:
        composer.update_batch(0, barcodes=["X"])
    assert excinfo.value.details["fields"] == ["barcodes"]


def test_delete_batch_adjusts_edit_target():
    composer = _composer()
    first = _add(composer, box_count=1)
    _add(composer, box_count=1)
    third = _add(composer, box_count=1)
    composer.edit_batch(2)

    removed = composer.delete_batch(0)

    assert removed is first
    assert composer.editing_index == 1
    assert composer.batches[1] is third

    composer.delete_batch(1)
    assert composer.editing_index is None


@pytest.mark.parametrize("operation", ["edit_batch", "delete_batch"])
def test_index_operations_are_bounds_checked(operation):
    composer = _composer()
    _add(composer)
    with pytest.raises(AppError) as excinfo:
        getattr(composer, operation)(1)
    assert excinfo.value.details["index"] == 1
    with pytest.raises(AppError):
        getattr(composer, operation)(-1)


def test_update_batch_is_bounds_checked():
    composer = _composer()
    with pytest.raises(AppError) as excinfo:
        composer.update_batch(0, color="Red")
    assert excinfo.value.error is ErrorCatalog.VALIDATION_ERROR
