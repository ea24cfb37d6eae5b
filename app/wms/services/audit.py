import logging
from dataclasses import dataclass
from datetime import datetime

from app.wms.db.models import BarcodeLog
from app.wms.repos.audit import BarcodeLogRepository

logger = logging.getLogger(__name__)


@dataclass
class BarcodeEvent:
    barcode: str
    action: str
    user_id: str | None
    batch_id: object | None = None
    details: dict | None = None


class BarcodeAuditService:
    """Best-effort barcode history.

    Entries are written inside a SAVEPOINT of the caller's transaction, so they
    commit together with the caller's work. A failed write rolls back only the
    SAVEPOINT and is logged; the caller's transaction carries on.
    """

    def __init__(self, db):
        self.db = db
        self.repo = BarcodeLogRepository(db)

    def record(self, events: list[BarcodeEvent]) -> bool:
        if not events:
            return True
        now = datetime.utcnow()
        try:
            with self.db.begin_nested():
                self.repo.add_all(
                    [
                        BarcodeLog(
                            barcode=event.barcode,
                            action=event.action,
                            user_id=event.user_id,
                            batch_id=event.batch_id,
                            details=event.details,
                            created_at=now,
                        )
                        for event in events
                    ]
                )
        except Exception:
            logger.exception(
                "Failed to write barcode log entries",
                extra={"action": events[0].action, "count": len(events), "batch_id": str(events[0].batch_id)},
            )
            return False
        return True
