from sqlalchemy import select

from app.wms.db.models import IdempotencyRecord


class IdempotencyRepository:
    def __init__(self, db):
        self.db = db

    def get_by_key(self, *, endpoint: str, method: str, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.execute(
                select(IdempotencyRecord).where(
                    IdempotencyRecord.endpoint == endpoint,
                    IdempotencyRecord.method == method,
                    IdempotencyRecord.idempotency_key == idempotency_key,
                )
            )
            .scalars()
            .first()
        )

    def save(self, record: IdempotencyRecord) -> IdempotencyRecord:
        """Persist ``record`` in its own commit so it survives a later rollback of the request's work."""
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record
