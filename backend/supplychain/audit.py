from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select

from . import models, schemas
from .errors import check_page
from .store import Deadline, Store

logger = logging.getLogger(__name__)

SUCCESS = "success"


class AuditRecorder:
    """Append-only trail of gated calls and their outcomes."""

    def __init__(self, store: Store):
        self.store = store

    def record(
        self,
        api_key: str,
        method: str,
        request_data: str,
        status: str,
        timestamp: datetime | None = None,
    ) -> None:
        # Runs in its own transaction and never raises: a broken audit table
        # must not change the outcome the caller sees.
        try:
            with self.store.transaction() as scope:
                scope.add(
                    models.AuditLog(
                        api_key=api_key,
                        method=method,
                        request_data=request_data,
                        status=status,
                        timestamp=timestamp or datetime.now(),
                    )
                )
        except Exception:
            logger.exception("failed to save audit log for %s (%s)", method, status)

    def list_logs(self, query: schemas.AuditLogQuery, deadline: Deadline | None = None) -> schemas.AuditLogPage:
        check_page(query.page, query.page_size)
        stmt = select(models.AuditLog)
        count_stmt = select(func.count()).select_from(models.AuditLog)
        if query.api_key:
            stmt = stmt.where(models.AuditLog.api_key == query.api_key)
            count_stmt = count_stmt.where(models.AuditLog.api_key == query.api_key)
        stmt = (
            stmt.order_by(models.AuditLog.timestamp.desc(), models.AuditLog.id.desc())
            .limit(query.page_size)
            .offset((query.page - 1) * query.page_size)
        )
        with self.store.transaction(deadline) as scope:
            rows = scope.scalars(stmt).all()
            total = scope.scalar(count_stmt)
        return schemas.AuditLogPage(logs=[schemas.AuditLogOut.model_validate(r) for r in rows], total=total or 0)
