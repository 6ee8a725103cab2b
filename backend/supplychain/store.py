"""Storage port: every workflow talks to the database through a
:class:`TransactionScope` handed out by :meth:`Store.transaction`.

A scope is one database transaction. Leaving the ``with`` block commits;
any exception rolls the whole transaction back. Storage failures are
reported as :class:`~supplychain.errors.Internal`, and a scope whose
deadline has passed refuses to run further statements.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .errors import DeadlineExceeded, Internal, ServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deadline:
    """Absolute point on the monotonic clock after which a call is abandoned."""

    at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return self.at - time.monotonic()

    def expired(self) -> bool:
        return self.remaining() <= 0


class TransactionScope:
    def __init__(self, session: Session, deadline: Deadline | None = None):
        self.session = session
        self.deadline = deadline

    def check_deadline(self) -> None:
        if self.deadline is not None and self.deadline.expired():
            raise DeadlineExceeded("deadline exceeded before the transaction finished")

    def execute(self, stmt, params: dict | None = None):
        self.check_deadline()
        return self.session.execute(stmt, params)

    def scalar(self, stmt, params: dict | None = None):
        self.check_deadline()
        return self.session.scalar(stmt, params)

    def scalars(self, stmt, params: dict | None = None):
        self.check_deadline()
        return self.session.scalars(stmt, params)

    def add(self, obj) -> None:
        self.session.add(obj)

    def flush(self) -> None:
        self.check_deadline()
        self.session.flush()


class Store:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
        )

    @contextmanager
    def transaction(self, deadline: Deadline | None = None) -> Iterator[TransactionScope]:
        if deadline is not None and deadline.expired():
            raise DeadlineExceeded("deadline exceeded before the transaction started")
        with self.session_factory() as session:
            try:
                with session.begin():
                    scope = TransactionScope(session, deadline)
                    self._apply_statement_timeout(scope)
                    yield scope
                    scope.check_deadline()
            except ServiceError:
                raise
            except SQLAlchemyError as exc:
                logger.exception("transaction rolled back after storage failure")
                raise Internal("storage failure") from exc

    def _apply_statement_timeout(self, scope: TransactionScope) -> None:
        if scope.deadline is None or self.engine.dialect.name != "postgresql":
            return
        millis = max(1, int(scope.deadline.remaining() * 1000))
        scope.session.execute(text(f"SET LOCAL statement_timeout = {millis}"))
