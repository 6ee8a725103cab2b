from __future__ import annotations

import logging
import math
from typing import Callable, TypeVar

from pydantic import BaseModel

from .audit import SUCCESS, AuditRecorder
from .auth import AuthorizationGate
from .errors import Internal, ServiceError, require
from .store import Deadline

logger = logging.getLogger(__name__)

T = TypeVar("T")


def serialize_request(request: BaseModel | None) -> str:
    if request is None:
        return "{}"
    try:
        return request.model_dump_json()
    except Exception:
        logger.warning("failed to serialize %s request", type(request).__name__, exc_info=True)
        return "{}"


def usable_timeout(timeout: float | None) -> bool:
    return timeout is not None and math.isfinite(timeout) and timeout > 0


class Gateway:
    """Authorizes a call, runs it, and records its outcome in the audit trail.

    Rejected calls never reach the handler and are not audited. Every call
    that passes authorization is audited exactly once, success or not.

    ``timeout`` is the caller's requested deadline in seconds. It is only
    validated once the caller is authorized, so a bad value from an unknown
    credential is still answered Unauthenticated.
    """

    def __init__(self, gate: AuthorizationGate, recorder: AuditRecorder, default_timeout: float | None = None):
        self.gate = gate
        self.recorder = recorder
        self.default_timeout = default_timeout

    def deadline_for(self, timeout: float | None) -> Deadline | None:
        if usable_timeout(timeout):
            return Deadline.after(timeout)
        if self.default_timeout:
            return Deadline.after(self.default_timeout)
        return None

    def invoke(
        self,
        api_key: str | None,
        method: str,
        request: BaseModel | None,
        handler: Callable[[Deadline | None], T],
        timeout: float | None = None,
    ) -> T:
        deadline = self.deadline_for(timeout)
        self.gate.authorize(api_key, method, deadline)
        request_data = serialize_request(request)

        status = SUCCESS
        try:
            require(timeout is None or usable_timeout(timeout), "X-Request-Timeout must be a positive number of seconds")
            return handler(deadline)
        except ServiceError as exc:
            status = exc.code
            raise
        except Exception as exc:
            status = Internal.code
            logger.exception("%s failed unexpectedly", method)
            raise Internal(f"{method} failed") from exc
        finally:
            self.recorder.record(api_key, method, request_data, status)
