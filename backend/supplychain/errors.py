from __future__ import annotations


class ServiceError(Exception):
    """Base for every classified failure a remote operation can report.

    ``code`` is the outcome name written to the audit trail; ``http_status``
    is what the HTTP layer answers with.
    """

    code = "Unknown"
    http_status = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidArgument(ServiceError):
    code = "InvalidArgument"
    http_status = 400


class Unauthenticated(ServiceError):
    code = "Unauthenticated"
    http_status = 401


class PermissionDenied(ServiceError):
    code = "PermissionDenied"
    http_status = 403


class NotFound(ServiceError):
    code = "NotFound"
    http_status = 404


class FailedPrecondition(ServiceError):
    code = "FailedPrecondition"
    http_status = 409


class Internal(ServiceError):
    code = "Internal"
    http_status = 500


class DeadlineExceeded(ServiceError):
    code = "DeadlineExceeded"
    http_status = 504


# Widths of the stored integer columns: quantities are 32-bit, money 64-bit.
INT32_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1


def require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidArgument(message)


def check_page(page: int, page_size: int) -> None:
    require(page >= 1 and page_size >= 1, "page and page_size must be >= 1")
    require(page <= INT32_MAX and page_size <= INT32_MAX, "page and page_size are out of range")
