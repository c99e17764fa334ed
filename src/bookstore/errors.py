from __future__ import annotations


class BookstoreError(Exception):
    http_status = 500


class ValidationError(BookstoreError):
    http_status = 400


class NotFoundError(BookstoreError):
    http_status = 404


class ConflictError(BookstoreError):
    http_status = 409


class InsufficientStockError(ConflictError):
    # client error, not a 409: the request itself asks for more than exists
    http_status = 400

    def __init__(self, book_id: int, requested: int) -> None:
        super().__init__(f"Insufficient stock for book_id={book_id} (requested {requested}).")
        self.book_id = book_id
        self.requested = requested


class InvalidTransitionError(ConflictError):
    http_status = 409


class StorageUnavailable(BookstoreError):
    http_status = 503


class InternalError(BookstoreError):
    http_status = 500
