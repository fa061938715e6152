# authsvc/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from authsvc.services._shared.errors import (
    HashingError,
    ServiceError,
    StoreError,
    VerificationError,
)

#: Errors that describe internal faults; they are collapsed, never surfaced.
INTERNAL_ERRORS: tuple[type[ServiceError], ...] = (StoreError, HashingError, VerificationError)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Centralize failure collapsing and logging (:meth:`guard`).
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services never touch a global session; stores are injected.
    """

    def __init__(self) -> None:
        self.log = logging.getLogger(type(self).__module__)

    # -------------------------- Error handling ------------------------------

    @contextmanager
    def guard(
        self,
        failure: type[ServiceError],
        message: str | None = None,
        *,
        user_id: str | None = None,
    ) -> Iterator[None]:
        """
        Collapse unexpected faults raised inside the block into ``failure``.

        Named service errors (validation, duplicate email, credential and
        token errors, configuration) propagate unchanged. Internal faults
        (:data:`INTERNAL_ERRORS`) and any non-service exception are logged
        with their traceback and re-raised as ``failure(message)``.

        :param failure: Generic ``*Failed`` error class to raise.
        :param message: Optional override for the client-facing message.
        :param user_id: Subject of the operation, when known, for the log record.
        """
        try:
            yield
        except ServiceError as exc:
            if not isinstance(exc, INTERNAL_ERRORS):
                raise
            self.log.error(
                "%s: %s",
                failure.default_message,
                exc.message,
                extra={"event": failure.kind.value, "user_id": user_id},
                exc_info=True,
            )
            raise failure(message) from exc
        except Exception as exc:
            self.log.error(
                "%s: unexpected error",
                failure.default_message,
                extra={"event": failure.kind.value, "user_id": user_id},
                exc_info=True,
            )
            raise failure(message) from exc
