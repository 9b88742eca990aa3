"""Transaction handle passed between trans_begin and trans_commit/trans_rollback."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

from sqlquest.models.enums import BackendKind, TransactionState

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class TransactionHandle:
    """Caller-owned handle for one begin...commit/rollback lifecycle.

    Only the Connector that created the handle accepts it, and only while it
    is ACTIVE. Once committed or rolled back the native connection has been
    released and the handle is dead.
    """

    backend: BackendKind
    owner_id: int
    native: Any = field(repr=False)
    request_id: str | None = None
    state: TransactionState = TransactionState.NOT_STARTED
    handle_id: int = field(default_factory=lambda: next(_handle_ids))
    statements: int = 0

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE
