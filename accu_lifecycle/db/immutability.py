import logging

from sqlalchemy import event

from accu_lifecycle.core.errors import LedgerImmutableError
from accu_lifecycle.models.entities import StatusHistoryEntry

logger = logging.getLogger(__name__)


@event.listens_for(StatusHistoryEntry, "before_update")
def _block_history_update(mapper, connection, target: StatusHistoryEntry) -> None:
    logger.error("ledger_mutation_blocked entry_id=%s operation=update", target.id)
    raise LedgerImmutableError(target.id, "modified")


@event.listens_for(StatusHistoryEntry, "before_delete")
def _block_history_delete(mapper, connection, target: StatusHistoryEntry) -> None:
    logger.error("ledger_mutation_blocked entry_id=%s operation=delete", target.id)
    raise LedgerImmutableError(target.id, "deleted")
