"""
Ledger state: the configuration cell and the transaction log, behind one object.

All access goes through read_state() (a consistent snapshot) or
mutate_state() (exclusive). Both are serialized on one lock, so a reader
never observes a half-finished write and two writers never interleave.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional
from .core import Configuration, Transaction
from .db import DB
from .log import AppendLog, LogView

logger = logging.getLogger(__name__)

CONFIG_KEY = b'config'


class ConfigurationStore:
    """Single-slot durable cell holding the token Configuration."""

    def __init__(self, db: DB):
        self.db = db

    @classmethod
    def init(cls, db: DB, defaults: Configuration) -> 'ConfigurationStore':
        """
        Open the cell, writing `defaults` if it has never been written.

        A fresh cell always starts uninitialized with no minting account.
        """
        store = cls(db)
        if db.get(CONFIG_KEY) is None:
            store.set(replace(defaults, minting_account=None, token_created=False))
            logger.info("Configuration initialized with defaults")
        return store

    def get(self) -> Configuration:
        encoded = self.db.get(CONFIG_KEY)
        if encoded is None:
            raise RuntimeError("Configuration cell has not been initialized")
        return Configuration.from_bytes(encoded)

    def set(self, configuration: Configuration):
        self.db.put(CONFIG_KEY, configuration.to_bytes())


@dataclass(frozen=True)
class StateSnapshot:
    """What a read sees: the configuration and a length-bounded log view."""
    configuration: Configuration
    transaction_log: LogView


class LedgerState:
    def __init__(self, db: DB, defaults: Configuration, max_entries: Optional[int] = None):
        self.db = db
        self.configuration = ConfigurationStore.init(db, defaults)
        self.transaction_log = AppendLog(db, max_entries=max_entries)
        self._lock = threading.RLock()
        self._writers = 0

    @contextmanager
    def read_state(self) -> Iterator[StateSnapshot]:
        with self._lock:
            yield StateSnapshot(
                configuration=self.configuration.get(),
                transaction_log=self.transaction_log.snapshot(),
            )

    @contextmanager
    def mutate_state(self) -> Iterator['LedgerState']:
        with self._lock:
            self._writers += 1
            try:
                yield self
            finally:
                self._writers -= 1

    def commit(self, tx: Transaction, configuration: Optional[Configuration] = None) -> int:
        """
        Append `tx`, and optionally replace the configuration, in one atomic write.

        Must be called inside mutate_state().
        """
        with self._lock:
            if not self._writers:
                raise RuntimeError("commit() outside mutate_state()")
            extra = {CONFIG_KEY: configuration.to_bytes()} if configuration is not None else None
            return self.transaction_log.push(tx, extra=extra)
