"""
Append-only transaction log stored in LevelDB.

Entry i lives under TX_PREFIX + u64be(i), so key order equals index order.
The log length is kept under its own key and is written in the same batch
as the entry it counts; a reader never sees an entry past the stored length.
"""
import logging
import plyvel
from typing import Iterator, Optional
from .core import Transaction
from .db import DB
from .errors import StorageExhausted, LedgerCorruption

logger = logging.getLogger(__name__)

TX_PREFIX = b'tx/'
LENGTH_KEY = b'meta/tx_len'


def entry_key(index: int) -> bytes:
    return TX_PREFIX + index.to_bytes(8, 'big')


class LogView:
    """Read-only view of the log bounded by a fixed length."""

    def __init__(self, db: DB, length: int):
        self.db = db
        self._length = length

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Transaction]:
        return self.iterate()

    def iterate(self, start: int = 0) -> Iterator[Transaction]:
        """Yields transactions in ascending index order. Each call starts a fresh pass."""
        stop = self._length
        if start >= stop:
            return
        expected = start
        for key, value in self.db.iterator(start=entry_key(start), stop=entry_key(stop)):
            index = int.from_bytes(key[len(TX_PREFIX):], 'big')
            if index != expected:
                raise LedgerCorruption("Transaction log has a gap", index=expected)
            yield Transaction.from_bytes(value)
            expected += 1
        if expected != stop:
            raise LedgerCorruption("Transaction log is shorter than its recorded length", index=expected)

    def get(self, index: int) -> Optional[Transaction]:
        """Transaction at index, or None when index is past the end."""
        if index < 0 or index >= self._length:
            return None
        data = self.db.get(entry_key(index))
        if data is None:
            raise LedgerCorruption("Missing transaction", index=index)
        return Transaction.from_bytes(data)

    def range(self, start: int, length: int) -> list[tuple[int, Transaction]]:
        """Up to `length` (index, transaction) pairs starting at `start`."""
        start = max(0, start)
        end = min(self._length, start + max(0, length))
        return list(zip(range(start, end), self.iterate(start)))


class AppendLog(LogView):
    """
    Durable, ordered, immutable-once-written sequence of transactions.

    Args:
        db: Backing database
        max_entries: Capacity of the log; None means bounded only by the disk
    """

    def __init__(self, db: DB, max_entries: Optional[int] = None):
        stored = db.get(LENGTH_KEY)
        super().__init__(db, int.from_bytes(stored, 'big') if stored else 0)
        self.max_entries = max_entries
        logger.info(f"Transaction log opened with {self._length} entries")

    def snapshot(self) -> LogView:
        """A read-only view frozen at the current length."""
        return LogView(self.db, self._length)

    def push(self, tx: Transaction, extra: Optional[dict[bytes, bytes]] = None) -> int:
        """
        Durably store `tx` at the next index and return that index.

        `extra` key/value pairs are written in the same atomic batch, which
        lets a caller commit a configuration change together with the entry.

        Raises:
            StorageExhausted: capacity reached or the backing store refused the
                write. Nothing was written.
        """
        index = self._length
        if self.max_entries is not None and index >= self.max_entries:
            logger.error(f"Transaction log full at {index} entries")
            raise StorageExhausted(f"Transaction log capacity of {self.max_entries} entries reached")

        encoded = tx.to_bytes()
        try:
            with self.db.write_batch() as batch:
                batch.put(entry_key(index), encoded)
                batch.put(LENGTH_KEY, (index + 1).to_bytes(8, 'big'))
                for key, value in (extra or {}).items():
                    batch.put(key, value)
        except plyvel.Error as e:
            logger.error(f"Failed to record transaction {index}: {e}")
            raise StorageExhausted(f"Failed to record transaction: {e}") from e

        self._length = index + 1
        logger.debug(f"Recorded {tx.kind} transaction at index {index}")
        return index
