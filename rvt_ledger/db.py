"""
LevelDB wrapper backing the transaction log and the configuration cell.
"""
import plyvel
import logging
from typing import Optional, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = 64 * 1024 * 1024,  # 64MB
                 max_open_files: int = 1000):
        """
        Open (or create) the database.

        Args:
            db_path: Path to database directory
            create_if_missing: Create database if it doesn't exist
            write_buffer_size: Size of write buffer
            max_open_files: Maximum number of open files
        """
        self.path = db_path
        self._closed = True
        try:
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
                compression='snappy',
            )
            self._closed = False
            logger.info(f"Database opened at {db_path}")
        except Exception as e:
            logger.error(f"Failed to open database at {db_path}: {e}")
            raise

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Database is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        """
        Get value by key.

        Returns None if key doesn't exist.
        """
        self._check_open()
        try:
            return self._db.get(key)
        except Exception as e:
            logger.error(f"Error getting key {key.hex()[:16]}: {e}")
            raise

    def put(self, key: bytes, value: bytes, sync: bool = True):
        """Put a key-value pair. Synchronous by default so success means durable."""
        self._check_open()
        try:
            self._db.put(key, value, sync=sync)
        except Exception as e:
            logger.error(f"Error putting key {key.hex()[:16]}: {e}")
            raise

    @contextmanager
    def write_batch(self, sync: bool = True):
        """
        Context manager for atomic batch writes.

        Either every put in the block lands or none does.

        Example:
            with db.write_batch() as batch:
                batch.put(b'key1', b'value1')
                batch.put(b'key2', b'value2')
        """
        self._check_open()
        batch = self._db.write_batch(sync=sync)
        try:
            yield batch
            batch.write()
        except Exception as e:
            logger.error(f"Error in batch write: {e}")
            raise
        finally:
            batch.clear()

    def iterator(self, prefix: Optional[bytes] = None,
                 start: Optional[bytes] = None,
                 stop: Optional[bytes] = None,
                 reverse: bool = False) -> Iterator[tuple[bytes, bytes]]:
        """
        Create an iterator over the database.

        Args:
            prefix: Only iterate keys with this prefix
            start: Start key (inclusive)
            stop: Stop key (exclusive)
            reverse: Iterate in reverse order

        Yields:
            Tuple of (key, value)
        """
        self._check_open()
        try:
            if prefix:
                return self._db.iterator(prefix=prefix, reverse=reverse)
            else:
                return self._db.iterator(start=start, stop=stop, reverse=reverse)
        except Exception as e:
            logger.error(f"Error creating iterator: {e}")
            raise

    def close(self):
        """Close the database."""
        if not self._closed:
            try:
                self._db.close()
                self._closed = True
                logger.info("Database closed")
            except Exception as e:
                logger.error(f"Error closing database: {e}")
                raise

    def is_closed(self) -> bool:
        """Check if database is closed."""
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
