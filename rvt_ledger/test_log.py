"""
Tests for the append-only transaction log.
"""
import shutil
import tempfile
import unittest
from rvt_ledger.core import Account, Mint, Principal, Transaction, Transfer
from rvt_ledger.db import DB
from rvt_ledger.errors import LedgerCorruption, StorageExhausted
from rvt_ledger.log import AppendLog, LENGTH_KEY, entry_key


def mint(amount: int, owner: bytes = b'\x01', timestamp: int = 1) -> Transaction:
    return Transaction(kind="mint", operation=Mint(amount, Account(Principal(owner))), timestamp=timestamp)


class TestAppendLog(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.db = DB(self.test_dir)
        self.log = AppendLog(self.db)

    def tearDown(self):
        if not self.db.is_closed():
            self.db.close()
        shutil.rmtree(self.test_dir)

    def test_push_assigns_sequential_indices(self):
        self.assertEqual(len(self.log), 0)
        self.assertEqual(self.log.push(mint(1)), 0)
        self.assertEqual(self.log.push(mint(2)), 1)
        self.assertEqual(self.log.push(mint(3)), 2)
        self.assertEqual(len(self.log), 3)

    def test_iterate_is_ascending_and_restartable(self):
        for amount in (5, 6, 7):
            self.log.push(mint(amount))
        first = [tx.mint.amount for tx in self.log.iterate()]
        second = [tx.mint.amount for tx in self.log]
        self.assertEqual(first, [5, 6, 7])
        self.assertEqual(first, second)
        self.assertEqual([tx.mint.amount for tx in self.log.iterate(start=1)], [6, 7])

    def test_iterate_orders_numerically_past_255(self):
        for amount in range(300):
            self.log.push(mint(amount))
        self.assertEqual([tx.mint.amount for tx in self.log], list(range(300)))

    def test_get_and_range(self):
        for amount in (5, 6, 7):
            self.log.push(mint(amount))
        self.assertEqual(self.log.get(1).mint.amount, 6)
        self.assertIsNone(self.log.get(3))
        self.assertIsNone(self.log.get(-1))
        self.assertEqual([(i, tx.mint.amount) for i, tx in self.log.range(1, 10)], [(1, 6), (2, 7)])
        self.assertEqual(self.log.range(5, 2), [])

    def test_snapshot_does_not_see_later_entries(self):
        self.log.push(mint(1))
        view = self.log.snapshot()
        self.log.push(mint(2))
        self.assertEqual(len(view), 1)
        self.assertEqual([tx.mint.amount for tx in view], [1])

    def test_entries_survive_reopen(self):
        alice = Account(Principal(b'\x0a'))
        bob = Account(Principal(b'\x0b'))
        written = [
            mint(100, b'\x0a'),
            Transaction(kind="transfer", operation=Transfer(alice, bob, 40, fee=1), timestamp=2),
        ]
        for tx in written:
            self.log.push(tx)
        self.db.close()

        self.db = DB(self.test_dir)
        reopened = AppendLog(self.db)
        self.assertEqual(len(reopened), 2)
        self.assertEqual(list(reopened), written)
        self.assertEqual(reopened.push(mint(1)), 2)

    def test_capacity_exhaustion_writes_nothing(self):
        log = AppendLog(self.db, max_entries=2)
        log.push(mint(1))
        log.push(mint(2))
        with self.assertRaises(StorageExhausted):
            log.push(mint(3))
        self.assertEqual(len(log), 2)
        self.assertIsNone(self.db.get(entry_key(2)))
        self.assertEqual(int.from_bytes(self.db.get(LENGTH_KEY), 'big'), 2)

    def test_persisted_key_layout(self):
        self.assertEqual(entry_key(0), b'tx/' + b'\x00' * 8)
        self.assertEqual(entry_key(258), b'tx/' + b'\x00' * 6 + b'\x01\x02')
        self.assertEqual(LENGTH_KEY, b'meta/tx_len')

        self.log.push(mint(1))
        self.log.push(mint(2))
        stored = [key for key, _ in self.db.iterator(prefix=b'tx/')]
        self.assertEqual(stored, [entry_key(0), entry_key(1)])
        self.assertEqual(self.db.get(b'meta/tx_len'), (2).to_bytes(8, 'big'))

    def test_extra_writes_land_with_the_entry(self):
        self.log.push(mint(1), extra={b'config': b'value'})
        self.assertEqual(self.db.get(b'config'), b'value')

    def test_gap_in_storage_is_reported(self):
        for amount in (1, 2, 3):
            self.log.push(mint(amount))
        self.db._db.delete(entry_key(1))
        with self.assertRaises(LedgerCorruption):
            list(self.log)


if __name__ == '__main__':
    unittest.main()
