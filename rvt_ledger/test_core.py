"""
Tests for the ledger data model and its canonical encoding.
"""
import unittest
import msgpack
from rvt_ledger.core import (
    Account,
    Approve,
    Burn,
    Configuration,
    Mint,
    Principal,
    Transaction,
    Transfer,
)


class TestAccounts(unittest.TestCase):
    def setUp(self):
        self.owner = Principal(b'\x01' * 29)
        self.other = Principal(b'\x02' * 29)

    def test_equality_uses_owner_and_subaccount(self):
        self.assertEqual(Account(self.owner), Account(self.owner, None))
        self.assertNotEqual(Account(self.owner), Account(self.other))
        self.assertNotEqual(Account(self.owner), Account(self.owner, b'\x00' * 32))
        self.assertEqual(Account(self.owner, b'\x05' * 32), Account(self.owner, b'\x05' * 32))

    def test_subaccount_must_be_32_bytes(self):
        with self.assertRaises(ValueError):
            Account(self.owner, b'\x00' * 31)

    def test_principal_length_is_bounded(self):
        with self.assertRaises(ValueError):
            Principal(b'\x00' * 30)

    def test_principal_text_round_trip(self):
        self.assertEqual(Principal.from_text(self.owner.to_text()), self.owner)
        self.assertEqual(str(Principal.anonymous()), "2vxsx-fae")
        self.assertEqual(str(Principal(b"")), "aaaaa-aa")


class TestTransactionSumType(unittest.TestCase):
    def setUp(self):
        self.alice = Account(Principal(b'\x0a' * 29))
        self.bob = Account(Principal(b'\x0b' * 29))

    def test_kind_must_match_payload(self):
        with self.assertRaises(ValueError):
            Transaction(kind="mint", operation=Transfer(self.alice, self.bob, 10), timestamp=1)
        with self.assertRaises(ValueError):
            Transaction(kind="stake", operation=Mint(10, self.alice), timestamp=1)
        with self.assertRaises(ValueError):
            Transaction(kind="teleport", operation=Mint(10, self.alice), timestamp=1)

    def test_kind_families(self):
        Transaction(kind="reward", operation=Mint(1, self.alice), timestamp=1)
        Transaction(kind="stake", operation=Transfer(self.alice, self.bob, 1, fee=1), timestamp=1)
        Transaction(kind="burn", operation=Burn(1, self.alice), timestamp=1)
        Transaction(kind="approve", operation=Approve(self.alice, self.bob, 5, fee=1), timestamp=1)

    def test_exactly_one_payload_accessor_is_set(self):
        tx = Transaction(kind="transfer", operation=Transfer(self.alice, self.bob, 10), timestamp=1)
        self.assertIsNotNone(tx.transfer)
        self.assertIsNone(tx.mint)
        self.assertIsNone(tx.burn)
        self.assertIsNone(tx.approve)

    def test_negative_amounts_are_rejected(self):
        with self.assertRaises(ValueError):
            Mint(-1, self.alice)
        with self.assertRaises(ValueError):
            Transfer(self.alice, self.bob, 1, fee=-1)

    def test_decoding_rejects_zero_or_multiple_payloads(self):
        mint = Mint(10, self.alice).to_dict()
        burn = Burn(10, self.alice).to_dict()
        with self.assertRaises(ValueError):
            Transaction.from_dict({"kind": "mint", "timestamp": 1})
        with self.assertRaises(ValueError):
            Transaction.from_dict({"kind": "mint", "timestamp": 1, "mint": mint, "burn": burn})

    def test_encoding_is_deterministic_and_lossless(self):
        tx = Transaction(
            kind="transfer",
            operation=Transfer(self.alice, Account(self.bob.owner, b'\x07' * 32), 10,
                               fee=None, memo=b'hello', created_at_time=42),
            timestamp=99,
        )
        self.assertEqual(tx.to_bytes(), tx.to_bytes())
        self.assertEqual(Transaction.from_bytes(tx.to_bytes()), tx)
        self.assertEqual(len(tx.id), 32)

    def test_amounts_beyond_u64_survive_encoding(self):
        big = (1 << 80) + 3
        tx = Transaction(kind="mint", operation=Mint(big, self.alice), timestamp=1)
        raw = msgpack.unpackb(tx.to_bytes(), raw=False)
        self.assertEqual(raw["mint"]["amount"], str(big))
        self.assertEqual(Transaction.from_bytes(tx.to_bytes()).mint.amount, big)


class TestConfiguration(unittest.TestCase):
    def test_initialized_sets_minting_account(self):
        configuration = Configuration("N", "S", "logo", 10_000, 8)
        self.assertFalse(configuration.token_created)
        self.assertIsNone(configuration.minting_account)

        minting = Account(Principal(b'\x03'))
        updated = configuration.initialized(minting)
        self.assertTrue(updated.token_created)
        self.assertEqual(updated.minting_account, minting)
        self.assertEqual(Configuration.from_bytes(updated.to_bytes()), updated)


if __name__ == '__main__':
    unittest.main()
