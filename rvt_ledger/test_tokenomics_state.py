"""
Tests for balance and supply derivation.
"""
import unittest
from rvt_ledger.core import Account, Approve, Burn, Mint, Principal, Transaction, Transfer
from rvt_ledger.errors import LedgerCorruption
from rvt_ledger.tokenomics_state import TokenomicsState, balance, total_supply

ALICE = Account(Principal(b'\x0a'))
BOB = Account(Principal(b'\x0b'))
ALICE_SAVINGS = Account(Principal(b'\x0a'), b'\x01' * 32)


def tx(kind, operation, timestamp=1):
    return Transaction(kind=kind, operation=operation, timestamp=timestamp)


class TestBalanceFold(unittest.TestCase):
    def test_empty_log(self):
        self.assertEqual(balance([], ALICE), 0)
        self.assertEqual(total_supply([]), 0)

    def test_mint_credits_recipient_only(self):
        log = [tx("mint", Mint(100, ALICE))]
        self.assertEqual(balance(log, ALICE), 100)
        self.assertEqual(balance(log, BOB), 0)
        self.assertEqual(balance(log, ALICE_SAVINGS), 0)

    def test_burn_debits_sender(self):
        log = [tx("mint", Mint(100, ALICE)), tx("burn", Burn(30, ALICE))]
        self.assertEqual(balance(log, ALICE), 70)
        self.assertEqual(total_supply(log), 70)

    def test_transfer_moves_amount_and_charges_fee(self):
        log = [
            tx("mint", Mint(100, ALICE)),
            tx("transfer", Transfer(ALICE, BOB, 30, fee=2)),
        ]
        self.assertEqual(balance(log, ALICE), 68)
        self.assertEqual(balance(log, BOB), 30)
        self.assertEqual(total_supply(log), 100)

    def test_transfer_without_fee(self):
        log = [
            tx("mint", Mint(100, ALICE)),
            tx("transfer", Transfer(ALICE, BOB, 30, fee=None)),
        ]
        self.assertEqual(balance(log, ALICE), 70)

    def test_self_transfer_nets_to_minus_fee(self):
        log = [
            tx("mint", Mint(100, ALICE)),
            tx("transfer", Transfer(ALICE, ALICE, 40, fee=3)),
        ]
        self.assertEqual(balance(log, ALICE), 97)

    def test_subaccounts_are_separate_balances(self):
        log = [
            tx("mint", Mint(100, ALICE)),
            tx("transfer", Transfer(ALICE, ALICE_SAVINGS, 40, fee=1)),
        ]
        self.assertEqual(balance(log, ALICE), 59)
        self.assertEqual(balance(log, ALICE_SAVINGS), 40)

    def test_approve_charges_only_the_fee(self):
        log = [
            tx("mint", Mint(100, ALICE)),
            tx("approve", Approve(ALICE, BOB, 1_000, fee=5)),
            tx("approve", Approve(ALICE, BOB, 1_000, fee=None)),
        ]
        self.assertEqual(balance(log, ALICE), 95)
        self.assertEqual(balance(log, BOB), 0)
        self.assertEqual(total_supply(log), 100)

    def test_underflow_raises_instead_of_clamping(self):
        log = [
            tx("mint", Mint(10, ALICE)),
            tx("transfer", Transfer(ALICE, BOB, 10, fee=1)),
        ]
        with self.assertRaises(LedgerCorruption) as ctx:
            balance(log, ALICE)
        self.assertEqual(ctx.exception.index, 1)

    def test_supply_underflow_raises(self):
        with self.assertRaises(LedgerCorruption):
            total_supply([tx("burn", Burn(1, ALICE))])


class TestTokenomicsState(unittest.TestCase):
    def test_initialization(self):
        state = TokenomicsState()
        self.assertEqual(state.total_minted, 0)
        self.assertEqual(state.total_burned, 0)
        self.assertEqual(state.circulating_supply, 0)

    def test_from_log_matches_total_supply(self):
        log = [
            tx("mint", Mint(500, ALICE)),
            tx("reward", Mint(50, BOB)),
            tx("transfer", Transfer(ALICE, BOB, 100, fee=10)),
            tx("approve", Approve(BOB, ALICE, 5, fee=3)),
            tx("burn", Burn(20, BOB)),
        ]
        state = TokenomicsState.from_log(log)
        self.assertEqual(state.total_minted, 550)
        self.assertEqual(state.total_burned, 20)
        self.assertEqual(state.total_fees, 13)
        self.assertEqual(state.transaction_count, 5)
        self.assertEqual(state.circulating_supply, total_supply(log))

    def test_dict_round_trip(self):
        state = TokenomicsState({'total_minted': 10, 'total_burned': 4, 'total_fees': 1, 'transaction_count': 3})
        restored = TokenomicsState(state.to_dict())
        self.assertEqual(restored.circulating_supply, 6)
        self.assertIn("circulating=6", repr(restored))

    def test_negative_values_rejected(self):
        with self.assertRaises(ValueError):
            TokenomicsState({'total_minted': -1, 'total_burned': 0})
        with self.assertRaises(LedgerCorruption):
            TokenomicsState({'total_minted': 1, 'total_burned': 2})


if __name__ == '__main__':
    unittest.main()
