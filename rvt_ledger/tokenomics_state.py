"""
Balances and supply, derived by folding the transaction log.

Nothing here is stored: every figure is recomputed from the log in index
order, and that fold is the definition of correctness for the ledger.
"""
from typing import Iterable
from .core import Account, Mint, Burn, Transfer, Approve, Transaction
from .errors import LedgerCorruption


def balance(transactions: Iterable[Transaction], account: Account) -> int:
    """
    Balance of `account`: inflows minus outflows (amounts and fees).

    A transfer from an account to itself nets to minus the fee.

    Raises:
        LedgerCorruption: the fold went negative, meaning a write got past
            its precondition.
    """
    value = 0
    for index, tx in enumerate(transactions):
        op = tx.operation
        if isinstance(op, Mint):
            if op.to == account:
                value += op.amount
        elif isinstance(op, Burn):
            if op.from_ == account:
                value -= op.amount
        elif isinstance(op, Transfer):
            if op.to == account:
                value += op.amount
            if op.from_ == account:
                value -= op.amount
                if op.fee is not None:
                    value -= op.fee
        elif isinstance(op, Approve):
            if op.from_ == account and op.fee is not None:
                value -= op.fee

        if value < 0:
            raise LedgerCorruption(f"Balance of {account} went negative", index=index)
    return value


def total_supply(transactions: Iterable[Transaction]) -> int:
    """Sum of minted amounts minus sum of burned amounts."""
    supply = 0
    for index, tx in enumerate(transactions):
        op = tx.operation
        if isinstance(op, Mint):
            supply += op.amount
        elif isinstance(op, Burn):
            supply -= op.amount
            if supply < 0:
                raise LedgerCorruption("Total supply went negative", index=index)
    return supply


class TokenomicsState:
    """
    Supply figures for a whole log, folded in one pass.

    Fees are tracked separately: they leave the payer's balance but do not
    change the supply.
    """

    def __init__(self, data: dict = None):
        if data is None:
            data = {
                'total_minted': 0,
                'total_burned': 0,
                'total_fees': 0,
                'transaction_count': 0,
            }

        self.total_minted = int(data['total_minted'])
        self.total_burned = int(data['total_burned'])
        self.total_fees = int(data.get('total_fees', 0))
        self.transaction_count = int(data.get('transaction_count', 0))
        self._validate()

    @classmethod
    def from_log(cls, transactions: Iterable[Transaction]) -> 'TokenomicsState':
        state = cls()
        for tx in transactions:
            state.apply(tx)
        state._validate()
        return state

    def apply(self, tx: Transaction):
        op = tx.operation
        if isinstance(op, Mint):
            self.total_minted += op.amount
        elif isinstance(op, Burn):
            self.total_burned += op.amount
        elif isinstance(op, (Transfer, Approve)) and op.fee is not None:
            self.total_fees += op.fee
        self.transaction_count += 1

    def to_dict(self) -> dict:
        return {
            'total_minted': self.total_minted,
            'total_burned': self.total_burned,
            'total_fees': self.total_fees,
            'transaction_count': self.transaction_count,
            'circulating_supply': self.circulating_supply,
        }

    @property
    def circulating_supply(self) -> int:
        """Minted minus burned."""
        return self.total_minted - self.total_burned

    def __repr__(self) -> str:
        return (
            f"TokenomicsState("
            f"minted={self.total_minted}, "
            f"burned={self.total_burned}, "
            f"fees={self.total_fees}, "
            f"circulating={self.circulating_supply}, "
            f"transactions={self.transaction_count})"
        )

    def _validate(self):
        """Ensure state consistency."""
        if self.total_minted < 0 or self.total_burned < 0 or self.total_fees < 0:
            raise ValueError("Minted/burned/fees cannot be negative")

        if self.circulating_supply < 0:
            raise LedgerCorruption("Burned more than was minted")
