"""
Transaction factories and precondition checks for write operations.

Factories only build records; checks only raise. The ledger runs the checks
and then commits what the factories built, inside one exclusive section.
"""
import logging
from typing import Optional
from .config import LimitsConfig
from .core import Account, Configuration, Mint, Principal, Transaction, Transfer, TransferArgs, U64_MAX
from .errors import (
    AlreadyInitialized,
    BadFee,
    CreatedInFuture,
    GenericError,
    InsufficientBalance,
    InsufficientFunds,
    InvalidArgument,
    NotConfigured,
    TooOld,
    Unauthorized,
)

logger = logging.getLogger(__name__)

INITIAL_SUPPLY_MEMO = b"Initial supply for Renewables Vault"
MINT_MEMO = b"Renewables Vault token mint"

# GenericError codes
MEMO_TOO_LONG = 1


def require_u64(name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U64_MAX:
        raise InvalidArgument(f"{name} must be a u64, got {value!r}")
    return value


def require_nat(name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer, got {value!r}")
    return value

# ==============================================================================
# FACTORIES
# ==============================================================================

def initial_mint_transaction(to: Account, amount: int, now: int) -> Transaction:
    return Transaction(
        kind="mint",
        operation=Mint(amount=amount, to=to, memo=INITIAL_SUPPLY_MEMO, created_at_time=now),
        timestamp=now,
    )


def mint_transaction(amount: int, to: Account, now: int) -> Transaction:
    return Transaction(
        kind="mint",
        operation=Mint(amount=amount, to=to, memo=MINT_MEMO, created_at_time=now),
        timestamp=now,
    )


def reward_transaction(amount: int, to: Account, project_id: int, now: int) -> Transaction:
    return Transaction(
        kind="reward",
        operation=Mint(
            amount=amount,
            to=to,
            memo=f"Rewards for project {project_id}".encode(),
            created_at_time=now,
        ),
        timestamp=now,
    )


def stake_transaction(from_: Account, staking_account: Account, amount: int, fee: int,
                      project_id: int, now: int) -> Transaction:
    return Transaction(
        kind="stake",
        operation=Transfer(
            from_=from_,
            to=staking_account,
            amount=amount,
            fee=fee,
            memo=f"Stake for project {project_id}".encode(),
            created_at_time=now,
        ),
        timestamp=now,
    )


def transfer_transaction(from_: Account, args: TransferArgs, now: int) -> Transaction:
    """Only icrc1_transfer keeps the caller's created_at_time; the log timestamp is always `now`."""
    return Transaction(
        kind="transfer",
        operation=Transfer(
            from_=from_,
            to=args.to,
            amount=args.amount,
            fee=args.fee,
            memo=args.memo,
            created_at_time=args.created_at_time,
        ),
        timestamp=now,
    )

# ==============================================================================
# CHECKS
# ==============================================================================

def check_initialize(configuration: Configuration):
    if configuration.token_created:
        logger.warning("Rejected initialize_token: token already created")
        raise AlreadyInitialized()


def check_mint(configuration: Configuration, caller: Principal) -> Account:
    """Returns the minting account when `caller` owns it."""
    minting_account = configuration.minting_account
    if minting_account is None:
        logger.warning("Rejected mint: minting account not set")
        raise NotConfigured()
    if caller != minting_account.owner:
        logger.warning(f"Rejected mint from {caller}: not the minting account")
        raise Unauthorized()
    return minting_account


def check_stake(current_balance: int, amount: int, fee: int):
    """The stake debits amount plus fee, so both must be covered."""
    required = amount + fee
    if current_balance < required:
        logger.warning(f"Rejected stake of {amount}: balance {current_balance} < {required}")
        raise InsufficientBalance(current_balance, required)


def check_transfer(current_balance: int, amount: int, fee: int):
    if current_balance < amount + fee:
        logger.warning(f"Rejected transfer of {amount} (+{fee} fee): balance {current_balance}")
        raise InsufficientFunds(balance=current_balance)


def check_transfer_limits(args: TransferArgs, configuration: Configuration,
                          limits: LimitsConfig, now: int):
    """Memo size, fee and created_at_time rules; a no-op unless limits.enforce is set."""
    if not limits.enforce:
        return

    if args.memo is not None and len(args.memo) > limits.max_memo_size:
        raise GenericError(MEMO_TOO_LONG, f"Memo longer than {limits.max_memo_size} bytes")

    if args.fee is not None and args.fee != configuration.transfer_fee:
        raise BadFee(expected_fee=configuration.transfer_fee)

    created_at: Optional[int] = args.created_at_time
    if created_at is not None:
        if created_at + limits.transaction_window_nanos + limits.permitted_drift_nanos < now:
            raise TooOld()
        if created_at > now + limits.permitted_drift_nanos:
            raise CreatedInFuture(ledger_time=now)
