"""
The Renewables Vault Token ledger: the operation surface over one LedgerState.

Write operations validate under mutate_state() and commit a single
transaction; read operations fold a snapshot of the log. Balances and
supply are never stored.
"""
import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

from .config import Config
from .core import Account, Principal, Transaction, TransferArgs
from .db import DB
from .errors import LedgerError
from .monitoring import Monitor
from .rewards import RewardPolicy, FixedReward, ProjectRegistry, NullProjectRegistry
from .state import LedgerState
from .tokenomics_state import TokenomicsState, balance, total_supply
from .utils.encoding import project_subaccount
from .validators import (
    check_initialize,
    check_mint,
    check_stake,
    check_transfer,
    check_transfer_limits,
    initial_mint_transaction,
    mint_transaction,
    require_nat,
    require_u64,
    reward_transaction,
    stake_transaction,
    transfer_transaction,
)

logger = logging.getLogger(__name__)

# Identity the ledger holds staking subaccounts under when none is configured.
DEFAULT_LEDGER_PRINCIPAL = Principal(b'\x00' * 7 + b'\x01\x01\x01')

ICRC1_STANDARD_URL = "https://github.com/dfinity/ICRC-1/tree/main/standards/ICRC-1"


class TokenLedger:
    def __init__(self, db_path: str = None, db: DB = None, config: Config = None,
                 reward_policy: RewardPolicy = None, project_registry: ProjectRegistry = None,
                 clock: Callable[[], int] = None):
        self.config = config or Config.default()
        if db:
            self.db = db
        elif db_path:
            self.db = DB(
                db_path,
                write_buffer_size=self.config.database.write_buffer_size,
                max_open_files=self.config.database.max_open_files,
            )
        else:
            raise ValueError("Either db_path or a DB object must be provided.")

        self.state = LedgerState(
            self.db,
            self.config.token.defaults(),
            max_entries=self.config.database.max_entries,
        )
        if self.config.ledger_principal:
            self.ledger_principal = Principal.from_text(self.config.ledger_principal)
        else:
            self.ledger_principal = DEFAULT_LEDGER_PRINCIPAL

        self.reward_policy = reward_policy or FixedReward(self.config.rewards.fixed_reward)
        self.project_registry = project_registry or NullProjectRegistry()
        self.clock = clock or time.time_ns
        monitoring = self.config.monitoring
        self.monitor = Monitor(monitoring.host, monitoring.port) if monitoring.enabled else None

        logger.info(f"Ledger ready with {len(self.state.transaction_log)} transactions, "
                    f"ledger principal {self.ledger_principal}")

    def close(self):
        if self.monitor:
            self.monitor.stop_server()
        self.db.close()

    @contextmanager
    def _track(self, operation: str):
        start = time.perf_counter()
        status = "ok"
        try:
            yield
        except LedgerError:
            status = "rejected"
            raise
        except Exception:
            status = "failed"
            logger.exception(f"{operation} failed")
            raise
        finally:
            if self.monitor:
                self.monitor.record_operation(operation, status, time.perf_counter() - start)

    # ==========================================================================
    # TOKEN OPERATIONS
    # ==========================================================================

    def initialize_token(self, caller: Principal) -> str:
        """
        Mint the initial supply to `caller` and make it the minting account.

        The token_created check and both writes happen under one exclusive
        section and one batch, so only the first caller can ever win.
        """
        with self._track("initialize_token"), self.state.mutate_state() as state:
            configuration = state.configuration.get()
            check_initialize(configuration)

            minting_account = Account(owner=caller)
            init_tx = initial_mint_transaction(
                minting_account, self.config.token.initial_supply, self.clock()
            )
            state.commit(init_tx, configuration=configuration.initialized(minting_account))

            logger.info(f"Token initialized, minting account {minting_account}")
            return f"{configuration.token_name} ({configuration.token_symbol}) initialized successfully"

    def mint_tokens(self, caller: Principal, amount: int, recipient: Account) -> int:
        """Mint `amount` to `recipient`; only the minting account's owner may call this."""
        with self._track("mint_tokens"), self.state.mutate_state() as state:
            require_u64("amount", amount)
            check_mint(state.configuration.get(), caller)

            index = state.commit(mint_transaction(amount, recipient, self.clock()))
            logger.info(f"Minted {amount} to {recipient} at block {index}")
            return index

    def staking_account(self, project_id: int) -> Account:
        """The ledger-owned account holding stakes for `project_id`."""
        return Account(owner=self.ledger_principal, subaccount=project_subaccount(project_id))

    def stake_tokens(self, caller: Principal, amount: int, project_id: int) -> int:
        """Move `amount` from the caller to the project's staking account, paying the transfer fee."""
        with self._track("stake_tokens"), self.state.mutate_state() as state:
            require_u64("amount", amount)
            require_u64("project_id", project_id)

            caller_account = Account(owner=caller)
            fee = state.configuration.get().transfer_fee
            check_stake(balance(state.transaction_log, caller_account), amount, fee)

            stake_tx = stake_transaction(
                caller_account, self.staking_account(project_id), amount, fee, project_id, self.clock()
            )
            index = state.commit(stake_tx)
            logger.info(f"{caller} staked {amount} on project {project_id} at block {index}")
            return index

    def claim_rewards(self, caller: Principal, project_id: int) -> int:
        """Mint whatever the reward policy grants the caller for `project_id`."""
        with self._track("claim_rewards"), self.state.mutate_state() as state:
            require_u64("project_id", project_id)

            caller_account = Account(owner=caller)
            rewards = require_nat("reward", self.reward_policy.calculate(caller_account, project_id))

            index = state.commit(reward_transaction(rewards, caller_account, project_id, self.clock()))
            logger.info(f"{caller} claimed {rewards} for project {project_id} at block {index}")
            return index

    def associate_energy_project(self, caller: Principal, project_id: int, amount: int) -> None:
        with self._track("associate_energy_project"):
            require_u64("project_id", project_id)
            require_u64("amount", amount)
            self.project_registry.associate(caller, project_id, amount)

    def get_principal(self, caller: Principal) -> str:
        return caller.to_text()

    # ==========================================================================
    # ICRC-1
    # ==========================================================================

    def icrc1_transfer(self, caller: Principal, args: TransferArgs) -> int:
        """
        Transfer from the caller's (sub)account.

        The balance must cover amount plus fee, where an omitted fee means the
        configured transfer fee. The recorded transfer keeps the fee, memo and
        created_at_time exactly as the caller passed them.

        Raises:
            InsufficientFunds: carries the sender's balance.
        """
        with self._track("icrc1_transfer"), self.state.mutate_state() as state:
            require_nat("amount", args.amount)
            if args.fee is not None:
                require_nat("fee", args.fee)

            now = self.clock()
            configuration = state.configuration.get()
            check_transfer_limits(args, configuration, self.config.limits, now)

            from_account = Account(owner=caller, subaccount=args.from_subaccount)
            fee = args.fee if args.fee is not None else configuration.transfer_fee
            check_transfer(balance(state.transaction_log, from_account), args.amount, fee)

            index = state.commit(transfer_transaction(from_account, args, now))
            logger.info(f"Transferred {args.amount} from {from_account} to {args.to} at block {index}")
            return index

    def icrc1_balance_of(self, account: Account) -> int:
        with self.state.read_state() as snapshot:
            return balance(snapshot.transaction_log, account)

    def icrc1_total_supply(self) -> int:
        with self.state.read_state() as snapshot:
            return total_supply(snapshot.transaction_log)

    def icrc1_minting_account(self) -> Optional[Account]:
        with self.state.read_state() as snapshot:
            return snapshot.configuration.minting_account

    def icrc1_name(self) -> str:
        with self.state.read_state() as snapshot:
            return snapshot.configuration.token_name

    def icrc1_token_symbol(self) -> str:
        with self.state.read_state() as snapshot:
            return snapshot.configuration.token_symbol

    def icrc1_decimals(self) -> int:
        with self.state.read_state() as snapshot:
            return snapshot.configuration.decimals

    def icrc1_fee(self) -> int:
        with self.state.read_state() as snapshot:
            return snapshot.configuration.transfer_fee

    def icrc1_metadata(self) -> list[tuple[str, object]]:
        with self.state.read_state() as snapshot:
            configuration = snapshot.configuration
            return [
                ("icrc1:name", configuration.token_name),
                ("icrc1:symbol", configuration.token_symbol),
                ("icrc1:decimals", configuration.decimals),
                ("icrc1:fee", configuration.transfer_fee),
                ("icrc1:logo", configuration.token_logo),
            ]

    def icrc1_supported_standards(self) -> list[dict]:
        return [{"name": "ICRC-1", "url": ICRC1_STANDARD_URL}]

    # ==========================================================================
    # LOG QUERIES
    # ==========================================================================

    def log_length(self) -> int:
        with self.state.read_state() as snapshot:
            return len(snapshot.transaction_log)

    def get_transactions(self, start: int, length: int) -> list[tuple[int, Transaction]]:
        with self.state.read_state() as snapshot:
            return snapshot.transaction_log.range(start, length)

    def staking_balance(self, project_id: int) -> int:
        return self.icrc1_balance_of(self.staking_account(project_id))

    def get_tokenomics_stats(self) -> dict:
        with self.state.read_state() as snapshot:
            return TokenomicsState.from_log(snapshot.transaction_log).to_dict()

    def refresh_metrics(self):
        """Brings the log-length and supply gauges up to date."""
        if not self.monitor:
            return
        with self.state.read_state() as snapshot:
            self.monitor.update(len(snapshot.transaction_log), total_supply(snapshot.transaction_log))
