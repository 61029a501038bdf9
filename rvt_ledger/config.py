"""
Configuration management for the token ledger.
"""
import json
import os
from typing import Optional
from dataclasses import dataclass, asdict

from .core import Configuration

NANOS_PER_SECOND = 1_000_000_000


@dataclass
class TokenConfig:
    """Token metadata written into the configuration cell on first start."""
    name: str = "RenewablesVaultToken"
    symbol: str = "RVT"
    logo: str = "https://renewablesvault.com/logo.png"
    decimals: int = 8
    transfer_fee: int = 10_000  # 0.0001 RVT
    initial_supply: int = 1_000_000_000 * 100_000_000  # 1 billion tokens with 8 decimals

    def defaults(self) -> Configuration:
        return Configuration(
            token_name=self.name,
            token_symbol=self.symbol,
            token_logo=self.logo,
            transfer_fee=self.transfer_fee,
            decimals=self.decimals,
            minting_account=None,
            token_created=False,
        )


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./rvt_ledger_data"
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000
    max_entries: Optional[int] = None  # log capacity, None for unbounded


@dataclass
class LimitsConfig:
    """Declared icrc1_transfer limits; only checked when `enforce` is set."""
    max_memo_size: int = 64
    permitted_drift_nanos: int = 60 * NANOS_PER_SECOND
    transaction_window_nanos: int = 24 * 60 * 60 * NANOS_PER_SECOND
    enforce: bool = False


@dataclass
class RewardsConfig:
    """Reward policy configuration."""
    fixed_reward: int = 100_000_000  # 1 RVT


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 9090
    textfile: Optional[str] = None  # Prometheus textfile-collector output


@dataclass
class Config:
    """Main configuration."""
    token: TokenConfig
    database: DatabaseConfig
    limits: LimitsConfig
    rewards: RewardsConfig
    monitoring: MonitoringConfig
    ledger_principal: Optional[str] = None  # textual principal of the ledger itself

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            token=TokenConfig(),
            database=DatabaseConfig(),
            limits=LimitsConfig(),
            rewards=RewardsConfig(),
            monitoring=MonitoringConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            token=TokenConfig(**data.get('token', {})),
            database=DatabaseConfig(**data.get('database', {})),
            limits=LimitsConfig(**data.get('limits', {})),
            rewards=RewardsConfig(**data.get('rewards', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            ledger_principal=data.get('ledger_principal'),
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'token': asdict(self.token),
            'database': asdict(self.database),
            'limits': asdict(self.limits),
            'rewards': asdict(self.rewards),
            'monitoring': asdict(self.monitoring),
            'ledger_principal': self.ledger_principal,
        }
