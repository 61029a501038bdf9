"""
Core data structures for the token ledger.

Transactions are a sum type: a Transaction carries exactly one operation
payload (Mint, Burn, Transfer or Approve) and a kind label that must belong
to that payload's family.
"""
import msgpack
from dataclasses import dataclass, replace
from typing import Optional, Union
from .crypto import generate_hash, self_authenticating_id
from .utils.encoding import SUBACCOUNT_LENGTH, principal_to_text, principal_from_text

MAX_PRINCIPAL_LENGTH = 29
U64_MAX = (1 << 64) - 1


def _encode_nat(value: Optional[int]):
    """Amounts that fit a u64 stay msgpack ints; larger ones become decimal strings."""
    if value is None:
        return None
    return value if value <= U64_MAX else str(value)


def _decode_nat(value) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _check_nat(name: str, value: Optional[int], optional: bool = False):
    if value is None and optional:
        return
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class Principal:
    """Opaque caller identity."""
    raw: bytes = b''

    def __post_init__(self):
        if not isinstance(self.raw, bytes):
            raise TypeError("Principal bytes required")
        if len(self.raw) > MAX_PRINCIPAL_LENGTH:
            raise ValueError(f"Principal longer than {MAX_PRINCIPAL_LENGTH} bytes")

    @classmethod
    def from_text(cls, text: str) -> 'Principal':
        return cls(principal_from_text(text))

    @classmethod
    def anonymous(cls) -> 'Principal':
        return cls(b'\x04')

    @classmethod
    def self_authenticating(cls, der_public_key: bytes) -> 'Principal':
        return cls(self_authenticating_id(der_public_key))

    def to_text(self) -> str:
        return principal_to_text(self.raw)

    def __str__(self) -> str:
        return self.to_text()


@dataclass(frozen=True)
class Account:
    """An owner plus an optional 32-byte subaccount."""
    owner: Principal
    subaccount: Optional[bytes] = None

    def __post_init__(self):
        if self.subaccount is not None and len(self.subaccount) != SUBACCOUNT_LENGTH:
            raise ValueError(f"Subaccount must be {SUBACCOUNT_LENGTH} bytes")

    def __str__(self) -> str:
        if self.subaccount is None:
            return self.owner.to_text()
        return f"{self.owner.to_text()}.{self.subaccount.hex()}"

    def to_dict(self) -> dict:
        return {"owner": self.owner.raw, "subaccount": self.subaccount}

    @classmethod
    def from_dict(cls, data: dict) -> 'Account':
        return cls(owner=Principal(bytes(data["owner"])),
                   subaccount=bytes(data["subaccount"]) if data.get("subaccount") is not None else None)


def _optional_account(data) -> Optional[Account]:
    return Account.from_dict(data) if data is not None else None


@dataclass(frozen=True)
class Mint:
    amount: int
    to: Account
    memo: Optional[bytes] = None
    created_at_time: Optional[int] = None

    def __post_init__(self):
        _check_nat("amount", self.amount)

    def to_dict(self) -> dict:
        return {
            "amount": _encode_nat(self.amount),
            "to": self.to.to_dict(),
            "memo": self.memo,
            "created_at_time": self.created_at_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Mint':
        return cls(
            amount=_decode_nat(data["amount"]),
            to=Account.from_dict(data["to"]),
            memo=data.get("memo"),
            created_at_time=data.get("created_at_time"),
        )


@dataclass(frozen=True)
class Burn:
    amount: int
    from_: Account
    spender: Optional[Account] = None
    memo: Optional[bytes] = None
    created_at_time: Optional[int] = None

    def __post_init__(self):
        _check_nat("amount", self.amount)

    def to_dict(self) -> dict:
        return {
            "amount": _encode_nat(self.amount),
            "from": self.from_.to_dict(),
            "spender": self.spender.to_dict() if self.spender else None,
            "memo": self.memo,
            "created_at_time": self.created_at_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Burn':
        return cls(
            amount=_decode_nat(data["amount"]),
            from_=Account.from_dict(data["from"]),
            spender=_optional_account(data.get("spender")),
            memo=data.get("memo"),
            created_at_time=data.get("created_at_time"),
        )


@dataclass(frozen=True)
class Transfer:
    from_: Account
    to: Account
    amount: int
    fee: Optional[int] = None
    spender: Optional[Account] = None
    memo: Optional[bytes] = None
    created_at_time: Optional[int] = None

    def __post_init__(self):
        _check_nat("amount", self.amount)
        _check_nat("fee", self.fee, optional=True)

    def to_dict(self) -> dict:
        return {
            "from": self.from_.to_dict(),
            "to": self.to.to_dict(),
            "amount": _encode_nat(self.amount),
            "fee": _encode_nat(self.fee),
            "spender": self.spender.to_dict() if self.spender else None,
            "memo": self.memo,
            "created_at_time": self.created_at_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Transfer':
        return cls(
            from_=Account.from_dict(data["from"]),
            to=Account.from_dict(data["to"]),
            amount=_decode_nat(data["amount"]),
            fee=_decode_nat(data.get("fee")),
            spender=_optional_account(data.get("spender")),
            memo=data.get("memo"),
            created_at_time=data.get("created_at_time"),
        )


@dataclass(frozen=True)
class Approve:
    from_: Account
    spender: Account
    amount: int
    expected_allowance: Optional[int] = None
    expires_at: Optional[int] = None
    fee: Optional[int] = None
    memo: Optional[bytes] = None
    created_at_time: Optional[int] = None

    def __post_init__(self):
        _check_nat("amount", self.amount)
        _check_nat("fee", self.fee, optional=True)

    def to_dict(self) -> dict:
        return {
            "from": self.from_.to_dict(),
            "spender": self.spender.to_dict(),
            "amount": _encode_nat(self.amount),
            "expected_allowance": _encode_nat(self.expected_allowance),
            "expires_at": self.expires_at,
            "fee": _encode_nat(self.fee),
            "memo": self.memo,
            "created_at_time": self.created_at_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Approve':
        return cls(
            from_=Account.from_dict(data["from"]),
            spender=Account.from_dict(data["spender"]),
            amount=_decode_nat(data["amount"]),
            expected_allowance=_decode_nat(data.get("expected_allowance")),
            expires_at=data.get("expires_at"),
            fee=_decode_nat(data.get("fee")),
            memo=data.get("memo"),
            created_at_time=data.get("created_at_time"),
        )


Operation = Union[Mint, Burn, Transfer, Approve]

# Payload key in the encoded record, per payload type.
PAYLOAD_KEYS = {Mint: "mint", Burn: "burn", Transfer: "transfer", Approve: "approve"}

# Kind labels and the payload type each one carries.
KIND_PAYLOADS = {
    "mint": Mint,
    "reward": Mint,
    "burn": Burn,
    "transfer": Transfer,
    "stake": Transfer,
    "approve": Approve,
}


@dataclass(frozen=True)
class Transaction:
    kind: str
    operation: Operation
    timestamp: int

    def __post_init__(self):
        expected = KIND_PAYLOADS.get(self.kind)
        if expected is None:
            raise ValueError(f"Unknown transaction kind: {self.kind}")
        if type(self.operation) is not expected:
            raise ValueError(
                f"Transaction kind '{self.kind}' requires a {expected.__name__} payload, "
                f"got {type(self.operation).__name__}"
            )

    @property
    def mint(self) -> Optional[Mint]:
        return self.operation if isinstance(self.operation, Mint) else None

    @property
    def burn(self) -> Optional[Burn]:
        return self.operation if isinstance(self.operation, Burn) else None

    @property
    def transfer(self) -> Optional[Transfer]:
        return self.operation if isinstance(self.operation, Transfer) else None

    @property
    def approve(self) -> Optional[Approve]:
        return self.operation if isinstance(self.operation, Approve) else None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "timestamp": self.timestamp,
            PAYLOAD_KEYS[type(self.operation)]: self.operation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Transaction':
        """Creates a Transaction from its encoded dict; exactly one payload key must be present."""
        present = [(payload_type, data[key]) for payload_type, key in PAYLOAD_KEYS.items()
                   if data.get(key) is not None]
        if len(present) != 1:
            raise ValueError(f"Transaction record must carry exactly one payload, found {len(present)}")
        payload_type, payload = present[0]
        return cls(
            kind=data["kind"],
            operation=payload_type.from_dict(payload),
            timestamp=data["timestamp"],
        )

    def to_bytes(self) -> bytes:
        """Canonical byte representation used for storage and hashing."""
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Transaction':
        return cls.from_dict(msgpack.unpackb(data, raw=False))

    @property
    def id(self) -> bytes:
        """The unique hash identifier of the transaction."""
        return generate_hash(self.to_bytes())


@dataclass(frozen=True)
class TransferArgs:
    """Arguments of icrc1_transfer."""
    to: Account
    amount: int
    from_subaccount: Optional[bytes] = None
    fee: Optional[int] = None
    memo: Optional[bytes] = None
    created_at_time: Optional[int] = None


@dataclass(frozen=True)
class Configuration:
    """Token metadata, minting authority and initialization flag."""
    token_name: str
    token_symbol: str
    token_logo: str
    transfer_fee: int
    decimals: int
    minting_account: Optional[Account] = None
    token_created: bool = False

    def to_dict(self) -> dict:
        return {
            "token_name": self.token_name,
            "token_symbol": self.token_symbol,
            "token_logo": self.token_logo,
            "transfer_fee": _encode_nat(self.transfer_fee),
            "decimals": self.decimals,
            "minting_account": self.minting_account.to_dict() if self.minting_account else None,
            "token_created": self.token_created,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Configuration':
        return cls(
            token_name=data["token_name"],
            token_symbol=data["token_symbol"],
            token_logo=data["token_logo"],
            transfer_fee=_decode_nat(data["transfer_fee"]),
            decimals=data["decimals"],
            minting_account=_optional_account(data.get("minting_account")),
            token_created=bool(data["token_created"]),
        )

    def to_bytes(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Configuration':
        return cls.from_dict(msgpack.unpackb(data, raw=False))

    def initialized(self, minting_account: Account) -> 'Configuration':
        """Copy with the minting account set and token_created raised."""
        return replace(self, minting_account=minting_account, token_created=True)
