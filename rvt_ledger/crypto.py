"""
Hashing and identity derivation for ledger callers.
"""
import hashlib
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
import nacl.signing
import nacl.encoding
import nacl.exceptions

# DER SubjectPublicKeyInfo header for a raw 32-byte Ed25519 key (RFC 8410).
ED25519_DER_PREFIX = bytes.fromhex('302a300506032b6570032100')

SELF_AUTHENTICATING_TAG = b'\x02'


def generate_hash(data: bytes) -> bytes:
    """Generates a Keccak-256 hash."""
    from Crypto.Hash import keccak
    return keccak.new(digest_bits=256, data=data).digest()


def self_authenticating_id(der_public_key: bytes) -> bytes:
    """Raw principal bytes for a DER-encoded public key: sha224(der) || 0x02."""
    return hashlib.sha224(der_public_key).digest() + SELF_AUTHENTICATING_TAG

# --- Ed25519 identities using PyNaCl ---

def generate_identity() -> nacl.signing.SigningKey:
    """Generates a fresh Ed25519 signing key."""
    return nacl.signing.SigningKey.generate()

def ed25519_der(verify_key: nacl.signing.VerifyKey) -> bytes:
    """DER-encodes an Ed25519 verify key."""
    return ED25519_DER_PREFIX + verify_key.encode()

def save_identity(signing_key: nacl.signing.SigningKey, path: str):
    """Writes the 32-byte seed of an Ed25519 key as hex."""
    with open(path, 'w') as f:
        f.write(signing_key.encode(encoder=nacl.encoding.HexEncoder).decode('ascii'))
        f.write('\n')

def load_identity(path: str) -> nacl.signing.SigningKey:
    """Reads an Ed25519 key written by save_identity."""
    with open(path, 'r') as f:
        seed_hex = f.read().strip()
    try:
        return nacl.signing.SigningKey(seed_hex.encode('ascii'), encoder=nacl.encoding.HexEncoder)
    except (nacl.exceptions.CryptoError, ValueError) as e:
        raise ValueError(f"Invalid identity file {path}: {e}") from e

# --- ECDSA identities using cryptography ---

def generate_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generates an ECDSA private/public key pair (SECP256k1)."""
    private_key = ec.generate_private_key(ec.SECP256K1())
    public_key = private_key.public_key()
    return private_key, public_key

def serialize_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Serializes a public key object into PEM format (string)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

def public_key_der(public_key_pem: str) -> bytes:
    """Re-encodes a PEM public key as DER SubjectPublicKeyInfo."""
    public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )

def save_ecdsa_identity(private_key: ec.EllipticCurvePrivateKey, path: str):
    """Writes an ECDSA private key as unencrypted PKCS#8 PEM."""
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    with open(path, 'wb') as f:
        f.write(pem)

def load_ecdsa_identity(path: str) -> ec.EllipticCurvePrivateKey:
    """Reads an ECDSA key written by save_ecdsa_identity."""
    with open(path, 'rb') as f:
        pem = f.read()
    try:
        private_key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid identity file {path}: {e}") from e
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise ValueError(f"Invalid identity file {path}: not an ECDSA key")
    return private_key

# --- Identity files ---

PEM_MARKER = b'-----BEGIN'


def identity_der(path: str) -> bytes:
    """
    DER public key of the identity stored at `path`.

    PEM files are read as ECDSA keys, anything else as a hex Ed25519 seed.
    """
    with open(path, 'rb') as f:
        is_pem = f.read(len(PEM_MARKER)) == PEM_MARKER
    if is_pem:
        public_key = load_ecdsa_identity(path).public_key()
        return public_key_der(serialize_public_key(public_key))
    return ed25519_der(load_identity(path).verify_key)
