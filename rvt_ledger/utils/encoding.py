"""
Byte encodings for principals and subaccounts.
"""
import base64
import binascii
import zlib

SUBACCOUNT_LENGTH = 32
PROJECT_ID_BYTES = 8


def project_subaccount(project_id: int) -> bytes:
    """
    Encode a project id into a 32-byte subaccount.

    The id is written big-endian into the first 8 bytes and the rest is
    zero-filled, so every u64 maps to its own subaccount.
    """
    if not isinstance(project_id, int) or project_id < 0 or project_id >= 1 << 64:
        raise ValueError(f"project_id must be a u64, got {project_id!r}")
    id_bytes = project_id.to_bytes(PROJECT_ID_BYTES, 'big')
    return id_bytes + b'\x00' * (SUBACCOUNT_LENGTH - PROJECT_ID_BYTES)


def subaccount_project_id(subaccount: bytes) -> int:
    """Inverse of project_subaccount."""
    if len(subaccount) != SUBACCOUNT_LENGTH or any(subaccount[PROJECT_ID_BYTES:]):
        raise ValueError("Not a project subaccount")
    return int.from_bytes(subaccount[:PROJECT_ID_BYTES], 'big')


def principal_to_text(raw: bytes) -> str:
    """
    Textual form of a principal: CRC32 checksum (big-endian) followed by the
    raw bytes, base32 encoded in lower case without padding and grouped
    into chunks of five characters.
    """
    checksum = zlib.crc32(raw).to_bytes(4, 'big')
    encoded = base64.b32encode(checksum + raw).decode('ascii').rstrip('=').lower()
    groups = [encoded[i:i + 5] for i in range(0, len(encoded), 5)]
    return '-'.join(groups)


def principal_from_text(text: str) -> bytes:
    """Parse and checksum-verify the textual form of a principal."""
    compact = text.replace('-', '').upper()
    padding = (-len(compact)) % 8
    try:
        decoded = base64.b32decode(compact + '=' * padding)
    except binascii.Error as e:
        raise ValueError(f"Invalid principal text {text!r}: {e}") from e

    if len(decoded) < 4:
        raise ValueError(f"Invalid principal text {text!r}: too short")

    checksum, raw = decoded[:4], decoded[4:]
    if zlib.crc32(raw).to_bytes(4, 'big') != checksum:
        raise ValueError(f"Invalid principal text {text!r}: checksum mismatch")

    if principal_to_text(raw) != text.lower():
        raise ValueError(f"Invalid principal text {text!r}: not in canonical form")
    return raw
