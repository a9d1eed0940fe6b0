"""
Field Codec — Encrypt and decrypt numeric financial fields under a DEK.

Numbers are carried as ``decimal.Decimal`` and serialized in fixed-point
form (``format(d, "f")``: no exponent, no grouping, no locale) before
encryption, so currency amounts survive the round-trip exactly.

Stored values come in three shapes, resolved once by :func:`classify_stored`:

- ``PLAIN``  — a native number written before encryption existed
- ``LEGACY`` — a numeric string without the ciphertext delimiter
- ``CIPHER`` — a ``nonce:tag:body`` ciphertext

Only ``CIPHER`` values reach the cipher. A value containing the delimiter is
always treated as ciphertext; if it does not decrypt the caller gets an error,
never a fallback to plaintext.
"""
import logging
from enum import Enum
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional, Union

from ..exceptions import InvalidFieldValue, MalformedCiphertext, DecryptionFailed
from ..conf import SENSITIVE_FIELDS
from .crypto import encrypt, decrypt, is_ciphertext

logger = logging.getLogger("ledger.vault")

Number = Union[int, float, Decimal]

# Bounds on amounts so the fixed-point form stays short.
MAX_MAGNITUDE = 30  # largest power of ten
MAX_SCALE = 30  # digits after the decimal point
MAX_DIGITS = 40


class StoredKind(Enum):
    PLAIN = "plain"
    LEGACY = "legacy"
    CIPHER = "cipher"


class Stored(NamedTuple):
    """A stored field value tagged with its shape."""
    kind: StoredKind
    raw: Any


def classify_stored(stored: Any) -> Stored:
    """Tag a raw stored value as plain number, legacy string or ciphertext.

    Raises:
        InvalidFieldValue: If the value is neither a number nor text.
    """
    if isinstance(stored, bool):
        raise InvalidFieldValue("Boolean is not a financial amount")
    if isinstance(stored, (int, float, Decimal)):
        return Stored(StoredKind.PLAIN, stored)
    if isinstance(stored, str):
        if is_ciphertext(stored):
            return Stored(StoredKind.CIPHER, stored)
        return Stored(StoredKind.LEGACY, stored)
    raise InvalidFieldValue(
        f"Unsupported stored value type: {type(stored).__name__}"
    )


def to_decimal(value: Union[Number, str]) -> Decimal:
    """Convert a number or numeric string to a finite Decimal.

    Floats go through their shortest round-trip ``repr`` so ``1234.56``
    becomes ``Decimal("1234.56")`` rather than its binary expansion.
    Amounts of 10**31 or more, with more than 30 decimal places or more than
    40 digits are rejected.
    """
    if isinstance(value, bool):
        raise InvalidFieldValue("Boolean is not a financial amount")
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, float):
            number = Decimal(repr(value))
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, str):
            number = Decimal(value.strip())
        else:
            raise InvalidFieldValue(
                f"Unsupported value type: {type(value).__name__}"
            )
    except InvalidOperation:
        raise InvalidFieldValue("Value is not a number") from None
    if not number.is_finite():
        raise InvalidFieldValue("Financial amounts must be finite")
    digits = number.as_tuple()
    if (
        len(digits.digits) > MAX_DIGITS
        or digits.exponent < -MAX_SCALE
        or number.adjusted() > MAX_MAGNITUDE
    ):
        raise InvalidFieldValue("Amount is out of range")
    return number


def canonical(value: Union[Number, str]) -> str:
    """Fixed-point text form of a number, as written inside ciphertexts."""
    return format(to_decimal(value), "f")


def encrypt_field(value: Union[Number, str], dek: bytes) -> str:
    """Encrypt a numeric value under the DEK.

    Args:
        value: Amount to protect (int, float, Decimal or numeric string).
        dek: Plaintext 32-byte DEK.

    Returns:
        Ciphertext text suitable for storage.

    Raises:
        InvalidFieldValue: If ``value`` is not a finite number or is out of
            range.
    """
    return encrypt(canonical(value).encode("ascii"), dek)


def decrypt_field(stored: Any, dek: bytes) -> Optional[Decimal]:
    """Return the numeric value of a stored field.

    Native numbers and legacy numeric strings are parsed without touching
    the cipher. ``None`` (a null column) is returned as ``None``.

    Args:
        stored: Raw value read from the record store.
        dek: Plaintext 32-byte DEK.

    Returns:
        The amount as a Decimal.

    Raises:
        MalformedCiphertext: If a delimited value has the wrong structure.
        DecryptionFailed: If a ciphertext does not verify under ``dek``.
        InvalidFieldValue: If a legacy value is not a number.
    """
    if stored is None:
        return None
    tagged = classify_stored(stored)
    if tagged.kind is StoredKind.CIPHER:
        plaintext = decrypt(tagged.raw, dek)
        try:
            return to_decimal(plaintext.decode("ascii"))
        except (UnicodeDecodeError, InvalidFieldValue):
            raise MalformedCiphertext("Decrypted field is not a number") from None
    return to_decimal(tagged.raw)


def encrypt_record(kind: str, fields: dict, dek: bytes) -> dict:
    """Return a copy of ``fields`` with the sensitive fields of ``kind`` encrypted.

    ``None`` values are left as they are.
    """
    encrypted = dict(fields)
    for name in SENSITIVE_FIELDS.get(kind, ()):
        if encrypted.get(name) is not None:
            encrypted[name] = encrypt_field(encrypted[name], dek)
    return encrypted


def decrypt_record(kind: str, record: dict, dek: bytes) -> dict:
    """Return a copy of ``record`` with the sensitive fields of ``kind`` decrypted.

    Raises:
        MalformedCiphertext, DecryptionFailed, InvalidFieldValue: On the first
        field that cannot be decoded.
    """
    decrypted = dict(record)
    for name in SENSITIVE_FIELDS.get(kind, ()):
        if name in decrypted:
            decrypted[name] = decrypt_field(decrypted[name], dek)
    return decrypted


def decrypt_records(kind: str, records: list[dict], dek: bytes) -> list[dict]:
    """Decrypt a list of records, scoping failures to the failing record.

    A record that cannot be decrypted is returned with its sensitive fields
    set to ``None`` and ``decrypt_error`` set to True, so one corrupted row
    does not hide the rest of a user's data.
    """
    result = []
    for record in records:
        try:
            item = decrypt_record(kind, record, dek)
            item["decrypt_error"] = False
        except (MalformedCiphertext, DecryptionFailed, InvalidFieldValue) as err:
            logger.error(
                "Could not decrypt %s record id=%s: %s",
                kind, record.get("id"), type(err).__name__,
            )
            item = dict(record)
            for name in SENSITIVE_FIELDS.get(kind, ()):
                if name in item:
                    item[name] = None
            item["decrypt_error"] = True
        result.append(item)
    return result
