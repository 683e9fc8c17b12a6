"""
Core types and utilities for the VaporPay client.

Covers the commitment scheme (secret + salt -> keccak256 commitment),
duration parsing for expiries and decimal amount scaling into base units.
"""

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Optional, Dict, Any, Tuple, Union

from Crypto.Hash import keccak


# =============================================================================
# Errors
# =============================================================================

class VaporPayError(Exception):
    """Base class for all errors raised by the VaporPay client."""


class DurationError(VaporPayError, ValueError):
    """Expiry duration string could not be parsed."""


class InvalidUnitError(DurationError):
    def __init__(self, unit: str):
        self.unit = unit
        if unit:
            super().__init__(f"Unknown duration unit: {unit!r} (expected s, m, h or d)")
        else:
            super().__init__("Duration segment is missing its unit (expected s, m, h or d)")


class InvalidNumberError(DurationError):
    def __init__(self, number: str, unit: str = ""):
        self.number = number
        self.unit = unit
        super().__init__(f"Invalid duration number {number!r} before unit {unit!r}")


class DurationOverflowError(DurationError):
    """Total duration exceeds MAX_DURATION_SECONDS."""


class InvalidAmountError(VaporPayError, ValueError):
    """Amount or decimals cannot be converted into base units."""


class InvalidArgumentError(VaporPayError, ValueError):
    """A contract call argument is malformed. `field` names the argument."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class MissingConfigurationError(VaporPayError):
    """Required configuration (signing key, RPC URL) is absent."""


class RemoteCallError(VaporPayError, RuntimeError):
    """JSON-RPC call failed or a submitted transaction reverted."""


# =============================================================================
# Constants
# =============================================================================

SECRET_SIZE = 32            # bytes, secret and salt alike
HEX_PREFIX = "0x"

DURATION_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

# Expiries are uint256 on the wire; durations are capped at u64 seconds.
MAX_DURATION_SECONDS = 2**64 - 1
MAX_DURATION_DIGITS = len(str(MAX_DURATION_SECONDS))

MAX_UINT256 = 2**256 - 1
UINT256_DIGITS = len(str(MAX_UINT256))
MAX_DECIMALS = 255
NATIVE_DECIMALS = 18        # ETH -> wei


# =============================================================================
# Hashing
# =============================================================================

def keccak256(data: bytes) -> bytes:
    """Keccak256 hash (Ethereum flavour, not NIST SHA3-256)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def to_hex(data: bytes) -> str:
    """Hex-encode with the 0x prefix used for display and transport."""
    return HEX_PREFIX + data.hex()


# =============================================================================
# Duration parsing
# =============================================================================

def _duration_segment(number: str, unit: str) -> int:
    if not number.isdigit():
        raise InvalidNumberError(number, unit)
    if unit not in DURATION_UNITS:
        raise InvalidUnitError(unit)
    digits = number.lstrip("0") or "0"
    if len(digits) > MAX_DURATION_DIGITS:
        raise DurationOverflowError(f"Duration number {digits[:12]}... exceeds {MAX_DURATION_SECONDS} seconds")
    return int(digits) * DURATION_UNITS[unit]


def parse_duration(text: str) -> int:
    """
    Convert a duration such as "2d12h" into seconds.

    Segments are <integer><unit> with units s, m, h, d and no separators.
    Repeated segments accumulate, so "1h1h" == "2h".

    Args:
        text: Duration string

    Returns:
        Total seconds

    Raises:
        InvalidUnitError: unknown unit, or trailing digits without a unit
        InvalidNumberError: a unit with no digits in front of it
        DurationOverflowError: total exceeds MAX_DURATION_SECONDS
    """
    total = 0
    number = ""
    unit = ""

    for char in text:
        if char in "0123456789":
            if unit:
                total += _duration_segment(number, unit)
                number = ""
                unit = ""
            number += char
        else:
            unit += char

        if total > MAX_DURATION_SECONDS:
            raise DurationOverflowError(f"Duration {text!r} exceeds {MAX_DURATION_SECONDS} seconds")

    if not unit:
        if number:
            raise InvalidUnitError("")
        raise InvalidNumberError(number)

    total += _duration_segment(number, unit)
    if total > MAX_DURATION_SECONDS:
        raise DurationOverflowError(f"Duration {text!r} exceeds {MAX_DURATION_SECONDS} seconds")

    return total


# =============================================================================
# Amounts
# =============================================================================

AmountLike = Union[str, int, float, Decimal]


def _to_decimal(amount: AmountLike) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if isinstance(amount, float):
        # repr gives the shortest text that round-trips, so 0.1 stays 0.1
        amount = repr(amount)
    try:
        value = Decimal(amount.strip() if isinstance(amount, str) else amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {amount!r}")
    if value < 0:
        raise InvalidAmountError(f"Amount must not be negative, got {amount!r}")
    return value


def _check_decimals(decimals: int) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidAmountError(f"Decimals must be an integer, got {decimals!r}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise InvalidAmountError(f"Decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")
    return decimals


def to_base_units(amount: AmountLike, decimals: int = NATIVE_DECIMALS) -> int:
    """
    Scale a human amount into integer base units (e.g. ETH -> wei).

    The amount is handled as a decimal throughout, never as a binary float.
    Digits beyond `decimals` are rounded half-up.

    Args:
        amount: Human amount ("1.5", 1.5, Decimal("1.5"))
        decimals: Token decimals, 0-255 (18 for ETH)

    Returns:
        Amount in base units, fits in uint256
    """
    decimals = _check_decimals(decimals)
    value = _to_decimal(amount)

    if value and value.adjusted() + decimals > UINT256_DIGITS:
        raise InvalidAmountError(f"Amount {amount} with {decimals} decimals does not fit in uint256")

    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS + MAX_DECIMALS + 1
        scaled = value.scaleb(decimals).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    base_units = int(scaled)
    if base_units > MAX_UINT256:
        raise InvalidAmountError(f"Amount {amount} with {decimals} decimals does not fit in uint256")
    return base_units


def from_base_units(value: int, decimals: int = NATIVE_DECIMALS) -> Decimal:
    """Convert base units back to a human Decimal for display."""
    decimals = _check_decimals(decimals)
    if value < 0:
        raise InvalidAmountError(f"Base units must not be negative, got {value}")
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS + MAX_DECIMALS + 1
        return Decimal(value).scaleb(-decimals)


def format_amount(value: Decimal) -> str:
    """Plain decimal text without exponent or trailing zeros ("0.1", "100")."""
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS + MAX_DECIMALS + 1
        return format(value.normalize(), "f")


# =============================================================================
# Commitments
# =============================================================================

@dataclass(frozen=True)
class CommitmentBundle:
    """A fresh secret/salt pair, its commitment and the resolved expiry."""
    secret: bytes
    salt: bytes
    commitment: bytes
    expiry_unix: int
    expiry_duration: str = ""

    @property
    def secret_hex(self) -> str:
        return to_hex(self.secret)

    @property
    def salt_hex(self) -> str:
        return to_hex(self.salt)

    @property
    def commitment_hex(self) -> str:
        return to_hex(self.commitment)

    @property
    def expiry_datetime(self) -> datetime:
        """Expiry in UTC. Display only."""
        return datetime.fromtimestamp(self.expiry_unix, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "secret": self.secret_hex,
            "salt": self.salt_hex,
            "commitment": self.commitment_hex,
            "expiry": self.expiry_unix,
            "expiry_utc": format_utc(self.expiry_unix),
            "expiry_duration": self.expiry_duration,
        }


def format_utc(timestamp: int) -> str:
    """Render a unix timestamp as 'YYYY-MM-DD HH:MM:SS UTC'."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def generate_secret_pair() -> Tuple[bytes, bytes]:
    """
    Draw an independent 32-byte secret and salt from the OS CSPRNG.

    Returns:
        (secret, salt)
    """
    return secrets.token_bytes(SECRET_SIZE), secrets.token_bytes(SECRET_SIZE)


def compute_commitment(secret: bytes, salt: bytes) -> bytes:
    """keccak256(secret || salt), the value the escrow contract stores."""
    if len(secret) != SECRET_SIZE:
        raise InvalidArgumentError("secret", f"expected {SECRET_SIZE} bytes, got {len(secret)}")
    if len(salt) != SECRET_SIZE:
        raise InvalidArgumentError("salt", f"expected {SECRET_SIZE} bytes, got {len(salt)}")
    return keccak256(secret + salt)


def verify_commitment(secret: bytes, salt: bytes, commitment: bytes) -> bool:
    """Check that (secret, salt) opens `commitment`."""
    try:
        return compute_commitment(secret, salt) == commitment
    except InvalidArgumentError:
        return False


def generate_commitment(expiry: str, now: Optional[int] = None) -> CommitmentBundle:
    """
    Generate a new commitment with an absolute expiry.

    Args:
        expiry: Relative duration, e.g. "1h" or "2d12h"
        now: Current unix time (defaults to the wall clock)

    Returns:
        CommitmentBundle holding secret, salt, commitment and expiry
    """
    # Duration errors surface before any secret is drawn
    seconds = parse_duration(expiry)
    if now is None:
        now = int(time.time())

    secret, salt = generate_secret_pair()
    return CommitmentBundle(
        secret=secret,
        salt=salt,
        commitment=compute_commitment(secret, salt),
        expiry_unix=now + seconds,
        expiry_duration=expiry,
    )
