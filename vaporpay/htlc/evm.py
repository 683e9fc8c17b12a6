"""
ABI encoding for the VaporPay escrow contract.

VaporPay is a hash-lock escrow: a depositor locks ETH or an ERC20 amount
under keccak256(secret || salt); anyone holding the secret and salt can
redeem it to an address of their choice, and refundable deposits can be
reclaimed by the depositor after expiry.

Only the static ABI types the contract uses are supported (address, bool,
uint256, bytes32), so every argument is exactly one 32-byte slot.
"""

import logging
import string
from typing import Any, Dict, List, Mapping, Sequence, Union

from ..core import (
    InvalidArgumentError,
    MAX_UINT256,
    SECRET_SIZE,
    keccak256,
    to_hex,
)

log = logging.getLogger(__name__)

SLOT_SIZE = 32
ADDRESS_SIZE = 20
SELECTOR_SIZE = 4

# VaporPay contract ABI (minimal - only functions we call)
VAPORPAY_ABI = [
    {
        "name": "depositETH",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "commitment", "type": "bytes32"},
            {"name": "expiry", "type": "uint256"},
            {"name": "refundable", "type": "bool"}
        ],
        "outputs": []
    },
    {
        "name": "depositERC20",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "commitment", "type": "bytes32"},
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "expiry", "type": "uint256"},
            {"name": "refundable", "type": "bool"}
        ],
        "outputs": []
    },
    {
        "name": "redeem",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "secret", "type": "bytes32"},
            {"name": "salt", "type": "bytes32"},
            {"name": "to", "type": "address"}
        ],
        "outputs": []
    },
    {
        "name": "refund",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "secret", "type": "bytes32"},
            {"name": "salt", "type": "bytes32"}
        ],
        "outputs": []
    }
]

# ERC20 approve ABI
ERC20_ABI = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "outputs": [{"name": "", "type": "bool"}]
    }
]

ArgValue = Union[str, bytes, int, bool]


# =============================================================================
# Argument parsing
# =============================================================================

def _strip_hex(value: str, field: str) -> str:
    raw = value[2:] if value[:2].lower() == "0x" else value
    # bytes.fromhex skips whitespace between pairs; only bare hex digits pass
    if len(raw) % 2 or any(c not in string.hexdigits for c in raw):
        raise InvalidArgumentError(field, f"not a hex string: {value!r}")
    return raw


def parse_address(value: Union[str, bytes], field: str = "address") -> bytes:
    """
    Parse an EVM address into its 20 raw bytes.

    Args:
        value: "0x" + 40 hex chars (checksum case is not enforced), or 20 bytes
        field: Argument name used in error messages

    Returns:
        20-byte address
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        raw = bytes.fromhex(_strip_hex(value.strip(), field))
    else:
        raise InvalidArgumentError(field, f"expected an address, got {type(value).__name__}")

    if len(raw) != ADDRESS_SIZE:
        raise InvalidArgumentError(field, f"address must be {ADDRESS_SIZE} bytes, got {len(raw)}")
    return raw


def parse_bytes32(value: Union[str, bytes], field: str = "bytes32") -> bytes:
    """Parse a 32-byte value given as 0x-hex (64 chars) or raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        raw = bytes.fromhex(_strip_hex(value.strip(), field))
    else:
        raise InvalidArgumentError(field, f"expected bytes32, got {type(value).__name__}")

    if len(raw) != SECRET_SIZE:
        raise InvalidArgumentError(field, f"bytes32 must be 64 hex chars, got {len(raw) * 2}")
    return raw


def normalize_address(value: Union[str, bytes], field: str = "address") -> str:
    """Validated lowercase 0x address string."""
    return to_hex(parse_address(value, field))


# =============================================================================
# Encoding
# =============================================================================

def _encode_address(value: ArgValue, field: str) -> bytes:
    return parse_address(value, field).rjust(SLOT_SIZE, b"\x00")


def _encode_uint256(value: ArgValue, field: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(field, f"uint256 must be an int, got {type(value).__name__}")
    if not 0 <= value <= MAX_UINT256:
        raise InvalidArgumentError(field, f"uint256 out of range: {value}")
    return value.to_bytes(SLOT_SIZE, "big")


def _encode_bool(value: ArgValue, field: str) -> bytes:
    if not isinstance(value, bool):
        raise InvalidArgumentError(field, f"bool expected, got {type(value).__name__}")
    return int(value).to_bytes(SLOT_SIZE, "big")


def _encode_bytes32(value: ArgValue, field: str) -> bytes:
    return parse_bytes32(value, field)


ENCODERS = {
    "address": _encode_address,
    "uint256": _encode_uint256,
    "bool": _encode_bool,
    "bytes32": _encode_bytes32,
}


def _find_function(func_name: str, abi: List[Dict]) -> Dict:
    for item in abi:
        if item.get("type", "function") == "function" and item.get("name") == func_name:
            return item
    raise ValueError(f"Function {func_name} not found in ABI")


def function_signature(func_name: str, abi: List[Dict]) -> str:
    """Canonical signature text, e.g. 'refund(bytes32,bytes32)'."""
    func_abi = _find_function(func_name, abi)
    input_types = [inp["type"] for inp in func_abi.get("inputs", [])]
    return f"{func_name}({','.join(input_types)})"


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)."""
    return keccak256(signature.encode("ascii"))[:SELECTOR_SIZE]


def encode_function_call(
    func_name: str,
    args: Union[Sequence[ArgValue], Mapping[str, ArgValue]],
    abi: List[Dict]
) -> bytes:
    """
    Encode a contract call: selector followed by one slot per argument.

    Args:
        func_name: Function name in `abi`
        args: Values in declared order, or a mapping keyed by parameter name
        abi: ABI list containing the function

    Returns:
        Calldata bytes

    Raises:
        InvalidArgumentError: wrong argument count, missing name or bad value
    """
    func_abi = _find_function(func_name, abi)
    inputs = func_abi.get("inputs", [])
    signature = function_signature(func_name, abi)

    if isinstance(args, Mapping):
        missing = [inp["name"] for inp in inputs if inp["name"] not in args]
        if missing:
            raise InvalidArgumentError(f"{func_name}.{missing[0]}", "missing argument")
        values = [args[inp["name"]] for inp in inputs]
    else:
        values = list(args)
        if len(values) != len(inputs):
            raise InvalidArgumentError(
                func_name, f"expected {len(inputs)} arguments, got {len(values)}"
            )

    encoded = function_selector(signature)
    for inp, value in zip(inputs, values):
        field = f"{func_name}.{inp['name']}"
        encoder = ENCODERS.get(inp["type"])
        if encoder is None:
            raise ValueError(f"Unsupported type: {inp['type']}")
        encoded += encoder(value, field)

    log.debug(f"Encoded {signature}: {len(encoded)} bytes")
    return encoded


# =============================================================================
# Typed call builders
# =============================================================================

def encode_deposit_eth(commitment: ArgValue, expiry: int, refundable: bool) -> bytes:
    """depositETH(bytes32,uint256,bool)"""
    return encode_function_call("depositETH", {
        "commitment": commitment,
        "expiry": expiry,
        "refundable": refundable,
    }, VAPORPAY_ABI)


def encode_deposit_erc20(
    commitment: ArgValue,
    token: ArgValue,
    amount: int,
    expiry: int,
    refundable: bool
) -> bytes:
    """depositERC20(bytes32,address,uint256,uint256,bool)"""
    return encode_function_call("depositERC20", {
        "commitment": commitment,
        "token": token,
        "amount": amount,
        "expiry": expiry,
        "refundable": refundable,
    }, VAPORPAY_ABI)


def encode_approve(spender: ArgValue, amount: int) -> bytes:
    """approve(address,uint256) on the token, spender = escrow contract."""
    return encode_function_call("approve", {
        "spender": spender,
        "amount": amount,
    }, ERC20_ABI)


def encode_redeem(secret: ArgValue, salt: ArgValue, to: ArgValue) -> bytes:
    """redeem(bytes32,bytes32,address)"""
    return encode_function_call("redeem", {
        "secret": secret,
        "salt": salt,
        "to": to,
    }, VAPORPAY_ABI)


def encode_refund(secret: ArgValue, salt: ArgValue) -> bytes:
    """refund(bytes32,bytes32)"""
    return encode_function_call("refund", {
        "secret": secret,
        "salt": salt,
    }, VAPORPAY_ABI)


def decode_slots(calldata: bytes) -> Dict[str, Any]:
    """Split calldata into selector and 32-byte slots (debug output)."""
    body = calldata[SELECTOR_SIZE:]
    return {
        "selector": to_hex(calldata[:SELECTOR_SIZE]),
        "slots": [to_hex(body[i:i + SLOT_SIZE]) for i in range(0, len(body), SLOT_SIZE)],
    }
