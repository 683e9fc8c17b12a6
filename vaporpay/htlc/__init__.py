"""
Contract call encoding for the VaporPay hash-lock escrow.

The escrow holds funds until someone presents the secret and salt behind a
commitment:
- depositETH / depositERC20 lock funds under keccak256(secret || salt)
- redeem reveals secret + salt and pays out to any address
- refund returns refundable deposits to the depositor after expiry
"""

from .evm import (
    VAPORPAY_ABI,
    ERC20_ABI,
    encode_function_call,
    function_signature,
    function_selector,
    encode_deposit_eth,
    encode_deposit_erc20,
    encode_approve,
    encode_redeem,
    encode_refund,
    parse_address,
    parse_bytes32,
)

__all__ = [
    "VAPORPAY_ABI",
    "ERC20_ABI",
    "encode_function_call",
    "function_signature",
    "function_selector",
    "encode_deposit_eth",
    "encode_deposit_erc20",
    "encode_approve",
    "encode_redeem",
    "encode_refund",
    "parse_address",
    "parse_bytes32",
]
