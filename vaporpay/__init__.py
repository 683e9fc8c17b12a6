"""
VaporPay client - commitments and contract calls for the VaporPay escrow.

A deposit locks ETH or ERC20 tokens under keccak256(secret || salt). Whoever
holds the secret and salt can redeem; refundable deposits go back to the
depositor after expiry.

Usage:
    from vaporpay import EscrowExecutor, EVMClient, EVMConfig

    # Offline: commitment + calldata only
    plan = EscrowExecutor().plan_eth_deposit("0.1", "1h", refundable=True)
    print(plan.commitment.secret_hex, plan.commitment.salt_hex)

    # Online: sign and submit
    executor = EscrowExecutor(EVMClient(EVMConfig.from_env()))
    plan = executor.plan_eth_deposit("0.1", "1h", True, contract="0x...")
    result = executor.submit_deposit(plan)
"""

from .core import (
    CommitmentBundle,
    VaporPayError,
    DurationError,
    InvalidUnitError,
    InvalidNumberError,
    DurationOverflowError,
    InvalidAmountError,
    InvalidArgumentError,
    MissingConfigurationError,
    RemoteCallError,
    parse_duration,
    generate_commitment,
    compute_commitment,
    verify_commitment,
    to_base_units,
    from_base_units,
    keccak256,
)

from .chains.evm import EVMClient, EVMConfig, TxResult
from .htlc.evm import (
    encode_function_call,
    encode_deposit_eth,
    encode_deposit_erc20,
    encode_approve,
    encode_redeem,
    encode_refund,
)
from .escrow.executor import EscrowExecutor, DepositPlan, ContractCall

__version__ = "0.1.0"
__all__ = [
    # Core types
    "CommitmentBundle",
    "DepositPlan",
    "ContractCall",
    "TxResult",
    # Errors
    "VaporPayError",
    "DurationError",
    "InvalidUnitError",
    "InvalidNumberError",
    "DurationOverflowError",
    "InvalidAmountError",
    "InvalidArgumentError",
    "MissingConfigurationError",
    "RemoteCallError",
    # Utilities
    "parse_duration",
    "generate_commitment",
    "compute_commitment",
    "verify_commitment",
    "to_base_units",
    "from_base_units",
    "keccak256",
    # ABI
    "encode_function_call",
    "encode_deposit_eth",
    "encode_deposit_erc20",
    "encode_approve",
    "encode_redeem",
    "encode_refund",
    # Clients
    "EVMClient",
    "EVMConfig",
    "EscrowExecutor",
]
