"""
Chain clients for the VaporPay CLI.

The EVM client signs transactions with the configured key, submits them
over JSON-RPC and waits for receipts.
"""

from .evm import EVMClient, EVMConfig, TxResult

__all__ = ["EVMClient", "EVMConfig", "TxResult"]
