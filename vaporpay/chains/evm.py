"""
EVM client for the VaporPay CLI.

Signs and submits contract calls with web3.py + eth-account and waits for
the receipt. Nothing here knows about commitments or ABI layouts: callers
hand over ready calldata.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, Mapping

from ..core import MissingConfigurationError, RemoteCallError, InvalidArgumentError

log = logging.getLogger(__name__)


DEFAULT_EXPLORER_URL = "https://sepolia.etherscan.io"

# Environment variables read by EVMConfig.from_env()
ENV_PRIVATE_KEY = "PRIVATE_KEY"
ENV_RPC_URL = "RPC_URL"
ENV_EXPLORER_URL = "EXPLORER_URL"


@dataclass
class EVMConfig:
    """EVM connection configuration, built once at startup."""
    rpc_url: str = ""
    private_key: str = ""
    explorer_url: str = DEFAULT_EXPLORER_URL
    receipt_timeout: int = 120      # seconds to wait for inclusion
    gas_price_multiplier: float = 1.1

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EVMConfig":
        """
        Load config from the process environment (and a .env file).

        Args:
            environ: Mapping to read instead of os.environ (no .env loading)

        Raises:
            MissingConfigurationError: PRIVATE_KEY or RPC_URL not set
        """
        if environ is None:
            from dotenv import load_dotenv
            load_dotenv()
            environ = os.environ

        private_key = environ.get(ENV_PRIVATE_KEY, "").strip()
        rpc_url = environ.get(ENV_RPC_URL, "").strip()

        if not private_key:
            raise MissingConfigurationError(f"Missing {ENV_PRIVATE_KEY} (signing key)")
        if not rpc_url:
            raise MissingConfigurationError(f"Missing {ENV_RPC_URL} (JSON-RPC endpoint)")

        return cls(
            rpc_url=rpc_url,
            private_key=private_key,
            explorer_url=environ.get(ENV_EXPLORER_URL, "").strip() or DEFAULT_EXPLORER_URL,
        )


@dataclass
class TxResult:
    """Outcome of a submitted transaction."""
    tx_hash: str
    confirmed: bool
    block_number: Optional[int] = None
    explorer_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "confirmed": self.confirmed,
            "block_number": self.block_number,
            "explorer_url": self.explorer_url,
        }


class EVMClient:
    """
    Minimal signing client: chain id lookup, send, wait for receipt.

    No retries. A failed RPC call or a reverted receipt raises
    RemoteCallError; a receipt timeout returns an unconfirmed TxResult.
    """

    def __init__(self, config: EVMConfig):
        self.config = config
        self._web3 = None
        self._account = None
        self._chain_id = None

    @property
    def web3(self):
        """Lazy-load web3 instance."""
        if self._web3 is None:
            from web3 import Web3
            self._web3 = Web3(Web3.HTTPProvider(self.config.rpc_url))
        return self._web3

    @property
    def account(self):
        """Signing account derived from the configured private key."""
        if self._account is None:
            from eth_account import Account

            private_key = self.config.private_key
            if not private_key.startswith("0x"):
                private_key = "0x" + private_key
            try:
                self._account = Account.from_key(private_key)
            except (ValueError, TypeError) as e:
                raise InvalidArgumentError(ENV_PRIVATE_KEY, f"invalid signing key ({e})") from e
        return self._account

    @property
    def address(self) -> str:
        return self.account.address

    def get_chain_id(self) -> int:
        """Get chain ID from the node (cached)."""
        if self._chain_id is None:
            self._chain_id = self._rpc("eth_chainId", lambda: self.web3.eth.chain_id)
        return self._chain_id

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.config.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def _rpc(self, what: str, call):
        from web3.exceptions import Web3Exception

        try:
            return call()
        except (Web3Exception, ValueError, OSError) as e:
            raise RemoteCallError(f"{what} failed: {e}") from e

    def send_transaction(self, to: str, data: bytes, value: int = 0) -> TxResult:
        """
        Sign, broadcast and wait for a contract call.

        Args:
            to: Target contract address
            data: ABI-encoded calldata
            value: Wei attached to the call

        Returns:
            TxResult (confirmed=False if no receipt within receipt_timeout)

        Raises:
            RemoteCallError: RPC failure or reverted transaction
        """
        from web3 import Web3
        from web3.exceptions import TimeExhausted, Web3Exception

        w3 = self.web3
        account = self.account
        chain_id = self.get_chain_id()

        tx = {
            "from": account.address,
            "to": Web3.to_checksum_address(to),
            "value": value,
            "data": Web3.to_hex(data),
            "chainId": chain_id,
        }
        tx["nonce"] = self._rpc(
            "eth_getTransactionCount",
            lambda: w3.eth.get_transaction_count(account.address, "pending"),
        )
        tx["gasPrice"] = int(self._rpc("eth_gasPrice", lambda: w3.eth.gas_price)
                             * self.config.gas_price_multiplier)
        tx["gas"] = self._rpc("eth_estimateGas", lambda: w3.eth.estimate_gas(tx))

        try:
            signed = account.sign_transaction(tx)
        except (ValueError, TypeError, KeyError) as e:
            raise RemoteCallError(f"Signing transaction to {tx['to']} failed: {e}") from e
        tx_hash = Web3.to_hex(self._rpc(
            "eth_sendRawTransaction",
            lambda: w3.eth.send_raw_transaction(signed.raw_transaction),
        ))
        log.info(f"TX submitted: {tx_hash}")

        try:
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.receipt_timeout
            )
        except TimeExhausted:
            log.warning(f"No receipt for {tx_hash} after {self.config.receipt_timeout}s")
            return TxResult(tx_hash=tx_hash, confirmed=False,
                            explorer_url=self.explorer_tx_url(tx_hash))
        except (Web3Exception, ValueError, OSError) as e:
            raise RemoteCallError(f"Waiting for receipt of {tx_hash} failed: {e}") from e

        if receipt["status"] != 1:
            raise RemoteCallError(f"Transaction {tx_hash} reverted")

        return TxResult(
            tx_hash=tx_hash,
            confirmed=True,
            block_number=receipt["blockNumber"],
            explorer_url=self.explorer_tx_url(tx_hash),
        )
