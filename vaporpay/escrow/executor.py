"""
Escrow executor for the VaporPay CLI.

Turns command inputs into commitments and encoded contract calls, then
hands those calls to an EVM client one at a time.

Deposit flow (ERC20):
1. Generate secret + salt, commitment = keccak256(secret || salt)
2. approve(escrow, amount) on the token, wait for a successful receipt
3. depositERC20(commitment, token, amount, expiry, refundable) on the escrow

ETH deposits skip step 2 and attach the amount as call value. Redeem and
refund reveal secret + salt in a single call.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Dict, Any, List, Callable

from ..core import (
    CommitmentBundle,
    InvalidArgumentError,
    RemoteCallError,
    NATIVE_DECIMALS,
    AmountLike,
    generate_commitment,
    format_amount,
    from_base_units,
    to_base_units,
    to_hex,
)
from ..chains.evm import EVMClient, TxResult
from ..htlc.evm import (
    decode_slots,
    encode_approve,
    encode_deposit_erc20,
    encode_deposit_eth,
    encode_redeem,
    encode_refund,
    normalize_address,
    parse_bytes32,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractCall:
    """A single encoded call, ready for submission."""
    label: str          # e.g. "approve", "depositERC20"
    to: Optional[str]   # None when no contract address was given
    data: bytes
    value: int = 0

    @property
    def data_hex(self) -> str:
        return to_hex(self.data)


@dataclass
class DepositPlan:
    """Everything a deposit command prints and, with --send, submits."""
    asset: str              # "ETH" or token address
    amount: Decimal         # human amount, as normalized
    base_units: int
    decimals: int
    refundable: bool
    commitment: CommitmentBundle
    contract: Optional[str] = None
    calls: List[ContractCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.commitment.to_dict()
        data.update({
            "asset": self.asset,
            "amount": format_amount(self.amount),
            "base_units": self.base_units,
            "decimals": self.decimals,
            "refundable": self.refundable,
            "contract": self.contract,
            "calls": [{"label": c.label, "to": c.to, "data": c.data_hex, "value": c.value}
                      for c in self.calls],
        })
        return data


class EscrowExecutor:
    """
    Builds and submits VaporPay calls.

    Planning never touches the network; only `execute` (and the submit
    helpers built on it) uses the client. Any object with a compatible
    `send_transaction(to, data, value)` works as client.
    """

    def __init__(self, client: Optional[EVMClient] = None):
        self.client = client

    # =========================================================================
    # Planning (pure)
    # =========================================================================

    def plan_eth_deposit(
        self,
        amount: AmountLike,
        expiry: str,
        refundable: bool,
        contract: Optional[str] = None,
        now: Optional[int] = None
    ) -> DepositPlan:
        """
        Generate a commitment and the depositETH call.

        Args:
            amount: ETH amount (human)
            expiry: Relative duration, e.g. "1h"
            refundable: Whether the depositor may refund after expiry
            contract: VaporPay contract address (required to submit)
            now: Override for the current unix time

        Returns:
            DepositPlan with one call
        """
        base_units = to_base_units(amount, NATIVE_DECIMALS)
        contract_addr = normalize_address(contract, "contract") if contract else None
        bundle = generate_commitment(expiry, now=now)

        data = encode_deposit_eth(bundle.commitment, bundle.expiry_unix, refundable)
        return DepositPlan(
            asset="ETH",
            amount=from_base_units(base_units, NATIVE_DECIMALS),
            base_units=base_units,
            decimals=NATIVE_DECIMALS,
            refundable=refundable,
            commitment=bundle,
            contract=contract_addr,
            calls=[ContractCall("depositETH", contract_addr, data, value=base_units)],
        )

    def plan_erc20_deposit(
        self,
        token: str,
        amount: AmountLike,
        decimals: int,
        expiry: str,
        refundable: bool,
        contract: str,
        now: Optional[int] = None
    ) -> DepositPlan:
        """
        Generate a commitment plus the approve and depositERC20 calls.

        The approve call always comes first in `calls`.
        """
        token_addr = normalize_address(token, "token")
        contract_addr = normalize_address(contract, "contract")
        base_units = to_base_units(amount, decimals)
        bundle = generate_commitment(expiry, now=now)

        approve = ContractCall(
            "approve", token_addr, encode_approve(contract_addr, base_units)
        )
        deposit = ContractCall(
            "depositERC20",
            contract_addr,
            encode_deposit_erc20(
                bundle.commitment, token_addr, base_units, bundle.expiry_unix, refundable
            ),
        )
        return DepositPlan(
            asset=token_addr,
            amount=from_base_units(base_units, decimals),
            base_units=base_units,
            decimals=decimals,
            refundable=refundable,
            commitment=bundle,
            contract=contract_addr,
            calls=[approve, deposit],
        )

    def plan_redeem(self, secret: str, salt: str, to: str, contract: str) -> ContractCall:
        """redeem(secret, salt, to) on the escrow contract."""
        contract_addr = normalize_address(contract, "contract")
        data = encode_redeem(parse_bytes32(secret, "secret"), parse_bytes32(salt, "salt"), to)
        return ContractCall("redeem", contract_addr, data)

    def plan_refund(self, secret: str, salt: str, contract: str) -> ContractCall:
        """refund(secret, salt) on the escrow contract."""
        contract_addr = normalize_address(contract, "contract")
        data = encode_refund(parse_bytes32(secret, "secret"), parse_bytes32(salt, "salt"))
        return ContractCall("refund", contract_addr, data)

    # =========================================================================
    # Submission
    # =========================================================================

    def execute(
        self,
        calls: List[ContractCall],
        on_call: Optional[Callable[[ContractCall], None]] = None
    ) -> TxResult:
        """
        Submit calls strictly in order.

        Every call except the last must come back confirmed before the next
        one is sent. The last call may be unconfirmed; the caller reports it.

        Args:
            calls: Calls to submit, in order
            on_call: Invoked with each call right before it is sent

        Returns:
            TxResult of the last call

        Raises:
            InvalidArgumentError: a call has no target or no transport is set
            RemoteCallError: submission failed, reverted, or an earlier step
                was not confirmed
        """
        if not calls:
            raise ValueError("Nothing to submit")
        if self.client is None:
            raise InvalidArgumentError("client", "no EVM client configured for submission")
        for call in calls:
            if call.to is None:
                raise InvalidArgumentError("contract", f"{call.label} needs a contract address")

        result = None
        for i, call in enumerate(calls):
            log.info(f"Sending {call.label} transaction to {call.to}...")
            log.debug(f"{call.label} calldata: {decode_slots(call.data)}")
            if on_call:
                on_call(call)

            result = self.client.send_transaction(call.to, call.data, value=call.value)

            is_last = i == len(calls) - 1
            if not is_last and not result.confirmed:
                raise RemoteCallError(
                    f"{call.label} TX {result.tx_hash} was not confirmed; "
                    f"{calls[i + 1].label} not sent"
                )
            log.info(f"{call.label} TX: {result.tx_hash} (confirmed={result.confirmed})")

        return result

    def submit_deposit(self, plan: DepositPlan, on_call=None) -> TxResult:
        """Submit a deposit plan (approve first for ERC20)."""
        return self.execute(plan.calls, on_call=on_call)

    def redeem(self, secret: str, salt: str, to: str, contract: str, on_call=None) -> TxResult:
        return self.execute([self.plan_redeem(secret, salt, to, contract)], on_call=on_call)

    def refund(self, secret: str, salt: str, contract: str, on_call=None) -> TxResult:
        return self.execute([self.plan_refund(secret, salt, contract)], on_call=on_call)
