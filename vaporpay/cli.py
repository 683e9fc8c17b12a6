#!/usr/bin/env python3
"""
VaporPay CLI - off-chain tools for the VaporPay escrow contract.

Usage:
    vaporpay create --amount 0.1 --expiry 1h --refundable
    vaporpay create --amount 0.1 --expiry 2d12h --contract 0x... --send --qr
    vaporpay deposit-erc20 --token 0x... --amount 25 --decimals 6 --expiry 1d --contract 0x... --send
    vaporpay redeem --secret 0x... --salt 0x... --to 0x... --contract 0x...
    vaporpay refund --secret 0x... --salt 0x... --contract 0x...
    vaporpay verify --secret 0x... --salt 0x... --commitment 0x...

Submitting transactions needs these environment variables (or a .env file):
    PRIVATE_KEY=0x...
    RPC_URL=https://...
    EXPLORER_URL=https://sepolia.etherscan.io   (optional)
"""

import argparse
import logging
import sys
from typing import List, Optional

from .core import (
    VaporPayError,
    InvalidArgumentError,
    compute_commitment,
    format_amount,
    format_utc,
    to_hex,
)
from .chains.evm import EVMClient, EVMConfig, TxResult
from .escrow.executor import ContractCall, DepositPlan, EscrowExecutor
from .htlc.evm import parse_bytes32
from .voucher import DEFAULT_VOUCHER_BASE_URL, DEFAULT_VOUCHER_PATH, render_voucher

log = logging.getLogger("vaporpay")


# =============================================================================
# OUTPUT
# =============================================================================

def print_plan(plan: DepositPlan, title: str, amount_line: str):
    bundle = plan.commitment
    print(f"\n{title}\n")
    print(f"Secret:     {bundle.secret_hex}")
    print(f"Salt:       {bundle.salt_hex}")
    print(f"Commitment: {bundle.commitment_hex}")
    print(f"Amount:     {amount_line}")
    print(f"Expiry:     {format_utc(bundle.expiry_unix)} ({bundle.expiry_duration} from now)")
    print(f"Refundable: {'Yes' if plan.refundable else 'No'}")


def print_voucher(plan: DepositPlan, args):
    voucher = render_voucher(
        plan.commitment.secret_hex,
        plan.commitment.salt_hex,
        plan.contract,
        png_path=args.qr_output,
        base_url=args.voucher_url,
    )
    print(f"\nRedeem URL: {voucher.url}")
    print(f"\nQR Code (ASCII):\n{voucher.ascii_qr}")
    print(f"Saved QR to {voucher.png_path}")


def print_result(result: TxResult, prefix: str = ""):
    label = f"{prefix} TX" if prefix else "TX"
    if result.confirmed:
        print(f"{label} confirmed: {result.explorer_url}")
    else:
        print(f"{label} sent but not confirmed: {result.tx_hash}")


def announce(call: ContractCall):
    if call.label == "approve":
        print("\nApproving token spend...")
    else:
        print(f"\nSending {call.label} transaction...")


def make_executor(needs_network: bool) -> EscrowExecutor:
    """Config is read before any commitment logic runs."""
    if not needs_network:
        return EscrowExecutor()
    config = EVMConfig.from_env()
    return EscrowExecutor(EVMClient(config))


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_create(args) -> int:
    if args.send and not args.contract:
        raise InvalidArgumentError("contract", "--contract is required with --send")

    executor = make_executor(args.send)
    plan = executor.plan_eth_deposit(args.amount, args.expiry, args.refundable, args.contract)
    print_plan(plan, "VaporPay ETH Commitment Generated!", f"{format_amount(plan.amount)} ETH")

    if args.qr:
        if plan.contract:
            print_voucher(plan, args)
        else:
            log.warning("--qr needs --contract; no voucher written")

    if args.send:
        result = executor.submit_deposit(plan, on_call=announce)
        print_result(result)
    return 0


def cmd_deposit_erc20(args) -> int:
    executor = make_executor(args.send)
    plan = executor.plan_erc20_deposit(
        args.token, args.amount, args.decimals, args.expiry, args.refundable, args.contract
    )
    print_plan(
        plan,
        "VaporPay ERC20 Commitment Generated!",
        f"{format_amount(plan.amount)} tokens ({plan.decimals} decimals)",
    )

    if args.qr:
        print_voucher(plan, args)

    if args.send:
        result = executor.submit_deposit(plan, on_call=announce)
        print_result(result, "ERC20 deposit")
    return 0


def cmd_redeem(args) -> int:
    executor = make_executor(True)
    result = executor.redeem(args.secret, args.salt, args.to, args.contract, on_call=announce)
    print_result(result, "Redeem")
    return 0


def cmd_refund(args) -> int:
    executor = make_executor(True)
    result = executor.refund(args.secret, args.salt, args.contract, on_call=announce)
    print_result(result, "Refund")
    return 0


def cmd_verify(args) -> int:
    secret = parse_bytes32(args.secret, "secret")
    salt = parse_bytes32(args.salt, "salt")
    expected = parse_bytes32(args.commitment, "commitment")

    actual = compute_commitment(secret, salt)
    print(f"Commitment: {to_hex(actual)}")
    if actual == expected:
        print("Secret and salt open the commitment.")
        return 0
    print("Secret and salt do NOT open the commitment.")
    return 1


# =============================================================================
# MAIN
# =============================================================================

def add_deposit_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--amount", required=True, type=str,
                        help="Amount in human units (e.g. 0.1)")
    parser.add_argument("--expiry", required=True, type=str,
                        help="Time until expiry, e.g. 30m, 1h, 2d12h")
    parser.add_argument("--refundable", action="store_true",
                        help="Allow the depositor to refund after expiry")
    parser.add_argument("--send", action="store_true",
                        help="Submit the deposit (needs PRIVATE_KEY and RPC_URL)")
    parser.add_argument("--qr", action="store_true",
                        help="Print a redeem QR code and save it as PNG")
    parser.add_argument("--qr-output", default=DEFAULT_VOUCHER_PATH,
                        help=f"PNG path for --qr (default: {DEFAULT_VOUCHER_PATH})")
    parser.add_argument("--voucher-url", default=DEFAULT_VOUCHER_BASE_URL,
                        help="Redeem page URL embedded in the QR code")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaporpay",
        description="Off-chain tools for the VaporPay smart contract",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-v) or calldata (-vv)")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Deposit ETH into a commitment")
    add_deposit_arguments(create)
    create.add_argument("--contract", help="VaporPay contract address")
    create.set_defaults(func=cmd_create)

    erc20 = sub.add_parser("deposit-erc20", help="Deposit ERC20 tokens")
    erc20.add_argument("--token", required=True, help="ERC20 token address")
    erc20.add_argument("--decimals", type=int, default=18,
                       help="Token decimals (default: 18)")
    add_deposit_arguments(erc20)
    erc20.add_argument("--contract", required=True, help="VaporPay contract address")
    erc20.set_defaults(func=cmd_deposit_erc20)

    redeem = sub.add_parser("redeem", help="Redeem a secret + salt")
    redeem.add_argument("--secret", required=True, help="0x secret (32 bytes)")
    redeem.add_argument("--salt", required=True, help="0x salt (32 bytes)")
    redeem.add_argument("--to", required=True, help="Address receiving the funds")
    redeem.add_argument("--contract", required=True, help="VaporPay contract address")
    redeem.set_defaults(func=cmd_redeem)

    refund = sub.add_parser("refund", help="Refund expired deposit")
    refund.add_argument("--secret", required=True, help="0x secret (32 bytes)")
    refund.add_argument("--salt", required=True, help="0x salt (32 bytes)")
    refund.add_argument("--contract", required=True, help="VaporPay contract address")
    refund.set_defaults(func=cmd_refund)

    verify = sub.add_parser("verify", help="Check a secret + salt against a commitment")
    verify.add_argument("--secret", required=True, help="0x secret (32 bytes)")
    verify.add_argument("--salt", required=True, help="0x salt (32 bytes)")
    verify.add_argument("--commitment", required=True, help="0x commitment (32 bytes)")
    verify.set_defaults(func=cmd_verify)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    try:
        return args.func(args)
    except VaporPayError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
