#!/usr/bin/env python3
"""
ABI encoding tests for the VaporPay contract calls.

Selectors are checked against fixed golden values and payloads are decoded
with eth_abi as an independent reference.

Usage:
    python -m pytest tests/test_abi.py
"""

import sys
import os
import unittest

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from eth_abi import decode

from vaporpay.core import InvalidArgumentError, MAX_UINT256
from vaporpay.htlc.evm import (
    VAPORPAY_ABI, ERC20_ABI,
    encode_function_call, function_signature, function_selector,
    encode_deposit_eth, encode_deposit_erc20, encode_approve,
    encode_redeem, encode_refund,
    parse_address, parse_bytes32, normalize_address, decode_slots,
)

SECRET = "0x" + "11" * 32
SALT = "0x" + "22" * 32
COMMITMENT = "0x" + "ab" * 32
TOKEN = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
ESCROW = "0xBCf3eeb42629143A1B29d9542fad0E54a04dBFD2"
RECIPIENT = "0x00000000000000000000000000000000DeaDBeef"

GOLDEN_SELECTORS = {
    "depositETH(bytes32,uint256,bool)": "649cf255",
    "depositERC20(bytes32,address,uint256,uint256,bool)": "e31043c3",
    "approve(address,uint256)": "095ea7b3",
    "redeem(bytes32,bytes32,address)": "e0a67f82",
    "refund(bytes32,bytes32)": "e4683a79",
}


class TestSelectors(unittest.TestCase):
    """Function selectors must match the deployed contract."""

    def test_golden_selectors(self):
        for signature, expected in GOLDEN_SELECTORS.items():
            self.assertEqual(function_selector(signature).hex(), expected, signature)

    def test_signatures_from_abi(self):
        self.assertEqual(function_signature("depositETH", VAPORPAY_ABI),
                         "depositETH(bytes32,uint256,bool)")
        self.assertEqual(function_signature("depositERC20", VAPORPAY_ABI),
                         "depositERC20(bytes32,address,uint256,uint256,bool)")
        self.assertEqual(function_signature("redeem", VAPORPAY_ABI),
                         "redeem(bytes32,bytes32,address)")
        self.assertEqual(function_signature("refund", VAPORPAY_ABI),
                         "refund(bytes32,bytes32)")
        self.assertEqual(function_signature("approve", ERC20_ABI),
                         "approve(address,uint256)")

    def test_payloads_start_with_selector(self):
        payloads = {
            "depositETH(bytes32,uint256,bool)": encode_deposit_eth(COMMITMENT, 1, True),
            "depositERC20(bytes32,address,uint256,uint256,bool)":
                encode_deposit_erc20(COMMITMENT, TOKEN, 1, 1, False),
            "approve(address,uint256)": encode_approve(ESCROW, 1),
            "redeem(bytes32,bytes32,address)": encode_redeem(SECRET, SALT, RECIPIENT),
            "refund(bytes32,bytes32)": encode_refund(SECRET, SALT),
        }
        for signature, payload in payloads.items():
            self.assertEqual(payload[:4].hex(), GOLDEN_SELECTORS[signature])

    def test_unknown_function(self):
        with self.assertRaises(ValueError):
            encode_function_call("withdraw", [], VAPORPAY_ABI)


class TestLayout(unittest.TestCase):
    """One 32-byte slot per argument."""

    def test_deposit_eth_layout(self):
        payload = encode_deposit_eth(COMMITMENT, 1_700_003_600, True)
        self.assertEqual(len(payload), 4 + 3 * 32)
        self.assertEqual(payload[4:36], bytes.fromhex("ab" * 32))
        self.assertEqual(int.from_bytes(payload[36:68], "big"), 1_700_003_600)
        self.assertEqual(payload[68:100], bytes(31) + b"\x01")

    def test_false_bool(self):
        payload = encode_deposit_eth(COMMITMENT, 0, False)
        self.assertEqual(payload[68:100], bytes(32))

    def test_address_left_padded(self):
        payload = encode_approve(ESCROW, 5)
        self.assertEqual(payload[4:16], bytes(12))
        self.assertEqual(payload[16:36], bytes.fromhex(ESCROW[2:]))

    def test_max_uint256(self):
        payload = encode_approve(ESCROW, MAX_UINT256)
        self.assertEqual(payload[36:68], b"\xff" * 32)

    def test_deterministic(self):
        self.assertEqual(encode_redeem(SECRET, SALT, RECIPIENT),
                         encode_redeem(SECRET, SALT, RECIPIENT))

    def test_raw_bytes_and_hex_agree(self):
        self.assertEqual(
            encode_refund(bytes.fromhex("11" * 32), bytes.fromhex("22" * 32)),
            encode_refund(SECRET, SALT),
        )

    def test_sequence_and_mapping_agree(self):
        positional = encode_function_call("refund", [SECRET, SALT], VAPORPAY_ABI)
        named = encode_function_call("refund", {"salt": SALT, "secret": SECRET}, VAPORPAY_ABI)
        self.assertEqual(positional, named)

    def test_decode_slots(self):
        info = decode_slots(encode_refund(SECRET, SALT))
        self.assertEqual(info["selector"], "0xe4683a79")
        self.assertEqual(info["slots"], [SECRET, SALT])


class TestReferenceDecode(unittest.TestCase):
    """Decode our payloads with eth_abi."""

    def test_redeem_round_trip(self):
        payload = encode_redeem(SECRET, SALT, RECIPIENT)
        secret, salt, to = decode(["bytes32", "bytes32", "address"], payload[4:])
        self.assertEqual(secret, bytes.fromhex("11" * 32))
        self.assertEqual(salt, bytes.fromhex("22" * 32))
        self.assertEqual(to.lower(), RECIPIENT.lower())

    def test_deposit_erc20_decode(self):
        amount = 25 * 10**6
        payload = encode_deposit_erc20(COMMITMENT, TOKEN, amount, 1_800_000_000, True)
        commitment, token, decoded_amount, expiry, refundable = decode(
            ["bytes32", "address", "uint256", "uint256", "bool"], payload[4:]
        )
        self.assertEqual(commitment, bytes.fromhex("ab" * 32))
        self.assertEqual(token.lower(), TOKEN.lower())
        self.assertEqual(decoded_amount, amount)
        self.assertEqual(expiry, 1_800_000_000)
        self.assertIs(refundable, True)

    def test_approve_decode(self):
        spender, amount = decode(["address", "uint256"], encode_approve(ESCROW, 10**30)[4:])
        self.assertEqual(spender.lower(), ESCROW.lower())
        self.assertEqual(amount, 10**30)


class TestInvalidArguments(unittest.TestCase):
    """Malformed inputs name the offending field."""

    def assertField(self, field, func, *args):
        with self.assertRaises(InvalidArgumentError) as ctx:
            func(*args)
        self.assertEqual(ctx.exception.field, field)
        self.assertIn(field, str(ctx.exception))

    def test_short_address(self):
        self.assertField("redeem.to", encode_redeem, SECRET, SALT, "0x1234")

    def test_non_hex_address(self):
        self.assertField("depositERC20.token", encode_deposit_erc20,
                         COMMITMENT, "0x" + "zz" * 20, 1, 1, True)

    def test_whitespace_in_hex_rejected(self):
        spaced_address = "0x" + " ".join(["ab"] * 20)
        self.assertField("to", parse_address, spaced_address, "to")
        self.assertField("redeem.to", encode_redeem, SECRET, SALT, spaced_address)
        spaced_secret = "0x" + " ".join(["11"] * 32)
        self.assertField("secret", parse_bytes32, spaced_secret, "secret")
        self.assertField("refund.salt", encode_refund, SECRET, "0x" + "22" * 31 + "\t22")

    def test_odd_length_hex(self):
        self.assertField("to", parse_address, "0x" + "a" * 41, "to")

    def test_short_secret(self):
        self.assertField("refund.secret", encode_refund, "0x1234", SALT)

    def test_long_salt(self):
        self.assertField("redeem.salt", encode_redeem, SECRET, "0x" + "22" * 33, RECIPIENT)

    def test_uint_out_of_range(self):
        self.assertField("approve.amount", encode_approve, ESCROW, MAX_UINT256 + 1)
        self.assertField("approve.amount", encode_approve, ESCROW, -1)

    def test_uint_wrong_type(self):
        self.assertField("depositETH.expiry", encode_deposit_eth, COMMITMENT, "3600", True)
        self.assertField("depositETH.expiry", encode_deposit_eth, COMMITMENT, True, True)

    def test_bool_wrong_type(self):
        self.assertField("depositETH.refundable", encode_deposit_eth, COMMITMENT, 1, 1)

    def test_wrong_arg_count(self):
        self.assertField("refund", encode_function_call, "refund", [SECRET], VAPORPAY_ABI)

    def test_missing_named_arg(self):
        self.assertField("refund.salt", encode_function_call,
                         "refund", {"secret": SECRET}, VAPORPAY_ABI)

    def test_parse_helpers(self):
        self.assertEqual(parse_address(ESCROW[2:]), bytes.fromhex(ESCROW[2:]))
        self.assertEqual(normalize_address(ESCROW), ESCROW.lower())
        self.assertEqual(parse_bytes32(SECRET.upper().replace("0X", "0x")),
                         bytes.fromhex("11" * 32))
        with self.assertRaises(InvalidArgumentError):
            parse_address(12345, "token")


if __name__ == "__main__":
    unittest.main(verbosity=2)
