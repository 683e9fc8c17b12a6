"""
Redeem vouchers: a URL carrying secret, salt and contract, rendered as a
QR code in the terminal and as a PNG file.
"""

import logging
from dataclasses import dataclass
from typing import List
from urllib.parse import urlencode

import qrcode

from .core import InvalidArgumentError

log = logging.getLogger(__name__)

DEFAULT_VOUCHER_BASE_URL = "https://somethingcorrosive.github.io/vaporpay/"
DEFAULT_VOUCHER_PATH = "voucher.png"

# PNG pixels per QR module
PNG_BOX_SIZE = 10
QUIET_ZONE = 4


@dataclass
class Voucher:
    """Rendered voucher."""
    url: str
    ascii_qr: str
    png_path: str


def build_redeem_url(secret_hex: str, salt_hex: str, contract: str,
                     base_url: str = DEFAULT_VOUCHER_BASE_URL) -> str:
    """
    Build the redeem link: <base>?secret=<hex>&salt=<hex>&contract=<address>
    """
    query = urlencode({"secret": secret_hex, "salt": salt_hex, "contract": contract})
    return f"{base_url}?{query}"


def _make_qr(data: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=PNG_BOX_SIZE,
        border=QUIET_ZONE,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def render_ascii(qr: qrcode.QRCode) -> str:
    """Two characters per module so the code comes out roughly square."""
    lines: List[str] = []
    for row in qr.get_matrix():
        lines.append("".join("██" if dark else "  " for dark in row))
    return "\n".join(lines)


def render_voucher(secret_hex: str, salt_hex: str, contract: str,
                   png_path: str = DEFAULT_VOUCHER_PATH,
                   base_url: str = DEFAULT_VOUCHER_BASE_URL) -> Voucher:
    """
    Render a redeem voucher and save it as PNG.

    Args:
        secret_hex: 0x secret
        salt_hex: 0x salt
        contract: VaporPay contract address
        png_path: Output image path
        base_url: Redeem page URL

    Returns:
        Voucher with URL, terminal rendering and PNG path
    """
    url = build_redeem_url(secret_hex, salt_hex, contract, base_url)
    qr = _make_qr(url)

    image = qr.make_image(fill_color="black", back_color="white")
    try:
        image.save(png_path)
    except OSError as e:
        raise InvalidArgumentError("qr_output", f"cannot write {png_path}: {e}") from e
    log.info(f"Saved QR to {png_path}")

    return Voucher(url=url, ascii_qr=render_ascii(qr), png_path=png_path)
