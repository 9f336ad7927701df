"""Outbound views of a single bill: share message and image receipt."""

import re
from pathlib import Path
from urllib.parse import quote

import structlog
from PIL import Image, ImageDraw, ImageFont

from harvest_ledger.config import get_settings
from harvest_ledger.errors import PersistenceError
from harvest_ledger.formatting import format_date
from harvest_ledger.reconciler import reconcile
from harvest_ledger.records import BillingRecord, decimal_to_json

logger = structlog.get_logger(__name__)

WHATSAPP_URL = "https://wa.me/?text="
SEPARATOR = "-" * 18

# The bundled default font has no rupee glyph.
RECEIPT_CURRENCY = "Rs. "
RECEIPT_WIDTH = 400
RECEIPT_PADDING = 30
RECEIPT_LINE_HEIGHT = 26

ACCENT = (16, 185, 129)
DANGER = (239, 68, 68)
MUTED = (102, 102, 102)
INK = (51, 51, 51)
RULE = (238, 238, 238)


def _amount(value) -> str:
    return str(decimal_to_json(value))


def share_message(record: BillingRecord, currency_symbol: str | None = None) -> str:
    """Plain-text bill summary for sending to the farmer."""
    symbol = currency_symbol if currency_symbol is not None else get_settings().currency_symbol
    state = reconcile(record)
    status = "Settled (Fully Paid)" if record.is_settled else state.status.value

    lines = [
        "*Harvester Bill*",
        f"Name: {record.name}",
        f"Date: {format_date(record.date)}",
        f"Place: {record.place}",
        f"Crop: {record.crop or 'N/A'}",
        SEPARATOR,
        f"Acres: {_amount(record.acres)}",
        f"Rate: {symbol}{_amount(record.rate)}/acre",
        f"*Total Bill: {symbol}{_amount(record.total)}*",
        f"Amount Paid: {symbol}{_amount(state.paid_amount)}",
        f"*Balance Due: {symbol}{_amount(state.balance)}*",
        SEPARATOR,
        f"Status: {status}",
    ]
    return "\n".join(lines)


def whatsapp_url(text: str) -> str:
    """Link that opens WhatsApp with `text` prefilled."""
    return WHATSAPP_URL + quote(text, safe="")


WHITESPACE = re.compile(r"\s+")


def receipt_filename(record: BillingRecord) -> str:
    return f"Receipt_{WHITESPACE.sub('_', record.name)}.png"


def render_receipt(record: BillingRecord, business_name: str | None = None) -> Image.Image:
    """Draw a receipt card for one bill."""
    business_name = business_name or get_settings().business_name
    state = reconcile(record)
    font = ImageFont.load_default()

    details = [
        ("Bill No", f"#{record.bill_no if record.bill_no is not None else 'N/A'}"),
        ("Date", format_date(record.date)),
        ("Farmer", record.name),
        ("Place", record.place),
        ("Crop", record.crop or "-"),
        ("Contact", record.contact),
    ]
    balance = f"{RECEIPT_CURRENCY}{_amount(state.balance)}"
    if record.is_settled:
        balance += " (Settled)"
    amounts = [
        ("Acres", _amount(record.acres), INK),
        ("Rate", f"{RECEIPT_CURRENCY}{_amount(record.rate)}", INK),
        ("Total", f"{RECEIPT_CURRENCY}{_amount(record.total)}", ACCENT),
        ("Paid", f"{RECEIPT_CURRENCY}{_amount(state.paid_amount)}", INK),
        ("Balance", balance, ACCENT if record.is_settled else DANGER),
    ]

    # header (2) + rule + details + rule + amounts + footer
    rows = 2 + 1 + len(details) + 1 + len(amounts) + 2
    height = RECEIPT_PADDING * 2 + rows * RECEIPT_LINE_HEIGHT
    image = Image.new("RGB", (RECEIPT_WIDTH, height), "white")
    draw = ImageDraw.Draw(image)
    draw.rectangle((0, 0, RECEIPT_WIDTH - 1, height - 1), outline=(221, 221, 221))

    left = RECEIPT_PADDING
    right = RECEIPT_WIDTH - RECEIPT_PADDING
    y = RECEIPT_PADDING

    def centered(text: str, fill: tuple[int, int, int]) -> None:
        width = draw.textlength(text, font=font)
        draw.text(((RECEIPT_WIDTH - width) / 2, y), text, fill=fill, font=font)

    def rule() -> None:
        middle = y + RECEIPT_LINE_HEIGHT // 2
        draw.line((left, middle, right, middle), fill=RULE)

    centered(business_name, ACCENT)
    y += RECEIPT_LINE_HEIGHT
    centered("Official Receipt", MUTED)
    y += RECEIPT_LINE_HEIGHT
    rule()
    y += RECEIPT_LINE_HEIGHT

    for label, value in details:
        draw.text((left, y), f"{label}: {value}", fill=INK, font=font)
        y += RECEIPT_LINE_HEIGHT

    rule()
    y += RECEIPT_LINE_HEIGHT

    for label, value, fill in amounts:
        draw.text((left, y), label, fill=INK, font=font)
        width = draw.textlength(value, font=font)
        draw.text((right - width, y), value, fill=fill, font=font)
        y += RECEIPT_LINE_HEIGHT

    y += RECEIPT_LINE_HEIGHT
    centered("Thank you for your business!", (153, 153, 153))
    return image


def save_receipt(
    record: BillingRecord, directory: Path, business_name: str | None = None
) -> Path:
    """Render the receipt for `record` as a PNG in `directory`."""
    path = Path(directory) / receipt_filename(record)
    image = render_receipt(record, business_name=business_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG")
    except OSError as e:
        raise PersistenceError(f"could not write {path}: {e}", path=path) from e
    logger.info("receipt_saved", record_id=record.id, path=str(path))
    return path
