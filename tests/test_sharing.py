"""Tests for share messages and image receipts."""

from decimal import Decimal
from urllib.parse import unquote

import pytest
from PIL import Image

from harvest_ledger.errors import PersistenceError
from harvest_ledger.sharing import (
    WHATSAPP_URL,
    receipt_filename,
    render_receipt,
    save_receipt,
    share_message,
    whatsapp_url,
)


class TestShareMessage:
    """Tests for share_message()."""

    def test_partial_bill(self, make_farmer):
        record = make_farmer(paid_amount=Decimal("2000"))
        text = share_message(record, currency_symbol="₹")

        assert text.splitlines() == [
            "*Harvester Bill*",
            "Name: Ramesh Patel",
            "Date: 15/01/2024",
            "Place: Kota",
            "Crop: Wheat",
            "------------------",
            "Acres: 4",
            "Rate: ₹1500/acre",
            "*Total Bill: ₹6000*",
            "Amount Paid: ₹2000",
            "*Balance Due: ₹4000*",
            "------------------",
            "Status: Partial",
        ]

    def test_settled_bill(self, make_farmer):
        record = make_farmer(paid_amount=Decimal("5000"), is_settled=True)
        text = share_message(record, currency_symbol="₹")

        assert text.endswith("Status: Settled (Fully Paid)")
        assert "*Balance Due: ₹1000*" in text

    def test_missing_crop(self, make_farmer):
        assert "Crop: N/A" in share_message(make_farmer(crop=""))

    def test_default_symbol_from_settings(self, make_farmer, monkeypatch):
        from harvest_ledger.config.settings import get_settings

        monkeypatch.setenv("CURRENCY_SYMBOL", "INR")
        get_settings.cache_clear()
        assert "*Total Bill: INR6000*" in share_message(make_farmer())

    def test_whatsapp_url_encodes_everything(self, make_farmer):
        text = share_message(make_farmer())
        url = whatsapp_url(text)

        assert url.startswith(WHATSAPP_URL)
        encoded = url[len(WHATSAPP_URL):]
        assert "\n" not in encoded
        assert " " not in encoded
        assert "%2A" in encoded
        assert unquote(encoded) == text


class TestReceipt:
    """Tests for the PNG receipt."""

    def test_filename_replaces_whitespace(self, make_farmer):
        assert receipt_filename(make_farmer(name="Ram  Lal Meena")) == "Receipt_Ram_Lal_Meena.png"

    def test_render(self, make_farmer):
        image = render_receipt(make_farmer(bill_no=1001), business_name="Sharma Harvesters")
        assert image.mode == "RGB"
        assert image.width == 400
        assert image.getpixel((200, 5)) == (255, 255, 255)

    def test_save_receipt(self, make_farmer, tmp_path):
        record = make_farmer(bill_no=1001, is_settled=True, paid_amount=Decimal("5500"))
        path = save_receipt(record, tmp_path / "receipts")

        assert path == tmp_path / "receipts" / "Receipt_Ramesh_Patel.png"
        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.width == 400

    def test_save_receipt_failure(self, make_farmer, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        with pytest.raises(PersistenceError):
            save_receipt(make_farmer(), blocker / "receipts")
