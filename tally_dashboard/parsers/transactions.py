"""
Parsers for Tally voucher exports.

Turns VOUCHER records into register row dicts: party, voucher number,
signed-amount resolution through the party ledger line, inventory lines as
line items, and the voucher's own XML for the audit viewer.
"""
from __future__ import annotations
from lxml import etree
from loguru import logger
from .base import ParsedDocument, text, parse_float, parse_quantity, parse_tally_date


def _party_line_amount(voucher: etree._Element, party_name: str) -> float | None:
    """Amount on the ledger line that posts to the party, sign kept."""
    party = (party_name or "").strip().lower()
    if not party:
        return None
    for path in (".//LEDGERENTRIES.LIST", ".//ALLLEDGERENTRIES.LIST"):
        for le in voucher.findall(path):
            lname = (le.findtext("LEDGERNAME") or "").strip().lower()
            if lname == party:
                return parse_float(le.findtext("AMOUNT"))
    return None


def _largest_line_amount(voucher: etree._Element) -> float:
    """Choose the ledger line with the largest magnitude; keep its sign."""
    best = 0.0
    for path in (".//LEDGERENTRIES.LIST", ".//ALLLEDGERENTRIES.LIST"):
        for le in voucher.findall(path):
            v = parse_float(le.findtext("AMOUNT"))
            if abs(v) > abs(best):
                best = v
    return best


def _voucher_amount(voucher: etree._Element, party_name: str) -> float:
    amt = _party_line_amount(voucher, party_name)
    if amt is None:
        amt = _largest_line_amount(voucher)
    if not amt:
        amt = parse_float(text(voucher, "AMOUNT"))
    return abs(amt)


def _line_items(voucher: etree._Element) -> list[dict]:
    items = []
    for path in (".//ALLINVENTORYENTRIES.LIST", ".//INVENTORYENTRIES.LIST"):
        for inv in voucher.findall(path):
            name = text(inv, "STOCKITEMNAME")
            if not name:
                continue
            qty, unit = parse_quantity(text(inv, "BILLEDQTY") or text(inv, "ACTUALQTY"))
            # RATE looks like "450.00/box"
            rate_text = (text(inv, "RATE") or "").split("/", 1)[0]
            items.append({
                "id": str(len(items) + 1),
                "description": name,
                "quantity": qty,
                "unit": unit,
                "rate": parse_float(rate_text),
                "amount": abs(parse_float(text(inv, "AMOUNT"))),
            })
    return items


def _has_open_bill(voucher: etree._Element) -> bool:
    """A "New Ref" bill allocation means the invoice opened a receivable/payable."""
    for bill in voucher.findall(".//BILLALLOCATIONS.LIST"):
        if (bill.findtext("BILLTYPE") or "").strip().lower() == "new ref":
            return True
    return False


def parse_vouchers(doc: ParsedDocument, voucher_type: str | None = None) -> list[dict]:
    """
    Return register rows for every VOUCHER in the export.

    Fields: id, date, invoice_no, party_name, amount, status, items, raw_xml.
    Vouchers whose VCHTYPE differs from ``voucher_type`` are skipped when a
    type is given. Cancelled vouchers are always skipped.
    """
    out: list[dict] = []
    for v in doc.find_all(".//VOUCHER"):
        vchtype = v.get("VCHTYPE") or text(v, "VOUCHERTYPENAME") or ""
        if voucher_type and vchtype.lower() != voucher_type.lower():
            continue
        if (text(v, "ISCANCELLED") or "").lower() == "yes":
            continue

        number = v.get("VCHNUMBER") or text(v, "VOUCHERNUMBER") or ""
        party = text(v, "PARTYLEDGERNAME") or text(v, "PARTYNAME") or ""
        d = parse_tally_date(text(v, "DATE"))
        if d is None:
            logger.warning(f"Skipping voucher {number!r} without a usable DATE")
            continue
        guid = v.get("GUID") or text(v, "GUID") or v.get("REMOTEID") or f"{vchtype}/{number}/{d:%Y%m%d}"

        out.append({
            "id": guid,
            "date": d,
            "invoice_no": number,
            "party_name": party,
            "amount": _voucher_amount(v, party),
            "status": "Pending" if _has_open_bill(v) else "Paid",
            "items": _line_items(v),
            "raw_xml": etree.tostring(v, encoding="unicode", pretty_print=True).strip(),
        })

    logger.debug(f"Parsed {len(out)} vouchers")
    return out
