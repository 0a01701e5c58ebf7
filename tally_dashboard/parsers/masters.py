"""
Parsers for Tally master data used by the dashboard.

Only the company list is needed: the live source exports "List of Companies"
and turns each COMPANY record into a company dict.
"""
from __future__ import annotations
from lxml import etree
from loguru import logger
from .base import ParsedDocument, text

# Tally reports base currency either by symbol or by formal name
_CURRENCY_BY_SYMBOL = {"₹": "INR", "Rs.": "INR", "Rs": "INR", "$": "USD", "€": "EUR", "£": "GBP"}


def _attr(element: etree._Element, name: str) -> str | None:
    val = element.get(name)
    if val is None:
        return None
    return val.strip() or None


def _currency(elem: etree._Element) -> str:
    name = text(elem, "BASECURRENCYNAME") or text(elem, "CURRENCYNAME")
    if name and len(name) == 3 and name.isalpha():
        return name.upper()
    symbol = text(elem, "BASECURRENCYSYMBOL") or text(elem, "CURRENCYSYMBOL")
    if symbol:
        return _CURRENCY_BY_SYMBOL.get(symbol, symbol)
    return "INR"


def parse_companies(doc: ParsedDocument) -> list[dict]:
    """
    Parse companies from a "List of Companies" export.

    Returns dicts with keys id, name, tax_id, currency. The GUID is the id
    when present; otherwise the company name doubles as the id, which is
    also what Tally accepts as SVCURRENTCOMPANY.
    """
    companies = []
    seen = set()
    for elem in doc.find_all(".//COMPANY"):
        name = _attr(elem, "NAME") or text(elem, "NAME") or text(elem, "COMPANYNAME")
        if not name:
            continue
        company_id = _attr(elem, "GUID") or text(elem, "GUID") or name
        if company_id in seen:
            continue
        seen.add(company_id)
        companies.append({
            "id": company_id,
            "name": name,
            "tax_id": text(elem, "GSTIN") or text(elem, "GSTREGISTRATIONNUMBER") or text(elem, "INCOMETAXNUMBER"),
            "currency": _currency(elem),
        })

    logger.debug(f"Parsed {len(companies)} companies")
    return companies
