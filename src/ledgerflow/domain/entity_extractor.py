"""Entity extraction from bank transaction descriptions.

Pulls vendor names, payment methods, invoice/bill/reference numbers,
category keywords and embedded amounts out of free text such as
``"NEFT PAYMENT INV-1042 ABC CORP"`` or ``"UPI-SWIGGY-xyz@okaxis"``.
Everything here is a pure function of the description and the (immutable)
tables passed to :class:`EntityExtractor`.
"""

import re
from collections import Counter
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from ledgerflow.domain.entities import ExtractedEntities, PaymentMethod

TRANSACTION_PREFIXES = (
    "NEFT", "IMPS", "RTGS", "UPI", "NACH", "ECS", "ACH", "BIL", "POS", "ATM",
    "INB", "MOB", "NET", "CHQ", "DD", "FT", "TRF", "TRANSFER",
)

# Legal-form suffixes dropped from the tail of an inferred vendor name
COMPANY_SUFFIXES = ("PVT", "PRIVATE", "LIMITED", "LTD", "LLP", "INC", "CORP", "CO")

# Words shared by many unrelated businesses; never enough to identify a vendor
GENERIC_VENDOR_WORDS = frozenset(
    {w.lower() for w in COMPANY_SUFFIXES}
    | {
        "company", "services", "service", "solutions", "technologies", "tech",
        "enterprises", "industries", "international", "india", "global",
        "systems", "traders", "trading", "group", "holdings", "ventures",
    }
)

NOISE_WORDS = frozenset(
    {
        "PAYMENT", "PAID", "PAY", "TO", "FROM", "FOR", "BY", "TRANSFER", "TXN",
        "TRANSACTION", "REF", "REFERENCE", "CREDIT", "DEBIT", "CR", "DR",
        "INVOICE", "BILL", "RECEIPT", "THE", "AND", "VIA",
    }
    | set(TRANSACTION_PREFIXES)
)

DEFAULT_KNOWN_VENDORS: Mapping[str, str] = MappingProxyType(
    {
        "aws": "Amazon Web Services",
        "amazon web services": "Amazon Web Services",
        "azure": "Microsoft Azure",
        "microsoft": "Microsoft",
        "google cloud": "Google Cloud Platform",
        "gcp": "Google Cloud Platform",
        "digitalocean": "DigitalOcean",
        "github": "GitHub",
        "gitlab": "GitLab",
        "slack": "Slack",
        "zoom": "Zoom",
        "notion": "Notion",
        "figma": "Figma",
        "canva": "Canva",
        "hubspot": "HubSpot",
        "salesforce": "Salesforce",
        "stripe": "Stripe",
        "razorpay": "Razorpay",
        "freshworks": "Freshworks",
        "zoho": "Zoho",
        "tally": "Tally",
        "quickbooks": "QuickBooks",
        "xero": "Xero",
        "dropbox": "Dropbox",
        "adobe": "Adobe",
        "mailchimp": "Mailchimp",
        "sendgrid": "SendGrid",
        "twilio": "Twilio",
        "intercom": "Intercom",
        "heroku": "Heroku",
        "vercel": "Vercel",
        "netlify": "Netlify",
        "cloudflare": "Cloudflare",
        "mongodb": "MongoDB",
        "firebase": "Firebase",
        "supabase": "Supabase",
    }
)

DEFAULT_KEYWORD_GROUPS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "hiring": ("salary", "payroll", "wages", "bonus", "recruitment", "hr", "employee", "staff", "contractor"),
        "marketing": ("marketing", "advertising", "ads", "campaign", "seo", "social media", "promotion", "branding"),
        "saas": ("subscription", "saas", "software", "license", "app", "tool", "platform", "api"),
        "cloud": ("aws", "azure", "gcp", "cloud", "hosting", "server", "infrastructure", "database"),
        "office": ("rent", "office", "electricity", "utilities", "internet", "wifi", "furniture"),
        "legal": ("legal", "lawyer", "attorney", "compliance", "registration", "trademark", "patent"),
        "travel": ("travel", "flight", "hotel", "cab", "uber", "ola", "taxi", "transport"),
        "tax": ("gst", "tds", "income tax", "tax", "filing", "return"),
    }
)

# Ordered: the first method whose pattern fires wins
_PAYMENT_METHOD_PATTERNS: tuple[tuple[PaymentMethod, re.Pattern], ...] = (
    (PaymentMethod.UPI, re.compile(r"\bUPI\b|[A-Z0-9.]+@[A-Z]{2,}\b|PHONEPE|GPAY|GOOGLE PAY|PAYTM|BHIM")),
    (PaymentMethod.NEFT, re.compile(r"\bNEFT\b|NATIONAL ELECTRONIC")),
    (PaymentMethod.IMPS, re.compile(r"\bIMPS\b|IMMEDIATE PAYMENT")),
    (PaymentMethod.RTGS, re.compile(r"\bRTGS\b|REAL TIME GROSS")),
    (PaymentMethod.NACH, re.compile(r"\bNACH\b|\bECS\b|ELECTRONIC CLEARING")),
    (PaymentMethod.CHEQUE, re.compile(r"\bCHQ\b|\bCHEQUE\b|\bCHECK\b|\bCLG\b")),
    (PaymentMethod.CARD, re.compile(r"\bPOS\b|\bCARD\b|\bVISA\b|MASTERCARD|\bRUPAY\b")),
    (PaymentMethod.WIRE, re.compile(r"\bWIRE\b|\bSWIFT\b|\bFOREIGN\b")),
    (PaymentMethod.DD, re.compile(r"\bDD\b|DEMAND DRAFT")),
    (PaymentMethod.CASH, re.compile(r"\bCASH\b|\bCDM\b")),
)

_UPI_ID = re.compile(r"([A-Z0-9._]+@[A-Z]{2,})\b")

_DOC_NUMBER = r"([A-Z]*\d[A-Z0-9/-]*)"
_INVOICE_PATTERNS = (
    re.compile(r"\bINVOICE\s*(?:NO\.?|NUMBER|#)?\s*[-#:/]?\s*" + _DOC_NUMBER),
    re.compile(r"\bINV[-#/_ ]?" + _DOC_NUMBER),
)
_BILL_PATTERNS = (
    re.compile(r"\bBILL\s*(?:NO\.?|NUMBER|#)?\s*[-#:/]?\s*" + _DOC_NUMBER),
    re.compile(r"\bPURCHASE\s*ORDER\s*[-#:/]?\s*" + _DOC_NUMBER),
    re.compile(r"\bPO[-#]?(\d{4,})"),
)
_REFERENCE_PATTERNS = (
    re.compile(r"\bREF(?:ERENCE)?\s*(?:NO\.?)?\s*[-#:/]?\s*([A-Z0-9]{6,})"),
    re.compile(r"\bUTR\s*(?:NO\.?)?\s*[-#:/]?\s*([A-Z0-9]{6,})"),
    re.compile(r"\bRRN\s*[-#:/]?\s*(\d{6,})"),
    re.compile(r"\bTXN\s*(?:ID)?\s*[-#:/]?\s*([A-Z0-9]{6,})"),
    re.compile(r"\bTRANSACTION\s*ID\s*[-:/]?\s*([A-Z0-9]+)"),
)
_AMOUNT_PATTERNS = (
    re.compile(r"\bRS\.?\s*(\d[\d,]*(?:\.\d+)?)"),
    re.compile(r"\bINR\.?\s*(\d[\d,]*(?:\.\d+)?)"),
    re.compile(r"₹\s*(\d[\d,]*(?:\.\d+)?)"),
    re.compile(r"\bAMOUNT\s*[-:/]?\s*(\d[\d,]*(?:\.\d+)?)"),
)

_PREFIX_RE = re.compile(r"^(?:" + "|".join(TRANSACTION_PREFIXES) + r")\b[-/\s]*")
_DOCUMENT_TOKEN_RE = re.compile(
    r"\b(?:INVOICE|INV|BILL|PO|REF|TXN|UTR|RRN)\s*(?:NO\.?)?\s*[-#:/_]?\s*[A-Z]*\d[A-Z0-9/-]*"
)
_DATE_RE = re.compile(r"\b\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}\b")
_EMBEDDED_AMOUNT_RE = re.compile(r"(?:\bRS\.?|\bINR\b|₹)\s*\d[\d,]*(?:\.\d+)?")
_TOKEN_SPLIT_RE = re.compile(r"[\s\-/_*:,|.#]+")

_VENDOR_KEYWORD_PATTERNS = (
    re.compile(r"upi[-/]([a-z]+)"),
    re.compile(r"neft\s+([a-z]+)"),
    re.compile(r"imps\s+([a-z]+)"),
    re.compile(r"\bto\s+([a-z]+)"),
    re.compile(r"\bfrom\s+([a-z]+)"),
)

_DOC_PREFIX_RE = re.compile(r"^(?:INVOICE|INV|BILL|PO)(?=[A-Z]*\d)")


def _first_group(patterns: Iterable[re.Pattern], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1).strip().rstrip("-/")
    return None


def _contains_keyword(text: str, keyword: str) -> bool:
    return re.search(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])", text) is not None


def normalize_document_number(number: Optional[str]) -> str:
    """Canonical form of an invoice or bill number for equality checks.

    ``"INV-1042"``, ``"#1042"`` and ``"inv 1042"`` all normalize to ``"1042"``.
    """
    if not number:
        return ""
    compact = re.sub(r"[^A-Z0-9]", "", number.upper())
    return _DOC_PREFIX_RE.sub("", compact)


class EntityExtractor:
    """Pattern-rule extractor with injectable vendor and keyword tables."""

    def __init__(
        self,
        known_vendors: Optional[Mapping[str, str]] = None,
        keyword_groups: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        """Initialize the extractor.

        Args:
            known_vendors: Lower-case alias -> canonical vendor name
            keyword_groups: Keyword group -> words that signal it
        """
        vendors = DEFAULT_KNOWN_VENDORS if known_vendors is None else known_vendors
        groups = DEFAULT_KEYWORD_GROUPS if keyword_groups is None else keyword_groups
        # Longest alias first so "amazon web services" beats "aws"-style overlaps
        self.known_vendors = tuple(
            sorted(((k.lower(), v) for k, v in vendors.items()), key=lambda kv: -len(kv[0]))
        )
        self.keyword_groups = tuple(
            (group, tuple(w.lower() for w in words)) for group, words in groups.items()
        )

    def extract(self, description: str) -> ExtractedEntities:
        """Extract entities from one description.

        Confidence is the weighted sum of the signals that fired, capped at
        100: payment method 10, invoice 20, bill 20, reference 10, vendor 30
        (known) or 15 (inferred), keywords 10, embedded amount 5.
        """
        if not description or not description.strip():
            return ExtractedEntities()

        upper = description.upper().strip()
        points = 0

        payment_method, upi_id = self._payment_method(upper)
        if payment_method != PaymentMethod.UNKNOWN:
            points += 10

        invoice_number = _first_group(_INVOICE_PATTERNS, upper)
        if invoice_number:
            points += 20

        bill_number = _first_group(_BILL_PATTERNS, upper)
        if bill_number:
            points += 20

        reference_number = _first_group(_REFERENCE_PATTERNS, upper)
        if reference_number:
            points += 10

        vendor, vendor_is_known = self.vendor_name(description)
        if vendor:
            points += 30 if vendor_is_known else 15

        keywords = self.keywords(description)
        if keywords:
            points += 10

        amount = self._embedded_amount(upper)
        if amount is not None:
            points += 5

        return ExtractedEntities(
            vendor=vendor,
            vendor_is_known=vendor_is_known,
            invoice_number=invoice_number,
            bill_number=bill_number,
            reference_number=reference_number,
            payment_method=payment_method,
            upi_id=upi_id,
            keywords=keywords,
            amount=amount,
            confidence=min(100, points),
        )

    def _payment_method(self, upper: str) -> tuple[PaymentMethod, Optional[str]]:
        for method, pattern in _PAYMENT_METHOD_PATTERNS:
            if pattern.search(upper):
                upi_id = None
                if method == PaymentMethod.UPI:
                    match = _UPI_ID.search(upper)
                    upi_id = match.group(1).lower() if match else None
                return method, upi_id
        return PaymentMethod.UNKNOWN, None

    def vendor_name(self, description: str) -> tuple[Optional[str], bool]:
        """Return ``(vendor, is_known)`` for a description."""
        lower = description.lower()
        for alias, canonical in self.known_vendors:
            if _contains_keyword(lower, alias):
                return canonical, True

        tokens = self._significant_tokens(description)
        if not tokens:
            return None, False
        return " ".join(t.capitalize() for t in tokens[:3]), False

    def _significant_tokens(self, description: str) -> list[str]:
        cleaned = description.upper().strip()

        previous = None
        while previous != cleaned:
            previous = cleaned
            cleaned = _PREFIX_RE.sub("", cleaned)

        cleaned = _DOCUMENT_TOKEN_RE.sub(" ", cleaned)
        cleaned = _UPI_ID.sub(" ", cleaned)
        cleaned = _DATE_RE.sub(" ", cleaned)
        cleaned = _EMBEDDED_AMOUNT_RE.sub(" ", cleaned)

        tokens = [
            t
            for t in _TOKEN_SPLIT_RE.split(cleaned)
            if len(t) >= 3 and not any(c.isdigit() for c in t) and t not in NOISE_WORDS
        ]
        while tokens and tokens[-1] in COMPANY_SUFFIXES:
            tokens.pop()
        return tokens

    def keywords(self, description: str) -> tuple[str, ...]:
        """Keyword groups signalled by the description, in table order."""
        lower = description.lower()
        return tuple(
            group
            for group, words in self.keyword_groups
            if any(_contains_keyword(lower, w) for w in words)
        )

    def _embedded_amount(self, upper: str) -> Optional[Decimal]:
        raw = _first_group(_AMOUNT_PATTERNS, upper)
        if raw is None:
            return None
        try:
            amount = Decimal(raw.replace(",", ""))
        except InvalidOperation:
            return None
        return amount if amount > 0 else None

    def vendor_keywords(self, description: str) -> tuple[str, ...]:
        """Lower-case vendor tokens used to look a line up in counterparty fields."""
        lower = (description or "").lower()
        found: list[str] = []
        for pattern in _VENDOR_KEYWORD_PATTERNS:
            match = pattern.search(lower)
            if match:
                found.append(match.group(1))
        found.extend(w for w in re.split(r"[^a-z]+", lower) if len(w) > 4)
        found.extend(t.lower() for t in self._significant_tokens(description or ""))
        noise = {w.lower() for w in NOISE_WORDS} | GENERIC_VENDOR_WORDS

        unique: list[str] = []
        for word in found:
            if len(word) >= 3 and word not in noise and word not in unique:
                unique.append(word)
        return tuple(unique)


_default_extractor = EntityExtractor()


def extract(description: str) -> ExtractedEntities:
    """Extract entities using the default tables."""
    return _default_extractor.extract(description)


def extract_batch(descriptions: Iterable[str]) -> list[ExtractedEntities]:
    return [_default_extractor.extract(d) for d in descriptions]


def vendor_keywords(description: str) -> tuple[str, ...]:
    return _default_extractor.vendor_keywords(description)


def extraction_summary(results: Sequence[ExtractedEntities]) -> dict:
    """Aggregate counts over a batch of extraction results."""
    by_method = Counter(
        r.payment_method.value for r in results if r.payment_method != PaymentMethod.UNKNOWN
    )
    total = len(results)
    return {
        "total": total,
        "with_vendor": sum(1 for r in results if r.vendor),
        "with_invoice": sum(1 for r in results if r.invoice_number),
        "with_bill": sum(1 for r in results if r.bill_number),
        "with_payment_method": sum(by_method.values()),
        "average_confidence": (sum(r.confidence for r in results) / total) if total else 0.0,
        "by_payment_method": dict(by_method),
    }
