"""Expense/revenue category vocabulary and keyword rules.

The tables are plain immutable data wrapped in :class:`CategoryTable`, so a
different vocabulary (another country, another chart of accounts) is a
configuration change: build one with :class:`CategoryTableBuilder` or load it
from JSON with :func:`load_category_table`.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from ledgerflow.domain.errors import ValidationError

DEFAULT_CATEGORY = "Other"

CATEGORY_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "Hiring": "Recruitment costs, hiring platform fees, job postings, agencies",
        "Salaries": "Employee salaries, wages, payroll, bonuses, incentives",
        "Benefits": "Health insurance, PF, ESIC, gratuity, employee benefits",
        "Training": "Employee training, courses, certifications, workshops",
        "Marketing": "General marketing, campaigns, content creation, PR, branding",
        "Sales": "Sales commissions, CRM, sales tools, business development",
        "Advertising": "Google/Facebook/LinkedIn ads, PPC, display ads",
        "Events": "Conferences, exhibitions, trade shows, sponsorships",
        "SaaS": "Software subscriptions, SaaS tools, productivity apps",
        "Cloud": "AWS, Azure, GCP, cloud hosting, servers, CDN",
        "IT Infrastructure": "Network equipment, datacenter, bandwidth",
        "Software": "One-time software purchases and licenses",
        "Hardware": "Computers, laptops, phones, printers, monitors",
        "Security": "Cybersecurity, antivirus, security audits, VPN",
        "Rent": "Office rent, lease, coworking space",
        "Utilities": "Electricity, water, internet, phone bills, telecom",
        "Office Supplies": "Stationery, pantry, consumables",
        "Equipment": "Office furniture and equipment purchases",
        "Maintenance": "Repairs, maintenance, AMC, facility management",
        "Legal": "Legal fees, lawyers, compliance, contracts, litigation",
        "Accounting": "CA fees, bookkeeping, audit, tax filing",
        "Consulting": "Business consulting, strategy, advisory services",
        "Professional Services": "Freelancers, contractors, agencies",
        "Travel": "Flights, hotels, cabs, business travel",
        "Meals": "Team meals, client meals, food delivery, catering",
        "Entertainment": "Client entertainment, team outings",
        "Taxes": "GST, TDS, income tax, government fees, duties",
        "Insurance": "Business, liability and asset insurance",
        "Bank Fees": "Bank charges, account and transfer fees",
        "Payment Processing": "Payment gateway and merchant fees",
        "Interest Charges": "Loan, credit card and overdraft interest",
        "R&D": "Research, prototypes, experiments",
        "Customer Support": "Helpdesk and ticketing tools, call centers",
        "Subscriptions": "Non-SaaS subscriptions and memberships",
        "Refunds": "Customer refunds, returns, chargebacks, reversals",
        "Depreciation": "Asset depreciation and amortization",
        "Bad Debts": "Write-offs and uncollectible receivables",
        "G&A": "General and administrative expenses",
        "Other": "Uncategorized",
    }
)

DEFAULT_KEYWORDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Hiring": ("hiring", "recruitment", "recruiter", "recruiting", "candidate", "interview", "hr",
                   "job board", "linkedin recruiter", "indeed", "naukri", "talent acquisition"),
        "Salaries": ("salary", "salaries", "payroll", "wage", "wages", "compensation", "bonus",
                     "incentive", "employee payout", "sal payout"),
        "Benefits": ("pf", "provident fund", "esic", "esi", "gratuity", "health insurance",
                     "medical insurance", "group insurance", "mediclaim", "wellness"),
        "Training": ("training", "course", "certification", "udemy", "coursera", "workshop",
                     "learning", "seminar", "webinar"),
        "Marketing": ("marketing", "campaign", "promotion", "promo", "content", "copywriting", "blog",
                      "brand", "branding", "pr", "public relations", "hubspot", "mailchimp", "sendgrid"),
        "Sales": ("sales commission", "sales tool", "crm", "salesforce", "pipedrive", "zoho crm",
                  "business development", "lead generation", "outreach"),
        "Advertising": ("google ads", "facebook ads", "instagram", "linkedin ads", "twitter ads", "ppc",
                        "cpc", "cpm", "adwords", "meta ads", "display ads", "bing ads", "youtube ads"),
        "Events": ("event", "conference", "exhibition", "booth", "trade show", "sponsorship", "meetup"),
        "SaaS": ("saas", "subscription", "slack", "notion", "airtable", "trello", "asana", "jira",
                 "confluence", "zoom", "calendly", "figma", "canva", "adobe", "github", "gitlab",
                 "bitbucket", "dropbox", "lastpass", "1password", "okta", "auth0", "typeform", "miro",
                 "loom"),
        "Cloud": ("aws", "amazon web services", "azure", "gcp", "google cloud", "digitalocean", "linode",
                  "vultr", "heroku", "netlify", "vercel", "cloudflare", "s3", "ec2", "rds", "firebase",
                  "supabase", "mongodb atlas"),
        "IT Infrastructure": ("infrastructure", "datacenter", "colocation", "bandwidth", "cdn", "fastly",
                              "router", "server hosting"),
        "Software": ("software license", "perpetual license", "microsoft office", "windows license",
                     "antivirus", "norton", "mcafee"),
        "Hardware": ("laptop", "computer", "macbook", "dell", "lenovo", "monitor", "keyboard", "mouse",
                     "webcam", "printer", "iphone"),
        "Security": ("security", "cybersecurity", "penetration test", "security audit", "vpn",
                     "crowdstrike", "sophos"),
        "Rent": ("rent", "lease", "office rent", "coworking", "workspace", "wework", "regus", "awfis"),
        "Utilities": ("utility", "utilities", "electric", "electricity", "water", "internet", "wifi",
                      "broadband", "phone bill", "mobile bill", "telecom", "airtel", "jio", "vodafone",
                      "bsnl"),
        "Office Supplies": ("stationery", "supplies", "pantry", "snacks", "coffee", "tea", "toner"),
        "Equipment": ("furniture", "desk", "chair", "office equipment", "whiteboard", "projector"),
        "Maintenance": ("maintenance", "repair", "amc", "housekeeping", "pest control"),
        "Legal": ("legal", "lawyer", "attorney", "law firm", "litigation", "trademark", "patent",
                  "copyright", "advocate"),
        "Accounting": ("accounting", "ca", "chartered accountant", "bookkeeping", "audit", "auditor",
                       "tax filing", "gst filing", "quickbooks", "xero", "zoho books", "tally"),
        "Consulting": ("consulting", "consultant", "advisory", "strategy"),
        "Professional Services": ("freelance", "freelancer", "contractor", "professional fee", "designer",
                                  "agency", "outsource", "upwork", "fiverr", "toptal"),
        "Travel": ("flight", "airline", "indigo", "spicejet", "air india", "vistara", "hotel", "oyo",
                   "airbnb", "cab", "uber", "ola", "taxi", "travel", "irctc", "makemytrip", "cleartrip"),
        "Meals": ("meal", "meals", "lunch", "dinner", "breakfast", "food", "restaurant", "swiggy",
                  "zomato", "catering"),
        "Entertainment": ("entertainment", "team outing", "party", "celebration", "offsite", "movie"),
        "Taxes": ("tax", "gst", "tds", "income tax", "professional tax", "challan", "stamp duty",
                  "mca fee"),
        "Insurance": ("insurance", "premium", "policy"),
        "Bank Fees": ("bank charge", "bank charges", "account fee", "bank fee", "rtgs charge",
                      "neft charge", "imps charge", "cheque book", "account maintenance"),
        "Payment Processing": ("razorpay", "stripe", "paypal", "payment gateway", "transaction fee",
                               "processing fee", "merchant fee", "pg charge"),
        "Interest Charges": ("interest", "loan interest", "emi", "finance charge"),
        "R&D": ("r&d", "research", "prototype", "experiment"),
        "Customer Support": ("customer support", "helpdesk", "freshdesk", "zendesk", "intercom",
                             "ticketing", "call center"),
        "Subscriptions": ("membership", "annual subscription", "magazine", "news subscription"),
        "Refunds": ("refund", "chargeback", "reversal", "credit note"),
        "Depreciation": ("depreciation", "amortization"),
        "Bad Debts": ("bad debt", "write off", "write-off", "uncollectible"),
        "G&A": ("general", "admin", "administrative", "miscellaneous", "misc", "office",
                "incorporation", "license", "permit"),
        "Other": (),
    }
)

# Most specific groups first, so "salary bonus" is Salaries and never Hiring
DEFAULT_PRIORITY: tuple[str, ...] = (
    "Salaries", "Hiring", "Benefits", "Training", "Advertising", "Cloud", "SaaS",
    "IT Infrastructure", "Security", "Hardware", "Software", "Payment Processing",
    "Bank Fees", "Taxes", "Insurance", "Interest Charges", "Legal", "Accounting",
    "Consulting", "Professional Services", "Rent", "Utilities", "Office Supplies",
    "Equipment", "Maintenance", "Travel", "Meals", "Entertainment", "Events",
    "Marketing", "Sales", "R&D", "Customer Support", "Subscriptions", "Refunds",
    "Depreciation", "Bad Debts", "G&A", "Other",
)


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword.lower()) + r"(?![a-z0-9])")


@dataclass(frozen=True)
class CategoryTable:
    """Immutable keyword rules evaluated in a fixed priority order."""

    keywords: Mapping[str, tuple[str, ...]]
    priority: tuple[str, ...]
    default_category: str = DEFAULT_CATEGORY
    descriptions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        unknown = [c for c in self.priority if c not in self.keywords]
        if unknown:
            raise ValidationError(f"Priority lists unknown categories: {', '.join(unknown)}")
        compiled = tuple(
            (category, tuple(_keyword_pattern(k) for k in self.keywords[category]))
            for category in self.priority
        )
        object.__setattr__(self, "_compiled", compiled)

    @property
    def categories(self) -> tuple[str, ...]:
        names = list(self.priority)
        for name in self.keywords:
            if name not in names:
                names.append(name)
        if self.default_category not in names:
            names.append(self.default_category)
        return tuple(names)

    def is_known(self, category: Optional[str]) -> bool:
        return category is not None and category in self.categories

    def resolve(self, name: Optional[str]) -> Optional[str]:
        """Map a free-form category name onto a table category, if any."""
        if not name:
            return None
        wanted = name.strip().lower()
        for category in self.categories:
            if category.lower() == wanted or category.lower().replace(" ", "_") == wanted:
                return category
        return None

    def match(self, description: Optional[str]) -> Optional[tuple[str, str]]:
        """Return ``(category, keyword)`` for the first rule that fires."""
        text = (description or "").lower()
        if not text:
            return None
        for category, patterns in self._compiled:
            for keyword, pattern in zip(self.keywords[category], patterns):
                if pattern.search(text):
                    return category, keyword
        return None

    def categorize(self, description: Optional[str]) -> str:
        hit = self.match(description)
        return hit[0] if hit else self.default_category


class CategoryTableBuilder:
    """Assemble a :class:`CategoryTable` step by step.

    Starts from the default tables unless ``empty=True``.
    """

    def __init__(self, empty: bool = False):
        self._keywords: dict[str, list[str]] = (
            {} if empty else {c: list(k) for c, k in DEFAULT_KEYWORDS.items()}
        )
        self._priority: list[str] = [] if empty else list(DEFAULT_PRIORITY)
        self._descriptions: dict[str, str] = {} if empty else dict(CATEGORY_DESCRIPTIONS)
        self._default = DEFAULT_CATEGORY

    def category(
        self,
        name: str,
        keywords: Sequence[str] = (),
        description: Optional[str] = None,
        before: Optional[str] = None,
    ) -> "CategoryTableBuilder":
        """Add a category or extend an existing one.

        Args:
            name: Category name
            keywords: Keywords that signal the category
            description: Optional description (used in AI prompts)
            before: Insert ahead of this category in the priority order
                (appended at the end when omitted)
        """
        existing = self._keywords.setdefault(name, [])
        existing.extend(k.lower() for k in keywords if k.lower() not in existing)
        if description:
            self._descriptions[name] = description
        if name in self._priority and before is not None:
            self._priority.remove(name)
        if name not in self._priority:
            if before is not None and before in self._priority:
                self._priority.insert(self._priority.index(before), name)
            else:
                self._priority.append(name)
        return self

    def default(self, name: str) -> "CategoryTableBuilder":
        self._default = name
        self._keywords.setdefault(name, [])
        if name not in self._priority:
            self._priority.append(name)
        return self

    def build(self) -> CategoryTable:
        return CategoryTable(
            keywords=MappingProxyType({c: tuple(k) for c, k in self._keywords.items()}),
            priority=tuple(self._priority),
            default_category=self._default,
            descriptions=MappingProxyType(dict(self._descriptions)),
        )


def default_category_table() -> CategoryTable:
    return CategoryTable(
        keywords=DEFAULT_KEYWORDS,
        priority=DEFAULT_PRIORITY,
        default_category=DEFAULT_CATEGORY,
        descriptions=CATEGORY_DESCRIPTIONS,
    )


def load_category_table(path: str | Path) -> CategoryTable:
    """Load a category table from a JSON file.

    The file holds ``{"categories": {name: [keywords...]}, "priority": [...],
    "default": name, "descriptions": {name: text}}``. Only ``categories`` is
    required; priority defaults to file order.

    Raises:
        ValidationError: If the file is missing or malformed
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ValidationError(f"Category table not found: {file_path}")
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Category table {file_path} is not valid JSON: {e}") from e

    categories = data.get("categories")
    if not isinstance(categories, dict) or not categories:
        raise ValidationError(f"Category table {file_path} has no 'categories' mapping")

    builder = CategoryTableBuilder(empty=True)
    descriptions = data.get("descriptions", {})
    for name in data.get("priority") or list(categories):
        builder.category(name, categories.get(name, ()), descriptions.get(name))
    for name, words in categories.items():
        builder.category(name, words, descriptions.get(name))
    if data.get("default"):
        builder.default(data["default"])
    else:
        builder.default(DEFAULT_CATEGORY)
    return builder.build()
