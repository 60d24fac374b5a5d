"""Light parsing of free-form US street addresses."""

import re
from dataclasses import dataclass
from typing import Optional

_ZIP = re.compile(r'\b(\d{5})(?:-\d{4})?\b')
_COUNTRY = re.compile(r',?\s*\b(?:USA|U\.S\.A\.|US|United States(?: of America)?)\s*$', re.IGNORECASE)

US_STATE_CODES = frozenset((
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI",
    "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN",
    "MS", "MO", "MT", "NE", "NV", "NH", "NJ", "NM", "NY", "NC", "ND", "OH",
    "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA",
    "WV", "WI", "WY",
))


@dataclass(frozen=True)
class AddressComponents:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


def parse_address_components(address: str) -> AddressComponents:
    """
    Split an address like ``"123 Main St, Springfield, IL 62704"``.

    The ZIP code and a trailing country name are removed first. The state
    is the last token of the final comma-separated part, and only when it
    is a US state code, so street directionals such as the ``NE`` in
    ``"123 Peachtree St NE, Atlanta"`` are left on the street. What remains
    is split on commas into street and city.
    """
    remaining = _COUNTRY.sub("", address.strip())

    zip_code = None
    zip_matches = list(_ZIP.finditer(remaining))
    if zip_matches:
        match = zip_matches[-1]
        zip_code = match.group(1)
        remaining = remaining[:match.start()] + remaining[match.end():]

    parts = [p.strip() for p in remaining.split(",") if p.strip()]

    state = None
    if parts:
        tokens = parts[-1].split()
        candidate = tokens[-1].strip(".") if tokens else ""
        if candidate in US_STATE_CODES:
            state = candidate
            rest = " ".join(tokens[:-1])
            parts = parts[:-1] + ([rest] if rest else [])

    if len(parts) >= 2:
        street = ", ".join(parts[:-1])
        city = parts[-1]
    else:
        street = parts[0] if parts else None
        city = None

    return AddressComponents(street=street, city=city, state=state, zip_code=zip_code)
