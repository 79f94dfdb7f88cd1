from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CompanyListing:
    name: str
    slug: str
    pay_rate: str
    bonus: str


COMPANIES: dict[str, CompanyListing] = {
    "silicon-valley-consulting": CompanyListing(
        name="Silicon Valley Consulting",
        slug="silicon-valley-consulting",
        pay_rate="$2.00 per hour",
        bonus="$500",
    ),
}
DEFAULT_COMPANY_SLUG = "silicon-valley-consulting"


def match_company() -> CompanyListing:
    """Return the listing offered to a verified applicant.

    There is a single open listing, so the answer does not depend on the form.
    """
    return COMPANIES[DEFAULT_COMPANY_SLUG]
