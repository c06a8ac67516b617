"""
Validation Rules - Per-jurisdiction identifier formats.

Holds compiled patterns for company registration (per organization type),
tax number, VAT number, phone number and postal code.
"""
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Pattern, Tuple

from .types import OrganizationType


def _fullmatch(pattern: Optional[Pattern], value: Optional[str]) -> bool:
    if pattern is None or not value:
        return False
    return pattern.fullmatch(value.strip()) is not None


@dataclass(frozen=True)
class ValidationRules:
    """Immutable set of format rules for one jurisdiction"""
    tax_number: Pattern
    phone_number: Pattern
    postal_code: Pattern
    vat_number: Optional[Pattern] = None
    company_registration: Mapping[OrganizationType, Pattern] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def compile(
        cls,
        tax_number: str,
        phone_number: str,
        postal_code: str,
        vat_number: Optional[str] = None,
        company_registration: Optional[Dict[OrganizationType, str]] = None,
    ) -> "ValidationRules":
        return cls(
            tax_number=re.compile(tax_number),
            phone_number=re.compile(phone_number),
            postal_code=re.compile(postal_code),
            vat_number=re.compile(vat_number) if vat_number else None,
            company_registration=MappingProxyType({
                org_type: re.compile(p)
                for org_type, p in (company_registration or {}).items()
            }),
        )

    def validate_tax_number(self, value: Optional[str]) -> bool:
        return _fullmatch(self.tax_number, value)

    def validate_vat_number(self, value: Optional[str]) -> bool:
        return _fullmatch(self.vat_number, value)

    def validate_company_registration(
        self, value: Optional[str], org_type: Optional[OrganizationType]
    ) -> bool:
        if org_type is None:
            return False
        return _fullmatch(self.company_registration.get(org_type), value)

    def validate_phone_number(self, value: Optional[str]) -> bool:
        return _fullmatch(self.phone_number, value)

    def validate_postal_code(self, value: Optional[str]) -> bool:
        return _fullmatch(self.postal_code, value)

    def validate_business_address(self, address: Dict[str, Optional[str]]) -> Tuple[bool, List[str]]:
        """
        Validate business address completeness and postal code format.

        Returns:
            Tuple of (is_valid, errors)
        """
        errors: List[str] = []
        if not (address.get("street") or "").strip():
            errors.append("Street address is required")
        if not (address.get("city") or "").strip():
            errors.append("City is required")
        if not (address.get("state") or "").strip():
            errors.append("State/Province is required")
        if not (address.get("country") or "").strip():
            errors.append("Country is required")

        postal_code = address.get("postal_code")
        if postal_code and not self.validate_postal_code(postal_code):
            errors.append("Invalid postal code format")

        return len(errors) == 0, errors
