"""Walk-in booking: find the customer at the desk, or register them.

A phone search that finds a profile preselects it. A search that finds
nothing leaves the booking unconfirmed; the operator fills in the new
customer's details and must explicitly confirm before a profile is created.
"""

import logging

from beautydesk.errors import FieldValidationError, NavigationBlocked, PlatformRejection, SessionRequired
from beautydesk.phone import normalize_phone, validate_local_phone
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.customers import Customer, LookupResult, WalkInCustomer, WalkInState
from beautydesk.search import CustomerLookup
from beautydesk.storage import Storage

logger = logging.getLogger(__name__)

REGISTRATION_SOURCE = "staff_portal"


def split_name(name: str) -> tuple[str, str]:
    """First word is the first name; a single word doubles as the last name."""
    parts = name.strip().split()
    first = parts[0] if parts else ""
    last = " ".join(parts[1:]) or first
    return first, last


def walk_in_payload(details: WalkInCustomer, tenant_id: str) -> dict:
    first_name, last_name = split_name(details.name)
    payload = {
        "first_name": first_name,
        "last_name": last_name,
        "phone": normalize_phone(details.phone),
        "tenant_id": tenant_id,
        "registration_source": REGISTRATION_SOURCE,
    }
    if "@" in details.email:
        payload["email"] = details.email.strip()
    for name in ("date_of_birth", "gender", "notes"):
        value = getattr(details, name).strip()
        if value:
            payload[name] = value
    return payload


class WalkInBooking:

    def __init__(self, platform: PlatformClient, storage: Storage, lookup: CustomerLookup):
        self.platform = platform
        self.storage = storage
        self.lookup = lookup
        self._customer: Customer | None = None
        self._new_customer: WalkInCustomer | None = None

    @property
    def confirmed(self) -> bool:
        return self._customer is not None

    def state(self) -> WalkInState:
        return WalkInState(
            lookup=self.lookup.result,
            customer=self._customer,
            new_customer=self._new_customer,
            confirmed=self.confirmed,
        )

    def reset(self) -> None:
        self._customer = None
        self._new_customer = None

    async def search(self, phone: str) -> LookupResult:
        """Look up a customer by phone; a single hit is preselected."""
        self.reset()
        query = normalize_phone(phone) if phone.strip() else ""
        result = await self.lookup.lookup(query)
        if result.query != query:
            return result
        if result.status == "found":
            self._customer = result.customers[0]
            logger.debug(f"Walk-in matched customer {self._customer.key}")
        elif result.status == "not_found":
            self._new_customer = WalkInCustomer(name="", phone=query)
        return result

    def select(self, customer_id: str) -> Customer:
        for customer in self.lookup.result.customers:
            if customer.key == customer_id:
                self._customer = customer
                self._new_customer = None
                return customer
        raise FieldValidationError({"customer_id": "Customer is not in the search results"})

    def update_new_customer(self, details: WalkInCustomer) -> WalkInCustomer:
        if self._customer is not None:
            raise NavigationBlocked("An existing customer is already selected")
        self._new_customer = details
        return details

    async def _tenant_id(self) -> str:
        tenant = await self.storage.get_json("tenant")
        if not tenant:
            raise SessionRequired("Session expired. Please login again.")
        tenant_id = tenant.get("id") or tenant.get("_id")
        if not tenant_id:
            raise SessionRequired("Tenant information not found. Please login again.")
        return str(tenant_id)

    async def confirm_new_customer(self) -> Customer:
        """Create the pending profile. Only an explicit confirm gets here."""
        details = self._new_customer
        if details is None:
            raise NavigationBlocked("Search for the customer before creating a profile")

        errors = {}
        if not details.name.strip():
            errors["name"] = "Name is required"
        try:
            validate_local_phone(details.phone)
        except ValueError as e:
            errors["phone"] = str(e)
        if errors:
            raise FieldValidationError(errors)

        payload = walk_in_payload(details, await self._tenant_id())
        try:
            data = await self.platform.create_customer(payload)
        except PlatformRejection as e:
            if e.field_errors:
                raise FieldValidationError(e.field_errors, message=e.message) from e
            raise

        self._customer = Customer.model_validate(data or payload)
        self._new_customer = None
        logger.info(f"Registered walk-in customer {self._customer.key}")
        return self._customer
