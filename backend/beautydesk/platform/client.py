"""HTTP client for the booking platform REST API.

One `PlatformClient` per console session: it carries the session's bearer
token and a pooled `httpx.AsyncClient` whose timeout comes from
`settings.request_timeout_seconds`.

Failures are normalised before they reach callers:
  - 4xx            -> PlatformRejection (message + per-field errors)
  - 5xx / timeout  -> PlatformUnavailable
  - transport errs -> PlatformUnavailable
"""

import logging
from typing import Any

import httpx

from beautydesk.config import settings
from beautydesk.errors import PlatformRejection, PlatformUnavailable
from beautydesk.schemas.common import PlanLimit

logger = logging.getLogger(__name__)

# Collections counted by the onboarding gate, in step order.
ONBOARDING_COLLECTIONS = ("outlets", "users", "services", "staff")


def extract_field_errors(body: Any) -> dict[str, str]:
    """Map ``{"error": [{"loc": [...], "msg": ...}]}`` onto ``{field: msg}``.

    FastAPI-style locations look like ``["body", "email"]``; the second
    element is the field name. Shorter locations fall back to the last
    element. ``detail`` is accepted in place of ``error``.
    """
    if not isinstance(body, dict):
        return {}
    entries = body.get("error")
    if not isinstance(entries, list):
        entries = body.get("detail")
    if not isinstance(entries, list):
        return {}

    errors: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        loc = entry.get("loc") or []
        if len(loc) > 1:
            field = str(loc[1])
        elif loc:
            field = str(loc[-1])
        else:
            continue
        errors.setdefault(field, str(entry.get("msg", "Invalid value")))
    return errors


def extract_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
        field_errors = extract_field_errors(body)
        if field_errors:
            return ", ".join(f"{k}: {v}" for k, v in field_errors.items())
    return fallback


def item_id(data: Any) -> str | None:
    """Platform records use ``_id`` or ``id`` depending on the collection."""
    if not isinstance(data, dict):
        return None
    value = data.get("_id") or data.get("id")
    return str(value) if value is not None else None


class PlatformClient:
    """Authenticated client for one console session."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.platform_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {token}"} if token else None,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=transport,
        )

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    # ── Transport ───────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.warning(f"Platform timeout on {method} {path}: {e}")
            raise PlatformUnavailable("The platform did not respond in time. Please try again.") from e
        except httpx.HTTPError as e:
            logger.warning(f"Platform unreachable on {method} {path}: {e}")
            raise PlatformUnavailable() from e

        if response.status_code >= 500:
            logger.warning(f"Platform error {response.status_code} on {method} {path}")
            raise PlatformUnavailable()

        body = self._decode(response)
        if response.status_code >= 400:
            message = extract_message(body, f"Request failed ({response.status_code})")
            logger.warning(f"Platform rejected {method} {path}: {response.status_code} {message}")
            raise PlatformRejection(
                status_code=response.status_code,
                message=message,
                field_errors=extract_field_errors(body),
            )
        return body

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    async def get(self, path: str, **params) -> Any:
        return await self.request("GET", path, params=params or None)

    async def post(self, path: str, json: Any = None, params: dict | None = None) -> Any:
        return await self.request("POST", path, json=json, params=params)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str, **params) -> Any:
        return await self.request("DELETE", path, params=params or None)

    # ── Onboarding collections ──────────────────────────────

    async def count(self, collection: str) -> int:
        """Return how many records exist in a collection (first page, size 1)."""
        data = await self.get(f"/api/{collection}", page=1, size=1)
        if isinstance(data, dict):
            if data.get("total") is not None:
                return int(data["total"])
            return len(data.get("items") or [])
        if isinstance(data, list):
            return len(data)
        return 0

    async def create_outlet(self, payload: dict) -> dict:
        return await self.post("/api/outlets", payload)

    async def create_user(self, payload: dict) -> dict:
        return await self.post("/api/users", payload)

    async def create_staff(self, payload: dict) -> dict:
        return await self.post("/api/staff", payload)

    async def create_availability(self, payload: dict) -> dict:
        return await self.post("/api/availability", payload)

    async def staff_position_templates(self) -> list[str]:
        data = await self.get("/api/staff/positions/templates")
        return _template_names(data, "positions")

    async def service_category_templates(self) -> list[str]:
        """Category names; the platform answers with a list or ``{"categories": [...]}``."""
        data = await self.get("/api/services/categories/templates")
        return _template_names(data, "categories")

    async def get_onboarding_status(self) -> dict:
        return await self.get("/api/settings/operational-onboarding") or {}

    async def set_onboarding_status(self, completed: bool, completed_at: str | None = None) -> dict:
        return await self.post(
            "/api/settings/operational-onboarding",
            {"operationalOnboardingCompleted": completed, "completedAt": completed_at},
        )

    async def update_tenant(self, tenant_id: str, payload: dict) -> dict:
        return await self.put(f"/api/tenants/{tenant_id}", payload)

    # ── Subscription ────────────────────────────────────────

    async def plan_limit(self, resource: str) -> PlanLimit:
        """Usage against the plan ceiling for `resource`.

        Outlets and services report ``usage_summary.<resource> {used, limit}``;
        users and staff report usage at the top level and their ceiling as
        ``plan.limits.max_<resource>`` on the subscription.
        """
        subscription = await self.get("/api/subscription") or {}
        usage = await self.get("/api/subscription/usage") or {}

        summary = (usage.get("usage_summary") or {}).get(resource) or {}
        top_level = usage.get(resource) or {}
        plan_limits = (subscription.get("plan") or {}).get("limits") or {}

        current = summary.get("used") or top_level.get("used") or 0
        maximum = summary.get("limit") or plan_limits.get(f"max_{resource}") or 999
        return PlanLimit(current=int(current), max=int(maximum))

    # ── Customers ───────────────────────────────────────────

    async def list_customers(self, **params) -> dict:
        return await self.get("/api/customers", **_drop_empty(params)) or {}

    async def create_customer(self, payload: dict) -> dict:
        return await self.post("/api/customers", payload)

    async def update_customer(self, customer_id: str, payload: dict) -> dict:
        return await self.put(f"/api/customers/{customer_id}", payload)

    async def delete_customer(self, customer_id: str, permanent: bool = False) -> Any:
        return await self.delete(f"/api/customers/{customer_id}", permanent=str(permanent).lower())

    async def restore_customer(self, customer_id: str) -> Any:
        return await self.post(f"/api/customers/{customer_id}/restore")

    async def customer_statistics_summary(self) -> dict:
        return await self.get("/api/customers/statistics/summary") or {}

    # ── Services (products) ─────────────────────────────────

    async def list_services(self, **params) -> dict:
        return await self.get("/api/services", **_drop_empty(params)) or {}

    async def create_service(self, payload: dict) -> dict:
        return await self.post("/api/services", payload)

    async def update_service(self, service_id: str, payload: dict) -> dict:
        return await self.put(f"/api/services/{service_id}", payload)

    async def delete_service(self, service_id: str, permanent: bool = False) -> Any:
        return await self.delete(f"/api/services/{service_id}", permanent=str(permanent).lower())

    async def restore_service(self, service_id: str) -> Any:
        return await self.post(f"/api/services/{service_id}/restore")

    # ── Availability ────────────────────────────────────────

    async def availability_grid(self, **params) -> dict:
        return await self.get("/api/availability/grid", **_drop_empty(params)) or {}

    async def availability_check(self, **params) -> dict:
        return await self.get("/api/availability/check", **_drop_empty(params)) or {}

    # ── Registration ────────────────────────────────────────

    async def register(self, payload: dict) -> dict:
        return await self.post("/api/auth/register", payload)


def _drop_empty(params: dict) -> dict:
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _as_list(data: Any, key: str) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for k in (key, "templates", "items", "data"):
            if isinstance(data.get(k), list):
                return data[k]
    return []


def _template_names(data: Any, key: str) -> list[str]:
    names = []
    for entry in _as_list(data, key):
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
    return names
