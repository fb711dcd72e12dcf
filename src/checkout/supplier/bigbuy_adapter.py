"""BigBuy dropshipping supplier adapter.

Talks to the BigBuy REST API over httpx with a bearer token. Sandbox and
production differ only by base URL. Transport failures, timeouts and non-2xx
responses are raised as SupplierError; a 2xx body carrying an ``errors``
list is returned as a SupplierResponse with those errors.
"""

import httpx
import structlog

from checkout.supplier.carriers import Carrier
from checkout.supplier.port import FulfillmentSupplier, SupplierError, SupplierResponse

logger = structlog.get_logger(__name__)

SANDBOX_BASE_URL = "https://api.sandbox.bigbuy.eu"
PRODUCTION_BASE_URL = "https://api.bigbuy.eu"

CHECK_ORDER_PATH = "/rest/order/check/multishipping.json"
CARRIERS_PATH = "/rest/shipping/carriers.json"
CREATE_ORDER_PATH = "/rest/order/create/multishipping.json"

def _error_messages(body) -> list[str]:
    if not isinstance(body, dict):
        return []
    errors = body.get("errors") or []
    if isinstance(errors, dict):
        errors = [f"{key}: {value}" for key, value in errors.items()]
    messages = []
    for error in errors:
        if isinstance(error, dict):
            messages.append(str(error.get("message") or error))
        else:
            messages.append(str(error))
    return messages

def _sku_of(product) -> str | None:
    if isinstance(product, dict):
        return product.get("reference") or product.get("sku")
    return str(product) if product else None

def parse_carrier(raw: dict) -> Carrier:
    excluded = raw.get("excludedProducts") or raw.get("excludedSkus") or []
    countries = raw.get("countries") or raw.get("isoCountries") or []
    return Carrier(
        name=str(raw.get("name") or ""),
        excluded_skus=frozenset(sku for sku in (_sku_of(p) for p in excluded) if sku),
        countries=frozenset(str(country).upper() for country in countries),
    )

class BigBuySupplier(FulfillmentSupplier):
    """Production supplier adapter for the BigBuy API."""

    def __init__(
        self,
        api_key: str,
        use_sandbox: bool = True,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = SANDBOX_BASE_URL if use_sandbox else PRODUCTION_BASE_URL
        self.client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise SupplierError(f"BigBuy {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise SupplierError(f"BigBuy {path} unreachable: {exc}") from exc

        if response.is_error:
            try:
                messages = _error_messages(response.json())
            except ValueError:
                messages = []
            detail = "; ".join(messages) or response.text[:200]
            logger.warning("bigbuy_error_response", path=path, status_code=response.status_code, detail=detail)
            raise SupplierError(f"BigBuy {path} returned {response.status_code}: {detail}")
        return response

    def _post_order(self, path: str, payload: dict) -> SupplierResponse:
        response = self._request("POST", path, json=payload)
        if not response.content:
            return SupplierResponse()
        try:
            body = response.json()
        except ValueError as exc:
            raise SupplierError(f"BigBuy {path} returned a non-JSON body") from exc
        return SupplierResponse(
            data=body if isinstance(body, dict) else {"result": body},
            errors=_error_messages(body),
        )

    def check_order(self, payload: dict) -> SupplierResponse:
        return self._post_order(CHECK_ORDER_PATH, payload)

    def list_carriers(self, country: str, postal_code: str) -> list[Carrier]:
        response = self._request(
            "GET",
            CARRIERS_PATH,
            params={"isoCountry": country, "postalCode": postal_code},
        )
        try:
            body = response.json()
        except ValueError as exc:
            raise SupplierError("BigBuy carrier lookup returned a non-JSON body") from exc
        if isinstance(body, dict):
            body = body.get("carriers") or []
        return [parse_carrier(raw) for raw in body if isinstance(raw, dict)]

    def create_order(self, payload: dict) -> SupplierResponse:
        return self._post_order(CREATE_ORDER_PATH, payload)
