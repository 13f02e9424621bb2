from typing import Any, Dict, List, Optional

import httpx
from loguru import logger


DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 5.0


class ApiError(Exception):
    """A failed call to the POS API; ``status_code`` is None for transport errors."""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}" if status_code else message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return str(body)


class PosApiClient:
    """
    Thin wrapper over the REST API used by the till and the dashboard.

    Pass ``client`` to reuse an existing ``httpx.Client`` (for example
    FastAPI's ``TestClient``); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self._http = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    def close(self):
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, f"Request failed: {e}") from e

        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))

        return response.json()

    # ---------- products ----------
    def list_products(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/products")

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/products/{product_id}")

    def create_product(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/products", json=fields)

    def update_product(self, product_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/api/products/{product_id}", json=fields)

    def set_stock(self, product_id: int, stock: int) -> Dict[str, Any]:
        """Absolute overwrite; safe to retry with the same value."""
        return self._request("PUT", f"/api/products/{product_id}/stock", json={"stock": stock})

    def adjust_stock(self, product_id: int, delta: int) -> Dict[str, Any]:
        """Relative change applied by the server; not safe to retry blindly."""
        return self._request(
            "POST", f"/api/products/{product_id}/stock/adjust", json={"delta": delta}
        )

    def delete_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/products/{product_id}")

    # ---------- categories ----------
    def list_categories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/categories")

    def create_category(self, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        return self._request(
            "POST", "/api/categories", json={"name": name, "description": description}
        )

    def delete_category(self, category_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/categories/{category_id}")

    # ---------- sales ----------
    def create_sale(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/sales", json=payload)

    def list_sales(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/sales")

    def get_sale(self, sale_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/sales/{sale_id}")

    # ---------- maintenance ----------
    def reset_data(self, scope: str, confirm: bool = False) -> Dict[str, Any]:
        if not confirm:
            raise ValueError(f"Refusing to clear '{scope}' data without confirm=True")
        return self._request("POST", "/api/reset-data", json={"tabType": scope})
