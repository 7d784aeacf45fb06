# Overview: HTTP client for the StockPILE API with an explicit connectivity status.

"""
API client

Wraps every endpoint with httpx. Connectivity is an explicit value handed
to the client (ConnectionStatus) instead of a process-wide flag: the same
status object can be shared by a ConnectionMonitor that pings the API in
the background and by any number of clients.

While the status is offline, write calls raise OfflineError without
touching the network. Reads are always attempted.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx


logger = logging.getLogger(__name__)

PING_INTERVAL_SECONDS = 3.0
PING_TIMEOUT_SECONDS = 4.0
PING_PATH = "/inventory"


class ApiError(Exception):
    """
    Non-2xx response.

    The message prefers the body's "message", then "error", then the first
    100 characters of the raw body.
    """

    def __init__(self, status_code: int, message: str, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API Error: {status_code} {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        reason = response.reason_phrase or ""
        text = response.text or ""
        message = f"{reason} - {text[:100]}"
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            if data.get("message"):
                message = str(data["message"])
            elif data.get("error"):
                message = str(data["error"])
        return cls(response.status_code, message, text)


class OfflineError(Exception):
    """Raised when a write is attempted while the API is unreachable."""
    pass


class ConnectionStatus:
    """Online/offline value shared between a monitor and its clients."""

    def __init__(self, online: bool = True):
        self._online = online
        self._lock = threading.Lock()
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def online(self) -> bool:
        with self._lock:
            return self._online

    @property
    def offline(self) -> bool:
        return not self.online

    def set_online(self, online: bool) -> None:
        with self._lock:
            changed = self._online != online
            self._online = online
            listeners = list(self._listeners)
        if changed:
            logger.info("Connection status changed: %s", "online" if online else "offline")
            for listener in listeners:
                listener(online)

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Call listener(online) on every change. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


def _encode_id(record_id: str) -> str:
    return quote(str(record_id), safe="")


class StockpileClient:
    """
    HTTP client wrapper with authentication and one method per endpoint.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        public_key: Optional[str] = None,
        status: Optional[ConnectionStatus] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.public_key = public_key
        self.status = status or ConnectionStatus()
        self.current_user: Optional[Dict] = None
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "StockpileClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self, extra: Optional[Dict] = None) -> Dict:
        """Build request headers with the session token, or the public key when signed out."""
        headers = {"Content-Type": "application/json"}
        bearer = self.token or self.public_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body; raises ApiError on non-2xx."""
        if method.upper() != "GET" and self.status.offline:
            raise OfflineError(f"Cannot {method.upper()} {path} while offline")

        kwargs: Dict[str, Any] = {"headers": self._headers(headers), "params": params}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = self.client.request(method.upper(), path, **kwargs)
        if not response.is_success:
            raise ApiError.from_response(response)
        if not response.content:
            return None
        return response.json()

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: Optional[Dict] = None) -> Any:
        return self.request("POST", path, json=json, params=params)

    def put(self, path: str, json: Any = None, version: Optional[int] = None) -> Any:
        headers = {"If-Match": str(version)} if version is not None else None
        return self.request("PUT", path, json=json, headers=headers)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def ping(self, timeout: float = PING_TIMEOUT_SECONDS) -> bool:
        """
        Reachability check.

        Signed out clients are never considered offline.
        """
        if not self.token:
            return True
        try:
            response = self.client.get(PING_PATH, headers=self._headers(), timeout=timeout)
        except httpx.HTTPError:
            return False
        return response.is_success

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def login(self, email: str, password: str) -> Dict:
        """Authenticate and store token."""
        data = self.post("/auth/login", json={"email": email, "password": password})
        self.token = data.get("token")
        self.current_user = data.get("user")
        return data

    def logout(self) -> None:
        if not self.token:
            return
        try:
            self.post("/auth/logout")
        finally:
            self.token = None
            self.current_user = None

    def me(self) -> Dict:
        return self.get("/auth/me")

    def change_password(self, current_password: str, new_password: str) -> Dict:
        return self.post("/auth/password", json={"currentPassword": current_password, "newPassword": new_password})

    # -------------------------------------------------------------------------
    # System and aggregates
    # -------------------------------------------------------------------------

    def health(self) -> Dict:
        return self.get("/health")

    def seed(self, force: bool = False) -> Dict:
        return self.post("/seed", params={"force": "true"} if force else None)

    def get_inventory(self) -> Dict:
        return self.get("/inventory")

    def get_partners(self) -> Dict:
        return self.get("/partners")

    def get_sales(self) -> list:
        return self.get("/sales")

    def get_procurement(self) -> list:
        return self.get("/procurement")

    def get_finance(self) -> list:
        return self.get("/finance")

    def get_finance_summary(self) -> Dict:
        return self.get("/finance/summary")

    def get_dashboard(self) -> Dict:
        return self.get("/dashboard")

    def get_activity(self, **filters) -> Dict:
        params = {k: v for k, v in filters.items() if v not in (None, "")}
        return self.get("/activity", params=params)

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def create_product(self, data: Dict) -> Dict:
        return self.post("/inventory/product", json=data)

    def update_product(self, product_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/inventory/product/{_encode_id(product_id)}", json=data, version=version)

    def delete_product(self, product_id: str) -> Dict:
        return self.delete(f"/inventory/product/{_encode_id(product_id)}")

    def create_batch(self, data: Dict) -> Dict:
        return self.post("/inventory/batch", json=data)

    def update_batch(self, batch_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/inventory/batch/{_encode_id(batch_id)}", json=data, version=version)

    def delete_batch(self, batch_id: str) -> Dict:
        return self.delete(f"/inventory/batch/{_encode_id(batch_id)}")

    def create_category(self, data: Dict) -> Dict:
        return self.post("/inventory/category", json=data)

    def update_category(self, category_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/inventory/category/{_encode_id(category_id)}", json=data, version=version)

    def delete_category(self, category_id: str) -> Dict:
        return self.delete(f"/inventory/category/{_encode_id(category_id)}")

    # -------------------------------------------------------------------------
    # Partners
    # -------------------------------------------------------------------------

    def create_provider(self, data: Dict) -> Dict:
        return self.post("/partners/provider", json=data)

    def update_provider(self, provider_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/partners/provider/{_encode_id(provider_id)}", json=data, version=version)

    def delete_provider(self, provider_id: str) -> Dict:
        return self.delete(f"/partners/provider/{_encode_id(provider_id)}")

    def create_customer(self, data: Dict) -> Dict:
        return self.post("/partners/customer", json=data)

    def update_customer(self, customer_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/partners/customer/{_encode_id(customer_id)}", json=data, version=version)

    def delete_customer(self, customer_id: str) -> Dict:
        return self.delete(f"/partners/customer/{_encode_id(customer_id)}")

    # -------------------------------------------------------------------------
    # Sales, procurement, finance
    # -------------------------------------------------------------------------

    def create_sale(self, data: Dict) -> Dict:
        return self.post("/sales", json=data)

    def update_sale(self, sale_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/sales/{_encode_id(sale_id)}", json=data, version=version)

    def delete_sale(self, sale_id: str) -> Dict:
        return self.delete(f"/sales/{_encode_id(sale_id)}")

    def sale_invoice(self, sale_id: str) -> Dict:
        return self.get(f"/sales/{_encode_id(sale_id)}/invoice")

    def create_purchase_order(self, data: Dict) -> Dict:
        return self.post("/procurement", json=data)

    def update_purchase_order(self, order_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/procurement/{_encode_id(order_id)}", json=data, version=version)

    def delete_purchase_order(self, order_id: str) -> Dict:
        return self.delete(f"/procurement/{_encode_id(order_id)}")

    def purchase_order_invoice(self, order_id: str) -> Dict:
        return self.get(f"/procurement/{_encode_id(order_id)}/invoice")

    def create_payment(self, data: Dict) -> Dict:
        return self.post("/finance", json=data)

    def update_payment(self, payment_id: str, data: Dict, version: Optional[int] = None) -> Dict:
        return self.put(f"/finance/{_encode_id(payment_id)}", json=data, version=version)

    def delete_payment(self, payment_id: str) -> Dict:
        return self.delete(f"/finance/{_encode_id(payment_id)}")

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    def list_users(self) -> list:
        return self.get("/admin")

    def get_user(self, user_id: str) -> Dict:
        return self.get(f"/admin/user/{_encode_id(user_id)}")

    def create_user(self, data: Dict) -> Dict:
        return self.post("/admin/user", json=data)

    def update_user(self, user_id: str, data: Dict) -> Dict:
        return self.put(f"/admin/user/{_encode_id(user_id)}", json=data)

    def delete_user(self, user_id: str) -> Dict:
        return self.delete(f"/admin/user/{_encode_id(user_id)}")


class ConnectionMonitor:
    """
    Background reachability loop.

    Every interval seconds, pings the API through client and stores the
    result in client.status.
    """

    def __init__(self, client: StockpileClient, *, interval: float = PING_INTERVAL_SECONDS):
        self.client = client
        self.status = client.status
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def check_once(self) -> bool:
        reachable = self.client.ping()
        self.status.set_online(reachable)
        return reachable

    def _run(self) -> None:
        while not self._stop.is_set():
            self.check_once()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="stockpile-connection-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
