"""Canonical Pydantic models shared across all storefront-client modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`QueryConfig`, :class:`SessionConfig` and
    :class:`Settings`.

**Resource models** -- the typed payloads returned by the resource clients in
:mod:`storefront_client.api`:
    :class:`User`, :class:`LoginResult`, :class:`RegisteredUser`,
    :class:`Product`, :class:`ProductInput`, :class:`ProductStats`,
    :class:`FavoriteItem`, :class:`AdminUser`, :class:`AuditLogEntry`,
    :class:`ApiHealth`, :class:`DatabaseHealth`, :class:`HealthStatus`,
    :class:`Order` with its inputs, and :class:`SystemMetrics`.

The API speaks camelCase; resource models declare camelCase aliases and
accept either spelling (``populate_by_name``).  Unknown keys are ignored so
that server additions never break the client.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BASE_URL = "http://localhost:4000/api/v1"


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call made by the shared transport."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class QueryConfig(BaseModel):
    """Default policy for the query cache.

    Per-query :class:`~storefront_client.query.cache.QueryOptions` override
    these values.
    """

    stale_time: float = Field(
        default=60.0, description="Seconds before cached data is considered stale"
    )
    retention: float = Field(
        default=300.0,
        description="Seconds an unobserved entry is kept before eviction",
    )
    read_retries: int = Field(default=1, description="Retry attempts for reads")
    write_retries: int = Field(default=0, description="Retry attempts for writes")
    retry_delay: float = Field(
        default=1.0, description="Base delay in seconds, doubled on each retry"
    )


class SessionConfig(BaseModel):
    """Where the bearer credential is persisted."""

    credential_key: str = Field(
        default="token", description="Name of the durable key holding the token"
    )


class Settings(BaseModel):
    """User-wide configuration persisted at ``~/.config/storefront-client/config.json``.

    Loaded and saved by :func:`~storefront_client.config.load_settings` and
    :func:`~storefront_client.config.save_settings`.  See
    :func:`~storefront_client.config.resolve_settings` for how the
    environment and CLI flags override the stored values.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base endpoint")
    request: RequestConfig = Field(default_factory=RequestConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)


# --- Resources ---


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Role(str, enum.Enum):
    """Account roles known to the API."""

    USER = "user"
    ADMIN = "admin"


class User(_ApiModel):
    """The account returned alongside a login token."""

    id: str
    role: Role = Role.USER
    email: Optional[str] = None


class LoginResult(_ApiModel):
    """Body of ``POST /auth/login``."""

    token: str
    user: User


class RegisteredUser(_ApiModel):
    """Body of ``POST /auth/register``."""

    id: str
    email: str


class Product(_ApiModel):
    """A catalogue product."""

    id: str
    name: str
    price: float
    category: str
    description: Optional[str] = None
    rating: float = 0
    stock: int = 0
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    images: list[str] = Field(default_factory=list)


class ProductInput(_ApiModel):
    """Payload for creating a product; every field is optional on update."""

    name: str
    price: float
    category: str
    description: Optional[str] = None
    rating: Optional[float] = None
    stock: Optional[int] = None
    images: Optional[list[str]] = None


class ProductStats(_ApiModel):
    """Aggregates from ``GET /products/admin/stats``."""

    count: int
    avg_price: float = Field(alias="avgPrice")


class FavoriteItem(_ApiModel):
    """A product saved to the current user's favourites."""

    product: Product
    created_at: int = Field(alias="createdAt")


class AdminUser(_ApiModel):
    """A user as seen by the admin user-management endpoints."""

    id: str
    email: str
    role: Role = Role.USER


class AuditLogEntry(_ApiModel):
    """One record of the admin audit log, newest first."""

    id: str
    action: str
    summary: str
    created_at: int = Field(alias="createdAt")
    actor_id: Optional[str] = Field(default=None, alias="actorId")
    actor_email: Optional[str] = Field(default=None, alias="actorEmail")
    target_id: Optional[str] = Field(default=None, alias="targetId")
    target_type: Optional[str] = Field(default=None, alias="targetType")
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApiHealth(_ApiModel):
    ok: bool
    timestamp: str
    uptime_sec: float = Field(alias="uptimeSec")


class DatabaseHealth(_ApiModel):
    ok: bool
    store: str
    latency_ms: Optional[float] = Field(default=None, alias="latencyMs")
    error: Optional[str] = None


class HealthStatus(_ApiModel):
    """Body of ``GET /health``: API liveness plus database reachability."""

    api: ApiHealth
    database: DatabaseHealth


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class OrderItem(_ApiModel):
    """One line of an order, priced when the order was placed."""

    product_id: str = Field(alias="productId")
    product_name: str = Field(alias="productName")
    quantity: int
    unit_price: float = Field(alias="unitPrice")
    total_price: float = Field(alias="totalPrice")
    product_image: Optional[str] = Field(default=None, alias="productImage")


class ShippingAddress(_ApiModel):
    full_name: str = Field(alias="fullName")
    street: str
    city: str
    state: str
    postal_code: str = Field(alias="postalCode")
    country: str
    phone: Optional[str] = None


class OrderTracking(_ApiModel):
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber")
    carrier: Optional[str] = None
    shipped_at: Optional[str] = Field(default=None, alias="shippedAt")
    estimated_delivery: Optional[str] = Field(default=None, alias="estimatedDelivery")


class Order(_ApiModel):
    """An order as returned by the ``/orders`` endpoints."""

    id: str
    user_id: str = Field(alias="userId")
    user_email: str = Field(alias="userEmail")
    items: list[OrderItem] = Field(default_factory=list)
    subtotal: float = 0
    tax_amount: float = Field(default=0, alias="taxAmount")
    shipping_cost: float = Field(default=0, alias="shippingCost")
    total_amount: float = Field(alias="totalAmount")
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    shipping_address: ShippingAddress = Field(alias="shippingAddress")
    tracking: Optional[OrderTracking] = None
    notes: Optional[str] = None
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class OrderLine(_ApiModel):
    product_id: str = Field(alias="productId")
    quantity: int = Field(gt=0)


class OrderInput(_ApiModel):
    """Payload of ``POST /orders``; prices are computed by the server."""

    items: list[OrderLine]
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    shipping_address: ShippingAddress = Field(alias="shippingAddress")
    notes: Optional[str] = None


class OrderUpdate(_ApiModel):
    """Payload of ``PUT /orders/{id}``; omitted fields are left unchanged."""

    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = Field(default=None, alias="paymentStatus")
    tracking: Optional[OrderTracking] = None
    notes: Optional[str] = None


class MetricSample(BaseModel):
    """One sample of the Prometheus exposition served at ``/metrics``."""

    model_config = ConfigDict(frozen=True)

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    value: float


class SystemMetrics(BaseModel):
    """Server metrics (request rates, cache hits, orders in progress)."""

    samples: list[MetricSample] = Field(default_factory=list)

    def names(self) -> list[str]:
        return sorted({s.name for s in self.samples})

    def total(self, name: str, **labels: str) -> float:
        """Sum the samples of *name* whose labels include *labels*."""
        return sum(
            s.value
            for s in self.samples
            if s.name == name and all(s.labels.get(k) == v for k, v in labels.items())
        )
