"""Resource catalog and CRUD proxies.

Every API collection is reached through the same :class:`ResourceProxy`, looked up
by name (or alias) in a :class:`ResourceRegistry`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from booqable.client import Client

# Plain names, or {name: alias} mappings.
RESOURCE_CATALOG: tuple[str | dict[str, str], ...] = (
    "app_carriers",
    "app_payment_options",
    "app_redirects",
    "app_subscriptions",
    "app_webhooks",
    "barcodes",
    "bundle_items",
    "bundles",
    "carriers",
    "clusters",
    "companies",
    "countries",
    "coupons",
    "customers",
    "default_properties",
    "deliveries",
    "document_templates",
    "documents",
    "email_templates",
    "emails",
    "employees",
    "inventory_breakdowns",
    "inventory_levels",
    "invoice_finalizations",
    "invoice_revisions",
    "items",
    "line_items",
    "locations",
    "notes",
    "order_fulfillments",
    {"order_status_transitions": "transitions"},
    "orders",
    "payment_authorizations",
    "payment_charges",
    "payment_methods",
    "payment_options",
    "payment_refunds",
    "payments",
    "photos",
    "plannings",
    "price_rulesets",
    "price_structures",
    "price_tiles",
    "product_groups",
    "products",
    "properties",
    "sequences",
    "settings",
    "stock_item_plannings",
    "stock_items",
    "tax_categories",
    "tax_rates",
    "tax_values",
    "transfers",
    "users",
)


def resource_names(catalog: tuple[str | dict[str, str], ...] = RESOURCE_CATALOG) -> list[str]:
    """Canonical resource names in catalog order."""
    names: list[str] = []
    for entry in catalog:
        if isinstance(entry, dict):
            names.extend(entry)
        else:
            names.append(entry)
    return names


def resource_aliases(
    catalog: tuple[str | dict[str, str], ...] = RESOURCE_CATALOG,
) -> dict[str, str]:
    """Mapping of alias to canonical resource name."""
    aliases: dict[str, str] = {}
    for entry in catalog:
        if isinstance(entry, dict):
            aliases.update({alias: name for name, alias in entry.items()})
    return aliases


class ResourceProxy:
    """CRUD operations for one API collection.

    Args:
        client: Client used to send requests
        name: Resource collection name (e.g. "orders")

    Example:
        >>> orders = ResourceProxy(client, "orders")
        >>> orders.list(include="customer", filter={"status": "reserved"})
        >>> orders.find("123", include="customer,lines")
        >>> orders.create({"starts_at": "2024-01-01T00:00:00Z", "status": "draft"})
        >>> orders.update("123", {"status": "reserved"})
    """

    def __init__(self, client: Client, name: str) -> None:
        self.client = client
        self.name = str(name)

    def __repr__(self) -> str:
        return f"ResourceProxy({self.name!r})"

    def list(self, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        """List resources, following pages when auto-pagination is enabled.

        Args:
            params: Query parameters (include, filter, sort, page, ...)
            **kwargs: Query parameters given as keywords

        Returns:
            Resources in the collection
        """
        return self.client.paginate(self.name, {**(params or {}), **kwargs})

    def find(self, id: str | int, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        """Fetch one resource by id.

        Raises:
            NotFound: If the resource does not exist
        """
        body = self.client.get(f"{self.name}/{id}", {**(params or {}), **kwargs})
        return body.get("data") if isinstance(body, Mapping) else body

    def create(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        """Create a resource.

        Raises:
            UnprocessableEntity: If validation fails
        """
        payload = {"data": {"type": self.name, "attributes": {**(attrs or {}), **kwargs}}}
        body = self.client.post(self.name, payload)
        return body.get("data") if isinstance(body, Mapping) else body

    def update(self, id: str | int, attrs: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        """Update a resource.

        Raises:
            NotFound: If the resource does not exist
            UnprocessableEntity: If validation fails
        """
        payload = {
            "data": {"type": self.name, "id": id, "attributes": {**(attrs or {}), **kwargs}}
        }
        body = self.client.put(f"{self.name}/{id}", payload)
        return body.get("data") if isinstance(body, Mapping) else body

    def delete(self, id: str | int) -> Any:
        """Delete a resource."""
        body = self.client.delete(f"{self.name}/{id}")
        return body.get("data") if isinstance(body, Mapping) else body


class ResourceRegistry(Mapping[str, ResourceProxy]):
    """Name and alias lookup of resource proxies for one client.

    Example:
        >>> client.resources["orders"].list()
        >>> client.resources["transitions"] is client.resources["order_status_transitions"]
        True
    """

    def __init__(
        self, client: Client, catalog: tuple[str | dict[str, str], ...] = RESOURCE_CATALOG
    ) -> None:
        self._client = client
        self._names = resource_names(catalog)
        self._aliases = resource_aliases(catalog)
        self._proxies: dict[str, ResourceProxy] = {}

    def canonical_name(self, name: str) -> str:
        """Resolve an alias to its resource name.

        Raises:
            KeyError: If the name is not in the catalog
        """
        name = self._aliases.get(name, name)
        if name not in self._names:
            raise KeyError(f"Unknown resource {name!r}")
        return name

    def __getitem__(self, name: str) -> ResourceProxy:
        canonical = self.canonical_name(name)
        if canonical not in self._proxies:
            self._proxies[canonical] = ResourceProxy(self._client, canonical)
        return self._proxies[canonical]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and (name in self._names or name in self._aliases)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)
