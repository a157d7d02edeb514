# =============================================================================
# core/services/shipping_service.py - Shipping Rates
# =============================================================================
# Zones group countries, methods belong to a zone, and a method may carry
# weight brackets that override its base + per-kg formula.
#
# Cost calculation for a method, in order:
#   1. method must be active
#   2. order amount >= min_order_amount
#   3. min_weight <= weight <= max_weight
#   4. order amount >= free_shipping_threshold  -> cost 0
#   5. matching weight bracket (last bracket when heavier than all of them)
#   6. base_cost + cost_per_kg * weight
# =============================================================================

import json
import logging
from datetime import date, timedelta
from typing import Any

from app.exceptions import NotFoundError, StorefrontException
from core.models.shipping import BracketForm, MethodForm, ShippingQuote, ZoneForm, parse_countries
from lib.database import Connection
from lib.utils import now, to_int

logger = logging.getLogger(__name__)

SUPPORTED_COUNTRIES: dict[str, str] = {
    "AF": "Afghanistan", "AL": "Albania", "DZ": "Algeria", "AR": "Argentina",
    "AU": "Australia", "AT": "Austria", "BD": "Bangladesh", "BE": "Belgium",
    "BR": "Brazil", "CA": "Canada", "CN": "China", "CO": "Colombia",
    "DK": "Denmark", "EG": "Egypt", "FI": "Finland", "FR": "France",
    "DE": "Germany", "GR": "Greece", "HK": "Hong Kong", "IN": "India",
    "ID": "Indonesia", "IE": "Ireland", "IL": "Israel", "IT": "Italy",
    "JP": "Japan", "KE": "Kenya", "KR": "South Korea", "LK": "Sri Lanka",
    "MY": "Malaysia", "MV": "Maldives", "MX": "Mexico", "NL": "Netherlands",
    "NZ": "New Zealand", "NO": "Norway", "PK": "Pakistan", "PH": "Philippines",
    "PL": "Poland", "PT": "Portugal", "QA": "Qatar", "RU": "Russia",
    "SA": "Saudi Arabia", "SG": "Singapore", "ZA": "South Africa", "ES": "Spain",
    "SE": "Sweden", "CH": "Switzerland", "TW": "Taiwan", "TH": "Thailand",
    "TR": "Turkey", "AE": "United Arab Emirates", "GB": "United Kingdom",
    "US": "United States", "VN": "Vietnam",
}


class ShippingUnavailableError(StorefrontException):
    """Raised when no shipping option applies to a destination or cart."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            message=message,
            code="SHIPPING_UNAVAILABLE",
            status_code=422,
            details=details,
        )


def _decode_countries(raw: Any) -> list[str]:
    if isinstance(raw, list):
        return parse_countries(raw)
    try:
        decoded = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return parse_countries(raw or "")
    return parse_countries(decoded if isinstance(decoded, list) else [])


def _number(value: Any) -> float | None:
    return None if value is None else float(value)


def format_weight(value: float) -> str:
    return f"{value:g}"


def weight_range_text(min_weight: float, max_weight: float | None) -> str:
    """
    Example:
        weight_range_text(0, 1)     # "Up to 1kg"
        weight_range_text(1, 5)     # "1kg - 5kg"
        weight_range_text(5, None)  # "Over 5kg"
    """
    if max_weight is None:
        return f"Over {format_weight(min_weight)}kg"
    if min_weight == 0:
        return f"Up to {format_weight(max_weight)}kg"
    return f"{format_weight(min_weight)}kg - {format_weight(max_weight)}kg"


def delivery_text(days_min: int | None, days_max: int | None) -> str:
    if days_min is None:
        return "Delivery time varies"
    days_max = days_min if days_max is None else days_max
    if days_min == days_max:
        return f"{days_min} business days"
    return f"{days_min}-{days_max} business days"


class ShippingService:
    """
    Shipping zones, methods and rate calculation.

    Example:
        shipping = ShippingService(conn)
        quotes = shipping.available_methods("US", weight=1.2, amount=48.0)
        quotes[0].cost   # cheapest first
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    # -------------------------------------------------------------------------
    # Zones
    # -------------------------------------------------------------------------

    def get_zones(self, active_only: bool = False) -> list[dict[str, Any]]:
        sql = "SELECT * FROM shipping_zones"
        if active_only:
            sql += " WHERE is_active = 1"
        zones = self.conn.fetch_all(sql + " ORDER BY sort_order ASC, name ASC")
        for zone in zones:
            zone["countries_list"] = _decode_countries(zone["countries"])
        return zones

    def find_zone(self, zone_id: int | str) -> dict[str, Any] | None:
        zone = self.conn.fetch_one("SELECT * FROM shipping_zones WHERE id = :id", {"id": zone_id})
        if zone is not None:
            zone["countries_list"] = _decode_countries(zone["countries"])
        return zone

    def get_zone(self, zone_id: int | str) -> dict[str, Any]:
        zone = self.find_zone(zone_id)
        if zone is None:
            raise NotFoundError("Shipping zone", zone_id)
        return zone

    def find_by_country(self, country_code: str) -> dict[str, Any] | None:
        """First active zone (by sort order) whose country list contains the code."""
        code = (country_code or "").strip().upper()
        if not code:
            return None
        for zone in self.get_zones(active_only=True):
            if code in zone["countries_list"]:
                return zone
        return None

    def get_all_with_methods(self) -> list[dict[str, Any]]:
        zones = self.get_zones()
        for zone in zones:
            zone["methods"] = self.get_by_zone(zone["id"], active_only=False)
        return zones

    def create_zone(self, form: ZoneForm) -> int:
        self.conn.query(
            "INSERT INTO shipping_zones (name, countries, is_active, sort_order, created_at) "
            "VALUES (:name, :countries, :is_active, :sort_order, :created_at)",
            {
                "name": form.name,
                "countries": json.dumps(form.countries),
                "is_active": form.is_active,
                "sort_order": form.sort_order,
                "created_at": now(),
            },
        )
        zone_id = self.conn.last_insert_id()
        logger.info(f"Created shipping zone {zone_id} ({form.name}: {', '.join(form.countries)})")
        return zone_id

    def update_zone(self, zone_id: int, form: ZoneForm) -> None:
        self.get_zone(zone_id)
        self.conn.query(
            "UPDATE shipping_zones SET name = :name, countries = :countries, is_active = :is_active, "
            "sort_order = :sort_order, updated_at = :updated_at WHERE id = :id",
            {
                "name": form.name,
                "countries": json.dumps(form.countries),
                "is_active": form.is_active,
                "sort_order": form.sort_order,
                "updated_at": now(),
                "id": zone_id,
            },
        )
        logger.info(f"Updated shipping zone {zone_id}")

    def delete_zone(self, zone_id: int) -> None:
        """Delete a zone together with its methods and their brackets."""
        self.get_zone(zone_id)
        with self.conn.transaction():
            for method in self.get_by_zone(zone_id, active_only=False):
                self.conn.query(
                    "DELETE FROM shipping_weight_brackets WHERE method_id = :id", {"id": method["id"]}
                )
            self.conn.query("DELETE FROM shipping_methods WHERE zone_id = :id", {"id": zone_id})
            self.conn.query("DELETE FROM shipping_zones WHERE id = :id", {"id": zone_id})
        logger.info(f"Deleted shipping zone {zone_id}")

    # -------------------------------------------------------------------------
    # Methods & Brackets
    # -------------------------------------------------------------------------

    def get_by_zone(self, zone_id: int, active_only: bool = True) -> list[dict[str, Any]]:
        sql = "SELECT * FROM shipping_methods WHERE zone_id = :zone_id"
        if active_only:
            sql += " AND is_active = 1"
        return self.conn.fetch_all(sql + " ORDER BY sort_order ASC, name ASC", {"zone_id": zone_id})

    def find_method(self, method_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM shipping_methods WHERE id = :id", {"id": method_id})

    def get_method(self, method_id: int | str) -> dict[str, Any]:
        method = self.find_method(method_id)
        if method is None:
            raise NotFoundError("Shipping method", method_id)
        return method

    def get_brackets(self, method_id: int) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT * FROM shipping_weight_brackets WHERE method_id = :method_id ORDER BY min_weight ASC",
            {"method_id": method_id},
        )

    def get_with_brackets(self, method_id: int | str) -> dict[str, Any] | None:
        method = self.find_method(method_id)
        if method is not None:
            method["weight_brackets"] = self.get_brackets(method["id"])
        return method

    def create_method(self, form: MethodForm) -> int:
        self.get_zone(form.zone_id)
        self.conn.query(
            "INSERT INTO shipping_methods (zone_id, name, description, base_cost, cost_per_kg, "
            "min_weight, max_weight, min_order_amount, free_shipping_threshold, "
            "estimated_days_min, estimated_days_max, is_active, sort_order, created_at) "
            "VALUES (:zone_id, :name, :description, :base_cost, :cost_per_kg, :min_weight, "
            ":max_weight, :min_order_amount, :free_shipping_threshold, :estimated_days_min, "
            ":estimated_days_max, :is_active, :sort_order, :created_at)",
            {**form.model_dump(), "created_at": now()},
        )
        method_id = self.conn.last_insert_id()
        logger.info(f"Created shipping method {method_id} ({form.name}) in zone {form.zone_id}")
        return method_id

    def update_method(self, method_id: int, form: MethodForm) -> None:
        self.get_method(method_id)
        self.conn.query(
            "UPDATE shipping_methods SET zone_id = :zone_id, name = :name, description = :description, "
            "base_cost = :base_cost, cost_per_kg = :cost_per_kg, min_weight = :min_weight, "
            "max_weight = :max_weight, min_order_amount = :min_order_amount, "
            "free_shipping_threshold = :free_shipping_threshold, "
            "estimated_days_min = :estimated_days_min, estimated_days_max = :estimated_days_max, "
            "is_active = :is_active, sort_order = :sort_order, updated_at = :updated_at WHERE id = :id",
            {**form.model_dump(), "updated_at": now(), "id": method_id},
        )
        logger.info(f"Updated shipping method {method_id}")

    def delete_method(self, method_id: int) -> None:
        self.get_method(method_id)
        with self.conn.transaction():
            self.conn.query("DELETE FROM shipping_weight_brackets WHERE method_id = :id", {"id": method_id})
            self.conn.query("DELETE FROM shipping_methods WHERE id = :id", {"id": method_id})
        logger.info(f"Deleted shipping method {method_id}")

    def add_bracket(self, method_id: int, form: BracketForm) -> int:
        self.get_method(method_id)
        self.conn.query(
            "INSERT INTO shipping_weight_brackets (method_id, min_weight, max_weight, cost) "
            "VALUES (:method_id, :min_weight, :max_weight, :cost)",
            {**form.model_dump(), "method_id": method_id},
        )
        return self.conn.last_insert_id()

    def delete_bracket(self, bracket_id: int) -> int | None:
        """Delete a bracket. Returns the owning method id (None if it didn't exist)."""
        bracket = self.conn.fetch_one(
            "SELECT * FROM shipping_weight_brackets WHERE id = :id", {"id": bracket_id}
        )
        if bracket is None:
            return None
        self.conn.query("DELETE FROM shipping_weight_brackets WHERE id = :id", {"id": bracket_id})
        return bracket["method_id"]

    # -------------------------------------------------------------------------
    # Rates
    # -------------------------------------------------------------------------

    def calculate_cost(self, method_id: int | str, weight: float, amount: float) -> ShippingQuote:
        """
        Price one method for a cart.

        Args:
            method_id: Shipping method ID
            weight: Total cart weight in kg
            amount: Order subtotal

        Returns:
            ShippingQuote with the rounded cost

        Raises:
            ShippingUnavailableError: If the method is missing, inactive, or
                the cart falls outside its order amount / weight limits
        """
        method = self.get_with_brackets(method_id)
        if method is None:
            raise ShippingUnavailableError("Shipping method not found")
        if not method["is_active"]:
            raise ShippingUnavailableError("Shipping method is not available")

        min_order = _number(method["min_order_amount"])
        if min_order is not None and amount < min_order:
            raise ShippingUnavailableError(
                f"Minimum order amount of {min_order:.2f} required for this shipping method"
            )
        min_weight = _number(method["min_weight"])
        if min_weight is not None and weight < min_weight:
            raise ShippingUnavailableError(f"Minimum weight of {format_weight(min_weight)}kg required")
        max_weight = _number(method["max_weight"])
        if max_weight is not None and weight > max_weight:
            raise ShippingUnavailableError(f"Maximum weight of {format_weight(max_weight)}kg exceeded")

        threshold = _number(method["free_shipping_threshold"])
        if threshold is not None and amount >= threshold:
            return self._quote(method, 0.0, free_shipping=True)

        return self._quote(method, round(self._weighted_cost(method, weight), 2))

    @staticmethod
    def _weighted_cost(method: dict[str, Any], weight: float) -> float:
        brackets = method.get("weight_brackets") or []
        for bracket in brackets:
            low = float(bracket["min_weight"])
            high = _number(bracket["max_weight"])
            if weight >= low and (high is None or weight <= high):
                return float(bracket["cost"])
        if brackets and weight > float(brackets[-1]["min_weight"]):
            return float(brackets[-1]["cost"])
        return float(method["base_cost"]) + float(method["cost_per_kg"]) * weight

    @staticmethod
    def _quote(method: dict[str, Any], cost: float, free_shipping: bool = False) -> ShippingQuote:
        return ShippingQuote(
            method_id=method["id"],
            method_name=method["name"],
            description=method["description"],
            cost=cost,
            free_shipping=free_shipping,
            estimated_days_min=method["estimated_days_min"],
            estimated_days_max=method["estimated_days_max"],
            delivery_text=delivery_text(method["estimated_days_min"], method["estimated_days_max"]),
        )

    def available_methods(self, country: str, weight: float, amount: float) -> list[ShippingQuote]:
        """
        Every method that can ship this cart to the country, cheapest first.

        Methods whose limits exclude the cart are skipped.

        Raises:
            ShippingUnavailableError: If no zone covers the country or the
                zone has no active methods
        """
        zone = self.find_by_country(country)
        if zone is None:
            raise ShippingUnavailableError("Shipping is not available to your country")
        methods = self.get_by_zone(zone["id"])
        if not methods:
            raise ShippingUnavailableError("No shipping methods available for your location")

        quotes = []
        for method in methods:
            try:
                quotes.append(self.calculate_cost(method["id"], weight, amount))
            except ShippingUnavailableError as e:
                logger.debug(f"Method {method['id']} skipped for {country}: {e.message}")
        return sorted(quotes, key=lambda quote: quote.cost)

    def cheapest_method(self, country: str, weight: float, amount: float) -> ShippingQuote | None:
        try:
            quotes = self.available_methods(country, weight, amount)
        except ShippingUnavailableError:
            return None
        return quotes[0] if quotes else None

    def validate_method(self, method_id: int | str, country: str, weight: float, amount: float) -> ShippingQuote:
        """
        Check a chosen method at checkout and return its price.

        Raises:
            ShippingUnavailableError: With a customer-facing message
        """
        method_id = to_int(method_id)
        method = self.find_method(method_id) if method_id and method_id > 0 else None
        if method is None:
            raise ShippingUnavailableError("Invalid shipping method")
        if not method["is_active"]:
            raise ShippingUnavailableError("Shipping method is not available")
        zone = self.find_zone(method["zone_id"])
        if zone is None:
            raise ShippingUnavailableError("Shipping zone not found")
        if (country or "").strip().upper() not in zone["countries_list"]:
            raise ShippingUnavailableError("Shipping method not available for your country")
        return self.calculate_cost(method["id"], weight, amount)

    def delivery_estimate(self, method_id: int | str) -> dict[str, Any] | None:
        """Delivery window in days and dates from today, or None when unknown."""
        method = self.find_method(method_id)
        if method is None or method["estimated_days_min"] is None:
            return None
        days_min = int(method["estimated_days_min"])
        days_max = int(method["estimated_days_max"]) if method["estimated_days_max"] is not None else days_min
        today = date.today()
        return {
            "min_days": days_min,
            "max_days": days_max,
            "min_date": (today + timedelta(days=days_min)).isoformat(),
            "max_date": (today + timedelta(days=days_max)).isoformat(),
            "text": delivery_text(days_min, days_max),
        }

    def rates_display(self, country: str) -> dict[str, Any]:
        """Rate table for the public shipping page."""
        zone = self.find_by_country(country)
        if zone is None:
            return {"available": False, "message": "Shipping is not available to this country"}

        methods = []
        for method in self.get_by_zone(zone["id"]):
            info: dict[str, Any] = {
                "name": method["name"],
                "description": method["description"],
                "base_cost": float(method["base_cost"]),
                "cost_per_kg": float(method["cost_per_kg"]),
                "delivery_time": delivery_text(method["estimated_days_min"], method["estimated_days_max"]),
                "weight_brackets": [
                    {
                        "min_weight": float(bracket["min_weight"]),
                        "max_weight": _number(bracket["max_weight"]),
                        "cost": float(bracket["cost"]),
                        "range_text": weight_range_text(
                            float(bracket["min_weight"]), _number(bracket["max_weight"])
                        ),
                    }
                    for bracket in self.get_brackets(method["id"])
                ],
            }
            threshold = _number(method["free_shipping_threshold"])
            if threshold is not None:
                info["free_shipping_threshold"] = threshold
                info["free_shipping_text"] = f"Free shipping on orders over ${threshold:,.2f}"
            methods.append(info)

        return {"available": True, "zone_name": zone["name"], "methods": methods}
