from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Tuple, List, Any

import requests

from ..errors import RemoteError, RateLimitedError


CATALOG_ITEMS_PATH = "/catalog/2022-04-01/items"
ITEM_OFFERS_PATH = "/products/pricing/v0/items/{asin}/offers"
FEES_ESTIMATE_PATH = "/products/fees/v0/items/{asin}/feesEstimate"

PRIMARY_ID_TYPE = "UPC"
SECONDARY_ID_TYPE = "EAN"


@dataclass(frozen=True)
class CatalogItem:
    asin: str
    identifier: str
    identifier_type: str     # "UPC" | "EAN"
    rank: int                # 0 = sem rank


def to_decimal(v: Any) -> Optional[Decimal]:
    if v is None or isinstance(v, bool):
        return None
    try:
        d = Decimal(str(v))
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def preferred_identifier(identifiers_by_marketplace: Any) -> Optional[Tuple[str, str]]:
    """UPC tem prioridade; EAN só conta se o item não tiver nenhum UPC."""
    fallback: Optional[Tuple[str, str]] = None
    for group in identifiers_by_marketplace or []:
        for ident in (group or {}).get("identifiers") or []:
            kind = ident.get("identifierType")
            value = str(ident.get("identifier") or "").strip()
            if not value:
                continue
            if kind == PRIMARY_ID_TYPE:
                return value, PRIMARY_ID_TYPE
            if kind == SECONDARY_ID_TYPE and fallback is None:
                fallback = (value, SECONDARY_ID_TYPE)
    return fallback


def first_rank(sales_ranks: Any) -> int:
    # salesRanks[0].displayGroupRanks[0].rank, senão classificationRanks[0].rank
    if not sales_ranks:
        return 0
    first = sales_ranks[0] or {}
    for key in ("displayGroupRanks", "classificationRanks"):
        ranks = first.get(key) or []
        for r in ranks:
            try:
                value = int(r.get("rank"))
            except (TypeError, ValueError):
                continue
            if value > 0:
                return value
    return 0


def parse_catalog_items(payload: Any) -> List[CatalogItem]:
    if not isinstance(payload, dict):
        raise RemoteError(f"Unexpected catalog payload: {type(payload).__name__}")
    out: List[CatalogItem] = []
    for item in payload.get("items") or []:
        asin = str(item.get("asin") or "").strip()
        ident = preferred_identifier(item.get("identifiers"))
        if not asin or ident is None:
            continue
        out.append(CatalogItem(
            asin=asin,
            identifier=ident[0],
            identifier_type=ident[1],
            rank=first_rank(item.get("salesRanks")),
        ))
    return out


def parse_landed_prices(payload: Any) -> List[Decimal]:
    if not isinstance(payload, dict):
        raise RemoteError(f"Unexpected offers payload: {type(payload).__name__}")
    summary = (payload.get("payload") or {}).get("Summary") or {}
    prices: List[Decimal] = []
    for lp in summary.get("LowestPrices") or []:
        amount = to_decimal(((lp or {}).get("LandedPrice") or {}).get("Amount"))
        if amount is not None and amount > 0:
            prices.append(amount)
    return prices


def parse_total_fees(payload: Any) -> Optional[Decimal]:
    if not isinstance(payload, dict):
        raise RemoteError(f"Unexpected fees payload: {type(payload).__name__}")
    result = (payload.get("payload") or {}).get("FeesEstimateResult") or {}
    total = ((result.get("FeesEstimate") or {}).get("TotalFeesEstimate") or {}).get("Amount")
    return to_decimal(total)


class SellingPartnerProvider:
    """
    Cliente mínimo da Selling Partner API (catalog / pricing / fees).
    O token é lido do CredentialCell imediatamente antes de cada pedido.
    """
    def __init__(
        self,
        *,
        credentials: Any,
        endpoint: str = "https://sellingpartnerapi-na.amazon.com",
        marketplace_id: str = "ATVPDKIKX0DER",
        timeout_s: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.endpoint = endpoint.rstrip("/")
        self.marketplace_id = marketplace_id
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.headers = {
            "User-Agent": "spresearch/0.1 (Language=Python)",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, *, params: Optional[dict] = None, body: Optional[dict] = None) -> Any:
        headers = dict(self.headers)
        headers["x-amz-access-token"] = self.credentials.get()
        url = self.endpoint + path
        try:
            r = self.session.request(method, url, params=params, json=body, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e

        if r.status_code == 429:
            raise RateLimitedError(f"{method} {path} rate limited", status_code=429)
        if not r.ok:
            raise RemoteError(f"{method} {path} returned HTTP {r.status_code}: {r.text[:300]}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON", status_code=r.status_code) from e

    def _parse(self, parser: Any, payload: Any, what: str) -> Any:
        try:
            return parser(payload)
        except RemoteError:
            raise
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            raise RemoteError(f"Unexpected {what} payload shape: {e}") from e

    def search_catalog_items(self, identifiers: List[str], identifiers_type: str = PRIMARY_ID_TYPE) -> List[CatalogItem]:
        if not identifiers:
            return []
        payload = self._request(
            "GET",
            CATALOG_ITEMS_PATH,
            params={
                "marketplaceIds": self.marketplace_id,
                "identifiersType": identifiers_type,
                "identifiers": ",".join(identifiers),
                "includedData": "identifiers,salesRanks",
                "pageSize": "20",
            },
        )
        return self._parse(parse_catalog_items, payload, "catalog")

    def get_item_offers(self, asin: str) -> List[Decimal]:
        payload = self._request(
            "GET",
            ITEM_OFFERS_PATH.format(asin=asin),
            params={
                "MarketplaceId": self.marketplace_id,
                "ItemCondition": "New",
                "CustomerType": "Consumer",
            },
        )
        return self._parse(parse_landed_prices, payload, "offers")

    def get_fees_estimate(self, asin: str, *, price: Decimal, shipping: Decimal = Decimal("0")) -> Optional[Decimal]:
        body: Dict[str, Any] = {
            "FeesEstimateRequest": {
                "MarketplaceId": self.marketplace_id,
                "IdType": "ASIN",
                "IdValue": asin,
                "IsAmazonFulfilled": True,
                "PriceToEstimateFees": {
                    "ListingPrice": {"CurrencyCode": "USD", "Amount": float(price)},
                    "Shipping": {"CurrencyCode": "USD", "Amount": float(shipping)},
                },
                "Identifier": f"request_{asin}",
            }
        }
        payload = self._request("POST", FEES_ESTIMATE_PATH.format(asin=asin), body=body)
        return self._parse(parse_total_fees, payload, "fees")
