from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
import requests

from spresearch.errors import RateLimitedError, RemoteError
from spresearch.providers.sp_api_provider import CatalogItem


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    def count(self, seconds: float) -> int:
        return sum(1 for s in self.calls if s == seconds)


class FakeProvider:
    """
    Provider em memória. As falhas são scriptadas por chave:
    failures[("offers", "B000TEST1")] = [RateLimitedError(...), RateLimitedError(...)]
    são levantadas por ordem antes de devolver o valor normal.
    """
    def __init__(
        self,
        catalog: Optional[Dict[str, CatalogItem]] = None,
        offers: Optional[Dict[str, List[Decimal]]] = None,
        fees: Optional[Dict[str, Optional[Decimal]]] = None,
    ):
        self.catalog = catalog or {}
        self.offers = offers or {}
        self.fees = fees or {}
        self.failures: Dict[tuple, List[Exception]] = {}
        self.catalog_calls: List[List[str]] = []
        self.offer_calls: List[str] = []
        self.fee_calls: List[tuple] = []

    def fail(self, kind: str, key: str, *errors: Exception) -> None:
        self.failures.setdefault((kind, key), []).extend(errors)

    def _maybe_fail(self, kind: str, key: str) -> None:
        queue = self.failures.get((kind, key))
        if queue:
            raise queue.pop(0)

    def search_catalog_items(self, identifiers: List[str]) -> List[CatalogItem]:
        self.catalog_calls.append(list(identifiers))
        self._maybe_fail("catalog", ",".join(identifiers))
        out = []
        for code in identifiers:
            item = self.catalog.get(code)
            if item is not None:
                out.append(item)
        return out

    def get_item_offers(self, asin: str) -> List[Decimal]:
        self.offer_calls.append(asin)
        self._maybe_fail("offers", asin)
        return list(self.offers.get(asin, []))

    def get_fees_estimate(self, asin: str, *, price: Decimal, shipping: Decimal = Decimal("0")) -> Optional[Decimal]:
        self.fee_calls.append((asin, price, shipping))
        self._maybe_fail("fees", asin)
        return self.fees.get(asin)

    @property
    def remote_calls(self) -> int:
        return len(self.catalog_calls) + len(self.offer_calls) + len(self.fee_calls)


def rate_limited() -> RateLimitedError:
    return RateLimitedError("429", status_code=429)


def server_error() -> RemoteError:
    return RemoteError("boom", status_code=500)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def write_csv(tmp_path):
    def _write(text: str, name: str = "input.csv", encoding: str = "utf-8") -> str:
        p = tmp_path / name
        p.write_bytes(text.encode(encoding))
        return str(p)
    return _write


# ============================================================================
# HTTP sem rede
# ============================================================================

def make_response(status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    r.encoding = "utf-8"
    if text is None:
        text = json.dumps(payload if payload is not None else {})
    r._content = text.encode("utf-8")
    return r


class FakeSession:
    """Substitui requests.Session: devolve respostas por (method, url) e guarda cada pedido."""

    def __init__(self):
        self.routes: Dict[tuple, List[requests.Response]] = {}
        self.requests: List[Dict[str, Any]] = []

    def add(self, method: str, url: str, response: requests.Response) -> None:
        self.routes.setdefault((method.upper(), url), []).append(response)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append({"method": method.upper(), "url": url, **kwargs})
        queue = self.routes.get((method.upper(), url))
        if not queue:
            raise requests.ConnectionError(f"no route for {method} {url}")
        # a última resposta repete-se
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    @property
    def last(self) -> Dict[str, Any]:
        return self.requests[-1]


@pytest.fixture
def http() -> FakeSession:
    return FakeSession()
