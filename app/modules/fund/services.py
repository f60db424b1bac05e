from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx
from sqlalchemy import select

from app.core.constants import PriceSource
from app.core.exceptions import PriceUnavailable
from app.core.logger import logger
from app.extensions import db
from .models import FundNav


@dataclass(frozen=True)
class PriceQuote:
    price: Decimal
    as_of: Optional[date] = None
    source: str = PriceSource.LOCAL.value


class LocalNavPriceLookup:
    """Latest NAV from the local fund_navs table."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get_latest_price(self, fund_id):
        record = self.session.execute(
            select(FundNav)
            .where(FundNav.fund_id == str(fund_id), FundNav.is_deleted == False)
            .order_by(FundNav.nav_date.desc())
            .limit(1)
        ).scalar_one_or_none()

        if record is None or not record.nav or record.nav <= 0:
            logger.warning(f"No NAV found in local DB for fund {fund_id}")
            raise PriceUnavailable(
                f"NAV not available in local DB for fund {fund_id}. Run fund sync."
            )
        return PriceQuote(
            price=Decimal(record.nav),
            as_of=record.nav_date,
            source=PriceSource.LOCAL.value,
        )


class MfapiPriceLookup:
    """
    Latest NAV from the public mfapi.in endpoint.

    Every request is bounded by ``timeout`` seconds; network errors, timeouts
    and malformed payloads all surface as ``PriceUnavailable`` so the caller
    treats them like any other failed installment.
    """

    def __init__(self, base_url="https://api.mfapi.in", timeout=10.0, client=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def _get(self, url):
        if self._client is not None:
            return self._client.get(url, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(url)

    def get_latest_price(self, fund_id):
        url = f"{self.base_url}/mf/{fund_id}/latest"
        try:
            response = self._get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"NAV lookup for fund {fund_id} timed out after {self.timeout}s")
            raise PriceUnavailable(f"NAV lookup timed out for fund {fund_id}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"NAV lookup for fund {fund_id} failed: {str(e)}")
            raise PriceUnavailable(f"NAV lookup failed for fund {fund_id}: {str(e)}") from e

        try:
            latest = payload["data"][0]
            price = Decimal(str(latest["nav"]))
            as_of = datetime.strptime(latest["date"], "%d-%m-%Y").date()
        except (KeyError, IndexError, TypeError, ValueError, InvalidOperation) as e:
            raise PriceUnavailable(f"Malformed NAV payload for fund {fund_id}") from e

        if price <= 0:
            raise PriceUnavailable(f"Non-positive NAV {price} for fund {fund_id}")
        return PriceQuote(price=price, as_of=as_of, source=PriceSource.MFAPI.value)


def build_price_lookup(config, session=None):
    """Pick the price source named by PRICE_SOURCE."""
    source = PriceSource(config.get("PRICE_SOURCE", PriceSource.LOCAL.value))
    if source == PriceSource.MFAPI:
        return MfapiPriceLookup(
            base_url=config.get("MFAPI_BASE_URL", "https://api.mfapi.in"),
            timeout=float(config.get("PRICE_LOOKUP_TIMEOUT_SECONDS", 10)),
        )
    return LocalNavPriceLookup(session)
