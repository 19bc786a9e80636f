"""Client for the gas price service."""

import json
import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from gasledger.common.config.settings import settings
from gasledger.common.dtos.order_dtos import PriceQuoteDTO
from gasledger.common.exceptions.custom_exceptions import APIError
from gasledger.order_domain.domain.services.price_provider import IPriceProvider

logger = logging.getLogger(__name__)


class PriceApiClient(IPriceProvider):
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None) -> None:
        self.base_url = base_url or settings.PRICE_API_BASE_URL
        self.token = token or settings.PRICE_API_TOKEN

        # Configure session with connection pooling and retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            backoff_factor=1,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=10, pool_maxsize=10)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        if self.token:
            self.session.headers.update({"Authorization": f"Bearer {self.token}"})

    def get_current_price(
        self, gas_brand: str, gas_type: str, region: Optional[str] = None, quantity: int = 1
    ) -> Optional[PriceQuoteDTO]:
        """
        Fetches the active price for a brand and gas type, with any regional or
        bulk discount applied. Returns None when the service has no price for it.
        """
        if not self.base_url:
            raise APIError("PRICE_API_BASE_URL is not set in environment variables.")

        url = f"{self.base_url}/prices/current"
        params = {"gasBrand": gas_brand, "gasType": gas_type, "quantity": quantity}
        if region:
            params["region"] = region

        try:
            response = self.session.get(url, params=params, timeout=30)
            if response.status_code == 404:
                logger.info(f"No price defined for {gas_brand} {gas_type}")
                return None
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise APIError(f"Price request for {gas_brand} {gas_type} timed out: {e}", original_exception=e)
        except requests.exceptions.RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise APIError(
                f"Error fetching price for {gas_brand} {gas_type}: {e}", original_exception=e, status_code=status_code
            )
        except json.JSONDecodeError as e:
            raise APIError(f"Failed to decode price response for {gas_brand} {gas_type}: {e}", original_exception=e)

        if not data or data.get("finalPrice") is None:
            return None
        data.setdefault("gasBrand", gas_brand)
        data.setdefault("gasType", gas_type)
        return PriceQuoteDTO.from_api_response(data)
