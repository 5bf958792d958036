import json
import logging
from typing import Optional

import httpx

from delivery_list.schemas import GroupedRecords

logger = logging.getLogger(__name__)


class DeliverySourceClient:
    """
    Configured HTTP client for the remote delivery endpoint.
    Issues a single GET per call; failures are logged and yield no records.
    """

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch_grouped_records(self) -> GroupedRecords:
        """
        Fetches the grouped delivery records.
        Returns an empty mapping on network errors, error statuses or malformed JSON.
        """
        logger.info(f"Fetching deliveries from {self.url}")

        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Error fetching data: HTTP {e.response.status_code} from {self.url}")
            return {}

        except httpx.HTTPError as e:
            logger.error(f"Error fetching data: {type(e).__name__} - {e}")
            return {}

        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Error fetching data: malformed JSON body - {e}")
            return {}

        if not isinstance(data, (dict, list)):
            logger.error(f"Error fetching data: unexpected payload type {type(data).__name__}")
            return {}

        logger.info(f"Fetched {len(data)} delivery groups.")
        return data

    async def aclose(self):
        await self.client.aclose()


def get_source_client(url: str, timeout: float = 5.0) -> DeliverySourceClient:
    """Provides a client for the configured source endpoint."""
    return DeliverySourceClient(url, timeout=timeout)
