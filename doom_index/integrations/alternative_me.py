import logging
import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from doom_index.errors import ExternalApiError, ParsingError, ProviderTimeoutError

logger = logging.getLogger(__name__)

PROVIDER = 'alternative.me'
FEAR_GREED_URL = 'https://api.alternative.me/fng/'


class FearGreedClient:
    """Crypto Fear & Greed index (0-100)."""

    def __init__(self, timeout=10, max_retries=3, session=None):
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.session = session or requests.Session()

    def _fetch(self):
        resp = self.session.get(FEAR_GREED_URL, params={'limit': 1, 'format': 'json'}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def get_index(self):
        """Returns {value, classification, timestamp}."""
        try:
            for attempt in Retrying(
                retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    data = self._fetch()
        except requests.Timeout as e:
            raise ProviderTimeoutError(int(self.timeout * 1000), f"{PROVIDER} request timed out") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ExternalApiError(PROVIDER, f"Fear & Greed request failed: {e}", status=status) from e
        except (requests.RequestException, ValueError) as e:
            raise ExternalApiError(PROVIDER, f"Fear & Greed request failed: {e}") from e

        entries = data.get('data') or []
        if not entries:
            raise ParsingError(str(data)[:200], 'Fear & Greed response has no data entries')
        entry = entries[0]
        try:
            value = int(entry['value'])
        except (KeyError, TypeError, ValueError) as e:
            raise ParsingError(str(entry)[:200], f"Invalid Fear & Greed value: {e}") from e

        return {
            'value': max(0, min(100, value)),
            'classification': entry.get('value_classification'),
            'timestamp': int(entry.get('timestamp') or 0),
        }
