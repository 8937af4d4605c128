import logging
import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from doom_index.domain import CandidateSource, TokenCandidate
from doom_index.errors import ExternalApiError, ProviderTimeoutError

logger = logging.getLogger(__name__)

PROVIDER = 'CoinGecko'
PUBLIC_BASE_URL = 'https://api.coingecko.com/api/v3'
PRO_BASE_URL = 'https://pro-api.coingecko.com/api/v3'
MAX_TRENDING = 15

# CoinGecko category name fragments -> archetype tags used by the classifier
CATEGORY_TAGS = (
    ('perpetual', 'perp'),
    ('derivatives', 'perp'),
    ('meme', 'meme'),
    ('layer 1', 'layer-1'),
    ('(l1)', 'l1'),
    ('privacy', 'privacy'),
    ('artificial intelligence', 'ai'),
    ('(ai)', 'ai'),
    ('oracle', 'ai'),
    ('politi', 'political'),
    ('decentralized finance', 'defi'),
    ('defi', 'defi'),
)


class _RetryableStatus(Exception):
    pass


def normalize_categories(names):
    """Map free-form CoinGecko category names onto classifier tags, keeping first-seen order."""
    tags = []
    for name in names or []:
        lowered = str(name).lower()
        for fragment, tag in CATEGORY_TAGS:
            if fragment in lowered and tag not in tags:
                tags.append(tag)
    return tags


def _num(value):
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


class CoinGeckoClient:
    def __init__(self, api_key=None, timeout=10, max_retries=3, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.session = session or requests.Session()
        self.base_url = PRO_BASE_URL if api_key else PUBLIC_BASE_URL

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.api_key:
            headers['x-cg-pro-api-key'] = self.api_key
        return headers

    def _request_once(self, path, params):
        resp = self.session.get(
            f"{self.base_url}{path}", params=params, headers=self._headers(), timeout=self.timeout,
        )
        if resp.status_code == 429 or resp.status_code >= 500:
            raise _RetryableStatus(resp.status_code)
        if resp.status_code >= 400:
            raise ExternalApiError(PROVIDER, f"GET {path} returned {resp.status_code}", status=resp.status_code)
        return resp.json()

    def _get(self, path, params=None):
        """GET with bounded retries on connection errors, timeouts, 429 and 5xx."""
        try:
            for attempt in Retrying(
                retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout, _RetryableStatus)),
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    return self._request_once(path, params)
        except requests.Timeout as e:
            raise ProviderTimeoutError(int(self.timeout * 1000), f"{PROVIDER} GET {path} timed out") from e
        except _RetryableStatus as e:
            raise ExternalApiError(PROVIDER, f"GET {path} returned {e.args[0]}", status=e.args[0]) from e
        except (requests.RequestException, ValueError) as e:
            raise ExternalApiError(PROVIDER, f"GET {path} failed: {e}") from e

    def get_trending_ids(self):
        """Trending search coin ids in rank order (rank 1 first)."""
        data = self._get('/search/trending')
        ids = []
        for coin in (data.get('coins') or [])[:MAX_TRENDING]:
            item = coin.get('item') or coin
            coin_id = item.get('id')
            if coin_id:
                ids.append(coin_id)
        return ids

    def get_coins_markets(self, ids, source=CandidateSource.TRENDING):
        if not ids:
            return []
        data = self._get('/coins/markets', params={
            'vs_currency': 'usd',
            'ids': ','.join(ids),
            'order': 'market_cap_desc',
            'per_page': 250,
            'price_change_percentage': '24h,7d',
        })
        candidates = []
        for market in data or []:
            candidates.append(TokenCandidate(
                id=market.get('id') or 'unknown',
                symbol=(market.get('symbol') or 'unknown').upper(),
                name=market.get('name') or 'unknown',
                logo_url=market.get('image'),
                price_usd=_num(market.get('current_price')),
                price_change_24h=_num(market.get('price_change_percentage_24h')),
                price_change_7d=_num(market.get('price_change_percentage_7d_in_currency')),
                volume_24h_usd=_num(market.get('total_volume')),
                market_cap_usd=_num(market.get('market_cap')),
                source=source,
            ))
        return candidates

    def get_trending_candidates(self):
        ids = self.get_trending_ids()
        if not ids:
            logger.warning("CoinGecko trending search returned no coin ids")
            return []
        logger.info(f"Trending tokens: {', '.join(ids)}")
        ranks = {coin_id: rank for rank, coin_id in enumerate(ids, start=1)}
        candidates = self.get_coins_markets(ids)
        return [c.with_updates(trending_rank=ranks.get(c.id)) for c in candidates]

    def get_coin_categories(self, coin_id):
        data = self._get(f"/coins/{coin_id}", params={
            'localization': 'false',
            'tickers': 'false',
            'market_data': 'false',
            'community_data': 'false',
            'developer_data': 'false',
        })
        return normalize_categories(data.get('categories'))

    def get_global_market_data(self):
        data = (self._get('/global') or {}).get('data') or {}
        caps = data.get('total_market_cap') or {}
        volumes = data.get('total_volume') or {}
        dominance = data.get('market_cap_percentage') or {}
        return {
            'market_cap_usd': _num(caps.get('usd')),
            'volume_usd': _num(volumes.get('usd')),
            'change_pct_24h': _num(data.get('market_cap_change_percentage_24h_usd')),
            'btc_dominance': _num(dominance.get('btc')),
            'eth_dominance': _num(dominance.get('eth')),
            'active_count': int(data.get('active_cryptocurrencies') or 0),
            'markets_count': int(data.get('markets') or 0),
            'updated_at': int(data.get('updated_at') or 0),
        }
