import logging
import re
from datetime import timedelta

from doom_index.domain import CandidateSource, Scores, SelectedToken
from doom_index.errors import AppError, ExternalApiError, Result
from doom_index.pipeline.classify import classify_market_climate
from doom_index.pipeline.scoring import DEFAULT_PRICE_CHANGE_CEILING_PCT, score_candidate
from doom_index.utils.time import epoch_seconds, utcnow

logger = logging.getLogger(__name__)

STABLECOIN_SYMBOLS = frozenset({'USDT', 'USDC', 'BUSD', 'DAI', 'TUSD', 'USDP', 'USDD'})
MAX_FORCE_TOKEN_LIST_SIZE = 20
FORCE_TOKEN_PATTERN = re.compile(r'^[a-z0-9-]{1,64}$')
FORCED_SCORE = 1.0
PROVIDER = 'CoinGecko'


def parse_force_token_list(raw):
    """Comma separated CoinGecko ids -> ordered, de-duplicated, lower-cased ids (max 20)."""
    ids = []
    for entry in (raw or '').split(','):
        token_id = entry.strip().lower()
        if not token_id:
            continue
        if not FORCE_TOKEN_PATTERN.match(token_id):
            logger.warning(f"Skipping invalid FORCE_TOKEN_LIST entry: {entry.strip()!r}")
            continue
        if token_id in ids:
            continue
        if len(ids) >= MAX_FORCE_TOKEN_LIST_SIZE:
            logger.warning(f"FORCE_TOKEN_LIST capped at {MAX_FORCE_TOKEN_LIST_SIZE} entries")
            break
        ids.append(token_id)
    return ids


def _rank_key(selected):
    return (-selected.scores.final, -selected.candidate.market_cap_usd, selected.candidate.id)


class TokenSelectionService:
    def __init__(self, market_client, market_data_service, tokens_repository,
                 force_token_list='', recent_window_hours=24, recent_penalty=0.5,
                 price_change_ceiling_pct=DEFAULT_PRICE_CHANGE_CEILING_PCT,
                 exclude_stablecoins=True, clock=utcnow):
        self.market_client = market_client
        self.market_data_service = market_data_service
        self.tokens_repository = tokens_repository
        self.force_ids = parse_force_token_list(force_token_list)
        self.recent_window_hours = recent_window_hours
        self.recent_penalty = max(0.0, min(1.0, recent_penalty))
        self.price_change_ceiling_pct = price_change_ceiling_pct
        self.exclude_stablecoins = exclude_stablecoins
        self.clock = clock

    def select_token(self, bucket=None):
        market = self.market_data_service.fetch_global_market_data(bucket)
        if not market.ok:
            return market
        climate = classify_market_climate(market.value)

        if self.force_ids:
            result = self._select_forced()
        else:
            result = self._select_trending(climate)
        if not result.ok:
            return result

        selected = self._record_selection(result.value)
        logger.info(
            f"Selected token {selected.id} ({selected.symbol}) source={selected.candidate.source.value} "
            f"climate={climate.value} final={selected.scores.final:.3f}"
        )
        return Result.success(selected)

    def _fetch(self, fetch):
        try:
            return Result.success(fetch())
        except AppError as e:
            logger.error(f"Candidate fetch failed ({e.kind}): {e.message}")
            return Result.failure(e)

    def _select_forced(self):
        logger.info(f"Using FORCE_TOKEN_LIST: {', '.join(self.force_ids)}")
        fetched = self._fetch(lambda: self.market_client.get_coins_markets(self.force_ids, source=CandidateSource.FORCED))
        if not fetched.ok:
            return fetched

        priorities = {token_id: i for i, token_id in enumerate(self.force_ids)}
        candidates = [
            c.with_updates(force_priority=priorities.get(c.id, len(priorities)), source=CandidateSource.FORCED)
            for c in fetched.value
        ]
        if not candidates:
            return Result.failure(ExternalApiError(PROVIDER, 'No market data for any FORCE_TOKEN_LIST entry'))

        winner = min(candidates, key=lambda c: (c.force_priority, c.id))
        scores = Scores(trend=FORCED_SCORE, impact=FORCED_SCORE, mood=FORCED_SCORE, final=FORCED_SCORE)
        return Result.success(SelectedToken(candidate=winner, scores=scores))

    def _recent_selections(self):
        since = epoch_seconds(self.clock() - timedelta(hours=self.recent_window_hours))
        recent = self.tokens_repository.find_recently_selected(since)
        if not recent.ok:
            logger.warning(f"Recent selection lookup failed, not filtering: {recent.error.message}")
            return {}
        return recent.value

    def _penalty_factors(self, recent):
        """Most recent selection takes the full penalty, older ones a share of it by recency rank."""
        stamps = sorted(set(recent.values()), reverse=True)
        ranks = {ts: i for i, ts in enumerate(stamps)}
        return {
            token_id: 1 - self.recent_penalty * (len(stamps) - ranks[ts]) / len(stamps)
            for token_id, ts in recent.items()
        }

    def _select_trending(self, climate):
        fetched = self._fetch(self.market_client.get_trending_candidates)
        if not fetched.ok:
            return fetched

        candidates = list(fetched.value)
        if not candidates:
            return Result.failure(ExternalApiError(PROVIDER, 'No token candidates available'))

        if self.exclude_stablecoins:
            candidates = [c for c in candidates if c.symbol.upper() not in STABLECOIN_SYMBOLS]
            if not candidates:
                return Result.failure(ExternalApiError(PROVIDER, 'Only stablecoins among token candidates'))

        recent = self._recent_selections()
        fresh = [c for c in candidates if c.id not in recent]
        factors = {}
        if not fresh:
            logger.info("Every candidate was selected recently; keeping them with a recency-ranked penalty")
            fresh = candidates
            factors = self._penalty_factors({c.id: recent[c.id] for c in candidates})
        elif len(fresh) < len(candidates):
            logger.info(f"Excluded {len(candidates) - len(fresh)} recently selected tokens")

        scored = []
        for candidate in fresh:
            scores = score_candidate(candidate, climate, ceiling_pct=self.price_change_ceiling_pct)
            if candidate.id in factors:
                factor = factors[candidate.id]
                scores = Scores(scores.trend, scores.impact, scores.mood, scores.final * factor)
            scored.append(SelectedToken(candidate=candidate, scores=scores))

        scored.sort(key=_rank_key)
        for entry in scored[:5]:
            logger.debug(f"  {entry.id}: final={entry.scores.final:.3f} trend={entry.scores.trend:.3f} "
                         f"impact={entry.scores.impact:.3f} mood={entry.scores.mood:.3f}")
        return Result.success(scored[0])

    def _record_selection(self, selected):
        """Persist token metadata and selection time; failures only cost recency data."""
        candidate = selected.candidate
        stored = self.tokens_repository.upsert(candidate, now=self.clock())
        if not stored.ok:
            logger.warning(f"Could not store token {candidate.id}: {stored.error.message}")
            return selected

        token = stored.value
        if not token.categories:
            try:
                categories = self.market_client.get_coin_categories(candidate.id)
            except AppError as e:
                logger.warning(f"Category lookup failed for {candidate.id} ({e.kind}): {e.message}")
                categories = []
            if categories:
                self.tokens_repository.update_context(candidate.id, token.short_context, categories=categories,
                                                      now=self.clock())
                selected = SelectedToken(candidate=candidate.with_updates(categories=tuple(categories)),
                                         scores=selected.scores)

        marked = self.tokens_repository.mark_selected(candidate.id, now=self.clock())
        if not marked.ok:
            logger.warning(f"Could not mark {candidate.id} as selected: {marked.error.message}")
        return selected
