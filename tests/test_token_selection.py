from datetime import timedelta

import pytest
from conftest import FIXED_BUCKET, FIXED_NOW, FakeMarketClient, FakeSentimentClient, make_candidate
from doom_index.domain import CandidateSource, MarketClimate
from doom_index.pipeline.scoring import score_candidate
from doom_index.repositories import MarketSnapshotRepository, TokensRepository
from doom_index.services.market_data_service import MarketDataService
from doom_index.services.token_selection import TokenSelectionService, parse_force_token_list


def make_service(market, **kwargs):
    kwargs.setdefault('clock', lambda: FIXED_NOW)
    market_data = MarketDataService(market, FakeSentimentClient(), MarketSnapshotRepository())
    return TokenSelectionService(market, market_data, TokensRepository(), **kwargs)


def mark_recent(*token_ids, hours_ago=1):
    repo = TokensRepository()
    for token_id in token_ids:
        repo.upsert(make_candidate(token_id, token_id.upper(), token_id.title()))
        repo.mark_selected(token_id, now=FIXED_NOW - timedelta(hours=hours_ago))


class TestParseForceTokenList:
    def test_normalises_entries(self):
        assert parse_force_token_list(' Pepe, ,bad id!, pepe,solana') == ['pepe', 'solana']

    def test_empty(self):
        assert parse_force_token_list('') == []
        assert parse_force_token_list(None) == []

    def test_capped_at_twenty(self):
        raw = ','.join(f'coin-{i}' for i in range(30))
        assert len(parse_force_token_list(raw)) == 20


class TestTrendingSelection:
    def test_picks_highest_final_score(self, market_client):
        result = make_service(market_client).select_token(FIXED_BUCKET)
        assert result.ok
        selected = result.value
        assert selected.id == 'pepe'
        assert selected.candidate.source == CandidateSource.TRENDING
        assert 0.0 <= selected.scores.final <= 1.0

    def test_records_selection_and_categories(self, market_client):
        result = make_service(market_client).select_token(FIXED_BUCKET)
        assert result.value.candidate.categories == ('meme',)

        token = TokensRepository().find_by_id('pepe').value
        assert token.categories == ['meme']
        assert token.last_selected_at == int(FIXED_NOW.timestamp())

    def test_stablecoins_are_excluded(self):
        market = FakeMarketClient(candidates=[
            make_candidate('tether', 'USDT', 'Tether', trending_rank=1, volume_24h_usd=9e10, market_cap_usd=1e11),
            make_candidate('pepe', trending_rank=9),
        ])
        assert make_service(market).select_token(FIXED_BUCKET).value.id == 'pepe'

    def test_stablecoins_kept_when_exclusion_disabled(self):
        market = FakeMarketClient(candidates=[
            make_candidate('tether', 'USDT', 'Tether', trending_rank=1, volume_24h_usd=9e10,
                           market_cap_usd=1e11, price_change_24h=8.0),
            make_candidate('pepe', trending_rank=9, price_change_24h=0.1),
        ])
        result = make_service(market, exclude_stablecoins=False).select_token(FIXED_BUCKET)
        assert result.value.id == 'tether'

    def test_only_stablecoins_fails(self):
        market = FakeMarketClient(candidates=[make_candidate('usd-coin', 'USDC', 'USDC')])
        result = make_service(market).select_token(FIXED_BUCKET)
        assert not result.ok
        assert result.error.kind == 'ExternalApiError'

    def test_ties_break_by_market_cap_then_id(self):
        market = FakeMarketClient(candidates=[make_candidate('bbb'), make_candidate('aaa')])
        assert make_service(market).select_token(FIXED_BUCKET).value.id == 'aaa'

    def test_recently_selected_tokens_are_skipped(self, market_client):
        mark_recent('pepe')
        assert make_service(market_client).select_token(FIXED_BUCKET).value.id == 'solana'

    def test_selection_outside_window_is_not_recent(self, market_client):
        mark_recent('pepe')
        service = make_service(market_client, recent_window_hours=0)
        assert service.select_token(FIXED_BUCKET).value.id == 'pepe'

    def test_all_recent_applies_penalty(self, market_client):
        mark_recent('pepe', 'solana')
        result = make_service(market_client, recent_penalty=0.5).select_token(FIXED_BUCKET)
        assert result.value.id == 'pepe'
        unpenalized = score_candidate(make_candidate(), MarketClimate.EUPHORIA)
        assert result.value.scores.final == pytest.approx(unpenalized.final * 0.5)

    def test_all_recent_previous_winner_loses_tie(self):
        market = FakeMarketClient(candidates=[make_candidate('aaa'), make_candidate('bbb')])
        mark_recent('aaa', hours_ago=1)
        mark_recent('bbb', hours_ago=5)
        assert make_service(market).select_token(FIXED_BUCKET).value.id == 'bbb'

    def test_all_recent_penalty_scales_with_recency(self):
        market = FakeMarketClient(candidates=[make_candidate('aaa'), make_candidate('bbb'), make_candidate('ccc')])
        mark_recent('aaa', hours_ago=1)
        mark_recent('bbb', hours_ago=2)
        mark_recent('ccc', hours_ago=3)
        service = make_service(market, recent_penalty=0.6)
        recent = TokensRepository().find_recently_selected(0).value
        assert service._penalty_factors(recent) == pytest.approx({'aaa': 0.4, 'bbb': 0.6, 'ccc': 0.8})
        assert service.select_token(FIXED_BUCKET).value.id == 'ccc'

    def test_no_candidates_fails(self):
        result = make_service(FakeMarketClient(candidates=[])).select_token(FIXED_BUCKET)
        assert not result.ok
        assert 'No token candidates' in result.error.message

    def test_trending_error_propagates(self, api_error):
        result = make_service(FakeMarketClient(trending_error=api_error)).select_token(FIXED_BUCKET)
        assert result.error is api_error

    def test_market_data_error_propagates(self, market_client, api_error):
        market_client.global_error = api_error
        result = make_service(market_client).select_token(FIXED_BUCKET)
        assert result.error is api_error
        assert market_client.trending_calls == 0


class TestForcedSelection:
    def test_first_listed_token_wins(self, market_client):
        result = make_service(market_client, force_token_list='solana,pepe').select_token(FIXED_BUCKET)
        selected = result.value
        assert selected.id == 'solana'
        assert selected.candidate.source == CandidateSource.FORCED
        assert selected.candidate.force_priority == 0
        assert selected.scores.final == 1.0
        assert market_client.trending_calls == 0

    def test_missing_ids_are_skipped(self, market_client):
        result = make_service(market_client, force_token_list='ghost,pepe').select_token(FIXED_BUCKET)
        assert result.value.id == 'pepe'

    def test_forced_ignores_recency(self, market_client):
        mark_recent('solana')
        result = make_service(market_client, force_token_list='solana').select_token(FIXED_BUCKET)
        assert result.value.id == 'solana'

    def test_no_market_data_for_forced_ids(self, market_client):
        result = make_service(market_client, force_token_list='ghost').select_token(FIXED_BUCKET)
        assert not result.ok
        assert result.error.kind == 'ExternalApiError'
