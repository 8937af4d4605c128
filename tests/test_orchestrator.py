from unittest.mock import patch

from conftest import FIXED_BUCKET, FIXED_NOW, CountingImageProvider, FakeMarketClient, make_snapshot
from doom_index.errors import ConfigurationError, ExternalApiError, Result, StorageError
from doom_index.pipeline.orchestrator import STATUS_FAILED, STATUS_GENERATED, STATUS_SKIPPED
from doom_index.repositories import MarketSnapshotRepository, PaintingsRepository, TokensRepository
from doom_index.services.container import run_generation_once
from doom_index.services.painting_context_builder import PaintingContextBuilder
from doom_index.utils.paintings import is_valid_painting_filename


class TestGeneratedRun:
    def test_generates_and_persists(self, make_orchestrator, image_provider, blob_store):
        result = make_orchestrator().run(FIXED_NOW)

        assert result.status == STATUS_GENERATED
        assert result.bucket == FIXED_BUCKET
        assert result.selected_token.id == 'pepe'
        assert is_valid_painting_filename(f"{result.painting_id}.webp")
        assert result.painting_id.startswith('DOOM_202511141200_')
        assert result.image_url == f"https://storage.example.com/images/2025/11/14/{result.painting_id}.webp"
        assert image_provider.calls == 1

        key = f"images/2025/11/14/{result.painting_id}.webp"
        assert blob_store.get(key).startswith(b'RIFF')

        painting = PaintingsRepository().find_by_hour_bucket(FIXED_BUCKET).value
        assert painting.id == result.painting_id
        assert painting.params_hash == result.params_hash
        assert painting.seed == result.seed
        assert painting.storage_key == key
        assert painting.timestamp == '2025-11-14T12:00:00Z'
        assert painting.token_id == 'pepe'
        assert painting.file_size == len(blob_store.get(key))

        assert MarketSnapshotRepository().find_by_hour_bucket(FIXED_BUCKET).value is not None
        assert TokensRepository().find_by_id('pepe').value.last_selected_at is not None

    def test_result_serialises(self, make_orchestrator):
        data = make_orchestrator().run(FIXED_NOW).to_dict()
        assert data['status'] == 'generated'
        assert data['selected_token']['id'] == 'pepe'
        assert 'error' not in data

    def test_forced_token(self, make_orchestrator):
        result = make_orchestrator(FORCE_TOKEN_LIST='solana').run(FIXED_NOW)
        assert result.selected_token.id == 'solana'
        assert result.selected_token.scores.final == 1.0

    def test_interval_sets_bucket(self, make_orchestrator):
        result = make_orchestrator(GENERATION_INTERVAL_MINUTES=10).run(FIXED_NOW)
        assert result.bucket == '2025-11-14T12:30'
        assert result.painting_id.startswith('DOOM_202511141230_')


class TestIdempotency:
    def test_second_run_in_bucket_is_skipped(self, make_orchestrator, image_provider):
        first = make_orchestrator().run(FIXED_NOW)
        second = make_orchestrator().run(FIXED_NOW.replace(minute=59))

        assert first.status == STATUS_GENERATED
        assert second.status == STATUS_SKIPPED
        assert second.bucket == FIXED_BUCKET
        assert image_provider.calls == 1
        assert len(PaintingsRepository().list(10).value.items) == 1

    def test_existing_snapshot_skips_before_any_fetch(self, make_orchestrator, market_client, image_provider):
        MarketSnapshotRepository().upsert(FIXED_BUCKET, make_snapshot())
        result = make_orchestrator().run(FIXED_NOW)

        assert result.status == STATUS_SKIPPED
        assert result.reason == 'snapshot already stored for bucket'
        assert market_client.trending_calls == 0
        assert market_client.global_calls == 0
        assert image_provider.calls == 0

    def test_concurrent_claim_is_skipped(self, make_orchestrator, image_provider, monkeypatch):
        MarketSnapshotRepository().upsert(FIXED_BUCKET, make_snapshot())
        # Both lookups miss, as they would for a run racing the one that stored the row
        monkeypatch.setattr(MarketSnapshotRepository, 'find_by_hour_bucket',
                            lambda self, bucket: Result.success(None))

        result = make_orchestrator().run(FIXED_NOW)
        assert result.status == STATUS_SKIPPED
        assert result.reason == 'bucket claimed by a concurrent run'
        assert image_provider.calls == 0

    def test_next_bucket_generates_again(self, make_orchestrator, image_provider):
        make_orchestrator().run(FIXED_NOW)
        result = make_orchestrator().run(FIXED_NOW.replace(hour=13))
        assert result.status == STATUS_GENERATED
        assert result.bucket == '2025-11-14T13:00'
        assert image_provider.calls == 2


class TestFailures:
    def test_selection_failure_leaves_bucket_open(self, make_orchestrator, image_provider, api_error):
        market = FakeMarketClient(trending_error=api_error)
        result = make_orchestrator(market=market).run(FIXED_NOW)

        assert result.status == STATUS_FAILED
        assert result.step == 'select_token'
        assert result.error.kind == 'ExternalApiError'
        assert image_provider.calls == 0
        assert MarketSnapshotRepository().find_by_hour_bucket(FIXED_BUCKET).value is None

    def test_market_data_failure(self, make_orchestrator, api_error):
        market = FakeMarketClient(global_error=api_error)
        result = make_orchestrator(market=market).run(FIXED_NOW)
        assert result.status == STATUS_FAILED
        assert result.step == 'select_token'
        assert result.error is api_error

    def test_image_failure_keeps_claim(self, make_orchestrator, blob_store):
        provider = CountingImageProvider(error=ExternalApiError('Runware', 'model overloaded', status=503))
        result = make_orchestrator(provider=provider).run(FIXED_NOW)

        assert result.status == STATUS_FAILED
        assert result.step == 'generate_image'
        assert result.to_dict()['error']['status'] == 503
        assert PaintingsRepository().find_by_hour_bucket(FIXED_BUCKET).value is None

        retry = make_orchestrator(provider=provider).run(FIXED_NOW)
        assert retry.status == STATUS_SKIPPED
        assert provider.calls == 1

    def test_blob_failure(self, make_orchestrator, blob_store, monkeypatch):
        def fail_put(key, data, content_type=None):
            raise StorageError('put', key, 'disk full')

        monkeypatch.setattr(blob_store, 'put', fail_put)
        result = make_orchestrator().run(FIXED_NOW)
        assert result.status == STATUS_FAILED
        assert result.step == 'persist_blob'
        assert result.error.kind == 'StorageError'

    def test_index_failure_still_reports_generated(self, make_orchestrator, blob_store):
        failure = Result.failure(StorageError('put', 'images/x.webp', 'db gone'))
        with patch.object(PaintingsRepository, 'insert', return_value=failure) as insert:
            result = make_orchestrator().run(FIXED_NOW)

        assert insert.call_count == 1
        assert result.status == STATUS_GENERATED
        assert blob_store.exists(f"images/2025/11/14/{result.painting_id}.webp")

    def test_index_conflict_is_skipped(self, make_orchestrator):
        with patch.object(PaintingsRepository, 'insert', return_value=Result.success(False)):
            result = make_orchestrator().run(FIXED_NOW)
        assert result.status == STATUS_SKIPPED
        assert result.reason == 'painting already indexed by a concurrent run'

    def test_unexpected_error_becomes_internal_error(self, make_orchestrator):
        with patch.object(PaintingContextBuilder, 'build_context', side_effect=RuntimeError('boom')):
            result = make_orchestrator().run(FIXED_NOW)
        assert result.status == STATUS_FAILED
        assert result.step == 'unexpected'
        assert result.error.kind == 'InternalError'
        assert result.error.message == 'boom'


class TestRunGenerationOnce:
    def test_configuration_error_fails_run(self, app):
        config = {**app.config, 'IMAGE_PROVIDER': 'dalle'}
        result = run_generation_once(config, now=FIXED_NOW)
        assert result.status == STATUS_FAILED
        assert result.step == 'configure'
        assert isinstance(result.error, ConfigurationError)
        assert result.bucket == FIXED_BUCKET
