"""
One generation cycle per time bucket.

    check idempotency -> select token -> fetch market data -> store snapshot
    -> build context -> generate image -> persist blob + index row

The bucket's market snapshot row doubles as the claim: only the run whose
insert creates it goes on to call the image provider. Every other run for
the bucket ends as ``skipped``.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from doom_index.domain import PaintingMetadata, SelectedToken
from doom_index.errors import AppError, InternalError, StorageError
from doom_index.utils.paintings import build_painting_key, build_public_url, extract_id_from_filename
from doom_index.utils.time import get_interval_bucket, utcnow

logger = logging.getLogger(__name__)

STATUS_GENERATED = 'generated'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'


@dataclass(frozen=True)
class GenerationResult:
    status: str
    bucket: str
    selected_token: Optional[SelectedToken] = None
    image_url: Optional[str] = None
    params_hash: Optional[str] = None
    seed: Optional[str] = None
    painting_id: Optional[str] = None
    reason: Optional[str] = None
    step: Optional[str] = None
    error: Optional[AppError] = None

    def to_dict(self):
        data = {'status': self.status, 'bucket': self.bucket}
        if self.selected_token is not None:
            data['selected_token'] = self.selected_token.to_dict()
        for key in ('image_url', 'params_hash', 'seed', 'painting_id', 'reason', 'step'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.error is not None:
            data['error'] = self.error.to_dict()
        return data


class GenerationOrchestrator:
    def __init__(self, market_data_service, token_selection_service, context_builder,
                 image_generation_service, blob_store, paintings_repository,
                 public_base_url=None, interval_minutes=60, clock=utcnow):
        self.market_data_service = market_data_service
        self.token_selection_service = token_selection_service
        self.context_builder = context_builder
        self.image_generation_service = image_generation_service
        self.blob_store = blob_store
        self.paintings_repository = paintings_repository
        self.public_base_url = public_base_url
        self.interval_minutes = interval_minutes
        self.clock = clock

    def run(self, now=None):
        bucket = get_interval_bucket(now or self.clock(), self.interval_minutes)
        logger.info(f"=== [Orchestrator] Generation starting for bucket {bucket} ===")
        try:
            result = self._run(bucket)
        except Exception as e:
            logger.error(f"[Orchestrator] bucket={bucket} unexpected error: {e}", exc_info=True)
            result = GenerationResult(status=STATUS_FAILED, bucket=bucket, step='unexpected',
                                      error=InternalError(str(e) or type(e).__name__))
        logger.info(f"=== [Orchestrator] Bucket {bucket} finished: {result.status} ===")
        return result

    def _failed(self, bucket, step, error):
        logger.error(f"[Orchestrator] bucket={bucket} step={step} failed: {error.kind}: {error.message}")
        return GenerationResult(status=STATUS_FAILED, bucket=bucket, step=step, error=error)

    def _skipped(self, bucket, reason):
        logger.info(f"[Orchestrator] bucket={bucket} skipped: {reason}")
        return GenerationResult(status=STATUS_SKIPPED, bucket=bucket, reason=reason)

    def _run(self, bucket):
        # Step 1: idempotency gate
        existing = self.market_data_service.find_by_hour_bucket(bucket)
        if not existing.ok:
            return self._failed(bucket, 'check_idempotency', existing.error)
        if existing.value is not None:
            return self._skipped(bucket, 'snapshot already stored for bucket')
        painted = self.paintings_repository.find_by_hour_bucket(bucket)
        if not painted.ok:
            return self._failed(bucket, 'check_idempotency', painted.error)
        if painted.value is not None:
            return self._skipped(bucket, 'painting already stored for bucket')

        # Step 2: token selection
        selected = self.token_selection_service.select_token(bucket)
        if not selected.ok:
            return self._failed(bucket, 'select_token', selected.error)
        token = selected.value

        # Step 3: market data (cached per bucket by the service)
        market = self.market_data_service.fetch_global_market_data(bucket)
        if not market.ok:
            return self._failed(bucket, 'fetch_market_data', market.error)
        snapshot = market.value

        # Step 4: store snapshot; a False result means another run claimed the bucket
        stored = self.market_data_service.store_market_snapshot(bucket, snapshot)
        if not stored.ok:
            return self._failed(bucket, 'store_market_snapshot', stored.error)
        if not stored.value:
            return self._skipped(bucket, 'bucket claimed by a concurrent run')

        # Step 5: context
        context = self.context_builder.build_context(token, snapshot)
        if not context.ok:
            return self._failed(bucket, 'build_context', context.error)

        # Step 6: image
        image = self.image_generation_service.generate(context.value, token, bucket)
        if not image.ok:
            return self._failed(bucket, 'generate_image', image.error)

        return self._persist(bucket, token, image.value)

    def _persist(self, bucket, token, image):
        composition = image.composition
        timestamp = f"{bucket}:00Z"
        key = build_painting_key(timestamp, composition.filename)

        try:
            self.blob_store.put(key, image.image_bytes, content_type=f"image/{composition.format}")
        except AppError as e:
            return self._failed(bucket, 'persist_blob', e)

        metadata = PaintingMetadata(
            id=extract_id_from_filename(composition.filename),
            timestamp=timestamp,
            minute_bucket=composition.minute_bucket,
            bucket=bucket,
            params_hash=composition.params_hash,
            seed=composition.seed,
            image_url=build_public_url(key, self.public_base_url),
            file_size=len(image.image_bytes),
            visual_params=composition.visual_params,
            prompt=composition.prompt,
            negative=composition.negative,
            token_id=token.id,
        )

        inserted = self.paintings_repository.insert(metadata, key)
        if not inserted.ok:
            # Blob stays behind without an index row
            error = inserted.error
            if not isinstance(error, StorageError):
                error = StorageError('insert', key, error.message)
            logger.error(f"[Orchestrator] bucket={bucket} step=persist_index failed: {error.kind}: "
                         f"{error.message} (orphaned blob {key})")
        elif not inserted.value:
            return self._skipped(bucket, 'painting already indexed by a concurrent run')

        logger.info(f"[Orchestrator] bucket={bucket} generated {metadata.id} for {token.id} "
                    f"({metadata.file_size} bytes)")
        return GenerationResult(
            status=STATUS_GENERATED,
            bucket=bucket,
            selected_token=token,
            image_url=metadata.image_url,
            params_hash=metadata.params_hash,
            seed=metadata.seed,
            painting_id=metadata.id,
        )
