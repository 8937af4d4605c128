"""Wires one orchestrator per invocation from app config. Nothing is shared between runs."""
import logging
from flask import current_app

from doom_index import feature_flags
from doom_index.errors import AppError
from doom_index.integrations.alternative_me import FearGreedClient
from doom_index.integrations.blob_store import LocalBlobStore
from doom_index.integrations.coingecko import CoinGeckoClient
from doom_index.integrations.llm_gateway import LLMGateway
from doom_index.pipeline.orchestrator import STATUS_FAILED, GenerationOrchestrator, GenerationResult
from doom_index.pipeline.weighted_prompt import WeightConfig
from doom_index.repositories import MarketSnapshotRepository, PaintingsRepository, TokensRepository
from doom_index.services.image_generation import ImageGenerationService, create_image_provider
from doom_index.services.market_data_service import MarketDataService
from doom_index.services.painting_context_builder import PaintingContextBuilder
from doom_index.services.prompt_service import PromptService
from doom_index.services.token_context_service import TokenContextService
from doom_index.services.token_selection import TokenSelectionService
from doom_index.utils.time import get_interval_bucket

logger = logging.getLogger(__name__)


def build_orchestrator(app_config=None, market_client=None, sentiment_client=None,
                       image_provider=None, blob_store=None, llm_gateway=None, session=None):
    config = app_config or current_app.config
    interval = config.get('GENERATION_INTERVAL_MINUTES', 60)
    timeout = config.get('HTTP_TIMEOUT_SECONDS', 10)
    retries = config.get('HTTP_MAX_RETRIES', 3)

    market_client = market_client or CoinGeckoClient(
        api_key=config.get('COINGECKO_API_KEY'), timeout=timeout, max_retries=retries,
    )
    sentiment_client = sentiment_client or FearGreedClient(timeout=timeout, max_retries=retries)

    snapshots = MarketSnapshotRepository(session)
    tokens = TokensRepository(session)
    paintings = PaintingsRepository(session)

    market_data = MarketDataService(market_client, sentiment_client, snapshots, interval_minutes=interval)
    selection = TokenSelectionService(
        market_client,
        market_data,
        tokens,
        force_token_list=config.get('FORCE_TOKEN_LIST', ''),
        recent_window_hours=config.get('RECENT_SELECTION_WINDOW_HOURS', 24),
        recent_penalty=config.get('RECENT_SELECTION_PENALTY', 0.5),
        price_change_ceiling_pct=config.get('PRICE_CHANGE_CEILING_PCT', 50.0),
        exclude_stablecoins=feature_flags.is_enabled('exclude_stablecoins'),
    )

    token_context = TokenContextService(
        llm_gateway=llm_gateway or LLMGateway(config),
        tokens_repository=tokens,
        enabled=feature_flags.is_enabled('token_enrichment'),
    )
    prompts = PromptService(
        weight_config=WeightConfig(
            min_weight=config.get('PROMPT_MIN_WEIGHT', 0.75),
            max_weight=config.get('PROMPT_MAX_WEIGHT', 1.5),
            exponent=config.get('PROMPT_EXPONENT', 2.0),
        ),
        width=config.get('IMAGE_WIDTH', 1024),
        height=config.get('IMAGE_HEIGHT', 1024),
        token_context_service=token_context,
    )
    images = ImageGenerationService(
        prompts,
        image_provider or create_image_provider(config),
        model=config.get('IMAGE_MODEL'),
    )

    return GenerationOrchestrator(
        market_data_service=market_data,
        token_selection_service=selection,
        context_builder=PaintingContextBuilder(tokens),
        image_generation_service=images,
        blob_store=blob_store or LocalBlobStore(config.get('BLOB_STORE_ROOT')),
        paintings_repository=paintings,
        public_base_url=config.get('PUBLIC_STORAGE_URL'),
        interval_minutes=interval,
    )


def run_generation_once(app_config=None, now=None):
    config = app_config or current_app.config
    try:
        orchestrator = build_orchestrator(config)
    except AppError as e:
        bucket = get_interval_bucket(now, config.get('GENERATION_INTERVAL_MINUTES', 60))
        logger.error(f"[Orchestrator] bucket={bucket} step=configure failed: {e.kind}: {e.message}")
        return GenerationResult(status=STATUS_FAILED, bucket=bucket, step='configure', error=e)
    return orchestrator.run(now)
