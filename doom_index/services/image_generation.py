import logging
from dataclasses import dataclass, field

from doom_index.domain import ImageRequest, PromptComposition
from doom_index.errors import AppError, ConfigurationError, ExternalApiError, Result
from doom_index.integrations.mock_image import MockImageProvider
from doom_index.integrations.runware import RunwareImageProvider

logger = logging.getLogger(__name__)


def create_image_provider(app_config):
    name = (app_config.get('IMAGE_PROVIDER') or 'runware').lower()
    if name == 'mock':
        return MockImageProvider()
    if name == 'runware':
        return RunwareImageProvider(
            api_key=app_config.get('RUNWARE_API_KEY'),
            timeout=app_config.get('IMAGE_TIMEOUT_SECONDS', 15),
        )
    raise ConfigurationError(f"Unknown IMAGE_PROVIDER: {name}", missing_var='IMAGE_PROVIDER')


@dataclass(frozen=True)
class ImageGenerationResult:
    composition: PromptComposition
    image_bytes: bytes
    provider_meta: dict = field(default_factory=dict)


class ImageGenerationService:
    def __init__(self, prompt_service, provider, model=None):
        self.prompt_service = prompt_service
        self.provider = provider
        self.model = model

    def generate(self, context, selected, bucket):
        composed = self.prompt_service.compose(context, selected, bucket)
        if not composed.ok:
            return composed
        composition = composed.value

        request = ImageRequest(
            prompt=composition.prompt,
            negative=composition.negative,
            width=composition.width,
            height=composition.height,
            seed=composition.seed,
            format=composition.format,
            model=self.model,
        )
        provider_name = getattr(self.provider, 'name', type(self.provider).__name__)
        logger.info(f"Requesting image from {provider_name} for {composition.filename}")
        try:
            response = self.provider.generate(request)
        except AppError as e:
            logger.error(f"Image provider {provider_name} failed ({e.kind}): {e.message}")
            return Result.failure(e)

        if not response.image_bytes:
            return Result.failure(ExternalApiError(provider_name, 'Image provider returned an empty image'))

        return Result.success(ImageGenerationResult(
            composition=composition,
            image_bytes=response.image_bytes,
            provider_meta=dict(response.provider_meta),
        ))
