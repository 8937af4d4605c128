import base64
import binascii
import logging
import uuid
import requests
from doom_index.domain import ImageResponse
from doom_index.errors import ConfigurationError, ExternalApiError, ProviderTimeoutError

logger = logging.getLogger(__name__)

PROVIDER = 'Runware'
API_URL = 'https://api.runware.ai/v1'
DEFAULT_MODEL = 'runware:100@1'
IMAGE_TO_IMAGE_MODEL = 'runware:106@1'


def seed_to_int(seed):
    """Runware takes an integer seed: the first 8 hex chars of ours."""
    if not seed:
        return None
    try:
        return int(seed[:8], 16)
    except ValueError:
        return None


class RunwareImageProvider:
    name = 'runware'

    def __init__(self, api_key, timeout=15, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _build_task(self, request, task_uuid):
        is_image_to_image = bool(request.reference_image_url)
        task = {
            'taskType': 'imageInference',
            'taskUUID': task_uuid,
            'model': IMAGE_TO_IMAGE_MODEL if is_image_to_image else (request.model or DEFAULT_MODEL),
            'positivePrompt': request.prompt,
            'negativePrompt': request.negative,
            'width': request.width,
            'height': request.height,
            'numberResults': 1,
            'outputFormat': 'PNG' if request.format == 'png' else 'WEBP',
            'outputType': ['base64Data'],
            'includeCost': True,
            'checkNSFW': True,
        }
        seed = seed_to_int(request.seed)
        if seed is not None:
            task['seed'] = seed
        if is_image_to_image:
            task.update({
                'steps': 18,
                'CFGScale': 2.5,
                'scheduler': 'Default',
                'inputs': {'referenceImages': [request.reference_image_url]},
            })
        return task

    def generate(self, request):
        """One inference call. Not retried: a retry could be billed twice."""
        if not self.api_key:
            raise ConfigurationError('RUNWARE_API_KEY is required to generate images', missing_var='RUNWARE_API_KEY')

        task_uuid = str(uuid.uuid4())
        task = self._build_task(request, task_uuid)
        logger.debug(f"Runware request {task_uuid}: model={task['model']} prompt={request.prompt[:80]!r}")

        try:
            resp = self.session.post(
                API_URL,
                json=[task],
                headers={'Authorization': f"Bearer {self.api_key}", 'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ProviderTimeoutError(int(self.timeout * 1000), f"{PROVIDER} request timed out") from e
        except requests.RequestException as e:
            raise ExternalApiError(PROVIDER, f"Runware request failed: {e}") from e

        if resp.status_code >= 400:
            raise ExternalApiError(PROVIDER, f"Runware returned {resp.status_code}: {resp.text[:200]}",
                                   status=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise ExternalApiError(PROVIDER, f"Runware returned non-JSON body: {e}") from e

        images = body if isinstance(body, list) else (body or {}).get('data')
        if not isinstance(images, list) or not images:
            raise ExternalApiError(PROVIDER, 'Runware request returned no image data')

        image = images[0]
        encoded = image.get('imageBase64Data')
        if not encoded:
            raise ExternalApiError(PROVIDER, 'Runware returned an image without base64 data')
        try:
            image_bytes = base64.b64decode(encoded)
        except (binascii.Error, ValueError) as e:
            raise ExternalApiError(PROVIDER, f"Runware image data is not valid base64: {e}") from e

        logger.info(f"Runware image generated: task={image.get('taskUUID')} bytes={len(image_bytes)} "
                    f"cost={image.get('cost')}")
        return ImageResponse(
            image_bytes=image_bytes,
            provider_meta={
                'provider': self.name,
                'task_uuid': image.get('taskUUID'),
                'model': task['model'],
                'seed': task.get('seed'),
                'cost': image.get('cost'),
            },
        )
