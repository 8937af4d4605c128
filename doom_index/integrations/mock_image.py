import hashlib
import logging
import struct
from doom_index.domain import ImageResponse

logger = logging.getLogger(__name__)


class MockImageProvider:
    """Offline provider for tests and local runs: deterministic placeholder bytes, no network."""

    name = 'mock'

    def generate(self, request):
        digest = hashlib.sha256(f"{request.seed}:{request.prompt}".encode('utf-8')).digest()
        payload = b'VP8 ' + struct.pack('<I', len(digest)) + digest
        image_bytes = b'RIFF' + struct.pack('<I', len(payload) + 4) + b'WEBP' + payload

        logger.info(f"Mock image generated: {request.width}x{request.height} seed={request.seed} "
                    f"prompt_chars={len(request.prompt)}")
        return ImageResponse(image_bytes=image_bytes, provider_meta={'provider': self.name, 'mock': True})
