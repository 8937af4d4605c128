import logging
from doom_index.errors import AppError

logger = logging.getLogger(__name__)

MIN_SHORT_CONTEXT_LENGTH = 50
MAX_SHORT_CONTEXT_LENGTH = 500

FALLBACK_SHORT_CONTEXT = (
    'A speculative crypto token with unclear fundamentals but strong narrative-driven price action. '
    'Symbolic themes: crowds, flickering candles, unstable altars, and volatile market winds.'
)

SYSTEM_PROMPT = """You are a cryptocurrency token analyst. Analyze the provided token information and return a JSON object with these fields:
- short_context: a 2-4 sentence English description of the token's purpose, narrative and key characteristics (50-500 characters)
- category: a single word category (e.g. "meme", "defi", "nft", "governance", "utility")
- tags: an array of 2-5 relevant lowercase tags (e.g. ["meme", "viral", "community-driven"])

Respond with JSON only."""


class TokenContextService:
    """
    Short narrative for a token, generated once by the LLM and cached on the
    token row. Never fails: any problem yields FALLBACK_SHORT_CONTEXT.
    """

    def __init__(self, llm_gateway=None, tokens_repository=None, enabled=True):
        self.llm_gateway = llm_gateway
        self.tokens_repository = tokens_repository
        self.enabled = enabled

    def _cached(self, token_id):
        if self.tokens_repository is None:
            return None
        stored = self.tokens_repository.find_by_id(token_id)
        if stored.ok and stored.value is not None:
            return stored.value.short_context
        return None

    def _generate(self, candidate):
        user_prompt = (
            f"Token Information:\n"
            f"Name: {candidate.name}\n"
            f"Symbol: {candidate.symbol}\n"
            f"CoinGecko id: {candidate.id}\n"
            f"Categories: {', '.join(candidate.categories) or 'unknown'}\n\n"
            f"Generate a concise context JSON for this token."
        )
        data = self.llm_gateway.generate_json(SYSTEM_PROMPT, user_prompt, purpose='token_context')
        short_context = str(data.get('short_context') or '').strip()
        if len(short_context) < MIN_SHORT_CONTEXT_LENGTH:
            logger.warning(f"Rejected short context for {candidate.id}: {len(short_context)} chars")
            return None, []
        tags = [str(t).strip().lower() for t in (data.get('tags') or []) if str(t).strip()]
        category = str(data.get('category') or '').strip().lower()
        if category and category not in tags:
            tags.insert(0, category)
        return short_context[:MAX_SHORT_CONTEXT_LENGTH], tags

    def resolve_short_context(self, candidate):
        cached = self._cached(candidate.id)
        if cached:
            return cached

        if not self.enabled or self.llm_gateway is None or not self.llm_gateway.available:
            return FALLBACK_SHORT_CONTEXT

        try:
            short_context, tags = self._generate(candidate)
        except AppError as e:
            logger.warning(f"Token context generation failed for {candidate.id} ({e.kind}): {e.message}")
            return FALLBACK_SHORT_CONTEXT
        if not short_context:
            return FALLBACK_SHORT_CONTEXT

        if self.tokens_repository is not None:
            saved = self.tokens_repository.update_context(candidate.id, short_context,
                                                          categories=None if candidate.categories else tags)
            if not saved.ok:
                logger.warning(f"Could not cache token context for {candidate.id}: {saved.error.message}")
        logger.info(f"Generated token context for {candidate.id} ({len(short_context)} chars)")
        return short_context
