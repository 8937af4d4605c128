"""
Prompt composition for one generation bucket.

The weighted prompt weighs the selected token against BTC, ETH and the rest
of the market. Directive lines carry the painting context. The visual params
dict is hashed into ``params_hash``, which with the bucket fixes the seed and
the filename.
"""
import logging
from doom_index.domain import PromptComposition
from doom_index.errors import Result
from doom_index.pipeline.weighted_prompt import WeightConfig, build_prompt, calculate_dominance_weights
from doom_index.services.token_context_service import FALLBACK_SHORT_CONTEXT
from doom_index.utils.hashing import hash_visual_params, seed_for_bucket
from doom_index.utils.paintings import build_generation_filename

logger = logging.getLogger(__name__)

IMAGE_FORMAT = 'webp'


def dominance_map(snapshot, selected):
    total = max(0.0, snapshot.total_market_cap_usd or 0.0)
    btc = total * max(0.0, snapshot.btc_dominance or 0.0) / 100
    eth = total * max(0.0, snapshot.eth_dominance or 0.0) / 100
    return {
        'BTC': btc,
        'ETH': eth,
        'ALTS': max(0.0, total - btc - eth),
        'TOKEN': max(0.0, selected.candidate.market_cap_usd or 0.0),
    }


def token_phrase(context):
    motifs = ', '.join(m.replace('-', ' ') for m in context.motifs)
    return (
        f"{context.token_name} as a {context.composition.value.replace('-', ' ')} of {motifs} "
        f"in {context.palette.value.replace('-', ' ')} tones"
    )


def directive_lines(context, short_context):
    event = context.event
    return [
        f"token: {context.token_name} ({context.token_symbol}), {short_context}",
        f"climate: {context.climate.value}, archetype: {context.archetype.value}, "
        f"event: {event.kind.value} (intensity {event.intensity})",
        f"composition: {context.composition.value}, palette: {context.palette.value}, "
        f"motifs: {', '.join(context.motifs) or 'none'}",
        f"trend: {context.dynamics.direction.value}, volatility: {context.dynamics.volatility.value}",
        f"narrative: {'; '.join(context.narrative_hints) or 'none'}",
    ]


class PromptService:
    def __init__(self, weight_config=None, width=1024, height=1024, token_context_service=None):
        self.weight_config = weight_config or WeightConfig()
        self.width = width
        self.height = height
        self.token_context_service = token_context_service

    def _short_context(self, selected):
        if self.token_context_service is None:
            return FALLBACK_SHORT_CONTEXT
        return self.token_context_service.resolve_short_context(selected.candidate)

    def compose(self, context, selected, bucket):
        mc_map = dominance_map(context.market, selected)
        weights = calculate_dominance_weights(mc_map, self.weight_config)
        weighted = build_prompt(mc_map, self.weight_config, phrases={'TOKEN': token_phrase(context)})

        visual_params = {
            'bucket': bucket,
            'context': context.to_dict(),
            'weights': {token: round(w, 3) for token, w in weights.items()},
            'size': {'w': self.width, 'h': self.height},
        }
        params_hash = hash_visual_params(visual_params)
        seed = seed_for_bucket(bucket, params_hash)

        prompt = '\n'.join([weighted.prompt, *directive_lines(context, self._short_context(selected))])

        composition = PromptComposition(
            prompt=prompt,
            negative=weighted.negative,
            width=self.width,
            height=self.height,
            format=IMAGE_FORMAT,
            seed=seed,
            params_hash=params_hash,
            minute_bucket=bucket,
            filename=build_generation_filename(bucket, params_hash, seed),
            visual_params=visual_params,
        )
        logger.info(f"Composed prompt for {selected.id}: params_hash={params_hash} seed={seed} "
                    f"chars={len(prompt)}")
        return Result.success(composition)
