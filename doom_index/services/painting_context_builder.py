import logging
from doom_index.domain import PaintingContext, TokenSnapshot
from doom_index.errors import Result
from doom_index.pipeline import classify

logger = logging.getLogger(__name__)


class PaintingContextBuilder:
    def __init__(self, tokens_repository=None):
        self.tokens_repository = tokens_repository

    def _categories(self, selected):
        if self.tokens_repository is not None:
            stored = self.tokens_repository.find_by_id(selected.id)
            if stored.ok and stored.value is not None and stored.value.categories:
                return list(stored.value.categories)
            if not stored.ok:
                logger.warning(f"Token lookup failed for {selected.id}, using candidate categories: "
                               f"{stored.error.message}")
        return list(selected.candidate.categories)

    def build_context(self, selected, snapshot):
        candidate = selected.candidate
        categories = self._categories(selected)

        token_snapshot = TokenSnapshot(
            price_change_24h=candidate.price_change_24h,
            price_change_7d=candidate.price_change_7d,
            volume_24h_usd=candidate.volume_24h_usd,
            market_cap_usd=candidate.market_cap_usd,
            volatility=classify.volatility_score(candidate.price_change_24h, candidate.price_change_7d),
        )

        climate = classify.classify_market_climate(snapshot)
        archetype = classify.classify_token_archetype(candidate, categories)
        event = classify.classify_event_pressure(token_snapshot)

        context = PaintingContext(
            token_id=candidate.id,
            token_name=candidate.name,
            token_symbol=candidate.symbol,
            market=snapshot,
            token=token_snapshot,
            climate=climate,
            archetype=archetype,
            event=event,
            composition=classify.pick_composition(climate, archetype, event),
            palette=classify.pick_palette(climate, archetype, event),
            dynamics=classify.classify_dynamics(token_snapshot),
            motifs=tuple(classify.derive_motifs(archetype)),
            narrative_hints=tuple(classify.derive_narrative_hints(climate, event)),
        )
        logger.info(
            f"Painting context for {candidate.id}: climate={climate.value} archetype={archetype.value} "
            f"event={event.kind.value}/{event.intensity} composition={context.composition.value} "
            f"palette={context.palette.value}"
        )
        return Result.success(context)
