# royalty_ledger/registry/royalty.py
from royalty_ledger.core.keys import ConfigKey
from royalty_ledger.core.types import RoyaltyConfig, RoyaltyTerms
from royalty_ledger.errors import NotFound, Unauthorized
from royalty_ledger.registry.context import LedgerContext


class RoyaltyConfigStore:
    """Per-work royalty terms, one config per work."""

    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def get(self, work_id: int) -> RoyaltyConfig:
        record = self.ctx.tx.get(ConfigKey(work_id))
        if record is None:
            raise NotFound("Royalty configuration", work_id)
        return RoyaltyConfig.from_dict(record)

    def create(self, work_id: int, terms: RoyaltyTerms) -> RoyaltyConfig:
        config = RoyaltyConfig.from_terms(work_id, terms.validate())
        self.ctx.tx.set(ConfigKey(work_id), config.to_dict())
        return config

    def update(self, work_id: int, caller: str, new_terms: RoyaltyTerms) -> RoyaltyConfig:
        """Replace the whole config; partial updates are not supported."""
        from royalty_ledger.registry.works import WorkRegistry

        work = WorkRegistry(self.ctx).get(work_id)
        if work.creator != caller:
            raise Unauthorized(f"Only the creator can update royalty configuration of work {work_id}")
        return self.create(work_id, new_terms)
