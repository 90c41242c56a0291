# royalty_ledger/registry/works.py
from dataclasses import replace
from typing import List

from royalty_ledger.core.keys import CreatorWorksKey, WorkKey
from royalty_ledger.core.types import CreativeWork, CreatorIndex, RoyaltyTerms
from royalty_ledger.errors import NotFound, Unauthorized
from royalty_ledger.registry.context import LedgerContext
from royalty_ledger.registry.counters import next_id
from royalty_ledger.registry.royalty import RoyaltyConfigStore
from royalty_ledger.registry.stats import StatsAggregator


class WorkRegistry:
    """Creative works and the per-creator index of who owns what."""

    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def register(
        self,
        creator: str,
        title: str,
        description: str,
        content_type: str,
        terms: RoyaltyTerms,
    ) -> int:
        """
        Register a new work owned by `creator` together with its royalty terms.
        Returns the new work id.
        """
        self.ctx.require_caller(creator)
        terms = terms.validate()

        work_id = next_id(self.ctx.tx, "works")
        work = CreativeWork(
            work_id=work_id,
            creator=creator,
            title=title,
            description=description,
            content_type=content_type,
            creation_time=self.ctx.clock.now(),
        )
        self._save(work)
        RoyaltyConfigStore(self.ctx).create(work_id, terms)

        index = self._load_index(creator)
        index.work_ids.append(work_id)
        self.ctx.tx.set(CreatorWorksKey(creator), index.to_dict())

        StatsAggregator(self.ctx).count_work()
        return work_id

    def get(self, work_id: int) -> CreativeWork:
        record = self.ctx.tx.get(WorkKey(work_id))
        if record is None:
            raise NotFound("Work", work_id)
        return CreativeWork.from_dict(record)

    def set_active(self, work_id: int, caller: str, active: bool) -> CreativeWork:
        work = self.get(work_id)
        if work.creator != caller:
            action = "reactivate" if active else "deactivate"
            raise Unauthorized(f"Only the creator can {action} work {work_id}")
        return self._save(replace(work, is_active=active))

    def list_for_creator(self, creator: str) -> List[int]:
        return list(self._load_index(creator).work_ids)

    def increment_license_count(self, work_id: int) -> CreativeWork:
        work = self.get(work_id)
        return self._save(replace(work, license_count=work.license_count + 1))

    def _load_index(self, creator: str) -> CreatorIndex:
        record = self.ctx.tx.get(CreatorWorksKey(creator))
        return CreatorIndex.from_dict(record) if record else CreatorIndex(creator, [])

    def _save(self, work: CreativeWork) -> CreativeWork:
        self.ctx.tx.set(WorkKey(work.work_id), work.to_dict())
        return work
