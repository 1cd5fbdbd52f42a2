"""Read-only views over the local store."""

from collections import defaultdict
from typing import Dict, List

from packlog.types import DayGroup, DaySummary, PackingStatus, Record
from packlog.utils import validate_entry_date


class ViewsMixin:
    """Day lists, backlog and per-day counters. Nothing here writes."""

    def list_records(self) -> List[Record]:
        return self._store.list()

    def list_for_day(self, entry_date: str) -> List[Record]:
        """Records logged under ``entry_date``, newest first."""
        validate_entry_date(entry_date)
        records = [r for r in self._store.list() if r.entry_date == entry_date]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def list_backlog(self, before_date: str) -> List[Record]:
        """PENDING records from workdays strictly before ``before_date``, oldest day first."""
        validate_entry_date(before_date)
        records = [
            r
            for r in self._store.list()
            if r.status == PackingStatus.PENDING and r.entry_date < before_date
        ]
        return sorted(records, key=lambda r: r.entry_date)

    def day_groups(self) -> List[DayGroup]:
        """All records grouped by workday, most recent day first."""
        by_day: Dict[str, List[Record]] = defaultdict(list)
        for record in self._store.list():
            by_day[record.entry_date].append(record)
        return [
            DayGroup(
                date=day,
                records=sorted(by_day[day], key=lambda r: r.created_at, reverse=True),
            )
            for day in sorted(by_day, reverse=True)
        ]

    def day_summary(self, entry_date: str) -> DaySummary:
        summary = DaySummary(date=entry_date)
        for record in self.list_for_day(entry_date):
            summary.total += 1
            summary.boxes += record.box_count
            if record.is_packed:
                summary.packed += 1
            else:
                summary.pending += 1
        return summary
