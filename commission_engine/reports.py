"""
Commission Reports

Daily/monthly trends and per-person listings over recorded commissions.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict

from .models import LedgerEntry
from .output import to_jsonable, to_money

PERIOD_FORMATS = {
    "daily": "%Y-%m-%d",
    "monthly": "%Y-%m",
}

PERSON_SOURCES = {
    "referral": "referral_id",
    "staff": "staff_id",
}


class CommissionReports:
    """Aggregates ledger entries for dashboards."""

    def trends(
        self,
        entries: list[LedgerEntry],
        period: str = "daily",
        limit: int = 30,
        source: str | None = None,
    ) -> list[dict]:
        """
        Totals per day or month, newest period first.

        Entries are dated by invoiced_date, falling back to created_at;
        undated entries are left out.
        """
        self._check_limit(limit)
        grouped = self._group_by_period(self._filter_source(entries, source), period)

        items = []
        for key in sorted(grouped, reverse=True)[:limit]:
            bucket = grouped[key]
            items.append({
                "period": key,
                "total_commission": to_money(sum((e.commission_amount for e in bucket), Decimal("0"))),
                "total_paid": to_money(sum((e.amount_paid for e in bucket), Decimal("0"))),
                "total_records": len(bucket),
                "commission_types": sorted({e.commission_type for e in bucket if e.commission_type}),
                "sources": sorted({e.source for e in bucket if e.source}),
            })
        return items

    def top_records(
        self,
        entries: list[LedgerEntry],
        period: str = "daily",
        limit: int = 30,
        source: str | None = None,
        per_period: int = 5,
    ) -> list[dict]:
        """Per period, the earners with the highest total commission."""
        self._check_limit(limit)
        grouped = self._group_by_period(self._filter_source(entries, source), period)

        items = []
        for key in sorted(grouped, reverse=True)[:limit]:
            totals: dict[tuple, list[Decimal]] = defaultdict(lambda: [Decimal("0"), Decimal("0")])
            for entry in grouped[key]:
                bucket = totals[(entry.name, entry.source, entry.commission_type)]
                bucket[0] += entry.commission_amount
                bucket[1] += entry.amount_paid

            records = [
                {
                    "name": name,
                    "source": entry_source,
                    "commission_type": commission_type,
                    "total_commission": to_money(commission),
                    "total_paid": to_money(paid),
                }
                for (name, entry_source, commission_type), (commission, paid) in totals.items()
            ]
            records.sort(key=lambda r: r["total_commission"], reverse=True)
            items.append({"period": key, "records": records[:per_period]})
        return items

    def commission_records(
        self,
        entries: list[LedgerEntry],
        period: str = "daily",
        limit: int = 30,
        source: str | None = None,
    ) -> list[dict]:
        """
        Individual commissions labelled with their period, newest invoice first.

        Here limit counts records, not periods. Entries without an invoiced_date
        come after the invoiced ones.
        """
        self._check_limit(limit)
        fmt = self._period_format(period)
        selected = self._filter_source(entries, source)

        invoiced = sorted((e for e in selected if e.invoiced_date), key=lambda e: e.invoiced_date, reverse=True)
        ordered = invoiced + [e for e in selected if not e.invoiced_date]

        return [
            {
                "period": entry.reported_at.strftime(fmt) if entry.reported_at else None,
                "name": entry.name or "N/A",
                "source": entry.source or "N/A",
                "commission_type": entry.commission_type or "N/A",
                "commission_percent": float(entry.commission_percent),
                "commission_amount": to_money(entry.commission_amount),
                "amount_paid": to_money(entry.amount_paid),
                "created_at": to_jsonable(entry.created_at),
                "invoiced_date": to_jsonable(entry.invoiced_date),
            }
            for entry in ordered[:limit]
        ]

    def by_person(
        self, entries: list[LedgerEntry], clinic_id: str | None, source: str, person_id: str | None
    ) -> list[LedgerEntry]:
        """All commissions one referral or staff member earned at a clinic, newest first."""
        if not clinic_id:
            raise ValueError("clinic_id is required")
        field_name = PERSON_SOURCES.get(source)
        if field_name is None:
            raise ValueError(f"Invalid source: {source}. Must be 'referral' or 'staff'")
        if not person_id:
            raise ValueError(f"{field_name} is required for {source} source")

        matched = [e for e in entries if e.clinic_id == clinic_id and getattr(e, field_name) == person_id]
        dated = sorted((e for e in matched if e.created_at), key=lambda e: e.created_at, reverse=True)
        return dated + [e for e in matched if not e.created_at]

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Convenience method for API usage."""
        entries = [LedgerEntry.from_dict(e) for e in data.get("entries", [])]
        period = data.get("period", "daily")
        limit = int(data.get("limit", 30))
        source = data.get("source")
        top = bool(data.get("top_records", False))
        records = bool(data.get("commission_records", False))

        result = {"period_type": period, "source": source or "all"}
        if records:
            result["items"] = self.commission_records(entries, period, limit, source)
            result["commission_records"] = True
        elif top:
            result["items"] = self.top_records(entries, period, limit, source)
            result["top_records"] = True
        else:
            result["items"] = self.trends(entries, period, limit, source)
            result["top_records"] = False
        return result

    def process_by_person_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        source = data.get("source")
        field_name = PERSON_SOURCES.get(source)
        person_id = data.get(field_name) if field_name else None
        entries = [LedgerEntry.from_dict(e) for e in data.get("entries", [])]

        matched = self.by_person(entries, data.get("clinic_id"), source, person_id)

        return {
            "items": [to_jsonable(entry) for entry in matched],
            "source": source,
            "total_commission": to_money(sum((e.commission_amount for e in matched), Decimal("0"))),
            "total_paid": to_money(sum((e.amount_paid for e in matched), Decimal("0"))),
        }

    @staticmethod
    def _check_limit(limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got: {limit}")

    @staticmethod
    def _period_format(period: str) -> str:
        fmt = PERIOD_FORMATS.get(period)
        if fmt is None:
            raise ValueError(f"Invalid period: {period}. Must be 'daily' or 'monthly'")
        return fmt

    @staticmethod
    def _filter_source(entries: list[LedgerEntry], source: str | None) -> list[LedgerEntry]:
        if source is None:
            return list(entries)
        return [e for e in entries if e.source == source]

    def _group_by_period(self, entries: list[LedgerEntry], period: str) -> dict[str, list[LedgerEntry]]:
        fmt = self._period_format(period)

        grouped: dict[str, list[LedgerEntry]] = defaultdict(list)
        for entry in entries:
            when = entry.reported_at
            if when is not None:
                grouped[when.strftime(fmt)].append(entry)
        return grouped
