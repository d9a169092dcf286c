"""Entry stores: where day records come from and where packs go.

The pipelines only talk to the EntryStore protocol. Two implementations
ship here: an in-memory store for tests and embedding, and a JSON-file
store used by the CLI.

JSON layout under the store directory::

    days/2024-03-05.json
    packs/2024-03.json
    years/2024.json

Every write goes to a temporary file first and is moved into place with
``os.replace``, so an upsert either fully lands or leaves the old file.
Save failures (OSError) are raised unchanged.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError

from lifebook.core.models import DayRecord, MonthlyPack, YearlySummary

logger = logging.getLogger(__name__)


class EntryStore(Protocol):
    """Fetch/save contract used by the aggregation pipelines."""

    def fetch_day_records(self, start: date, end: date) -> list[DayRecord]:
        """Day records with ``start <= date < end``, sorted by date ascending."""
        ...

    def save_day_record(self, record: DayRecord) -> None: ...

    def fetch_monthly_packs(self, year: int) -> list[MonthlyPack]:
        """All monthly packs of a year, sorted by month."""
        ...

    def get_monthly_pack(self, year: int, month: int) -> MonthlyPack | None: ...

    def upsert_monthly_pack(self, pack: MonthlyPack) -> None: ...

    def get_yearly_summary(self, year: int) -> YearlySummary | None: ...

    def upsert_yearly_summary(self, summary: YearlySummary) -> None: ...


class InMemoryEntryStore:
    """Dictionary-backed store. Keys are the same as the JSON store's file stems."""

    def __init__(self, records: list[DayRecord] | None = None) -> None:
        self._days: dict[date, DayRecord] = {}
        self._packs: dict[tuple[int, int], MonthlyPack] = {}
        self._summaries: dict[int, YearlySummary] = {}
        for record in records or []:
            self.save_day_record(record)

    def fetch_day_records(self, start: date, end: date) -> list[DayRecord]:
        return [self._days[d] for d in sorted(self._days) if start <= d < end]

    def save_day_record(self, record: DayRecord) -> None:
        self._days[record.date] = record

    def fetch_monthly_packs(self, year: int) -> list[MonthlyPack]:
        return [self._packs[key] for key in sorted(self._packs) if key[0] == year]

    def get_monthly_pack(self, year: int, month: int) -> MonthlyPack | None:
        return self._packs.get((year, month))

    def upsert_monthly_pack(self, pack: MonthlyPack) -> None:
        self._packs[(pack.year, pack.month)] = pack

    def get_yearly_summary(self, year: int) -> YearlySummary | None:
        return self._summaries.get(year)

    def upsert_yearly_summary(self, summary: YearlySummary) -> None:
        self._summaries[summary.year] = summary


class JsonEntryStore:
    """One JSON document per day record, monthly pack and yearly summary.

    Files that fail to parse on read are logged and skipped; they are left
    on disk untouched.

    Example:
        >>> store = JsonEntryStore(Path("~/.lifebook/store").expanduser())
        >>> store.save_day_record(DayRecord(date=date(2024, 3, 5)))
        >>> [d.date for d in store.fetch_day_records(date(2024, 3, 1), date(2024, 4, 1))]
        [datetime.date(2024, 3, 5)]
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.days_dir = self.root / "days"
        self.packs_dir = self.root / "packs"
        self.years_dir = self.root / "years"
        self._logger = logging.getLogger(f"{__name__}.JsonEntryStore")

    # -------------------------------------------------------------------------
    # Day records
    # -------------------------------------------------------------------------

    def fetch_day_records(self, start: date, end: date) -> list[DayRecord]:
        records: list[DayRecord] = []
        if not self.days_dir.exists():
            return records

        for path in sorted(self.days_dir.glob("*.json")):
            try:
                stem_date = date.fromisoformat(path.stem)
            except ValueError:
                self._logger.warning(f"Ignoring unexpected file {path.name}")
                continue
            if not start <= stem_date < end:
                continue
            record = self._read(path, DayRecord)
            if record is not None:
                records.append(record)
        return records

    def save_day_record(self, record: DayRecord) -> None:
        self._write(self.days_dir / f"{record.date.isoformat()}.json", record)

    # -------------------------------------------------------------------------
    # Monthly packs
    # -------------------------------------------------------------------------

    def fetch_monthly_packs(self, year: int) -> list[MonthlyPack]:
        packs: list[MonthlyPack] = []
        if not self.packs_dir.exists():
            return packs
        for path in sorted(self.packs_dir.glob(f"{year:04d}-*.json")):
            pack = self._read(path, MonthlyPack)
            if pack is not None:
                packs.append(pack)
        return packs

    def get_monthly_pack(self, year: int, month: int) -> MonthlyPack | None:
        path = self.packs_dir / f"{year:04d}-{month:02d}.json"
        return self._read(path, MonthlyPack) if path.exists() else None

    def upsert_monthly_pack(self, pack: MonthlyPack) -> None:
        self._write(self.packs_dir / f"{pack.key}.json", pack)

    # -------------------------------------------------------------------------
    # Yearly summaries
    # -------------------------------------------------------------------------

    def get_yearly_summary(self, year: int) -> YearlySummary | None:
        path = self.years_dir / f"{year:04d}.json"
        return self._read(path, YearlySummary) if path.exists() else None

    def upsert_yearly_summary(self, summary: YearlySummary) -> None:
        self._write(self.years_dir / f"{summary.key}.json", summary)

    # -------------------------------------------------------------------------
    # File helpers
    # -------------------------------------------------------------------------

    def _read(self, path: Path, model: type[BaseModel]) -> BaseModel | None:
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            self._logger.warning(f"Skipping unreadable {path.name}: {e.error_count()} errors")
            return None
        except UnicodeDecodeError:
            self._logger.warning(f"Skipping unreadable {path.name}: not UTF-8 text")
            return None

    def _write(self, path: Path, item: BaseModel) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(item.model_dump_json(indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._logger.debug(f"Wrote {path.relative_to(self.root)}")
