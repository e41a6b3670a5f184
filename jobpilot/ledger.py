"""Submission ledger (CSV, file-locked) and company blacklist (YAML).

Answers one question: may we apply to this (company, title) right now?

Every mutation re-reads the file under an exclusive lock before rewriting
it, so several ledgers over the same files (one per site run) never drop
each other's rows.
"""
from __future__ import annotations

import csv
import fcntl
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

import yaml

from jobpilot.log import get_logger
from jobpilot.models import SubmissionRecord

log = get_logger(__name__)

HEADERS: list[str] = ["company", "title", "submitted_at"]
DEFAULT_COOLDOWN_DAYS = 15

# flock is per open file description, so threads in one process also need this.
_write_lock = threading.RLock()


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _key(company: str, title: str) -> tuple[str, str]:
    return (company.strip().casefold(), title.strip().casefold())


def _parse_ts(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _parse_rows(rows: Iterable[dict]) -> list[SubmissionRecord]:
    records: list[SubmissionRecord] = []
    for r in rows:
        try:
            records.append(SubmissionRecord(
                company=r["company"],
                title=r["title"],
                submitted_at=_parse_ts(r["submitted_at"]),
            ))
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping malformed ledger row %r: %s", r, exc)
    return records


def _write_rows(f, records: list[SubmissionRecord]) -> None:
    w = csv.DictWriter(f, fieldnames=HEADERS)
    w.writeheader()
    for rec in records:
        w.writerow({
            "company": rec.company,
            "title": rec.title,
            "submitted_at": rec.submitted_at.isoformat(timespec="seconds"),
        })


def _parse_blacklist(data) -> list[str]:
    companies = data.get("companies", []) if isinstance(data, dict) else data
    return [str(c).strip() for c in companies or [] if str(c).strip()]


class SubmissionLedger:
    def __init__(
        self,
        ledger_path: Path,
        blacklist_path: Path,
        *,
        cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ledger_path = Path(ledger_path)
        self.blacklist_path = Path(blacklist_path)
        self.cooldown_days = cooldown_days
        self._now = now
        self._records: list[SubmissionRecord] = []
        self._blacklist: list[str] = []
        self._ensure_files()
        self.reload()

    # -- persistence ----------------------------------------------------

    def _ensure_files(self) -> None:
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        self.blacklist_path.parent.mkdir(parents=True, exist_ok=True)
        with _write_lock:
            with open(self.ledger_path, "a", newline="", encoding="utf-8") as f:
                _lock(f)
                f.seek(0, 2)
                if f.tell() == 0:
                    csv.writer(f).writerow(HEADERS)
                    log.info("Created submission ledger → %s", self.ledger_path.name)
                _unlock(f)
            with open(self.blacklist_path, "a", encoding="utf-8") as f:
                _lock(f)
                f.seek(0, 2)
                if f.tell() == 0:
                    yaml.safe_dump({"companies": []}, f)
                _unlock(f)

    def _read_records(self) -> list[SubmissionRecord]:
        with open(self.ledger_path, "r", newline="", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return _parse_rows(rows)

    def _read_blacklist(self) -> list[str]:
        with open(self.blacklist_path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            data = yaml.safe_load(f) or {}
            _unlock(f)
        return _parse_blacklist(data)

    def _update_records(
        self, change: Callable[[list[SubmissionRecord]], list[SubmissionRecord]]
    ) -> None:
        """Read, change and rewrite the ledger under one exclusive lock."""
        with _write_lock:
            with open(self.ledger_path, "r+", newline="", encoding="utf-8") as f:
                _lock(f)
                try:
                    records = change(_parse_rows(csv.DictReader(f)))
                    f.seek(0)
                    f.truncate(0)
                    _write_rows(f, records)
                    f.flush()
                finally:
                    _unlock(f)

    def _update_blacklist(self, change: Callable[[list[str]], list[str] | None]) -> bool:
        """Like ``_update_records``; *change* returns None to leave the file untouched."""
        with _write_lock:
            with open(self.blacklist_path, "r+", encoding="utf-8") as f:
                _lock(f)
                try:
                    companies = change(_parse_blacklist(yaml.safe_load(f) or {}))
                    if companies is None:
                        return False
                    f.seek(0)
                    f.truncate(0)
                    yaml.safe_dump({"companies": companies}, f, allow_unicode=True, sort_keys=False)
                    f.flush()
                    return True
                finally:
                    _unlock(f)

    def reload(self) -> None:
        """Re-read ledger and blacklist from disk."""
        self._records = self._read_records()
        self._blacklist = self._read_blacklist()

    # -- queries --------------------------------------------------------

    def is_blacklisted(self, company: str) -> bool:
        name = company.strip().casefold()
        return any(c.casefold() == name for c in self._blacklist)

    def last_submission(self, company: str, title: str) -> SubmissionRecord | None:
        key = _key(company, title)
        found = [r for r in self._records if _key(r.company, r.title) == key]
        return max(found, key=lambda r: r.submitted_at) if found else None

    def can_proceed(self, company: str, title: str) -> bool:
        if self.is_blacklisted(company):
            log.debug("Blacklisted company: %s", company)
            return False
        previous = self.last_submission(company, title)
        if previous is None:
            return True
        days = (self._now() - previous.submitted_at).days
        # Re-apply only once the cooldown has fully elapsed.
        return days > self.cooldown_days

    def records(self) -> list[SubmissionRecord]:
        return list(self._records)

    def blacklist(self) -> list[str]:
        return list(self._blacklist)

    # -- mutations ------------------------------------------------------

    def record_submission(self, company: str, title: str) -> SubmissionRecord:
        key = _key(company, title)
        record = SubmissionRecord(company=company.strip(), title=title.strip(), submitted_at=self._now())

        def change(records: list[SubmissionRecord]) -> list[SubmissionRecord]:
            return [r for r in records if _key(r.company, r.title) != key] + [record]

        self._update_records(change)
        self.reload()
        log.debug("Ledger: %s @ %s at %s", title, company, record.submitted_at.isoformat())
        return record

    def add_to_blacklist(self, company: str) -> bool:
        name = company.strip()
        if not name:
            return False

        def change(companies: list[str]) -> list[str] | None:
            if any(c.casefold() == name.casefold() for c in companies):
                return None
            return companies + [name]

        added = self._update_blacklist(change)
        self.reload()
        if added:
            log.info("Blacklisted company: %s", name)
        return added

    def remove_from_blacklist(self, company: str) -> bool:
        name = company.strip().casefold()

        def change(companies: list[str]) -> list[str] | None:
            kept = [c for c in companies if c.casefold() != name]
            return None if len(kept) == len(companies) else kept

        removed = self._update_blacklist(change)
        self.reload()
        if removed:
            log.info("Removed from blacklist: %s", company)
        return removed
