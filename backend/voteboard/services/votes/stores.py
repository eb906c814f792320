"""Durable vote ledgers and the leaderboard.

Each vote category has its own ledger (identity -> last accepted vote) and
all categories share one leaderboard (identity -> total accepted votes).
Two backends are provided: YAML documents on disk, which is what a fresh
deployment uses, and SQL tables through Flask-SQLAlchemy.

Stores own their locks. Callers that read, decide and then write must do
so inside ``store.locked(...)`` so concurrent requests cannot lose updates.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict

import yaml
from sqlalchemy.exc import SQLAlchemyError

from voteboard import db
from voteboard.models import LeaderboardEntry, VoteRecord

from .errors import StoreIOError
from .identity import is_valid_identity

logger = logging.getLogger(__name__)

Ledger = Dict[str, Dict]
Leaderboard = Dict[str, int]

LEADERBOARD_KEY = '__leaderboard__'


class _Locks:
    """One lock per key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def _normalize_ledger(raw, source) -> Ledger:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning(f"[ledger-load] source={source} unexpected document type {type(raw).__name__}, treating as empty")
        return {}
    ledger: Ledger = {}
    for name, record in raw.items():
        name = str(name)
        if not is_valid_identity(name) or not isinstance(record, dict):
            logger.warning(f"[ledger-load] source={source} skipping malformed entry {name!r}")
            continue
        try:
            ip = record.get('ip', record.get('originAddress'))
            timestamp = int(record['timestamp'])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"[ledger-load] source={source} skipping entry {name!r} without a usable timestamp")
            continue
        # an entry without an address still carries the identity's cooldown
        ledger[name] = {'ip': str(ip) if ip else '', 'timestamp': timestamp}
    return ledger


def _normalize_leaderboard(raw, source) -> Leaderboard:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning(f"[leaderboard-load] source={source} unexpected document type {type(raw).__name__}, treating as empty")
        return {}
    board: Leaderboard = {}
    for name, entry in raw.items():
        try:
            if isinstance(entry, dict):
                total = entry.get('totalvotes', entry.get('totalVotes'))
            else:
                total = entry
            board[str(name)] = max(0, int(total))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"[leaderboard-load] source={source} skipping malformed entry {name!r}")
    return board


class LedgerStore:
    """Interface for per-category vote ledgers."""

    def __init__(self):
        self._locks = _Locks()

    @contextmanager
    def locked(self, category: str):
        with self._locks.get(str(category)):
            yield

    def with_lock(self, category: str, fn: Callable):
        with self.locked(category):
            return fn()

    def load(self, category: str) -> Ledger:
        raise NotImplementedError

    def save(self, category: str, ledger: Ledger) -> None:
        raise NotImplementedError


class LeaderboardStore:
    """Interface for the cross-category vote totals."""

    def __init__(self):
        self._locks = _Locks()

    @contextmanager
    def locked(self):
        with self._locks.get(LEADERBOARD_KEY):
            yield

    def load(self) -> Leaderboard:
        raise NotImplementedError

    def save(self, board: Leaderboard) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# YAML files
# ---------------------------------------------------------------------------

def _read_yaml(path: Path, tag: str):
    if not path.exists():
        return None
    try:
        return yaml.safe_load(path.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        logger.warning(f"[{tag}] path={path} unreadable, treating as empty: {exc}")
        return None


def _write_yaml(path: Path, document) -> None:
    temp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile('w', dir=path.parent, delete=False, encoding='utf-8') as tmp:
            temp_path = Path(tmp.name)
            yaml.safe_dump(document, tmp, default_flow_style=False, sort_keys=False)
            tmp.flush()
            os.fsync(tmp.fileno())
        temp_path.replace(path)
    except (OSError, yaml.YAMLError) as exc:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise StoreIOError(f"could not write {path}: {exc}") from exc


class YamlLedgerStore(LedgerStore):
    def __init__(self, data_dir):
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, category: str) -> Path:
        return self.data_dir / f'votes{category}.yml'

    def load(self, category: str) -> Ledger:
        path = self.path_for(category)
        return _normalize_ledger(_read_yaml(path, 'ledger-load'), path)

    def save(self, category: str, ledger: Ledger) -> None:
        document = {
            name: {'ip': record['ip'], 'timestamp': int(record['timestamp'])}
            for name, record in ledger.items()
        }
        _write_yaml(self.path_for(category), document)


class YamlLeaderboardStore(LeaderboardStore):
    def __init__(self, data_dir):
        super().__init__()
        self.path = Path(data_dir) / 'leaderboard.yml'

    def load(self) -> Leaderboard:
        return _normalize_leaderboard(_read_yaml(self.path, 'leaderboard-load'), self.path)

    def save(self, board: Leaderboard) -> None:
        _write_yaml(self.path, {name: {'totalvotes': int(total)} for name, total in board.items()})


# ---------------------------------------------------------------------------
# SQL tables
# ---------------------------------------------------------------------------

class SqlLedgerStore(LedgerStore):
    """Ledgers kept in the ``vote_record`` table. Needs an app context."""

    def load(self, category: str) -> Ledger:
        try:
            rows = VoteRecord.query.filter_by(category=str(category)).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning(f"[ledger-load] category={category} query failed, treating as empty: {exc}")
            return {}
        return _normalize_ledger({r.username: r.to_dict() for r in rows}, f'vote_record:{category}')

    def save(self, category: str, ledger: Ledger) -> None:
        try:
            VoteRecord.query.filter_by(category=str(category)).delete()
            for name, record in ledger.items():
                db.session.add(VoteRecord(
                    category=str(category),
                    username=name,
                    ip=record['ip'],
                    timestamp=int(record['timestamp']),
                ))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreIOError(f"could not write ledger {category}: {exc}") from exc


class SqlLeaderboardStore(LeaderboardStore):
    """Totals kept in the ``leaderboard_entry`` table. Needs an app context."""

    def load(self) -> Leaderboard:
        try:
            rows = LeaderboardEntry.query.all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning(f"[leaderboard-load] query failed, treating as empty: {exc}")
            return {}
        return {r.username: int(r.total_votes or 0) for r in rows}

    def save(self, board: Leaderboard) -> None:
        try:
            LeaderboardEntry.query.delete()
            for name, total in board.items():
                db.session.add(LeaderboardEntry(username=name, total_votes=int(total)))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreIOError(f"could not write leaderboard: {exc}") from exc


def create_stores(backend: str, data_dir=None):
    """Return ``(ledger_store, leaderboard_store)`` for a backend name."""
    if backend == 'yaml':
        return YamlLedgerStore(data_dir), YamlLeaderboardStore(data_dir)
    if backend == 'sql':
        return SqlLedgerStore(), SqlLeaderboardStore()
    raise ValueError(f"unknown store backend {backend!r}")
