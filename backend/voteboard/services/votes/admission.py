"""Vote admission: validate, rate limit, relay, then record.

The relay call is the gate. Nothing is written to the ledger or the
leaderboard unless the game server confirmed the vote, and once it has,
a failure to write is reported as ``store_error`` and logged under the
``[vote-reconcile]`` tag so an operator can fix the records by hand.
"""

import logging
import time
from typing import Iterable, List, Optional, Tuple

from .cooldown import VOTE_WINDOW_MS, CooldownCheck, check_cooldown
from .errors import InvalidIdentity, RelayError, StoreIOError
from .identity import validate_identity
from .leaderboard import top_n
from .relay import VoteRelay
from .stores import LeaderboardStore, LedgerStore

logger = logging.getLogger(__name__)

ACCEPTED = 'accepted'
REJECTED = 'rejected'
RELAY_FAILED = 'relay_failed'
STORE_ERROR = 'store_error'

INVALID_CATEGORY = 'invalid_category'
INVALID_FORMAT = 'invalid_format'
COOLDOWN = 'cooldown'


class VoteOutcome:
    def __init__(self, status, reason=None, message=None, remaining_seconds=0):
        self.status = status
        self.reason = reason
        self.message = message
        self.remaining_seconds = remaining_seconds

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED

    @property
    def remaining_minutes(self) -> int:
        return -(-self.remaining_seconds // 60)

    @classmethod
    def accept(cls):
        return cls(ACCEPTED, message='Thank you for voting!')

    @classmethod
    def reject(cls, reason, message):
        return cls(REJECTED, reason=reason, message=message)

    @classmethod
    def cooldown(cls, check: CooldownCheck):
        return cls(
            REJECTED,
            reason=COOLDOWN,
            message=f'You must wait {check.remaining_minutes} minutes before voting again',
            remaining_seconds=check.remaining_seconds,
        )

    @classmethod
    def relay_failed(cls):
        return cls(RELAY_FAILED, message='Failed to send vote to server. Please try again later.')

    @classmethod
    def store_error(cls):
        return cls(STORE_ERROR, message='An error occurred while processing your vote. Please try again later.')

    def to_dict(self):
        data = {'status': self.status, 'message': self.message}
        if self.reason:
            data['reason'] = self.reason
        if self.reason == COOLDOWN:
            data['remaining_seconds'] = self.remaining_seconds
            data['remaining_minutes'] = self.remaining_minutes
        return data

    def __repr__(self):
        return f'VoteOutcome(status={self.status!r}, reason={self.reason!r}, remaining_seconds={self.remaining_seconds})'


def now_ms() -> int:
    return int(time.time() * 1000)


class VoteService:
    def __init__(self, ledgers: LedgerStore, leaderboard: LeaderboardStore, relay: VoteRelay,
                 categories: Iterable[str] = ('1', '2', '3', '4'), service_name: str = 'voteboard',
                 allow_dots: bool = True):
        self.ledgers = ledgers
        self.leaderboard = leaderboard
        self.relay = relay
        self.categories = tuple(str(c) for c in categories)
        self.service_name = service_name
        self.allow_dots = allow_dots

    def is_category(self, category) -> bool:
        return str(category) in self.categories

    def service_name_for(self, category: str) -> str:
        return f'{self.service_name}{category}'

    def submit(self, category, identity, origin_address: str, now: Optional[int] = None) -> VoteOutcome:
        """Admit, relay and record one vote. ``now`` is epoch milliseconds."""
        category = str(category)
        if not self.is_category(category):
            return VoteOutcome.reject(INVALID_CATEGORY, 'Unknown vote category')
        try:
            identity = validate_identity(identity, allow_dots=self.allow_dots)
        except InvalidIdentity as exc:
            return VoteOutcome.reject(INVALID_FORMAT, str(exc))
        if now is None:
            now = now_ms()

        with self.ledgers.locked(category):
            ledger = self.ledgers.load(category)
            check = check_cooldown(ledger, identity, origin_address, now, VOTE_WINDOW_MS)
            if not check.can_vote:
                logger.info(f"[vote-cooldown] category={category} user={identity} ip={origin_address} remaining={check.remaining_seconds}s")
                return VoteOutcome.cooldown(check)

            try:
                self.relay.send_vote(identity, self.service_name_for(category), now)
            except RelayError as exc:
                logger.warning(f"[vote-relay-failed] category={category} user={identity}: {exc}")
                return VoteOutcome.relay_failed()

            ledger[identity] = {'ip': origin_address, 'timestamp': now}
            try:
                self.ledgers.save(category, ledger)
            except StoreIOError as exc:
                logger.critical(f"[vote-reconcile] step=ledger category={category} user={identity} ip={origin_address} timestamp={now} relayed but not recorded: {exc}")
                return VoteOutcome.store_error()

            try:
                self._count_vote(identity)
            except StoreIOError as exc:
                logger.critical(f"[vote-reconcile] step=leaderboard category={category} user={identity} timestamp={now} relayed and recorded but not counted: {exc}")
                return VoteOutcome.store_error()

        logger.info(f"[vote-accepted] category={category} user={identity} ip={origin_address}")
        return VoteOutcome.accept()

    def _count_vote(self, identity: str) -> int:
        with self.leaderboard.locked():
            board = self.leaderboard.load()
            board[identity] = board.get(identity, 0) + 1
            self.leaderboard.save(board)
            return board[identity]

    def top_leaderboard(self, limit: int = 10) -> List[Tuple[str, int]]:
        return top_n(self.leaderboard, limit)
