from typing import Dict, NamedTuple, Optional

VOTE_WINDOW_MS = 24 * 60 * 60 * 1000


class CooldownCheck(NamedTuple):
    can_vote: bool
    remaining_seconds: int

    @property
    def remaining_minutes(self) -> int:
        return -(-self.remaining_seconds // 60)


def _remaining_seconds(timestamp: int, now: int, window_ms: int) -> int:
    # ceil((timestamp + window - now) / 1000) in integer arithmetic
    return -(-(timestamp + window_ms - now) // 1000)


def _within_window(record: Optional[Dict], now: int, window_ms: int) -> bool:
    if not record:
        return False
    return now - int(record['timestamp']) < window_ms


def check_cooldown(ledger: Dict[str, Dict], identity: str, origin_address: str,
                   now: int, window_ms: int = VOTE_WINDOW_MS) -> CooldownCheck:
    """Decide whether ``identity`` voting from ``origin_address`` may vote at ``now``.

    The identity's own record is checked first; failing that, any record
    left by the same address inside the window also blocks the vote, so
    one address cannot vote under several names. Times are epoch
    milliseconds.
    """
    record = ledger.get(identity)
    if _within_window(record, now, window_ms):
        return CooldownCheck(False, _remaining_seconds(int(record['timestamp']), now, window_ms))

    # an unknown address never matches another voter
    if not origin_address:
        return CooldownCheck(True, 0)

    for other in ledger.values():
        if other.get('ip') == origin_address and _within_window(other, now, window_ms):
            return CooldownCheck(False, _remaining_seconds(int(other['timestamp']), now, window_ms))

    return CooldownCheck(True, 0)
