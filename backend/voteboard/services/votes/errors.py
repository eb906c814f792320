class VoteError(Exception):
    """Base class for vote bookkeeping errors."""


class InvalidIdentity(VoteError):
    def __init__(self, name, message=None):
        self.name = name
        super().__init__(message or (
            'Invalid username format. Username must be 3-16 characters long '
            'and contain only letters, numbers, and underscores.'
        ))


class StoreIOError(VoteError):
    """A ledger or leaderboard document could not be written."""


class RelayError(VoteError):
    """The game server did not confirm the vote."""
