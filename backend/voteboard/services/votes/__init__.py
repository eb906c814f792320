"""Vote domain services: admission, rate limiting and bookkeeping.

HTTP routes only talk to :class:`VoteService`; the stores, the cooldown
policy and the relay stay free of Flask request handling.
"""

from .admission import VoteOutcome, VoteService
from .relay import VoteRelay, VotifierRelay
from .stores import create_stores

__all__ = [
    "VoteOutcome",
    "VoteService",
    "VoteRelay",
    "VotifierRelay",
    "create_stores",
]
