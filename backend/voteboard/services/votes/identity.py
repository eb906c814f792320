import re

from .errors import InvalidIdentity

MIN_LENGTH = 3
MAX_LENGTH = 16

IDENTITY_PATTERN = re.compile(r'^[A-Za-z0-9_]{3,16}$')
DOTTED_IDENTITY_PATTERN = re.compile(r'^[A-Za-z0-9_.]{3,16}$')


def validate_identity(name, allow_dots: bool = True) -> str:
    """Return ``name`` unchanged if it is a well-formed player name.

    Names are 3-16 ASCII letters, digits or underscores; ``allow_dots``
    also admits ``.``. Raises :class:`InvalidIdentity` otherwise.
    """
    if not isinstance(name, str) or not name:
        raise InvalidIdentity(name)
    if len(name) > MAX_LENGTH:
        raise InvalidIdentity(name)
    pattern = DOTTED_IDENTITY_PATTERN if allow_dots else IDENTITY_PATTERN
    # fullmatch so a trailing newline is not accepted by '$'
    if not pattern.fullmatch(name):
        raise InvalidIdentity(name)
    return name


def is_valid_identity(name, allow_dots: bool = True) -> bool:
    try:
        validate_identity(name, allow_dots=allow_dots)
    except InvalidIdentity:
        return False
    return True
