"""Slice id generation for chunked uploads."""

import string

SLICE_ID_SEED = "aaaaaaaaa`"

_FIRST = string.ascii_lowercase[0]
_LAST = string.ascii_lowercase[-1]


class SliceIdGenerator:
    """
    Base-26 odometer over lowercase letters.

    The seed ends one character before "a", so the first id issued is
    "aaaaaaaaaa". Each call advances the rightmost letter, rolling "z" over
    to "a" with a carry into the next position. Ids are strictly increasing
    in issuance order; one generator belongs to exactly one upload run.
    """

    def __init__(self, seed: str = SLICE_ID_SEED) -> None:
        self._current = list(seed)

    @property
    def current(self) -> str:
        return "".join(self._current)

    def next(self) -> str:
        """Advance and return the next slice id."""
        chars = list(self._current)
        pos = len(chars) - 1
        while pos >= 0:
            if chars[pos] != _LAST:
                chars[pos] = chr(ord(chars[pos]) + 1)
                self._current = chars
                return "".join(chars)
            chars[pos] = _FIRST
            pos -= 1
        raise OverflowError("Slice id space exhausted")

    def __iter__(self) -> "SliceIdGenerator":
        return self

    def __next__(self) -> str:
        return self.next()
