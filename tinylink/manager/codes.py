"""
Short-code generation and validation for TinyLink.

Policy:
    - Alphabet: 62 characters, [A-Za-z0-9]
    - Length:   6 to 8 characters inclusive

RandomCodeGenerator draws the length uniformly from {6, 7, 8} and each character
independently from the alphabet, using OS entropy (random.SystemRandom). It makes
no uniqueness promise; the store's uniqueness constraint is the arbiter.

is_valid_code applies the same policy to caller-supplied custom codes. Generated
codes always satisfy it by construction.
"""

import random
import re
import string
from dataclasses import dataclass, field
from typing import Any

CODE_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
CODE_MIN_LENGTH = 6
CODE_MAX_LENGTH = 8

_CODE_PATTERN = re.compile(r"[A-Za-z0-9]{%d,%d}" % (CODE_MIN_LENGTH, CODE_MAX_LENGTH))


def is_valid_code(candidate: Any) -> bool:
    """
    Return True iff `candidate` is 6-8 characters, all from [A-Za-z0-9].

    The whole string must match; a trailing newline or separator makes it invalid.
    """
    if not isinstance(candidate, str):
        return False
    return _CODE_PATTERN.fullmatch(candidate) is not None


@dataclass
class RandomCodeGenerator:
    """Random Base62 codes of length uniformly chosen in [min_length, max_length]."""
    min_length: int = CODE_MIN_LENGTH
    max_length: int = CODE_MAX_LENGTH
    alphabet: str = CODE_ALPHABET
    rng: random.Random = field(default_factory=random.SystemRandom, repr=False)

    def __post_init__(self):
        if not 0 < self.min_length <= self.max_length:
            raise ValueError("min_length must be positive and <= max_length")
        if not self.alphabet:
            raise ValueError("alphabet must not be empty")

    def generate(self) -> str:
        length = self.rng.randint(self.min_length, self.max_length)
        return "".join(self.rng.choice(self.alphabet) for _ in range(length))

    __call__ = generate
