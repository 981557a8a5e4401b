"""Short, human-shareable room codes.

Codes are 4 characters from a 32-symbol alphabet without characters that are
easily confused when spoken or displayed (no 0/O, 1/I). Uniqueness among
active rooms is not guaranteed here; the room service claims a code in the
store and retries on collision.
"""

import secrets

from matchpoint.models import RoomCode

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4


def generate_room_code() -> RoomCode:
    """Draw a room code uniformly at random from the code space."""
    return RoomCode("".join(secrets.choice(ALPHABET) for _ in range(CODE_LENGTH)))


def normalize_room_code(raw: str) -> RoomCode:
    """Normalize user input (whitespace, lowercase) to the canonical code form."""
    return RoomCode(raw.strip().upper())


def is_valid_room_code(code: str) -> bool:
    """Check that a code has the right length and only uses the code alphabet."""
    return len(code) == CODE_LENGTH and all(char in ALPHABET for char in code)
