"""Backend package for the bingo party session core."""

import logging

from .board import generate_board
from .config import BackendSettings, load_settings
from .controller import SessionController
from .errors import BingoError, ChannelLost, ConditionFailed, GameAlreadyStarted, SessionExists, SessionNotFound
from .models import MutationResult
from .security import actor_id_for, generate_room_code, generate_token
from .state import build_initial_state
from .store import InMemorySessionStore, PostgresSessionStore, SessionStore, create_store
from .win import has_won

logging.getLogger("bingoparty").addHandler(logging.NullHandler())

__all__ = [
    "actor_id_for",
    "BackendSettings",
    "BingoError",
    "build_initial_state",
    "ChannelLost",
    "ConditionFailed",
    "create_store",
    "GameAlreadyStarted",
    "generate_board",
    "generate_room_code",
    "generate_token",
    "has_won",
    "InMemorySessionStore",
    "load_settings",
    "MutationResult",
    "PostgresSessionStore",
    "SessionController",
    "SessionExists",
    "SessionNotFound",
    "SessionStore",
]
