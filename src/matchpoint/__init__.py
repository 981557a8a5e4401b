"""MatchPoint group swipe sessions: rooms, votes and unanimous matches."""
import importlib.metadata
import logging

from matchpoint.server import create_app

__all__ = ["create_app"]

log = logging.getLogger(__name__)
log.setLevel(logging.INFO)
handler = logging.StreamHandler()
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler.setFormatter(formatter)
log.addHandler(handler)

try:
    __version__ = importlib.metadata.version("matchpoint")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"
