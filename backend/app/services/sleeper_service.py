"""Sleeper API wrapper.

Thin read-only client for the bracket endpoints of the Sleeper public API:
  GET {base}/league/{league_id}/winners_bracket
  GET {base}/league/{league_id}/losers_bracket
"""

import logging
import os
from typing import Any, List, Optional

import requests

from app.models.playoff_bracket_entry import BracketType
from app.services.bracket_slots import BracketSlot

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"


class SleeperAPIError(RuntimeError):
    """Upstream returned an error status, an unreachable host or an unexpected payload."""


class SleeperService:
    """
    Bracket source backed by the Sleeper API.

    Configuration (environment):
      - SLEEPER_BASE_URL (default https://api.sleeper.app/v1)
      - SLEEPER_TIMEOUT_SECONDS (default 30)

    One requests.Session per instance; the bracket sync calls
    get_bracket_slots from two threads at once, which a Session tolerates
    for plain GETs.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or os.getenv("SLEEPER_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("SLEEPER_TIMEOUT_SECONDS", "30"))
        self.http = http or requests.Session()

    def bracket_url(self, league_id: str, bracket_type: BracketType) -> str:
        return f"{self.base_url}/league/{league_id}/{BracketType(bracket_type).endpoint}"

    def get_bracket_slots(self, league_id: str, bracket_type: BracketType) -> List[BracketSlot]:
        """Fetch one bracket and parse each object into a BracketSlot (upstream order kept)."""
        url = self.bracket_url(league_id, bracket_type)
        payload = self._fetch_json(url)

        # Sleeper answers null for leagues whose playoffs are not set up yet
        if payload is None:
            logger.info(f"No {BracketType(bracket_type).value} bracket yet for league {league_id}")
            return []
        if not isinstance(payload, list):
            raise SleeperAPIError(f"Expected a list from {url}, received {type(payload).__name__}")

        slots = []
        for item in payload:
            if not isinstance(item, dict):
                raise SleeperAPIError(f"Expected bracket objects from {url}, received {item!r}")
            slots.append(BracketSlot.from_api(item))
        return slots

    def _fetch_json(self, url: str) -> Any:
        try:
            response = self.http.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SleeperAPIError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            raise SleeperAPIError(f"HTTP {response.status_code} at {url}")

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise SleeperAPIError(f"Expected JSON from {url}, received '{content_type}'")

        try:
            return response.json()
        except ValueError as e:
            raise SleeperAPIError(f"Invalid JSON from {url}: {e}") from e
