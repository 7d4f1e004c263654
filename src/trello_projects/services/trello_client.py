"""Trello API client returning typed board snapshots."""

import logging
import os
from collections.abc import Callable
from typing import Any, TypeVar

import requests

from trello_projects.models import Board, BoardList, Label
from trello_projects.utils.config import ConfigError

TRELLO_BASE_URL = 'https://api.trello.com/1'
CARD_FIELDS = 'id,name,idList,desc,descData,idLabels,dateLastActivity'

T = TypeVar('T')

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Fetching from Trello failed or returned an unexpected shape."""

    pass


def get_credentials() -> tuple[str, str]:
    """Get Trello credentials from environment.

    Returns:
        Tuple of (app_key, token).

    Raises:
        ConfigError: If credentials are not found in environment.
    """
    app_key = os.getenv('TRELLO_APP_KEY') or os.getenv('TRELLO_API_KEY')
    token = os.getenv('TRELLO_TOKEN') or os.getenv('TRELLO_API_TOKEN')
    if not app_key or not token:
        raise ConfigError(
            "TRELLO_APP_KEY and TRELLO_TOKEN (or TRELLO_API_KEY/TRELLO_API_TOKEN) must be set"
        )
    return app_key, token


class TrelloClient:
    """Reads boards, labels and lists from the Trello REST API."""

    def __init__(
        self,
        app_key: str | None = None,
        token: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client with credentials and session.

        Args:
            app_key: Trello application key, read from the environment if omitted.
            token: Trello token, read from the environment if omitted.
            session: Optional session to reuse.
        """
        if app_key is None or token is None:
            app_key, token = get_credentials()
        self.app_key = app_key
        self.token = token
        self.base_url = TRELLO_BASE_URL
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make API request to Trello.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint path.
            params: Optional query parameters.

        Returns:
            JSON response from the API.

        Raises:
            requests.RequestException: If the request fails.
            ValueError: If the body is not JSON.
        """
        url = f"{self.base_url}/{endpoint}"
        auth_params: dict[str, Any] = {
            'key': self.app_key,
            'token': self.token
        }
        if params:
            auth_params.update(params)

        logger.debug("%s %s", method, url)
        response = self.session.request(method, url, params=auth_params)
        response.raise_for_status()
        return response.json()

    def _fetch(self, board_id: str, endpoint: str, params: dict[str, Any], parse: Callable[[Any], T]) -> T:
        try:
            return parse(self._request('GET', endpoint, params))
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error("Fetching %s failed: %s", endpoint, e)
            raise FetchError(f"Couldn't fetch board {board_id}") from e

    def fetch_board(self, board_id: str) -> Board:
        """Fetch a board with its labels and open cards in one call.

        Args:
            board_id: The ID of the board.

        Returns:
            Board snapshot.

        Raises:
            FetchError: If the request fails or the response is malformed.
        """
        params = {
            'fields': 'name',
            'labels': 'all',
            'cards': 'open',
            'card_fields': CARD_FIELDS,
        }
        return self._fetch(board_id, f'boards/{board_id}', params, Board.from_api)

    def fetch_labels(self, board_id: str) -> list[Label]:
        """Fetch all labels on a board.

        Raises:
            FetchError: If the request fails or the response is malformed.
        """
        params = {'fields': 'id,idBoard,name,color', 'limit': 1000}
        return self._fetch(
            board_id,
            f'boards/{board_id}/labels',
            params,
            lambda data: [Label.from_api(label) for label in data],
        )

    def fetch_lists(self, board_id: str) -> list[BoardList]:
        """Fetch the open lists on a board, each with its open cards.

        Raises:
            FetchError: If the request fails or the response is malformed.
        """
        params = {'cards': 'open', 'card_fields': CARD_FIELDS, 'fields': 'id,name'}
        return self._fetch(
            board_id,
            f'boards/{board_id}/lists',
            params,
            lambda data: [BoardList.from_api(list_data) for list_data in data],
        )

    def close(self) -> None:
        self.session.close()
