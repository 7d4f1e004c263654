"""Shared fixtures: sample board JSON and in-memory stand-ins for Trello and Redis."""

from typing import Any

import pytest

from trello_projects.models import Board, BoardList, Label
from trello_projects.services.cache import CacheGateway
from trello_projects.utils.config import ENV_VARS

PUBLIC_LIST = 'PUB'
CONTENT_LIST = 'CONTENT'


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings from the host environment out of the tests."""
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    for env_var in ('TRELLO_APP_KEY', 'TRELLO_API_KEY', 'TRELLO_TOKEN', 'TRELLO_API_TOKEN'):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def board_data() -> dict[str, Any]:
    return {
        'id': 'board1',
        'name': 'Projects',
        'labels': [
            {'id': 'L1', 'idBoard': 'board1', 'name': 'needs: funding', 'color': 'green'},
            {'id': 'L2', 'idBoard': 'board1', 'name': 'theme: education', 'color': 'blue'},
            {'id': 'L3', 'idBoard': 'board1', 'name': 'internal note', 'color': 'red'},
            {'id': 'L4', 'idBoard': 'board1', 'name': 'category: Arts', 'color': None},
            {'id': 'L5', 'idBoard': 'board1', 'name': 'category: Sport', 'color': None},
        ],
        'cards': [
            {
                'id': '5f1a2b3c0000000000000001',
                'name': 'Card A',
                'idList': PUBLIC_LIST,
                'desc': 'The first project',
                'descData': {'emoji': {}},
                'idLabels': ['L1', 'L2', 'L3'],
                'dateLastActivity': '2020-07-24T10:00:00.000Z',
            },
            {
                'id': '5f1a2b3d0000000000000002',
                'name': 'Card B',
                'idList': 'PRIVATE',
                'desc': 'Not published',
                'idLabels': ['L4'],
                'dateLastActivity': '2020-07-24T11:00:00.000Z',
            },
            {
                'id': '5f1a2b3e0000000000000003',
                'name': 'Card C',
                'idList': PUBLIC_LIST,
                'desc': '',
                'idLabels': ['L5', 'L4'],
                'dateLastActivity': '2020-07-24T12:00:00.000Z',
            },
            {
                'id': '5f1a2b3f0000000000000004',
                'name': '[about]',
                'idList': CONTENT_LIST,
                'desc': '  About us\n',
                'idLabels': [],
                'dateLastActivity': None,
            },
        ],
    }


@pytest.fixture
def board(board_data: dict[str, Any]) -> Board:
    return Board.from_api(board_data)


@pytest.fixture
def lists_data(board_data: dict[str, Any]) -> list[dict[str, Any]]:
    lists: dict[str, dict[str, Any]] = {}
    for card in board_data['cards']:
        board_list = lists.setdefault(card['idList'], {'id': card['idList'], 'name': card['idList'], 'cards': []})
        board_list['cards'].append(card)
    return list(lists.values())


class FakeRedis:
    """The subset of redis.asyncio.Redis the cache gateway uses."""

    def __init__(self, error: Exception | None = None) -> None:
        self.store: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self.error = error
        self.pings = 0
        self.closed = False

    async def ping(self) -> bool:
        self.pings += 1
        if self.error:
            raise self.error
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.store[key] = value
        return True

    async def mset(self, mapping: dict[str, str]) -> bool:
        self.store.update(mapping)
        return True

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 0

    async def aclose(self) -> None:
        self.closed = True


class FakeTrello:
    """Stands in for TrelloClient, serving canned JSON."""

    def __init__(
        self,
        board_data: dict[str, Any],
        lists_data: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.board_data = board_data
        self.lists_data = lists_data or []
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def fetch_board(self, board_id: str) -> Board:
        self.calls.append(('fetch_board', board_id))
        if self.error:
            raise self.error
        return Board.from_api(self.board_data)

    def fetch_labels(self, board_id: str) -> list[Label]:
        self.calls.append(('fetch_labels', board_id))
        if self.error:
            raise self.error
        return [Label.from_api(label) for label in self.board_data['labels']]

    def fetch_lists(self, board_id: str) -> list[BoardList]:
        self.calls.append(('fetch_lists', board_id))
        if self.error:
            raise self.error
        return [BoardList.from_api(list_data) for list_data in self.lists_data]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> CacheGateway:
    return CacheGateway('redis://localhost:6379/0', client_factory=lambda url: fake_redis)


@pytest.fixture
def fake_trello(board_data: dict[str, Any], lists_data: list[dict[str, Any]]) -> FakeTrello:
    return FakeTrello(board_data, lists_data)
