"""Tests for board records and their serialised form."""

import json
from datetime import datetime, timezone
from typing import Any

import pytest

from conftest import PUBLIC_LIST
from trello_projects.models import (
    Board,
    BoardArtifacts,
    Card,
    Label,
    SplitArtifacts,
    extract_created_at,
)
from trello_projects.services.transform import transform_board


def test_extract_created_at() -> None:
    """Test the creation time is read from the leading hex characters."""
    assert extract_created_at('000000ff0000000000000000') == datetime(1970, 1, 1, 0, 4, 15, tzinfo=timezone.utc)
    assert extract_created_at('5f1a2b3c') == datetime.fromtimestamp(0x5f1a2b3c, tz=timezone.utc)


@pytest.mark.parametrize('card_id', ['', 'abc', 'zzzzzzzz0000', 'not-a-hex-id'])
def test_extract_created_at_invalid(card_id: str) -> None:
    assert extract_created_at(card_id) is None


def test_project_without_creation_time(board_data: dict[str, Any]) -> None:
    """Test a card whose id carries no timestamp still becomes a project."""
    board_data['cards'][0]['id'] = 'not-a-hex-id'

    projects = transform_board(Board.from_api(board_data), PUBLIC_LIST).projects

    assert projects[0].created_at is None
    assert projects[0].to_dict()['dateCreated'] is None
    assert json.loads(BoardArtifacts(projects=projects, content={}).to_cache_entries()['projects'])[0]['dateCreated'] is None


def test_card_from_api(board_data: dict[str, Any]) -> None:
    """Test a card is built from Trello JSON."""
    card = Card.from_api(board_data['cards'][0])

    assert card.id == '5f1a2b3c0000000000000001'
    assert card.list_id == PUBLIC_LIST
    assert card.description == 'The first project'
    assert card.description_data == {'emoji': {}}
    assert card.label_ids == ('L1', 'L2', 'L3')
    assert card.last_activity_at == '2020-07-24T10:00:00.000Z'


def test_card_from_api_defaults() -> None:
    card = Card.from_api({'id': '5f1a2b3c', 'name': 'Bare', 'idList': 'X', 'desc': None})

    assert card.description == ''
    assert card.label_ids == ()
    assert card.description_data is None


def test_card_from_api_missing_field() -> None:
    with pytest.raises(KeyError):
        Card.from_api({'id': '5f1a2b3c', 'name': 'No list'})


def test_card_to_dict_uses_trello_names(board_data: dict[str, Any]) -> None:
    raw = board_data['cards'][0]

    assert Card.from_api(raw).to_dict() == raw


def test_label_round_trip(board_data: dict[str, Any]) -> None:
    raw = board_data['labels'][0]

    assert Label.from_api(raw).to_dict() == raw


def test_board_from_api(board: Board) -> None:
    assert board.id == 'board1'
    assert len(board.cards) == 4
    assert len(board.labels) == 5


def test_project_to_dict(board: Board) -> None:
    """Test projects serialise as the card plus relations."""
    project = transform_board(board, PUBLIC_LIST).projects[0]

    data = project.to_dict()

    assert data['name'] == 'Card A'
    assert data['idList'] == PUBLIC_LIST
    assert data['dateCreated'] == '2020-07-24T00:28:44Z'
    assert data['needs'] == [{'name': 'funding', 'type': 'needs'}]
    assert data['themes'] == [{'name': 'education', 'type': 'theme'}]
    assert data['category'] is None


def test_board_artifacts_cache_entries(board: Board) -> None:
    """Test artifacts are stored under the projects and content keys."""
    entries = transform_board(board, PUBLIC_LIST).to_cache_entries()

    assert set(entries) == {'projects', 'content'}
    assert [project['name'] for project in json.loads(entries['projects'])] == ['Card A', 'Card C']
    assert json.loads(entries['content']) == {'about': '  About us\n'}


def test_empty_artifacts_cache_entries() -> None:
    assert BoardArtifacts().to_cache_entries() == {'projects': '[]', 'content': '{}'}
    assert SplitArtifacts().to_cache_entries() == {'labels': '[]', 'cards': '[]', 'content': '{}'}
