"""Turn board snapshots into projects and content.

Board content is free text edited by people, so nothing in here raises on
odd input: labels that don't parse and cards that don't match are skipped.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from trello_projects.models import (
    Board,
    BoardArtifacts,
    BoardList,
    Card,
    Label,
    Project,
    SplitArtifacts,
    TagRelation,
)
from trello_projects.utils.formatting import unpack

NEEDS = 'needs'
THEME = 'theme'
CATEGORY = 'category'

RELATION_PATTERN = re.compile(r'^\s*(.+):(.+?)\s*$', re.DOTALL)
CONTENT_PATTERN = re.compile(r'\[(\S+)\]')


def parse_relation(label_name: str) -> TagRelation | None:
    """Parse a label name of the form ``type: name``.

    The name is split at its last colon and both sides are stripped.

    Args:
        label_name: The label's display name.

    Returns:
        TagRelation, or None if the name doesn't follow the convention.
    """
    match = RELATION_PATTERN.match(label_name or '')
    if not match:
        return None
    relation_type, name = (part.strip() for part in match.groups())
    if not relation_type or not name:
        return None
    return TagRelation(name=name, type=relation_type)


def build_relation_map(labels: Iterable[Label]) -> dict[str, TagRelation]:
    """Map label ids to their parsed relations, skipping labels that don't parse."""
    relations: dict[str, TagRelation] = {}
    for label in labels:
        relation = parse_relation(label.name)
        if relation is not None:
            relations[label.id] = relation
    return relations


def _relations_of_type(
    label_ids: Iterable[str],
    relations: Mapping[str, TagRelation],
    relation_type: str,
) -> tuple[TagRelation, ...]:
    return tuple(
        relations[label_id]
        for label_id in label_ids
        if label_id in relations and relations[label_id].type == relation_type
    )


def build_project(card: Card, relations: Mapping[str, TagRelation]) -> Project:
    """Enrich a card with the relations of its labels.

    Only the first category in the card's label order is kept.
    """
    categories = _relations_of_type(card.label_ids, relations, CATEGORY)
    return Project(
        card=card,
        created_at=card.created_at,
        needs=_relations_of_type(card.label_ids, relations, NEEDS),
        themes=_relations_of_type(card.label_ids, relations, THEME),
        category=categories[0] if categories else None,
    )


def build_projects(
    cards: Iterable[Card],
    labels: Iterable[Label],
    public_list_id: str,
) -> list[Project]:
    """Build a project for every card in the public list.

    Args:
        cards: Cards of the board, in board order.
        labels: Labels of the board.
        public_list_id: Id of the list whose cards are published.

    Returns:
        Projects in card order. Empty if no card is in the public list.
    """
    relations = build_relation_map(labels)
    return [
        build_project(card, relations)
        for card in cards
        if card.list_id == public_list_id
    ]


def extract_content(cards: Iterable[Card]) -> dict[str, str]:
    """Collect the descriptions of cards named ``[key]``.

    Later cards overwrite earlier ones with the same key.
    """
    content: dict[str, str] = {}
    for card in cards:
        match = CONTENT_PATTERN.fullmatch(card.name)
        if not match:
            continue
        content[match.group(1)] = card.description
    return content


def _content_cards(cards: Iterable[Card], content_list_id: str | None) -> Iterable[Card]:
    if content_list_id is None:
        return cards
    return (card for card in cards if card.list_id == content_list_id)


def transform_board(
    board: Board,
    public_list_id: str,
    content_list_id: str | None = None,
) -> BoardArtifacts:
    """Produce projects and content from one board snapshot.

    Args:
        board: The fetched board.
        public_list_id: Id of the list whose cards become projects.
        content_list_id: Optional id of the list holding content cards. All
            cards are scanned when omitted.

    Returns:
        BoardArtifacts with projects and content.
    """
    return BoardArtifacts(
        projects=build_projects(board.cards, board.labels, public_list_id),
        content=extract_content(_content_cards(board.cards, content_list_id)),
    )


def transform_lists(
    labels: Sequence[Label],
    lists: Sequence[BoardList],
    content_list_id: str | None = None,
) -> SplitArtifacts:
    """Produce split artifacts from separately fetched labels and lists.

    Projects are not built here, see join_projects.
    """
    cards = [card for board_list in lists for card in board_list.cards]
    return SplitArtifacts(
        labels=list(labels),
        cards=cards,
        content=extract_content(_content_cards(cards, content_list_id)),
    )


def join_projects(
    labels_data: str | None,
    cards_data: str | None,
    public_list_id: str,
) -> list[dict[str, Any]]:
    """Build project dictionaries from cached labels and cards.

    Args:
        labels_data: Cached labels, None if nothing is cached yet.
        cards_data: Cached cards, None if nothing is cached yet.
        public_list_id: Id of the list whose cards become projects.

    Returns:
        Project dictionaries, empty if nothing is cached.
    """
    labels = [Label.from_api(label) for label in unpack(labels_data) or []]
    cards = [Card.from_api(card) for card in unpack(cards_data) or []]
    return [project.to_dict() for project in build_projects(cards, labels, public_list_id)]
