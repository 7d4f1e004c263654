"""Typed records for Trello board snapshots and the projects derived from them."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from trello_projects.utils.formatting import format_timestamp, pack

PROJECTS_KEY = 'projects'
CONTENT_KEY = 'content'
LABELS_KEY = 'labels'
CARDS_KEY = 'cards'

ID_TIMESTAMP_PATTERN = re.compile(r'[0-9a-fA-F]{8}')


def extract_created_at(card_id: str) -> datetime | None:
    """Get the creation time encoded in a Trello object id.

    Trello ids are Mongo object ids, the first 8 hex characters hold the
    creation time in seconds since the epoch.

    Args:
        card_id: The Trello object id.

    Returns:
        Timezone-aware UTC datetime, or None if the id doesn't start with
        8 hex characters.
    """
    match = ID_TIMESTAMP_PATTERN.match(card_id or '')
    if not match:
        return None
    return datetime.fromtimestamp(int(match.group(), 16), tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class TagRelation:
    """A typed tag parsed from a label name, e.g. ``needs: funding``."""

    name: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {'name': self.name, 'type': self.type}


@dataclass(frozen=True, slots=True)
class Label:
    """A board label."""

    id: str
    board_id: str
    name: str
    color: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> 'Label':
        return cls(
            id=data['id'],
            board_id=data.get('idBoard', ''),
            name=data.get('name') or '',
            color=data.get('color'),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'idBoard': self.board_id,
            'name': self.name,
            'color': self.color,
        }


@dataclass(frozen=True, slots=True)
class Card:
    """An open card as returned by the board endpoints."""

    id: str
    name: str
    list_id: str
    description: str = ''
    description_data: dict[str, Any] | None = None
    label_ids: tuple[str, ...] = ()
    last_activity_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> 'Card':
        """Build a card from raw API JSON.

        Args:
            data: Card dictionary using Trello field names.

        Returns:
            Card instance.

        Raises:
            KeyError: If ``id``, ``name`` or ``idList`` is missing.
        """
        return cls(
            id=data['id'],
            name=data['name'],
            list_id=data['idList'],
            description=data.get('desc') or '',
            description_data=data.get('descData'),
            label_ids=tuple(data.get('idLabels') or ()),
            last_activity_at=data.get('dateLastActivity'),
        )

    @property
    def created_at(self) -> datetime | None:
        return extract_created_at(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'idList': self.list_id,
            'desc': self.description,
            'descData': self.description_data,
            'idLabels': list(self.label_ids),
            'dateLastActivity': self.last_activity_at,
        }


@dataclass(frozen=True, slots=True)
class BoardList:
    """A list (column) together with the cards it holds."""

    id: str
    name: str
    cards: tuple[Card, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> 'BoardList':
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            cards=tuple(Card.from_api(card) for card in data.get('cards') or ()),
        )


@dataclass(frozen=True, slots=True)
class Board:
    """One fetch worth of a board: its labels and open cards."""

    id: str
    name: str
    cards: tuple[Card, ...] = ()
    labels: tuple[Label, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> 'Board':
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            cards=tuple(Card.from_api(card) for card in data.get('cards') or ()),
            labels=tuple(Label.from_api(label) for label in data.get('labels') or ()),
        )


@dataclass(frozen=True, slots=True)
class Project:
    """A public card enriched with the relations of its labels."""

    card: Card
    created_at: datetime | None
    needs: tuple[TagRelation, ...] = ()
    themes: tuple[TagRelation, ...] = ()
    category: TagRelation | None = None

    @property
    def name(self) -> str:
        return self.card.name

    def to_dict(self) -> dict[str, Any]:
        data = self.card.to_dict()
        data.update({
            'dateCreated': format_timestamp(self.created_at) if self.created_at else None,
            'needs': [relation.to_dict() for relation in self.needs],
            'themes': [relation.to_dict() for relation in self.themes],
            'category': self.category.to_dict() if self.category else None,
        })
        return data


@dataclass(slots=True)
class BoardArtifacts:
    """Output of one board transformation."""

    projects: list[Project] = field(default_factory=list)
    content: dict[str, str] = field(default_factory=dict)

    def to_cache_entries(self) -> dict[str, str]:
        """Serialise the artifacts under their cache keys."""
        return {
            PROJECTS_KEY: pack([project.to_dict() for project in self.projects]),
            CONTENT_KEY: pack(self.content),
        }


@dataclass(slots=True)
class SplitArtifacts:
    """Output of a split fetch, joined into projects at read time."""

    labels: list[Label] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)
    content: dict[str, str] = field(default_factory=dict)

    def to_cache_entries(self) -> dict[str, str]:
        return {
            LABELS_KEY: pack([label.to_dict() for label in self.labels]),
            CARDS_KEY: pack([card.to_dict() for card in self.cards]),
            CONTENT_KEY: pack(self.content),
        }
