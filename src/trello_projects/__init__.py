"""Trello Projects - Cache a Trello board's projects and content in Redis."""

__version__ = '0.1.0'

from trello_projects.cli import cli
from trello_projects.services import CacheGateway, RefreshOrchestrator, TrelloClient

__all__ = ['CacheGateway', 'RefreshOrchestrator', 'TrelloClient', 'cli']
