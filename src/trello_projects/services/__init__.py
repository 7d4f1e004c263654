"""Services for fetching, transforming and caching Trello boards."""

from trello_projects.services.cache import CacheError, CacheGateway
from trello_projects.services.refresh import (
    RefreshOrchestrator,
    RunResult,
    RunState,
    Schedule,
    ScheduleError,
)
from trello_projects.services.trello_client import FetchError, TrelloClient
from trello_projects.services.transform import (
    build_projects,
    build_relation_map,
    extract_content,
    join_projects,
    parse_relation,
    transform_board,
    transform_lists,
)

__all__ = [
    'CacheError',
    'CacheGateway',
    'FetchError',
    'RefreshOrchestrator',
    'RunResult',
    'RunState',
    'Schedule',
    'ScheduleError',
    'TrelloClient',
    'build_projects',
    'build_relation_map',
    'extract_content',
    'join_projects',
    'parse_relation',
    'transform_board',
    'transform_lists',
]
