"""Run board refreshes once or on a cron schedule."""

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from trello_projects.models import BoardArtifacts, SplitArtifacts
from trello_projects.services.cache import REFRESH_CHANNEL, CacheError, CacheGateway
from trello_projects.services.trello_client import FetchError, TrelloClient
from trello_projects.services.transform import transform_board, transform_lists
from trello_projects.utils.config import Settings
from trello_projects.utils.formatting import pack

logger = logging.getLogger(__name__)

Artifacts = BoardArtifacts | SplitArtifacts
Reporter = Callable[[Artifacts], None]


class ScheduleError(Exception):
    """Invalid cron expression or timezone."""

    pass


class RunState(enum.Enum):
    IDLE = 'idle'
    FETCHING = 'fetching'
    TRANSFORMING = 'transforming'
    PERSISTING = 'persisting'
    REPORTING = 'reporting'
    FAILED = 'failed'


@dataclass
class RunResult:
    """What happened during one refresh."""

    states: list[RunState] = field(default_factory=list)
    artifacts: Artifacts | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.states[-1:] == [RunState.IDLE]


class Schedule:
    """A validated cron expression in a timezone."""

    def __init__(self, expression: str, timezone: str) -> None:
        """Validate the expression and timezone.

        Args:
            expression: Five field cron expression, e.g. ``*/15 * * * *``.
            timezone: IANA timezone name the expression is evaluated in.

        Raises:
            ScheduleError: If either is invalid.
        """
        if not croniter.is_valid(expression):
            raise ScheduleError(f"Invalid cron '{expression}'")
        try:
            self.tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ScheduleError(f"Unknown timezone '{timezone}'") from e
        self.expression = expression
        self.timezone = timezone

    @property
    def guru_url(self) -> str:
        return f"https://crontab.guru/#{'_'.join(self.expression.split())}"

    def next_fire(self, after: datetime | None = None) -> datetime:
        """Get the next fire time after ``after`` (defaults to now)."""
        start = after.astimezone(self.tz) if after else datetime.now(self.tz)
        return croniter(self.expression, start).get_next(datetime)


class RefreshOrchestrator:
    """Fetches a board, transforms it and persists or reports the result."""

    def __init__(
        self,
        client: TrelloClient,
        cache: CacheGateway | None,
        settings: Settings,
        reporter: Reporter | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.settings = settings
        self.reporter = reporter
        self.in_flight = 0
        self.running: set[asyncio.Task[RunResult | None]] = set()

    @property
    def busy(self) -> bool:
        return self.in_flight > 0

    async def _fetch_and_transform(self, result: RunResult) -> Artifacts:
        board_id = self.settings.board_id or ''
        result.states.append(RunState.FETCHING)
        if self.settings.split:
            labels, lists = await asyncio.gather(
                asyncio.to_thread(self.client.fetch_labels, board_id),
                asyncio.to_thread(self.client.fetch_lists, board_id),
            )
            result.states.append(RunState.TRANSFORMING)
            return transform_lists(labels, lists, self.settings.content_list_id)

        board = await asyncio.to_thread(self.client.fetch_board, board_id)
        result.states.append(RunState.TRANSFORMING)
        return transform_board(
            board,
            self.settings.public_list_id or '',
            self.settings.content_list_id,
        )

    async def _persist(self, artifacts: Artifacts) -> None:
        if self.cache is None:
            raise CacheError("No cache configured")
        entries = artifacts.to_cache_entries()
        await self.cache.set_many(entries)
        logger.info("Stored %s", ', '.join(entries))
        try:
            await self.cache.publish(REFRESH_CHANNEL, pack(sorted(entries)))
        except CacheError as e:
            logger.warning("Refresh notification failed: %s", e)

    async def run_once(self, dry_run: bool = False) -> RunResult:
        """Run one refresh.

        Args:
            dry_run: Hand the artifacts to the reporter instead of the cache.

        Returns:
            RunResult ending in RunState.IDLE.

        Raises:
            FetchError: If the board could not be fetched.
            CacheError: If the artifacts could not be stored.
        """
        result = RunResult(states=[RunState.IDLE])
        if self.busy:
            logger.warning("Starting a refresh while %d other(s) are still running", self.in_flight)
        self.in_flight += 1
        try:
            artifacts = await self._fetch_and_transform(result)
            result.artifacts = artifacts
            if dry_run:
                result.states.append(RunState.REPORTING)
                if self.reporter is not None:
                    self.reporter(artifacts)
            else:
                result.states.append(RunState.PERSISTING)
                await self._persist(artifacts)
        except (FetchError, CacheError) as e:
            result.states.append(RunState.FAILED)
            result.error = e
            logger.error("Refresh failed: %s", e)
            raise
        finally:
            self.in_flight -= 1

        result.states.append(RunState.IDLE)
        return result

    async def _scheduled_run(self) -> RunResult | None:
        try:
            return await self.run_once()
        except (FetchError, CacheError):
            # Already logged, wait for the next trigger
            return None
        except Exception:
            logger.exception("Unexpected error during scheduled refresh")
            return None

    async def run_scheduled(
        self,
        schedule: Schedule,
        stop_event: asyncio.Event | None = None,
        max_runs: int | None = None,
    ) -> int:
        """Start a refresh at every fire time of the schedule.

        Runs are started as tasks, so a slow run never delays the next
        trigger and overlapping runs both write (last write wins). A task
        leaves ``running`` as soon as it finishes.

        Args:
            schedule: When to run.
            stop_event: Stops the loop when set.
            max_runs: Stop after this many triggers.

        Returns:
            Number of runs triggered. All of them have finished.
        """
        stop_event = stop_event or asyncio.Event()
        triggered = 0
        last_fire: datetime | None = None

        while not stop_event.is_set() and (max_runs is None or triggered < max_runs):
            now = datetime.now(schedule.tz)
            fire_at = schedule.next_fire(max(now, last_fire) if last_fire else now)
            delay = max((fire_at - now).total_seconds(), 0)
            logger.debug("Next refresh at %s", fire_at.isoformat())
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass
            last_fire = fire_at
            task = asyncio.create_task(self._scheduled_run())
            self.running.add(task)
            task.add_done_callback(self.running.discard)
            triggered += 1

        if self.running:
            await asyncio.gather(*self.running)
        return triggered
