"""Story lifecycle hooks and background regeneration."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from app.crud.story import StoryCRUD
from app.models.child import DEFAULT_CHILD_NAME
from app.models.story import StoryModel
from app.services.ai.replenishment import ReplenishmentEngine

logger = logging.getLogger(__name__)

# Age used for replacements when the story carries no usable age range
DEFAULT_REPLACEMENT_AGE = 5
MIN_REPLACEMENT_AGE = 3


class RegenerationQueue:
    """Fire-and-forget runner for background story regeneration.

    Jobs run as asyncio tasks with at most ``max_concurrency`` in flight.
    Failures are logged and dropped; nothing is retried and nothing is
    reported back to whoever submitted the job.
    """

    def __init__(self, max_concurrency: int = 2):
        self.max_concurrency = max(1, max_concurrency)
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, job: Callable[[], Awaitable[object]], name: str = "regeneration") -> asyncio.Task:
        """
        Schedule a job without waiting for it.

        Must be called from a running event loop.

        Args:
            job: Zero-argument coroutine function
            name: Label used in logs

        Returns:
            The scheduled task
        """
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
        task = asyncio.get_running_loop().create_task(self._run(job, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, job: Callable[[], Awaitable[object]], name: str) -> None:
        async with self._semaphore:
            try:
                await job()
            except asyncio.CancelledError:
                logger.info("Background job %s cancelled", name)
                raise
            except Exception as e:
                logger.error("Background job %s failed: %s", name, e, exc_info=True)

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight jobs and wait for them to unwind."""
        for task in list(self._tasks):
            task.cancel()
        await self.drain()


def replacement_age(story: StoryModel) -> int:
    """Age to generate a replacement for, taken from the story's age range."""
    if story.age_range is None:
        return DEFAULT_REPLACEMENT_AGE
    return max(MIN_REPLACEMENT_AGE, story.age_range.min)


class StoryLifecycle:
    """Play, completion and rating hooks for stories."""

    def __init__(
        self,
        stories: StoryCRUD,
        engine: ReplenishmentEngine,
        queue: RegenerationQueue,
    ):
        self.stories = stories
        self.engine = engine
        self.queue = queue

    def on_played(self, story: StoryModel) -> int:
        plays = story.stats.record_play()
        self.stories.save_story(story)
        return plays

    def add_rating(self, story: StoryModel, rating: float) -> StoryModel:
        """
        Add a rating to a story's running average and persist it.

        Args:
            story: Story being rated
            rating: Rating between 1 and 5

        Returns:
            The updated story
        """
        story.stats.add_rating(rating)
        self.stories.save_story(story)
        return story

    def on_completed(self, story: StoryModel) -> Optional[asyncio.Task]:
        """
        Record a completion and retire AI stories.

        AI stories of a collection are deactivated and a single replacement
        is scheduled on the regeneration queue; this returns without waiting
        for it. Other stories only get their completion counter bumped.

        Args:
            story: Completed story

        Returns:
            The scheduled replacement task, if any
        """
        story.stats.record_completion()

        if not (story.is_ai_generated and story.generated_for_collection):
            self.stories.save_story(story)
            return None

        collection_key = story.generated_for_collection
        story.is_active = False
        self.stories.save_story(story)

        age = replacement_age(story)
        logger.info("Retired story %s from %s; scheduling replacement", story.id, collection_key)

        async def _replace() -> None:
            await self.engine.replenish(collection_key, DEFAULT_CHILD_NAME, age, 1)

        return self.queue.submit(_replace, name=f"replace-{collection_key}-{story.id}")
