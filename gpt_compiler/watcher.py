"""
Watch Loop - recompiles .gpt documents as they are created or edited

watchdog delivers file-system events on its own thread; they are handed to
the asyncio loop and each accepted event schedules a pipeline run as a task.
The loop never waits for a compilation before taking the next event.

State machine (one way, no restart):

    IDLE --start()--> WATCHING --stop()--> STOPPED

Only one compilation runs per document at a time. Events for a document that
is already compiling are coalesced into a single follow-up run once the
current one finishes.
"""

import asyncio
import os
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Optional, Dict, Set, Callable, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from gpt_compiler.config import CompilerConfig
from gpt_compiler.exceptions import WatcherStateError
from gpt_compiler.logging_config import get_logger
from gpt_compiler.pipeline import PipelineOrchestrator, PipelineOutcome

logger = get_logger(__name__)

OutcomeCallback = Callable[[Path, PipelineOutcome], None]


class WatchState(str, Enum):
    """Watch loop lifecycle"""
    IDLE = "idle"
    WATCHING = "watching"
    STOPPED = "stopped"


class DocumentEventHandler(FileSystemEventHandler):
    """Forwards watchdog events to the asyncio loop as (event, relative path)"""

    def __init__(self, watch_loop: "WatchLoop", loop: asyncio.AbstractEventLoop, root: Path):
        super().__init__()
        self.watch_loop = watch_loop
        self.loop = loop
        self.root = root

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward("add", event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward("change", event)

    def _forward(self, kind: str, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        relative_path = os.path.relpath(os.fsdecode(event.src_path), self.root)
        try:
            self.loop.call_soon_threadsafe(self.watch_loop.handle_event, kind, relative_path)
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug(f"Dropped {kind} event for {relative_path}: event loop closed")


class WatchLoop:
    """
    Watches a directory tree and compiles documents on add/change.

    Usage:
        watch = WatchLoop(config, orchestrator)
        watch.start(".")
        ...
        watch.stop()
        await watch.drain()
    """

    ACCEPTED_EVENTS = ("add", "change")

    def __init__(
        self,
        config: CompilerConfig,
        orchestrator: PipelineOrchestrator,
        on_outcome: Optional[OutcomeCallback] = None,
        observer_factory: Callable[[], Observer] = Observer
    ):
        self.config = config
        self.orchestrator = orchestrator
        self.on_outcome = on_outcome
        self.state = WatchState.IDLE
        self.root: Optional[Path] = None

        self._observer_factory = observer_factory
        self._observer = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight: Dict[Path, asyncio.Task] = {}
        self._dirty: Set[Path] = set()
        self._semaphore = (
            asyncio.Semaphore(config.max_concurrent) if config.max_concurrent > 0 else None
        )

    @property
    def is_watching(self) -> bool:
        return self.state == WatchState.WATCHING

    @property
    def in_flight(self) -> int:
        """Number of documents currently compiling"""
        return len(self._in_flight)

    def start(self, root_path: Union[str, Path]) -> None:
        """Begin observing root_path. Must be called from the running event loop."""
        if self.state != WatchState.IDLE:
            raise WatcherStateError(self.state.value, "start")

        root = Path(root_path).resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Directory not found: {root}")

        self._loop = asyncio.get_running_loop()
        self.root = root
        self.state = WatchState.WATCHING

        handler = DocumentEventHandler(self, self._loop, root)
        self._observer = self._observer_factory()
        self._observer.schedule(handler, str(root), recursive=True)
        self._observer.start()
        logger.info(f"Watching for {self.config.document_extension} files in: {root}")

        if self.config.initial_scan:
            for path in sorted(root.rglob(f"*{self.config.document_extension}")):
                if path.is_file():
                    self.handle_event("add", str(path.relative_to(root)))

    def stop(self) -> None:
        """Stop accepting events. In-flight compilations are left to finish."""
        if self.state == WatchState.STOPPED:
            return
        was_watching = self.state == WatchState.WATCHING
        self.state = WatchState.STOPPED

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

        if was_watching:
            logger.info("GPT Compiler stopped")

    async def drain(self) -> None:
        """Wait until every dispatched compilation (and follow-up run) is done"""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    def handle_event(self, event: str, relative_path: str) -> Optional[asyncio.Task]:
        """Filter one raw event and dispatch a compilation for it"""
        if self.state != WatchState.WATCHING:
            return None
        if event not in self.ACCEPTED_EVENTS:
            return None
        if not relative_path.endswith(self.config.document_extension):
            return None

        absolute_path = (self.root / relative_path).resolve()
        logger.info(f"File {event}: {absolute_path}")
        return self._dispatch(absolute_path)

    def _dispatch(self, path: Path) -> Optional[asyncio.Task]:
        if path in self._in_flight:
            self._dirty.add(path)
            logger.debug(f"{path} is already compiling, queued one follow-up run")
            return None

        task = self._loop.create_task(self._compile(path))
        self._in_flight[path] = task
        task.add_done_callback(partial(self._on_done, path))
        return task

    def _on_done(self, path: Path, task: asyncio.Task) -> None:
        if self._in_flight.get(path) is task:
            del self._in_flight[path]

        # Accepted before stop(), so it still runs
        if path in self._dirty:
            self._dirty.discard(path)
            self._dispatch(path)

    async def _compile(self, path: Path) -> Optional[PipelineOutcome]:
        try:
            if self._semaphore is None:
                outcome = await self.orchestrator.process_document(path)
            else:
                async with self._semaphore:
                    outcome = await self.orchestrator.process_document(path)
        except Exception:
            logger.exception(f"Error processing file: {path}")
            return None

        if self.on_outcome is not None:
            try:
                self.on_outcome(path, outcome)
            except Exception:
                logger.exception(f"Outcome callback failed for {path}")
        return outcome
