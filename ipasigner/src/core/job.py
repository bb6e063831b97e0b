import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterator, Optional, Union

from ipasigner.src.core.errors import PreconditionError
from ipasigner.src.core.pipeline import (
    PipelineResult,
    ProgressEvent,
    SigningPipeline,
    SigningRequest,
)

JobEvent = Union[ProgressEvent, PipelineResult]


class SigningJob:
    """Runs the pipeline on a single background worker.

    Progress events and the final PipelineResult are put on ``events`` in
    order, so the calling thread can render them while the run proceeds. Only
    one run may be in flight; there is no queueing and no cancellation.
    """

    def __init__(self, pipeline: SigningPipeline):
        self.pipeline = pipeline
        self.events: "queue.Queue" = queue.Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ipasigner-sign"
        )
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    @property
    def running(self) -> bool:
        return self._future is not None and not self._future.done()

    def start(self, request: SigningRequest) -> Future:
        with self._lock:
            if self.running:
                raise PreconditionError("A signing run is already in progress")
            self._future = self._executor.submit(self._work, request)
            return self._future

    def _work(self, request: SigningRequest) -> PipelineResult:
        try:
            result = self.pipeline.execute(request, self.events.put)
        except Exception as e:
            self.events.put(e)
            raise
        self.events.put(result)
        return result

    def iter_events(self) -> Iterator[JobEvent]:
        """Yield events of the current run up to and including its result"""
        while True:
            item = self.events.get()
            if isinstance(item, Exception):
                # Re-raises the worker's exception in this thread
                self._future.result()
                raise item
            yield item
            if isinstance(item, PipelineResult):
                # Let the worker finish so a new run can start straight away
                self._future.result()
                return

    def run(self, request: SigningRequest) -> PipelineResult:
        """Start a run and block until it finishes"""
        self.start(request)
        result = None
        for event in self.iter_events():
            if isinstance(event, PipelineResult):
                result = event
        return result

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
