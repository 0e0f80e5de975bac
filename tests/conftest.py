"""
Shared fixtures for the TubeDigest test suite.

Settings are read from the environment when ``tubedigest.config`` is first
imported, so test defaults are set here before any package import.
"""

import os
import tempfile

os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('LOG_FORMAT', 'standard')
os.environ.setdefault('LOG_LEVEL', 'warning')
os.environ.setdefault('LOG_FILE_PATH', os.path.join(tempfile.gettempdir(), 'tubedigest-tests', 'app.log'))
os.environ.setdefault('JOB_SUPERVISOR_INTERVAL', '0')

from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from tubedigest.app import app
from tubedigest.database import Base, configure_database, close_database_connections
from tubedigest.services.credits_service import CreditsService
from tubedigest.services.job_service import JobService
from tubedigest.services.orchestrator import JobOrchestrator, SummaryPipeline, SummaryResult


class InlineExecutor:
    """Runs submitted work immediately in the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class DeferredExecutor:
    """Queues submitted work until ``run_all`` is called."""

    def __init__(self):
        self.queue = []

    def submit(self, fn, *args, **kwargs):
        self.queue.append((fn, args, kwargs))
        return Future()

    def run_all(self):
        while self.queue:
            fn, args, kwargs = self.queue.pop(0)
            fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


class StubPipeline(SummaryPipeline):
    """Pipeline returning fixed content, or raising a fixed error."""

    name = 'stub'

    def __init__(self, content="Hello world", error=None):
        self.content = content
        self.error = error
        self.details = {}
        self.calls = []

    def run(self, job):
        self.calls.append(job.id)
        if self.error is not None:
            raise self.error
        return SummaryResult(self.content, **self.details)


def make_response(status_code=200, text="", content_type="text/plain", json_data=None):
    """Build a stand-in for a requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    response.headers = {'content-type': content_type}
    response.json.return_value = json_data
    return response


@pytest.fixture(autouse=True)
def database():
    """Fresh in-memory database for every test."""
    engine = configure_database('sqlite://')
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    close_database_connections()


@pytest.fixture
def job_service():
    return JobService()


@pytest.fixture
def credits_service():
    return CreditsService()


@pytest.fixture
def pipeline():
    return StubPipeline()


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def deferred_executor():
    return DeferredExecutor()


@pytest.fixture
def orchestrator(job_service, credits_service, pipeline, inline_executor):
    return JobOrchestrator(
        job_service=job_service,
        pipeline=pipeline,
        credits_service=credits_service,
        executor=inline_executor,
        supervisor_interval=0,
    )


@pytest.fixture
def client(orchestrator):
    """Test client with the application's orchestrator replaced."""
    app.state.orchestrator = orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.state.orchestrator = None


@pytest.fixture
def auth_headers():
    return {'X-User-Id': 'user_alice'}
