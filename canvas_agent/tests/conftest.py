import pytest

from canvas_agent.core.dispatcher import CommandDispatcher
from canvas_agent.core.document import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def dispatcher(store):
    return CommandDispatcher(store)
