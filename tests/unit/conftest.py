"""Pytest unit test fixtures."""

import pytest

from voice_intake.core.metrics import MetricsCollector
from voice_intake.dialogue.controller import DialogueController
from voice_intake.memory.store import InMemoryConversationStore
from voice_intake.speech.buffered import BufferedSpeech
from voice_intake.tools.orders import OrderSubmitter

ORDERS_URL = "http://orders.test/api/orders"


@pytest.fixture()
def memory_store():
    return InMemoryConversationStore()


@pytest.fixture()
def submitter(order_backend):
    return OrderSubmitter(ORDERS_URL, client=order_backend.client())


@pytest.fixture()
def speech():
    return BufferedSpeech()


@pytest.fixture()
def metrics():
    return MetricsCollector()


@pytest.fixture()
def controller(memory_store, submitter, speech, metrics):
    conversation = memory_store.create()
    controller = DialogueController(
        conversation.conversation_id,
        memory_store,
        submitter,
        speech=speech,
        metrics=metrics,
    )
    controller.start()
    return controller
