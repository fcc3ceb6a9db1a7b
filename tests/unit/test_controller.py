import asyncio

import httpx
import pytest

from voice_intake.core.errors import InvalidTransition, MissingProductName
from voice_intake.dialogue.controller import SUCCESS_ANNOUNCEMENT, DialogueController
from voice_intake.dialogue.effects import (
    CancelSpeech,
    CloseConversation,
    OpenUrl,
    OrderCreated,
    Speak,
    StopListening,
)
from voice_intake.memory.models import DialogueState, SlotState
from voice_intake.planner.simple import GREETING
from voice_intake.speech.buffered import BufferedSpeech


def say(controller, *utterances):
    async def run():
        result = None
        for utterance in utterances:
            result = await controller.handle_utterance(utterance)
        return result

    return asyncio.run(run())


def test_start_greets_and_awaits_input(controller, speech):
    conversation = controller.conversation

    assert conversation.state is DialogueState.AWAITING_INPUT
    assert [(turn.role, turn.text) for turn in conversation.history] == [("assistant", GREETING)]
    assert controller.effects.of_type(Speak) == [Speak(GREETING)]
    assert list(speech.spoken) == [GREETING]


def test_single_utterance_reaches_confirmation(controller):
    decision = say(controller, "I want two bottles of olive oil from Target")

    conversation = controller.conversation
    assert decision.ready_to_confirm
    assert conversation.state is DialogueState.READY_TO_CONFIRM
    assert conversation.slots == SlotState(product_name="bottles of olive oil", quantity=2, retailer="Target")
    assert [turn.role for turn in conversation.history] == ["assistant", "user", "assistant"]
    assert conversation.history[-1].text.startswith("Great! I'll order 2 bottles of olive oil from Target.")


def test_slots_fill_across_turns(controller):
    conversation = controller.conversation

    say(controller, "sneakers")
    assert conversation.slots.product_name == "sneakers"
    assert conversation.state is DialogueState.AWAITING_INPUT
    assert conversation.pending_slot == "quantity"

    say(controller, "three")
    assert conversation.slots.quantity == 3
    assert conversation.pending_slot == "retailer"
    assert conversation.state is DialogueState.AWAITING_INPUT

    say(controller, "amazon")
    assert conversation.slots.retailer == "Amazon"
    assert conversation.state is DialogueState.READY_TO_CONFIRM


def test_unrecognised_utterance_repeats_prompt(controller):
    say(controller, "three", "amazon")

    prompts = [turn.text for turn in controller.conversation.history if turn.role == "assistant"][1:]
    assert prompts == ["I didn't catch the product name. What do you want to buy?"] * 2
    assert controller.conversation.state is DialogueState.AWAITING_INPUT


def test_confirmation_submits_exactly_once(controller, order_backend, metrics):
    say(controller, "sneakers", "three", "amazon")
    turns_before = len(controller.conversation.history)

    say(controller, "ok")

    conversation = controller.conversation
    assert len(order_backend.requests) == 1
    payload = order_backend.requests[0]
    assert payload["product"]["name"] == "sneakers"
    assert payload["product"]["quantity"] == 3
    assert payload["retailer"] == "Amazon"
    assert conversation.state is DialogueState.COMPLETED
    assert conversation.order_id == "ord_123"
    assert controller.effects.of_type(OrderCreated) == [OrderCreated("ord_123")]
    assert controller.effects.of_type(OpenUrl) == [OpenUrl("https://www.amazon.com/s?k=sneakers")]
    assert controller.effects.of_type(CloseConversation) == [CloseConversation(conversation.conversation_id, 3.0)]
    assert Speak(SUCCESS_ANNOUNCEMENT) in controller.effects.of_type(Speak)
    # The confirmation itself is not merged or recorded as a turn.
    assert len(conversation.history) == turns_before
    assert metrics.snapshot().submissions == {"completed": 1}


def test_spoken_okay_confirms_the_order(controller, order_backend):
    say(controller, "sneakers", "three", "amazon", "okay")

    assert len(order_backend.requests) == 1
    assert controller.conversation.state is DialogueState.COMPLETED
    assert controller.conversation.order_id == "ord_123"


def test_utterances_after_completion_are_ignored(controller, order_backend):
    say(controller, "sneakers", "three", "amazon", "yes")

    assert say(controller, "yes") is None
    assert len(order_backend.requests) == 1
    assert controller.conversation.state is DialogueState.COMPLETED


def test_non_affirmative_reply_keeps_confirmed_slots(controller, order_backend):
    say(controller, "sneakers from amazon", "three")

    say(controller, "actually make it walmart")

    conversation = controller.conversation
    assert conversation.slots.retailer == "Amazon"
    assert conversation.state is DialogueState.READY_TO_CONFIRM
    assert order_backend.requests == []


def test_affirmative_before_confirmation_is_extracted_normally(controller, order_backend):
    say(controller, "yes")

    assert order_backend.requests == []
    assert controller.conversation.slots.product_name == "yes"


def test_submit_action_requires_confirmation_state(controller):
    say(controller, "sneakers")

    with pytest.raises(InvalidTransition):
        asyncio.run(controller.request_submission())


def test_submit_action_from_confirmation_state(controller, order_backend):
    say(controller, "I want two bottles of olive oil from Target")

    order_id = asyncio.run(controller.request_submission())

    assert order_id == "ord_123"
    assert order_backend.requests[0]["product"]["url"] == "https://www.target.com/s?searchTerm=bottles%20of%20olive%20oil"


def test_missing_product_name_never_reaches_the_network(submitter, order_backend):
    with pytest.raises(MissingProductName):
        asyncio.run(submitter.submit(SlotState(quantity=2, retailer="Target")))

    assert order_backend.requests == []


def test_rejected_submission_errors_the_conversation(controller, order_backend, speech, metrics):
    order_backend.status_code = 422
    order_backend.body = {"detail": "Invalid retailer"}
    say(controller, "sneakers", "three", "amazon", "go ahead")

    conversation = controller.conversation
    assert conversation.state is DialogueState.ERRORED
    assert conversation.last_error == "Submission failed: Invalid retailer"
    assert speech.spoken[-1] == "Sorry, there was an error submitting the order to the dashboard."
    assert metrics.snapshot().submissions == {"rejected": 1}
    assert say(controller, "yes") is None
    assert len(order_backend.requests) == 1


def test_network_failure_errors_the_conversation(controller, order_backend, speech, metrics):
    order_backend.error = httpx.ConnectError("connection refused")
    say(controller, "sneakers", "three", "amazon", "submit")

    conversation = controller.conversation
    assert conversation.state is DialogueState.ERRORED
    assert conversation.last_error == "Network error connecting to backend."
    assert speech.spoken[-1] == "Sorry, I couldn't connect to the server."
    assert metrics.snapshot().submissions == {"network_unavailable": 1}


def test_restart_clears_slots_history_and_flags(controller, order_backend):
    order_backend.status_code = 500
    say(controller, "sneakers", "three", "amazon", "yes")
    assert controller.conversation.state is DialogueState.ERRORED

    controller.restart()

    conversation = controller.conversation
    assert conversation.slots == SlotState()
    assert [turn.text for turn in conversation.history] == [GREETING]
    assert conversation.state is DialogueState.AWAITING_INPUT
    assert conversation.last_error is None
    assert not conversation.ready_to_confirm


def test_dismiss_stops_speech_and_forgets_conversation(controller, memory_store, speech):
    controller.listen()

    controller.dismiss()

    assert not memory_store.contains(controller.conversation_id)
    assert not speech.listening
    assert speech.speaking is None
    assert controller.effects.history[-2:] == [StopListening(), CancelSpeech()]
    assert say(controller, "sneakers") is None


def test_submission_survives_dismissal(controller, order_backend):
    say(controller, "sneakers", "three", "amazon")

    async def run():
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_backend(request):
            started.set()
            await release.wait()
            return httpx.Response(201, json={"order_id": "ord_9"})

        controller.submitter._client = httpx.AsyncClient(transport=httpx.MockTransport(slow_backend))
        task = asyncio.create_task(controller.handle_utterance("yes"))
        await started.wait()
        controller.dismiss()
        release.set()
        await task

    asyncio.run(run())

    assert controller.effects.of_type(OrderCreated) == [OrderCreated("ord_9")]
    assert controller.effects.of_type(CloseConversation) == []


def test_stale_submission_does_not_complete_a_restarted_episode(controller):
    say(controller, "sneakers", "three", "amazon")

    async def run():
        gates = {"ord_old": asyncio.Event(), "ord_new": asyncio.Event()}
        started = {"ord_old": asyncio.Event(), "ord_new": asyncio.Event()}
        pending = ["ord_old", "ord_new"]

        async def gated_backend(request):
            order_id = pending.pop(0)
            started[order_id].set()
            await gates[order_id].wait()
            return httpx.Response(201, json={"order_id": order_id})

        controller.submitter._client = httpx.AsyncClient(transport=httpx.MockTransport(gated_backend))
        first = asyncio.create_task(controller.handle_utterance("yes"))
        await started["ord_old"].wait()

        controller.restart()
        for utterance in ("socks", "two", "target"):
            await controller.handle_utterance(utterance)
        second = asyncio.create_task(controller.handle_utterance("yes"))
        await started["ord_new"].wait()

        gates["ord_old"].set()
        await first
        conversation = controller.conversation
        assert conversation.state is DialogueState.SUBMITTING
        assert conversation.order_id is None

        gates["ord_new"].set()
        await second

    asyncio.run(run())

    conversation = controller.conversation
    assert conversation.state is DialogueState.COMPLETED
    assert conversation.order_id == "ord_new"
    assert controller.effects.of_type(OrderCreated) == [OrderCreated("ord_old"), OrderCreated("ord_new")]
    assert len(controller.effects.of_type(CloseConversation)) == 1


def test_convergence_for_any_split(memory_store, submitter, convergence_scenarios):
    for scenario in convergence_scenarios:
        conversation = memory_store.create()
        controller = DialogueController(conversation.conversation_id, memory_store, submitter)
        controller.start()
        *leading, last = scenario["turns"]

        say(controller, *leading)
        assert conversation.state is not DialogueState.READY_TO_CONFIRM, scenario["turns"]

        say(controller, last)
        assert conversation.state is DialogueState.READY_TO_CONFIRM, scenario["turns"]
        assert conversation.slots.as_dict() == scenario["expected"]


def test_listening_episode_feeds_the_dialogue(controller, speech):
    async def run():
        assert controller.listen() is True
        assert controller.listen() is False
        speech.deliver("sneakers")
        await controller.settle()

    asyncio.run(run())

    assert controller.conversation.slots.product_name == "sneakers"
    assert not speech.listening
    assert controller.can_listen


def test_recognizer_is_stopped_before_speaking(controller, speech):
    controller.listen()

    say(controller, "sneakers")

    assert not speech.listening
    assert speech.speaking == "Got it, sneakers. How many do you want?"


def test_recognition_error_is_reported_inline(controller, speech):
    controller.listen()

    speech.fail("no-speech")

    conversation = controller.conversation
    assert conversation.last_error == "Listening failed: no-speech"
    assert conversation.state is DialogueState.AWAITING_INPUT
    say(controller, "sneakers")
    assert conversation.slots.product_name == "sneakers"


def test_unsupported_speech_leaves_text_path_usable(memory_store, submitter):
    conversation = memory_store.create()
    controller = DialogueController(
        conversation.conversation_id,
        memory_store,
        submitter,
        speech=BufferedSpeech(supported=False),
    )
    controller.start()

    assert controller.listen() is False
    assert conversation.last_error == "Listening failed: Browser not supported"
    say(controller, "I want two bottles of olive oil from Target")
    assert conversation.state is DialogueState.READY_TO_CONFIRM


def test_listening_is_refused_once_finished(controller):
    say(controller, "sneakers", "three", "amazon", "yes")

    assert controller.can_listen is False
    with pytest.raises(InvalidTransition):
        controller.listen()
