"""API routes driving voice order conversations."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from voice_intake.dialogue.controller import DialogueController
from voice_intake.dialogue.service import DialogueService
from voice_intake.speech.buffered import BufferedSpeech


class UtterancePayload(BaseModel):
    text: str


class SpeechErrorPayload(BaseModel):
    reason: str


def create_conversations_router(service: DialogueService) -> APIRouter:
    router = APIRouter(prefix="/conversations", tags=["conversations"])

    @router.post("", status_code=201)
    async def start_conversation() -> dict:
        controller = service.open()
        return _respond(controller)

    @router.get("")
    async def list_conversations() -> list[str]:
        return list(service.store.iter_conversations())

    @router.get("/{conversation_id}")
    async def get_conversation(conversation_id: str) -> dict:
        return _snapshot(service.get(conversation_id))

    @router.post("/{conversation_id}/utterances")
    async def post_utterance(conversation_id: str, payload: UtterancePayload) -> dict:
        controller = service.get(conversation_id)
        if not payload.text.strip():
            raise HTTPException(status_code=400, detail="text is required")

        speech = controller.speech
        if isinstance(speech, BufferedSpeech) and speech.listening:
            speech.deliver(payload.text)
            await controller.settle()
        else:
            await controller.handle_utterance(payload.text)
        return _respond(controller)

    @router.post("/{conversation_id}/listen")
    async def listen(conversation_id: str) -> dict:
        controller = service.get(conversation_id)
        controller.listen()
        return _respond(controller)

    @router.post("/{conversation_id}/speech-error")
    async def speech_error(conversation_id: str, payload: SpeechErrorPayload) -> dict:
        controller = service.get(conversation_id)
        speech = controller.speech
        if not (isinstance(speech, BufferedSpeech) and speech.listening):
            raise HTTPException(status_code=409, detail="no active listening episode")
        speech.fail(payload.reason)
        return _respond(controller)

    @router.post("/{conversation_id}/stop")
    async def stop_listening(conversation_id: str) -> dict:
        controller = service.get(conversation_id)
        controller.stop_listening()
        return _respond(controller)

    @router.post("/{conversation_id}/submit")
    async def submit(conversation_id: str) -> dict:
        controller = service.get(conversation_id)
        await controller.request_submission()
        return _respond(controller)

    @router.post("/{conversation_id}/restart")
    async def restart(conversation_id: str) -> dict:
        controller = service.get(conversation_id)
        controller.restart()
        return _respond(controller)

    @router.delete("/{conversation_id}")
    async def dismiss(conversation_id: str) -> dict:
        controller = service.get(conversation_id)
        service.close(conversation_id)
        return {
            "conversation_id": conversation_id,
            "dismissed": True,
            "effects": [effect.as_dict() for effect in controller.effects.drain()],
        }

    return router


def _snapshot(controller: DialogueController) -> dict[str, Any]:
    conversation = controller.conversation
    slots = conversation.slots
    return {
        "conversation_id": conversation.conversation_id,
        "state": conversation.state.value,
        "ready_to_submit": conversation.ready_to_confirm,
        "can_listen": controller.can_listen,
        "pending_slot": conversation.pending_slot,
        "slots": slots.as_dict(),
        "collected_fields": slots.collected(),
        "missing_fields": slots.missing(),
        "product_url": controller.submitter.product_url(slots) if slots.product_name else None,
        "last_heard": conversation.last_heard,
        "error": conversation.last_error,
        "order_id": conversation.order_id,
        "history": [
            {"role": turn.role, "text": turn.text, "timestamp": turn.timestamp.isoformat()}
            for turn in conversation.history
        ],
    }


def _respond(controller: DialogueController) -> dict[str, Any]:
    effects = [effect.as_dict() for effect in controller.effects.drain()]
    return _snapshot(controller) | {"effects": effects}
