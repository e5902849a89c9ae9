"""
Echo extension

Returns the message it is given. Useful for smoke-testing a lifecycle manager
or a workflow without any external service.
"""

import asyncio
import time

from extensionflow.core.extensions.base import BaseExtension
from extensionflow.core.extensions.manifest import Capability, Manifest
from extensionflow.core.types import Result, Task
from extensionflow.core.utils.helpers import utcnow

DEFAULT_MAX_MESSAGE_LENGTH = 1000

ECHO_MANIFEST = Manifest(
    id="echo-extension",
    name="Echo Extension",
    version="1.0.0",
    description="Returns the input message, optionally after a delay",
    author="extensionflow",
    capabilities=[
        Capability(
            id="echo",
            name="Echo",
            description="Echo a message back",
            operations=["echo"],
            input_schema={
                "type": "object",
                "properties": {
                    "message": {"type": "string"},
                    "delay": {"type": "integer", "minimum": 0},
                },
                "required": ["message"],
            },
        )
    ],
    entry_point="extensionflow.extensions.echo:EchoExtension",
    config_schema={
        "type": "object",
        "properties": {"max_message_length": {"type": "integer", "default": DEFAULT_MAX_MESSAGE_LENGTH}},
    },
)


class EchoExtension(BaseExtension):
    """
    Echo a message back

    Payload:
        message: Text to return
        delay: (optional) Milliseconds to wait before answering

    Config:
        max_message_length: Longest accepted message (default: 1000)

    Result:
        {"message", "timestamp", "received_at", "processed_in"}
    """

    def get_manifest(self) -> Manifest:
        return ECHO_MANIFEST

    @property
    def max_message_length(self) -> int:
        if self.config is None:
            return DEFAULT_MAX_MESSAGE_LENGTH
        return int(
            self.config.config.get(
                "max_message_length",
                self.config.config.get("maxMessageLength", DEFAULT_MAX_MESSAGE_LENGTH),
            )
        )

    async def execute(self, task: Task) -> Result:
        start = time.monotonic()
        self.logger.info(f"Echo extension processing task {task.task_id}")

        try:
            message = task.payload.get("message")
            if not isinstance(message, str):
                raise ValueError("Payload field 'message' must be a string")
            if len(message) > self.max_message_length:
                raise ValueError(f"Message too long: {len(message)} > {self.max_message_length}")

            delay = task.payload.get("delay") or 0
            if delay > 0:
                await asyncio.sleep(delay / 1000)

            processed_in = int((time.monotonic() - start) * 1000)
            result = {
                "message": message,
                "timestamp": utcnow().isoformat(),
                "received_at": task.created_at.isoformat(),
                "processed_in": processed_in,
            }
            self.logger.info(f"Echo extension completed task {task.task_id} in {processed_in}ms")
            return self.create_result(task, result, processed_in)
        except Exception as e:
            duration = int((time.monotonic() - start) * 1000)
            self.logger.error(f"Echo extension failed on task {task.task_id}: {e}")
            return self.create_error_result(task, e, duration)


__all__ = ["EchoExtension", "ECHO_MANIFEST"]
