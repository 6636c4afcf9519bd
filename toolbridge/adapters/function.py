"""
Function generator — a plain callable run in-process.

The function receives the ExecutionRequest and returns the payload.  It
runs synchronously on the event loop, without suspension.  A function may
instead return an awaitable; that is awaited under the descriptor's
timeout.
"""

from __future__ import annotations

import asyncio
import inspect

from toolbridge.adapters.base import Generator
from toolbridge.core.errors import GeneratorTimeout
from toolbridge.core.models.descriptor import ExecutionKind
from toolbridge.core.models.outcome import ExecutionOutcome
from toolbridge.core.models.request import ExecutionRequest


class FunctionGenerator(Generator):
    """Call ``descriptor.function(request)``."""

    @property
    def kind(self) -> ExecutionKind:
        return ExecutionKind.FUNCTION

    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        function = self.descriptor.function
        assert function is not None  # guaranteed by the descriptor validator

        result = function(request)
        if inspect.isawaitable(result):
            try:
                result = await asyncio.wait_for(result, self.descriptor.timeout)
            except TimeoutError as e:
                raise GeneratorTimeout(self.name, self.descriptor.timeout) from e

        return ExecutionOutcome.success(self.name, result)
