"""
Dispatcher — the central orchestration loop.

For one capability request the dispatcher selects the registered sources,
filters them by runtime condition, runs them under the capability's
strategy, and merges their outcomes into one result.

Flow:
    request → select sources → runtime filter → dispatch → collect → merge

Concurrent capabilities (diagnostics, code actions, hover) run every
source at once and wait for all of them.  Formatting runs sources one at a
time in registration order, each receiving the previous one's output; the
combined change is applied to the document as a single atomic edit.

No single source can fail a request.  Failures, timeouts and skips only
remove that source's contribution.

Two rules keep stale work from leaking out:
    - at most one invocation per (source, document) is in flight; an
      identical request shares it, a different one supersedes it
    - last request wins per (document, capability); an older request
      that finishes late is marked superseded and delivers nothing
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from toolbridge.adapters import GeneratorContext, make_generator
from toolbridge.adapters.diagnostics import DiagnosticSink
from toolbridge.adapters.documents import DocumentStore
from toolbridge.adapters.registry import RegisteredSource, SourceRegistry
from toolbridge.adapters.shell.command import CommandRunner
from toolbridge.core.engine.strategies import STRATEGIES, Strategy
from toolbridge.core.models.descriptor import CachePolicy, Capability
from toolbridge.core.models.outcome import ExecutionOutcome
from toolbridge.core.models.payloads import CodeAction, Diagnostic
from toolbridge.core.models.request import ExecutionRequest
from toolbridge.core.models.text import Position, Range
from toolbridge.core.services.conditions import evaluate_runtime
from toolbridge.core.services.resolver import LocalExecutableResolver
from toolbridge.core.services.result_cache import ResultCache
from toolbridge.core.services.text_edits import diff_edit

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Result of one capability request."""

    capability: Capability
    document_id: str
    payload: Any = None
    outcomes: list[ExecutionOutcome] = field(default_factory=list)
    superseded: bool = False
    applied: bool = False

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed or o.timed_out)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def status(self) -> str:
        if not self.outcomes:
            return "empty"
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def outcome_for(self, source: str) -> ExecutionOutcome | None:
        for outcome in self.outcomes:
            if outcome.source == source:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "capability": self.capability.value,
            "document_id": self.document_id,
            "status": self.status,
            "superseded": self.superseded,
            "applied": self.applied,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "outcomes": [o.model_dump(mode="json", exclude={"payload"}) for o in self.outcomes],
        }


@dataclass
class _InFlight:
    fingerprint: tuple
    task: asyncio.Task


def _empty_payload(capability: Capability, request: ExecutionRequest) -> Any:
    if capability == Capability.DIAGNOSTICS:
        return {request.document_id: []}
    if capability in (Capability.FORMATTING, Capability.RANGE_FORMATTING):
        return request.text
    return []


class Dispatcher:
    """Run capability requests against the source registry.

    Args:
        registry: Where sources are looked up.
        documents: Snapshot accessor and edit applier.
        cache: Result cache for content-cached sources.
        runner: Process runner (a MockCommandRunner in tests).
        resolver: Local executable resolver.
        sink: Where diagnostics are published.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        documents: DocumentStore,
        *,
        cache: ResultCache | None = None,
        runner: CommandRunner | None = None,
        resolver: LocalExecutableResolver | None = None,
        sink: DiagnosticSink | None = None,
    ):
        self.registry = registry
        self.documents = documents
        self.cache = cache or ResultCache()
        self.sink = sink
        self.context = GeneratorContext(
            runner=runner or CommandRunner(),
            resolver=resolver or LocalExecutableResolver(),
            workspace_root=registry.workspace.root,
        )
        self._inflight: dict[tuple[str, str], _InFlight] = {}
        self._generations: dict[tuple[str, Capability], int] = {}
        self._published: dict[str, list[Diagnostic]] = {}
        self._routed: dict[str, set[str]] = {}

    def reset(self) -> None:
        """Forget request bookkeeping.  Call between independent sessions."""
        for entry in self._inflight.values():
            entry.task.cancel()
        self._inflight.clear()
        self._generations.clear()
        self._published.clear()
        self._routed.clear()

    # ── Core pipeline ───────────────────────────────────────────

    async def dispatch(self, request: ExecutionRequest) -> DispatchResult:
        """Run every eligible source for ``request`` and merge the results."""
        key = (request.document_id, request.capability)
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        strategy = STRATEGIES[request.capability]
        sources = self.registry.query(request.capability, request.filetype)
        logger.debug(
            "Dispatching %s for %s to %d source(s)",
            request.capability, request.document_id, len(sources),
        )

        if strategy.sequential:
            outcomes = await self._run_sequential(sources, request, strategy)
        else:
            outcomes = await self._run_concurrent(sources, request, strategy)

        if self._generations.get(key) != generation:
            logger.debug("Discarding superseded %s for %s", request.capability, request.document_id)
            return DispatchResult(
                capability=request.capability,
                document_id=request.document_id,
                payload=_empty_payload(request.capability, request),
                outcomes=outcomes,
                superseded=True,
            )

        payload = strategy.merge(list(zip(sources, outcomes)), request)
        result = DispatchResult(
            capability=request.capability,
            document_id=request.document_id,
            payload=payload,
            outcomes=outcomes,
        )

        for outcome in outcomes:
            status_marker = "✓" if outcome.ok else "⊘" if outcome.skipped else "✗"
            logger.info(
                "%s %s:%s → %s%s",
                status_marker,
                outcome.source,
                request.capability,
                outcome.status,
                f" ({outcome.error})" if outcome.error else "",
            )
        return result

    async def _run_concurrent(
        self,
        sources: Sequence[RegisteredSource],
        request: ExecutionRequest,
        strategy: Strategy,
    ) -> list[ExecutionOutcome]:
        # gather keeps argument order, so completion order never leaks out.
        outcomes = await asyncio.gather(*(self._invoke(s, request) for s in sources))
        return [self._normalize(o, strategy, request.text) for o in outcomes]

    async def _run_sequential(
        self,
        sources: Sequence[RegisteredSource],
        request: ExecutionRequest,
        strategy: Strategy,
    ) -> list[ExecutionOutcome]:
        text = request.text
        outcomes = []
        for source in sources:
            outcome = await self._invoke(source, request.with_text(text))
            outcome = self._normalize(outcome, strategy, text)
            if outcome.ok:
                text = outcome.payload
            outcomes.append(outcome)
        return outcomes

    def _normalize(self, outcome: ExecutionOutcome, strategy: Strategy, text: str) -> ExecutionOutcome:
        if not outcome.ok:
            return outcome
        try:
            payload = strategy.normalize(outcome.payload, text)
        except Exception as e:
            logger.warning("Source %s returned an invalid payload: %s", outcome.source, e)
            return ExecutionOutcome.failure(
                outcome.source, f"Invalid payload: {e}", duration_ms=outcome.duration_ms
            )
        return outcome.model_copy(update={"payload": payload})

    async def _invoke(self, source: RegisteredSource, request: ExecutionRequest) -> ExecutionOutcome:
        """Run one source: runtime condition, cache, then the generator."""
        descriptor = source.descriptor
        if not evaluate_runtime(descriptor.runtime_condition, request, source.name):
            return ExecutionOutcome.skip(source.name, "Runtime condition not met")

        if descriptor.cache == CachePolicy.CONTENT:
            return await self.cache.get_or_compute(
                source.name,
                request.document_id,
                request.fingerprint,
                lambda: self._run_exclusive(source, request),
                revision=request.document.content_hash,
            )
        return await self._run_exclusive(source, request)

    async def _run_exclusive(self, source: RegisteredSource, request: ExecutionRequest) -> ExecutionOutcome:
        """Run the generator, keeping one invocation per (source, document)."""
        key = (source.name, request.document_id)
        fingerprint = request.fingerprint

        pending = self._inflight.get(key)
        if pending is not None and not pending.task.done():
            if pending.fingerprint == fingerprint:
                logger.debug("Sharing in-flight %s for %s", source.name, request.document_id)
                return await self._await_task(pending.task, source.name, shield=True)
            logger.debug("Superseding in-flight %s for %s", source.name, request.document_id)
            pending.task.cancel()
            await asyncio.gather(pending.task, return_exceptions=True)

        generator = make_generator(source, self.context)
        task = asyncio.ensure_future(generator.invoke(request))
        entry = _InFlight(fingerprint, task)
        self._inflight[key] = entry
        try:
            return await self._await_task(task, source.name, shield=False)
        finally:
            if self._inflight.get(key) is entry:
                del self._inflight[key]

    async def _await_task(self, task: asyncio.Task, source: str, *, shield: bool) -> ExecutionOutcome:
        try:
            return await (asyncio.shield(task) if shield else task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and current is not None and not current.cancelling():
                return ExecutionOutcome.skip(source, "Superseded by a newer request")
            raise

    # ── Capability operations ───────────────────────────────────

    def _request(self, capability: Capability, document_id: str, **kwargs: Any) -> ExecutionRequest:
        snapshot = self.documents.get_snapshot(document_id)
        return ExecutionRequest.build(capability, snapshot, **kwargs)

    async def diagnostics(self, document_id: str) -> DispatchResult:
        """Compute and publish diagnostics for a document.

        Diagnostics reported for other files are published to those
        files; files this document routed to last time but not now are
        cleared.
        """
        result = await self.dispatch(self._request(Capability.DIAGNOSTICS, document_id))
        if not result.superseded:
            self._publish(document_id, result.payload)
        return result

    def _publish(self, origin: str, by_document: dict[str, list[Diagnostic]]) -> None:
        routed = {doc for doc in by_document if doc != origin}
        stale = self._routed.get(origin, set()) - routed
        self._routed[origin] = routed

        for doc in sorted(stale):
            self._publish_one(doc, [])
        for doc, diagnostics in by_document.items():
            self._publish_one(doc, diagnostics)

    def _publish_one(self, document_id: str, diagnostics: list[Diagnostic]) -> None:
        self._published[document_id] = list(diagnostics)
        if self.sink is not None:
            self.sink.publish(document_id, diagnostics)

    async def format(self, document_id: str, range: Range | None = None) -> DispatchResult:
        """Run the formatting chain and apply it as one atomic edit.

        With ``range`` the range_formatting sources run instead.  Nothing
        is applied when the document changed while formatters ran.
        """
        capability = Capability.RANGE_FORMATTING if range is not None else Capability.FORMATTING
        request = self._request(capability, document_id, range=range)
        result = await self.dispatch(request)
        if result.superseded:
            return result

        edit = diff_edit(request.text, result.payload)
        if edit is None:
            return result

        current = self.documents.get_snapshot(document_id)
        if current.content_hash != request.document.content_hash:
            logger.info("Document %s changed during formatting; discarding result", document_id)
            result.superseded = True
            return result

        result.applied = self.documents.apply_edit(document_id, [edit], atomic=True)
        return result

    async def code_actions(
        self,
        document_id: str,
        range: Range | None = None,
        context: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Collect code actions for a document range."""
        request = self._request(Capability.CODE_ACTION, document_id, range=range, context=context)
        return await self.dispatch(request)

    async def hover(self, document_id: str, position: Position) -> DispatchResult:
        """Hover text for a position."""
        return await self.dispatch(self._request(Capability.HOVER, document_id, position=position))

    async def execute_code_action(self, action: CodeAction, document_id: str) -> bool:
        """Run a previously returned code action.

        Re-enters the source that produced it: the source must still be
        registered and active.  Edits from the action are applied as one
        step.
        """
        source = self.registry.get(action.source)
        if source is None or not source.active:
            logger.warning("Code action '%s': source '%s' is not active", action.title, action.source)
            return False

        edits = list(action.edits)
        if action.action is not None:
            request = self._request(Capability.CODE_ACTION, document_id)
            try:
                returned = action.action(request)
                if inspect.isawaitable(returned):
                    returned = await returned
            except Exception as e:
                logger.error("Code action '%s' from %s raised: %s", action.title, action.source, e)
                return False
            if returned:
                edits.extend(returned)

        if not edits:
            return True
        return self.documents.apply_edit(document_id, edits, atomic=True)

    def toggle(self, name: str) -> bool:
        """Enable or disable a source.

        Disabling a diagnostics source withdraws its published diagnostics.
        """
        enabled = self.registry.toggle(name)
        source = self.registry.get(name)
        if not enabled and source is not None and source.capability == Capability.DIAGNOSTICS:
            for document_id, diagnostics in list(self._published.items()):
                kept = [d for d in diagnostics if d.source != name]
                if len(kept) != len(diagnostics):
                    self._publish_one(document_id, kept)
        return enabled
