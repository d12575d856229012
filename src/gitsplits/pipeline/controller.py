"""Pipeline controller: one inbound message in, one reply out.

Flow per turn:
    control commands (mode, experience, cancel, replay, approve)
    -> intent resolution (patterns, then the assisted classifier)
    -> confidence gate -> validation -> policy gate
    -> plan (advisor/draft or approval required) or execute
    -> conversation memory + telemetry

Turns for one user run inside that user's critical section; replay is
dispatched before the section is entered because it re-runs a full turn.
`process_message` never raises for user input.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from gitsplits.agents.classifier import assist_intent, format_assisted_suggestion
from gitsplits.agents.registry import IntentRegistry
from gitsplits.agents.types import (
    Collaborators,
    InboundMessage,
    IntentContext,
    IntentDefinition,
    IntentMatch,
)
from gitsplits.clock import Clock, epoch_ms
from gitsplits.config import Settings
from gitsplits.conversation.state import ConversationState, ConversationStore
from gitsplits.errors import PlanExpired, PlanMismatch, ValidationError
from gitsplits.observability.logging import bound_turn, get_logger
from gitsplits.pipeline.commands import (
    Approve,
    Cancel,
    ControlCommand,
    Replay,
    SetExperience,
    SetMode,
    parse_control_command,
    strip_mention,
)
from gitsplits.pipeline.memory import follow_up_hint, remember_updates
from gitsplits.safety.policy import (
    SENSITIVE_INTENTS,
    PolicyDecision,
    evaluate_policy,
    requires_approval,
)
from gitsplits.telemetry import AgentEvent, EventLog, ReplayableCommand, ReplayStore, create_event_id
from gitsplits.workflows.plans import (
    PlanStatus,
    approve_pending_plan,
    cancel_pending_plan,
    create_action_plan,
    format_plan_for_user,
)

logger = get_logger(__name__)

UNRECOGNIZED_REPLY = "I didn't understand that. Try: 'analyze near/near-sdk-rs'"
PIPELINE_FAILURE_REPLY = "❌ Something went wrong while handling that message. Please try again."
ADVISOR_PREFIX = (
    "Advisor mode is active: this plan is shown for review and will not execute. "
    'Switch with "mode draft" or "mode execute" to act on it.'
)


@dataclass(frozen=True)
class AgentReply:
    response: str
    event_id: str


_MODE_DESCRIPTIONS = {
    "advisor": "create/pay produce plans for review only, nothing executes.",
    "draft": "create/pay produce a plan that runs after you approve it.",
    "execute": "commands execute immediately.",
}


class AgentController:
    def __init__(
        self,
        *,
        registry: IntentRegistry,
        tools: Collaborators,
        settings: Settings,
        store: ConversationStore | None = None,
        replay_store: ReplayStore | None = None,
        event_log: EventLog | None = None,
        clock: Clock = epoch_ms,
    ):
        self.registry = registry
        self.tools = tools
        self.settings = settings
        self.clock = clock
        self.store = store or ConversationStore(
            default_execution_mode=settings.default_execution_mode,
            capacity=settings.conversation_capacity,
            clock=clock,
        )
        self.replays = replay_store or ReplayStore(
            capacity=settings.replay_capacity,
            ttl_seconds=settings.replay_ttl_seconds,
            clock=clock,
        )
        self.events = event_log or EventLog.from_settings(settings)

    async def process_message(self, message: InboundMessage) -> str:
        return (await self.handle_message(message)).response

    async def handle_message(self, message: InboundMessage) -> AgentReply:
        """Like `process_message`, but also returns the id of the event that
        produced the reply (the replayed turn's id for a replay)."""
        event_id = create_event_id()
        try:
            return await self._process(message, event_id)
        except Exception as exc:
            logger.exception("pipeline_error", author=message.author, event_id=event_id)
            self.events.record(
                AgentEvent.PIPELINE_ERROR, event_id=event_id, author=message.author, error=str(exc)
            )
            return AgentReply(PIPELINE_FAILURE_REPLY, event_id)

    async def _process(self, message: InboundMessage, event_id: str) -> AgentReply:
        self.events.record(
            AgentEvent.MESSAGE_RECEIVED,
            event_id=event_id,
            author=message.author,
            channel=message.channel,
            text=message.text,
        )

        command = parse_control_command(message.text)
        if isinstance(command, Replay):
            return await self._replay(command.event_id, message, event_id)

        with bound_turn(author=message.author, channel=message.channel, event_id=event_id):
            async with self.store.turn(message.author) as state:
                state.last_event_id = event_id
                if command is not None:
                    response = await self._control(command, state, message, event_id)
                else:
                    response = await self._handle_intent(state, message, event_id)
        return AgentReply(response, event_id)

    # Control commands

    async def _control(
        self,
        command: ControlCommand,
        state: ConversationState,
        message: InboundMessage,
        event_id: str,
    ) -> str:
        if isinstance(command, SetMode):
            previous = state.execution_mode
            state.execution_mode = command.mode
            discarded = cancel_pending_plan(state)
            self.events.record(
                AgentEvent.MODE_CHANGED,
                event_id=event_id,
                author=message.author,
                previous=previous,
                mode=command.mode,
                discarded_plan_id=discarded.id if discarded else None,
            )
            reply = f"✅ Execution mode set to {command.mode}: {_MODE_DESCRIPTIONS[command.mode]}"
            if discarded is not None:
                reply += f"\nPending plan {discarded.id} was discarded."
            return reply

        if isinstance(command, SetExperience):
            previous_experience = state.experience_mode
            state.experience_mode = command.mode
            self.events.record(
                AgentEvent.EXPERIENCE_MODE_CHANGED,
                event_id=event_id,
                author=message.author,
                previous=previous_experience,
                mode=command.mode,
            )
            return f"✅ Experience mode set to {command.mode}."

        if isinstance(command, Cancel):
            cancelled = cancel_pending_plan(state)
            if cancelled is None:
                return "No pending plan to cancel."
            self.events.record(
                AgentEvent.PLAN_CANCELLED,
                event_id=event_id,
                author=message.author,
                plan_id=cancelled.id,
                status=PlanStatus.CANCELLED.value,
            )
            return f"Cancelled pending plan {cancelled.id}."

        if isinstance(command, Approve):
            return await self._approve(command, state, message, event_id)

        raise TypeError(f"Unhandled control command: {command!r}")

    async def _approve(
        self,
        command: Approve,
        state: ConversationState,
        message: InboundMessage,
        event_id: str,
    ) -> str:
        try:
            plan = approve_pending_plan(state, command.plan_id, now_ms=self.clock())
        except PlanMismatch as exc:
            self.events.record(
                AgentEvent.PLAN_MISMATCH,
                event_id=event_id,
                author=message.author,
                expected=exc.expected,
                supplied=exc.supplied,
            )
            return f"⚠️ {exc.message}"
        except PlanExpired as exc:
            self.events.record(
                AgentEvent.PLAN_EXPIRED,
                event_id=event_id,
                author=message.author,
                plan_id=exc.plan_id,
                status=PlanStatus.EXPIRED.value,
            )
            return f"⌛ {exc.message}"

        intent = self.registry.get(plan.intent)
        if intent is None:
            raise LookupError(f"Plan {plan.id} references unknown intent {plan.intent}")

        decision = evaluate_policy(
            plan.intent, plan.params, state.execution_mode, settings=self.settings
        )
        if not decision.allowed:
            # A blocked approval leaves the plan pending.
            state.pending_plan = plan
            return self._policy_block(plan.intent, decision, message, event_id)

        self.events.record(
            AgentEvent.PLAN_EXECUTED,
            event_id=event_id,
            author=message.author,
            plan_id=plan.id,
            intent=plan.intent,
            status=PlanStatus.APPROVED.value,
        )
        # Flags such as strict mode or an engine hint live in the original text.
        source_text = plan.source_text or message.text
        if command.override_safety:
            source_text = f"{source_text} override safety"
        return await self._execute(
            intent,
            plan.params,
            state,
            replace(message, text=source_text),
            event_id,
            approved_plan_id=plan.id,
        )

    async def _replay(
        self, replay_id: str, message: InboundMessage, event_id: str
    ) -> AgentReply:
        lookup = self.replays.lookup(replay_id)
        command = lookup.command
        rejection = lookup.rejection
        # Only the original author may replay a command.
        if command is not None and command.author != message.author:
            rejection = "not_found"
        if rejection is not None or command is None:
            self.events.record(
                AgentEvent.REPLAY_REJECTED,
                event_id=event_id,
                author=message.author,
                replay_id=replay_id,
                reason=rejection,
            )
            if rejection == "expired":
                return AgentReply(
                    f"⌛ Replay {replay_id} expired. Commands can be replayed for 24 hours.",
                    event_id,
                )
            return AgentReply(f"❌ Replay {replay_id} not found.", event_id)

        self.events.record(
            AgentEvent.REPLAY_STARTED,
            event_id=event_id,
            author=message.author,
            replay_id=replay_id,
        )
        envelope = InboundMessage(
            text=command.text,
            author=command.author,
            channel=command.type,
            wallet_address=command.wallet_address,
            near_account_id=command.near_account_id,
            evm_address=command.evm_address,
        )
        inner = await self._process(envelope, create_event_id())
        return AgentReply(f"🔁 Replay {replay_id}\n\n{inner.response}", inner.event_id)

    # Intents

    async def _resolve(
        self, state: ConversationState, text: str, event_id: str
    ) -> IntentMatch | None:
        match = self.registry.resolve(text)
        if match is not None or state.experience_mode != "hands_off":
            return match
        assisted = await assist_intent(
            text, inference=self.tools.inference, settings=self.settings
        )
        if assisted is None:
            return None
        self.events.record(
            AgentEvent.HANDS_OFF_ASSISTED_PARSE,
            event_id=event_id,
            intent=assisted.intent_name,
            confidence=assisted.confidence,
            source=assisted.source,
        )
        return assisted.to_match()

    def _low_confidence_reply(self, match: IntentMatch) -> str:
        return (
            f"I may have misunderstood that ({match.name}, confidence {match.confidence:.2f}). "
            'Please confirm with a clearer command, e.g. "analyze owner/repo" or '
            '"pay 10 NEAR to owner/repo".'
        )

    async def _handle_intent(
        self, state: ConversationState, message: InboundMessage, event_id: str
    ) -> str:
        text = strip_mention(message.text)
        match = await self._resolve(state, text, event_id)
        if match is None:
            self.events.record(
                AgentEvent.INTENT_UNRECOGNIZED, event_id=event_id, author=message.author
            )
            return UNRECOGNIZED_REPLY

        if match.confidence < self.settings.min_parse_confidence:
            self.events.record(
                AgentEvent.INTENT_LOW_CONFIDENCE,
                event_id=event_id,
                intent=match.name,
                confidence=match.confidence,
            )
            if state.experience_mode == "hands_off":
                assisted = await assist_intent(
                    text, inference=self.tools.inference, settings=self.settings
                )
                if assisted is not None:
                    if assisted.confidence < self.settings.hands_off_min_confidence:
                        return format_assisted_suggestion(assisted)
                    match = assisted.to_match()
            if match.confidence < self.settings.min_parse_confidence:
                return self._low_confidence_reply(match)

        intent = self.registry.get(match.name)
        if intent is None:
            self.events.record(
                AgentEvent.INTENT_UNRECOGNIZED,
                event_id=event_id,
                author=message.author,
                intent=match.name,
            )
            return UNRECOGNIZED_REPLY

        self.replays.register(
            ReplayableCommand(
                event_id=event_id,
                text=message.text,
                author=message.author,
                type=message.channel,
                created_at=self.clock(),
                wallet_address=message.wallet_address,
                near_account_id=message.near_account_id,
                evm_address=message.evm_address,
            )
        )

        params = dict(match.params)
        try:
            intent.validate(params)
        except ValidationError as exc:
            self.events.record(
                AgentEvent.VALIDATION_FAILED,
                event_id=event_id,
                intent=intent.name,
                error=exc.message,
            )
            return f"❌ {exc.message}"

        decision = evaluate_policy(
            intent.name, params, state.execution_mode, settings=self.settings
        )
        needs_plan = intent.name in SENSITIVE_INTENTS and (
            state.execution_mode in ("advisor", "draft")
            or requires_approval(intent.name, self.settings)
        )

        if not decision.allowed and not (needs_plan and decision.advisory_only):
            return self._policy_block(intent.name, decision, message, event_id)

        if needs_plan:
            plan = create_action_plan(
                intent.name,
                params,
                confidence=match.confidence,
                now_ms=self.clock(),
                ttl_seconds=self.settings.plan_ttl_seconds,
                warnings=decision.warnings,
                source_text=message.text,
            )
            state.pending_plan = plan
            self.events.record(
                AgentEvent.PLAN_CREATED,
                event_id=event_id,
                author=message.author,
                plan_id=plan.id,
                intent=plan.intent,
                mode=state.execution_mode,
                status=PlanStatus.PENDING.value,
            )
            formatted = format_plan_for_user(plan)
            if state.execution_mode == "advisor":
                return f"{ADVISOR_PREFIX}\n\n{formatted}"
            return formatted

        return await self._execute(intent, params, state, message, event_id)

    def _policy_block(
        self,
        intent_name: str,
        decision: PolicyDecision,
        message: InboundMessage,
        event_id: str,
    ) -> str:
        self.events.record(
            AgentEvent.POLICY_BLOCK,
            event_id=event_id,
            author=message.author,
            intent=intent_name,
            reasons=decision.reasons,
        )
        return f"🛑 Policy blocked {intent_name}: {' | '.join(decision.reasons)}"

    async def _execute(
        self,
        intent: IntentDefinition,
        params: dict[str, Any],
        state: ConversationState,
        message: InboundMessage,
        event_id: str,
        *,
        approved_plan_id: str | None = None,
    ) -> str:
        now_ms = self.clock()
        ctx = IntentContext(
            message=message,
            state=state,
            settings=self.settings,
            tools=self.tools,
            now_ms=now_ms,
            execution_mode="execute" if approved_plan_id else state.execution_mode,
            approved_plan_id=approved_plan_id,
        )
        try:
            result = await intent.execute(params, ctx)
        except Exception as exc:
            logger.exception("intent_crashed", intent=intent.name, event_id=event_id)
            self.events.record(
                AgentEvent.INTENT_FAILED,
                event_id=event_id,
                intent=intent.name,
                error=str(exc),
                approved_plan_id=approved_plan_id,
            )
            return f"❌ {intent.name} failed unexpectedly. Please try again."

        state.apply(result.updates)
        remember_updates(state, result.updates, now_ms)
        self.events.record(
            AgentEvent.INTENT_EXECUTED if result.success else AgentEvent.INTENT_FAILED,
            event_id=event_id,
            author=message.author,
            intent=intent.name,
            approved_plan_id=approved_plan_id,
            success=result.success,
        )

        response = result.response
        if result.success and state.experience_mode == "guided":
            hint = follow_up_hint(intent.name, state)
            if hint:
                response = f"{response}\n\n{hint}"
        return response
