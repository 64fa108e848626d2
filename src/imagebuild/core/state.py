"""
imagebuild.core.state - Run State Model
=========================================

RunState is the record of one orchestrator invocation. The deploy workflow
never mutates it in place; each transition produces a new snapshot via
``model_copy(update=...)`` so earlier snapshots stay valid for logging and
tests.

State Transitions:
    state:   IDLE → PROVISIONING → BUILDS_TRIGGERED → WATCHING_* → TORN_DOWN
    outcome: None while running, SUCCESS or FAILURE once TORN_DOWN
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from imagebuild.core.enums import Action, RunOutcome, WorkflowState


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RunState(BaseModel):
    """Runtime record of a single invocation.

    Attributes:
        run_id: The run-scoped suffix of the DeploymentContext.
        action: The action this invocation executes.
        state: Current workflow state.
        outcome: Terminal result, None until the run is torn down.
        history: Ordered state transitions, each {"state", "entered_at"}.
        error_log: Serialized errors (ImageBuildError.to_dict() or similar).
        teardown_count: How many times teardown ran. Must end at 1 for DEPLOY.
        build_ids: Ids returned by the managed build service.
        command_id: Id of the remote command sent to the Windows instance.
    """

    run_id: str
    action: Action = Action.DEPLOY
    state: WorkflowState = WorkflowState.IDLE
    outcome: Optional[RunOutcome] = None
    history: list[dict[str, Any]] = Field(default_factory=list)
    error_log: list[dict[str, Any]] = Field(default_factory=list)
    teardown_count: int = Field(default=0, ge=0)
    build_ids: list[str] = Field(default_factory=list)
    command_id: Optional[str] = None
    started_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None

    def transition(self, state: WorkflowState) -> RunState:
        """Return a copy of this state moved to ``state``."""
        entry = {"state": state.value, "entered_at": _now().isoformat()}
        return self.model_copy(update={
            "state": state,
            "history": list(self.history) + [entry],
        })

    @property
    def visited_states(self) -> list[WorkflowState]:
        """States entered so far, in order."""
        return [WorkflowState(entry["state"]) for entry in self.history]

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.SUCCESS

    @property
    def exit_code(self) -> int:
        """Process exit status for this run: 0 on success, 1 otherwise."""
        return 0 if self.succeeded else 1

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()
