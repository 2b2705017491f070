"""
Control Reconciler - Keeps one remote control in line with desired state.

Similar to a Terraform resource, the reconciler exposes apply (create or
update), refresh (read) and reset (delete) for a single control. A control
can never be removed from its standard, so reset forces it back to the
enabled baseline and stops tracking it.
"""

import asyncio
import logging
from typing import List, Optional

from errors import (
    InvalidDesiredState,
    RemoteLookupAmbiguous,
    RemoteLookupFailed,
    RemoteResetFailed,
    RemoteUpdateFailed,
)
from models import (
    ControlIdentity,
    ControlPlan,
    ControlState,
    ControlStatus,
    DesiredControlState,
    ObservedControlState,
    PlanAction,
)
from stores.base import ControlStore

logger = logging.getLogger(__name__)

IMPORT_ID_SEPARATOR = ","


def desired_disabled_reason(desired: DesiredControlState) -> Optional[str]:
    """Reason to send upstream; enabled controls never carry one."""
    if desired.enabled:
        return None
    return desired.disabled_reason or None


def parse_import_id(import_id: str) -> ControlIdentity:
    """
    Parse an import id of the form ``<standard_arn>,<control_arn>``.

    Raises:
        InvalidDesiredState: If either part is missing
    """
    parts = [p.strip() for p in (import_id or "").split(IMPORT_ID_SEPARATOR)]
    if len(parts) != 2 or not all(parts):
        raise InvalidDesiredState(
            f"Unexpected format of import id ({import_id!r}), "
            f"expected <standards_arn>{IMPORT_ID_SEPARATOR}<standards_control_arn>"
        )
    return ControlIdentity(standard_arn=parts[0], control_arn=parts[1])


class ControlReconciler:
    """
    Reconciler for a single standards control.

    Owns the engine-visible ControlState for exactly one control identity.
    Each operation issues at most one mutating call and never retries;
    operations on the same instance are serialized by a lock.
    """

    def __init__(self, store: ControlStore, state: Optional[ControlState] = None):
        self.store = store
        self.state = state if state is not None else ControlState()
        self._lock = asyncio.Lock()

    @property
    def identity(self) -> Optional[ControlIdentity]:
        return self.state.identity

    async def apply(
        self, identity: ControlIdentity, desired: DesiredControlState
    ) -> Optional[ObservedControlState]:
        """
        Create or update the control's status.

        Sends one update carrying the target status, then refreshes so the
        returned state is what the store actually holds.

        Args:
            identity: The control to manage
            desired: Desired status and reason

        Returns:
            The observed state after the update, or None if the control
            disappeared before it could be read back.

        Raises:
            InvalidDesiredState: If the identity is malformed or differs from
                the one already tracked
            RemoteUpdateFailed: If the update call fails
        """
        _check_identity(identity)

        async with self._lock:
            current = self.state.identity
            if self.state.is_tracked and current != identity:
                raise InvalidDesiredState(
                    f"Standards control identity cannot change in place "
                    f"({current} -> {identity}); reset and re-create it"
                )

            status = ControlStatus.from_enabled(desired.enabled)
            if desired.enabled and desired.disabled_reason:
                logger.warning(
                    f"Ignoring disabled_reason for standards control "
                    f"{identity.control_arn}: control is enabled"
                )
            reason = desired_disabled_reason(desired)

            logger.debug(
                f"Setting Security Hub standards control {identity.control_arn} "
                f"to {status.value}"
            )
            try:
                await self.store.update_status(
                    identity.control_arn, identity.standard_arn, status, reason
                )
            except Exception as e:
                raise RemoteUpdateFailed(identity, status, e) from e

            self.state.track(identity)
            logger.info(f"Standards control {identity.control_arn} set to {status.value}")

            return await self._refresh()

    async def refresh(self) -> Optional[ObservedControlState]:
        """
        Read the tracked control back from the store.

        Returns:
            The observed state, or None if the control is gone. A gone
            control is dropped from the state.

        Raises:
            InvalidDesiredState: If no control is tracked
            RemoteLookupFailed: If the store query fails
            RemoteLookupAmbiguous: If more than one record matches
        """
        async with self._lock:
            return await self._refresh()

    async def reset(self) -> None:
        """
        Reset the tracked control to the enabled baseline and stop tracking it.

        The update is always sent, whatever the last known status was.

        Raises:
            InvalidDesiredState: If no control is tracked
            RemoteResetFailed: If the update call fails; the control stays
                tracked so the reset can be retried
        """
        async with self._lock:
            identity = self._require_identity()

            logger.debug(
                f"Resetting Security Hub standards control {identity.control_arn}"
            )
            try:
                await self.store.update_status(
                    identity.control_arn,
                    identity.standard_arn,
                    ControlStatus.ENABLED,
                    None,
                )
            except Exception as e:
                raise RemoteResetFailed(identity, ControlStatus.ENABLED, e) from e

            self.state.clear()
            logger.info(
                f"Standards control {identity.control_arn} reset to "
                f"{ControlStatus.ENABLED.value}, no longer tracked"
            )

    async def import_identity(self, import_id: str) -> ControlIdentity:
        """
        Start tracking an existing control without updating it.

        The next refresh() fills in the observed attributes.

        Args:
            import_id: ``<standard_arn>,<control_arn>``

        Returns:
            The imported identity.
        """
        identity = parse_import_id(import_id)

        async with self._lock:
            current = self.state.identity
            if self.state.is_tracked and current != identity:
                raise InvalidDesiredState(
                    f"Cannot import {identity}: already tracking {current}"
                )
            self.state.track(identity)

        logger.info(f"Imported standards control {identity.control_arn}")
        return identity

    def plan(
        self, identity: ControlIdentity, desired: DesiredControlState
    ) -> ControlPlan:
        """
        Compare desired state against the last observed state.

        No remote calls are made; call refresh() first to pick up drift.
        """
        _check_identity(identity)

        current = self.state.identity
        plan = ControlPlan(identity=identity, previous_identity=current)
        reason = desired_disabled_reason(desired)

        if current is None:
            plan.action = PlanAction.CREATE
            plan.changes = _describe_changes(None, None, desired.enabled, reason)
        elif current != identity:
            plan.action = PlanAction.REPLACE
            if current.control_arn != identity.control_arn:
                plan.changes.append(
                    f"standards_control_arn: {current.control_arn!r} -> "
                    f"{identity.control_arn!r} (forces replacement)"
                )
            if current.standard_arn != identity.standard_arn:
                plan.changes.append(
                    f"standards_arn: {current.standard_arn!r} -> "
                    f"{identity.standard_arn!r} (forces replacement)"
                )
            plan.changes += _describe_changes(None, None, desired.enabled, reason)
        else:
            plan.changes = _describe_changes(
                self.state.enabled,
                self.state.disabled_reason,
                desired.enabled,
                reason,
            )
            if plan.changes:
                plan.action = PlanAction.UPDATE

        return plan

    async def reconcile(
        self, identity: ControlIdentity, desired: DesiredControlState
    ) -> ControlPlan:
        """
        Refresh, plan and execute in one pass.

        A changed identity is replaced: the old control is reset to its
        baseline before the new one is applied.

        Returns:
            The plan that was executed.
        """
        if self.state.is_tracked:
            await self.refresh()

        plan = self.plan(identity, desired)

        if plan.action is PlanAction.REPLACE:
            logger.info(f"Replacing {plan.previous_identity} with {identity}")
            await self.reset()
            await self.apply(identity, desired)
        elif plan.action in (PlanAction.CREATE, PlanAction.UPDATE):
            await self.apply(identity, desired)
        else:
            logger.info(f"No changes needed for {identity.control_arn}")

        return plan

    def _require_identity(self) -> ControlIdentity:
        identity = self.state.identity
        if identity is None:
            raise InvalidDesiredState(
                "No standards control is tracked; apply or import one first"
            )
        return identity

    async def _refresh(self) -> Optional[ObservedControlState]:
        identity = self._require_identity()

        logger.debug(f"Reading Security Hub standards control {identity.control_arn}")
        try:
            records = await self.store.query_by_standard(
                identity.standard_arn, identity.control_arn
            )
        except Exception as e:
            raise RemoteLookupFailed(identity, e) from e

        matches = [r for r in records if r.control_arn == identity.control_arn]

        if not matches:
            logger.warning(
                f"Security Hub standards control ({identity.control_arn}) "
                f"not found, removing from state"
            )
            self.state.clear()
            return None

        if len(matches) > 1:
            raise RemoteLookupAmbiguous(identity, len(matches))

        observed = ObservedControlState.from_record(matches[0])
        if self.state.enabled is not None and self.state.enabled != observed.enabled:
            logger.info(
                f"Drift detected for {identity.control_arn}: expected "
                f"{ControlStatus.from_enabled(self.state.enabled).value}, "
                f"found {observed.status.value}"
            )
        self.state.observe(observed)
        return observed


def _check_identity(identity: ControlIdentity) -> None:
    if not identity.control_arn or not identity.standard_arn:
        raise InvalidDesiredState(
            "Both standards_arn and standards_control_arn must be set"
        )


def _describe_changes(
    current_enabled: Optional[bool],
    current_reason: Optional[str],
    enabled: bool,
    reason: Optional[str],
) -> List[str]:
    changes = []
    if current_enabled != enabled:
        changes.append(f"enabled: {current_enabled!r} -> {enabled!r}")
    if current_reason != reason and not (current_enabled is None and reason is None):
        changes.append(f"disabled_reason: {current_reason!r} -> {reason!r}")
    return changes
