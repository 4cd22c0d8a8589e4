"""Bulk funnel messaging over the notification bus."""

import logging
from dataclasses import dataclass
from typing import Literal

from portrait_analysis.domain.funnel import (
    FailedRecipient,
    FunnelBroadcastResult,
    FunnelStats,
)
from portrait_analysis.domain.users import FunnelAction
from portrait_analysis.services.notifications import NotificationBus
from portrait_analysis.services.users import UserRepository

_logger = logging.getLogger(__name__)


@dataclass
class FunnelBroadcaster:
    """Select a user cohort and publish one funnel message per recipient."""

    users: UserRepository
    bus: NotificationBus

    async def broadcast(
        self, target: FunnelAction | Literal["all"], message: str
    ) -> FunnelBroadcastResult:
        """Publish the message to every reachable user in the cohort."""
        funnel_action = None if target == "all" else FunnelAction(target)
        recipients = self.users.list_reachable_users(funnel_action)
        result = FunnelBroadcastResult(total_targeted=len(recipients))

        for user in recipients:
            if user.telegram_chat_id is None:
                continue
            try:
                await self.bus.notify_funnel_message(
                    user_id=user.id, chat_id=user.telegram_chat_id, text=message
                )
            except Exception as exc:
                _logger.error("Failed to send message to user %s: %s", user.id, exc)
                result.failed_count += 1
                result.failed_users.append(FailedRecipient(user.id, str(exc)))
                continue
            result.sent_count += 1
            try:
                self.users.clear_bot_blocked(user.id)
            except Exception:
                _logger.exception("Failed to update last bot interaction for %s", user.id)

        _logger.info(
            "Funnel message campaign completed: %s/%s sent (target: %s)",
            result.sent_count,
            result.total_targeted,
            target,
        )
        return result

    def stats(self) -> FunnelStats:
        """Return user counts per funnel stage."""
        by_action = self.users.count_by_funnel_action()
        return FunnelStats(
            by_action=by_action,
            blocked_users=self.users.count_blocked_users(),
            total_users=sum(by_action.values()),
        )
