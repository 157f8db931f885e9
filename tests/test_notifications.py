import pytest

from offscreen.core.errors import DispatchError
from offscreen.core.notifications import Notification, NotificationDispatcher, PermissionState


class PromptingDispatcher(NotificationDispatcher):
    def __init__(self, answer: PermissionState) -> None:
        super().__init__()
        self.answer = answer
        self.prompted = False
        self.shown = []

    def _query_permission(self) -> PermissionState:
        return self.answer if self.prompted else PermissionState.UNDETERMINED

    def _prompt_permission(self) -> PermissionState:
        self.prompted = True
        return self._query_permission()

    def _deliver(self, notification: Notification) -> None:
        self.shown.append(notification)


def test_undetermined_permission_prompts_once() -> None:
    dispatcher = PromptingDispatcher(PermissionState.GRANTED)
    assert dispatcher.get_permission_state() is PermissionState.UNDETERMINED

    assert dispatcher.request_permission() is PermissionState.GRANTED
    assert dispatcher.prompted is True
    assert dispatcher.dispatch(Notification("Hi", "there")) is True
    assert dispatcher.shown == [Notification("Hi", "there")]


def test_unanswered_prompt_counts_as_denied() -> None:
    dispatcher = PromptingDispatcher(PermissionState.UNDETERMINED)

    assert dispatcher.request_permission() is PermissionState.DENIED
    assert dispatcher.dispatch(Notification("Hi", "there")) is False
    assert dispatcher.shown == []


def test_dispatch_without_permission_is_noop(dispatcher) -> None:
    dispatcher.platform_permission = PermissionState.DENIED

    assert dispatcher.dispatch(Notification("Hi", "there")) is False
    assert dispatcher.sent == []


def test_backend_failure_becomes_dispatch_error(dispatcher) -> None:
    dispatcher.fail = True

    with pytest.raises(DispatchError):
        dispatcher.dispatch(Notification("Hi", "there"))
