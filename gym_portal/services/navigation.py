"""Navigation and user notices.

Flows never talk to a browser directly: they ask a ``Navigator`` to move to a
view and a ``Notifier`` to show a toast-style notice. The portal routes use
the recording implementations and return what was recorded to the frontend.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from gym_portal.utils.enums import NoticeLevel, View


class Navigator(Protocol):
    def navigate(self, view: View, **params: str) -> None:
        ...

    @property
    def current_path(self) -> str:
        ...


class Notifier(Protocol):
    def notify(self, level: NoticeLevel, message: str) -> None:
        ...


@dataclass(frozen=True)
class Redirect:
    view: View
    path: str


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


@dataclass
class RecordingNavigator:
    path: str = "/"
    history: list[Redirect] = field(default_factory=list)

    def navigate(self, view: View, **params: str) -> None:
        redirect = Redirect(view=view, path=view.path(**params))
        self.history.append(redirect)
        self.path = redirect.path

    @property
    def current_path(self) -> str:
        return self.path

    @property
    def last(self) -> Optional[Redirect]:
        return self.history[-1] if self.history else None


@dataclass
class RecordingNotifier:
    notices: list[Notice] = field(default_factory=list)

    def notify(self, level: NoticeLevel, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def messages(self, level: NoticeLevel | None = None) -> list[str]:
        return [n.message for n in self.notices if level is None or n.level == level]

    def drain(self) -> list[Notice]:
        """Hand over the notices recorded so far and forget them."""
        notices, self.notices = self.notices, []
        return notices


def redirect_payload(navigator: RecordingNavigator) -> Optional[dict]:
    last = navigator.last
    if last is None:
        return None
    return {"view": last.view.value, "path": last.path}


def notices_payload(notices: list[Notice]) -> list[dict]:
    return [{"level": n.level.value, "message": n.message} for n in notices]
