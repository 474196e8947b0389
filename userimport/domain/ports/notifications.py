from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class NotificationSenderProtocol(Protocol):
    """
    Назначение:
        Отправка приветственного уведомления созданной учётной записи.
    Ошибки/исключения:
        NotificationError; вызывающий код только логирует её.
    """

    def send_welcome(self, account_id: Any) -> None: ...


__all__ = ["NotificationSenderProtocol"]
