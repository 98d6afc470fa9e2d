"""Errors raised when an account is not entitled to a marketplace action."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status


class FeatureGateError(Exception):
    """An entitlement failure that needs an out-of-band action from the user.

    ``action`` names the call-to-action the client should offer, e.g.
    ``"select_plan"`` or ``"upgrade_plan"``. ``detail`` carries extra context
    such as the quota evaluation and is merged into :attr:`payload`.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        action: Optional[str] = None,
        status_code: int = status.HTTP_403_FORBIDDEN,
        detail: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.action = action
        self.status_code = status_code
        self.detail: Dict[str, Any] = dict(detail or {})

    def __repr__(self) -> str:
        return f"FeatureGateError(code={self.code!r}, action={self.action!r})"

    @property
    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.action:
            body["action"] = self.action
        body.update(self.detail)
        return body

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.payload)
