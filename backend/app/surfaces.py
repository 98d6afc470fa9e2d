"""Single state machine for which marketplace surface is open."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Mapping

logger = logging.getLogger(__name__)


class Surface(str, Enum):
    BROWSE = "browse"
    PRODUCT_DETAIL = "product_detail"
    RENT_SELECTION = "rent_selection"
    CART = "cart"
    CHECKOUT = "checkout"
    ORDER_CONFIRMATION = "order_confirmation"
    PLAN_SELECTION = "plan_selection"
    LISTING_FORM = "listing_form"


LEGAL_TRANSITIONS: Mapping[Surface, FrozenSet[Surface]] = {
    Surface.BROWSE: frozenset(
        {Surface.PRODUCT_DETAIL, Surface.CART, Surface.PLAN_SELECTION, Surface.LISTING_FORM}
    ),
    Surface.PRODUCT_DETAIL: frozenset({Surface.BROWSE, Surface.RENT_SELECTION, Surface.CART}),
    Surface.RENT_SELECTION: frozenset({Surface.PRODUCT_DETAIL, Surface.CART}),
    Surface.CART: frozenset({Surface.BROWSE, Surface.CHECKOUT}),
    Surface.CHECKOUT: frozenset({Surface.CART, Surface.ORDER_CONFIRMATION}),
    Surface.ORDER_CONFIRMATION: frozenset({Surface.BROWSE}),
    Surface.PLAN_SELECTION: frozenset({Surface.BROWSE, Surface.LISTING_FORM}),
    Surface.LISTING_FORM: frozenset({Surface.BROWSE, Surface.PLAN_SELECTION}),
}


class IllegalTransitionError(RuntimeError):
    """Raised when a surface is opened from a surface that cannot lead to it."""


class SurfaceRouter:
    """Tracks the open surface and the path back to :attr:`Surface.BROWSE`.

    Callbacks registered with :meth:`on_discard` run when their surface is
    dismissed, which is how unconfirmed drafts are dropped.
    """

    def __init__(self) -> None:
        self._history: List[Surface] = [Surface.BROWSE]
        self._discard_callbacks: Dict[Surface, List[Callable[[], None]]] = {}

    @property
    def current(self) -> Surface:
        return self._history[-1]

    def can_open(self, target: Surface) -> bool:
        return target in LEGAL_TRANSITIONS[self.current]

    def open(self, target: Surface) -> Surface:
        if not self.can_open(target):
            raise IllegalTransitionError(
                f"Cannot open {target.value} from {self.current.value}"
            )
        if target in self._history:
            keep = self._history.index(target) + 1
            closed = self._history[keep:]
            del self._history[keep:]
            for surface in reversed(closed):
                self._run_discard(surface)
        else:
            self._history.append(target)
        logger.debug("Surface changed to %s", target.value)
        return self.current

    def dismiss(self) -> Surface:
        """Close the current surface, discarding its drafts."""

        if len(self._history) == 1:
            return self.current
        self._run_discard(self._history.pop())
        return self.current

    def _run_discard(self, surface: Surface) -> None:
        for callback in self._discard_callbacks.get(surface, []):
            callback()

    def on_discard(self, surface: Surface, callback: Callable[[], None]) -> None:
        self._discard_callbacks.setdefault(surface, []).append(callback)

    def reset(self) -> None:
        self._history = [Surface.BROWSE]
