"""
Delivery

Provides:
- Presenter: Protocol for the user-facing prompt
- CallbackPresenter / AutoPresenter: Host-driven and headless presenters
- DeliveryCoordinator: Presents admitted moments and manages silence
"""

from woodpecker.delivery.coordinator import DeliveryCoordinator
from woodpecker.delivery.presenter import (
    AutoPresenter,
    CallbackPresenter,
    PresentationResult,
    Presenter,
)

__all__ = [
    "AutoPresenter",
    "CallbackPresenter",
    "DeliveryCoordinator",
    "PresentationResult",
    "Presenter",
]
