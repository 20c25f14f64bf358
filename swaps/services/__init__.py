from .notifications import notify_proposal
from .outbox import DrainReport, drain_outbox
from .workflow import SwapAction, SwapOfferWorkflow, TransitionResult

__all__ = [
    "DrainReport",
    "SwapAction",
    "SwapOfferWorkflow",
    "TransitionResult",
    "drain_outbox",
    "notify_proposal",
]
