"""HTTP boundary for the send flow.

contracts/   Pydantic request/response models
controllers/ FastAPI routers
services/    Response shaping on top of the send-flow services

This layer holds no state of its own: it reads published snapshots and
forwards send/cancel requests to the orchestrator.
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
