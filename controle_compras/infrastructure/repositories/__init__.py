from .purchase_request_repository import PurchaseRequestRepository

__all__ = [
    "PurchaseRequestRepository",
]
