"""VIP membership purchase."""

from ledger_engine.services.vip.purchase_service import VipPurchaseResult, VipPurchaseService


__all__ = ["VipPurchaseResult", "VipPurchaseService"]
