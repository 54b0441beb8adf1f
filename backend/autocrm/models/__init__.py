from autocrm.models.master import Master, MasterRole
from autocrm.models.order import Order, OrderItem, OrderAssignment, OrderStatus, ItemKind
from autocrm.models.bonus import Bonus, BonusSource, OwnerShare
from autocrm.models.setting import Setting

__all__ = [
    "Master", "MasterRole",
    "Order", "OrderItem", "OrderAssignment", "OrderStatus", "ItemKind",
    "Bonus", "BonusSource", "OwnerShare",
    "Setting",
]
