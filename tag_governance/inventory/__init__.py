from .base import InventorySource
from .arm import ArmInventory, resource_group_from_id

__all__ = ["InventorySource", "ArmInventory", "resource_group_from_id"]
