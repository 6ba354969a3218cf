from .warehouses import Warehouse, DocumentSequence
from .auth import User, SessionToken
from .agents import Agent, AgentTransaction, AccountSettlement
from .inventory import InventoryItem, WarehouseTransfer, WarehouseTransferLine
from .sales import Sale
from .documents import DocumentTracking, DocumentStage
from .notifications import Notification

__all__ = [
    'Warehouse', 'DocumentSequence',
    'User', 'SessionToken',
    'Agent', 'AgentTransaction', 'AccountSettlement',
    'InventoryItem', 'WarehouseTransfer', 'WarehouseTransferLine',
    'Sale',
    'DocumentTracking', 'DocumentStage',
    'Notification',
]
