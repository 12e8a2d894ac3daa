from .tenancy import Business, User
from .orders import Order, OrderItem, OrderStatusEvent
from .calls import Call
from .inventory import InventoryItem, InventoryTransaction
from .files import FileRecord
from .documents import DocumentSequence

__all__ = [
    'Business', 'User',
    'Order', 'OrderItem', 'OrderStatusEvent',
    'Call',
    'InventoryItem', 'InventoryTransaction',
    'FileRecord',
    'DocumentSequence',
]
