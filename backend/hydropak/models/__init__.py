from .users import User, USER_ROLES
from .customers import Customer, CUSTOMER_STATUSES
from .inventory import Product, InventoryMovement
from .orders import Order, OrderItem, ORDER_STATUSES
from .invoices import Invoice, InvoiceItem, INVOICE_STATUSES, REVENUE_STATUSES, OPEN_STATUSES
from .documents import DocumentSequence

__all__ = [
    'User', 'USER_ROLES',
    'Customer', 'CUSTOMER_STATUSES',
    'Product', 'InventoryMovement',
    'Order', 'OrderItem', 'ORDER_STATUSES',
    'Invoice', 'InvoiceItem', 'INVOICE_STATUSES', 'REVENUE_STATUSES', 'OPEN_STATUSES',
    'DocumentSequence',
]
