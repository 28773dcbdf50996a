from .auth import Employee, SessionToken
from .catalog import ProductCategory, Supplier, Product, PurchaseOrder
from .inventory import InventoryBatch, ItemLog
from .sales import Sale, SaleLineItem, VoidRecord

__all__ = [
    'Employee', 'SessionToken',
    'ProductCategory', 'Supplier', 'Product', 'PurchaseOrder',
    'InventoryBatch', 'ItemLog',
    'Sale', 'SaleLineItem', 'VoidRecord',
]
