from .auth import User
from .catalog import Category, Material, Procedure, Product, ProductMaterial, ProductProcedure
from .customers import Customer, Location
from .sales import Sale, SaleLine
from .purchasing import Supplier, Purchase, PurchaseLine

__all__ = [
    'User',
    'Category', 'Material', 'Procedure', 'Product', 'ProductMaterial', 'ProductProcedure',
    'Customer', 'Location',
    'Sale', 'SaleLine',
    'Supplier', 'Purchase', 'PurchaseLine',
]
