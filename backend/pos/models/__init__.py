from .auth import User, SessionToken, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .inventory import Product
from .sales import Sale, SaleItem, PAYMENT_METHODS, SALE_STATUSES

__all__ = [
    'User', 'SessionToken', 'ROLES', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_CASHIER',
    'Product',
    'Sale', 'SaleItem', 'PAYMENT_METHODS', 'SALE_STATUSES',
]
