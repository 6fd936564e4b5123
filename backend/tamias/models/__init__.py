from .inventory import Product
from .transactions import Transaction, TransactionItem

__all__ = [
    'Product',
    'Transaction', 'TransactionItem',
]
