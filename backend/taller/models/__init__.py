from .auth import User, SessionToken
from .orders import Order, OrderPiece, Transfer, OrderHistory
from .repositions import Reposition, RepositionPiece, RepositionTransfer, RepositionHistory, FolioSequence
from .notifications import Notification

__all__ = [
    'User', 'SessionToken',
    'Order', 'OrderPiece', 'Transfer', 'OrderHistory',
    'Reposition', 'RepositionPiece', 'RepositionTransfer', 'RepositionHistory', 'FolioSequence',
    'Notification',
]
