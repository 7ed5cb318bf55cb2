from .profile import Profile
from .product import Product
from .bid import Bid
from .penalty import Penalty
from .notification import Notification
