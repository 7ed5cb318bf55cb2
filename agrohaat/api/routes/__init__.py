from .bids import router as bids_router
from .products import router as products_router
from .notifications import router as notifications_router
from .profile import router as profile_router
from .admin import router as admin_router
from .websocket import router as websocket_router
