from fastapi import APIRouter, WebSocket, WebSocketDisconnect, HTTPException, status, Query
from typing import Dict, Optional
from uuid import UUID
import json
from loguru import logger

from agrohaat.enums.user_role import UserRole
from agrohaat.models.product import Product
from agrohaat.models.profile import Profile
from agrohaat.core.security.auth import verify_token
from agrohaat.services.realtime.change_feed import change_feed, ChangeMessage, Subscription

router = APIRouter()


class ConnectionManager:
    """Bridges change feed subscriptions to websocket clients"""

    def __init__(self):
        # product_id -> bids subscription, per socket
        self.product_watchers: Dict[WebSocket, Dict[str, Subscription]] = {}
        # own notifications subscription, per socket
        self.inbox_subscriptions: Dict[WebSocket, Subscription] = {}
        self.socket_users: Dict[WebSocket, Profile] = {}

    async def connect(self, websocket: WebSocket, user: Profile, product_id: Optional[str] = None):
        await websocket.accept()

        self.socket_users[websocket] = user
        self.product_watchers[websocket] = {}
        self.inbox_subscriptions[websocket] = change_feed.subscribe(
            "notifications",
            {"user_id": user.id},
            self._forwarder(websocket, "notification")
        )

        if product_id:
            await self._watch_product(websocket, product_id)

        logger.info(f"WebSocket connected: user={user.id}, product={product_id}")

    def disconnect(self, websocket: WebSocket):
        self.socket_users.pop(websocket, None)
        for subscription in self.product_watchers.pop(websocket, {}).values():
            subscription.unsubscribe()

        inbox = self.inbox_subscriptions.pop(websocket, None)
        if inbox:
            inbox.unsubscribe()

    def _forwarder(self, websocket: WebSocket, message_type: str):
        async def forward(message: ChangeMessage):
            try:
                await websocket.send_json({"type": message_type, **message.to_dict()})
            except Exception as e:
                logger.error(f"Error sending to websocket: {e}")
                self.disconnect(websocket)
        return forward

    @staticmethod
    async def _may_watch(user: Profile, product_id: str) -> bool:
        """Bid rows on a product are visible to its seller and to admins only"""
        try:
            product = await Product.get_or_none(id=UUID(product_id))
        except ValueError:
            return False
        if product is None:
            return False
        return user.role == UserRole.admin or product.seller_id == user.id

    async def _watch_product(self, websocket: WebSocket, product_id: str) -> bool:
        user = self.socket_users.get(websocket)
        if user is None or not await self._may_watch(user, product_id):
            logger.warning(f"Refused bid watch on product {product_id} for user {user.id if user else None}")
            await websocket.send_json({
                "type": "error",
                "product_id": product_id,
                "message": "Only the seller can watch bids on this product"
            })
            return False

        watched = self.product_watchers.setdefault(websocket, {})
        if product_id not in watched:
            watched[product_id] = change_feed.subscribe(
                "bids",
                {"product_id": product_id},
                self._forwarder(websocket, "bid_update")
            )
        return True

    async def subscribe_to_product(self, websocket: WebSocket, product_id: str):
        if not await self._watch_product(websocket, product_id):
            return

        await websocket.send_json({
            "type": "subscribed",
            "product_id": product_id,
            "message": f"Subscribed to product {product_id}"
        })

    async def unsubscribe_from_product(self, websocket: WebSocket, product_id: str):
        subscription = self.product_watchers.get(websocket, {}).pop(product_id, None)
        if subscription:
            subscription.unsubscribe()

        await websocket.send_json({
            "type": "unsubscribed",
            "product_id": product_id,
            "message": f"Unsubscribed from product {product_id}"
        })


manager = ConnectionManager()


async def get_user_from_token(token: str) -> Profile:
    try:
        return await verify_token(token)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
    product_id: Optional[str] = Query(None)
):
    """
    Live bid and notification updates

    Query parameters:
    - token: JWT authentication token
    - product_id: Optional product whose bids to watch

    Message types from client:
    - subscribe: {"type": "subscribe", "product_id": "..."}
    - unsubscribe: {"type": "unsubscribe", "product_id": "..."}
    - ping: {"type": "ping"}

    Message types from server:
    - bid_update: a bid row on a watched product was inserted or updated
    - error: unknown message, bad JSON, or a product the user may not watch
    - notification: a notification row for the connected user
    - pong: Response to ping
    """
    try:
        user = await get_user_from_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user, product_id)

    try:
        await websocket.send_json({
            "type": "connected",
            "message": "Connected to marketplace updates",
            "user_id": str(user.id)
        })

        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                message_type = message.get("type")

                if message_type == "subscribe":
                    if message.get("product_id"):
                        await manager.subscribe_to_product(websocket, str(message["product_id"]))

                elif message_type == "unsubscribe":
                    if message.get("product_id"):
                        await manager.unsubscribe_from_product(websocket, str(message["product_id"]))

                elif message_type == "ping":
                    await websocket.send_json({"type": "pong"})

                else:
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Unknown message type: {message_type}"
                    })

            except json.JSONDecodeError:
                await websocket.send_json({
                    "type": "error",
                    "message": "Invalid JSON message"
                })

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: user={user.id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        manager.disconnect(websocket)
