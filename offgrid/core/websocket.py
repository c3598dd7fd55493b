"""
WebSocket manager for the change feed.
Handles Socket.IO connections, rooms, typing signals and invalidation events.

Events carry no row data: clients receive {table, event, keys} and re-query
the affected resource.
"""
import logging
from typing import Dict, Set, Optional, Any, Iterable, List

import socketio

from offgrid.config import settings
from offgrid.core.refresh import RefreshCoordinator

logger = logging.getLogger(__name__)


def conversation_room(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class ConnectionManager:
    """
    WebSocket connection manager using Socket.IO.

    Tracks connections per user, joins sockets to conversation rooms,
    relays typing signals and fans out invalidation events.
    """

    def __init__(self):
        """Initialize the connection manager."""
        cors_origins = settings.get_allowed_origins_list() if settings.allowed_origins else ["*"]

        client_manager = None
        if settings.redis_url:
            # Fan events out across worker processes
            client_manager = socketio.AsyncRedisManager(settings.redis_url)
            logger.info("Socket.IO using Redis client manager")

        self.sio = socketio.AsyncServer(
            async_mode='asgi',
            cors_allowed_origins=cors_origins,
            client_manager=client_manager,
            logger=False,
            engineio_logger=False,
            ping_timeout=settings.ws_heartbeat_interval,
            ping_interval=settings.ws_heartbeat_interval // 2,
        )

        # Track connections: {sid: user_id}
        self.connections: Dict[str, str] = {}

        # Track user sessions: {user_id: set of sids}
        self.user_sessions: Dict[str, Set[str]] = {}

        # Track conversation rooms: {conversation_id: set of sids}
        self.conversation_rooms: Dict[str, Set[str]] = {}

        # Typing debouncers: {(sid, conversation_id): TypingDebouncer}
        self.typing_debouncers: Dict[tuple, Any] = {}

        # Per-connection search refreshes
        self.refreshes = RefreshCoordinator()

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup Socket.IO event handlers."""

        @self.sio.event
        async def connect(sid, environ, auth):
            """
            Handle client connection.

            Client should provide the auth token in the handshake.
            """
            token = auth.get('token') if auth else None

            if not token:
                logger.warning(f"Connection rejected - no token: {sid}")
                return False

            try:
                from offgrid.core.security import decode_token
                from offgrid.core.database import AsyncSessionLocal
                from offgrid.models.profile import PresenceStatus
                from offgrid.repositories.profile_repo import ProfileRepository

                payload = decode_token(token)
                user_id = str(payload["sub"])

                async with AsyncSessionLocal() as db:
                    profile_repo = ProfileRepository(db)
                    if not await profile_repo.exists(user_id):
                        logger.warning(f"Connection rejected - profile not found: {sid}")
                        return False
                    await profile_repo.set_presence(user_id, PresenceStatus.ONLINE)
                    await db.commit()

            except Exception as e:
                logger.error(f"Connection error: {type(e).__name__}: {str(e)}")
                return False

            self.register_connection(sid, user_id)
            await self.sio.enter_room(sid, user_room(user_id))
            logger.info(f"Client connected: {sid} (user: {user_id})")

            await self.invalidate("profiles", "UPDATE", {"id": user_id})
            return True

        @self.sio.event
        async def disconnect(sid):
            """Handle client disconnection."""
            user_id = self.connections.get(sid)
            if not user_id:
                return

            for key in [k for k in self.typing_debouncers if k[0] == sid]:
                await self.typing_debouncers.pop(key).clear()
            self.refreshes.cancel_prefix(f"{sid}:")

            last_session = self.unregister_connection(sid)
            logger.info(f"Client disconnected: {sid} (user: {user_id})")

            if last_session:
                try:
                    from offgrid.core.database import AsyncSessionLocal
                    from offgrid.services.profile_service import ProfileService

                    async with AsyncSessionLocal() as db:
                        await ProfileService(db).go_offline(user_id)
                        await db.commit()
                except Exception as e:
                    logger.error(f"Failed to mark {user_id} offline: {e}")

        @self.sio.event
        async def join_conversation(sid, data):
            """
            Join a conversation room.

            Expected data: {'conversation_id': '...'}
            """
            user_id = self.connections.get(sid)
            if not user_id:
                await self.sio.emit('error', {'message': 'Unauthorized'}, to=sid)
                return

            try:
                conversation_id = data['conversation_id']

                from offgrid.core.database import AsyncSessionLocal
                from offgrid.repositories.conversation_repo import ConversationParticipantRepository

                async with AsyncSessionLocal() as db:
                    is_member = await ConversationParticipantRepository(db).is_participant(
                        conversation_id, user_id
                    )

                if not is_member:
                    logger.warning(f"User {user_id} not a participant of conversation {conversation_id}")
                    await self.sio.emit('error', {
                        'message': 'Not a member of this conversation'
                    }, to=sid)
                    return

                await self.sio.enter_room(sid, conversation_room(conversation_id))
                self.conversation_rooms.setdefault(conversation_id, set()).add(sid)

                await self.sio.emit('joined_conversation', {
                    'conversation_id': conversation_id
                }, to=sid)

            except Exception as e:
                logger.error(f"Error joining conversation: {e}")
                await self.sio.emit('error', {
                    'message': 'Failed to join conversation'
                }, to=sid)

        @self.sio.event
        async def leave_conversation(sid, data):
            """
            Leave a conversation room.

            Expected data: {'conversation_id': '...'}
            """
            try:
                conversation_id = data['conversation_id']

                debouncer = self.typing_debouncers.pop((sid, conversation_id), None)
                if debouncer is not None:
                    await debouncer.clear()

                await self.sio.leave_room(sid, conversation_room(conversation_id))

                if conversation_id in self.conversation_rooms:
                    self.conversation_rooms[conversation_id].discard(sid)
                    if not self.conversation_rooms[conversation_id]:
                        del self.conversation_rooms[conversation_id]

                await self.sio.emit('left_conversation', {
                    'conversation_id': conversation_id
                }, to=sid)

            except Exception as e:
                logger.error(f"Error leaving conversation: {e}")

        @self.sio.event
        async def typing_start(sid, data):
            """
            Keystroke in the message input.

            Expected data: {'conversation_id': '...'}
            """
            try:
                debouncer = self._get_debouncer(sid, data['conversation_id'])
                if debouncer is not None:
                    await debouncer.keystroke()
            except Exception as e:
                logger.error(f"Error in typing_start: {e}")

        @self.sio.event
        async def typing_stop(sid, data):
            """
            Input cleared, message sent or view closed.

            Expected data: {'conversation_id': '...'}
            """
            try:
                debouncer = self.typing_debouncers.get((sid, data['conversation_id']))
                if debouncer is not None:
                    await debouncer.clear()
            except Exception as e:
                logger.error(f"Error in typing_stop: {e}")

        @self.sio.event
        async def discover_search(sid, data):
            """
            Search-as-you-type on the discover page.

            Expected data: {'query': '...', 'online_only': false}. Replies
            with 'discover_results' carrying the sequence number; superseded
            searches never reply.
            """
            user_id = self.connections.get(sid)
            if not user_id:
                return

            query = (data or {}).get('query') or None
            online_only = bool((data or {}).get('online_only'))

            async def load():
                from offgrid.core.database import AsyncSessionLocal
                from offgrid.services.discovery_service import DiscoveryService

                async with AsyncSessionLocal() as db:
                    profiles = await DiscoveryService(db).list_discoverable(
                        user_id, query, online_only=online_only
                    )
                    return [p.model_dump(mode="json", by_alias=True) for p in profiles]

            try:
                result = await self.refreshes.refresh(f"{sid}:discover", load)
            except Exception as e:
                logger.error(f"Error in discover_search: {e}")
                return

            if result.stale:
                return

            await self.sio.emit('discover_results', {
                'sequence': result.sequence,
                'query': query,
                'data': result.value
            }, to=sid)

    # ------------------------------------------------------------------
    # Connection bookkeeping
    # ------------------------------------------------------------------

    def register_connection(self, sid: str, user_id: str) -> None:
        self.connections[sid] = user_id
        self.user_sessions.setdefault(user_id, set()).add(sid)

    def unregister_connection(self, sid: str) -> bool:
        """
        Forget a socket.

        Returns:
            True if it was the user's last open socket
        """
        user_id = self.connections.pop(sid, None)
        if user_id is None:
            return False

        for conv_id, sids in list(self.conversation_rooms.items()):
            sids.discard(sid)
            if not sids:
                del self.conversation_rooms[conv_id]

        sessions = self.user_sessions.get(user_id)
        if sessions is not None:
            sessions.discard(sid)
            if not sessions:
                del self.user_sessions[user_id]
                return True
        return False

    def _get_debouncer(self, sid: str, conversation_id: str):
        """Debouncer of (socket, conversation), created on first keystroke."""
        user_id = self.connections.get(sid)
        if not user_id:
            return None

        key = (sid, conversation_id)
        if key not in self.typing_debouncers:
            from offgrid.services.typing_service import TypingDebouncer

            async def write(is_typing: bool) -> None:
                await self.write_typing(conversation_id, user_id, is_typing)

            self.typing_debouncers[key] = TypingDebouncer(
                write,
                timeout=settings.typing_timeout_seconds,
                name=f"{conversation_id}:{user_id}"
            )
        return self.typing_debouncers[key]

    async def write_typing(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        """Persist a typing flag in its own session."""
        from offgrid.core.database import AsyncSessionLocal
        from offgrid.services.typing_service import TypingService

        async with AsyncSessionLocal() as db:
            await TypingService(db).set_typing(conversation_id, user_id, is_typing)
            await db.commit()

    # ------------------------------------------------------------------
    # Invalidation fan-out
    # ------------------------------------------------------------------

    async def invalidate(
        self,
        table: str,
        event: str,
        keys: Dict[str, Any],
        room: Optional[str] = None
    ) -> None:
        """
        Emit a payload-free change notification.

        Args:
            table: Changed table, e.g. "messages"
            event: INSERT, UPDATE or DELETE
            keys: Identifiers the client uses to scope its re-fetch
            room: Target room (broadcast when None)
        """
        payload = {
            'table': table,
            'event': event,
            'keys': {k: str(v) for k, v in keys.items() if v is not None}
        }
        await self.sio.emit('invalidate', payload, room=room)
        logger.debug(f"[invalidate] {table} {event} {payload['keys']} -> {room or '*'}")

    async def notify_conversation(
        self,
        conversation_id: str,
        table: str,
        event: str,
        keys: Optional[Dict[str, Any]] = None
    ) -> None:
        """Invalidate a resource scoped to one conversation."""
        scoped = {'conversation_id': conversation_id}
        scoped.update(keys or {})
        await self.invalidate(table, event, scoped, room=conversation_room(conversation_id))

    async def notify_users(
        self,
        user_ids: Iterable[str],
        table: str,
        event: str,
        keys: Optional[Dict[str, Any]] = None
    ) -> None:
        """Invalidate a resource in the personal rooms of the given users."""
        sent: List[str] = []
        for user_id in user_ids:
            if user_id in sent:
                continue
            sent.append(user_id)
            await self.invalidate(table, event, keys or {}, room=user_room(user_id))

    def get_asgi_app(self, fastapi_app):
        """
        Get the ASGI app for Socket.IO wrapping FastAPI.

        Socket.IO wraps FastAPI, not the other way around; clients connect
        to /socket.io/?EIO=4&transport=websocket.
        """
        return socketio.ASGIApp(self.sio, fastapi_app)


# Global connection manager instance
connection_manager = ConnectionManager()
