"""
Socket.IO transport for the link authority.

Maps the HWLink network events onto ``LinkAuthority`` handlers and emits each
response only to the sockets of the player it concerns. When the world name or
secret key is missing, the request handlers are never registered, so no
request is ever processed.
"""

import logging
from typing import Any, Callable, Optional

from flask import request
from flask_socketio import ConnectionRefusedError, SocketIO

from hwlink import protocol
from hwlink.authority import LinkAuthority
from hwlink.metrics import connected_players, dropped_requests
from hwlink.players import PlayerRegistry

logger = logging.getLogger(__name__)


def _send(socketio: SocketIO, players: PlayerRegistry, event: str, payload: Optional[dict], player_id: int) -> None:
    if payload is None:
        return
    for sid in players.sids_for(player_id):
        socketio.emit(event, payload, to=sid)


def register_presence_handlers(socketio: SocketIO, players: PlayerRegistry) -> None:
    """Track connected players from the Socket.IO handshake."""

    @socketio.on("connect")
    def on_connect(auth=None):
        player_id = protocol.parse_player_id(auth)
        if player_id is None:
            logger.warning("Refusing socket connection without a valid playerId")
            raise ConnectionRefusedError("playerId required")

        name = auth.get("name") if isinstance(auth.get("name"), str) else ""
        player = players.join(player_id, name or f"player-{player_id}", request.sid)
        connected_players.set(len(players))
        logger.info(f"Player {player.name} ({player.id}) connected")

    @socketio.on("disconnect")
    def on_disconnect(*args, **kwargs):
        player = players.leave(request.sid)
        connected_players.set(len(players))
        if player:
            logger.info(f"Player {player.name} ({player.id}) disconnected")


def _guarded(event: str, handler: Callable[[Any], None]) -> Callable[[Any], None]:
    """Keep exceptions from crossing the request/response boundary."""

    def wrapper(data=None):
        try:
            handler(data)
        except Exception as e:
            logger.error(f"Error handling {event}: {e}", exc_info=True)

    wrapper.__name__ = handler.__name__
    return wrapper


def register_link_handlers(
    socketio: SocketIO,
    authority: LinkAuthority,
    players: PlayerRegistry,
    debug_commands: bool = False,
) -> bool:
    """
    Register the HWLink request events.

    Returns:
        False if the authority is not configured and nothing was registered
    """
    if not authority.enabled:
        logger.error("Link authority disabled: HWLINK_WORLD_NAME and HWLINK_SECRET_KEY must both be set")
        return False

    def handle_verify_request(data):
        req = protocol.parse_verify_request(data)
        if req is None:
            logger.warning(f"Malformed {protocol.VERIFY_CODE_REQUEST} payload dropped")
            dropped_requests.labels(event=protocol.VERIFY_CODE_REQUEST).inc()
            return
        response = authority.verify_code(req["code"], req["username"], req["playerId"])
        _send(socketio, players, protocol.VERIFY_CODE_RESPONSE, response, req["playerId"])

    def handle_check_link_status(data):
        player_id = protocol.parse_player_id(data)
        if player_id is None:
            logger.warning(f"Malformed {protocol.CHECK_LINK_STATUS_REQUEST} payload dropped")
            dropped_requests.labels(event=protocol.CHECK_LINK_STATUS_REQUEST).inc()
            return
        response = authority.check_link_status(player_id)
        _send(socketio, players, protocol.CHECK_LINK_STATUS_RESPONSE, response, player_id)

    def handle_debug_reset_player(data):
        player_id = protocol.parse_player_id(data)
        if player_id is None:
            logger.warning(f"Malformed {protocol.DEBUG_RESET_PLAYER} payload dropped")
            return
        response = authority.reset_player(player_id)
        _send(socketio, players, protocol.DEBUG_ACTION_RESPONSE, response, player_id)

    def handle_debug_clear_codes(data):
        player_id = protocol.parse_player_id(data)
        if player_id is None:
            logger.warning(f"Malformed {protocol.DEBUG_CLEAR_CODES} payload dropped")
            return
        response = authority.clear_all_codes(player_id)
        _send(socketio, players, protocol.DEBUG_ACTION_RESPONSE, response, player_id)

    socketio.on_event(
        protocol.VERIFY_CODE_REQUEST, _guarded(protocol.VERIFY_CODE_REQUEST, handle_verify_request)
    )
    socketio.on_event(
        protocol.CHECK_LINK_STATUS_REQUEST,
        _guarded(protocol.CHECK_LINK_STATUS_REQUEST, handle_check_link_status),
    )

    if debug_commands:
        socketio.on_event(
            protocol.DEBUG_RESET_PLAYER, _guarded(protocol.DEBUG_RESET_PLAYER, handle_debug_reset_player)
        )
        socketio.on_event(
            protocol.DEBUG_CLEAR_CODES, _guarded(protocol.DEBUG_CLEAR_CODES, handle_debug_clear_codes)
        )
        logger.warning("HWLink debug commands enabled (reset player, clear all codes)")

    logger.info("Ready to process verification requests")
    return True
