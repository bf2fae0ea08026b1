"""
Wire contract between world clients and the link authority.

Event names and payload shapes must match the client script 1:1.
"""

from __future__ import annotations

from typing import Any, Optional, TypedDict

VERIFY_CODE_REQUEST = "HWLink:VerifyCodeRequest"
VERIFY_CODE_RESPONSE = "HWLink:VerifyCodeResponse"
CHECK_LINK_STATUS_REQUEST = "HWLink:CheckLinkStatusRequest"
CHECK_LINK_STATUS_RESPONSE = "HWLink:CheckLinkStatusResponse"
DEBUG_RESET_PLAYER = "HWLink:DebugResetPlayer"
DEBUG_CLEAR_CODES = "HWLink:DebugClearCodes"
DEBUG_ACTION_RESPONSE = "HWLink:DebugActionResponse"

# Persisted state keys
DISCORD_LINK_KEY = "DiscordLink:discordLinked"  # int: 0 = not linked, 1 = linked
USED_CODES_KEY = "UsedCodes:usedCodes"  # {code: {username, timestamp}}

MSG_ALREADY_VERIFIED = "You've already been verified!"
MSG_CODE_ALREADY_USED = "❌ That code has already been used. Request a new one."
MSG_VERIFIED = "✅ Verification successful! Welcome!"
MSG_INVALID_CODE = "❌ Invalid code! Please check and try again."


class VerifyCodeRequest(TypedDict):
    code: str
    username: str
    playerId: int


class VerifyCodeResponse(TypedDict, total=False):
    success: bool
    message: str
    alreadyLinked: bool
    codeAlreadyUsed: bool


class CheckLinkStatusRequest(TypedDict):
    playerId: int


class CheckLinkStatusResponse(TypedDict):
    isLinked: bool
    playerId: int


class DebugActionResponse(TypedDict):
    success: bool
    message: str
    playerId: int


def verify_response(
    success: bool,
    message: str,
    *,
    already_linked: bool = False,
    code_already_used: bool = False,
) -> VerifyCodeResponse:
    """Build a VerifyCodeResponse, omitting flags that do not apply."""
    payload: VerifyCodeResponse = {"success": success, "message": message}
    if already_linked:
        payload["alreadyLinked"] = True
    if code_already_used:
        payload["codeAlreadyUsed"] = True
    return payload


def debug_response(success: bool, message: str, player_id: int) -> DebugActionResponse:
    return {"success": success, "message": message, "playerId": player_id}


def parse_player_id(data: Any) -> Optional[int]:
    """Extract an integer ``playerId`` from an inbound payload."""
    if not isinstance(data, dict):
        return None
    player_id = data.get("playerId")
    # bool is an int subclass; reject it explicitly
    if isinstance(player_id, bool) or not isinstance(player_id, int):
        return None
    return player_id


def parse_verify_request(data: Any) -> Optional[VerifyCodeRequest]:
    player_id = parse_player_id(data)
    if player_id is None:
        return None
    code = data.get("code")
    username = data.get("username")
    if not isinstance(code, str) or not isinstance(username, str):
        return None
    return {"code": code, "username": username, "playerId": player_id}
