"""
Link Authority - the server side of Discord account linking.

Verifies submitted codes, remembers which players are linked, and prevents a
code from being used twice on any instance of the world. Each handler returns
the payload to send back to the requesting player, or ``None`` when the request
is dropped without a response (unknown player, authority disabled).

Handlers never raise: storage problems are logged and turned into either a
degraded ledger or a structured failure response.
"""

import logging
from typing import Any, Mapping, Optional

from hwlink.audit_logger import get_audit_logger
from hwlink.codes import derive_code, normalize_code
from hwlink.config import is_link_configured
from hwlink.errors import LedgerUnavailableError
from hwlink.ledger import UsedCodeLedger
from hwlink.metrics import dropped_requests, verifications
from hwlink.players import ConnectedPlayer, PlayerRegistry
from hwlink.protocol import (
    CHECK_LINK_STATUS_REQUEST,
    DEBUG_CLEAR_CODES,
    DEBUG_RESET_PLAYER,
    DISCORD_LINK_KEY,
    MSG_ALREADY_VERIFIED,
    MSG_CODE_ALREADY_USED,
    MSG_INVALID_CODE,
    MSG_VERIFIED,
    VERIFY_CODE_REQUEST,
    CheckLinkStatusResponse,
    DebugActionResponse,
    VerifyCodeResponse,
    debug_response,
    verify_response,
)

logger = logging.getLogger(__name__)


class LinkAuthority:
    """Request handlers over injected config, storage, players and ledger."""

    def __init__(
        self,
        config: Mapping[str, Any],
        storage,
        players: PlayerRegistry,
        ledger: Optional[UsedCodeLedger] = None,
    ):
        self.world_name = str(config.get("WORLD_NAME") or "").strip()
        self.secret_key = str(config.get("SECRET_KEY") or "").strip()
        self.enabled = is_link_configured(config)
        self.storage = storage
        self.players = players
        self.ledger = ledger if ledger is not None else UsedCodeLedger(storage)
        self.audit = get_audit_logger()

        if not self.world_name:
            logger.error("HWLINK_WORLD_NAME must be set; link verification is disabled.")
        if not self.secret_key:
            logger.error(
                "HWLINK_SECRET_KEY must be set to the Secret_Key from the Discord bot setup "
                "(64-character hex string); link verification is disabled."
            )
        if self.enabled:
            logger.info(f"Link authority configured for world: {self.world_name}")

    # ========================================================================
    # Helpers
    # ========================================================================

    def _resolve_player(self, player_id: int, event: str) -> Optional[ConnectedPlayer]:
        player = self.players.find(player_id)
        if player is None:
            logger.warning(f"Player {player_id} not found")
            dropped_requests.labels(event=event).inc()
            self.audit.log_dropped_request(event, player_id, "player_not_connected")
        return player

    def _read_link_flag(self, player_id: int) -> bool:
        """Read the link record; raises if storage fails."""
        value = self.storage.get_player_variable(player_id, DISCORD_LINK_KEY)
        return isinstance(value, int) and not isinstance(value, bool) and value != 0

    def _write_link_flag(self, player_id: int, linked: bool) -> None:
        self.storage.set_player_variable(player_id, DISCORD_LINK_KEY, 1 if linked else 0)

    def expected_code(self, username: str) -> str:
        return derive_code(self.world_name, username, self.secret_key)

    # ========================================================================
    # HANDLER: CHECK LINK STATUS
    # ========================================================================

    def check_link_status(self, player_id: int) -> Optional[CheckLinkStatusResponse]:
        if not self.enabled:
            return None

        player = self._resolve_player(player_id, CHECK_LINK_STATUS_REQUEST)
        if player is None:
            return None

        try:
            is_linked = self._read_link_flag(player.id)
        except Exception as e:
            logger.warning(f"Failed to check link status: {e}")
            return None

        return {"isLinked": is_linked, "playerId": player.id}

    # ========================================================================
    # HANDLER: VERIFY CODE REQUEST
    # ========================================================================

    def verify_code(self, code: str, username: str, player_id: int) -> Optional[VerifyCodeResponse]:
        """
        Verify a submitted code for ``username``.

        Precedence: already linked, then code already used, then correctness.
        A linked player gets the "already verified" answer for any code, and a
        used code is rejected even if it is correct for this username.
        """
        if not self.enabled:
            return None

        player = self._resolve_player(player_id, VERIFY_CODE_REQUEST)
        if player is None:
            return None

        logger.info(f"Verification request from {player.name}: code={code}, username={username}")

        self.ledger.ensure_loaded()

        try:
            if self._read_link_flag(player.id):
                logger.info(f"Player {username} already linked")
                verifications.labels(outcome="already_linked").inc()
                self.audit.log_verification(player.id, username, code, "already_linked")
                return verify_response(False, MSG_ALREADY_VERIFIED, already_linked=True)
        except Exception as e:
            logger.warning(f"Error checking link status: {e}")

        if self.ledger.is_used(code):
            logger.info(f"Code {code} already used")
            verifications.labels(outcome="code_already_used").inc()
            self.audit.log_verification(player.id, username, code, "code_already_used")
            return verify_response(False, MSG_CODE_ALREADY_USED, code_already_used=True)

        if normalize_code(code) != self.expected_code(username):
            logger.info(f"Invalid code for {username}")
            verifications.labels(outcome="invalid").inc()
            self.audit.log_verification(player.id, username, code, "invalid")
            return verify_response(False, MSG_INVALID_CODE)

        logger.info(f"Code verified for {username}")

        try:
            self._write_link_flag(player.id, True)
        except Exception as e:
            logger.warning(f"Failed to save link status: {e}")

        self.ledger.mark_used(code, username)

        verifications.labels(outcome="success").inc()
        self.audit.log_verification(player.id, username, normalize_code(code), "success")
        return verify_response(True, MSG_VERIFIED)

    # ========================================================================
    # DEBUG HANDLERS
    # ========================================================================

    def reset_player(self, player_id: int) -> Optional[DebugActionResponse]:
        """Reset the requesting player's link record to "not linked"."""
        if not self.enabled:
            return None

        player = self._resolve_player(player_id, DEBUG_RESET_PLAYER)
        if player is None:
            return None

        logger.info(f"DEBUG: Resetting verification status for {player.name}")

        try:
            self._write_link_flag(player.id, False)
        except Exception as e:
            logger.error(f"Failed to reset player status: {e}")
            self.audit.log_link_reset(player.id, success=False, requested_by=player.id)
            return debug_response(False, "❌ Failed to reset status. Check logs.", player.id)

        self.audit.log_link_reset(player.id, success=True, requested_by=player.id)
        logger.info(f"Reset complete for {player.name}")
        return debug_response(True, "✅ Your verification status has been reset!", player.id)

    def clear_all_codes(self, player_id: int) -> Optional[DebugActionResponse]:
        """Empty the global used code ledger, on behalf of a connected player."""
        if not self.enabled:
            return None

        player = self._resolve_player(player_id, DEBUG_CLEAR_CODES)
        if player is None:
            return None

        logger.info(f"DEBUG: Clearing all used codes (requested by {player.name})")

        self.ledger.ensure_loaded()
        try:
            count = self.ledger.clear()
        except LedgerUnavailableError as e:
            logger.error(f"Failed to clear used codes: {e}")
            self.audit.log_codes_cleared(len(self.ledger), success=False, requested_by=player.id)
            return debug_response(False, "❌ Failed to clear codes. Check logs.", player.id)

        self.audit.log_codes_cleared(count, success=True, requested_by=player.id)
        logger.info(f"Cleared {count} used codes")
        return debug_response(True, f"✅ Cleared {count} used codes!", player.id)

    # ========================================================================
    # Operator entry points (no connected player required)
    # ========================================================================

    def is_linked(self, player_id: int) -> bool:
        return self._read_link_flag(player_id)

    def reset_link(self, player_id: int) -> None:
        """Force a player's link record to "not linked". Storage errors propagate."""
        self._write_link_flag(player_id, False)
        self.audit.log_link_reset(player_id, success=True)

    def clear_codes(self) -> int:
        """Empty the global ledger. Raises LedgerUnavailableError on failure."""
        self.ledger.ensure_loaded()
        count = self.ledger.clear()
        self.audit.log_codes_cleared(count, success=True)
        return count
