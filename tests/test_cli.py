"""
Tests for the ``flask hwlink`` operator commands.
"""

import json

from hwlink.protocol import DISCORD_LINK_KEY


def test_generate_code(runner):
    result = runner.invoke(args=["hwlink", "generate-code", "alice"])

    assert result.exit_code == 0
    assert result.output.strip() == "NXU15W"


def test_generate_code_with_overrides(runner):
    result = runner.invoke(
        args=[
            "hwlink",
            "generate-code",
            "Player1",
            "--world",
            "slaparena",
            "--secret",
            "8d51ff7ae9ceee41b23e6b14913bd71e13dcc9a3477e34ae7dee25466de7b73b",
        ]
    )

    assert result.output.strip() == "6AN4W1"


def test_verify_code_valid(runner):
    result = runner.invoke(args=["hwlink", "verify-code", "nxu15w", "alice"])

    assert result.exit_code == 0
    assert result.output.strip() == "valid"


def test_verify_code_invalid(runner):
    result = runner.invoke(args=["hwlink", "verify-code", "NXU15W", "bob"])

    assert result.exit_code == 1
    assert result.output.strip() == "invalid"


def test_reset_player(app, runner):
    storage = app.extensions["hwlink"]["storage"]
    storage.set_player_variable(42, DISCORD_LINK_KEY, 1)

    result = runner.invoke(args=["hwlink", "reset-player", "42"])

    assert result.exit_code == 0
    assert storage.get_player_variable(42, DISCORD_LINK_KEY) == 0


def test_clear_codes_requires_confirmation(app, runner):
    ledger = app.extensions["hwlink"]["authority"].ledger
    ledger.mark_used("NXU15W", "alice")

    result = runner.invoke(args=["hwlink", "clear-codes"], input="n\n")

    assert result.exit_code != 0
    assert ledger.is_used("NXU15W") is True


def test_clear_codes(app, runner):
    ledger = app.extensions["hwlink"]["authority"].ledger
    ledger.mark_used("NXU15W", "alice")
    ledger.mark_used("T9DN3R", "bob")

    result = runner.invoke(args=["hwlink", "clear-codes", "--yes"])

    assert result.exit_code == 0
    assert "Cleared 2 used codes" in result.output
    assert len(ledger) == 0


def test_list_codes(app, runner):
    app.extensions["hwlink"]["authority"].ledger.mark_used("NXU15W", "alice")

    result = runner.invoke(args=["hwlink", "list-codes"])

    entries = json.loads(result.output)
    assert entries["NXU15W"]["username"] == "alice"


def test_init_db_rejects_memory_backend(runner):
    result = runner.invoke(args=["hwlink", "init-db"])

    assert result.exit_code != 0
    assert "STORAGE_BACKEND=memory" in result.output
