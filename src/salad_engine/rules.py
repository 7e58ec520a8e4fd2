"""
Game rule configuration and validation.
"""

import os

from pydantic import BaseModel, Field, field_validator

from .constants import (
    CLEANUP_INTERVAL, DISCONNECT_GRACE_PERIOD, MAX_PLAYERS, MIN_PLAYERS,
    ROOM_CODE_LENGTH, ROOM_EXPIRY, SNAPSHOT_INTERVAL,
)


class RuleConfig(BaseModel):
    """Configuration for room lifecycle and server housekeeping."""

    min_players: int = Field(
        default=MIN_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=MAX_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Maximum number of players allowed"
    )
    room_code_length: int = Field(
        default=ROOM_CODE_LENGTH,
        ge=4,
        le=8,
        description="Length of generated room codes"
    )
    room_expiry: int = Field(
        default=ROOM_EXPIRY,
        ge=60,
        description="Room inactivity timeout in seconds"
    )
    disconnect_grace: int = Field(
        default=DISCONNECT_GRACE_PERIOD,
        ge=0,
        description="Seconds a disconnected player keeps their seat"
    )
    cleanup_interval: int = Field(
        default=CLEANUP_INTERVAL,
        ge=1,
        description="Seconds between stale room sweeps"
    )
    snapshot_interval: int = Field(
        default=SNAPSHOT_INTERVAL,
        ge=1,
        description="Seconds between state snapshots"
    )
    snapshot_keep: int = Field(
        default=10,
        ge=1,
        description="Number of snapshot files to retain"
    )
    snapshot_dir: str = Field(
        default="game-states",
        description="Directory snapshots are written to"
    )
    restore_on_startup: bool = Field(
        default=False,
        description="Reload rooms from the latest snapshot when the server starts"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't fall below minimum."""
        min_players = info.data.get('min_players', MIN_PLAYERS)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count may start a game."""
        return self.min_players <= player_count <= self.max_players


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)


def rules_from_env() -> RuleConfig:
    """Build a RuleConfig from SALAD_* environment variables."""
    overrides = {}
    for name in RuleConfig.model_fields:
        value = os.getenv(f"SALAD_{name.upper()}")
        if value is not None:
            overrides[name] = value
    return create_rules(**overrides)
