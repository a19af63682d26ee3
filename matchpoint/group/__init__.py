"""Group membership lookups used by the game and series blueprints."""

from .services import can_manage_games, get_membership, is_group_member

__all__ = ["can_manage_games", "get_membership", "is_group_member"]
