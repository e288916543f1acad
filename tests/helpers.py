"""Test helpers for seeding the store."""

from pubgolf.models import Identity
from pubgolf.registration import TeamRegistry


async def register(db, user_id, team_name, player_names):
    """Create a team for user_id and return (team, players)."""
    registry = TeamRegistry(db)
    team = await registry.register_team(Identity(user_id), team_name, player_names)
    players = await registry.list_players(team.id)
    return team, players


async def enter_scores(db, player, scores):
    """Upsert {hole_number: score} for one player."""
    for hole_number, score in scores.items():
        await db.upsert(
            "scores",
            {"player_id": player.id, "hole_number": hole_number, "score": score},
            on_conflict=("player_id", "hole_number"),
        )
