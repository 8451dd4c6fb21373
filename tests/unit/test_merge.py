"""
Unit tests for merging duplicate players.
"""

import pytest
from sqlalchemy import select

from rostermatch.db.models import Match, MatchPlayer, MatchStat, Player, PlayerTeam
from rostermatch.exceptions import NotFoundError, SelfMergeError, StoreUnavailableError
from rostermatch.players.store import PlayerStore


@pytest.fixture
def history(db_session, make_team, make_player, add_membership):
    """
    A target and a duplicate player with overlapping history.

    - Both active on team A; the duplicate is also active on B and was
      once on C
    - Both have a stat line and a roster entry for M1; only the duplicate
      played M2
    """
    team_a = make_team("Alpha", "A")
    team_b = make_team("Bravo", "B")
    team_c = make_team("Charlie", "C")

    target = make_player("Jordan", "Smith", email="jordan.smith@example.com")
    duplicate = make_player("Jordon", "Smith")

    add_membership(target, team_a, jersey_number=23)
    add_membership(duplicate, team_a, jersey_number=32)
    add_membership(duplicate, team_b, jersey_number=5)
    add_membership(duplicate, team_c, jersey_number=9, is_active=False)

    m1 = Match(home_team_id=team_a.id, away_team_id=team_b.id)
    m2 = Match(home_team_id=team_a.id, away_team_id=team_c.id)
    db_session.add_all([m1, m2])
    db_session.flush()

    db_session.add_all([
        MatchStat(match_id=m1.id, player_id=target.id, team_id=team_a.id,
                  points=10, rebounds=3, assists=4, minutes_played=30),
        MatchStat(match_id=m1.id, player_id=duplicate.id, team_id=team_a.id,
                  points=8, rebounds=5, assists=4, minutes_played=None),
        MatchStat(match_id=m2.id, player_id=duplicate.id, team_id=team_a.id, points=4),
        MatchPlayer(match_id=m1.id, player_id=target.id, team_id=team_a.id, jersey_number=23),
        MatchPlayer(match_id=m1.id, player_id=duplicate.id, team_id=team_a.id, jersey_number=32),
        MatchPlayer(match_id=m2.id, player_id=duplicate.id, team_id=team_a.id, jersey_number=32),
    ])
    db_session.commit()

    return {
        "target": target,
        "duplicate": duplicate,
        "teams": (team_a, team_b, team_c),
        "matches": (m1, m2),
    }


def rows_for(db_session, model, player_id):
    query = select(model).where(model.player_id == player_id).order_by(model.id)
    return list(db_session.scalars(query))


class TestMergePlayers:
    """Tests for PlayerDeduplicationService.merge_players."""

    def test_self_merge_rejected(self, service, jordan_smith):
        with pytest.raises(SelfMergeError):
            service.merge_players(jordan_smith.id, jordan_smith.id)

    def test_missing_duplicate(self, service, jordan_smith):
        with pytest.raises(NotFoundError) as exc_info:
            service.merge_players(999, jordan_smith.id)
        assert exc_info.value.record_id == 999

    def test_missing_target(self, service, jordan_smith, db_session):
        with pytest.raises(NotFoundError):
            service.merge_players(jordan_smith.id, 999)
        assert db_session.get(Player, jordan_smith.id) is not None

    def test_merge_without_history(self, service, db_session, make_player):
        target = make_player("Chris", "Evans")
        duplicate = make_player("Chris", "Evans")

        assert service.merge_players(duplicate.id, target.id).id == target.id
        assert db_session.query(Player).count() == 1

    def test_merge_moves_history(self, service, db_session, history):
        target = history["target"]
        duplicate = history["duplicate"]
        duplicate_id = duplicate.id
        team_a, team_b, _ = history["teams"]
        m1, m2 = history["matches"]

        result = service.merge_players(duplicate_id, target.id)
        db_session.expire_all()

        assert result.id == target.id
        assert db_session.get(Player, duplicate_id) is None

        # Nothing references the duplicate any more
        for model in (PlayerTeam, MatchStat, MatchPlayer):
            assert rows_for(db_session, model, duplicate_id) == []

        # Memberships: A kept as-is, B moved over, C history dropped
        memberships = rows_for(db_session, PlayerTeam, target.id)
        assert sorted((m.team_id, m.jersey_number, m.is_active) for m in memberships) == sorted([
            (team_a.id, 23, True),
            (team_b.id, 5, True),
        ])

        # Stats: M1 reconciled by field-wise max, M2 moved over
        stats = {s.match_id: s for s in rows_for(db_session, MatchStat, target.id)}
        assert set(stats) == {m1.id, m2.id}
        assert (stats[m1.id].points, stats[m1.id].rebounds, stats[m1.id].assists) == (10, 5, 4)
        assert stats[m1.id].minutes_played == 30
        assert stats[m2.id].points == 4

        # Roster entries: M1 keeps the target's entry, M2 moved over
        entries = {e.match_id: e for e in rows_for(db_session, MatchPlayer, target.id)}
        assert set(entries) == {m1.id, m2.id}
        assert entries[m1.id].jersey_number == 23
        assert entries[m2.id].jersey_number == 32

    def test_failure_rolls_back_everything(self, service, db_session, history, monkeypatch):
        target_id = history["target"].id
        duplicate_id = history["duplicate"].id

        def fail(self, player):
            raise StoreUnavailableError("connection lost")

        monkeypatch.setattr(PlayerStore, "delete_record", fail)

        with pytest.raises(StoreUnavailableError):
            service.merge_players(duplicate_id, target_id)

        db_session.expire_all()
        assert db_session.get(Player, duplicate_id) is not None
        assert len(rows_for(db_session, PlayerTeam, duplicate_id)) == 3
        assert len(rows_for(db_session, MatchStat, duplicate_id)) == 2
        assert len(rows_for(db_session, MatchPlayer, duplicate_id)) == 2
        assert len(rows_for(db_session, PlayerTeam, target_id)) == 1
        active = [m for m in rows_for(db_session, PlayerTeam, duplicate_id) if m.is_active]
        assert len(active) == 2
