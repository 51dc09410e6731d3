"""Shared fixtures for the TeamMate tests."""
import os

import pytest

from teammate_model import Participant, Role, Team

ROOT = os.path.dirname(os.path.abspath(__file__))
SAMPLE_CSV = os.path.join(ROOT, 'data', 'participants_sample.csv')

ROLES = list(Role)
GROUPS = ['Valorant', 'FIFA', 'Chess', 'Basketball']
# Leader, Balanced, Thinker, Balanced, Thinker, Balanced, Thinker, Balanced
SCORES = [95, 80, 60, 75, 55, 85, 65, 72]


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def make_participant():
    """Factory for a single participant with sensible defaults."""
    def _make(pid, skill=5, role=Role.STRATEGIST, score=80, group='Chess', name=None):
        return Participant(pid, name or f"Player {pid}", f"{pid.lower()}@club.test",
                           group, skill, role, score)
    return _make


@pytest.fixture
def make_pool(make_participant):
    """Factory for a varied, reproducible participant pool."""
    def _make(n, prefix='P'):
        return [
            make_participant(
                f"{prefix}{i + 101:03d}",
                skill=(i * 7) % 10 + 1,
                role=ROLES[i % len(ROLES)],
                score=SCORES[i % len(SCORES)],
                group=GROUPS[i % len(GROUPS)],
            )
            for i in range(n)
        ]
    return _make


@pytest.fixture
def make_team():
    """Factory for a team pre-filled with the given members."""
    def _make(team_id, members, capacity=None):
        team = Team(team_id, capacity or len(members))
        for m in members:
            assert team.add_member(m)
        return team
    return _make
