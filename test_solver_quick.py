"""Quick test: solve the bundled sample and check the key results."""
import pandas as pd
import pytest

from analyze_data import summarize_pool
from teammate_model import TraitType
from teammate_solver import TeamMateSolver


@pytest.fixture
def sample_solution(sample_csv):
    solver = TeamMateSolver.from_csv(sample_csv, verbose=False)
    return solver.solve(team_size=5)


def test_key_results(sample_solution):
    stats = sample_solution['statistics']
    assert sample_solution['status'] == 'Completed'
    assert stats['total_participants'] == 31
    assert stats['teams_formed'] == 6
    assert stats['assigned'] == 30
    assert stats['unassigned'] == 1


def test_team_composition(sample_solution):
    for team in sample_solution['teams']:
        assert team.is_full()
        assert team.trait_count(TraitType.LEADER) >= 1
        assert 1 <= team.trait_count(TraitType.THINKER) <= 2


def test_shuffled_run(sample_csv):
    solver = TeamMateSolver.from_csv(sample_csv, verbose=False)
    solution = solver.solve(team_size=4, ordering='shuffled', seed=7)
    assert solution['statistics']['teams_formed'] == 7
    assert solution['statistics']['unassigned'] == 3


def test_pool_summary(sample_csv):
    summary = summarize_pool(pd.read_csv(sample_csv, dtype=str))
    assert summary['valid_rows'] == 31
    assert summary['traits'] == {'Leader': 7, 'Balanced': 13, 'Thinker': 11}
    assert summary['team_sizes'][5] == {'teams': 6, 'unassigned': 1, 'feasible': True}
    assert summary['team_sizes'][10]['teams'] == 3
