"""Tests for participants, teams and trait classification."""
import pytest

from teammate_model import (
    InvalidInputError,
    Participant,
    Role,
    Team,
    TraitType,
    calculate_survey_score,
    classify_trait_score,
    validate_team_size,
)


class TestTraitClassification:

    @pytest.mark.parametrize("score,expected", [
        (50, TraitType.THINKER),
        (69, TraitType.THINKER),
        (70, TraitType.BALANCED),
        (89, TraitType.BALANCED),
        (90, TraitType.LEADER),
        (100, TraitType.LEADER),
    ])
    def test_boundaries(self, score, expected):
        assert classify_trait_score(score) == expected

    @pytest.mark.parametrize("score", [49, 101, 0])
    def test_out_of_range(self, score):
        with pytest.raises(ValueError):
            classify_trait_score(score)

    def test_from_string(self):
        assert TraitType.from_string('leader') == TraitType.LEADER
        assert TraitType.from_string('THINKER') == TraitType.THINKER
        with pytest.raises(ValueError):
            TraitType.from_string('Dreamer')

    def test_rank_follows_declaration_order(self):
        assert TraitType.LEADER.rank < TraitType.BALANCED.rank < TraitType.THINKER.rank


class TestSurveyScore:

    def test_scaling(self):
        assert calculate_survey_score([5, 5, 5, 5, 5]) == 100
        assert calculate_survey_score([3, 3, 3, 3, 3]) == 60
        assert calculate_survey_score([4, 5, 4, 5, 5]) == 92

    def test_floor_at_minimum(self):
        assert calculate_survey_score([1, 1, 1, 1, 1]) == 50

    def test_wrong_length(self):
        with pytest.raises(InvalidInputError):
            calculate_survey_score([5, 5, 5, 5])

    def test_answer_out_of_range(self):
        with pytest.raises(InvalidInputError, match="Response 3"):
            calculate_survey_score([5, 5, 6, 5, 5])


class TestRole:

    def test_from_string(self):
        assert Role.from_string('Strategist') == Role.STRATEGIST
        assert Role.from_string(' coordinator ') == Role.COORDINATOR
        assert Role.from_string('ATTACKER') == Role.ATTACKER

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown role"):
            Role.from_string('Goalkeeper')

    def test_closed_set(self):
        assert len(Role) == 5


class TestParticipant:

    def test_trait_type_follows_score(self, make_participant):
        p = make_participant('P101', score=95)
        assert p.trait_type == TraitType.LEADER
        p.trait_score = 60
        assert p.trait_type == TraitType.THINKER
        p.trait_score = 70
        assert p.trait_type == TraitType.BALANCED

    def test_trait_type_has_no_setter(self, make_participant):
        p = make_participant('P101', score=95)
        with pytest.raises(AttributeError):
            p.trait_type = TraitType.THINKER

    def test_invalid_score_keeps_previous_type(self, make_participant):
        p = make_participant('P101', score=95)
        with pytest.raises(InvalidInputError):
            p.trait_score = 120
        assert p.trait_score == 95
        assert p.trait_type == TraitType.LEADER

    @pytest.mark.parametrize("skill", [0, 11])
    def test_skill_bounds(self, make_participant, skill):
        with pytest.raises(InvalidInputError):
            make_participant('P101', skill=skill)

    def test_identity(self, make_participant):
        a = make_participant('P101', skill=3)
        b = make_participant('P101', skill=9, name='Someone Else')
        c = make_participant('P102', skill=3)
        assert a == b
        assert hash(a) == hash(b)
        assert a != c
        assert len({a, b, c}) == 2

    def test_id_is_read_only(self, make_participant):
        p = make_participant('P101')
        with pytest.raises(AttributeError):
            p.id = 'P999'

    def test_empty_id(self):
        with pytest.raises(InvalidInputError):
            Participant('  ', 'Name', 'a@b.c', 'Chess', 5, Role.DEFENDER, 80)

    def test_role_from_text(self):
        p = Participant('P101', 'Name', 'a@b.c', 'Chess', 5, 'defender', 80)
        assert p.role == Role.DEFENDER


class TestTeam:

    def test_average_skill_tracks_membership(self, make_participant):
        team = Team('TEAM_1', 3)
        assert team.average_skill == 0.0
        a = make_participant('P101', skill=4)
        b = make_participant('P102', skill=8)
        team.add_member(a)
        team.add_member(b)
        assert team.average_skill == pytest.approx(6.0)
        team.remove_member(a)
        assert team.average_skill == pytest.approx(8.0)
        team.remove_member(b)
        assert team.average_skill == 0.0

    def test_capacity(self, make_participant):
        team = Team('TEAM_1', 3)
        for i in range(3):
            assert team.add_member(make_participant(f"P{101 + i}"))
        assert team.is_full()
        assert not team.add_member(make_participant('P200'))
        assert team.size == 3

    def test_no_duplicate_members(self, make_participant):
        team = Team('TEAM_1', 3)
        p = make_participant('P101')
        assert team.add_member(p)
        assert not team.add_member(p)
        assert team.size == 1

    def test_remove_missing(self, make_participant):
        team = Team('TEAM_1', 3)
        assert not team.remove_member(make_participant('P101'))

    def test_members_is_a_copy(self, make_participant):
        team = Team('TEAM_1', 3)
        team.add_member(make_participant('P101'))
        team.members.clear()
        assert team.size == 1

    def test_counts(self, make_participant, make_team):
        team = make_team('TEAM_1', [
            make_participant('P101', role=Role.ATTACKER, score=95, group='Chess'),
            make_participant('P102', role=Role.ATTACKER, score=60, group='chess'),
            make_participant('P103', role=Role.DEFENDER, score=80, group='FIFA'),
        ])
        assert team.role_count(Role.ATTACKER) == 2
        assert team.trait_count(TraitType.LEADER) == 1
        assert team.group_count('CHESS') == 2
        assert team.distinct_roles() == {Role.ATTACKER, Role.DEFENDER}

    def test_balanced(self, make_participant, make_team):
        team = make_team('TEAM_1', [
            make_participant('P101', role=Role.ATTACKER, score=95, group='Chess'),
            make_participant('P102', role=Role.DEFENDER, score=60, group='FIFA'),
            make_participant('P103', role=Role.SUPPORTER, score=80, group='Valorant'),
            make_participant('P104', role=Role.SUPPORTER, score=80, group='Chess'),
        ])
        assert team.is_balanced()
        assert team.balance_violations() == []

    def test_not_balanced_when_not_full(self, make_participant):
        team = Team('TEAM_1', 4)
        team.add_member(make_participant('P101', role=Role.ATTACKER, score=95))
        assert not team.is_balanced()

    def test_group_domination(self, make_participant, make_team):
        team = make_team('TEAM_1', [
            make_participant('P101', role=Role.ATTACKER, score=95, group='Chess'),
            make_participant('P102', role=Role.DEFENDER, score=60, group='Chess'),
            make_participant('P103', role=Role.SUPPORTER, score=80, group='Chess'),
            make_participant('P104', role=Role.SUPPORTER, score=80, group='FIFA'),
        ])
        assert not team.is_balanced()
        assert any('chess' in v for v in team.balance_violations())

    def test_single_trait_type(self, make_participant, make_team):
        team = make_team('TEAM_1', [
            make_participant('P101', role=Role.ATTACKER, score=80, group='Chess'),
            make_participant('P102', role=Role.DEFENDER, score=80, group='FIFA'),
            make_participant('P103', role=Role.SUPPORTER, score=80, group='Valorant'),
        ])
        assert not team.is_balanced()

    def test_role_target_capped_by_capacity(self, make_participant, make_team):
        team = make_team('TEAM_1', [
            make_participant('P101', role=Role.ATTACKER, score=95, group='Chess'),
            make_participant('P102', role=Role.DEFENDER, score=60, group='FIFA'),
            make_participant('P103', role=Role.DEFENDER, score=80, group='Valorant'),
        ])
        assert len(team.distinct_roles()) == 2
        assert not team.is_balanced()


class TestValidateTeamSize:

    def test_valid(self):
        validate_team_size(4, 8)
        validate_team_size(10, 20)

    @pytest.mark.parametrize("size", [2, 11])
    def test_size_out_of_range(self, size):
        with pytest.raises(InvalidInputError):
            validate_team_size(size, 100)

    def test_fewer_than_two_teams(self):
        with pytest.raises(InvalidInputError, match="Cannot form 2 teams"):
            validate_team_size(5, 8)
